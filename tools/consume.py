"""Consume escrow fixtures and validate them against the Python program."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click
import yaml

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from pact_escrow.state_digest import compute_state_digest  # noqa: E402
from pact_escrow.state_transition import apply_transaction  # noqa: E402
from fixtures_io import instruction_from_json, state_from_json, state_to_json  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

_SUFFIXES = (".json", ".yaml", ".yml")


def load_fixture(path: Path) -> dict[str, Any]:
    text = path.read_text()
    if path.suffix == ".json":
        return json.loads(text)
    return yaml.safe_load(text) or {}


def find_fixture_files(root: Path) -> list[Path]:
    if root.is_file():
        return [root]
    return sorted(p for p in root.rglob("*") if p.suffix in _SUFFIXES)


def check_case(case: dict[str, Any]) -> Optional[str]:
    """Replay one case; returns a failure reason or None."""
    pre_state = state_from_json(case["pre_state"])
    instructions = [instruction_from_json(ix) for ix in case["instructions"]]
    post_state, results = apply_transaction(pre_state, instructions)

    expected = case["expected"]
    ok = all(r.ok for r in results)
    if ok != expected["ok"]:
        return "ok_mismatch"

    actual_err = results[-1].error.code.name if results and results[-1].error else None
    if actual_err != expected["error"]:
        return f"error_mismatch (got {actual_err}, want {expected['error']})"

    exported = state_to_json(post_state)
    want_digest = expected.get("post_state_digest")
    if want_digest is None:
        want_digest = compute_state_digest(expected["post_state"])
    if compute_state_digest(exported) != want_digest:
        return "post_state_mismatch"
    return None


def check_file(path: Path, stop_on_failure: bool) -> tuple[int, list[str]]:
    data = load_fixture(path)
    failures: list[str] = []
    cases = data.get("cases", [])
    for case in cases:
        reason = check_case(case)
        if reason is None:
            logger.debug("PASS %s", case["name"])
            continue
        failures.append(f"{path.name}::{case['name']}: {reason}")
        if stop_on_failure:
            break
    return len(cases), failures


@click.command()
@click.option(
    "--fixtures",
    type=click.Path(exists=True, path_type=Path),
    default=ROOT / "fixtures",
    show_default=True,
    help="Fixture file or directory (JSON or YAML)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose output")
@click.option("--stop-on-failure", is_flag=True, help="Stop on first failing case")
def main(fixtures: Path, verbose: bool, stop_on_failure: bool) -> None:
    """Replay escrow fixtures and compare results and post-state digests."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    files = find_fixture_files(fixtures)
    if not files:
        logger.error("No fixture files found in %s", fixtures)
        sys.exit(1)

    total = 0
    failures: list[str] = []
    for path in files:
        count, file_failures = check_file(path, stop_on_failure)
        total += count
        failures.extend(file_failures)
        if failures and stop_on_failure:
            break

    for f in failures:
        logger.error("FAIL %s", f)
    if failures:
        sys.exit(1)

    logger.info("All %d fixture cases passed", total)


if __name__ == "__main__":
    main()
