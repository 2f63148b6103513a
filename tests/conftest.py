"""Pytest hooks to generate escrow fixtures (EEST-style)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from pact_escrow.state_digest import compute_state_digest
from pact_escrow.state_transition import TransitionResult, apply_transaction
from pact_escrow.types import Instruction, LedgerState
from tools.fixtures_io import instruction_to_json, record_to_json, state_to_json
from tools.yaml_dump import write_yaml

_STATE_CASES: dict[str, list[dict[str, Any]]] = {}

CaseRunner = Callable[
    [str, str, LedgerState, list[Instruction]],
    tuple[LedgerState, list[TransitionResult]],
]


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated fixtures",
    )
    parser.addoption(
        "--yaml",
        action="store_true",
        default=False,
        help="Write fixtures as YAML instead of JSON",
    )


@pytest.fixture
def escrow_case() -> CaseRunner:
    """Run instructions against a pre-state and collect the case for fixtures."""

    def _escrow_case(
        rel_path: str, name: str, pre_state: LedgerState, instructions: list[Instruction]
    ) -> tuple[LedgerState, list[TransitionResult]]:
        pre_json = state_to_json(pre_state)
        post_state, results = apply_transaction(pre_state, instructions)
        post_json = state_to_json(post_state)
        last = results[-1] if results else None
        _STATE_CASES.setdefault(rel_path, []).append(
            {
                "name": name,
                "pre_state": pre_json,
                "instructions": [instruction_to_json(ix) for ix in instructions],
                "expected": {
                    "ok": all(r.ok for r in results),
                    "error": last.error.code.name if last and last.error else None,
                    "record": record_to_json(last.record) if last and last.record else None,
                    "post_state": post_json,
                    "post_state_digest": compute_state_digest(post_json),
                },
            }
        )
        return post_state, results

    return _escrow_case


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return
    as_yaml = session.config.getoption("--yaml")

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, cases in _STATE_CASES.items():
        if not cases:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        if as_yaml:
            write_yaml(target.with_suffix(".yaml"), {"cases": cases})
        else:
            target.write_text(json.dumps({"cases": cases}, indent=2))
