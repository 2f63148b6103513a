"""Fixture export and replay through the consume tool."""

from __future__ import annotations

import json

from click.testing import CliRunner

from pact_escrow.address import derive_escrow_address
from pact_escrow.config import SYSTEM_PROGRAM_ID, HostConfig
from pact_escrow.encoding import encode_action
from pact_escrow.state_digest import compute_state_digest
from pact_escrow.state_transition import apply_transaction
from pact_escrow.test_accounts import ALICE, BOB, DEFAULT_BALANCE, named_key
from pact_escrow.types import Account, AccountRef, CreateEscrow, Instruction, LedgerState
from tools.consume import main as consume_main
from tools.fixtures_io import (
    instruction_from_json,
    instruction_to_json,
    state_from_json,
    state_to_json,
)
from tools.yaml_dump import write_yaml

PROGRAM = named_key("pact-escrow-program")


def _pre_state() -> LedgerState:
    state = LedgerState(host=HostConfig(program_id=PROGRAM))
    for key in (ALICE, BOB):
        state.accounts[key] = Account(key=key, lamports=DEFAULT_BALANCE)
    return state


def _create(amount: int) -> Instruction:
    address, _ = derive_escrow_address(ALICE, BOB, 1, PROGRAM)
    return Instruction(
        accounts=[
            AccountRef(ALICE, is_signer=True, is_writable=True),
            AccountRef(BOB),
            AccountRef(SYSTEM_PROGRAM_ID),
            AccountRef(address, is_writable=True),
            AccountRef(SYSTEM_PROGRAM_ID),
        ],
        data=encode_action(CreateEscrow(amount=amount, nonce=1)),
        program_id=PROGRAM,
    )


def _case(name: str, amount: int) -> dict:
    pre = _pre_state()
    ixs = [_create(amount)]
    post, results = apply_transaction(pre, ixs)
    post_json = state_to_json(post)
    return {
        "name": name,
        "pre_state": state_to_json(pre),
        "instructions": [instruction_to_json(ix) for ix in ixs],
        "expected": {
            "ok": all(r.ok for r in results),
            "error": results[-1].error.code.name if results[-1].error else None,
            "post_state": post_json,
            "post_state_digest": compute_state_digest(post_json),
        },
    }


def test_state_json_round_trip() -> None:
    post, _ = apply_transaction(_pre_state(), [_create(10)])
    exported = state_to_json(post)
    restored = state_from_json(json.loads(json.dumps(exported)))
    assert restored == post


def test_instruction_json_round_trip() -> None:
    ix = _create(10)
    assert instruction_from_json(instruction_to_json(ix)) == ix


def test_consume_accepts_matching_fixtures(tmp_path) -> None:
    path = tmp_path / "create.json"
    path.write_text(json.dumps({"cases": [_case("ok", 10), _case("zero", 0)]}))
    result = CliRunner().invoke(consume_main, ["--fixtures", str(path)])
    assert result.exit_code == 0, result.output


def test_consume_reads_yaml(tmp_path) -> None:
    write_yaml(tmp_path / "create.yaml", {"cases": [_case("ok", 10)]})
    result = CliRunner().invoke(consume_main, ["--fixtures", str(tmp_path)])
    assert result.exit_code == 0, result.output


def test_consume_flags_mismatch(tmp_path) -> None:
    case = _case("tampered", 10)
    case["expected"]["post_state_digest"] = "00" * 32
    path = tmp_path / "create.json"
    path.write_text(json.dumps({"cases": [case]}))
    result = CliRunner().invoke(consume_main, ["--fixtures", str(path)])
    assert result.exit_code == 1
