"""Ledger value movement."""

from __future__ import annotations

import pytest

from pact_escrow.config import U64_MAX
from pact_escrow.errors import ErrorCode, EscrowError
from pact_escrow.ledger import apply_settlement, close_account, credit, transfer
from pact_escrow.test_accounts import ALICE, BOB, CAROL
from pact_escrow.types import Account, LedgerState, Settlement


def _state() -> LedgerState:
    state = LedgerState()
    state.accounts[ALICE] = Account(key=ALICE, lamports=100)
    state.accounts[BOB] = Account(key=BOB, lamports=0)
    return state


def test_transfer_creates_destination() -> None:
    state = _state()
    transfer(state, ALICE, CAROL, 40)
    assert state.accounts[ALICE].lamports == 60
    assert state.accounts[CAROL].lamports == 40


def test_transfer_underflow() -> None:
    state = _state()
    with pytest.raises(EscrowError) as exc:
        transfer(state, ALICE, BOB, 101)
    assert exc.value.code == ErrorCode.INSUFFICIENT_FUNDS
    assert state.accounts[ALICE].lamports == 100


def test_credit_overflow() -> None:
    state = _state()
    state.accounts[BOB].lamports = U64_MAX
    with pytest.raises(EscrowError) as exc:
        credit(state, BOB, 1)
    assert exc.value.code == ErrorCode.ARITHMETIC_OVERFLOW


def test_close_account_drains() -> None:
    state = _state()
    assert close_account(state, ALICE, BOB) == 100
    assert ALICE not in state.accounts
    assert state.accounts[BOB].lamports == 100


def test_settlement_pays_then_closes() -> None:
    state = _state()
    state.accounts[CAROL] = Account(key=CAROL, lamports=70, data=b"\x01")
    apply_settlement(state, CAROL, Settlement(recipient=BOB, amount=50, close_to=ALICE))
    assert CAROL not in state.accounts
    assert state.accounts[BOB].lamports == 50
    assert state.accounts[ALICE].lamports == 120
