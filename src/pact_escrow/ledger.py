"""Value movement over the reference ledger.

The functions here mutate the `LedgerState` they are given. Callers work on
a copy and only publish it once the whole action has succeeded.
"""

from __future__ import annotations

from typing import Optional

from .address import derive_escrow_address
from .config import U64_MAX
from .encoding import decode_record
from .errors import ErrorCode, EscrowError
from .types import Account, EscrowRecord, LedgerState, Settlement


def checked_add(a: int, b: int) -> int:
    total = a + b
    if total > U64_MAX:
        raise EscrowError(ErrorCode.ARITHMETIC_OVERFLOW, "lamport balance overflow")
    return total


def checked_sub(a: int, b: int) -> int:
    if b > a:
        raise EscrowError(ErrorCode.INSUFFICIENT_FUNDS, "insufficient lamports")
    return a - b


def get_or_create(state: LedgerState, key: bytes) -> Account:
    acct = state.accounts.get(key)
    if acct is None:
        acct = Account(key=key)
        state.accounts[key] = acct
    return acct


def credit(state: LedgerState, key: bytes, lamports: int) -> None:
    acct = get_or_create(state, key)
    acct.lamports = checked_add(acct.lamports, lamports)


def transfer(state: LedgerState, source: bytes, destination: bytes, lamports: int) -> None:
    src = state.accounts.get(source)
    if src is None:
        raise EscrowError(ErrorCode.INSUFFICIENT_FUNDS, "source account not found")
    if source == destination:
        checked_sub(src.lamports, lamports)
        return
    dst = get_or_create(state, destination)
    new_src = checked_sub(src.lamports, lamports)
    new_dst = checked_add(dst.lamports, lamports)
    src.lamports = new_src
    dst.lamports = new_dst


def close_account(state: LedgerState, key: bytes, destination: bytes) -> int:
    """Drain `key` into `destination` and reclaim its storage. Returns lamports moved."""
    acct = state.accounts.get(key)
    if acct is None:
        return 0
    residual = acct.lamports
    dst = get_or_create(state, destination)
    dst.lamports = checked_add(dst.lamports, residual)
    del state.accounts[key]
    return residual


def apply_settlement(state: LedgerState, record_key: bytes, settlement: Settlement) -> None:
    transfer(state, record_key, settlement.recipient, settlement.amount)
    close_account(state, record_key, settlement.close_to)


def rent_exempt_minimum(state: LedgerState, data_len: int) -> int:
    return state.host.minimum_balance(data_len)


def fetch_escrow(
    state: LedgerState, buyer: bytes, seller: bytes, nonce: int
) -> Optional[EscrowRecord]:
    """Snapshot read of the escrow for (buyer, seller, nonce); None once closed."""
    address, _ = derive_escrow_address(buyer, seller, nonce, state.host.program_id)
    acct = state.accounts.get(address)
    if acct is None or acct.owner != state.host.program_id or not acct.data:
        return None
    return decode_record(acct.data)
