"""Action dispatcher and atomic instruction application."""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Optional

from .address import derive_escrow_address
from .config import ESCROW_SIZE, SYSTEM_PROGRAM_ID
from .encoding import decode_action, decode_record, encode_record
from .errors import ErrorCode, EscrowError
from .escrow import open_escrow, transition
from .ledger import apply_settlement, checked_add, checked_sub, get_or_create, rent_exempt_minimum
from .types import (
    AcceptDelivery,
    Account,
    AccountRef,
    Action,
    ActionTag,
    Arbitrate,
    CreateEscrow,
    Dispute,
    EscrowRecord,
    Instruction,
    LedgerState,
    MarkDelivered,
    Refund,
    Release,
    Settlement,
)

logger = logging.getLogger(__name__)

_MIN_ACCOUNTS = {
    ActionTag.CREATE: 5,           # buyer, seller, arbitrator, record, system program
    ActionTag.MARK_DELIVERED: 2,   # seller, record
    ActionTag.ACCEPT_DELIVERY: 3,  # buyer, seller, record
    ActionTag.RELEASE: 3,          # buyer, seller, record
    ActionTag.REFUND: 4,           # authority, buyer, seller, record
    ActionTag.DISPUTE: 2,          # authority, record
    ActionTag.ARBITRATE: 4,        # arbitrator, buyer, seller, record
}


class TransitionResult:
    """Thin wrapper for instruction results."""

    def __init__(
        self,
        ok: bool,
        error: Optional[EscrowError] = None,
        record: Optional[EscrowRecord] = None,
        settlement: Optional[Settlement] = None,
        address: Optional[bytes] = None,
    ):
        self.ok = ok
        self.error = error
        self.record = record
        self.settlement = settlement
        self.address = address

    @classmethod
    def success(
        cls,
        record: Optional[EscrowRecord] = None,
        settlement: Optional[Settlement] = None,
        address: Optional[bytes] = None,
    ) -> "TransitionResult":
        return cls(True, None, record, settlement, address)

    @classmethod
    def failure(cls, error: EscrowError) -> "TransitionResult":
        return cls(False, error)

    @property
    def closed(self) -> bool:
        return self.settlement is not None


def _require_signer(ref: AccountRef, role: str) -> None:
    if not ref.is_signer:
        raise EscrowError(ErrorCode.UNAUTHORIZED, f"{role} must sign")


def _require_key(ref: AccountRef, expected: bytes, role: str) -> None:
    if ref.key != expected:
        raise EscrowError(ErrorCode.ACCOUNT_MISMATCH, f"{role} account does not match escrow")


def _load_record(state: LedgerState, ref: AccountRef) -> tuple[Account, EscrowRecord]:
    acct = state.accounts.get(ref.key)
    if acct is None or not acct.data:
        raise EscrowError(ErrorCode.INVALID_RECORD_TAG, "record storage is uninitialized")
    if acct.owner != state.host.program_id:
        raise EscrowError(ErrorCode.INVALID_ACCOUNT_OWNER, "record not owned by escrow program")
    return acct, decode_record(acct.data)


# --- CREATE ---

def _process_create(
    state: LedgerState, accounts: list[AccountRef], action: CreateEscrow
) -> TransitionResult:
    buyer, seller, arbitrator, record_ref, system_program = accounts[:5]

    _require_signer(buyer, "buyer")
    if system_program.key != SYSTEM_PROGRAM_ID:
        raise EscrowError(ErrorCode.INVALID_PROGRAM_ID, "expected the system program")

    expected, bump = derive_escrow_address(
        buyer.key, seller.key, action.nonce, state.host.program_id
    )
    if record_ref.key != expected:
        raise EscrowError(ErrorCode.INVALID_RECORD_ADDRESS, "record address does not match seeds")

    existing = state.accounts.get(expected)
    if existing is not None and (existing.lamports > 0 or existing.data):
        raise EscrowError(ErrorCode.RECORD_EXISTS, "escrow record already in use")

    arbitrator_key = None if arbitrator.key == SYSTEM_PROGRAM_ID else arbitrator.key
    record = open_escrow(
        action,
        buyer=buyer.key,
        seller=seller.key,
        arbitrator=arbitrator_key,
        nonce_bump=bump,
        now=state.clock.unix_timestamp,
    )

    # Storage deposit and escrowed value move in the same step as record creation.
    rent = rent_exempt_minimum(state, ESCROW_SIZE)
    total = checked_add(action.amount, rent)
    payer = state.accounts.get(buyer.key)
    if payer is None:
        raise EscrowError(ErrorCode.INSUFFICIENT_FUNDS, "buyer account not found")
    payer.lamports = checked_sub(payer.lamports, total)

    escrow = get_or_create(state, expected)
    escrow.lamports = checked_add(escrow.lamports, total)
    escrow.owner = state.host.program_id
    escrow.data = encode_record(record)

    return TransitionResult.success(record=record, address=expected)


# --- Record actions ---

def _resolve_roles(
    accounts: list[AccountRef], action: Action
) -> tuple[AccountRef, Optional[AccountRef], Optional[AccountRef], AccountRef]:
    """Split accounts into (signer, buyer ref, seller ref, record ref)."""
    if isinstance(action, MarkDelivered):
        signer, record_ref = accounts[:2]
        return signer, None, None, record_ref
    if isinstance(action, (AcceptDelivery, Release)):
        signer, seller, record_ref = accounts[:3]
        return signer, None, seller, record_ref
    if isinstance(action, (Refund, Arbitrate)):
        signer, buyer, seller, record_ref = accounts[:4]
        return signer, buyer, seller, record_ref
    if isinstance(action, Dispute):
        signer, record_ref = accounts[:2]
        return signer, None, None, record_ref
    raise EscrowError(ErrorCode.INVALID_INSTRUCTION, f"unsupported action {action!r}")


def _process_record_action(
    state: LedgerState, accounts: list[AccountRef], action: Action
) -> TransitionResult:
    signer, buyer_ref, seller_ref, record_ref = _resolve_roles(accounts, action)
    _require_signer(signer, "authority")

    acct, record = _load_record(state, record_ref)
    if buyer_ref is not None:
        _require_key(buyer_ref, record.buyer, "buyer")
    if seller_ref is not None:
        _require_key(seller_ref, record.seller, "seller")

    result = transition(action, signer.key, record, state.clock.unix_timestamp)
    acct.data = encode_record(result.record)
    if result.settlement is not None:
        apply_settlement(state, record_ref.key, result.settlement)

    return TransitionResult.success(
        record=result.record, settlement=result.settlement, address=record_ref.key
    )


def _dispatch(state: LedgerState, ix: Instruction) -> TransitionResult:
    if ix.program_id != state.host.program_id:
        raise EscrowError(ErrorCode.INVALID_PROGRAM_ID, "instruction targets another program")

    action = decode_action(ix.data)
    if len(ix.accounts) < _MIN_ACCOUNTS[action.tag]:
        raise EscrowError(
            ErrorCode.NOT_ENOUGH_ACCOUNTS,
            f"{action.tag.name.lower()} needs {_MIN_ACCOUNTS[action.tag]} accounts",
        )

    if isinstance(action, CreateEscrow):
        return _process_create(state, ix.accounts, action)
    return _process_record_action(state, ix.accounts, action)


def process_instruction(
    state: LedgerState, ix: Instruction
) -> tuple[LedgerState, TransitionResult]:
    """Apply one instruction atomically.

    On failure the caller's state object is returned untouched: no record
    bytes change and no value moves.
    """
    working = deepcopy(state)
    try:
        result = _dispatch(working, ix)
    except EscrowError as exc:
        logger.info("instruction rejected: %s", exc)
        return state, TransitionResult.failure(exc)

    logger.debug(
        "instruction applied: tag=%s status=%s closed=%s",
        ix.data[0],
        result.record.status.name if result.record else None,
        result.closed,
    )
    return working, result


def apply_transaction(
    state: LedgerState, instructions: list[Instruction]
) -> tuple[LedgerState, list[TransitionResult]]:
    """Apply several instructions with all-or-nothing semantics.

    If any instruction fails, the state is unchanged and the returned list
    ends with the failing result.
    """
    working = state
    results: list[TransitionResult] = []
    for ix in instructions:
        working, result = process_instruction(working, ix)
        results.append(result)
        if not result.ok:
            return state, results
    return working, results
