"""Escrow state machine.

Pure transitions over `EscrowRecord`: each handler authorizes the action,
then returns a new record (the input is never mutated) and, for terminal
transitions, the settlement the ledger must perform.

    Active    -> Delivered | Disputed | Released | Refunded
    Delivered -> Released (accept or release) | Disputed | Refunded
    Disputed  -> Released | Refunded
    Released, Refunded: terminal
"""

from __future__ import annotations

from copy import deepcopy
from typing import Optional

from .authorization import require
from .config import U64_MAX
from .errors import ErrorCode, EscrowError
from .types import (
    AcceptDelivery,
    Action,
    Arbitrate,
    ArbitrationDecision,
    CreateEscrow,
    Dispute,
    EscrowRecord,
    EscrowStatus,
    MarkDelivered,
    Refund,
    Release,
    Settlement,
    Transition,
)


def open_escrow(
    action: CreateEscrow,
    buyer: bytes,
    seller: bytes,
    arbitrator: Optional[bytes],
    nonce_bump: int,
    now: int,
) -> EscrowRecord:
    """Build the Active record for a Create action."""
    require(action, buyer, None, now)
    if not (0 <= now <= U64_MAX):
        raise EscrowError(ErrorCode.ARITHMETIC_OVERFLOW, "clock outside u64 range")
    return EscrowRecord(
        buyer=buyer,
        seller=seller,
        arbitrator=arbitrator,
        amount=action.amount,
        created_at=now,
        timeout_seconds=action.timeout_seconds,
        terms_hash=action.terms_hash,
        status=EscrowStatus.ACTIVE,
        nonce_bump=nonce_bump,
    )


def transition(action: Action, signer: bytes, record: EscrowRecord, now: int) -> Transition:
    if isinstance(action, CreateEscrow):
        raise EscrowError(ErrorCode.INVALID_INSTRUCTION, "create does not apply to a record")

    require(action, signer, record, now)
    nr = deepcopy(record)

    if isinstance(action, MarkDelivered):
        return _apply_mark_delivered(nr)
    if isinstance(action, AcceptDelivery):
        return _apply_accept(nr)
    if isinstance(action, Release):
        return _apply_release(nr)
    if isinstance(action, Refund):
        return _apply_refund(nr)
    if isinstance(action, Dispute):
        return _apply_dispute(nr, signer)
    if isinstance(action, Arbitrate):
        return _apply_arbitrate(nr, action.decision)
    raise EscrowError(ErrorCode.INVALID_INSTRUCTION, f"unsupported action {action!r}")


def _pay_seller(record: EscrowRecord) -> Settlement:
    return Settlement(recipient=record.seller, amount=record.amount, close_to=record.buyer)


def _pay_buyer(record: EscrowRecord) -> Settlement:
    return Settlement(recipient=record.buyer, amount=record.amount, close_to=record.buyer)


# --- MARK_DELIVERED ---

def _apply_mark_delivered(record: EscrowRecord) -> Transition:
    record.flags.seller_delivered = True
    record.status = EscrowStatus.DELIVERED
    return Transition(record)


# --- ACCEPT_DELIVERY ---

def _apply_accept(record: EscrowRecord) -> Transition:
    # Acceptance pays out immediately, so Accepted is never persisted.
    record.flags.buyer_accepted = True
    record.status = EscrowStatus.RELEASED
    return Transition(record, _pay_seller(record))


# --- RELEASE ---

def _apply_release(record: EscrowRecord) -> Transition:
    record.status = EscrowStatus.RELEASED
    return Transition(record, _pay_seller(record))


# --- REFUND ---

def _apply_refund(record: EscrowRecord) -> Transition:
    record.status = EscrowStatus.REFUNDED
    return Transition(record, _pay_buyer(record))


# --- DISPUTE ---

def _apply_dispute(record: EscrowRecord, signer: bytes) -> Transition:
    if signer == record.buyer:
        record.flags.buyer_disputed = True
    else:
        record.flags.seller_disputed = True
    record.status = EscrowStatus.DISPUTED
    return Transition(record)


# --- ARBITRATE ---

def _apply_arbitrate(record: EscrowRecord, decision: ArbitrationDecision) -> Transition:
    if decision == ArbitrationDecision.RELEASE:
        record.status = EscrowStatus.RELEASED
        return Transition(record, _pay_seller(record))
    record.status = EscrowStatus.REFUNDED
    return Transition(record, _pay_buyer(record))
