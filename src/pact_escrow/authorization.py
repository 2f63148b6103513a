"""Authorization rules guarding every escrow transition.

`authorize` is a pure decision over (action, signer, record, now): it never
touches the record and returns either an allow (with the refund branch that
applied, where relevant) or a deny carrying the specific error.
"""

from __future__ import annotations

from typing import Optional

from .errors import ErrorCode, EscrowError
from .timeout import is_timed_out
from .types import (
    AcceptDelivery,
    Action,
    Arbitrate,
    CreateEscrow,
    Dispute,
    EscrowRecord,
    EscrowStatus,
    MarkDelivered,
    RefundBranch,
    Refund,
    Release,
)

_RELEASABLE = frozenset({EscrowStatus.ACTIVE, EscrowStatus.DELIVERED})
_DISPUTABLE = frozenset({EscrowStatus.ACTIVE, EscrowStatus.DELIVERED})


class Authorization:
    """Outcome of an authorization check."""

    def __init__(
        self,
        allowed: bool,
        branch: Optional[RefundBranch] = None,
        error: Optional[EscrowError] = None,
    ):
        self.allowed = allowed
        self.branch = branch
        self.error = error

    @classmethod
    def allow(cls, branch: Optional[RefundBranch] = None) -> "Authorization":
        return cls(True, branch=branch)

    @classmethod
    def deny(cls, code: ErrorCode, message: str) -> "Authorization":
        return cls(False, error=EscrowError(code, message))

    def __repr__(self) -> str:
        if self.allowed:
            return f"Authorization.allow({self.branch!r})"
        return f"Authorization.deny({self.error})"


def authorize(
    action: Action, signer: bytes, record: Optional[EscrowRecord], now: int
) -> Authorization:
    if isinstance(action, CreateEscrow):
        if action.amount <= 0:
            return Authorization.deny(ErrorCode.AMOUNT_ZERO, "escrow amount must be > 0")
        return Authorization.allow()

    if record is None:
        return Authorization.deny(ErrorCode.INVALID_RECORD_TAG, "no escrow record")
    if record.status.is_terminal:
        return Authorization.deny(
            ErrorCode.INVALID_STATUS, f"escrow already {record.status.label.lower()}"
        )

    if isinstance(action, MarkDelivered):
        return _authorize_mark_delivered(signer, record)
    if isinstance(action, AcceptDelivery):
        return _authorize_accept(signer, record)
    if isinstance(action, Release):
        return _authorize_release(signer, record)
    if isinstance(action, Refund):
        return _authorize_refund(signer, record, now)
    if isinstance(action, Dispute):
        return _authorize_dispute(signer, record)
    if isinstance(action, Arbitrate):
        return _authorize_arbitrate(signer, record)
    return Authorization.deny(ErrorCode.INVALID_INSTRUCTION, f"unsupported action {action!r}")


def require(
    action: Action, signer: bytes, record: Optional[EscrowRecord], now: int
) -> Optional[RefundBranch]:
    """Like `authorize`, but raise the deny error; returns the refund branch."""
    result = authorize(action, signer, record, now)
    if not result.allowed:
        assert result.error is not None
        raise result.error
    return result.branch


def _authorize_mark_delivered(signer: bytes, record: EscrowRecord) -> Authorization:
    if signer != record.seller:
        return Authorization.deny(ErrorCode.UNAUTHORIZED, "only the seller can mark delivery")
    if record.status != EscrowStatus.ACTIVE:
        return Authorization.deny(ErrorCode.INVALID_STATUS, "escrow is not active")
    return Authorization.allow()


def _authorize_accept(signer: bytes, record: EscrowRecord) -> Authorization:
    if signer != record.buyer:
        return Authorization.deny(ErrorCode.UNAUTHORIZED, "only the buyer can accept delivery")
    if record.status != EscrowStatus.DELIVERED:
        return Authorization.deny(ErrorCode.INVALID_STATUS, "nothing delivered to accept")
    return Authorization.allow()


def _authorize_release(signer: bytes, record: EscrowRecord) -> Authorization:
    if signer != record.buyer:
        return Authorization.deny(ErrorCode.UNAUTHORIZED, "only the buyer can release")
    if record.status not in _RELEASABLE:
        return Authorization.deny(ErrorCode.INVALID_STATUS, "escrow cannot be released")
    return Authorization.allow()


def _authorize_refund(signer: bytes, record: EscrowRecord, now: int) -> Authorization:
    # Seller can always give the money back.
    if signer == record.seller:
        return Authorization.allow(RefundBranch.SELLER)

    if signer == record.buyer:
        if record.status == EscrowStatus.ACTIVE:
            return Authorization.allow(RefundBranch.BUYER_NO_DELIVERY)
        if is_timed_out(record, now):
            return Authorization.allow(RefundBranch.BUYER_TIMEOUT)
        return Authorization.deny(
            ErrorCode.TIMEOUT_NOT_REACHED, "refund window has not elapsed"
        )

    if record.arbitrator is not None and signer == record.arbitrator:
        if record.status != EscrowStatus.DISPUTED:
            return Authorization.deny(ErrorCode.NOT_DISPUTED, "arbitrator refunds need a dispute")
        return Authorization.allow(RefundBranch.ARBITRATOR)

    return Authorization.deny(ErrorCode.UNAUTHORIZED, "signer cannot refund this escrow")


def _authorize_dispute(signer: bytes, record: EscrowRecord) -> Authorization:
    if signer not in (record.buyer, record.seller):
        return Authorization.deny(ErrorCode.UNAUTHORIZED, "only buyer or seller can dispute")
    if record.status not in _DISPUTABLE:
        return Authorization.deny(ErrorCode.INVALID_STATUS, "escrow cannot be disputed")
    return Authorization.allow()


def _authorize_arbitrate(signer: bytes, record: EscrowRecord) -> Authorization:
    if record.arbitrator is None:
        return Authorization.deny(ErrorCode.NO_ARBITRATOR, "escrow has no arbitrator")
    if signer != record.arbitrator:
        return Authorization.deny(ErrorCode.UNAUTHORIZED, "only the arbitrator can arbitrate")
    if record.status != EscrowStatus.DISPUTED:
        return Authorization.deny(ErrorCode.NOT_DISPUTED, "escrow is not disputed")
    return Authorization.allow()
