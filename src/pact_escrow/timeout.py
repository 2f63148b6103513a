"""Self-refund eligibility window."""

from __future__ import annotations

from typing import Optional

from .config import U64_MAX
from .types import EscrowRecord


def timeout_deadline(record: EscrowRecord) -> Optional[int]:
    """Timestamp at which the buyer may self-refund, or None if never.

    A deadline past u64 cannot be represented on the ledger clock, so it is
    treated the same as a disabled window.
    """
    if record.timeout_seconds == 0:
        return None
    deadline = record.created_at + record.timeout_seconds
    if deadline > U64_MAX:
        return None
    return deadline


def is_timed_out(record: EscrowRecord, now: int) -> bool:
    deadline = timeout_deadline(record)
    if deadline is None:
        return False
    return now >= deadline


def seconds_until_timeout(record: EscrowRecord, now: int) -> Optional[int]:
    deadline = timeout_deadline(record)
    if deadline is None:
        return None
    return max(0, deadline - now)
