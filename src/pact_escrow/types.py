"""Core types for the Pact escrow program.

Two groups live here: the escrow domain (record, status, flags, the seven
action variants, settlements) and the minimal ledger model the program runs
against (accounts, account references, clock, instructions).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar, Optional, Union

from .config import DEFAULT_PROGRAM_ID, SYSTEM_PROGRAM_ID, HostConfig


class EscrowStatus(IntEnum):
    ACTIVE = 0
    DELIVERED = 1
    ACCEPTED = 2
    DISPUTED = 3
    RELEASED = 4
    REFUNDED = 5

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def label(self) -> str:
        return self.name.capitalize()


TERMINAL_STATUSES = frozenset({EscrowStatus.RELEASED, EscrowStatus.REFUNDED})


class ActionTag(IntEnum):
    CREATE = 0
    MARK_DELIVERED = 1
    ACCEPT_DELIVERY = 2
    RELEASE = 3
    REFUND = 4
    DISPUTE = 5
    ARBITRATE = 6


class ArbitrationDecision(IntEnum):
    REFUND = 0
    RELEASE = 1


class RefundBranch(IntEnum):
    SELLER = 0
    BUYER_NO_DELIVERY = 1
    BUYER_TIMEOUT = 2
    ARBITRATOR = 3


@dataclass
class EscrowFlags:
    seller_delivered: bool = False
    buyer_accepted: bool = False
    buyer_disputed: bool = False
    seller_disputed: bool = False


@dataclass
class EscrowRecord:
    buyer: bytes
    seller: bytes
    amount: int
    created_at: int
    arbitrator: Optional[bytes] = None
    timeout_seconds: int = 0
    terms_hash: bytes = bytes(32)
    status: EscrowStatus = EscrowStatus.ACTIVE
    flags: EscrowFlags = field(default_factory=EscrowFlags)
    nonce_bump: int = 0
    # Reserved for an asset-type discriminator; always zero in this version.
    reserved: bytes = bytes(32)

    @property
    def has_arbitrator(self) -> bool:
        return self.arbitrator is not None


# --- Actions ---


@dataclass(frozen=True)
class CreateEscrow:
    tag: ClassVar[ActionTag] = ActionTag.CREATE
    amount: int
    nonce: int
    timeout_seconds: int = 0
    terms_hash: bytes = bytes(32)


@dataclass(frozen=True)
class MarkDelivered:
    tag: ClassVar[ActionTag] = ActionTag.MARK_DELIVERED


@dataclass(frozen=True)
class AcceptDelivery:
    tag: ClassVar[ActionTag] = ActionTag.ACCEPT_DELIVERY


@dataclass(frozen=True)
class Release:
    tag: ClassVar[ActionTag] = ActionTag.RELEASE


@dataclass(frozen=True)
class Refund:
    tag: ClassVar[ActionTag] = ActionTag.REFUND


@dataclass(frozen=True)
class Dispute:
    tag: ClassVar[ActionTag] = ActionTag.DISPUTE


@dataclass(frozen=True)
class Arbitrate:
    tag: ClassVar[ActionTag] = ActionTag.ARBITRATE
    decision: ArbitrationDecision


Action = Union[
    CreateEscrow, MarkDelivered, AcceptDelivery, Release, Refund, Dispute, Arbitrate
]


@dataclass(frozen=True)
class Settlement:
    """Value movement requested by a terminal transition.

    `amount` moves from the record to `recipient`; the record is then closed
    and whatever it still holds (the storage deposit) goes to `close_to`.
    """

    recipient: bytes
    amount: int
    close_to: bytes


@dataclass
class Transition:
    record: EscrowRecord
    settlement: Optional[Settlement] = None


# --- Ledger model ---


@dataclass
class Account:
    key: bytes
    lamports: int = 0
    owner: bytes = SYSTEM_PROGRAM_ID
    data: bytes = b""


@dataclass
class AccountRef:
    key: bytes
    is_signer: bool = False
    is_writable: bool = False


@dataclass
class Clock:
    unix_timestamp: int = 0


@dataclass
class Instruction:
    accounts: list[AccountRef]
    data: bytes
    program_id: bytes = DEFAULT_PROGRAM_ID


@dataclass
class LedgerState:
    accounts: dict[bytes, Account] = field(default_factory=dict)
    clock: Clock = field(default_factory=Clock)
    host: HostConfig = field(default_factory=HostConfig)
