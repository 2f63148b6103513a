"""Wire-format encoding: the escrow record layout and the action encoding.

All integers are little-endian. The record is a fixed 195-byte buffer; an
action is a one-byte tag followed by a tag-specific payload.
"""

from __future__ import annotations

from dataclasses import dataclass

from blake3 import blake3

from .config import (
    ARBITRATE_PAYLOAD_SIZE,
    CREATE_PAYLOAD_SIZE,
    ESCROW_SIZE,
    ESCROW_TAG,
    FLAG_BUYER_ACCEPTED,
    FLAG_BUYER_DISPUTED,
    FLAG_MASK,
    FLAG_SELLER_DELIVERED,
    FLAG_SELLER_DISPUTED,
    OFF_AMOUNT,
    OFF_ARBITRATOR,
    OFF_BUMP,
    OFF_BUYER,
    OFF_CREATED_AT,
    OFF_FLAGS,
    OFF_RESERVED,
    OFF_SELLER,
    OFF_STATUS,
    OFF_TAG,
    OFF_TERMS_HASH,
    OFF_TIMEOUT,
)
from .errors import ErrorCode, EscrowError
from .types import (
    AcceptDelivery,
    Action,
    ActionTag,
    Arbitrate,
    ArbitrationDecision,
    CreateEscrow,
    Dispute,
    EscrowFlags,
    EscrowRecord,
    EscrowStatus,
    MarkDelivered,
    Refund,
    Release,
)

_ZERO_KEY = bytes(32)


@dataclass
class Writer:
    buf: bytearray

    def write_u8(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(1, "little", signed=False))

    def write_u64(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(8, "little", signed=False))

    def write_bytes(self, b: bytes) -> None:
        self.buf.extend(b)


@dataclass
class Reader:
    data: bytes
    pos: int = 0

    def _take(self, n: int) -> bytes:
        end = self.pos + n
        if end > len(self.data):
            raise EscrowError(ErrorCode.INVALID_INSTRUCTION, "payload truncated")
        chunk = self.data[self.pos:end]
        self.pos = end
        return bytes(chunk)

    def read_u8(self) -> int:
        return self._take(1)[0]

    def read_u64(self) -> int:
        return int.from_bytes(self._take(8), "little")

    def read_bytes(self, n: int) -> bytes:
        return self._take(n)


def _expect_len(name: str, value: bytes, size: int) -> None:
    if not isinstance(value, (bytes, bytearray)) or len(value) != size:
        raise EscrowError(ErrorCode.INVALID_FORMAT, f"{name} must be {size} bytes")


def _expect_u64(name: str, value: int) -> None:
    if not (0 <= int(value) < 1 << 64):
        raise EscrowError(ErrorCode.INVALID_FORMAT, f"{name} must fit u64")


def _read_u64_at(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset:offset + 8], "little")


def _key_at(data: bytes, offset: int) -> bytes:
    return bytes(data[offset:offset + 32])


def hash_terms(terms: str | bytes) -> bytes:
    """BLAKE3-256 of an off-band agreement, for use as a record's terms_hash."""
    if isinstance(terms, str):
        terms = terms.encode("utf-8")
    return blake3(terms).digest()


# --- Flags ---


def encode_flags(flags: EscrowFlags) -> int:
    bits = 0
    if flags.seller_delivered:
        bits |= FLAG_SELLER_DELIVERED
    if flags.buyer_accepted:
        bits |= FLAG_BUYER_ACCEPTED
    if flags.buyer_disputed:
        bits |= FLAG_BUYER_DISPUTED
    if flags.seller_disputed:
        bits |= FLAG_SELLER_DISPUTED
    return bits


def decode_flags(bits: int) -> EscrowFlags:
    if bits & ~FLAG_MASK:
        raise EscrowError(ErrorCode.INVALID_RECORD_DATA, f"unknown flag bits {bits:#04x}")
    return EscrowFlags(
        seller_delivered=bool(bits & FLAG_SELLER_DELIVERED),
        buyer_accepted=bool(bits & FLAG_BUYER_ACCEPTED),
        buyer_disputed=bool(bits & FLAG_BUYER_DISPUTED),
        seller_disputed=bool(bits & FLAG_SELLER_DISPUTED),
    )


# --- Record codec ---


def encode_record(record: EscrowRecord) -> bytes:
    """Serialize a record into its fixed 195-byte layout."""
    _expect_len("buyer", record.buyer, 32)
    _expect_len("seller", record.seller, 32)
    if record.arbitrator is not None:
        _expect_len("arbitrator", record.arbitrator, 32)
        if bytes(record.arbitrator) == _ZERO_KEY:
            raise EscrowError(ErrorCode.INVALID_FORMAT, "arbitrator must not be the zero key")
    _expect_len("reserved", record.reserved, 32)
    _expect_len("terms_hash", record.terms_hash, 32)
    _expect_u64("amount", record.amount)
    _expect_u64("created_at", record.created_at)
    _expect_u64("timeout_seconds", record.timeout_seconds)
    if not (0 <= record.nonce_bump <= 0xFF):
        raise EscrowError(ErrorCode.INVALID_FORMAT, "nonce_bump must fit u8")
    if not isinstance(record.status, EscrowStatus):
        raise EscrowError(ErrorCode.INVALID_FORMAT, "status invalid")

    w = Writer(bytearray())
    w.write_u64(ESCROW_TAG)
    w.write_bytes(record.buyer)
    w.write_bytes(record.seller)
    w.write_bytes(record.arbitrator if record.arbitrator is not None else _ZERO_KEY)
    w.write_bytes(record.reserved)
    w.write_u64(record.amount)
    w.write_u64(record.created_at)
    w.write_u64(record.timeout_seconds)
    w.write_bytes(record.terms_hash)
    w.write_u8(record.status)
    w.write_u8(encode_flags(record.flags))
    w.write_u8(record.nonce_bump)

    assert len(w.buf) == ESCROW_SIZE
    return bytes(w.buf)


def decode_record(data: bytes) -> EscrowRecord:
    """Parse a record buffer, rejecting anything without the escrow tag."""
    if len(data) < ESCROW_SIZE:
        raise EscrowError(ErrorCode.INVALID_RECORD_TAG, "record storage is uninitialized")
    if _read_u64_at(data, OFF_TAG) != ESCROW_TAG:
        raise EscrowError(ErrorCode.INVALID_RECORD_TAG, "record tag mismatch")

    status_byte = data[OFF_STATUS]
    try:
        status = EscrowStatus(status_byte)
    except ValueError:
        raise EscrowError(ErrorCode.INVALID_RECORD_DATA, f"unknown status {status_byte}") from None

    reserved = _key_at(data, OFF_RESERVED)
    if reserved != _ZERO_KEY:
        raise EscrowError(ErrorCode.INVALID_RECORD_DATA, "reserved area must be zero")

    arbitrator = _key_at(data, OFF_ARBITRATOR)
    return EscrowRecord(
        buyer=_key_at(data, OFF_BUYER),
        seller=_key_at(data, OFF_SELLER),
        arbitrator=None if arbitrator == _ZERO_KEY else arbitrator,
        reserved=reserved,
        amount=_read_u64_at(data, OFF_AMOUNT),
        created_at=_read_u64_at(data, OFF_CREATED_AT),
        timeout_seconds=_read_u64_at(data, OFF_TIMEOUT),
        terms_hash=_key_at(data, OFF_TERMS_HASH),
        status=status,
        flags=decode_flags(data[OFF_FLAGS]),
        nonce_bump=data[OFF_BUMP],
    )


# --- Action codec ---


def encode_action(action: Action) -> bytes:
    """Encode an action as tag byte + payload."""
    w = Writer(bytearray())
    w.write_u8(action.tag)

    if isinstance(action, CreateEscrow):
        _expect_u64("amount", action.amount)
        _expect_u64("nonce", action.nonce)
        _expect_u64("timeout_seconds", action.timeout_seconds)
        _expect_len("terms_hash", action.terms_hash, 32)
        w.write_u64(action.amount)
        w.write_u64(action.nonce)
        w.write_u64(action.timeout_seconds)
        w.write_bytes(action.terms_hash)
    elif isinstance(action, Arbitrate):
        w.write_u8(ArbitrationDecision(action.decision))

    return bytes(w.buf)


def decode_action(data: bytes) -> Action:
    """Decode tag + payload; every tag maps to a variant or INVALID_INSTRUCTION."""
    if not data:
        raise EscrowError(ErrorCode.INVALID_INSTRUCTION, "empty instruction data")

    r = Reader(bytes(data))
    raw_tag = r.read_u8()
    try:
        tag = ActionTag(raw_tag)
    except ValueError:
        raise EscrowError(ErrorCode.INVALID_INSTRUCTION, f"unknown action tag {raw_tag}") from None

    if tag == ActionTag.CREATE:
        if len(data) - 1 < CREATE_PAYLOAD_SIZE:
            raise EscrowError(ErrorCode.INVALID_INSTRUCTION, "create payload truncated")
        return CreateEscrow(
            amount=r.read_u64(),
            nonce=r.read_u64(),
            timeout_seconds=r.read_u64(),
            terms_hash=r.read_bytes(32),
        )
    if tag == ActionTag.MARK_DELIVERED:
        return MarkDelivered()
    if tag == ActionTag.ACCEPT_DELIVERY:
        return AcceptDelivery()
    if tag == ActionTag.RELEASE:
        return Release()
    if tag == ActionTag.REFUND:
        return Refund()
    if tag == ActionTag.DISPUTE:
        return Dispute()
    if tag == ActionTag.ARBITRATE:
        if len(data) - 1 < ARBITRATE_PAYLOAD_SIZE:
            raise EscrowError(ErrorCode.INVALID_INSTRUCTION, "arbitration decision missing")
        raw_decision = r.read_u8()
        try:
            decision = ArbitrationDecision(raw_decision)
        except ValueError:
            raise EscrowError(
                ErrorCode.INVALID_INSTRUCTION, f"unknown arbitration decision {raw_decision}"
            ) from None
        return Arbitrate(decision=decision)

    raise EscrowError(ErrorCode.INVALID_INSTRUCTION, f"unhandled action tag {tag}")

