"""Derived record addresses.

A derived address is a SHA-256 digest of the seeds, a bump byte, the program
id and a fixed marker, accepted only when the digest does not decode as an
Ed25519 point (so no private key can ever sign for it). The search tries bump
values from 255 downwards and keeps the first acceptable one.
"""

from __future__ import annotations

import hashlib
from typing import Sequence

from .config import ESCROW_SEED, MAX_SEED_LEN, MAX_SEEDS, PDA_MARKER
from .errors import ErrorCode, EscrowError

# Curve25519 field prime and the twisted Edwards constant d = -121665/121666.
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


def is_on_curve(point: bytes) -> bool:
    """Whether 32 bytes decompress to a point on the Ed25519 curve.

    Decompression recovers x from y via x^2 = (y^2 - 1) / (d*y^2 + 1); the
    point exists iff that ratio is a square mod p. The sign bit only selects
    between the two roots, so it does not affect validity.
    """
    if len(point) != 32:
        return False
    y = int.from_bytes(point, "little") & ((1 << 255) - 1)
    y %= _P
    yy = y * y % _P
    u = (yy - 1) % _P
    v = (_D * yy + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    if x2 == 0:
        return True
    return pow(x2, (_P - 1) // 2, _P) == 1


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise EscrowError(ErrorCode.INVALID_SEEDS, f"at most {MAX_SEEDS} seeds allowed")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise EscrowError(ErrorCode.INVALID_SEEDS, f"seed longer than {MAX_SEED_LEN} bytes")


def create_program_address(seeds: Sequence[bytes], program_id: bytes) -> bytes:
    """Hash seeds (bump included) into an address; fails if it lands on the curve."""
    _check_seeds(seeds)
    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(seed)
    hasher.update(program_id)
    hasher.update(PDA_MARKER)
    address = hasher.digest()
    if is_on_curve(address):
        raise EscrowError(ErrorCode.INVALID_SEEDS, "derived address lies on the curve")
    return address


def find_program_address(seeds: Sequence[bytes], program_id: bytes) -> tuple[bytes, int]:
    """Return (address, bump) for the highest bump that yields an off-curve address."""
    # The bump travels as the last seed, so the count limit covers it too.
    _check_seeds(list(seeds) + [b""])
    for bump in range(255, -1, -1):
        try:
            return create_program_address(list(seeds) + [bytes([bump])], program_id), bump
        except EscrowError as exc:
            if exc.code != ErrorCode.INVALID_SEEDS:
                raise
    raise EscrowError(ErrorCode.INTERNAL_ERROR, "no viable bump seed found")


def escrow_seeds(buyer: bytes, seller: bytes, nonce: int) -> list[bytes]:
    return [ESCROW_SEED, bytes(buyer), bytes(seller), int(nonce).to_bytes(8, "little")]


def derive_escrow_address(
    buyer: bytes, seller: bytes, nonce: int, program_id: bytes
) -> tuple[bytes, int]:
    """Address and bump of the escrow record for (buyer, seller, nonce)."""
    if not (0 <= nonce < 1 << 64):
        raise EscrowError(ErrorCode.INVALID_FORMAT, "nonce must fit u64")
    return find_program_address(escrow_seeds(buyer, seller, nonce), program_id)
