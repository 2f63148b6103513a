"""Derived escrow addresses."""

from __future__ import annotations

import hashlib

import pytest

from pact_escrow.address import (
    create_program_address,
    derive_escrow_address,
    escrow_seeds,
    find_program_address,
    is_on_curve,
)
from pact_escrow.config import DEFAULT_PROGRAM_ID, PDA_MARKER
from pact_escrow.errors import ErrorCode, EscrowError
from pact_escrow.test_accounts import ALICE, BOB, CAROL, named_key

PROGRAM = named_key("pact-escrow-program")

# Ed25519 base point, compressed.
_BASE_POINT = bytes.fromhex("5866666666666666666666666666666666666666666666666666666666666666")


def test_derivation_is_deterministic() -> None:
    assert derive_escrow_address(ALICE, BOB, 7, PROGRAM) == derive_escrow_address(
        ALICE, BOB, 7, PROGRAM
    )


def test_each_input_changes_address() -> None:
    base, _ = derive_escrow_address(ALICE, BOB, 7, PROGRAM)
    variants = {
        derive_escrow_address(CAROL, BOB, 7, PROGRAM)[0],
        derive_escrow_address(ALICE, CAROL, 7, PROGRAM)[0],
        derive_escrow_address(ALICE, BOB, 8, PROGRAM)[0],
        derive_escrow_address(BOB, ALICE, 7, PROGRAM)[0],
        derive_escrow_address(ALICE, BOB, 7, DEFAULT_PROGRAM_ID)[0],
    }
    assert base not in variants
    assert len(variants) == 5


def test_address_matches_hash_construction() -> None:
    address, bump = derive_escrow_address(ALICE, BOB, 7, PROGRAM)
    hasher = hashlib.sha256()
    for seed in escrow_seeds(ALICE, BOB, 7):
        hasher.update(seed)
    hasher.update(bytes([bump]))
    hasher.update(PROGRAM)
    hasher.update(PDA_MARKER)
    assert address == hasher.digest()
    assert not is_on_curve(address)


def test_bump_is_highest_viable() -> None:
    seeds = escrow_seeds(ALICE, BOB, 7)
    address, bump = find_program_address(seeds, PROGRAM)
    for higher in range(bump + 1, 256):
        with pytest.raises(EscrowError):
            create_program_address(seeds + [bytes([higher])], PROGRAM)
    assert create_program_address(seeds + [bytes([bump])], PROGRAM) == address


def test_nonce_encoding() -> None:
    seeds = escrow_seeds(ALICE, BOB, 0x0102)
    assert seeds[0] == b"escrow"
    assert seeds[3] == b"\x02\x01\x00\x00\x00\x00\x00\x00"


def test_nonce_must_fit_u64() -> None:
    with pytest.raises(EscrowError) as exc:
        derive_escrow_address(ALICE, BOB, 1 << 64, PROGRAM)
    assert exc.value.code == ErrorCode.INVALID_FORMAT


def test_seed_limits() -> None:
    with pytest.raises(EscrowError) as exc:
        create_program_address([b"x" * 33], PROGRAM)
    assert exc.value.code == ErrorCode.INVALID_SEEDS
    with pytest.raises(EscrowError) as exc:
        find_program_address([b"x"] * 16, PROGRAM)
    assert exc.value.code == ErrorCode.INVALID_SEEDS


def test_curve_check() -> None:
    assert is_on_curve(_BASE_POINT)
    assert is_on_curve(bytes([1]) + bytes(31))  # identity point
    assert not is_on_curve(b"\x00" * 31)
