"""Deterministic named identities for tests and fixtures.

Keys are BLAKE3 digests of a fixed label, so every run (and every other
implementation replaying the fixtures) sees the same 32-byte identities.
"""

from __future__ import annotations

from blake3 import blake3

from .config import LAMPORTS_PER_SOL


def named_key(name: str) -> bytes:
    return blake3(f"pact-escrow/test-account/{name.lower()}".encode()).digest()


ALICE = named_key("Alice")
BOB = named_key("Bob")
CAROL = named_key("Carol")
DAVE = named_key("Dave")

# Starting balance handed to each test identity.
DEFAULT_BALANCE = 10 * LAMPORTS_PER_SOL
