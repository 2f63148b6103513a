"""Pact escrow protocol constants.

Keep the layout constants aligned with the deployed program: the record is a
fixed 195-byte buffer and every offset below is part of the on-ledger format.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

# Units
LAMPORTS_PER_SOL = 1_000_000_000
U64_MAX = (1 << 64) - 1

# Program identities
SYSTEM_PROGRAM_ID = bytes(32)
DEFAULT_PROGRAM_ID = bytes(32)  # placeholder until deployment

# Derived address search
ESCROW_SEED = b"escrow"
PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEEDS = 16
MAX_SEED_LEN = 32

# Record layout
ESCROW_TAG = 0x5041435445534352  # "PACTESCR" read as u64 LE
ESCROW_SIZE = 195

OFF_TAG = 0
OFF_BUYER = 8
OFF_SELLER = 40
OFF_ARBITRATOR = 72
OFF_RESERVED = 104
OFF_AMOUNT = 136
OFF_CREATED_AT = 144
OFF_TIMEOUT = 152
OFF_TERMS_HASH = 160
OFF_STATUS = 192
OFF_FLAGS = 193
OFF_BUMP = 194

# Flag bits
FLAG_SELLER_DELIVERED = 1 << 0
FLAG_BUYER_ACCEPTED = 1 << 1
FLAG_BUYER_DISPUTED = 1 << 2
FLAG_SELLER_DISPUTED = 1 << 3
FLAG_MASK = (
    FLAG_SELLER_DELIVERED | FLAG_BUYER_ACCEPTED | FLAG_BUYER_DISPUTED | FLAG_SELLER_DISPUTED
)

# Action payload sizes (excluding the tag byte)
CREATE_PAYLOAD_SIZE = 8 + 8 + 8 + 32
ARBITRATE_PAYLOAD_SIZE = 1

# Timeouts
DEFAULT_TIMEOUT_SECONDS = 3 * 24 * 3600

# Rent (storage deposit held by the record, returned to the buyer on close)
ACCOUNT_STORAGE_OVERHEAD = 128
DEFAULT_LAMPORTS_PER_BYTE_YEAR = 3480
EXEMPTION_THRESHOLD_YEARS = 2


@dataclass
class HostConfig:
    """Parameters of the ledger hosting the program."""
    program_id: bytes = DEFAULT_PROGRAM_ID
    lamports_per_byte_year: int = DEFAULT_LAMPORTS_PER_BYTE_YEAR

    @classmethod
    def from_env(cls) -> "HostConfig":
        """Load configuration from environment variables."""
        config = cls()

        program_hex = os.environ.get("PACT_PROGRAM_ID", "")
        if program_hex:
            program_id = bytes.fromhex(program_hex)
            if len(program_id) != 32:
                raise ValueError("PACT_PROGRAM_ID must be 32 bytes of hex")
            config.program_id = program_id

        rate = os.environ.get("PACT_RENT_LAMPORTS_PER_BYTE_YEAR", "")
        if rate:
            config.lamports_per_byte_year = int(rate)

        return config

    def minimum_balance(self, data_len: int) -> int:
        """Lamports a record of `data_len` bytes must hold to stay rent exempt."""
        return (
            (ACCOUNT_STORAGE_OVERHEAD + data_len)
            * self.lamports_per_byte_year
            * EXEMPTION_THRESHOLD_YEARS
        )
