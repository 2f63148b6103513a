"""Host configuration."""

from __future__ import annotations

import pytest

from pact_escrow.config import (
    DEFAULT_LAMPORTS_PER_BYTE_YEAR,
    DEFAULT_PROGRAM_ID,
    ESCROW_SIZE,
    HostConfig,
)
from pact_escrow.errors import ErrorCategory, ErrorCode, EscrowError


def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("PACT_PROGRAM_ID", raising=False)
    monkeypatch.delenv("PACT_RENT_LAMPORTS_PER_BYTE_YEAR", raising=False)
    config = HostConfig.from_env()
    assert config.program_id == DEFAULT_PROGRAM_ID
    assert config.lamports_per_byte_year == DEFAULT_LAMPORTS_PER_BYTE_YEAR


def test_from_env(monkeypatch) -> None:
    monkeypatch.setenv("PACT_PROGRAM_ID", "ab" * 32)
    monkeypatch.setenv("PACT_RENT_LAMPORTS_PER_BYTE_YEAR", "10")
    config = HostConfig.from_env()
    assert config.program_id == b"\xab" * 32
    assert config.minimum_balance(ESCROW_SIZE) == (128 + 195) * 10 * 2


def test_program_id_length(monkeypatch) -> None:
    monkeypatch.setenv("PACT_PROGRAM_ID", "ab" * 31)
    with pytest.raises(ValueError):
        HostConfig.from_env()


def test_record_deposit() -> None:
    assert HostConfig().minimum_balance(ESCROW_SIZE) == 2_248_080


def test_error_codes_grouped_by_category() -> None:
    assert ErrorCode.INVALID_INSTRUCTION.category == ErrorCategory.REQUEST
    assert ErrorCode.INVALID_RECORD_TAG.category == ErrorCategory.RECORD
    assert ErrorCode.NO_ARBITRATOR.category == ErrorCategory.AUTHORIZATION
    assert ErrorCode.TIMEOUT_NOT_REACHED.category == ErrorCategory.STATE
    assert ErrorCode.ARITHMETIC_OVERFLOW.category == ErrorCategory.RESOURCE
    assert ErrorCode.INTERNAL_ERROR.category == ErrorCategory.INTERNAL


def test_error_message_format() -> None:
    exc = EscrowError(ErrorCode.UNAUTHORIZED, "seller must sign")
    assert str(exc) == "UNAUTHORIZED(0x0300): seller must sign"
