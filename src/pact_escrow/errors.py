"""Pact escrow error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    SUCCESS = 0x00
    REQUEST = 0x01
    RECORD = 0x02
    AUTHORIZATION = 0x03
    STATE = 0x04
    RESOURCE = 0x05
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Request shape
    INVALID_INSTRUCTION = 0x0100
    NOT_ENOUGH_ACCOUNTS = 0x0101
    INVALID_FORMAT = 0x0102
    INVALID_PROGRAM_ID = 0x0103

    # Record storage
    INVALID_RECORD_ADDRESS = 0x0200
    INVALID_RECORD_TAG = 0x0201
    INVALID_RECORD_DATA = 0x0202
    INVALID_SEEDS = 0x0203
    INVALID_ACCOUNT_OWNER = 0x0204
    RECORD_EXISTS = 0x0205

    # Authorization
    UNAUTHORIZED = 0x0300
    ACCOUNT_MISMATCH = 0x0301
    NO_ARBITRATOR = 0x0302

    # State
    INVALID_STATUS = 0x0400
    NOT_DISPUTED = 0x0401
    TIMEOUT_NOT_REACHED = 0x0402
    AMOUNT_ZERO = 0x0403

    # Resource
    ARITHMETIC_OVERFLOW = 0x0500
    INSUFFICIENT_FUNDS = 0x0501

    # Internal
    INTERNAL_ERROR = 0xFF00

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


@dataclass(frozen=True)
class EscrowError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__"))
_frozen_setattr = EscrowError.__setattr__


def _escrow_error_setattr(self: EscrowError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


EscrowError.__setattr__ = _escrow_error_setattr  # type: ignore[method-assign]
