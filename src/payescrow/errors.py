"""Payescrow error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorKind(IntEnum):
    SUCCESS = 0x00
    INVALID_INPUT = 0x01
    NOT_FOUND = 0x02
    UNAUTHORIZED = 0x03
    INVALID_STATE = 0x04
    DEADLINE_VIOLATION = 0x05
    TRANSFER_FAILURE = 0x06
    DUPLICATE_ID = 0x07
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Invalid input
    INVALID_PAYLOAD = 0x0100
    INVALID_AMOUNT = 0x0101
    UNSUPPORTED_CURRENCY = 0x0102
    INVALID_TEXT = 0x0103
    INVALID_PERCENT = 0x0104
    INVALID_FEE_RATE = 0x0105
    INVALID_DURATION = 0x0106
    INVALID_ADDRESS = 0x0107
    SELF_OPERATION = 0x0108
    INCORRECT_VALUE = 0x0109

    # Not found
    ESCROW_NOT_FOUND = 0x0200
    PAYMENT_LINK_NOT_FOUND = 0x0201

    # Unauthorized
    UNAUTHORIZED = 0x0300
    NOT_OWNER = 0x0301
    NOT_ARBITRATOR = 0x0302
    NOT_BUYER = 0x0303
    NOT_MERCHANT = 0x0304
    NOT_PARTY = 0x0305

    # Invalid state
    ESCROW_WRONG_STATE = 0x0400
    PAYMENT_LINK_INACTIVE = 0x0401
    REENTRANT_CALL = 0x0402

    # Deadline
    DEADLINE_PASSED = 0x0500
    DEADLINE_NOT_REACHED = 0x0501

    # Transfer
    TRANSFER_FAILED = 0x0600
    INSUFFICIENT_BALANCE = 0x0601
    INSUFFICIENT_ALLOWANCE = 0x0602
    TRANSFER_REJECTED = 0x0603

    # Duplicate id
    DUPLICATE_ID = 0x0700

    # Internal
    INTERNAL_ERROR = 0xFF00
    NOT_IMPLEMENTED = 0xFF01

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind(self >> 8)


@dataclass(frozen=True)
class ProtocolError(Exception):
    code: ErrorCode
    message: str

    @property
    def kind(self) -> ErrorKind:
        return self.code.kind

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__"))
_frozen_setattr = ProtocolError.__setattr__


def _protocol_error_setattr(self: ProtocolError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


ProtocolError.__setattr__ = _protocol_error_setattr  # type: ignore[method-assign]


class TransferRejected(Exception):
    """Raised by a recipient hook to refuse an incoming native transfer."""
