"""Payload validation and lookup helpers shared by the operation specs."""

from __future__ import annotations

from typing import Any

from ..config import IDENTITY_LEN, U256_MAX, ZERO_IDENTITY
from ..errors import ErrorCode, ProtocolError
from ..types import Escrow, Event, PaymentLink, ProtocolState


def require_identity(p: dict, key: str) -> bytes:
    v = p.get(key)
    if not isinstance(v, bytes) or len(v) != IDENTITY_LEN:
        raise ProtocolError(ErrorCode.INVALID_ADDRESS, f"{key} must be a {IDENTITY_LEN}-byte identity")
    if v == ZERO_IDENTITY:
        raise ProtocolError(ErrorCode.INVALID_ADDRESS, f"{key} must not be the zero identity")
    return v


def require_id(p: dict, key: str) -> bytes:
    v = p.get(key)
    if not isinstance(v, bytes) or len(v) != IDENTITY_LEN:
        raise ProtocolError(ErrorCode.INVALID_PAYLOAD, f"{key} must be a {IDENTITY_LEN}-byte id")
    return v


def require_currency(p: dict, key: str = "currency") -> bytes:
    v = p.get(key)
    if not isinstance(v, bytes) or len(v) != IDENTITY_LEN:
        raise ProtocolError(ErrorCode.UNSUPPORTED_CURRENCY, "currency must be a 32-byte id")
    return v


def require_supported(state: ProtocolState, currency: bytes) -> None:
    if not state.supported_currencies.get(currency, False):
        raise ProtocolError(ErrorCode.UNSUPPORTED_CURRENCY, f"currency {currency.hex()} not supported")


def require_amount(p: dict, key: str = "amount") -> int:
    v = p.get(key, 0)
    if isinstance(v, bool) or not isinstance(v, int):
        raise ProtocolError(ErrorCode.INVALID_AMOUNT, f"{key} must be an integer")
    if v <= 0:
        raise ProtocolError(ErrorCode.INVALID_AMOUNT, f"{key} must be > 0")
    if v > U256_MAX:
        raise ProtocolError(ErrorCode.INVALID_AMOUNT, f"{key} exceeds u256 max")
    return v


def require_int(p: dict, key: str, code: ErrorCode) -> int:
    v = p.get(key, 0)
    if isinstance(v, bool) or not isinstance(v, int):
        raise ProtocolError(code, f"{key} must be an integer")
    return v


def optional_text(p: dict, key: str, max_len: int) -> str:
    v = p.get(key, "")
    if v is None:
        return ""
    if not isinstance(v, str):
        raise ProtocolError(ErrorCode.INVALID_TEXT, f"{key} must be a string")
    if len(v) > max_len:
        raise ProtocolError(ErrorCode.INVALID_TEXT, f"{key} too long")
    return v


def required_text(p: dict, key: str, max_len: int) -> str:
    v = optional_text(p, key, max_len)
    if not v.strip():
        raise ProtocolError(ErrorCode.INVALID_TEXT, f"{key} required")
    return v


def get_escrow(state: ProtocolState, escrow_id: bytes) -> Escrow:
    escrow = state.escrows.get(escrow_id)
    if escrow is None:
        raise ProtocolError(ErrorCode.ESCROW_NOT_FOUND, f"escrow {escrow_id.hex()} not found")
    return escrow


def get_payment_link(state: ProtocolState, link_id: bytes) -> PaymentLink:
    link = state.payment_links.get(link_id)
    if link is None:
        raise ProtocolError(ErrorCode.PAYMENT_LINK_NOT_FOUND, f"payment link {link_id.hex()} not found")
    return link


def emit(state: ProtocolState, name: str, entity_id: bytes, **data: Any) -> None:
    state.event_log.append(Event(name=name, entity_id=entity_id, data=data))
