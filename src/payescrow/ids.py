"""Deterministic identifier derivation (BLAKE3-256).

Every id mixes in the state's monotonic sequence so two creations in the
same second with identical inputs still receive distinct ids.
"""

from __future__ import annotations

from blake3 import blake3

from .config import ESCROW_DOMAIN, PAYMENT_LINK_DOMAIN, RECEIPT_DOMAIN
from .errors import ErrorCode, ProtocolError
from .types import ProtocolState


def _u64_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u64 must be non-negative")
    return int(value).to_bytes(8, "big", signed=False)


def _u256_be(value: int) -> bytes:
    return int(value).to_bytes(32, "big", signed=False)


def _text(value: str) -> bytes:
    raw = value.encode("utf-8")
    return _u64_be(len(raw)) + raw


def payment_link_id(
    merchant: bytes, amount: int, currency: bytes, timestamp: int, metadata: str, sequence: int
) -> bytes:
    buf = bytearray(PAYMENT_LINK_DOMAIN)
    buf += merchant
    buf += _u256_be(amount)
    buf += currency
    buf += _u64_be(timestamp)
    buf += _text(metadata)
    buf += _u64_be(sequence)
    return blake3(buf).digest()


def escrow_id(
    buyer: bytes,
    merchant: bytes,
    amount: int,
    currency: bytes,
    timestamp: int,
    description: str,
    sequence: int,
) -> bytes:
    buf = bytearray(ESCROW_DOMAIN)
    buf += buyer
    buf += merchant
    buf += _u256_be(amount)
    buf += currency
    buf += _u64_be(timestamp)
    buf += _text(description)
    buf += _u64_be(sequence)
    return blake3(buf).digest()


def receipt_id(subject_id: bytes, timestamp: int, requester: bytes, sequence: int) -> bytes:
    buf = bytearray(RECEIPT_DOMAIN)
    buf += subject_id
    buf += _u64_be(timestamp)
    buf += requester
    buf += _u64_be(sequence)
    return blake3(buf).digest()


def claim_sequence(state: ProtocolState) -> int:
    """Return the next sequence number and advance the counter."""
    seq = state.sequence
    state.sequence += 1
    return seq


def ensure_unused(registry: dict, new_id: bytes) -> None:
    if new_id in registry:
        raise ProtocolError(ErrorCode.DUPLICATE_ID, f"id {new_id.hex()} already exists")
