"""Platform fee and dispute split arithmetic."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import BPS_DENOMINATOR, MAX_FEE_RATE_BPS, MAX_MERCHANT_PERCENT, MIN_MERCHANT_PERCENT
from .errors import ErrorCode, ProtocolError


class DisputeWinner(Enum):
    MERCHANT = "merchant"
    BUYER = "buyer"


@dataclass(frozen=True)
class FeeSplit:
    merchant_amount: int
    fee: int


@dataclass(frozen=True)
class DisputeSplit:
    merchant_amount: int
    buyer_amount: int
    winner: Optional[DisputeWinner]


def validate_fee_rate(rate_bps: int) -> None:
    if isinstance(rate_bps, bool) or not isinstance(rate_bps, int):
        raise ProtocolError(ErrorCode.INVALID_FEE_RATE, "fee rate must be an integer")
    if rate_bps < 0 or rate_bps > MAX_FEE_RATE_BPS:
        raise ProtocolError(ErrorCode.INVALID_FEE_RATE, f"fee rate must be within 0..{MAX_FEE_RATE_BPS} bps")


def compute_fee(amount: int, rate_bps: int) -> int:
    """fee = floor(amount * rate_bps / 10000)."""
    if amount < 0:
        raise ValueError("amount must be non-negative")
    validate_fee_rate(rate_bps)
    return amount * rate_bps // BPS_DENOMINATOR


def split_fee(amount: int, rate_bps: int) -> FeeSplit:
    fee = compute_fee(amount, rate_bps)
    return FeeSplit(merchant_amount=amount - fee, fee=fee)


def validate_merchant_percent(percent: int) -> None:
    if isinstance(percent, bool) or not isinstance(percent, int):
        raise ProtocolError(ErrorCode.INVALID_PERCENT, "merchant percent must be an integer")
    if percent < MIN_MERCHANT_PERCENT or percent > MAX_MERCHANT_PERCENT:
        raise ProtocolError(
            ErrorCode.INVALID_PERCENT,
            f"merchant percent must be within {MIN_MERCHANT_PERCENT}..{MAX_MERCHANT_PERCENT}",
        )


def split_dispute(amount: int, merchant_percent: int) -> DisputeSplit:
    """Split the full escrowed amount; no platform fee applies.

    The buyer receives the remainder after the floored merchant share, so the
    two shares always sum to ``amount``. The winner follows the awarded
    percentage: above 50 the merchant, below 50 the buyer, exactly 50 none.

    The winner is not derived from the paid amounts. On tiny escrows flooring
    can leave the recorded winner with less than the other party, e.g.
    ``split_dispute(1, 60)`` pays the merchant 0 and the buyer 1 while still
    recording the merchant as winner.
    """
    validate_merchant_percent(merchant_percent)
    merchant_amount = amount * merchant_percent // MAX_MERCHANT_PERCENT
    buyer_amount = amount - merchant_amount

    half = MAX_MERCHANT_PERCENT // 2
    winner: Optional[DisputeWinner] = None
    if merchant_percent > half:
        winner = DisputeWinner.MERCHANT
    elif merchant_percent < half:
        winner = DisputeWinner.BUYER
    return DisputeSplit(merchant_amount=merchant_amount, buyer_amount=buyer_amount, winner=winner)
