"""Fee and dispute split arithmetic."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from payescrow.config import MAX_FEE_RATE_BPS
from payescrow.errors import ErrorCode, ProtocolError
from payescrow.fees import (
    DisputeWinner,
    compute_fee,
    split_dispute,
    split_fee,
    validate_fee_rate,
    validate_merchant_percent,
)


def test_fee_split_conserves_amount_for_every_rate() -> None:
    for amount in (1, 99, 1000, 12_345, 10**30 + 7):
        for rate in range(0, MAX_FEE_RATE_BPS + 1):
            split = split_fee(amount, rate)
            assert split.merchant_amount + split.fee == amount
            assert split.fee == amount * rate // 10_000


@pytest.mark.parametrize(
    "amount, rate, fee",
    [
        (1000, 100, 10),
        (200, 100, 2),
        (99, 100, 0),
        (1000, 0, 0),
        (1000, 500, 50),
        (10_000, 1, 1),
        (9_999, 1, 0),
    ],
)
def test_compute_fee(amount, rate, fee) -> None:
    assert compute_fee(amount, rate) == fee


@pytest.mark.parametrize("rate", [-1, 501, 10_000, True, "100", None])
def test_validate_fee_rate_rejects(rate) -> None:
    with pytest.raises(ProtocolError) as exc_info:
        validate_fee_rate(rate)
    assert exc_info.value.code == ErrorCode.INVALID_FEE_RATE


def test_compute_fee_rejects_negative_amount() -> None:
    with pytest.raises(ValueError):
        compute_fee(-1, 100)


def test_dispute_split_conserves_amount_for_every_percent() -> None:
    for amount in (1, 3, 1000, 1001, 99_999):
        for pct in range(0, 101):
            split = split_dispute(amount, pct)
            assert split.merchant_amount + split.buyer_amount == amount
            assert split.merchant_amount == amount * pct // 100


@pytest.mark.parametrize(
    "pct, winner",
    [
        (0, DisputeWinner.BUYER),
        (49, DisputeWinner.BUYER),
        (50, None),
        (51, DisputeWinner.MERCHANT),
        (100, DisputeWinner.MERCHANT),
    ],
)
def test_dispute_winner_follows_percent(pct, winner) -> None:
    assert split_dispute(1000, pct).winner == winner


def test_dispute_split_extremes() -> None:
    full = split_dispute(1000, 100)
    assert (full.merchant_amount, full.buyer_amount) == (1000, 0)
    none = split_dispute(1000, 0)
    assert (none.merchant_amount, none.buyer_amount) == (0, 1000)


@pytest.mark.parametrize(
    "amount, pct, merchant, buyer",
    [
        (1, 60, 0, 1),
        (1, 99, 0, 1),
        (3, 51, 1, 2),
    ],
)
def test_dispute_winner_ignores_floored_amounts(amount, pct, merchant, buyer) -> None:
    split = split_dispute(amount, pct)
    assert (split.merchant_amount, split.buyer_amount) == (merchant, buyer)
    assert split.winner == DisputeWinner.MERCHANT


@pytest.mark.parametrize("pct", [-1, 101, 50.0, False, None])
def test_validate_merchant_percent_rejects(pct) -> None:
    with pytest.raises(ProtocolError) as exc_info:
        validate_merchant_percent(pct)
    assert exc_info.value.code == ErrorCode.INVALID_PERCENT


def test_fee_split_vectors(
    vector_test_group: Callable[[str, dict[str, Any]], None],
) -> None:
    rel_path = "fees/split.json"

    for amount, rate in ((1000, 100), (200, 100), (99, 100), (12_345, 500), (10**24, 37)):
        split = split_fee(amount, rate)
        vector_test_group(
            rel_path,
            {
                "name": f"fee_split_{amount}_{rate}bps",
                "description": "Platform fee floored in basis points; merchant receives the remainder.",
                "input": {"kind": "fee", "op": "split_fee", "amount": str(amount), "rate_bps": rate},
                "expected": {
                    "merchant_amount": str(split.merchant_amount),
                    "fee": str(split.fee),
                },
            },
        )

    for amount, pct in ((1000, 30), (1001, 50), (999, 33), (1000, 100)):
        split = split_dispute(amount, pct)
        vector_test_group(
            rel_path,
            {
                "name": f"dispute_split_{amount}_{pct}pct",
                "description": "Merchant share floored; buyer receives the remainder. No fee.",
                "input": {"kind": "fee", "op": "split_dispute", "amount": str(amount), "merchant_percent": pct},
                "expected": {
                    "merchant_amount": str(split.merchant_amount),
                    "buyer_amount": str(split.buyer_amount),
                    "winner": split.winner.value if split.winner else None,
                },
            },
        )
