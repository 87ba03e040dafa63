"""Side-effect-free read operations over a protocol state."""

from __future__ import annotations

from dataclasses import dataclass

from .fees import FeeSplit, split_fee
from .ops.common import get_escrow, get_payment_link  # noqa: F401
from .types import Escrow, EscrowState, PaymentLink, ProtocolState


@dataclass(frozen=True)
class EscrowStatusView:
    state: EscrowState
    deadline: int
    expired: bool
    claimable: bool


def check_escrow_status(state: ProtocolState, escrow_id: bytes, now: int) -> EscrowStatusView:
    """Report the escrow's state and whether the buyer may reclaim it at ``now``."""
    escrow = get_escrow(state, escrow_id)
    expired = now > escrow.deadline
    return EscrowStatusView(
        state=escrow.state,
        deadline=escrow.deadline,
        expired=expired,
        claimable=expired and escrow.state == EscrowState.FUNDED,
    )


def verify_receipt(state: ProtocolState, receipt_id: bytes) -> bool:
    return receipt_id in state.receipts


def escrows_by_buyer(state: ProtocolState, buyer: bytes) -> list[Escrow]:
    return [e for e in state.escrows.values() if e.buyer == buyer]


def escrows_by_merchant(state: ProtocolState, merchant: bytes) -> list[Escrow]:
    return [e for e in state.escrows.values() if e.merchant == merchant]


def payment_links_by_merchant(state: ProtocolState, merchant: bytes) -> list[PaymentLink]:
    return [link for link in state.payment_links.values() if link.merchant == merchant]


def is_currency_supported(state: ProtocolState, currency: bytes) -> bool:
    return state.supported_currencies.get(currency, False)


def quote_fee(state: ProtocolState, amount: int) -> FeeSplit:
    """Fee the current rate would charge on ``amount``."""
    return split_fee(amount, state.settings.fee_rate_bps)
