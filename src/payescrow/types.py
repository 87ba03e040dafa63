"""Core types for the payescrow protocol.

The state tracks the payment-link registry, the escrow ledger, the receipt
store and the currency ledger of a single protocol instance:
payment links, escrows, receipts, per-account balances and allowances, and
the value held in protocol custody.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Optional

from .config import DEFAULT_ESCROW_DURATION_DAYS, NATIVE_CURRENCY


class OperationType(Enum):
    # Payment links
    CREATE_PAYMENT_LINK = "create_payment_link"
    PROCESS_PAYMENT = "process_payment"
    DEACTIVATE_PAYMENT_LINK = "deactivate_payment_link"
    GENERATE_LINK_RECEIPT = "generate_link_receipt"
    # Escrow
    CREATE_ESCROW = "create_escrow"
    FUND_ESCROW = "fund_escrow"
    COMPLETE_ESCROW = "complete_escrow"
    REFUND_ESCROW = "refund_escrow"
    RAISE_DISPUTE = "raise_dispute"
    RESOLVE_DISPUTE = "resolve_dispute"
    CLAIM_EXPIRED_ESCROW = "claim_expired_escrow"
    GENERATE_RECEIPT = "generate_receipt"
    # Administration
    SET_CURRENCY_SUPPORT = "set_currency_support"
    SET_FEE_RATE = "set_fee_rate"
    SET_FEE_COLLECTOR = "set_fee_collector"
    SET_ARBITRATOR = "set_arbitrator"
    SET_DEFAULT_DURATION = "set_default_duration"
    TRANSFER_OWNERSHIP = "transfer_ownership"


class EscrowState(IntEnum):
    CREATED = 0
    FUNDED = 1
    COMPLETED = 2
    REFUNDED = 3
    DISPUTED = 4
    RESOLVED = 5


TERMINAL_ESCROW_STATES = frozenset({
    EscrowState.COMPLETED,
    EscrowState.REFUNDED,
    EscrowState.RESOLVED,
})


class ReceiptSubject(Enum):
    ESCROW = "escrow"
    PAYMENT_LINK = "payment_link"


@dataclass
class Operation:
    op_type: OperationType
    caller: bytes
    payload: dict[str, Any] = field(default_factory=dict)
    # Native value attached to the call.
    value: int = 0
    timestamp: int = 0


@dataclass
class PaymentLink:
    id: bytes
    merchant: bytes
    amount: int
    currency: bytes
    active: bool = True
    metadata: str = ""
    created_at: int = 0
    payer: Optional[bytes] = None
    paid_at: Optional[int] = None


@dataclass
class Escrow:
    id: bytes
    merchant: bytes
    buyer: bytes
    amount: int
    currency: bytes
    deadline: int
    state: EscrowState = EscrowState.CREATED
    description: str = ""
    dispute_reason: str = ""
    created_at: int = 0
    funded_at: Optional[int] = None
    settled_at: Optional[int] = None
    merchant_payout: int = 0
    buyer_payout: int = 0
    fee_paid: int = 0
    winner: Optional[bytes] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_ESCROW_STATES


@dataclass
class Receipt:
    id: bytes
    subject_id: bytes
    subject: ReceiptSubject
    requester: bytes
    issued_at: int = 0


@dataclass
class AccountState:
    address: bytes
    balances: dict[bytes, int] = field(default_factory=dict)
    # Amount per currency the account has authorized the protocol to pull.
    allowances: dict[bytes, int] = field(default_factory=dict)
    accepts_native: bool = True

    def balance_of(self, currency: bytes) -> int:
        return self.balances.get(currency, 0)


@dataclass
class ProtocolSettings:
    owner: bytes
    fee_collector: bytes
    arbitrator: bytes
    fee_rate_bps: int = 0
    default_duration_days: int = DEFAULT_ESCROW_DURATION_DAYS


@dataclass
class Event:
    name: str
    entity_id: bytes
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class Transfer:
    currency: bytes
    source: Optional[bytes]  # None = protocol custody
    destination: Optional[bytes]  # None = protocol custody
    amount: int


@dataclass
class ProtocolState:
    settings: ProtocolSettings
    accounts: dict[bytes, AccountState] = field(default_factory=dict)
    custody: dict[bytes, int] = field(default_factory=dict)
    supported_currencies: dict[bytes, bool] = field(
        default_factory=lambda: {NATIVE_CURRENCY: True}
    )
    payment_links: dict[bytes, PaymentLink] = field(default_factory=dict)
    escrows: dict[bytes, Escrow] = field(default_factory=dict)
    receipts: dict[bytes, Receipt] = field(default_factory=dict)
    # Monotonic counter mixed into every derived id.
    sequence: int = 0
    timestamp: int = 0
    # Events and transfers of the last applied operation only.
    event_log: list[Event] = field(default_factory=list)
    transfer_log: list[Transfer] = field(default_factory=list)

    def account(self, address: bytes) -> AccountState:
        acct = self.accounts.get(address)
        if acct is None:
            acct = AccountState(address=address)
            self.accounts[address] = acct
        return acct
