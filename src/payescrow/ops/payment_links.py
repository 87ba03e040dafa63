"""Payment link operation specs.

A link settles at most once. Settlement flips the active flag rather than
deleting the link, so historical lookups and receipts remain valid.
Deactivating an already inactive link is a successful no-op.
"""

from __future__ import annotations

from ..auth import require_permitted
from ..config import MAX_METADATA_LEN
from ..errors import ErrorCode, ProtocolError
from ..fees import split_fee
from ..ids import claim_sequence, ensure_unused, payment_link_id
from ..ledger import collect, disburse, is_native
from ..types import Operation, OperationType, PaymentLink, ProtocolState
from .common import (
    emit,
    get_payment_link,
    optional_text,
    require_amount,
    require_currency,
    require_id,
    require_supported,
)

PAYMENT_LINK_TYPES = frozenset({
    OperationType.CREATE_PAYMENT_LINK,
    OperationType.PROCESS_PAYMENT,
    OperationType.DEACTIVATE_PAYMENT_LINK,
})


def verify(state: ProtocolState, op: Operation) -> None:
    p = op.payload
    ot = op.op_type
    if ot == OperationType.CREATE_PAYMENT_LINK:
        _verify_create(state, op, p)
    elif ot == OperationType.PROCESS_PAYMENT:
        _verify_process(state, op, p)
    elif ot == OperationType.DEACTIVATE_PAYMENT_LINK:
        _verify_deactivate(state, op, p)
    else:
        raise ProtocolError(ErrorCode.NOT_IMPLEMENTED, f"unsupported payment link operation: {ot}")


def apply(state: ProtocolState, op: Operation) -> ProtocolState:
    p = op.payload
    ot = op.op_type
    if ot == OperationType.CREATE_PAYMENT_LINK:
        return _apply_create(state, op, p)
    elif ot == OperationType.PROCESS_PAYMENT:
        return _apply_process(state, op, p)
    elif ot == OperationType.DEACTIVATE_PAYMENT_LINK:
        return _apply_deactivate(state, op, p)
    raise ProtocolError(ErrorCode.NOT_IMPLEMENTED, f"unsupported payment link operation: {ot}")


# --- CREATE_PAYMENT_LINK ---

def _verify_create(state: ProtocolState, op: Operation, p: dict) -> None:
    require_amount(p)
    require_supported(state, require_currency(p))
    optional_text(p, "metadata", MAX_METADATA_LEN)


def _apply_create(state: ProtocolState, op: Operation, p: dict) -> ProtocolState:
    amount = p["amount"]
    currency = p["currency"]
    metadata = optional_text(p, "metadata", MAX_METADATA_LEN)
    now = state.timestamp

    lid = payment_link_id(op.caller, amount, currency, now, metadata, claim_sequence(state))
    ensure_unused(state.payment_links, lid)

    state.payment_links[lid] = PaymentLink(
        id=lid,
        merchant=op.caller,
        amount=amount,
        currency=currency,
        metadata=metadata,
        created_at=now,
    )
    emit(state, "PaymentLinkCreated", lid, merchant=op.caller, amount=amount, currency=currency)
    return state


# --- PROCESS_PAYMENT ---

def _verify_process(state: ProtocolState, op: Operation, p: dict) -> None:
    link = get_payment_link(state, require_id(p, "link_id"))
    require_permitted(state, op.op_type, op.caller, link)
    if not link.active:
        raise ProtocolError(ErrorCode.PAYMENT_LINK_INACTIVE, "payment link is not active")

    expected_value = link.amount if is_native(link.currency) else 0
    if op.value != expected_value:
        raise ProtocolError(
            ErrorCode.INCORRECT_VALUE,
            f"attached value {op.value} does not match required {expected_value}",
        )


def _apply_process(state: ProtocolState, op: Operation, p: dict) -> ProtocolState:
    link = state.payment_links[p["link_id"]]
    split = split_fee(link.amount, state.settings.fee_rate_bps)

    collect(state, op.caller, link.currency, link.amount)
    disburse(state, link.merchant, link.currency, split.merchant_amount)
    disburse(state, state.settings.fee_collector, link.currency, split.fee)

    link.active = False
    link.payer = op.caller
    link.paid_at = state.timestamp
    emit(
        state, "PaymentProcessed", link.id,
        payer=op.caller, merchant_amount=split.merchant_amount, fee=split.fee,
    )
    return state


# --- DEACTIVATE_PAYMENT_LINK ---

def _verify_deactivate(state: ProtocolState, op: Operation, p: dict) -> None:
    link = get_payment_link(state, require_id(p, "link_id"))
    require_permitted(state, op.op_type, op.caller, link)


def _apply_deactivate(state: ProtocolState, op: Operation, p: dict) -> ProtocolState:
    link = state.payment_links[p["link_id"]]
    if not link.active:
        return state
    link.active = False
    emit(state, "PaymentLinkDeactivated", link.id)
    return state
