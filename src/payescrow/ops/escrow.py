"""Escrow operation specs.

State machine::

    CREATED --fund--> FUNDED --complete--> COMPLETED
                        |----refund------> REFUNDED
                        |----claim_expired> REFUNDED   (after deadline)
                        `----dispute-----> DISPUTED --resolve--> RESOLVED

COMPLETED, REFUNDED and RESOLVED are terminal. Funding requires
``now < deadline``; an expiry claim requires ``now > deadline``. At exactly
the deadline neither is allowed.
"""

from __future__ import annotations

from ..auth import require_permitted
from ..config import (
    MAX_DESCRIPTION_LEN,
    MAX_ESCROW_DURATION_DAYS,
    MAX_REASON_LEN,
    MIN_ESCROW_DURATION_DAYS,
    SECONDS_PER_DAY,
)
from ..errors import ErrorCode, ProtocolError
from ..fees import DisputeWinner, split_dispute, split_fee, validate_merchant_percent
from ..ids import claim_sequence, ensure_unused, escrow_id
from ..ledger import collect, disburse, is_native
from ..types import Escrow, EscrowState, Operation, OperationType, ProtocolState
from .common import (
    emit,
    get_escrow,
    optional_text,
    require_amount,
    require_currency,
    require_id,
    require_identity,
    require_int,
    require_supported,
    required_text,
)

ESCROW_TYPES = frozenset({
    OperationType.CREATE_ESCROW,
    OperationType.FUND_ESCROW,
    OperationType.COMPLETE_ESCROW,
    OperationType.REFUND_ESCROW,
    OperationType.RAISE_DISPUTE,
    OperationType.RESOLVE_DISPUTE,
    OperationType.CLAIM_EXPIRED_ESCROW,
})


def verify(state: ProtocolState, op: Operation) -> None:
    p = op.payload
    ot = op.op_type
    if ot == OperationType.CREATE_ESCROW:
        _verify_create(state, op, p)
    elif ot == OperationType.FUND_ESCROW:
        _verify_fund(state, op, p)
    elif ot == OperationType.COMPLETE_ESCROW:
        _verify_settle(state, op, p)
    elif ot == OperationType.REFUND_ESCROW:
        _verify_settle(state, op, p)
    elif ot == OperationType.RAISE_DISPUTE:
        _verify_raise_dispute(state, op, p)
    elif ot == OperationType.RESOLVE_DISPUTE:
        _verify_resolve_dispute(state, op, p)
    elif ot == OperationType.CLAIM_EXPIRED_ESCROW:
        _verify_claim_expired(state, op, p)
    else:
        raise ProtocolError(ErrorCode.NOT_IMPLEMENTED, f"unsupported escrow operation: {ot}")


def apply(state: ProtocolState, op: Operation) -> ProtocolState:
    p = op.payload
    ot = op.op_type
    if ot == OperationType.CREATE_ESCROW:
        return _apply_create(state, op, p)
    elif ot == OperationType.FUND_ESCROW:
        return _apply_fund(state, op, p)
    elif ot == OperationType.COMPLETE_ESCROW:
        return _apply_complete(state, op, p)
    elif ot == OperationType.REFUND_ESCROW:
        return _apply_refund(state, op, p)
    elif ot == OperationType.RAISE_DISPUTE:
        return _apply_raise_dispute(state, op, p)
    elif ot == OperationType.RESOLVE_DISPUTE:
        return _apply_resolve_dispute(state, op, p)
    elif ot == OperationType.CLAIM_EXPIRED_ESCROW:
        return _apply_claim_expired(state, op, p)
    raise ProtocolError(ErrorCode.NOT_IMPLEMENTED, f"unsupported escrow operation: {ot}")


def _require_state(escrow: Escrow, expected: EscrowState) -> None:
    if escrow.state != expected:
        raise ProtocolError(
            ErrorCode.ESCROW_WRONG_STATE,
            f"escrow is {escrow.state.name}, expected {expected.name}",
        )


def _duration_days(state: ProtocolState, p: dict) -> int:
    days = require_int(p, "deadline_days", ErrorCode.INVALID_DURATION)
    if days == 0:
        return state.settings.default_duration_days
    if days < MIN_ESCROW_DURATION_DAYS or days > MAX_ESCROW_DURATION_DAYS:
        raise ProtocolError(
            ErrorCode.INVALID_DURATION,
            f"deadline_days must be 0 or within {MIN_ESCROW_DURATION_DAYS}..{MAX_ESCROW_DURATION_DAYS}",
        )
    return days


# --- CREATE_ESCROW ---

def _verify_create(state: ProtocolState, op: Operation, p: dict) -> None:
    merchant = require_identity(p, "merchant")
    if merchant == op.caller:
        raise ProtocolError(ErrorCode.SELF_OPERATION, "buyer cannot be merchant")
    require_amount(p)
    require_supported(state, require_currency(p))
    _duration_days(state, p)
    optional_text(p, "description", MAX_DESCRIPTION_LEN)


def _apply_create(state: ProtocolState, op: Operation, p: dict) -> ProtocolState:
    merchant = p["merchant"]
    amount = p["amount"]
    currency = p["currency"]
    description = optional_text(p, "description", MAX_DESCRIPTION_LEN)
    days = _duration_days(state, p)
    now = state.timestamp

    eid = escrow_id(op.caller, merchant, amount, currency, now, description, claim_sequence(state))
    ensure_unused(state.escrows, eid)

    state.escrows[eid] = Escrow(
        id=eid,
        merchant=merchant,
        buyer=op.caller,
        amount=amount,
        currency=currency,
        deadline=now + days * SECONDS_PER_DAY,
        description=description,
        created_at=now,
    )
    emit(
        state, "EscrowCreated", eid,
        buyer=op.caller, merchant=merchant, amount=amount, currency=currency,
        deadline=state.escrows[eid].deadline,
    )
    return state


# --- FUND_ESCROW ---

def _verify_fund(state: ProtocolState, op: Operation, p: dict) -> None:
    escrow = get_escrow(state, require_id(p, "escrow_id"))
    require_permitted(state, op.op_type, op.caller, escrow)
    _require_state(escrow, EscrowState.CREATED)
    if op.timestamp >= escrow.deadline:
        raise ProtocolError(ErrorCode.DEADLINE_PASSED, "escrow deadline has passed")

    expected_value = escrow.amount if is_native(escrow.currency) else 0
    if op.value != expected_value:
        raise ProtocolError(
            ErrorCode.INCORRECT_VALUE,
            f"attached value {op.value} does not match required {expected_value}",
        )


def _apply_fund(state: ProtocolState, op: Operation, p: dict) -> ProtocolState:
    escrow = state.escrows[p["escrow_id"]]
    collect(state, escrow.buyer, escrow.currency, escrow.amount)
    escrow.state = EscrowState.FUNDED
    escrow.funded_at = state.timestamp
    emit(state, "EscrowFunded", escrow.id, amount=escrow.amount)
    return state


# --- COMPLETE_ESCROW / REFUND_ESCROW ---

def _verify_settle(state: ProtocolState, op: Operation, p: dict) -> None:
    escrow = get_escrow(state, require_id(p, "escrow_id"))
    require_permitted(state, op.op_type, op.caller, escrow)
    _require_state(escrow, EscrowState.FUNDED)


def _apply_complete(state: ProtocolState, op: Operation, p: dict) -> ProtocolState:
    escrow = state.escrows[p["escrow_id"]]
    split = split_fee(escrow.amount, state.settings.fee_rate_bps)

    disburse(state, escrow.merchant, escrow.currency, split.merchant_amount)
    disburse(state, state.settings.fee_collector, escrow.currency, split.fee)

    escrow.state = EscrowState.COMPLETED
    escrow.settled_at = state.timestamp
    escrow.merchant_payout = split.merchant_amount
    escrow.fee_paid = split.fee
    emit(state, "EscrowCompleted", escrow.id, merchant_amount=split.merchant_amount, fee=split.fee)
    return state


def _apply_refund(state: ProtocolState, op: Operation, p: dict) -> ProtocolState:
    escrow = state.escrows[p["escrow_id"]]
    disburse(state, escrow.buyer, escrow.currency, escrow.amount)

    escrow.state = EscrowState.REFUNDED
    escrow.settled_at = state.timestamp
    escrow.buyer_payout = escrow.amount
    emit(state, "EscrowRefunded", escrow.id, amount=escrow.amount, expired=False)
    return state


# --- RAISE_DISPUTE ---

def _verify_raise_dispute(state: ProtocolState, op: Operation, p: dict) -> None:
    escrow = get_escrow(state, require_id(p, "escrow_id"))
    require_permitted(state, op.op_type, op.caller, escrow)
    _require_state(escrow, EscrowState.FUNDED)
    required_text(p, "reason", MAX_REASON_LEN)


def _apply_raise_dispute(state: ProtocolState, op: Operation, p: dict) -> ProtocolState:
    escrow = state.escrows[p["escrow_id"]]
    escrow.state = EscrowState.DISPUTED
    escrow.dispute_reason = p["reason"]
    emit(state, "DisputeRaised", escrow.id, raised_by=op.caller, reason=escrow.dispute_reason)
    return state


# --- RESOLVE_DISPUTE ---

def _verify_resolve_dispute(state: ProtocolState, op: Operation, p: dict) -> None:
    escrow = get_escrow(state, require_id(p, "escrow_id"))
    require_permitted(state, op.op_type, op.caller, escrow)
    _require_state(escrow, EscrowState.DISPUTED)
    validate_merchant_percent(p.get("merchant_percent"))


def _apply_resolve_dispute(state: ProtocolState, op: Operation, p: dict) -> ProtocolState:
    escrow = state.escrows[p["escrow_id"]]
    split = split_dispute(escrow.amount, p["merchant_percent"])

    disburse(state, escrow.merchant, escrow.currency, split.merchant_amount)
    disburse(state, escrow.buyer, escrow.currency, split.buyer_amount)

    escrow.state = EscrowState.RESOLVED
    escrow.settled_at = state.timestamp
    escrow.merchant_payout = split.merchant_amount
    escrow.buyer_payout = split.buyer_amount
    if split.winner == DisputeWinner.MERCHANT:
        escrow.winner = escrow.merchant
    elif split.winner == DisputeWinner.BUYER:
        escrow.winner = escrow.buyer
    emit(
        state, "DisputeResolved", escrow.id,
        merchant_amount=split.merchant_amount,
        buyer_amount=split.buyer_amount,
        winner=escrow.winner,
    )
    return state


# --- CLAIM_EXPIRED_ESCROW ---

def _verify_claim_expired(state: ProtocolState, op: Operation, p: dict) -> None:
    escrow = get_escrow(state, require_id(p, "escrow_id"))
    require_permitted(state, op.op_type, op.caller, escrow)
    _require_state(escrow, EscrowState.FUNDED)
    if op.timestamp <= escrow.deadline:
        raise ProtocolError(ErrorCode.DEADLINE_NOT_REACHED, "escrow has not expired")


def _apply_claim_expired(state: ProtocolState, op: Operation, p: dict) -> ProtocolState:
    escrow = state.escrows[p["escrow_id"]]
    disburse(state, escrow.buyer, escrow.currency, escrow.amount)

    escrow.state = EscrowState.REFUNDED
    escrow.settled_at = state.timestamp
    escrow.buyer_payout = escrow.amount
    emit(state, "EscrowRefunded", escrow.id, amount=escrow.amount, expired=True)
    return state
