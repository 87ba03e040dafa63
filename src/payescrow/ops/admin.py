"""Owner-gated administration: currency allow-list and protocol settings."""

from __future__ import annotations

from ..auth import require_permitted
from ..config import MAX_ESCROW_DURATION_DAYS, MIN_ESCROW_DURATION_DAYS
from ..errors import ErrorCode, ProtocolError
from ..fees import validate_fee_rate
from ..types import Operation, OperationType, ProtocolState
from .common import emit, require_currency, require_identity, require_int

ADMIN_TYPES = frozenset({
    OperationType.SET_CURRENCY_SUPPORT,
    OperationType.SET_FEE_RATE,
    OperationType.SET_FEE_COLLECTOR,
    OperationType.SET_ARBITRATOR,
    OperationType.SET_DEFAULT_DURATION,
    OperationType.TRANSFER_OWNERSHIP,
})

# Admin events carry the zero id; they target no registry entity.
_SETTINGS_ENTITY = bytes(32)


def verify(state: ProtocolState, op: Operation) -> None:
    if op.op_type not in ADMIN_TYPES:
        raise ProtocolError(ErrorCode.NOT_IMPLEMENTED, f"unsupported admin operation: {op.op_type}")
    require_permitted(state, op.op_type, op.caller)

    p = op.payload
    ot = op.op_type
    if ot == OperationType.SET_CURRENCY_SUPPORT:
        require_currency(p)
        if not isinstance(p.get("supported"), bool):
            raise ProtocolError(ErrorCode.INVALID_PAYLOAD, "supported must be a bool")
    elif ot == OperationType.SET_FEE_RATE:
        validate_fee_rate(p.get("fee_rate_bps"))
    elif ot == OperationType.SET_FEE_COLLECTOR:
        require_identity(p, "fee_collector")
    elif ot == OperationType.SET_ARBITRATOR:
        require_identity(p, "arbitrator")
    elif ot == OperationType.SET_DEFAULT_DURATION:
        days = require_int(p, "days", ErrorCode.INVALID_DURATION)
        if days < MIN_ESCROW_DURATION_DAYS or days > MAX_ESCROW_DURATION_DAYS:
            raise ProtocolError(
                ErrorCode.INVALID_DURATION,
                f"default duration must be within {MIN_ESCROW_DURATION_DAYS}..{MAX_ESCROW_DURATION_DAYS} days",
            )
    elif ot == OperationType.TRANSFER_OWNERSHIP:
        require_identity(p, "new_owner")


def apply(state: ProtocolState, op: Operation) -> ProtocolState:
    p = op.payload
    ot = op.op_type
    settings = state.settings
    if ot == OperationType.SET_CURRENCY_SUPPORT:
        currency = p["currency"]
        state.supported_currencies[currency] = p["supported"]
        emit(state, "CurrencySupportUpdated", currency, supported=p["supported"])
    elif ot == OperationType.SET_FEE_RATE:
        old = settings.fee_rate_bps
        settings.fee_rate_bps = p["fee_rate_bps"]
        emit(state, "FeeRateUpdated", _SETTINGS_ENTITY, old=old, new=settings.fee_rate_bps)
    elif ot == OperationType.SET_FEE_COLLECTOR:
        settings.fee_collector = p["fee_collector"]
        emit(state, "FeeCollectorUpdated", _SETTINGS_ENTITY, fee_collector=settings.fee_collector)
    elif ot == OperationType.SET_ARBITRATOR:
        settings.arbitrator = p["arbitrator"]
        emit(state, "ArbitratorUpdated", _SETTINGS_ENTITY, arbitrator=settings.arbitrator)
    elif ot == OperationType.SET_DEFAULT_DURATION:
        settings.default_duration_days = p["days"]
        emit(state, "DefaultDurationUpdated", _SETTINGS_ENTITY, days=settings.default_duration_days)
    elif ot == OperationType.TRANSFER_OWNERSHIP:
        previous = settings.owner
        settings.owner = p["new_owner"]
        emit(state, "OwnershipTransferred", _SETTINGS_ENTITY, previous=previous, new_owner=settings.owner)
    else:
        raise ProtocolError(ErrorCode.NOT_IMPLEMENTED, f"unsupported admin operation: {ot}")
    return state
