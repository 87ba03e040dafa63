"""Role-based authorization for protocol operations.

Each operation requires one role. Roles are resolved from the caller, the
protocol settings, and the entity the operation targets.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from .errors import ErrorCode, ProtocolError
from .types import Escrow, OperationType, PaymentLink, ProtocolState

Entity = Union[Escrow, PaymentLink, None]


class Role(Enum):
    ANYONE = "anyone"
    OWNER = "owner"
    ARBITRATOR = "arbitrator"
    BUYER = "buyer"
    MERCHANT = "merchant"
    PARTY = "party"  # buyer or merchant of the target escrow


REQUIRED_ROLES: dict[OperationType, Role] = {
    OperationType.CREATE_PAYMENT_LINK: Role.ANYONE,
    OperationType.PROCESS_PAYMENT: Role.ANYONE,
    OperationType.DEACTIVATE_PAYMENT_LINK: Role.MERCHANT,
    OperationType.GENERATE_LINK_RECEIPT: Role.ANYONE,
    OperationType.CREATE_ESCROW: Role.ANYONE,
    OperationType.FUND_ESCROW: Role.BUYER,
    OperationType.COMPLETE_ESCROW: Role.BUYER,
    OperationType.REFUND_ESCROW: Role.MERCHANT,
    OperationType.RAISE_DISPUTE: Role.PARTY,
    OperationType.RESOLVE_DISPUTE: Role.ARBITRATOR,
    OperationType.CLAIM_EXPIRED_ESCROW: Role.BUYER,
    OperationType.GENERATE_RECEIPT: Role.ANYONE,
    OperationType.SET_CURRENCY_SUPPORT: Role.OWNER,
    OperationType.SET_FEE_RATE: Role.OWNER,
    OperationType.SET_FEE_COLLECTOR: Role.OWNER,
    OperationType.SET_ARBITRATOR: Role.OWNER,
    OperationType.SET_DEFAULT_DURATION: Role.OWNER,
    OperationType.TRANSFER_OWNERSHIP: Role.OWNER,
}

_DENIAL_CODES = {
    Role.OWNER: ErrorCode.NOT_OWNER,
    Role.ARBITRATOR: ErrorCode.NOT_ARBITRATOR,
    Role.BUYER: ErrorCode.NOT_BUYER,
    Role.MERCHANT: ErrorCode.NOT_MERCHANT,
    Role.PARTY: ErrorCode.NOT_PARTY,
}


def roles_of(state: ProtocolState, caller: bytes, entity: Entity = None) -> set[Role]:
    roles = {Role.ANYONE}
    if caller == state.settings.owner:
        roles.add(Role.OWNER)
    if caller == state.settings.arbitrator:
        roles.add(Role.ARBITRATOR)
    if isinstance(entity, Escrow):
        if caller == entity.buyer:
            roles.update((Role.BUYER, Role.PARTY))
        if caller == entity.merchant:
            roles.update((Role.MERCHANT, Role.PARTY))
    elif isinstance(entity, PaymentLink):
        if caller == entity.merchant:
            roles.add(Role.MERCHANT)
    return roles


def is_permitted(
    state: ProtocolState, op_type: OperationType, caller: bytes, entity: Entity = None
) -> bool:
    required = REQUIRED_ROLES.get(op_type)
    if required is None:
        return False
    return required in roles_of(state, caller, entity)


def require_permitted(
    state: ProtocolState, op_type: OperationType, caller: bytes, entity: Entity = None
) -> None:
    if is_permitted(state, op_type, caller, entity):
        return
    required: Optional[Role] = REQUIRED_ROLES.get(op_type)
    code = _DENIAL_CODES.get(required, ErrorCode.UNAUTHORIZED) if required else ErrorCode.UNAUTHORIZED
    raise ProtocolError(code, f"caller not permitted to {op_type.value}")
