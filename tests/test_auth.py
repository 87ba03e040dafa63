"""Authorization role specs."""

from __future__ import annotations

import pytest

from payescrow.auth import REQUIRED_ROLES, Role, is_permitted, require_permitted, roles_of
from payescrow.errors import ErrorCode, ProtocolError
from payescrow.test_accounts import ALICE, ARBITRATOR, BOB, CAROL, FEE_COLLECTOR, NATIVE, OWNER
from payescrow.types import Escrow, OperationType, PaymentLink, ProtocolSettings, ProtocolState

ESCROW = Escrow(id=b"\x01" * 32, merchant=BOB, buyer=ALICE, amount=1, currency=NATIVE, deadline=1)
LINK = PaymentLink(id=b"\x02" * 32, merchant=BOB, amount=1, currency=NATIVE)


def _base_state() -> ProtocolState:
    return ProtocolState(
        settings=ProtocolSettings(owner=OWNER, fee_collector=FEE_COLLECTOR, arbitrator=ARBITRATOR)
    )


def test_every_operation_has_a_role() -> None:
    assert set(REQUIRED_ROLES) == set(OperationType)


def test_roles_of_escrow_parties() -> None:
    state = _base_state()
    assert roles_of(state, ALICE, ESCROW) == {Role.ANYONE, Role.BUYER, Role.PARTY}
    assert roles_of(state, BOB, ESCROW) == {Role.ANYONE, Role.MERCHANT, Role.PARTY}
    assert roles_of(state, CAROL, ESCROW) == {Role.ANYONE}
    assert roles_of(state, BOB, LINK) == {Role.ANYONE, Role.MERCHANT}
    assert roles_of(state, OWNER) == {Role.ANYONE, Role.OWNER}
    assert roles_of(state, ARBITRATOR) == {Role.ANYONE, Role.ARBITRATOR}


def test_arbitrator_is_not_a_party() -> None:
    state = _base_state()
    assert not is_permitted(state, OperationType.RAISE_DISPUTE, ARBITRATOR, ESCROW)
    assert is_permitted(state, OperationType.RESOLVE_DISPUTE, ARBITRATOR, ESCROW)


@pytest.mark.parametrize(
    "op_type, caller, entity, code",
    [
        (OperationType.FUND_ESCROW, BOB, ESCROW, ErrorCode.NOT_BUYER),
        (OperationType.COMPLETE_ESCROW, CAROL, ESCROW, ErrorCode.NOT_BUYER),
        (OperationType.REFUND_ESCROW, ALICE, ESCROW, ErrorCode.NOT_MERCHANT),
        (OperationType.RAISE_DISPUTE, CAROL, ESCROW, ErrorCode.NOT_PARTY),
        (OperationType.RESOLVE_DISPUTE, OWNER, ESCROW, ErrorCode.NOT_ARBITRATOR),
        (OperationType.CLAIM_EXPIRED_ESCROW, BOB, ESCROW, ErrorCode.NOT_BUYER),
        (OperationType.DEACTIVATE_PAYMENT_LINK, ALICE, LINK, ErrorCode.NOT_MERCHANT),
        (OperationType.SET_FEE_RATE, ARBITRATOR, None, ErrorCode.NOT_OWNER),
    ],
)
def test_require_permitted_denials(op_type, caller, entity, code) -> None:
    with pytest.raises(ProtocolError) as exc_info:
        require_permitted(_base_state(), op_type, caller, entity)
    assert exc_info.value.code == code


@pytest.mark.parametrize(
    "op_type",
    [
        OperationType.CREATE_ESCROW,
        OperationType.CREATE_PAYMENT_LINK,
        OperationType.PROCESS_PAYMENT,
        OperationType.GENERATE_RECEIPT,
        OperationType.GENERATE_LINK_RECEIPT,
    ],
)
def test_open_operations(op_type) -> None:
    require_permitted(_base_state(), op_type, CAROL, None)
