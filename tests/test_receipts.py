"""Receipt store specs."""

from __future__ import annotations

import pytest

from payescrow import views
from payescrow.errors import ErrorCode
from payescrow.state_transition import apply_op
from payescrow.test_accounts import ALICE, ARBITRATOR, BOB, FEE_COLLECTOR, MALLORY, NATIVE, OWNER
from payescrow.types import (
    Escrow,
    EscrowState,
    Operation,
    OperationType,
    PaymentLink,
    ProtocolSettings,
    ProtocolState,
    ReceiptSubject,
)

T0 = 1_700_000_000
ESCROW_ID = bytes([0x60]) * 32
LINK_ID = bytes([0x70]) * 32


def _base_state(escrow_state: EscrowState = EscrowState.COMPLETED) -> ProtocolState:
    state = ProtocolState(
        settings=ProtocolSettings(owner=OWNER, fee_collector=FEE_COLLECTOR, arbitrator=ARBITRATOR),
        timestamp=T0,
    )
    state.escrows[ESCROW_ID] = Escrow(
        id=ESCROW_ID, merchant=BOB, buyer=ALICE, amount=1000, currency=NATIVE,
        deadline=T0 + 86_400, state=escrow_state, created_at=T0,
    )
    state.payment_links[LINK_ID] = PaymentLink(
        id=LINK_ID, merchant=BOB, amount=200, currency=NATIVE, created_at=T0,
    )
    return state


def _receipt_op(caller: bytes, at: int = T0) -> Operation:
    return Operation(
        op_type=OperationType.GENERATE_RECEIPT,
        caller=caller,
        payload={"escrow_id": ESCROW_ID},
        timestamp=at,
    )


def test_generate_receipt_for_settled_escrow(state_test_group) -> None:
    state = _base_state()
    post, result = state_test_group("receipts/generate.json", "receipt_completed", state, _receipt_op(BOB))

    assert result.ok
    receipt = post.receipts[result.created_id]
    assert receipt.subject_id == ESCROW_ID
    assert receipt.subject == ReceiptSubject.ESCROW
    assert receipt.requester == BOB
    assert receipt.issued_at == T0
    assert views.verify_receipt(post, result.created_id)
    # Receipts carry no financial effect.
    assert result.transfers == []
    assert post.escrows == state.escrows


@pytest.mark.parametrize("escrow_state", [EscrowState.REFUNDED, EscrowState.RESOLVED])
def test_generate_receipt_for_every_terminal_state(escrow_state) -> None:
    state = _base_state(escrow_state)
    _, result = apply_op(state, _receipt_op(ALICE))
    assert result.ok


@pytest.mark.parametrize(
    "escrow_state", [EscrowState.CREATED, EscrowState.FUNDED, EscrowState.DISPUTED]
)
def test_generate_receipt_for_open_escrow(state_test_group, escrow_state) -> None:
    state = _base_state(escrow_state)
    post, result = state_test_group(
        "receipts/generate.json", f"receipt_{escrow_state.name.lower()}", state, _receipt_op(ALICE)
    )
    assert result.error.code == ErrorCode.ESCROW_WRONG_STATE
    assert post.receipts == {}


def test_generate_receipt_by_third_party() -> None:
    state = _base_state()
    _, result = apply_op(state, _receipt_op(MALLORY))
    assert result.ok


def test_repeated_receipts_are_distinct() -> None:
    state = _base_state()
    state, first = apply_op(state, _receipt_op(BOB))
    state, second = apply_op(state, _receipt_op(BOB, at=T0 + 60))
    state, third = apply_op(state, _receipt_op(BOB, at=T0 + 60))

    ids = {first.created_id, second.created_id, third.created_id}
    assert len(ids) == 3
    assert all(views.verify_receipt(state, rid) for rid in ids)


def test_verify_unknown_receipt() -> None:
    assert not views.verify_receipt(_base_state(), bytes([0x01]) * 32)


def test_generate_receipt_for_unknown_escrow() -> None:
    state = _base_state()
    op = Operation(
        op_type=OperationType.GENERATE_RECEIPT,
        caller=BOB,
        payload={"escrow_id": bytes([0x02]) * 32},
        timestamp=T0,
    )
    _, result = apply_op(state, op)
    assert result.error.code == ErrorCode.ESCROW_NOT_FOUND


def test_generate_link_receipt_for_active_link(state_test_group) -> None:
    state = _base_state()
    op = Operation(
        op_type=OperationType.GENERATE_LINK_RECEIPT,
        caller=ALICE,
        payload={"link_id": LINK_ID},
        timestamp=T0,
    )
    post, result = state_test_group("receipts/generate_link.json", "link_receipt_active", state, op)

    assert result.ok
    receipt = post.receipts[result.created_id]
    assert receipt.subject == ReceiptSubject.PAYMENT_LINK
    assert receipt.subject_id == LINK_ID


def test_generate_link_receipt_for_unknown_link() -> None:
    state = _base_state()
    op = Operation(
        op_type=OperationType.GENERATE_LINK_RECEIPT,
        caller=ALICE,
        payload={"link_id": bytes([0x03]) * 32},
        timestamp=T0,
    )
    _, result = apply_op(state, op)
    assert result.error.code == ErrorCode.PAYMENT_LINK_NOT_FOUND
