"""Identifier derivation specs."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from payescrow.errors import ErrorCode, ErrorKind, ProtocolError
from payescrow.ids import claim_sequence, ensure_unused, escrow_id, payment_link_id, receipt_id
from payescrow.state_transition import apply_op
from payescrow.test_accounts import ALICE, ARBITRATOR, BOB, FEE_COLLECTOR, NATIVE, OWNER, USDC
from payescrow.types import (
    Escrow,
    Operation,
    OperationType,
    PaymentLink,
    ProtocolSettings,
    ProtocolState,
)

T0 = 1_700_000_000


def _base_state() -> ProtocolState:
    return ProtocolState(
        settings=ProtocolSettings(owner=OWNER, fee_collector=FEE_COLLECTOR, arbitrator=ARBITRATOR),
        timestamp=T0,
    )


def test_ids_are_32_bytes_and_deterministic() -> None:
    a = escrow_id(ALICE, BOB, 1000, NATIVE, T0, "order", 0)
    b = escrow_id(ALICE, BOB, 1000, NATIVE, T0, "order", 0)
    assert a == b
    assert len(a) == 32
    assert len(payment_link_id(BOB, 1, USDC, T0, "", 0)) == 32
    assert len(receipt_id(a, T0, BOB, 0)) == 32


def test_ids_depend_on_every_input() -> None:
    base = escrow_id(ALICE, BOB, 1000, NATIVE, T0, "order", 0)
    variants = [
        escrow_id(BOB, ALICE, 1000, NATIVE, T0, "order", 0),
        escrow_id(ALICE, BOB, 1001, NATIVE, T0, "order", 0),
        escrow_id(ALICE, BOB, 1000, USDC, T0, "order", 0),
        escrow_id(ALICE, BOB, 1000, NATIVE, T0 + 1, "order", 0),
        escrow_id(ALICE, BOB, 1000, NATIVE, T0, "order2", 0),
        escrow_id(ALICE, BOB, 1000, NATIVE, T0, "order", 1),
    ]
    assert base not in variants
    assert len(set(variants)) == len(variants)


def test_kinds_use_separate_domains() -> None:
    assert payment_link_id(BOB, 1000, NATIVE, T0, "", 0) != escrow_id(BOB, BOB, 1000, NATIVE, T0, "", 0)


def test_claim_sequence_advances() -> None:
    state = _base_state()
    assert [claim_sequence(state) for _ in range(3)] == [0, 1, 2]
    assert state.sequence == 3


def test_ensure_unused() -> None:
    registry = {b"\x01" * 32: object()}
    ensure_unused(registry, b"\x02" * 32)
    with pytest.raises(ProtocolError) as exc_info:
        ensure_unused(registry, b"\x01" * 32)
    assert exc_info.value.code == ErrorCode.DUPLICATE_ID
    assert exc_info.value.kind == ErrorKind.DUPLICATE_ID


def test_create_escrow_collision_is_rejected() -> None:
    state = _base_state()
    colliding = escrow_id(ALICE, BOB, 1000, NATIVE, T0, "", state.sequence)
    state.escrows[colliding] = Escrow(
        id=colliding, merchant=BOB, buyer=ALICE, amount=1, currency=NATIVE, deadline=T0 + 1
    )
    op = Operation(
        op_type=OperationType.CREATE_ESCROW,
        caller=ALICE,
        payload={"merchant": BOB, "amount": 1000, "currency": NATIVE},
        timestamp=T0,
    )
    post, result = apply_op(state, op)
    assert result.error.code == ErrorCode.DUPLICATE_ID
    assert post.sequence == state.sequence
    assert post.escrows[colliding].amount == 1


def test_create_payment_link_collision_is_rejected() -> None:
    state = _base_state()
    colliding = payment_link_id(BOB, 200, NATIVE, T0, "", state.sequence)
    state.payment_links[colliding] = PaymentLink(id=colliding, merchant=BOB, amount=5, currency=NATIVE)
    op = Operation(
        op_type=OperationType.CREATE_PAYMENT_LINK,
        caller=BOB,
        payload={"amount": 200, "currency": NATIVE},
        timestamp=T0,
    )
    _, result = apply_op(state, op)
    assert result.error.code == ErrorCode.DUPLICATE_ID


def test_id_derivation_vectors(
    vector_test_group: Callable[[str, dict[str, Any]], None],
) -> None:
    rel_path = "ids/blake3.json"

    eid = escrow_id(ALICE, BOB, 1000, NATIVE, T0, "order #1", 0)
    vector_test_group(
        rel_path,
        {
            "name": "escrow_id_seq_0",
            "description": "BLAKE3 over domain, buyer, merchant, u256 amount, currency, u64 time, text, u64 sequence.",
            "input": {
                "kind": "id",
                "op": "escrow_id",
                "buyer": ALICE.hex(),
                "merchant": BOB.hex(),
                "amount": 1000,
                "currency": NATIVE.hex(),
                "timestamp": T0,
                "description": "order #1",
                "sequence": 0,
            },
            "expected": {"id": eid.hex()},
        },
    )

    lid = payment_link_id(BOB, 200, USDC, T0, "invoice 42", 1)
    vector_test_group(
        rel_path,
        {
            "name": "payment_link_id_seq_1",
            "description": "BLAKE3 over domain, merchant, u256 amount, currency, u64 time, text, u64 sequence.",
            "input": {
                "kind": "id",
                "op": "payment_link_id",
                "merchant": BOB.hex(),
                "amount": 200,
                "currency": USDC.hex(),
                "timestamp": T0,
                "metadata": "invoice 42",
                "sequence": 1,
            },
            "expected": {"id": lid.hex()},
        },
    )

    rid = receipt_id(eid, T0 + 60, BOB, 2)
    vector_test_group(
        rel_path,
        {
            "name": "receipt_id_seq_2",
            "description": "BLAKE3 over domain, subject id, u64 time, requester, u64 sequence.",
            "input": {
                "kind": "id",
                "op": "receipt_id",
                "subject_id": eid.hex(),
                "timestamp": T0 + 60,
                "requester": BOB.hex(),
                "sequence": 2,
            },
            "expected": {"id": rid.hex()},
        },
    )
