"""Receipt store specs.

Receipts are audit artifacts with no financial effect. Escrow receipts may
only be issued once the escrow is terminal; payment link receipts may be
issued any time after the link exists.
"""

from __future__ import annotations

from ..auth import require_permitted
from ..errors import ErrorCode, ProtocolError
from ..ids import claim_sequence, ensure_unused, receipt_id
from ..types import Operation, OperationType, ProtocolState, Receipt, ReceiptSubject
from .common import emit, get_escrow, get_payment_link, require_id

RECEIPT_TYPES = frozenset({
    OperationType.GENERATE_RECEIPT,
    OperationType.GENERATE_LINK_RECEIPT,
})


def verify(state: ProtocolState, op: Operation) -> None:
    p = op.payload
    if op.op_type == OperationType.GENERATE_RECEIPT:
        escrow = get_escrow(state, require_id(p, "escrow_id"))
        require_permitted(state, op.op_type, op.caller, escrow)
        if not escrow.is_terminal:
            raise ProtocolError(
                ErrorCode.ESCROW_WRONG_STATE,
                f"receipt requires a settled escrow, escrow is {escrow.state.name}",
            )
    elif op.op_type == OperationType.GENERATE_LINK_RECEIPT:
        link = get_payment_link(state, require_id(p, "link_id"))
        require_permitted(state, op.op_type, op.caller, link)
    else:
        raise ProtocolError(ErrorCode.NOT_IMPLEMENTED, f"unsupported receipt operation: {op.op_type}")


def apply(state: ProtocolState, op: Operation) -> ProtocolState:
    if op.op_type == OperationType.GENERATE_RECEIPT:
        subject_id = op.payload["escrow_id"]
        subject = ReceiptSubject.ESCROW
    elif op.op_type == OperationType.GENERATE_LINK_RECEIPT:
        subject_id = op.payload["link_id"]
        subject = ReceiptSubject.PAYMENT_LINK
    else:
        raise ProtocolError(ErrorCode.NOT_IMPLEMENTED, f"unsupported receipt operation: {op.op_type}")

    rid = receipt_id(subject_id, state.timestamp, op.caller, claim_sequence(state))
    ensure_unused(state.receipts, rid)
    state.receipts[rid] = Receipt(
        id=rid,
        subject_id=subject_id,
        subject=subject,
        requester=op.caller,
        issued_at=state.timestamp,
    )
    emit(state, "ReceiptGenerated", rid, subject_id=subject_id, requester=op.caller)
    return state
