"""State transition entrypoints for the payescrow protocol."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import replace
from typing import Optional

from .config import IDENTITY_LEN, ZERO_IDENTITY
from .errors import ErrorCode, ProtocolError
from .types import Event, Operation, OperationType, ProtocolState, Transfer
from .ops import admin as op_admin
from .ops import escrow as op_escrow
from .ops import payment_links as op_payment_links
from .ops import receipts as op_receipts

# Operations that accept attached native value.
_PAYABLE_TYPES = frozenset({
    OperationType.PROCESS_PAYMENT,
    OperationType.FUND_ESCROW,
})

_CREATE_TYPES = frozenset({
    OperationType.CREATE_PAYMENT_LINK,
    OperationType.CREATE_ESCROW,
    OperationType.GENERATE_RECEIPT,
    OperationType.GENERATE_LINK_RECEIPT,
})


class TransitionResult:
    """Thin wrapper for verify/apply results."""

    def __init__(
        self,
        ok: bool,
        error: Optional[ProtocolError] = None,
        events: Optional[list[Event]] = None,
        transfers: Optional[list[Transfer]] = None,
        created_id: Optional[bytes] = None,
    ):
        self.ok = ok
        self.error = error
        self.events = events or []
        self.transfers = transfers or []
        self.created_id = created_id

    @classmethod
    def success(
        cls,
        events: Optional[list[Event]] = None,
        transfers: Optional[list[Transfer]] = None,
        created_id: Optional[bytes] = None,
    ) -> "TransitionResult":
        return cls(True, None, events, transfers, created_id)

    @classmethod
    def failure(cls, error: ProtocolError) -> "TransitionResult":
        return cls(False, error)

    def __repr__(self) -> str:
        if self.ok:
            return f"TransitionResult(ok=True, created_id={self.created_id!r})"
        return f"TransitionResult(ok=False, error={self.error})"


def _dispatch_verify(state: ProtocolState, op: Operation) -> None:
    ot = op.op_type
    if ot in op_payment_links.PAYMENT_LINK_TYPES:
        return op_payment_links.verify(state, op)
    if ot in op_escrow.ESCROW_TYPES:
        return op_escrow.verify(state, op)
    if ot in op_receipts.RECEIPT_TYPES:
        return op_receipts.verify(state, op)
    if ot in op_admin.ADMIN_TYPES:
        return op_admin.verify(state, op)

    raise ProtocolError(ErrorCode.NOT_IMPLEMENTED, f"verify not implemented for {op.op_type}")


def _dispatch_apply(state: ProtocolState, op: Operation) -> ProtocolState:
    ot = op.op_type
    if ot in op_payment_links.PAYMENT_LINK_TYPES:
        return op_payment_links.apply(state, op)
    if ot in op_escrow.ESCROW_TYPES:
        return op_escrow.apply(state, op)
    if ot in op_receipts.RECEIPT_TYPES:
        return op_receipts.apply(state, op)
    if ot in op_admin.ADMIN_TYPES:
        return op_admin.apply(state, op)

    raise ProtocolError(ErrorCode.NOT_IMPLEMENTED, f"apply not implemented for {op.op_type}")


def _verify_common(state: ProtocolState, op: Operation) -> None:
    if not isinstance(op.op_type, OperationType):
        raise ProtocolError(ErrorCode.INVALID_PAYLOAD, "unknown operation type")

    if not isinstance(op.caller, bytes) or len(op.caller) != IDENTITY_LEN:
        raise ProtocolError(ErrorCode.INVALID_ADDRESS, "caller must be a 32-byte identity")
    if op.caller == ZERO_IDENTITY:
        raise ProtocolError(ErrorCode.INVALID_ADDRESS, "caller must not be the zero identity")

    if not isinstance(op.payload, dict):
        raise ProtocolError(ErrorCode.INVALID_PAYLOAD, "payload must be dict")

    if isinstance(op.value, bool) or not isinstance(op.value, int) or op.value < 0:
        raise ProtocolError(ErrorCode.INCORRECT_VALUE, "attached value must be a non-negative integer")
    if op.value and op.op_type not in _PAYABLE_TYPES:
        raise ProtocolError(ErrorCode.INCORRECT_VALUE, f"{op.op_type.value} does not accept value")

    # Clock must not run backwards relative to the last committed operation.
    if op.timestamp < state.timestamp:
        raise ProtocolError(ErrorCode.INVALID_PAYLOAD, "operation timestamp precedes state timestamp")


def verify_op(state: ProtocolState, op: Operation) -> TransitionResult:
    """Validate an operation against ``state`` without applying it."""
    try:
        _verify_common(state, op)
        _dispatch_verify(state, op)
        return TransitionResult.success()
    except ProtocolError as exc:
        return TransitionResult.failure(exc)


def apply_op(state: ProtocolState, op: Operation) -> tuple[ProtocolState, TransitionResult]:
    """Apply an operation to a working copy of ``state``.

    Failed-operation semantics:
    - Verification failure: state unchanged
    - Execution failure (e.g. a transfer leg fails): state unchanged, every
      staged transfer of the operation is discarded with the working copy
    """
    try:
        _verify_common(state, op)
        _dispatch_verify(state, op)
    except ProtocolError as exc:
        return state, TransitionResult.failure(exc)

    # The logs only ever hold the entries of the operation being applied.
    working = deepcopy(replace(state, event_log=[], transfer_log=[]))
    working.timestamp = op.timestamp

    try:
        working = _dispatch_apply(working, op)
    except ProtocolError as exc:
        return state, TransitionResult.failure(exc)

    events = list(working.event_log)
    transfers = list(working.transfer_log)
    created_id = events[0].entity_id if op.op_type in _CREATE_TYPES and events else None
    return working, TransitionResult.success(events, transfers, created_id)


def apply_batch(state: ProtocolState, ops: list[Operation]) -> tuple[ProtocolState, TransitionResult]:
    """Apply operations in order with all-or-nothing semantics.

    If any operation fails, the whole batch is rejected and the state is
    unchanged.
    """
    working = state
    events: list[Event] = []
    transfers: list[Transfer] = []
    for op in ops:
        working, result = apply_op(working, op)
        if not result.ok:
            return state, result
        events.extend(result.events)
        transfers.extend(result.transfers)
    return working, TransitionResult.success(events, transfers)
