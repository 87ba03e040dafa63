"""Single-writer engine hosting one protocol instance.

The engine serializes every mutating operation, stamps it with the engine
clock, applies it to a working copy and commits by swapping the state
reference only once every transfer and recipient notification succeeded.
Readers always see the last committed snapshot.
"""

from __future__ import annotations

import logging
import threading
import time
from copy import deepcopy
from dataclasses import replace
from typing import Any, Callable, Optional

from . import views
from .config import EngineConfig, NATIVE_CURRENCY
from .errors import ErrorCode, ProtocolError, TransferRejected
from .state_transition import TransitionResult, apply_op
from .types import (
    Escrow,
    Operation,
    OperationType,
    PaymentLink,
    ProtocolSettings,
    ProtocolState,
    Transfer,
)

logger = logging.getLogger(__name__)

RecipientHook = Callable[[Transfer], None]


def _who(caller: Any) -> str:
    # Callers are only validated inside apply_op; log malformed ones as-is.
    if isinstance(caller, bytes):
        return caller.hex()[:16]
    return repr(caller)


def _op_name(op: Operation) -> str:
    if isinstance(op.op_type, OperationType):
        return op.op_type.value
    return repr(op.op_type)


def genesis_state(config: EngineConfig) -> ProtocolState:
    """Build the initial state for a freshly deployed protocol instance."""
    settings = ProtocolSettings(
        owner=config.owner,
        fee_collector=config.fee_collector or config.owner,
        arbitrator=config.arbitrator or config.owner,
        fee_rate_bps=config.fee_rate_bps,
        default_duration_days=config.default_duration_days,
    )
    return ProtocolState(settings=settings, supported_currencies={NATIVE_CURRENCY: True})


class Engine:
    """Serialized executor with a re-entrancy guard and recipient hooks."""

    def __init__(self, state: ProtocolState, clock: Optional[Callable[[], float]] = None):
        self._state = state
        self._clock = clock or time.time
        self._lock = threading.RLock()
        self._in_flight: Optional[Operation] = None
        self._hooks: dict[bytes, RecipientHook] = {}

    @classmethod
    def from_config(cls, config: EngineConfig, clock: Optional[Callable[[], float]] = None) -> "Engine":
        logging.getLogger("payescrow").setLevel(config.log_level)
        return cls(genesis_state(config), clock=clock)

    @property
    def state(self) -> ProtocolState:
        """Last committed state. Treat as read-only."""
        return self._state

    def now(self) -> int:
        return max(int(self._clock()), self._state.timestamp)

    def register_recipient_hook(self, recipient: bytes, hook: RecipientHook) -> None:
        """Notify ``hook`` of every native disbursement to ``recipient``.

        The hook runs before the operation commits. Raising
        ``TransferRejected`` refuses the transfer and rolls the operation back;
        any other exception from the hook is treated as a refusal too.
        """
        self._hooks[recipient] = hook

    def unregister_recipient_hook(self, recipient: bytes) -> None:
        self._hooks.pop(recipient, None)

    def submit(
        self,
        op_type: OperationType,
        caller: bytes,
        payload: Optional[dict[str, Any]] = None,
        value: int = 0,
    ) -> TransitionResult:
        return self.execute(Operation(op_type=op_type, caller=caller, payload=payload or {}, value=value))

    def execute(self, op: Operation) -> TransitionResult:
        with self._lock:
            if self._in_flight is not None:
                exc = ProtocolError(
                    ErrorCode.REENTRANT_CALL,
                    f"{_op_name(op)} submitted while {_op_name(self._in_flight)} is in flight",
                )
                logger.warning("Rejected re-entrant %s from %s", _op_name(op), _who(op.caller))
                return TransitionResult.failure(exc)

            op = replace(op, timestamp=self.now())
            self._in_flight = op
            try:
                new_state, result = apply_op(self._state, op)
                if result.ok:
                    result = self._notify_recipients(result)
                if result.ok:
                    self._state = new_state
            finally:
                self._in_flight = None

        if result.ok:
            logger.info(
                "Committed %s by %s (events=%d, transfers=%d)",
                _op_name(op), _who(op.caller), len(result.events), len(result.transfers),
            )
        else:
            logger.warning("Rejected %s by %s: %s", _op_name(op), _who(op.caller), result.error)
        return result

    def _notify_recipients(self, result: TransitionResult) -> TransitionResult:
        for transfer in result.transfers:
            if transfer.currency != NATIVE_CURRENCY or transfer.destination is None:
                continue
            hook = self._hooks.get(transfer.destination)
            if hook is None:
                continue
            try:
                hook(transfer)
            except TransferRejected as exc:
                error = ProtocolError(ErrorCode.TRANSFER_REJECTED, f"recipient rejected transfer: {exc}")
                return TransitionResult.failure(error)
            except Exception as exc:
                logger.warning("Recipient hook for %s failed", _who(transfer.destination), exc_info=True)
                error = ProtocolError(
                    ErrorCode.TRANSFER_REJECTED,
                    f"recipient hook failed: {type(exc).__name__}: {exc}",
                )
                return TransitionResult.failure(error)
        return result

    # --- reads ---

    def get_escrow(self, escrow_id: bytes) -> Escrow:
        return deepcopy(views.get_escrow(self._state, escrow_id))

    def get_payment_link(self, link_id: bytes) -> PaymentLink:
        return deepcopy(views.get_payment_link(self._state, link_id))

    def check_escrow_status(self, escrow_id: bytes) -> views.EscrowStatusView:
        return views.check_escrow_status(self._state, escrow_id, self.now())

    def verify_receipt(self, receipt_id: bytes) -> bool:
        return views.verify_receipt(self._state, receipt_id)
