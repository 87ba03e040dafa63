"""Helpers to serialize/deserialize fixtures for payescrow specs."""

from __future__ import annotations

from typing import Any, Optional

from payescrow.state_transition import TransitionResult
from payescrow.types import (
    AccountState,
    Escrow,
    EscrowState,
    Operation,
    OperationType,
    PaymentLink,
    ProtocolSettings,
    ProtocolState,
    Receipt,
    ReceiptSubject,
)

# Payload fields carrying 32-byte ids/identities.
_BYTES_KEYS = frozenset({
    "escrow_id",
    "link_id",
    "merchant",
    "currency",
    "fee_collector",
    "arbitrator",
    "new_owner",
})


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def _opt_hex(v: Optional[bytes]) -> Optional[str]:
    return None if v is None else v.hex()


def _opt_bytes(v: Optional[str]) -> Optional[bytes]:
    return None if v is None else bytes.fromhex(v)


def _json_value(v: Any) -> Any:
    if isinstance(v, bytes):
        return v.hex()
    if isinstance(v, EscrowState):
        return v.name
    return v


def state_to_json(state: ProtocolState) -> dict[str, Any]:
    s = state.settings
    return {
        "settings": {
            "owner": _bytes_to_hex(s.owner),
            "fee_collector": _bytes_to_hex(s.fee_collector),
            "arbitrator": _bytes_to_hex(s.arbitrator),
            "fee_rate_bps": s.fee_rate_bps,
            "default_duration_days": s.default_duration_days,
        },
        "timestamp": state.timestamp,
        "sequence": state.sequence,
        "accounts": [
            {
                "address": _bytes_to_hex(a.address),
                "balances": {_bytes_to_hex(c): v for c, v in a.balances.items()},
                "allowances": {_bytes_to_hex(c): v for c, v in a.allowances.items()},
                "accepts_native": a.accepts_native,
            }
            for a in state.accounts.values()
        ],
        "custody": {_bytes_to_hex(c): v for c, v in state.custody.items()},
        "supported_currencies": {
            _bytes_to_hex(c): v for c, v in state.supported_currencies.items()
        },
        "payment_links": [
            {
                "id": _bytes_to_hex(link.id),
                "merchant": _bytes_to_hex(link.merchant),
                "amount": link.amount,
                "currency": _bytes_to_hex(link.currency),
                "active": link.active,
                "metadata": link.metadata,
                "created_at": link.created_at,
                "payer": _opt_hex(link.payer),
                "paid_at": link.paid_at,
            }
            for link in state.payment_links.values()
        ],
        "escrows": [
            {
                "id": _bytes_to_hex(e.id),
                "merchant": _bytes_to_hex(e.merchant),
                "buyer": _bytes_to_hex(e.buyer),
                "amount": e.amount,
                "currency": _bytes_to_hex(e.currency),
                "deadline": e.deadline,
                "state": e.state.name,
                "description": e.description,
                "dispute_reason": e.dispute_reason,
                "created_at": e.created_at,
                "funded_at": e.funded_at,
                "settled_at": e.settled_at,
                "merchant_payout": e.merchant_payout,
                "buyer_payout": e.buyer_payout,
                "fee_paid": e.fee_paid,
                "winner": _opt_hex(e.winner),
            }
            for e in state.escrows.values()
        ],
        "receipts": [
            {
                "id": _bytes_to_hex(r.id),
                "subject_id": _bytes_to_hex(r.subject_id),
                "subject": r.subject.value,
                "requester": _bytes_to_hex(r.requester),
                "issued_at": r.issued_at,
            }
            for r in state.receipts.values()
        ],
    }


def state_from_json(data: dict[str, Any]) -> ProtocolState:
    s = data["settings"]
    state = ProtocolState(
        settings=ProtocolSettings(
            owner=_hex_to_bytes(s["owner"]),
            fee_collector=_hex_to_bytes(s["fee_collector"]),
            arbitrator=_hex_to_bytes(s["arbitrator"]),
            fee_rate_bps=int(s.get("fee_rate_bps", 0)),
            default_duration_days=int(s["default_duration_days"]),
        ),
        timestamp=int(data.get("timestamp", 0)),
        sequence=int(data.get("sequence", 0)),
    )

    for a in data.get("accounts", []):
        addr = _hex_to_bytes(a["address"])
        state.accounts[addr] = AccountState(
            address=addr,
            balances={_hex_to_bytes(c): int(v) for c, v in a.get("balances", {}).items()},
            allowances={_hex_to_bytes(c): int(v) for c, v in a.get("allowances", {}).items()},
            accepts_native=bool(a.get("accepts_native", True)),
        )

    state.custody = {_hex_to_bytes(c): int(v) for c, v in data.get("custody", {}).items()}
    if "supported_currencies" in data:
        state.supported_currencies = {
            _hex_to_bytes(c): bool(v) for c, v in data["supported_currencies"].items()
        }

    for link in data.get("payment_links", []):
        lid = _hex_to_bytes(link["id"])
        state.payment_links[lid] = PaymentLink(
            id=lid,
            merchant=_hex_to_bytes(link["merchant"]),
            amount=int(link["amount"]),
            currency=_hex_to_bytes(link["currency"]),
            active=bool(link.get("active", True)),
            metadata=link.get("metadata", ""),
            created_at=int(link.get("created_at", 0)),
            payer=_opt_bytes(link.get("payer")),
            paid_at=link.get("paid_at"),
        )

    for e in data.get("escrows", []):
        eid = _hex_to_bytes(e["id"])
        state.escrows[eid] = Escrow(
            id=eid,
            merchant=_hex_to_bytes(e["merchant"]),
            buyer=_hex_to_bytes(e["buyer"]),
            amount=int(e["amount"]),
            currency=_hex_to_bytes(e["currency"]),
            deadline=int(e["deadline"]),
            state=EscrowState[e.get("state", "CREATED")],
            description=e.get("description", ""),
            dispute_reason=e.get("dispute_reason", ""),
            created_at=int(e.get("created_at", 0)),
            funded_at=e.get("funded_at"),
            settled_at=e.get("settled_at"),
            merchant_payout=int(e.get("merchant_payout", 0)),
            buyer_payout=int(e.get("buyer_payout", 0)),
            fee_paid=int(e.get("fee_paid", 0)),
            winner=_opt_bytes(e.get("winner")),
        )

    for r in data.get("receipts", []):
        rid = _hex_to_bytes(r["id"])
        state.receipts[rid] = Receipt(
            id=rid,
            subject_id=_hex_to_bytes(r["subject_id"]),
            subject=ReceiptSubject(r["subject"]),
            requester=_hex_to_bytes(r["requester"]),
            issued_at=int(r.get("issued_at", 0)),
        )

    return state


def op_to_json(op: Operation) -> dict[str, Any]:
    return {
        "op_type": op.op_type.value,
        "caller": _bytes_to_hex(op.caller),
        "payload": {k: _json_value(v) for k, v in op.payload.items()},
        "value": op.value,
        "timestamp": op.timestamp,
    }


def op_from_json(data: dict[str, Any]) -> Operation:
    payload: dict[str, Any] = {}
    for k, v in data.get("payload", {}).items():
        payload[k] = _hex_to_bytes(v) if k in _BYTES_KEYS and isinstance(v, str) else v
    return Operation(
        op_type=OperationType(data["op_type"]),
        caller=_hex_to_bytes(data["caller"]),
        payload=payload,
        value=int(data.get("value", 0)),
        timestamp=int(data.get("timestamp", 0)),
    )


def result_to_json(result: TransitionResult) -> dict[str, Any]:
    return {
        "ok": result.ok,
        "error": result.error.code.name if result.error else None,
        "error_kind": result.error.kind.name if result.error else None,
        "created_id": _opt_hex(result.created_id),
        "events": [
            {
                "name": ev.name,
                "entity_id": _bytes_to_hex(ev.entity_id),
                "data": {k: _json_value(v) for k, v in ev.data.items()},
            }
            for ev in result.events
        ],
        "transfers": [
            {
                "currency": _bytes_to_hex(t.currency),
                "source": _opt_hex(t.source),
                "destination": _opt_hex(t.destination),
                "amount": t.amount,
            }
            for t in result.transfers
        ],
    }
