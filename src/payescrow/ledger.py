"""Currency ledger: value movement into and out of protocol custody.

Both helpers mutate the state they are given. Operations always hand in their
working copy, so a failed leg discards every earlier leg of the same
operation together with any entity mutation.
"""

from __future__ import annotations

from .config import NATIVE_CURRENCY, U256_MAX
from .errors import ErrorCode, ProtocolError
from .types import ProtocolState, Transfer


def is_native(currency: bytes) -> bool:
    return currency == NATIVE_CURRENCY


def collect(state: ProtocolState, payer: bytes, currency: bytes, amount: int) -> None:
    """Move ``amount`` from ``payer`` into custody.

    Native value is attached to the call itself; the attached value has
    already been matched against ``amount`` during verification. Tokens are
    pulled against the allowance the payer granted the protocol.
    """
    if amount == 0:
        return

    acct = state.accounts.get(payer)
    if acct is None:
        raise ProtocolError(ErrorCode.INSUFFICIENT_BALANCE, "payer has no balance")

    if not is_native(currency):
        allowance = acct.allowances.get(currency, 0)
        if allowance < amount:
            raise ProtocolError(ErrorCode.INSUFFICIENT_ALLOWANCE, "insufficient allowance")
        acct.allowances[currency] = allowance - amount

    balance = acct.balance_of(currency)
    if balance < amount:
        raise ProtocolError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient balance")
    acct.balances[currency] = balance - amount

    held = state.custody.get(currency, 0)
    if held + amount > U256_MAX:
        raise ProtocolError(ErrorCode.TRANSFER_FAILED, "custody balance overflow")
    state.custody[currency] = held + amount
    state.transfer_log.append(
        Transfer(currency=currency, source=payer, destination=None, amount=amount)
    )


def disburse(state: ProtocolState, recipient: bytes, currency: bytes, amount: int) -> None:
    """Move ``amount`` out of custody to ``recipient``."""
    if amount == 0:
        return

    held = state.custody.get(currency, 0)
    if held < amount:
        raise ProtocolError(ErrorCode.TRANSFER_FAILED, "custody shortfall")

    acct = state.account(recipient)
    if is_native(currency) and not acct.accepts_native:
        raise ProtocolError(ErrorCode.TRANSFER_REJECTED, "recipient rejected native transfer")

    balance = acct.balance_of(currency)
    if balance + amount > U256_MAX:
        raise ProtocolError(ErrorCode.TRANSFER_FAILED, "recipient balance overflow")

    state.custody[currency] = held - amount
    acct.balances[currency] = balance + amount
    state.transfer_log.append(
        Transfer(currency=currency, source=None, destination=recipient, amount=amount)
    )
