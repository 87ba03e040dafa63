"""Deterministic named identities and currencies for tests and scenarios."""

from __future__ import annotations

from blake3 import blake3

from .config import NATIVE_CURRENCY


def identity(name: str) -> bytes:
    """32-byte identity derived from a human-readable name."""
    return blake3(b"payescrow/test-account/" + name.encode("utf-8")).digest()


def token(symbol: str) -> bytes:
    """32-byte fungible-token currency id derived from a ticker symbol."""
    return blake3(b"payescrow/test-token/" + symbol.encode("utf-8")).digest()


# Named constants
OWNER = identity("owner")
ARBITRATOR = identity("arbitrator")
FEE_COLLECTOR = identity("fee_collector")
ALICE = identity("alice")  # buyer / payer
BOB = identity("bob")  # merchant
CAROL = identity("carol")
MALLORY = identity("mallory")

NATIVE = NATIVE_CURRENCY
USDC = token("USDC")
DAI = token("DAI")

CURRENCIES: dict[str, bytes] = {
    "native": NATIVE,
    "USDC": USDC,
    "DAI": DAI,
}
