"""Payescrow protocol constants and engine bootstrap configuration.

Constants mirror the bounds enforced by the deployed payment and escrow
contracts; `EngineConfig` carries the runtime settings an engine is started
with.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

# Identities / currencies
IDENTITY_LEN = 32
ZERO_IDENTITY = bytes(IDENTITY_LEN)
NATIVE_CURRENCY = bytes(IDENTITY_LEN)

# Units
U256_MAX = (1 << 256) - 1

# Fees
BPS_DENOMINATOR = 10_000
MAX_FEE_RATE_BPS = 500  # 5%
DEFAULT_FEE_RATE_BPS = 100  # 1%

# Dispute arbitration
MIN_MERCHANT_PERCENT = 0
MAX_MERCHANT_PERCENT = 100

# Escrow durations
SECONDS_PER_DAY = 86_400
DEFAULT_ESCROW_DURATION_DAYS = 14
MIN_ESCROW_DURATION_DAYS = 1
MAX_ESCROW_DURATION_DAYS = 365

# Free-text limits
MAX_METADATA_LEN = 1024
MAX_DESCRIPTION_LEN = 1024
MAX_REASON_LEN = 1024

# Id derivation domain tags
PAYMENT_LINK_DOMAIN = b"payescrow/payment-link/v1"
ESCROW_DOMAIN = b"payescrow/escrow/v1"
RECEIPT_DOMAIN = b"payescrow/receipt/v1"


def _env_identity(name: str) -> Optional[bytes]:
    value = os.environ.get(name, "").strip()
    if not value:
        return None
    v = value[2:] if value.startswith(("0x", "0X")) else value
    raw = bytes.fromhex(v)
    if len(raw) != IDENTITY_LEN:
        raise ValueError(f"{name} must be {IDENTITY_LEN} bytes, got {len(raw)}")
    return raw


@dataclass
class EngineConfig:
    """Settings an engine is bootstrapped with."""
    owner: bytes
    fee_collector: Optional[bytes] = None
    arbitrator: Optional[bytes] = None
    fee_rate_bps: int = DEFAULT_FEE_RATE_BPS
    default_duration_days: int = DEFAULT_ESCROW_DURATION_DAYS
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not 0 <= self.fee_rate_bps <= MAX_FEE_RATE_BPS:
            raise ValueError(f"fee_rate_bps must be within 0..{MAX_FEE_RATE_BPS}")
        if not MIN_ESCROW_DURATION_DAYS <= self.default_duration_days <= MAX_ESCROW_DURATION_DAYS:
            raise ValueError(
                f"default_duration_days must be within "
                f"{MIN_ESCROW_DURATION_DAYS}..{MAX_ESCROW_DURATION_DAYS}"
            )

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load configuration from environment variables.

        PAYESCROW_OWNER is required. Fee collector and arbitrator default to
        the owner when unset.
        """
        owner = _env_identity("PAYESCROW_OWNER")
        if owner is None:
            raise ValueError("PAYESCROW_OWNER is not set")

        return cls(
            owner=owner,
            fee_collector=_env_identity("PAYESCROW_FEE_COLLECTOR"),
            arbitrator=_env_identity("PAYESCROW_ARBITRATOR"),
            fee_rate_bps=int(os.environ.get("PAYESCROW_FEE_RATE_BPS", DEFAULT_FEE_RATE_BPS)),
            default_duration_days=int(
                os.environ.get("PAYESCROW_DEFAULT_DURATION_DAYS", DEFAULT_ESCROW_DURATION_DAYS)
            ),
            log_level=os.environ.get("PAYESCROW_LOG_LEVEL", "INFO").upper(),
        )
