"""Core models and application context."""

from solana_incubator.core.models import (
    BalanceSnapshot,
    Commitment,
    EndpointStatus,
    IncubatorSettings,
)

__all__ = [
    "BalanceSnapshot",
    "Commitment",
    "EndpointStatus",
    "IncubatorSettings",
]
