"""Data models for configuration, endpoint health and balance snapshots."""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Commitment(StrEnum):
    """Solana commitment levels."""

    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"


class IncubatorSettings(BaseModel):
    """
    Static network configuration.

    Attributes
    ----------
    rpc_endpoints : list[str]
        Ordered endpoint URLs. The order is the failover order.
    commitment : Commitment
        Commitment level used for every query
    request_timeout : float
        Timeout in seconds for regular RPC calls
    probe_timeout : float
        Timeout in seconds for health probes
    owner_wallet : str
        Wallet whose token balance is tracked
    token_mint : str
        Mint of the tracked token (USDT)
    max_retries : int
        Retries after the first attempt
    retry_delay : float
        Base backoff delay in seconds
    refresh_interval : float
        Seconds between background balance refreshes
    goal_amount : Decimal
        Deposit goal used for progress reporting
    reward_rate : Decimal
        Reward tokens credited per deposited token
    reward_token : str
        Symbol of the reward token

    """

    model_config = ConfigDict(frozen=True)

    rpc_endpoints: list[str] = Field(min_length=1)
    commitment: Commitment = Commitment.PROCESSED
    request_timeout: float = Field(default=60.0, gt=0)
    probe_timeout: float = Field(default=15.0, gt=0)
    owner_wallet: str
    token_mint: str
    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)
    refresh_interval: float = Field(default=30.0, gt=0)
    goal_amount: Decimal = Field(default=Decimal("33000"), gt=0)
    reward_rate: Decimal = Field(default=Decimal("2.5"), ge=0)
    reward_token: str = "CTE"

    @field_validator("rpc_endpoints")
    @classmethod
    def _unique_endpoints(cls, value: list[str]) -> list[str]:
        endpoints = [url.strip() for url in value]
        if any(not url for url in endpoints):
            msg = "RPC endpoint URLs must not be empty"
            raise ValueError(msg)
        if len(set(endpoints)) != len(endpoints):
            msg = "RPC endpoint URLs must be unique"
            raise ValueError(msg)
        return endpoints

    def expected_rewards(self, amount: Decimal) -> Decimal:
        """Reward tokens earned for depositing ``amount``."""
        return amount * self.reward_rate


class EndpointStatus(BaseModel):
    """
    Health view of one pooled endpoint.

    Attributes
    ----------
    url : str
        Endpoint URL
    healthy : bool
        Current health flag
    current : bool
        True if the pool cursor points at this endpoint

    """

    url: str
    healthy: bool
    current: bool = False


class BalanceSnapshot(BaseModel):
    """
    State published by the balance poller.

    Attributes
    ----------
    value : Decimal
        Last successfully observed balance
    is_loading : bool
        True while the first fetch after attach is running
    error : str | None
        Message of the most recent failed fetch, cleared on success
    last_updated : datetime | None
        When ``value`` was last refreshed

    """

    model_config = ConfigDict(frozen=True)

    value: Decimal = Decimal(0)
    is_loading: bool = False
    error: str | None = None
    last_updated: datetime | None = None

    def progress(self, goal: Decimal) -> Decimal:
        """Percentage of ``goal`` reached, capped at 100."""
        if goal <= 0:
            return Decimal(0)
        return min(self.value / goal * 100, Decimal(100))
