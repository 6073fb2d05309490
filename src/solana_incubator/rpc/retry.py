"""Retry policy with exponential backoff for RPC calls."""

from pydantic import BaseModel, ConfigDict, Field


class RetryConfig(BaseModel):
    """
    Configuration for retry behavior.

    Instances are immutable once built.

    Parameters
    ----------
    max_retries : int
        Number of retries after the first attempt (total attempts = max_retries + 1)
    base_delay : float
        Delay in seconds before the first retry
    exponential_base : float
        Base for exponential backoff calculation
    max_delay : float | None
        Upper bound for a single delay. None leaves delays uncapped.

    """

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=1.0, ge=0)
    exponential_base: float = Field(default=2.0, ge=1)
    max_delay: float | None = Field(default=None, gt=0)

    @property
    def max_attempts(self) -> int:
        """Total number of tries, including the first one."""
        return self.max_retries + 1

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given retry attempt using exponential backoff.

        Parameters
        ----------
        attempt : int
            Index of the attempt that just failed (0-indexed)

        Returns
        -------
        float
            Delay in seconds

        """
        delay = self.base_delay * (self.exponential_base**attempt)
        if self.max_delay is not None:
            return min(delay, self.max_delay)
        return delay
