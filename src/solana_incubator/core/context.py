"""Application context owning the process-wide endpoint pool."""

import logging
import threading

from solana_incubator.core.models import IncubatorSettings
from solana_incubator.rpc.pool import EndpointPool

logger = logging.getLogger(__name__)


class AppContext:
    """
    Holds configuration and the single shared :class:`EndpointPool`.

    The pool is built on first access. Construction is guarded so that
    concurrent first callers all receive the same instance.

    Parameters
    ----------
    settings : IncubatorSettings
        Loaded network configuration
    **pool_kwargs
        Extra keyword arguments for :meth:`EndpointPool.from_settings`

    """

    def __init__(self, settings: IncubatorSettings, **pool_kwargs) -> None:
        self.settings = settings
        self._pool_kwargs = pool_kwargs
        self._pool: EndpointPool | None = None
        self._init_lock = threading.Lock()

    @property
    def pool(self) -> EndpointPool:
        """Shared endpoint pool, built once."""
        if self._pool is None:
            with self._init_lock:
                if self._pool is None:
                    logger.debug("Building endpoint pool for %d endpoints", len(self.settings.rpc_endpoints))
                    self._pool = EndpointPool.from_settings(self.settings, **self._pool_kwargs)
        return self._pool

    async def aclose(self) -> None:
        """Close the pool's connections if it was ever built."""
        if self._pool is not None:
            await self._pool.aclose()
            self._pool = None
