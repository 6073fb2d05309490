"""Periodic balance polling with a single in-flight fetch."""

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal

from solana_incubator.balance.query import fetch_balance
from solana_incubator.core.models import BalanceSnapshot, IncubatorSettings
from solana_incubator.rpc.pool import EndpointPool

logger = logging.getLogger(__name__)

FETCH_ERROR_MESSAGE = "Unable to fetch balance"

Listener = Callable[[BalanceSnapshot], None]


class PollHandle:
    """
    Cancellation token for one attach session of a :class:`BalancePoller`.

    A fetch checks its session's handle before writing results back, so a
    response that lands after :meth:`BalancePoller.stop` is discarded.

    Attributes
    ----------
    detached : bool
        True once the session has been stopped. Terminal.
    in_flight : bool
        True while a fetch for this session is running

    """

    def __init__(self) -> None:
        self.detached = False
        self.in_flight = False


class BalancePoller:
    """
    Keeps one token balance current for a consumer.

    The balance is fetched once on :meth:`start` and then every ``interval``
    seconds. At most one fetch runs at a time: ticks and :meth:`refetch`
    calls that arrive while a fetch is running are dropped. A failed fetch
    keeps the last good value and records an error message.

    Must be started from inside a running event loop.

    Parameters
    ----------
    pool : EndpointPool
        Shared endpoint pool
    owner : str
        Wallet whose balance is tracked
    mint : str
        Token mint
    interval : float
        Seconds between background refreshes
    max_retries : int | None
        Retry override for each fetch. Uses the pool's policy if None.

    """

    def __init__(
        self,
        pool: EndpointPool,
        owner: str,
        mint: str,
        interval: float = 30.0,
        max_retries: int | None = None,
    ) -> None:
        if interval <= 0:
            msg = "Poll interval must be positive"
            raise ValueError(msg)
        self.pool = pool
        self.owner = owner
        self.mint = mint
        self.interval = interval
        self.max_retries = max_retries
        self._snapshot = BalanceSnapshot()
        self._handle: PollHandle | None = None
        self._timer: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[Listener] = []

    @classmethod
    def from_settings(cls, pool: EndpointPool, settings: IncubatorSettings) -> "BalancePoller":
        """Build a poller for the configured wallet and mint."""
        return cls(
            pool,
            owner=settings.owner_wallet,
            mint=settings.token_mint,
            interval=settings.refresh_interval,
        )

    @property
    def snapshot(self) -> BalanceSnapshot:
        """Latest published state."""
        return self._snapshot

    @property
    def current_value(self) -> Decimal:
        return self._snapshot.value

    @property
    def is_loading(self) -> bool:
        return self._snapshot.is_loading

    @property
    def last_error(self) -> str | None:
        return self._snapshot.error

    @property
    def is_attached(self) -> bool:
        return self._handle is not None and not self._handle.detached

    @property
    def in_flight(self) -> bool:
        return self._handle is not None and self._handle.in_flight

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback invoked with every published snapshot.

        Returns
        -------
        Callable[[], None]
            Function that removes the listener

        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self) -> PollHandle:
        """
        Attach the poller: fetch immediately, then on every interval.

        The loading state is published before this returns, so consumers
        never see an empty balance for a new session.

        Returns
        -------
        PollHandle
            Token for the new session, or the current one if already attached

        """
        if self._handle is not None and not self._handle.detached:
            return self._handle

        handle = PollHandle()
        self._handle = handle
        self._snapshot = BalanceSnapshot()
        self._publish(is_loading=True)
        self._spawn_fetch()
        self._timer = asyncio.create_task(self._run_timer(handle))
        logger.debug("Balance poller started (interval %.1fs)", self.interval)
        return handle

    def stop(self) -> None:
        """
        Detach the poller.

        Future ticks are cancelled immediately. A fetch already in flight is
        not aborted, but its result is discarded.
        """
        handle = self._handle
        if handle is None:
            return
        handle.detached = True
        self._handle = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        logger.debug("Balance poller stopped")

    async def fetch_once(self) -> None:
        """
        Fetch the balance once and publish the outcome.

        Returns immediately if the poller is not attached or a fetch is
        already running. Never raises for remote failures.
        """
        handle = self._handle
        if handle is None or handle.detached or handle.in_flight:
            return

        # Set before the first await so overlapping callers see it
        handle.in_flight = True
        try:
            value = await fetch_balance(self.pool, self.owner, self.mint, self.max_retries)
        except Exception as e:
            if not handle.detached:
                logger.warning("Balance fetch failed: %s", e)
                self._publish(error=FETCH_ERROR_MESSAGE, is_loading=False)
        else:
            if not handle.detached:
                self._publish(value=value, error=None, is_loading=False, last_updated=datetime.now(UTC))
        finally:
            handle.in_flight = False

    async def refetch(self) -> None:
        """Manual refresh, subject to the same in-flight guard as the timer."""
        await self.fetch_once()

    def _spawn_fetch(self) -> None:
        task = asyncio.create_task(self.fetch_once())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_timer(self, handle: PollHandle) -> None:
        while not handle.detached:
            await asyncio.sleep(self.interval)
            if handle.detached:
                break
            if handle.in_flight:
                logger.debug("Skipping balance refresh tick, fetch still in flight")
                continue
            self._spawn_fetch()

    def _publish(self, **changes) -> None:
        self._snapshot = self._snapshot.model_copy(update=changes)
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                logger.exception("Balance listener %r failed", listener)

    async def __aenter__(self) -> "BalancePoller":
        """Async context manager entry."""
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: object | None,
    ) -> None:
        """Async context manager exit."""
        timer = self._timer
        self.stop()
        if timer is not None:
            await asyncio.gather(timer, return_exceptions=True)
