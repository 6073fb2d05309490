"""Endpoint pool with health probing, failover and retry."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from solana_incubator.core.models import EndpointStatus, IncubatorSettings
from solana_incubator.rpc.client import SolanaRPCClient
from solana_incubator.rpc.exceptions import NoHealthyEndpointError, OperationFailedError, ProbeFailure
from solana_incubator.rpc.retry import RetryConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

ClientFactory = Callable[[str], SolanaRPCClient]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(eq=False)
class Endpoint:
    """One remote RPC address plus its persistent connection handle."""

    url: str
    client: SolanaRPCClient
    healthy: bool = True


class EndpointPool:
    """
    Fixed, ordered set of interchangeable RPC endpoints.

    The pool hides which physical endpoint serves a call. Callers either ask
    for a healthy endpoint with :meth:`get_endpoint` or hand an operation to
    :meth:`execute_with_retry`, which retries with exponential backoff and
    fails over to the next healthy endpoint.

    Health flags and the cursor are only written by the pool itself and are
    not guarded by locks: all access happens on one event loop.

    Parameters
    ----------
    urls : Sequence[str]
        Endpoint URLs in failover order. Must be non-empty and unique.
    retry_config : RetryConfig | None
        Standing retry policy
    commitment : str
        Commitment level passed to every client
    timeout : float
        Request timeout for regular calls
    probe_timeout : float
        Request timeout for health probes
    client_factory : ClientFactory | None
        Builds the connection handle for a URL. Defaults to
        :class:`SolanaRPCClient`.
    sleep : Sleep
        Coroutine used to wait between retries

    """

    def __init__(
        self,
        urls: Sequence[str],
        retry_config: RetryConfig | None = None,
        *,
        commitment: str = "processed",
        timeout: float = 60.0,
        probe_timeout: float = 15.0,
        client_factory: ClientFactory | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if not urls:
            msg = "EndpointPool needs at least one endpoint"
            raise ValueError(msg)
        if len(set(urls)) != len(urls):
            msg = "EndpointPool endpoints must be unique"
            raise ValueError(msg)

        if client_factory is None:

            def client_factory(url: str) -> SolanaRPCClient:
                return SolanaRPCClient(url, commitment=commitment, timeout=timeout)

        self.retry_config = retry_config or RetryConfig()
        self.probe_timeout = probe_timeout
        self._sleep = sleep
        self._endpoints: tuple[Endpoint, ...] = tuple(Endpoint(url=url, client=client_factory(url)) for url in urls)
        self._index = 0

    @classmethod
    def from_settings(cls, settings: IncubatorSettings, **kwargs) -> "EndpointPool":
        """
        Build a pool from network settings.

        Parameters
        ----------
        settings : IncubatorSettings
            Loaded configuration
        **kwargs
            Extra keyword arguments forwarded to the constructor

        Returns
        -------
        EndpointPool
            New pool with one client per configured endpoint

        """
        return cls(
            settings.rpc_endpoints,
            RetryConfig(max_retries=settings.max_retries, base_delay=settings.retry_delay),
            commitment=settings.commitment.value,
            timeout=settings.request_timeout,
            probe_timeout=settings.probe_timeout,
            **kwargs,
        )

    @property
    def endpoints(self) -> tuple[Endpoint, ...]:
        """Endpoints in failover order."""
        return self._endpoints

    @property
    def current_index(self) -> int:
        """Index of the endpoint the cursor points at."""
        return self._index

    @property
    def current(self) -> Endpoint:
        """Endpoint the cursor points at, healthy or not."""
        return self._endpoints[self._index]

    def __len__(self) -> int:
        return len(self._endpoints)

    async def probe(self, endpoint: Endpoint) -> bool:
        """
        Check whether an endpoint is alive and synced.

        The endpoint is healthy only if ``getBlockHeight`` succeeds within
        ``probe_timeout`` and reports a strictly positive height. Errors are
        never propagated.

        Parameters
        ----------
        endpoint : Endpoint
            Endpoint to check

        Returns
        -------
        bool
            True if the endpoint is healthy

        """
        try:
            height = await endpoint.client.get_block_height(timeout=self.probe_timeout)
            if height <= 0:
                msg = f"{endpoint.url} reported block height {height}"
                raise ProbeFailure(msg, endpoint=endpoint.url)
        except Exception as e:
            logger.debug("Probe failed for %s: %s", endpoint.url, e)
            return False
        return True

    async def acquire_healthy_endpoint(self) -> Endpoint:
        """
        Scan the pool round-robin from the cursor for a healthy endpoint.

        Each endpoint is probed at most once per call. The first endpoint
        that passes becomes current and is marked healthy; every endpoint
        that fails is marked unhealthy.

        Returns
        -------
        Endpoint
            Healthy endpoint, now under the cursor

        Raises
        ------
        NoHealthyEndpointError
            If every endpoint failed its probe

        """
        count = len(self._endpoints)
        start = self._index

        for step in range(count):
            index = (start + step) % count
            endpoint = self._endpoints[index]

            if await self.probe(endpoint):
                self._index = index
                endpoint.healthy = True
                return endpoint

            endpoint.healthy = False
            self._index = (index + 1) % count

        msg = f"No healthy RPC endpoints available ({count} probed)"
        raise NoHealthyEndpointError(msg)

    async def get_endpoint(self) -> Endpoint:
        """
        Return the current endpoint, scanning for a new one if it is unhealthy.

        Returns
        -------
        Endpoint
            Endpoint to use for the next call

        Raises
        ------
        NoHealthyEndpointError
            If the current endpoint is unhealthy and no other endpoint passes
            its probe

        """
        endpoint = self._endpoints[self._index]
        if endpoint.healthy:
            return endpoint
        return await self.acquire_healthy_endpoint()

    async def execute_with_retry(
        self,
        operation: Callable[[SolanaRPCClient], Awaitable[T]],
        max_retries: int | None = None,
    ) -> T:
        """
        Run an operation against a healthy endpoint, retrying on failure.

        Makes up to ``max_retries + 1`` attempts. An attempt that raises marks
        its endpoint unhealthy, so the next attempt scans for another one.
        Between attempts the pool sleeps ``base_delay * exponential_base **
        attempt``.

        Parameters
        ----------
        operation : Callable[[SolanaRPCClient], Awaitable[T]]
            Performs one remote call with the given endpoint's client. The
            operation never sees the pool's endpoint state.
        max_retries : int | None
            Retries after the first attempt. Uses the pool's retry config if
            None.

        Returns
        -------
        T
            Value returned by the first successful attempt

        Raises
        ------
        NoHealthyEndpointError
            If a scan finds no healthy endpoint. Not retried.
        OperationFailedError
            If every attempt failed

        """
        retries = self.retry_config.max_retries if max_retries is None else max_retries
        last_exception: Exception | None = None

        for attempt in range(retries + 1):
            endpoint = await self.get_endpoint()
            try:
                return await operation(endpoint.client)
            except Exception as e:
                last_exception = e
                endpoint.healthy = False
                logger.warning("Endpoint %s marked unhealthy: %s", endpoint.url, e)

                # Don't retry on last attempt
                if attempt == retries:
                    break

                delay = self.retry_config.get_delay(attempt)
                logger.debug(
                    "RPC operation failed (attempt %d/%d), retrying in %.1fs...",
                    attempt + 1,
                    retries + 1,
                    delay,
                )
                await self._sleep(delay)

        logger.debug("RPC operation failed after %d attempts", retries + 1)
        raise OperationFailedError(retries + 1, last_exception) from last_exception

    async def probe_all(self) -> list[EndpointStatus]:
        """
        Probe every endpoint once and refresh its health flag.

        The cursor is left where it is.

        Returns
        -------
        list[EndpointStatus]
            Health of every endpoint after probing

        """
        results = await asyncio.gather(*(self.probe(endpoint) for endpoint in self._endpoints))
        for endpoint, healthy in zip(self._endpoints, results, strict=True):
            endpoint.healthy = healthy
        return self.health_snapshot()

    def health_snapshot(self) -> list[EndpointStatus]:
        """Current health flags without probing."""
        return [
            EndpointStatus(url=endpoint.url, healthy=endpoint.healthy, current=index == self._index)
            for index, endpoint in enumerate(self._endpoints)
        ]

    async def aclose(self) -> None:
        """Close every connection handle."""
        await asyncio.gather(*(endpoint.client.aclose() for endpoint in self._endpoints), return_exceptions=True)
