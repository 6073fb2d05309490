"""Pytest configuration and fakes for solana-incubator tests."""

import asyncio
from decimal import Decimal

import pytest

from solana_incubator.core.models import IncubatorSettings
from solana_incubator.rpc.pool import EndpointPool
from solana_incubator.rpc.retry import RetryConfig

OWNER = "H8oTGbCNLRXu844GBRXCAfWTxt6Sa9vB9gut9bLrPdWv"
MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
URLS = ("https://rpc-a.example", "https://rpc-b.example", "https://rpc-c.example")


class FakeRPCClient:
    """
    In-memory stand-in for SolanaRPCClient.

    ``height`` may be an int or an exception to raise from probes.
    ``outcomes`` is consumed one item per balance call (a Decimal or an
    exception); once empty, ``balance`` is returned. When ``gate`` is set,
    balance calls wait on it before answering.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self.height: int | None | Exception = 250_000_000
        self.balance = Decimal("0")
        self.outcomes: list[Decimal | Exception] = []
        self.gate: asyncio.Event | None = None
        self.signature = "5sig"
        self.probe_calls = 0
        self.balance_calls = 0
        self.sent: list[str] = []
        self.closed = False

    async def get_block_height(self, timeout: float | None = None) -> int | None:
        self.probe_calls += 1
        if isinstance(self.height, Exception):
            raise self.height
        return self.height

    async def get_token_balance(self, owner: str, mint: str) -> Decimal:
        self.balance_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return self.balance

    async def send_transaction(self, payload: str) -> str:
        self.sent.append(payload)
        return self.signature

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the pool between retries."""
    return []


@pytest.fixture
def make_pool(sleeps):
    """Factory building an EndpointPool backed by FakeRPCClient instances."""

    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    def factory(urls=URLS, max_retries: int = 3, base_delay: float = 1.0) -> EndpointPool:
        return EndpointPool(
            list(urls),
            RetryConfig(max_retries=max_retries, base_delay=base_delay),
            client_factory=FakeRPCClient,
            sleep=fake_sleep,
        )

    return factory


@pytest.fixture
def pool(make_pool) -> EndpointPool:
    return make_pool()


@pytest.fixture
def settings() -> IncubatorSettings:
    return IncubatorSettings(
        rpc_endpoints=list(URLS),
        owner_wallet=OWNER,
        token_mint=MINT,
    )
