"""Balance and deposit operations routed through the endpoint pool."""

import logging
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import TYPE_CHECKING

from solana_incubator.rpc.client import SolanaRPCClient
from solana_incubator.rpc.pool import EndpointPool

if TYPE_CHECKING:
    from solana_incubator.balance.poller import BalancePoller

logger = logging.getLogger(__name__)


def balance_query(owner: str, mint: str) -> Callable[[SolanaRPCClient], Awaitable[Decimal]]:
    """
    Build a pool operation that reads the token balance of ``owner``.

    Parameters
    ----------
    owner : str
        Wallet public key
    mint : str
        Token mint public key

    Returns
    -------
    Callable[[SolanaRPCClient], Awaitable[Decimal]]
        Operation suitable for :meth:`EndpointPool.execute_with_retry`

    """

    async def operation(client: SolanaRPCClient) -> Decimal:
        return await client.get_token_balance(owner, mint)

    return operation


async def fetch_balance(pool: EndpointPool, owner: str, mint: str, max_retries: int | None = None) -> Decimal:
    """
    Fetch a token balance with failover and retry.

    Raises
    ------
    NoHealthyEndpointError
        If no endpoint passes its probe
    OperationFailedError
        If every attempt failed

    """
    return await pool.execute_with_retry(balance_query(owner, mint), max_retries)


async def submit_deposit(
    pool: EndpointPool,
    payload: str,
    poller: "BalancePoller | None" = None,
) -> str:
    """
    Submit a signed deposit transaction and refresh the tracked balance.

    Resubmitting the same signed transaction is harmless, so the submission
    goes through the regular retry path.

    Parameters
    ----------
    pool : EndpointPool
        Shared endpoint pool
    payload : str
        Signed transaction, base64 encoded
    poller : BalancePoller | None
        Poller to refresh once the transaction is accepted

    Returns
    -------
    str
        Transaction signature

    """

    async def operation(client: SolanaRPCClient) -> str:
        return await client.send_transaction(payload)

    signature = await pool.execute_with_retry(operation)
    logger.info("Deposit transaction submitted: %s", signature)

    if poller is not None:
        await poller.refetch()

    return signature
