"""Async Solana JSON-RPC client built on httpx."""

import itertools
import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from solana_incubator.rpc.exceptions import RPCError

logger = logging.getLogger(__name__)

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"


class SolanaRPCClient:
    """
    Persistent JSON-RPC connection to a single Solana endpoint.

    One client wraps one ``httpx.AsyncClient`` and is reused for every call
    made against the endpoint.

    Parameters
    ----------
    url : str
        Endpoint URL
    commitment : str
        Commitment level sent with every query
    timeout : float
        Default request timeout in seconds
    transport : httpx.AsyncBaseTransport | None
        Custom transport, mainly for tests

    """

    def __init__(
        self,
        url: str,
        commitment: str = "processed",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.commitment = commitment
        self.timeout = timeout
        self._ids = itertools.count(1)
        self.client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def request(self, method: str, params: list[Any] | None = None, timeout: float | None = None) -> Any:
        """
        Send one JSON-RPC request and return its ``result`` member.

        Parameters
        ----------
        method : str
            RPC method name (e.g., 'getBlockHeight')
        params : list[Any] | None
            Method parameters
        timeout : float | None
            Override for the client timeout

        Returns
        -------
        Any
            The decoded ``result`` value

        Raises
        ------
        RPCError
            On transport failure, HTTP error status, invalid JSON or a
            JSON-RPC error response

        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}

        try:
            response = await self.client.post(
                self.url,
                json=payload,
                timeout=timeout if timeout is not None else self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            msg = f"{method} timed out: {e}"
            raise RPCError(msg, endpoint=self.url) from e
        except httpx.HTTPStatusError as e:
            msg = f"HTTP error {e.response.status_code} calling {method}"
            raise RPCError(msg, endpoint=self.url, code=e.response.status_code) from e
        except httpx.HTTPError as e:
            msg = f"{method} request failed: {e}"
            raise RPCError(msg, endpoint=self.url) from e
        except ValueError as e:
            msg = f"{method} returned invalid JSON"
            raise RPCError(msg, endpoint=self.url) from e

        if not isinstance(body, dict):
            msg = f"{method} returned a non-object response"
            raise RPCError(msg, endpoint=self.url)

        error = body.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", error) if isinstance(error, dict) else error
            msg = f"{method} failed: {message}"
            raise RPCError(msg, endpoint=self.url, code=code)

        if "result" not in body:
            msg = f"{method} response has no result"
            raise RPCError(msg, endpoint=self.url)

        return body["result"]

    async def get_block_height(self, timeout: float | None = None) -> int:
        """
        Fetch the current block height.

        Returns
        -------
        int
            Block height as reported by the node

        """
        result = await self.request("getBlockHeight", [{"commitment": self.commitment}], timeout=timeout)
        if isinstance(result, bool) or not isinstance(result, int):
            msg = f"getBlockHeight returned {result!r}"
            raise RPCError(msg, endpoint=self.url)
        return result

    async def get_token_balance(self, owner: str, mint: str) -> Decimal:
        """
        Fetch the UI balance of ``mint`` held by ``owner``.

        Parameters
        ----------
        owner : str
            Wallet public key (base58)
        mint : str
            Token mint public key (base58)

        Returns
        -------
        Decimal
            Token amount in UI units. Zero when the owner holds no account
            for the mint.

        """
        result = await self.request(
            "getParsedTokenAccountsByOwner",
            [owner, {"programId": TOKEN_PROGRAM_ID}, {"commitment": self.commitment, "encoding": "jsonParsed"}],
        )

        try:
            accounts = result["value"]
            for account in accounts:
                info = account["account"]["data"]["parsed"]["info"]
                if info.get("mint") != mint:
                    continue
                token_amount = info["tokenAmount"]
                # uiAmountString keeps full precision, uiAmount is a float
                amount = token_amount.get("uiAmountString")
                if amount is None:
                    amount = token_amount.get("uiAmount")
                return Decimal(str(amount)) if amount is not None else Decimal(0)
        except (KeyError, TypeError, InvalidOperation) as e:
            msg = f"Malformed token account response from {self.url}"
            raise RPCError(msg, endpoint=self.url) from e

        logger.debug("No %s token account for %s on %s", mint, owner, self.url)
        return Decimal(0)

    async def send_transaction(self, payload: str) -> str:
        """
        Submit an already signed, base64 encoded transaction.

        Parameters
        ----------
        payload : str
            Serialized signed transaction (base64)

        Returns
        -------
        str
            Transaction signature

        """
        result = await self.request(
            "sendTransaction",
            [payload, {"encoding": "base64", "preflightCommitment": self.commitment}],
        )
        if not isinstance(result, str):
            msg = f"sendTransaction returned {result!r}"
            raise RPCError(msg, endpoint=self.url)
        return result

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "SolanaRPCClient":
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: object | None,
    ) -> None:
        """Async context manager exit."""
        await self.aclose()
