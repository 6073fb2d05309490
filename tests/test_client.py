"""Tests for the JSON-RPC client against a mocked HTTP transport."""

import json
from decimal import Decimal

import httpx
import pytest

from solana_incubator.rpc.client import TOKEN_PROGRAM_ID, SolanaRPCClient
from solana_incubator.rpc.exceptions import RPCError

URL = "https://rpc.example"
OWNER = "H8oTGbCNLRXu844GBRXCAfWTxt6Sa9vB9gut9bLrPdWv"
MINT = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"


def make_client(handler, commitment: str = "processed") -> SolanaRPCClient:
    return SolanaRPCClient(URL, commitment=commitment, transport=httpx.MockTransport(handler))


def rpc_result(result):
    """Handler answering every request with the given result."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return handler


def token_account(mint: str, ui_amount_string: str | None, ui_amount: float | None = None) -> dict:
    token_amount = {"amount": "0", "decimals": 6, "uiAmount": ui_amount}
    if ui_amount_string is not None:
        token_amount["uiAmountString"] = ui_amount_string
    return {
        "pubkey": "AccountPubkey",
        "account": {
            "data": {
                "program": "spl-token",
                "parsed": {"type": "account", "info": {"mint": mint, "owner": OWNER, "tokenAmount": token_amount}},
            }
        },
    }


@pytest.mark.asyncio
async def test_get_block_height_sends_commitment():
    """Test the getBlockHeight request shape and result."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": 287_654_321})

    async with make_client(handler, commitment="confirmed") as client:
        height = await client.get_block_height()

    assert height == 287_654_321
    assert seen[0]["method"] == "getBlockHeight"
    assert seen[0]["params"] == [{"commitment": "confirmed"}]
    assert seen[0]["jsonrpc"] == "2.0"


@pytest.mark.asyncio
async def test_request_ids_increase():
    ids = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        ids.append(body["id"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": 1})

    async with make_client(handler) as client:
        await client.get_block_height()
        await client.get_block_height()

    assert ids == [1, 2]


@pytest.mark.asyncio
@pytest.mark.parametrize("result", [None, "12", 1.5, True])
async def test_get_block_height_rejects_non_integer(result):
    async with make_client(rpc_result(result)) as client:
        with pytest.raises(RPCError):
            await client.get_block_height()


@pytest.mark.asyncio
async def test_json_rpc_error_is_raised():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "Node is behind"}},
        )

    async with make_client(handler) as client:
        with pytest.raises(RPCError) as exc_info:
            await client.get_block_height()

    assert exc_info.value.code == -32005
    assert exc_info.value.endpoint == URL
    assert "Node is behind" in str(exc_info.value)


@pytest.mark.asyncio
async def test_http_status_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, text="Too Many Requests")

    async with make_client(handler) as client:
        with pytest.raises(RPCError) as exc_info:
            await client.get_block_height()

    assert exc_info.value.code == 429
    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)


@pytest.mark.asyncio
async def test_timeout_is_mapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    async with make_client(handler) as client:
        with pytest.raises(RPCError) as exc_info:
            await client.get_block_height(timeout=0.5)

    assert isinstance(exc_info.value.__cause__, httpx.TimeoutException)


@pytest.mark.asyncio
async def test_connection_error_is_mapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(RPCError):
            await client.get_block_height()


@pytest.mark.asyncio
async def test_invalid_json_is_mapped():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>bad gateway</html>")

    async with make_client(handler) as client:
        with pytest.raises(RPCError):
            await client.get_block_height()


@pytest.mark.asyncio
async def test_missing_result_is_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1})

    async with make_client(handler) as client:
        with pytest.raises(RPCError):
            await client.get_block_height()


@pytest.mark.asyncio
async def test_get_token_balance_matches_mint():
    """Test that only the account for the requested mint counts."""
    seen = []
    accounts = [
        token_account("OtherMint111", "5.0", 5.0),
        token_account(MINT, "1234.567891", 1234.567891),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "result": {"context": {"slot": 1}, "value": accounts}},
        )

    async with make_client(handler) as client:
        balance = await client.get_token_balance(OWNER, MINT)

    assert balance == Decimal("1234.567891")
    assert seen[0]["method"] == "getParsedTokenAccountsByOwner"
    assert seen[0]["params"][0] == OWNER
    assert seen[0]["params"][1] == {"programId": TOKEN_PROGRAM_ID}
    assert seen[0]["params"][2]["encoding"] == "jsonParsed"


@pytest.mark.asyncio
async def test_get_token_balance_falls_back_to_ui_amount():
    result = {"context": {"slot": 1}, "value": [token_account(MINT, None, 12.5)]}

    async with make_client(rpc_result(result)) as client:
        assert await client.get_token_balance(OWNER, MINT) == Decimal("12.5")


@pytest.mark.asyncio
async def test_get_token_balance_without_account_is_zero():
    result = {"context": {"slot": 1}, "value": []}

    async with make_client(rpc_result(result)) as client:
        assert await client.get_token_balance(OWNER, MINT) == Decimal(0)


@pytest.mark.asyncio
async def test_get_token_balance_malformed_response():
    result = {"context": {"slot": 1}, "value": [{"account": {"data": "base64-not-parsed"}}]}

    async with make_client(rpc_result(result)) as client:
        with pytest.raises(RPCError):
            await client.get_token_balance(OWNER, MINT)


@pytest.mark.asyncio
async def test_send_transaction_returns_signature():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "5VERYsig"})

    async with make_client(handler) as client:
        signature = await client.send_transaction("AQID")

    assert signature == "5VERYsig"
    assert seen[0]["method"] == "sendTransaction"
    assert seen[0]["params"][0] == "AQID"
    assert seen[0]["params"][1]["encoding"] == "base64"
