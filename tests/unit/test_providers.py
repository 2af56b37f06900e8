# PATH: tests/unit/test_providers.py
"""
Unit tests for JSON-RPC providers (failover, error mapping, registry).

Uses httpx.MockTransport; no network access.
"""

import json

import httpx
import pytest

from core.constants import ErrorCode
from core.exceptions import InfraError
from chains.block import fetch_block_number
from chains.providers import ProviderRegistry, RPCProvider, resolve_rpc_urls

PRIMARY = "https://primary.example/rpc"
BACKUP = "https://backup.example/rpc"


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def rpc_result(request: httpx.Request, result) -> httpx.Response:
    body = json.loads(request.content)
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


class TestFailover:
    """Endpoint failover."""

    @pytest.mark.asyncio
    async def test_first_endpoint_used(self):
        def handler(request):
            return rpc_result(request, "0x10")

        provider = RPCProvider(1, [PRIMARY, BACKUP], network="mainnet", client=make_client(handler))
        block, _ = await provider.get_block_number()

        assert block == 16
        assert provider.stats[PRIMARY].successful_requests == 1
        assert provider.stats[BACKUP].total_requests == 0
        await provider.close()

    @pytest.mark.asyncio
    async def test_connection_error_fails_over(self):
        def handler(request):
            if str(request.url) == PRIMARY:
                raise httpx.ConnectError("connection refused", request=request)
            return rpc_result(request, "0x20")

        provider = RPCProvider(1, [PRIMARY, BACKUP], network="mainnet", client=make_client(handler))
        response = await provider.call("eth_blockNumber")

        assert response.result == "0x20"
        assert response.endpoint_used == BACKUP
        assert provider.stats[PRIMARY].failed_requests == 1
        await provider.close()

    @pytest.mark.asyncio
    async def test_rpc_error_fails_over(self):
        def handler(request):
            if str(request.url) == PRIMARY:
                return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"message": "rate limited"}})
            return rpc_result(request, "0x1")

        provider = RPCProvider(1, [PRIMARY, BACKUP], network="mainnet", client=make_client(handler))
        response = await provider.call("eth_blockNumber")

        assert response.endpoint_used == BACKUP
        assert provider.stats[PRIMARY].last_error == "rate limited"
        await provider.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"[]", b"\"ok\"", b"null", b"7"])
    async def test_non_object_body_fails_over(self, body):
        def handler(request):
            if str(request.url) == PRIMARY:
                return httpx.Response(200, content=body)
            return rpc_result(request, "0x2a")

        provider = RPCProvider(1, [PRIMARY, BACKUP], network="mainnet", client=make_client(handler))
        block, _ = await provider.get_block_number()

        assert block == 42
        assert provider.stats[PRIMARY].failed_requests == 1
        assert "Malformed JSON-RPC body" in provider.stats[PRIMARY].last_error
        await provider.close()

    @pytest.mark.asyncio
    async def test_non_object_body_everywhere_is_infra_error(self):
        def handler(request):
            return httpx.Response(200, json=[])

        provider = RPCProvider(1, [PRIMARY, BACKUP], network="mainnet", client=make_client(handler))
        with pytest.raises(InfraError) as exc_info:
            await provider.call("eth_blockNumber")

        assert exc_info.value.code == ErrorCode.INFRA_RPC_ERROR
        await provider.close()

    @pytest.mark.asyncio
    async def test_all_endpoints_fail(self):
        def handler(request):
            return httpx.Response(502, text="bad gateway")

        provider = RPCProvider(1, [PRIMARY, BACKUP], network="mainnet", client=make_client(handler))
        with pytest.raises(InfraError) as exc_info:
            await provider.call("eth_blockNumber")

        assert exc_info.value.code == ErrorCode.INFRA_RPC_ERROR
        assert exc_info.value.details["endpoints_tried"] == 2
        await provider.close()

    @pytest.mark.asyncio
    async def test_no_endpoints(self):
        provider = RPCProvider(1, [], network="mainnet")
        with pytest.raises(InfraError) as exc_info:
            await provider.call("eth_blockNumber")
        assert exc_info.value.code == ErrorCode.INFRA_NO_PROVIDER

    @pytest.mark.asyncio
    async def test_eth_call_payload(self):
        seen = {}

        def handler(request):
            body = json.loads(request.content)
            seen.update(body)
            return rpc_result(request, "0x")

        provider = RPCProvider(1, [PRIMARY], network="mainnet", client=make_client(handler))
        await provider.eth_call(to="0xabc", data="0x0902f1ac")

        assert seen["method"] == "eth_call"
        assert seen["params"] == [{"to": "0xabc", "data": "0x0902f1ac"}, "latest"]
        await provider.close()


class TestBlockProbe:
    """fetch_block_number error mapping."""

    @pytest.mark.asyncio
    async def test_malformed_block_number(self):
        def handler(request):
            return rpc_result(request, None)

        provider = RPCProvider(1, [PRIMARY], network="mainnet", client=make_client(handler))
        with pytest.raises(InfraError):
            await fetch_block_number(provider)
        await provider.close()

    @pytest.mark.asyncio
    async def test_block_state(self):
        def handler(request):
            return rpc_result(request, hex(19_000_000))

        provider = RPCProvider(1, [PRIMARY], network="mainnet", client=make_client(handler))
        state = await fetch_block_number(provider)

        assert state.block_number == 19_000_000
        assert state.chain_id == 1
        assert state.network == "mainnet"
        await provider.close()


class TestResolveUrls:
    """${ALCHEMY_API_KEY} substitution."""

    def test_alchemy_dropped_without_key(self, monkeypatch):
        monkeypatch.delenv("ALCHEMY_API_KEY", raising=False)
        urls = resolve_rpc_urls([
            "https://eth-mainnet.g.alchemy.com/v2/${ALCHEMY_API_KEY}",
            "https://eth.llamarpc.com",
        ])
        assert urls == ["https://eth.llamarpc.com"]

    def test_alchemy_key_substituted(self, monkeypatch):
        monkeypatch.setenv("ALCHEMY_API_KEY", "abc123")
        urls = resolve_rpc_urls(["https://eth-mainnet.g.alchemy.com/v2/${ALCHEMY_API_KEY}"])
        assert urls == ["https://eth-mainnet.g.alchemy.com/v2/abc123"]

    def test_empty_entries_skipped(self):
        assert resolve_rpc_urls(["", "https://eth.llamarpc.com"]) == ["https://eth.llamarpc.com"]


class TestProviderRegistry:
    """Registry keyed by network name."""

    @pytest.mark.asyncio
    async def test_register_and_close(self):
        registry = ProviderRegistry()
        provider = registry.register("mainnet", 1, [PRIMARY], timeout_seconds=3)

        assert registry.get("mainnet") is provider
        assert provider.network == "mainnet"
        assert registry.networks == ["mainnet"]

        await registry.close_all()
        assert registry.get("mainnet") is None
