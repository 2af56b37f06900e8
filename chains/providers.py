"""
chains/providers.py - JSON-RPC access per network.

Each RPCProvider owns one httpx.AsyncClient and an ordered endpoint list.
A call walks the list and returns the first usable answer; transport
failures, HTTP errors and JSON-RPC error objects all count as a miss for
that endpoint. Only when every endpoint misses does the caller see an
InfraError.
"""

import os
import time
from dataclasses import dataclass
from typing import Any

import httpx

from core.constants import ErrorCode
from core.exceptions import InfraError
from core.logging import get_logger

logger = get_logger(__name__)

ALCHEMY_KEY_PLACEHOLDER = "${ALCHEMY_API_KEY}"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RPCStats:
    """Counters for one endpoint."""
    url: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None
    last_success_ts: int | None = None

    def record_success(self, latency_ms: int) -> None:
        self.successful_requests += 1
        self.total_latency_ms += latency_ms
        self.last_success_ts = _now_ms()

    def record_failure(self, error: str) -> None:
        self.failed_requests += 1
        self.last_error = error


@dataclass
class RPCResponse:
    """Result of a successful call and the endpoint that served it."""
    result: Any
    latency_ms: int
    endpoint_used: str


class _EndpointMiss(Exception):
    """One endpoint could not answer; the next one is tried."""


def resolve_rpc_urls(urls: list[str]) -> list[str]:
    """
    Substitute the Alchemy key placeholder in endpoint URLs.

    Blank entries are skipped. Alchemy endpoints are dropped when
    ALCHEMY_API_KEY is unset, since they cannot work without it.
    """
    api_key = os.getenv("ALCHEMY_API_KEY", "")
    resolved = []
    for url in urls:
        if not url:
            continue
        url = url.replace(ALCHEMY_KEY_PLACEHOLDER, api_key)
        if not api_key and "alchemy" in url.lower():
            continue
        resolved.append(url)
    return resolved


class RPCProvider:
    """Failover JSON-RPC client for a single network."""

    def __init__(
        self,
        chain_id: int,
        rpc_urls: list[str],
        timeout_seconds: float = 10,
        network: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.chain_id = chain_id
        self.network = network or str(chain_id)
        self.timeout_seconds = timeout_seconds
        self.rpc_urls = resolve_rpc_urls(rpc_urls)
        self.stats = {url: RPCStats(url=url) for url in self.rpc_urls}
        self._client = client
        self._request_id = 0

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=10),
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _payload(self, method: str, params: list | None) -> dict:
        self._request_id += 1
        return {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": self._request_id,
        }

    async def _ask(self, url: str, payload: dict) -> tuple[Any, int]:
        """POST one request to one endpoint. Raises _EndpointMiss on any failure."""
        started = _now_ms()
        try:
            resp = await self._get_client().post(url, json=payload)
            resp.raise_for_status()
            body = resp.json()
        except httpx.TimeoutException:
            raise _EndpointMiss(f"Timeout after {_now_ms() - started}ms")
        except (httpx.HTTPError, ValueError) as e:
            raise _EndpointMiss(str(e) or type(e).__name__)

        if not isinstance(body, dict):
            raise _EndpointMiss(f"Malformed JSON-RPC body: {type(body).__name__}")
        if "error" in body:
            error = body["error"]
            raise _EndpointMiss(
                error.get("message", str(error)) if isinstance(error, dict) else str(error)
            )
        return body.get("result"), _now_ms() - started

    async def call(self, method: str, params: list | None = None) -> RPCResponse:
        """
        Call a JSON-RPC method, failing over across endpoints in order.

        Raises:
            InfraError: INFRA_NO_PROVIDER when nothing is configured,
                INFRA_RPC_ERROR when every endpoint missed
        """
        if not self.rpc_urls:
            raise InfraError(
                f"No RPC endpoints configured for {self.network}",
                code=ErrorCode.INFRA_NO_PROVIDER,
                details={"chain_id": self.chain_id, "network": self.network},
            )

        payload = self._payload(method, params)
        last_error: str | None = None

        for url in self.rpc_urls:
            stats = self.stats[url]
            stats.total_requests += 1
            try:
                result, latency_ms = await self._ask(url, payload)
            except _EndpointMiss as miss:
                last_error = str(miss)
                stats.record_failure(last_error)
                logger.debug(f"{method} missed on {url}: {last_error}")
                continue

            stats.record_success(latency_ms)
            return RPCResponse(result=result, latency_ms=latency_ms, endpoint_used=url)

        raise InfraError(
            f"All RPC endpoints failed for {self.network}",
            code=ErrorCode.INFRA_RPC_ERROR,
            details={
                "chain_id": self.chain_id,
                "method": method,
                "endpoints_tried": len(self.rpc_urls),
                "last_error": last_error,
            },
        )

    async def get_block_number(self) -> tuple[int, int]:
        """Latest block as (block_number, latency_ms)."""
        response = await self.call("eth_blockNumber")
        return int(response.result, 16), response.latency_ms

    async def eth_call(self, to: str, data: str, block: str = "latest") -> RPCResponse:
        return await self.call("eth_call", [{"to": to, "data": data}, block])


class ProviderRegistry:
    """
    Providers by network name.

    Owned by whoever builds the scanner; there is no module-level instance.
    """

    def __init__(self):
        self._providers: dict[str, RPCProvider] = {}

    def register(
        self,
        network: str,
        chain_id: int,
        rpc_urls: list[str],
        timeout_seconds: float = 10,
    ) -> RPCProvider:
        provider = RPCProvider(chain_id, rpc_urls, timeout_seconds, network=network)
        self._providers[network] = provider
        return provider

    def get(self, network: str) -> RPCProvider | None:
        return self._providers.get(network)

    async def close_all(self) -> None:
        for provider in self._providers.values():
            await provider.close()
        self._providers.clear()

    @property
    def networks(self) -> list[str]:
        return list(self._providers)
