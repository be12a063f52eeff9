"""EVM JSON-RPC client with endpoint fallback."""
import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...errors import ContractError, NetworkError
from .abi import decode_result, encode_call

logger = logging.getLogger(__name__)


class RpcResponseError(RuntimeError):
    """The endpoint answered with a JSON-RPC error object (e.g. an execution revert)."""


class EvmClient:
    """EVM chain RPC client with automatic endpoint fallback."""

    def __init__(self, chain: str, config: ChainConfig, provider: str = "rpc") -> None:
        self.chain = chain
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.provider = provider
        self.current_rpc_index = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints.

        Raises ``RpcResponseError`` when the last endpoint tried answered with an
        error object, ``NetworkError`` when none could be reached.
        """
        if not self.endpoints:
            raise NetworkError(
                self.provider, self.chain, RuntimeError("no RPC endpoints configured")
            )

        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()
                        if "error" in result:
                            raise RpcResponseError(f"RPC Error: {result['error']}")

                        if rpc_index != self.current_rpc_index:
                            logger.info("[%s] Switched to RPC endpoint: %s", self.chain, rpc_url)
                            self.current_rpc_index = rpc_index

                        return result.get("result")
            except Exception as e:
                last_error = e
                logger.warning("[%s] RPC endpoint %s failed: %s", self.chain, rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.debug("Trying next endpoint...")
                continue

        if isinstance(last_error, RpcResponseError):
            raise last_error
        raise NetworkError(self.provider, self.chain, last_error)

    async def eth_call(self, to: str, data: str) -> str:
        """Read-only call against the latest block; returns hex return data."""
        try:
            result = await self.rpc_call("eth_call", [{"to": to, "data": data}, "latest"])
        except RpcResponseError as e:
            raise ContractError(self.provider, self.chain, to, e) from e
        return result or "0x"

    async def call_function(
        self,
        to: str,
        signature: str,
        args: tuple[Any, ...] = (),
        returns: tuple[str, ...] = ("uint256",),
    ) -> tuple[Any, ...]:
        """Encode, call and decode in one step."""
        data = await self.eth_call(to, encode_call(signature, args))
        try:
            return decode_result(returns, data)
        except Exception as e:
            raise ContractError(self.provider, self.chain, to, e) from e
