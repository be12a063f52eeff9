"""Chain client protocol: EVM JSON-RPC abstraction."""
from typing import Any, Protocol


class ChainClient(Protocol):
    """Abstract interface for read-only EVM contract calls."""

    chain: str

    async def eth_call(self, to: str, data: str) -> str: ...

    async def call_function(
        self,
        to: str,
        signature: str,
        args: tuple[Any, ...] = (),
        returns: tuple[str, ...] = ("uint256",),
    ) -> tuple[Any, ...]: ...
