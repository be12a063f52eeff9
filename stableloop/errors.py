"""Typed failures raised by the data-fetching layer."""
from __future__ import annotations


class ProviderError(RuntimeError):
    """Base error for a data source failure, tagged with provider and chain."""

    def __init__(
        self,
        message: str,
        provider: str,
        chain: str | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.chain = chain
        self.original_error = original_error

    @property
    def kind(self) -> str:
        return type(self).__name__


class NetworkError(ProviderError):
    """Transport failure: no RPC endpoint could be reached."""

    def __init__(
        self,
        provider: str,
        chain: str | None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(
            f"Network error for {provider} on chain {chain}: {original_error}",
            provider,
            chain,
            original_error,
        )


class ContractError(ProviderError):
    """The node answered, but the call reverted or returned undecodable data."""

    def __init__(
        self,
        provider: str,
        chain: str | None,
        contract_address: str,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(
            f"Contract error for {provider} on chain {chain} at {contract_address}: "
            f"{original_error}",
            provider,
            chain,
            original_error,
        )
        self.contract_address = contract_address


class AssetNotListedError(ProviderError):
    """The asset has no reserve on the given market."""

    def __init__(self, provider: str, chain: str, asset: str, reason: str = "") -> None:
        detail = f" ({reason})" if reason else ""
        super().__init__(
            f"{asset} is not listed on {provider} for chain {chain}{detail}",
            provider,
            chain,
        )
        self.asset = asset


class SuspectReserveDataError(ProviderError):
    """An active reserve came back with all-zero rates and totals."""

    def __init__(self, provider: str, chain: str, asset: str, strategy: str) -> None:
        super().__init__(
            f"Suspect all-zero reserve data for {asset} on chain {chain} "
            f"via {strategy}",
            provider,
            chain,
        )
        self.asset = asset
        self.strategy = strategy
