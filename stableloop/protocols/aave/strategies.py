"""Named reserve-read strategies, tried in order by the Aave adapter."""
from __future__ import annotations

import logging

from ...chains.evm.abi import ZERO_ADDRESS, same_address
from ...config import AaveMarketConfig
from ...errors import AssetNotListedError
from ...interfaces.chain import ChainClient
from ...models import RawReserveData
from .parser import decode_reserve_configuration

logger = logging.getLogger(__name__)

PROVIDER = "aave"

_POOL_RESERVE_DATA_RETURNS = (
    "uint256",  # configuration
    "uint128",  # liquidityIndex
    "uint128",  # currentLiquidityRate
    "uint128",  # variableBorrowIndex
    "uint128",  # currentVariableBorrowRate
    "uint128",  # currentStableBorrowRate
    "uint40",  # lastUpdateTimestamp
    "uint16",  # id
    "address",  # aTokenAddress
    "address",  # stableDebtTokenAddress
    "address",  # variableDebtTokenAddress
    "address",  # interestRateStrategyAddress
    "uint128",  # accruedToTreasury
    "uint128",  # unbacked
    "uint128",  # isolationModeTotalDebt
)

_DP_CONFIGURATION_RETURNS = ("uint256",) * 5 + ("bool",) * 5
_DP_RESERVE_DATA_RETURNS = ("uint256",) * 11 + ("uint40",)


async def _total_supply(client: ChainClient, token: str) -> int:
    if same_address(token, ZERO_ADDRESS):
        return 0
    (supply,) = await client.call_function(token, "totalSupply()")
    return int(supply)


class PoolReserveDataStrategy:
    """Pool.getReserveData plus aToken/debt-token totalSupply reads."""

    name = "pool_reserve_data"

    async def read(
        self,
        client: ChainClient,
        market: AaveMarketConfig,
        asset: str,
        asset_address: str,
    ) -> RawReserveData:
        fields = await client.call_function(
            market.pool,
            "getReserveData(address)",
            (asset_address,),
            _POOL_RESERVE_DATA_RETURNS,
        )
        config_word = int(fields[0])
        a_token, stable_debt, variable_debt = fields[8], fields[9], fields[10]

        if same_address(a_token, ZERO_ADDRESS):
            raise AssetNotListedError(PROVIDER, client.chain, asset, "no aToken")

        cfg = decode_reserve_configuration(config_word)
        total_supply = await _total_supply(client, a_token)
        total_borrow = await _total_supply(client, variable_debt) + await _total_supply(
            client, stable_debt
        )
        logger.debug(
            "[%s] %s pool read: config=%#x supply=%d borrow=%d",
            client.chain, asset, config_word, total_supply, total_borrow,
        )

        return RawReserveData(
            asset_address=asset_address,
            decimals=cfg.decimals,
            liquidity_rate=int(fields[2]),
            variable_borrow_rate=int(fields[4]),
            total_supply=total_supply,
            total_borrow=total_borrow,
            supply_cap=cfg.supply_cap,
            borrow_cap=cfg.borrow_cap,
            ltv_bps=cfg.ltv_bps,
            liquidation_threshold_bps=cfg.liquidation_threshold_bps,
            reserve_factor_bps=cfg.reserve_factor_bps,
            emode_category_id=cfg.emode_category_id,
            is_active=cfg.is_active,
            is_frozen=cfg.is_frozen,
            borrowing_enabled=cfg.borrowing_enabled,
        )


class ProtocolDataProviderStrategy:
    """AaveProtocolDataProvider reserve, configuration, caps and E-Mode reads."""

    name = "protocol_data_provider"

    async def read(
        self,
        client: ChainClient,
        market: AaveMarketConfig,
        asset: str,
        asset_address: str,
    ) -> RawReserveData:
        provider = market.data_provider
        (
            decimals,
            ltv,
            liquidation_threshold,
            _bonus,
            reserve_factor,
            _collateral_enabled,
            borrowing_enabled,
            _stable_enabled,
            is_active,
            is_frozen,
        ) = await client.call_function(
            provider,
            "getReserveConfigurationData(address)",
            (asset_address,),
            _DP_CONFIGURATION_RETURNS,
        )
        if int(decimals) == 0 and not is_active:
            raise AssetNotListedError(PROVIDER, client.chain, asset, "empty configuration")

        data = await client.call_function(
            provider,
            "getReserveData(address)",
            (asset_address,),
            _DP_RESERVE_DATA_RETURNS,
        )
        borrow_cap, supply_cap = await client.call_function(
            provider,
            "getReserveCaps(address)",
            (asset_address,),
            ("uint256", "uint256"),
        )
        (emode,) = await client.call_function(
            provider, "getReserveEModeCategory(address)", (asset_address,)
        )

        # data: unbacked, accruedToTreasuryScaled, totalAToken, totalStableDebt,
        # totalVariableDebt, liquidityRate, variableBorrowRate, ...
        return RawReserveData(
            asset_address=asset_address,
            decimals=int(decimals),
            liquidity_rate=int(data[5]),
            variable_borrow_rate=int(data[6]),
            total_supply=int(data[2]),
            total_borrow=int(data[3]) + int(data[4]),
            supply_cap=int(supply_cap),
            borrow_cap=int(borrow_cap),
            ltv_bps=int(ltv),
            liquidation_threshold_bps=int(liquidation_threshold),
            reserve_factor_bps=int(reserve_factor),
            emode_category_id=int(emode),
            is_active=bool(is_active),
            is_frozen=bool(is_frozen),
            borrowing_enabled=bool(borrowing_enabled),
        )


DEFAULT_STRATEGIES = (PoolReserveDataStrategy(), ProtocolDataProviderStrategy())
