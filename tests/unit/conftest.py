"""Unit-test fixtures: one SOL-PERP market quoted in USDC.

AMM: 200_000 SOL of base and quote reserve, peg $50 -> mark price $50.
Margin tiers (base size -> initial / maintenance):
    <= 100 SOL      20% / 5%
    <= 1_000 SOL    30% / 10%
    beyond          50% / 25%
"""

from collections.abc import Callable
from typing import Any

import pytest

from src.perp_account.domain.models import SpotBalance, UserAccountSnapshot
from src.perp_common.enums import OracleSource
from src.perp_common.precision import BASE_PRECISION, PEG_PRECISION, PRICE_PRECISION
from src.perp_market.domain.models import AMM, MarginTier, OracleData, PerpMarket, SpotMarket

SOL_ORACLE = "sol-oracle"
AMM_RESERVE = 2 * 10**14

SOL_TIERS = (
    MarginTier(size_breakpoint=100 * BASE_PRECISION, initial_margin_ratio=2000, maintenance_margin_ratio=500),
    MarginTier(size_breakpoint=1_000 * BASE_PRECISION, initial_margin_ratio=3000, maintenance_margin_ratio=1000),
    MarginTier(size_breakpoint=10_000 * BASE_PRECISION, initial_margin_ratio=5000, maintenance_margin_ratio=2500),
)


def _oracle(price: int = 50 * PRICE_PRECISION, confidence: int = 500) -> OracleData:
    return OracleData(
        address=SOL_ORACLE, price=price, confidence=confidence, timestamp=1_700_000_000,
        source=OracleSource.PYTH,
    )


@pytest.fixture
def make_oracle() -> Callable[..., OracleData]:
    """Factory for the SOL oracle: make_oracle(price=..., confidence=...)."""
    return _oracle


@pytest.fixture
def sol_market() -> PerpMarket:
    return PerpMarket(
        market_index=0,
        amm=AMM(
            base_asset_reserve=AMM_RESERVE,
            quote_asset_reserve=AMM_RESERVE,
            peg_multiplier=50 * PEG_PRECISION,
        ),
        margin_tiers=SOL_TIERS,
        oracle=SOL_ORACLE,
        name="SOL-PERP",
    )


@pytest.fixture
def usdc_market() -> SpotMarket:
    return SpotMarket(market_index=0, decimals=6, name="USDC")


@pytest.fixture
def sol_spot_market() -> SpotMarket:
    return SpotMarket(
        market_index=1,
        decimals=9,
        oracle=SOL_ORACLE,
        oracle_source=OracleSource.PYTH,
        initial_liability_weight=12_000,
        maintenance_liability_weight=11_000,
        name="SOL",
    )


@pytest.fixture
def usdc_deposit() -> SpotBalance:
    """20 USDC at cumulative interest 1.0 -> scaled balance 20 * 10^9."""
    return SpotBalance(market_index=0, scaled_balance=20 * 10**9)


@pytest.fixture
def make_snapshot(
    sol_market: PerpMarket, usdc_market: SpotMarket, usdc_deposit: SpotBalance
) -> Callable[..., UserAccountSnapshot]:
    """Factory: a funded account on SOL-PERP at a $50 oracle, override any field."""

    def _make(**kwargs: Any) -> UserAccountSnapshot:
        defaults: dict[str, Any] = dict(
            authority="alice",
            slot=100,
            perp_positions=(),
            open_orders=(),
            spot_balances=(usdc_deposit,),
            perp_markets=(sol_market,),
            spot_markets=(usdc_market,),
            oracles=(_oracle(),),
        )
        defaults.update(kwargs)
        return UserAccountSnapshot(**defaults)

    return _make
