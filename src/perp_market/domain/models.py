"""Domain models for perp_market — frozen dataclasses, read-only to the engine.

Markets and oracle data are delivered by the external subscriber; the engine
never mutates them. Helpers that "update" an AMM or spot market return copies.
"""

from dataclasses import dataclass

from src.perp_common.enums import MarketStatus, OracleSource
from src.perp_common.precision import (
    MARGIN_PRECISION,
    SPOT_CUMULATIVE_INTEREST_PRECISION,
)


@dataclass(frozen=True)
class AMM:
    base_asset_reserve: int      # AMM_RESERVE_PRECISION
    quote_asset_reserve: int     # AMM_RESERVE_PRECISION
    peg_multiplier: int          # PEG_PRECISION
    cumulative_funding_rate_long: int = 0    # FUNDING_RATE_PRECISION
    cumulative_funding_rate_short: int = 0   # FUNDING_RATE_PRECISION
    curve_update_intensity: int = 0          # 0-100, % of the oracle gap closed per repeg

    @property
    def invariant(self) -> int:
        """Constant product k = base * quote."""
        return self.base_asset_reserve * self.quote_asset_reserve


@dataclass(frozen=True)
class MarginTier:
    size_breakpoint: int             # BASE_PRECISION, inclusive upper bound of the tier
    initial_margin_ratio: int        # MARGIN_PRECISION, 2000 = 20%
    maintenance_margin_ratio: int    # MARGIN_PRECISION


@dataclass(frozen=True)
class PerpMarket:
    market_index: int
    amm: AMM
    margin_tiers: tuple[MarginTier, ...]
    oracle: str
    oracle_source: OracleSource = OracleSource.PYTH
    status: MarketStatus = MarketStatus.ACTIVE
    name: str = ""


@dataclass(frozen=True)
class SpotMarket:
    market_index: int
    decimals: int
    oracle: str = ""
    oracle_source: OracleSource = OracleSource.QUOTE_ASSET
    cumulative_deposit_interest: int = SPOT_CUMULATIVE_INTEREST_PRECISION
    cumulative_borrow_interest: int = SPOT_CUMULATIVE_INTEREST_PRECISION
    deposit_balance: int = 0     # SPOT_BALANCE_PRECISION, market-wide scaled deposits
    borrow_balance: int = 0      # SPOT_BALANCE_PRECISION, market-wide scaled borrows
    optimal_utilization: int = 0     # SPOT_UTILIZATION_PRECISION
    optimal_borrow_rate: int = 0     # SPOT_RATE_PRECISION, annualized
    max_borrow_rate: int = 0         # SPOT_RATE_PRECISION, annualized
    last_interest_ts: int = 0        # unix seconds
    initial_liability_weight: int = MARGIN_PRECISION
    maintenance_liability_weight: int = MARGIN_PRECISION
    name: str = ""


@dataclass(frozen=True)
class OracleData:
    address: str
    price: int          # PRICE_PRECISION
    confidence: int     # PRICE_PRECISION
    timestamp: int      # unix seconds of the last publish
    source: OracleSource = OracleSource.PYTH
