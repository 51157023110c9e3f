"""Pydantic schemas for the risk API — snapshot input and metrics output."""

from pydantic import BaseModel, Field

from src.perp_account.domain.models import (
    OpenOrder,
    PerpPosition,
    SpotBalance,
    UserAccountSnapshot,
)
from src.perp_common.enums import (
    MarketStatus,
    OracleSource,
    PositionDirection,
    SpotBalanceType,
)
from src.perp_common.precision import (
    MARGIN_PRECISION,
    SPOT_CUMULATIVE_INTEREST_PRECISION,
    quote_to_display,
)
from src.perp_margin.domain.metrics import RiskMetrics
from src.perp_market.domain.models import AMM, MarginTier, OracleData, PerpMarket, SpotMarket

# ---------------------------------------------------------------------------
# Snapshot schemas (request)
# ---------------------------------------------------------------------------


class AMMSchema(BaseModel):
    base_asset_reserve: int = Field(..., gt=0)
    quote_asset_reserve: int = Field(..., gt=0)
    peg_multiplier: int = Field(..., gt=0)
    cumulative_funding_rate_long: int = 0
    cumulative_funding_rate_short: int = 0
    curve_update_intensity: int = Field(0, ge=0, le=100)


class MarginTierSchema(BaseModel):
    size_breakpoint: int
    initial_margin_ratio: int
    maintenance_margin_ratio: int


class PerpMarketSchema(BaseModel):
    market_index: int = Field(..., ge=0)
    amm: AMMSchema
    # Not validated here: a malformed table must surface as MarginTierConfigError
    margin_tiers: list[MarginTierSchema]
    oracle: str
    oracle_source: OracleSource = OracleSource.PYTH
    status: MarketStatus = MarketStatus.ACTIVE
    name: str = ""

    def to_domain(self) -> PerpMarket:
        return PerpMarket(
            market_index=self.market_index,
            amm=AMM(**self.amm.model_dump()),
            margin_tiers=tuple(MarginTier(**t.model_dump()) for t in self.margin_tiers),
            oracle=self.oracle,
            oracle_source=self.oracle_source,
            status=self.status,
            name=self.name,
        )


class SpotMarketSchema(BaseModel):
    market_index: int = Field(..., ge=0)
    decimals: int = Field(..., ge=0, le=19)
    oracle: str = ""
    oracle_source: OracleSource = OracleSource.QUOTE_ASSET
    cumulative_deposit_interest: int = Field(SPOT_CUMULATIVE_INTEREST_PRECISION, gt=0)
    cumulative_borrow_interest: int = Field(SPOT_CUMULATIVE_INTEREST_PRECISION, gt=0)
    deposit_balance: int = Field(0, ge=0)
    borrow_balance: int = Field(0, ge=0)
    optimal_utilization: int = Field(0, ge=0)
    optimal_borrow_rate: int = Field(0, ge=0)
    max_borrow_rate: int = Field(0, ge=0)
    last_interest_ts: int = Field(0, ge=0)
    initial_liability_weight: int = Field(MARGIN_PRECISION, ge=MARGIN_PRECISION)
    maintenance_liability_weight: int = Field(MARGIN_PRECISION, ge=MARGIN_PRECISION)
    name: str = ""

    def to_domain(self) -> SpotMarket:
        return SpotMarket(**self.model_dump())


class OracleDataSchema(BaseModel):
    address: str
    price: int = Field(..., gt=0)
    confidence: int = Field(0, ge=0)
    timestamp: int = 0
    source: OracleSource = OracleSource.PYTH

    def to_domain(self) -> OracleData:
        return OracleData(**self.model_dump())


class PerpPositionSchema(BaseModel):
    market_index: int = Field(..., ge=0)
    base_asset_amount: int = 0
    quote_cost_basis: int = 0
    settled_funding: int = 0
    last_cumulative_funding_rate: int = 0

    def to_domain(self) -> PerpPosition:
        return PerpPosition(**self.model_dump())


class OpenOrderSchema(BaseModel):
    market_index: int = Field(..., ge=0)
    direction: PositionDirection
    base_asset_amount_remaining: int = Field(..., gt=0)

    def to_domain(self) -> OpenOrder:
        return OpenOrder(**self.model_dump())


class SpotBalanceSchema(BaseModel):
    market_index: int = Field(..., ge=0)
    scaled_balance: int = Field(..., ge=0)
    balance_type: SpotBalanceType = SpotBalanceType.DEPOSIT

    def to_domain(self) -> SpotBalance:
        return SpotBalance(**self.model_dump())


class AccountSnapshotRequest(BaseModel):
    authority: str = Field(..., min_length=1)
    slot: int = Field(0, ge=0)
    perp_positions: list[PerpPositionSchema] = []
    open_orders: list[OpenOrderSchema] = []
    spot_balances: list[SpotBalanceSchema] = []
    perp_markets: list[PerpMarketSchema] = []
    spot_markets: list[SpotMarketSchema] = []
    oracles: list[OracleDataSchema] = []

    def to_domain(self) -> UserAccountSnapshot:
        return UserAccountSnapshot(
            authority=self.authority,
            slot=self.slot,
            perp_positions=tuple(p.to_domain() for p in self.perp_positions),
            open_orders=tuple(o.to_domain() for o in self.open_orders),
            spot_balances=tuple(b.to_domain() for b in self.spot_balances),
            perp_markets=tuple(m.to_domain() for m in self.perp_markets),
            spot_markets=tuple(m.to_domain() for m in self.spot_markets),
            oracles=tuple(o.to_domain() for o in self.oracles),
        )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PublishSnapshotResponse(BaseModel):
    authority: str
    slot: int
    generation: int


class RiskMetricsResponse(BaseModel):
    authority: str
    slot: int
    market_index: int
    unrealized_pnl: int
    unrealized_pnl_display: str
    total_collateral: int
    total_collateral_display: str
    free_collateral: int
    free_collateral_display: str
    initial_margin_requirement: int
    maintenance_margin_requirement: int
    leverage: int
    margin_ratio: int
    buying_power: int | None
    buying_power_display: str | None
    total_liability_value: int
    meets_maintenance_margin: bool
    can_exit_liquidation: bool
    liquidation_margin_shortage: int
    all_oracles_valid: bool

    @classmethod
    def from_metrics(cls, metrics: RiskMetrics) -> "RiskMetricsResponse":
        return cls(
            authority=metrics.authority,
            slot=metrics.slot,
            market_index=metrics.market_index,
            unrealized_pnl=metrics.unrealized_pnl,
            unrealized_pnl_display=quote_to_display(metrics.unrealized_pnl),
            total_collateral=metrics.total_collateral,
            total_collateral_display=quote_to_display(metrics.total_collateral),
            free_collateral=metrics.free_collateral,
            free_collateral_display=quote_to_display(metrics.free_collateral),
            initial_margin_requirement=metrics.initial_margin_requirement,
            maintenance_margin_requirement=metrics.maintenance_margin_requirement,
            leverage=metrics.leverage,
            margin_ratio=metrics.margin_ratio,
            buying_power=metrics.buying_power,
            buying_power_display=(
                None if metrics.buying_power is None else quote_to_display(metrics.buying_power)
            ),
            total_liability_value=metrics.total_liability_value,
            meets_maintenance_margin=metrics.meets_maintenance_margin,
            can_exit_liquidation=metrics.can_exit_liquidation,
            liquidation_margin_shortage=metrics.liquidation_margin_shortage,
            all_oracles_valid=metrics.all_oracles_valid,
        )
