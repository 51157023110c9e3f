"""Margin calculation — one pass over a snapshot into a MarginCalculation.

The pass walks spot balances (deposits are collateral, borrows are weighted
liabilities) and every perp market the user touches (positions and markets
with only resting orders), accumulating:

  total_collateral    deposits + position P&L (funding included), unfloored
  margin_requirement  Σ tiered perp requirement + Σ weighted borrow value
  liability values    worst-case perp notional, borrow value

Liquidation mode also accumulates a requirement-plus-buffer used to decide
when an account may leave liquidation, and can track one market's share of
the requirement.
"""

import logging
from dataclasses import dataclass, field, replace

from src.perp_account.domain.exposure import (
    calculate_worst_case_base_asset_amount,
    calculate_worst_case_notional_value,
)
from src.perp_account.domain.models import PerpPosition, UserAccountSnapshot
from src.perp_common.enums import (
    MarginCalculationMode,
    MarginRequirementType,
    MarketType,
    SpotBalanceType,
)
from src.perp_common.errors import InvalidMarginCalculationError, InvalidPrecisionError
from src.perp_common.precision import (
    LEVERAGE_PRECISION,
    MARGIN_PRECISION,
    MAX_MARGIN_RATIO,
    mul_div,
)
from src.perp_margin.domain.pnl import calculate_position_pnl
from src.perp_market.domain.margin_tiers import calculate_margin_requirement
from src.perp_market.domain.models import SpotMarket
from src.perp_market.domain.oracle import OracleGuardRails, is_oracle_valid
from src.perp_spot.domain.balance import get_token_amount, get_token_value

logger = logging.getLogger(__name__)

MarketId = tuple[MarketType, int]


@dataclass(frozen=True)
class MarginContext:
    margin_type: MarginRequirementType
    mode: MarginCalculationMode = MarginCalculationMode.STANDARD
    margin_buffer: int = 0                  # MARGIN_PRECISION, liquidation mode only
    market_to_track: MarketId | None = None

    @classmethod
    def standard(cls, margin_type: MarginRequirementType) -> "MarginContext":
        return cls(margin_type=margin_type)

    @classmethod
    def liquidation(cls, margin_buffer: int) -> "MarginContext":
        if margin_buffer < 0:
            raise InvalidMarginCalculationError(f"margin_buffer must be >= 0, got {margin_buffer}")
        return cls(
            margin_type=MarginRequirementType.MAINTENANCE,
            mode=MarginCalculationMode.LIQUIDATION,
            margin_buffer=margin_buffer,
        )

    @property
    def is_liquidation(self) -> bool:
        return self.mode == MarginCalculationMode.LIQUIDATION

    def track_market(self, market: MarketId) -> "MarginContext":
        if not self.is_liquidation:
            raise InvalidMarginCalculationError("cannot track a market outside liquidation mode")
        return replace(self, market_to_track=market)


@dataclass
class MarginCalculation:
    context: MarginContext
    total_collateral: int = 0                   # QUOTE_PRECISION, signed
    margin_requirement: int = 0                 # QUOTE_PRECISION
    margin_requirement_plus_buffer: int = 0     # QUOTE_PRECISION, liquidation mode
    num_spot_liabilities: int = 0
    num_perp_liabilities: int = 0
    all_oracles_valid: bool = True
    total_spot_asset_value: int = 0
    total_spot_liability_value: int = 0
    total_perp_liability_value: int = 0
    tracked_market_margin_requirement: int = 0
    _invalid_oracles: list[str] = field(default_factory=list, repr=False)

    def add_total_collateral(self, amount: int) -> None:
        self.total_collateral += amount

    def add_margin_requirement(
        self, margin_requirement: int, liability_value: int, market: MarketId
    ) -> None:
        self.margin_requirement += margin_requirement
        if self.context.is_liquidation:
            self.margin_requirement_plus_buffer += margin_requirement + mul_div(
                liability_value, self.context.margin_buffer, MARGIN_PRECISION
            )
        if self.context.market_to_track == market:
            self.tracked_market_margin_requirement += margin_requirement

    def add_spot_asset(self, asset_value: int) -> None:
        self.total_collateral += asset_value
        self.total_spot_asset_value += asset_value

    def add_spot_liability(self, liability_value: int) -> None:
        self.num_spot_liabilities += 1
        self.total_spot_liability_value += liability_value

    def add_perp_liability(self, liability_value: int) -> None:
        self.num_perp_liabilities += 1
        self.total_perp_liability_value += liability_value

    def update_all_oracles_valid(self, valid: bool, address: str = "") -> None:
        self.all_oracles_valid &= valid
        if not valid:
            self._invalid_oracles.append(address)

    @property
    def num_liabilities(self) -> int:
        return self.num_spot_liabilities + self.num_perp_liabilities

    @property
    def total_liability_value(self) -> int:
        return self.total_perp_liability_value + self.total_spot_liability_value

    @property
    def invalid_oracles(self) -> list[str]:
        return list(self._invalid_oracles)

    def meets_margin_requirement(self) -> bool:
        return self.total_collateral >= self.margin_requirement

    def can_exit_liquidation(self) -> bool:
        if not self.context.is_liquidation:
            raise InvalidMarginCalculationError("liquidation mode not enabled")
        return self.total_collateral >= self.margin_requirement_plus_buffer

    def margin_shortage(self) -> int:
        """|requirement-plus-buffer - collateral|; only meaningful while below it."""
        return abs(self.margin_requirement_plus_buffer - self.total_collateral)

    def tracked_market_margin_shortage(self, margin_shortage: int) -> int:
        """Share of margin_shortage owed to the tracked market."""
        if self.context.market_to_track is None:
            raise InvalidMarginCalculationError("no market is being tracked")
        if self.margin_requirement == 0:
            return 0
        return mul_div(margin_shortage, self.tracked_market_margin_requirement, self.margin_requirement)

    def free_collateral(self) -> int:
        """Collateral above the requirement, floored at zero (account-health view)."""
        return max(0, self.total_collateral - self.margin_requirement)

    def leverage(self) -> int:
        """Σ liability / collateral, LEVERAGE_PRECISION."""
        liability = self.total_liability_value
        if liability == 0:
            return 0
        if self.total_collateral <= 0:
            return MAX_MARGIN_RATIO
        return mul_div(liability, LEVERAGE_PRECISION, self.total_collateral)

    def margin_ratio(self) -> int:
        """collateral / Σ liability, LEVERAGE_PRECISION; MAX_MARGIN_RATIO without exposure."""
        liability = self.total_liability_value
        if liability == 0:
            return MAX_MARGIN_RATIO
        return mul_div(self.total_collateral, LEVERAGE_PRECISION, liability)


def _spot_liability_weight(spot_market: SpotMarket, margin_type: MarginRequirementType) -> int:
    if margin_type == MarginRequirementType.INITIAL:
        return spot_market.initial_liability_weight
    return spot_market.maintenance_liability_weight


def _add_spot_balances(
    calc: MarginCalculation, snapshot: UserAccountSnapshot, guard_rails: OracleGuardRails
) -> None:
    for balance in snapshot.spot_balances:
        spot_market = snapshot.get_spot_market(balance.market_index)
        oracle = snapshot.get_oracle(spot_market.oracle, spot_market.oracle_source)
        calc.update_all_oracles_valid(is_oracle_valid(oracle, guard_rails), oracle.address)

        token_amount = get_token_amount(balance.scaled_balance, spot_market, balance.balance_type)
        value = get_token_value(token_amount, spot_market.decimals, oracle.price)

        if balance.balance_type == SpotBalanceType.DEPOSIT:
            calc.add_spot_asset(value)
            continue

        if token_amount == 0:
            continue
        weight = _spot_liability_weight(spot_market, calc.context.margin_type)
        calc.add_margin_requirement(
            mul_div(value, weight, MARGIN_PRECISION),
            value,
            (MarketType.SPOT, spot_market.market_index),
        )
        calc.add_spot_liability(value)


def _add_perp_positions(
    calc: MarginCalculation, snapshot: UserAccountSnapshot, guard_rails: OracleGuardRails
) -> None:
    for market_index in snapshot.active_perp_market_indexes():
        market = snapshot.get_perp_market(market_index)
        oracle = snapshot.get_oracle(market.oracle, market.oracle_source)
        if oracle.price <= 0:
            # worst-case notional is priced at the oracle
            raise InvalidPrecisionError(
                f"oracle {oracle.address} for perp market {market_index} has price {oracle.price}"
            )
        calc.update_all_oracles_valid(is_oracle_valid(oracle, guard_rails), oracle.address)

        position = snapshot.get_perp_position(market_index) or PerpPosition(market_index=market_index)
        calc.add_total_collateral(
            calculate_position_pnl(position, market, oracle.price, include_funding=True)
        )

        worst_case_base = calculate_worst_case_base_asset_amount(position, snapshot.open_orders)
        if worst_case_base == 0:
            continue

        notional = calculate_worst_case_notional_value(worst_case_base, oracle.price)
        requirement = calculate_margin_requirement(
            market, worst_case_base, notional, calc.context.margin_type
        )
        calc.add_margin_requirement(requirement, notional, (MarketType.PERP, market_index))
        calc.add_perp_liability(notional)


def calculate_margin_requirement_and_total_collateral(
    snapshot: UserAccountSnapshot,
    context: MarginContext,
    guard_rails: OracleGuardRails | None = None,
) -> MarginCalculation:
    guard_rails = guard_rails or OracleGuardRails()
    calc = MarginCalculation(context=context)
    _add_spot_balances(calc, snapshot, guard_rails)
    _add_perp_positions(calc, snapshot, guard_rails)

    if not calc.all_oracles_valid:
        logger.warning(
            "Margin calculation for %s used invalid oracles: %s",
            snapshot.authority, calc.invalid_oracles,
        )
    logger.debug(
        "Margin calculation for %s slot=%d type=%s: collateral=%d requirement=%d liability=%d",
        snapshot.authority, snapshot.slot, context.margin_type.value,
        calc.total_collateral, calc.margin_requirement, calc.total_liability_value,
    )
    return calc
