"""Account-level risk metrics over one UserAccountSnapshot.

Every function reads a single snapshot and nothing else, so callers that
take the snapshot from SnapshotStore once get figures from one generation.
"""

from dataclasses import dataclass

from src.perp_account.domain.models import UserAccountSnapshot
from src.perp_common.enums import MarginRequirementType
from src.perp_common.precision import LEVERAGE_PRECISION, mul_div
from src.perp_margin.domain.calculation import (
    MarginCalculation,
    MarginContext,
    calculate_margin_requirement_and_total_collateral,
)
from src.perp_margin.domain.pnl import calculate_position_pnl
from src.perp_market.domain.margin_tiers import calculate_max_leverage
from src.perp_market.domain.oracle import OracleGuardRails


def _initial_calculation(
    snapshot: UserAccountSnapshot, guard_rails: OracleGuardRails | None = None
) -> MarginCalculation:
    return calculate_margin_requirement_and_total_collateral(
        snapshot, MarginContext.standard(MarginRequirementType.INITIAL), guard_rails
    )


def get_unrealized_pnl(
    snapshot: UserAccountSnapshot,
    include_funding: bool = False,
    market_index: int | None = None,
) -> int:
    """Σ position P&L at oracle prices, optionally for one market, QUOTE_PRECISION."""
    total = 0
    for position in snapshot.perp_positions:
        if market_index is not None and position.market_index != market_index:
            continue
        market = snapshot.get_perp_market(position.market_index)
        oracle = snapshot.get_oracle(market.oracle, market.oracle_source)
        total += calculate_position_pnl(position, market, oracle.price, include_funding)
    return total


def get_total_collateral(snapshot: UserAccountSnapshot) -> int:
    """Deposit value + Σ P&L (funding included). Not floored: losses can take it below zero."""
    return _initial_calculation(snapshot).total_collateral


def get_free_collateral(snapshot: UserAccountSnapshot) -> int:
    """Total collateral - initial margin requirement. Negative means under-margined."""
    calc = _initial_calculation(snapshot)
    return calc.total_collateral - calc.margin_requirement


def get_leverage(snapshot: UserAccountSnapshot) -> int:
    """Σ worst-case liability / total collateral, LEVERAGE_PRECISION. 0 without exposure."""
    return _initial_calculation(snapshot).leverage()


def get_margin_ratio(snapshot: UserAccountSnapshot) -> int:
    """Total collateral / Σ worst-case liability, LEVERAGE_PRECISION. MAX_MARGIN_RATIO without exposure."""
    return _initial_calculation(snapshot).margin_ratio()


def calculate_buying_power(free_collateral: int, max_leverage: int) -> int:
    """free_collateral * max_leverage (LEVERAGE_PRECISION), QUOTE_PRECISION."""
    return mul_div(free_collateral, max_leverage, LEVERAGE_PRECISION)


def get_buying_power(snapshot: UserAccountSnapshot, market_index: int) -> int:
    market = snapshot.get_perp_market(market_index)
    return calculate_buying_power(get_free_collateral(snapshot), calculate_max_leverage(market))


@dataclass(frozen=True)
class RiskMetrics:
    authority: str
    slot: int
    market_index: int
    unrealized_pnl: int
    total_collateral: int
    initial_margin_requirement: int
    maintenance_margin_requirement: int
    free_collateral: int
    leverage: int
    margin_ratio: int
    buying_power: int | None          # None when the snapshot has no such perp market
    total_liability_value: int
    meets_maintenance_margin: bool
    can_exit_liquidation: bool
    liquidation_margin_shortage: int
    all_oracles_valid: bool


def compute_risk_metrics(
    snapshot: UserAccountSnapshot,
    market_index: int,
    margin_buffer: int = 0,
    guard_rails: OracleGuardRails | None = None,
) -> RiskMetrics:
    """All account metrics from one snapshot, with buying power for market_index.

    A snapshot without that perp market (deposits only) still gets every other
    figure; buying power is then None.
    """
    market = snapshot.find_perp_market(market_index)
    initial = _initial_calculation(snapshot, guard_rails)
    liquidation = calculate_margin_requirement_and_total_collateral(
        snapshot, MarginContext.liquidation(margin_buffer), guard_rails
    )
    can_exit = liquidation.can_exit_liquidation()
    free_collateral = initial.total_collateral - initial.margin_requirement
    buying_power = (
        None if market is None
        else calculate_buying_power(free_collateral, calculate_max_leverage(market))
    )

    return RiskMetrics(
        authority=snapshot.authority,
        slot=snapshot.slot,
        market_index=market_index,
        unrealized_pnl=get_unrealized_pnl(snapshot),
        total_collateral=initial.total_collateral,
        initial_margin_requirement=initial.margin_requirement,
        maintenance_margin_requirement=liquidation.margin_requirement,
        free_collateral=free_collateral,
        leverage=initial.leverage(),
        margin_ratio=initial.margin_ratio(),
        buying_power=buying_power,
        total_liability_value=initial.total_liability_value,
        meets_maintenance_margin=liquidation.meets_margin_requirement(),
        can_exit_liquidation=can_exit,
        liquidation_margin_shortage=0 if can_exit else liquidation.margin_shortage(),
        all_oracles_valid=initial.all_oracles_valid and liquidation.all_oracles_valid,
    )
