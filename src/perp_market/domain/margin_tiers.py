"""Size-tiered margin requirements.

Each market carries an ordered tuple of MarginTier. A worst-case size falls in
the first tier whose breakpoint is >= the size; sizes beyond the last
breakpoint use the last tier. Ratios are non-decreasing from tier to tier, so
bigger positions always need an equal or larger fraction of their notional.
"""

from bisect import bisect_left

from src.perp_common.enums import MarginRequirementType
from src.perp_common.errors import MarginTierConfigError
from src.perp_common.precision import LEVERAGE_PRECISION, MARGIN_PRECISION, mul_div
from src.perp_market.domain.models import MarginTier, PerpMarket


def validate_margin_tiers(market: PerpMarket) -> tuple[MarginTier, ...]:
    """Raise MarginTierConfigError unless the tier table is well formed."""
    tiers = market.margin_tiers
    if not tiers:
        raise MarginTierConfigError(market.market_index, "tier table is empty")

    prev: MarginTier | None = None
    for i, tier in enumerate(tiers):
        if tier.size_breakpoint <= 0:
            raise MarginTierConfigError(market.market_index, f"tier {i} breakpoint must be > 0")
        for ratio in (tier.initial_margin_ratio, tier.maintenance_margin_ratio):
            if not (0 < ratio <= MARGIN_PRECISION):
                raise MarginTierConfigError(
                    market.market_index,
                    f"tier {i} ratio {ratio} outside (0, {MARGIN_PRECISION}]",
                )
        if tier.maintenance_margin_ratio > tier.initial_margin_ratio:
            raise MarginTierConfigError(
                market.market_index, f"tier {i} maintenance ratio above initial ratio"
            )
        if prev is not None:
            if tier.size_breakpoint <= prev.size_breakpoint:
                raise MarginTierConfigError(
                    market.market_index, f"tier {i} breakpoint not strictly increasing"
                )
            if (
                tier.initial_margin_ratio < prev.initial_margin_ratio
                or tier.maintenance_margin_ratio < prev.maintenance_margin_ratio
            ):
                raise MarginTierConfigError(
                    market.market_index, f"tier {i} ratio decreases with size"
                )
        prev = tier
    return tiers


def _select_tier(market: PerpMarket, worst_case_size: int) -> MarginTier:
    tiers = validate_margin_tiers(market)
    breakpoints = [t.size_breakpoint for t in tiers]
    idx = bisect_left(breakpoints, abs(worst_case_size))
    return tiers[min(idx, len(tiers) - 1)]


def calculate_market_margin_ratio(
    market: PerpMarket, worst_case_size: int, margin_type: MarginRequirementType
) -> int:
    """Required margin fraction (MARGIN_PRECISION) for a worst-case base size."""
    tier = _select_tier(market, worst_case_size)
    if margin_type == MarginRequirementType.INITIAL:
        return tier.initial_margin_ratio
    return tier.maintenance_margin_ratio


def calculate_margin_requirement(
    market: PerpMarket,
    worst_case_size: int,
    worst_case_notional: int,
    margin_type: MarginRequirementType,
) -> int:
    """worst_case_notional * ratio / MARGIN_PRECISION, QUOTE_PRECISION."""
    ratio = calculate_market_margin_ratio(market, worst_case_size, margin_type)
    return mul_div(worst_case_notional, ratio, MARGIN_PRECISION)


def smallest_tier_initial_ratio(market: PerpMarket) -> int:
    return validate_margin_tiers(market)[0].initial_margin_ratio


def calculate_max_leverage(market: PerpMarket) -> int:
    """Reciprocal of the smallest tier's initial ratio, LEVERAGE_PRECISION (50_000 = 5x)."""
    return mul_div(MARGIN_PRECISION, LEVERAGE_PRECISION, smallest_tier_initial_ratio(market))
