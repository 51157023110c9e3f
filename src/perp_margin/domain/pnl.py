"""Position P&L at the oracle price."""

from src.perp_account.domain.models import PerpPosition
from src.perp_common.precision import (
    BASE_PRECISION,
    FUNDING_RATE_BUFFER_PRECISION,
    mul_div,
)
from src.perp_market.domain.models import PerpMarket


def calculate_position_funding_pnl(position: PerpPosition, market: PerpMarket) -> int:
    """Unsettled funding since the position's last settlement, QUOTE_PRECISION.

    Longs pay when the long cumulative rate rises; shorts receive when the
    short cumulative rate rises.
    """
    if position.base_asset_amount == 0:
        return 0

    if position.base_asset_amount > 0:
        cumulative_rate = market.amm.cumulative_funding_rate_long
    else:
        cumulative_rate = market.amm.cumulative_funding_rate_short

    rate_delta = cumulative_rate - position.last_cumulative_funding_rate
    return -mul_div(
        rate_delta,
        position.base_asset_amount,
        BASE_PRECISION * FUNDING_RATE_BUFFER_PRECISION,
    )


def calculate_position_pnl(
    position: PerpPosition,
    market: PerpMarket,
    oracle_price: int,
    include_funding: bool = False,
) -> int:
    """(base * oracle / BASE_PRECISION) - cost basis + settled funding, QUOTE_PRECISION.

    A flat position still reports the P&L it realized while open, until the
    cost basis is settled into collateral.
    """
    base_value = mul_div(position.base_asset_amount, oracle_price, BASE_PRECISION)
    pnl = base_value - position.quote_cost_basis + position.settled_funding
    if include_funding:
        pnl += calculate_position_funding_pnl(position, market)
    return pnl
