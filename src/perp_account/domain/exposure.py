"""Worst-case exposure of a perp position under its resting orders.

For margin purposes every order that would grow the position is assumed to
fill and every order that would shrink it is assumed not to:

    all_bids = base + open_bids      (open_bids >= 0)
    all_asks = base + open_asks      (open_asks <= 0)
    worst    = whichever of the two has the larger magnitude (asks on a tie)

Since one side always equals base plus orders in the position's own
direction, |worst| >= |base|.
"""

from collections.abc import Iterable

from src.perp_account.domain.models import OpenOrder, PerpPosition
from src.perp_common.enums import PositionDirection
from src.perp_common.precision import BASE_PRECISION, ensure_non_negative, mul_div


def calculate_open_bids_asks(
    market_index: int, open_orders: Iterable[OpenOrder]
) -> tuple[int, int]:
    """Sum resting quantity per side for one market: (bids >= 0, asks <= 0)."""
    bids = 0
    asks = 0
    for order in open_orders:
        if order.market_index != market_index:
            continue
        if order.direction == PositionDirection.LONG:
            bids += order.base_asset_amount_remaining
        else:
            asks -= order.base_asset_amount_remaining
    return bids, asks


def calculate_worst_case_base_asset_amount(
    position: PerpPosition, open_orders: Iterable[OpenOrder] = ()
) -> int:
    """Signed worst-case base amount, BASE_PRECISION."""
    bids, asks = calculate_open_bids_asks(position.market_index, open_orders)
    all_bids = position.base_asset_amount + bids
    all_asks = position.base_asset_amount + asks
    if abs(all_bids) > abs(all_asks):
        return all_bids
    return all_asks


def calculate_worst_case_notional_value(worst_case_base_asset_amount: int, oracle_price: int) -> int:
    """|amount| * oracle_price / BASE_PRECISION, QUOTE_PRECISION.

    Always priced at the oracle, never at the AMM mark price.
    """
    ensure_non_negative(oracle_price, "oracle_price")
    return mul_div(abs(worst_case_base_asset_amount), oracle_price, BASE_PRECISION)
