"""Virtual AMM pricing — pure functions over reserves and peg.

Mark price is the marginal price of the constant-product curve scaled by the
peg multiplier:

    price = quote_reserve * peg / base_reserve      (PRICE_PRECISION)

Nothing here mutates the AMM it is given; "updated" AMMs are copies.
"""

import logging
from dataclasses import replace

from src.perp_common.enums import AssetType, PositionDirection, SwapDirection
from src.perp_common.errors import InvalidPrecisionError
from src.perp_common.precision import (
    AMM_TIMES_PEG_TO_QUOTE_PRECISION_RATIO,
    PEG_PRECISION,
    PRICE_PRECISION,
    div_trunc,
    ensure_non_negative,
    mul_div,
)
from src.perp_market.domain.models import AMM, OracleData, PerpMarket

logger = logging.getLogger(__name__)


def calculate_price(base_asset_reserve: int, quote_asset_reserve: int, peg_multiplier: int) -> int:
    """quote * peg * PRICE_PRECISION / (base * PEG_PRECISION), truncated.

    Scaling both reserves by the same positive factor leaves the price unchanged.
    """
    if base_asset_reserve <= 0:
        raise InvalidPrecisionError(f"base_asset_reserve must be > 0, got {base_asset_reserve}")
    if peg_multiplier <= 0:
        raise InvalidPrecisionError(f"peg_multiplier must be > 0, got {peg_multiplier}")
    ensure_non_negative(quote_asset_reserve, "quote_asset_reserve")
    return mul_div(
        quote_asset_reserve,
        peg_multiplier * PRICE_PRECISION,
        base_asset_reserve * PEG_PRECISION,
    )


def calculate_mark_price(market: PerpMarket) -> int:
    amm = market.amm
    return calculate_price(amm.base_asset_reserve, amm.quote_asset_reserve, amm.peg_multiplier)


def calculate_peg_from_target_price(
    target_price: int, base_asset_reserve: int, quote_asset_reserve: int
) -> int:
    """Peg that puts the curve's price at target_price.

    Rounds half up (the one place this module does not truncate) and never
    returns less than 1.
    """
    if quote_asset_reserve <= 0:
        raise InvalidPrecisionError(f"quote_asset_reserve must be > 0, got {quote_asset_reserve}")
    ensure_non_negative(target_price, "target_price")
    peg = mul_div(
        target_price,
        base_asset_reserve * PEG_PRECISION,
        quote_asset_reserve * PRICE_PRECISION,
        round_half_up=True,
    )
    return max(1, peg)


def calculate_updated_amm(amm: AMM, oracle: OracleData | None) -> AMM:
    """Transient repeg toward the oracle, closing curve_update_intensity% of the gap."""
    if not (0 <= amm.curve_update_intensity <= 100):
        raise InvalidPrecisionError(
            f"curve_update_intensity must be in [0, 100], got {amm.curve_update_intensity}"
        )
    if oracle is None or amm.curve_update_intensity == 0:
        return amm

    target_peg = calculate_peg_from_target_price(
        oracle.price, amm.base_asset_reserve, amm.quote_asset_reserve
    )
    step = div_trunc((target_peg - amm.peg_multiplier) * amm.curve_update_intensity, 100)
    new_peg = max(1, amm.peg_multiplier + step)
    logger.debug(
        "Repeg: peg=%d target=%d intensity=%d -> %d",
        amm.peg_multiplier, target_peg, amm.curve_update_intensity, new_peg,
    )
    return replace(amm, peg_multiplier=new_peg)


def calculate_reserve_price(market: PerpMarket, oracle: OracleData | None) -> int:
    """Price of the AMM after the transient oracle repeg. Equals mark price when intensity is 0."""
    amm = calculate_updated_amm(market.amm, oracle)
    return calculate_price(amm.base_asset_reserve, amm.quote_asset_reserve, amm.peg_multiplier)


def get_swap_direction(
    input_asset_type: AssetType, position_direction: PositionDirection
) -> SwapDirection:
    """Going long takes base out of the pool; going short takes quote out."""
    if position_direction == PositionDirection.LONG and input_asset_type == AssetType.BASE:
        return SwapDirection.REMOVE
    if position_direction == PositionDirection.SHORT and input_asset_type == AssetType.QUOTE:
        return SwapDirection.REMOVE
    return SwapDirection.ADD


def _shift_reserve(reserve: int, amount: int, direction: SwapDirection) -> int:
    new_reserve = reserve + amount if direction == SwapDirection.ADD else reserve - amount
    if new_reserve <= 0:
        raise InvalidPrecisionError(
            f"swap of {amount} would exhaust reserve {reserve}"
        )
    return new_reserve


def calculate_amm_reserves_after_swap(
    amm: AMM,
    input_asset_type: AssetType,
    swap_amount: int,
    swap_direction: SwapDirection,
) -> tuple[int, int]:
    """Hypothetical reserves after a swap along k = base * quote.

    swap_amount is BASE_PRECISION for base inputs and QUOTE_PRECISION for
    quote inputs. Returns (new_quote_asset_reserve, new_base_asset_reserve).
    """
    ensure_non_negative(swap_amount, "swap_amount")
    if amm.peg_multiplier <= 0:
        raise InvalidPrecisionError(f"peg_multiplier must be > 0, got {amm.peg_multiplier}")
    invariant = amm.invariant

    if input_asset_type == AssetType.QUOTE:
        reserve_amount = mul_div(
            swap_amount, AMM_TIMES_PEG_TO_QUOTE_PRECISION_RATIO, amm.peg_multiplier
        )
        new_quote = _shift_reserve(amm.quote_asset_reserve, reserve_amount, swap_direction)
        return new_quote, invariant // new_quote

    new_base = _shift_reserve(amm.base_asset_reserve, swap_amount, swap_direction)
    return invariant // new_base, new_base


def calculate_base_asset_value(amm: AMM, base_asset_amount: int) -> int:
    """Quote value of closing base_asset_amount through the curve (exit value).

    Longs close by selling base into the pool, shorts by buying it back.
    Always >= 0, QUOTE_PRECISION.
    """
    if base_asset_amount == 0:
        return 0

    direction_to_close = (
        PositionDirection.SHORT if base_asset_amount > 0 else PositionDirection.LONG
    )
    new_quote, _ = calculate_amm_reserves_after_swap(
        amm,
        AssetType.BASE,
        abs(base_asset_amount),
        get_swap_direction(AssetType.BASE, direction_to_close),
    )
    if direction_to_close == PositionDirection.SHORT:
        quote_delta = amm.quote_asset_reserve - new_quote
    else:
        quote_delta = new_quote - amm.quote_asset_reserve
    return mul_div(quote_delta, amm.peg_multiplier, AMM_TIMES_PEG_TO_QUOTE_PRECISION_RATIO)
