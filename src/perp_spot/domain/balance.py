"""Spot balance accounting — scaled balances, token amounts and interest.

A spot balance is stored scaled by the market's cumulative interest index:

    balance      = token_amount * 10^(19 - decimals) / cumulative_interest
    token_amount = balance * cumulative_interest / 10^(19 - decimals)

so deposits and borrows grow as the indices accrue. Borrows round against
the borrower (one extra unit whenever non-zero).
"""

from dataclasses import dataclass, replace

from src.perp_common.enums import SpotBalanceType
from src.perp_common.errors import InvalidPrecisionError
from src.perp_common.precision import (
    ONE_YEAR,
    SPOT_RATE_PRECISION,
    SPOT_UTILIZATION_PRECISION,
    ensure_non_negative,
    mul_div,
)
from src.perp_market.domain.models import SpotMarket

# 10^19 = SPOT_CUMULATIVE_INTEREST_PRECISION * SPOT_BALANCE_PRECISION
_BALANCE_SCALE_DECIMALS = 19


def _precision_scale(spot_market: SpotMarket) -> int:
    if not (0 <= spot_market.decimals <= _BALANCE_SCALE_DECIMALS):
        raise InvalidPrecisionError(
            f"spot market {spot_market.market_index} decimals {spot_market.decimals} "
            f"outside [0, {_BALANCE_SCALE_DECIMALS}]"
        )
    return 10 ** (_BALANCE_SCALE_DECIMALS - spot_market.decimals)


def _cumulative_interest(spot_market: SpotMarket, balance_type: SpotBalanceType) -> int:
    if balance_type == SpotBalanceType.DEPOSIT:
        return spot_market.cumulative_deposit_interest
    return spot_market.cumulative_borrow_interest


def get_spot_balance(
    token_amount: int, spot_market: SpotMarket, balance_type: SpotBalanceType
) -> int:
    """Token amount (market decimals) -> scaled balance (SPOT_BALANCE_PRECISION)."""
    ensure_non_negative(token_amount, "token_amount")
    balance = mul_div(
        token_amount,
        _precision_scale(spot_market),
        _cumulative_interest(spot_market, balance_type),
    )
    if balance != 0 and balance_type == SpotBalanceType.BORROW:
        balance += 1
    return balance


def get_token_amount(
    balance: int, spot_market: SpotMarket, balance_type: SpotBalanceType
) -> int:
    """Scaled balance (SPOT_BALANCE_PRECISION) -> token amount (market decimals)."""
    ensure_non_negative(balance, "balance")
    token_amount = mul_div(
        balance,
        _cumulative_interest(spot_market, balance_type),
        _precision_scale(spot_market),
    )
    if token_amount != 0 and balance_type == SpotBalanceType.BORROW:
        token_amount += 1
    return token_amount


def get_token_value(token_amount: int, decimals: int, oracle_price: int) -> int:
    """Token amount at oracle price, QUOTE_PRECISION."""
    ensure_non_negative(oracle_price, "oracle_price")
    return mul_div(token_amount, oracle_price, 10**decimals)


def calculate_utilization(spot_market: SpotMarket) -> int:
    """borrows / deposits, SPOT_UTILIZATION_PRECISION.

    Borrows without deposits count as full utilization.
    """
    deposits = get_token_amount(spot_market.deposit_balance, spot_market, SpotBalanceType.DEPOSIT)
    borrows = get_token_amount(spot_market.borrow_balance, spot_market, SpotBalanceType.BORROW)
    if deposits == 0:
        return 0 if borrows == 0 else SPOT_UTILIZATION_PRECISION
    return mul_div(borrows, SPOT_UTILIZATION_PRECISION, deposits)


def calculate_interest_rate(spot_market: SpotMarket) -> int:
    """Annualized borrow rate (SPOT_RATE_PRECISION) on a curve kinked at optimal utilization."""
    utilization = calculate_utilization(spot_market)
    if utilization == 0:
        return 0

    optimal_util = spot_market.optimal_utilization
    if utilization > optimal_util and optimal_util < SPOT_UTILIZATION_PRECISION:
        surplus = utilization - optimal_util
        slope = mul_div(
            spot_market.max_borrow_rate - spot_market.optimal_borrow_rate,
            SPOT_UTILIZATION_PRECISION,
            SPOT_UTILIZATION_PRECISION - optimal_util,
        )
        return spot_market.optimal_borrow_rate + mul_div(surplus, slope, SPOT_UTILIZATION_PRECISION)

    slope = mul_div(spot_market.optimal_borrow_rate, SPOT_UTILIZATION_PRECISION, optimal_util)
    return mul_div(utilization, slope, SPOT_UTILIZATION_PRECISION)


@dataclass(frozen=True)
class CumulativeInterestDelta:
    borrow_delta: int    # SPOT_CUMULATIVE_INTEREST_PRECISION
    deposit_delta: int   # SPOT_CUMULATIVE_INTEREST_PRECISION


def calculate_cumulative_interest_delta(spot_market: SpotMarket, now: int) -> CumulativeInterestDelta:
    """Index growth since last_interest_ts. Depositors earn the borrow rate scaled by utilization."""
    elapsed = now - spot_market.last_interest_ts
    if elapsed < 0:
        raise InvalidPrecisionError(
            f"now {now} is before last interest update {spot_market.last_interest_ts}"
        )

    utilization = calculate_utilization(spot_market)
    borrow_interest = calculate_interest_rate(spot_market) * elapsed
    deposit_interest = mul_div(borrow_interest, utilization, SPOT_UTILIZATION_PRECISION)

    year_scale = ONE_YEAR * SPOT_RATE_PRECISION
    return CumulativeInterestDelta(
        borrow_delta=mul_div(spot_market.cumulative_borrow_interest, borrow_interest, year_scale),
        deposit_delta=mul_div(spot_market.cumulative_deposit_interest, deposit_interest, year_scale),
    )


def accrue_interest(spot_market: SpotMarket, now: int) -> SpotMarket:
    """Return a copy of spot_market with interest indices advanced to now."""
    delta = calculate_cumulative_interest_delta(spot_market, now)
    return replace(
        spot_market,
        cumulative_borrow_interest=spot_market.cumulative_borrow_interest + delta.borrow_delta,
        cumulative_deposit_interest=spot_market.cumulative_deposit_interest + delta.deposit_delta,
        last_interest_ts=now,
    )
