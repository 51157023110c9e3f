"""Fixed-point integer arithmetic for the perp risk engine.

All prices, amounts, reserves and balances are int at a named precision.
No float, no Decimal. Cross-precision products multiply first and divide
last; division truncates toward zero unless the call site says otherwise.
"""

from src.perp_common.errors import InvalidPrecisionError, MathOverflowError

# --- Precision constants ---

PRICE_PRECISION = 10**6
QUOTE_PRECISION = 10**6
BASE_PRECISION = 10**9
AMM_RESERVE_PRECISION = BASE_PRECISION
PEG_PRECISION = 10**6
FUNDING_RATE_BUFFER_PRECISION = 10**3
FUNDING_RATE_PRECISION = PRICE_PRECISION * FUNDING_RATE_BUFFER_PRECISION
MARGIN_PRECISION = 10_000
LEVERAGE_PRECISION = 10_000

# reserve units * peg -> quote units
AMM_TIMES_PEG_TO_QUOTE_PRECISION_RATIO = AMM_RESERVE_PRECISION * PEG_PRECISION // QUOTE_PRECISION

SPOT_BALANCE_PRECISION = 10**9
SPOT_CUMULATIVE_INTEREST_PRECISION = 10**10
SPOT_UTILIZATION_PRECISION = 10**6
SPOT_RATE_PRECISION = 10**6

ONE_YEAR = 31_536_000  # seconds

# "Infinite" margin ratio: no exposure. Same value as JS Number.MAX_SAFE_INTEGER.
MAX_MARGIN_RATIO = 2**53 - 1

MAX_U64 = 2**64 - 1
MIN_I64 = -(2**63)
MAX_I64 = 2**63 - 1
MAX_I128 = 2**127 - 1


# --- Division ---

def div_trunc(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero.

    Python's // floors toward -inf: -7 // 2 == -4, div_trunc(-7, 2) == -3.
    """
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def div_round_half_up(numerator: int, denominator: int) -> int:
    """Round half away from zero: 5 / 2 -> 3, -5 / 2 -> -3."""
    quotient = (2 * abs(numerator) + abs(denominator)) // (2 * abs(denominator))
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def mul_div(a: int, b: int, denominator: int, round_half_up: bool = False) -> int:
    """Compute a * b / denominator with a checked 128-bit intermediate."""
    product = a * b
    if abs(product) > MAX_I128:
        raise MathOverflowError(f"{a} * {b} exceeds 128 bits")
    if round_half_up:
        return div_round_half_up(product, denominator)
    return div_trunc(product, denominator)


# --- Domain checks ---

def ensure_non_negative(value: int, name: str) -> int:
    if value < 0:
        raise InvalidPrecisionError(f"{name} must be >= 0, got {value}")
    return value


def ensure_u64(value: int, name: str) -> int:
    if not (0 <= value <= MAX_U64):
        raise InvalidPrecisionError(f"{name} out of u64 range: {value}")
    return value


def ensure_i64(value: int, name: str) -> int:
    if not (MIN_I64 <= value <= MAX_I64):
        raise InvalidPrecisionError(f"{name} out of i64 range: {value}")
    return value


# --- Display ---

def quote_to_display(amount: int) -> str:
    """Convert quote units to a display string: 20_000_000 -> '$20.00', -50_002 -> '-$0.05'."""
    cents = abs(amount) // (QUOTE_PRECISION // 100)
    text = f"${cents // 100:,}.{cents % 100:02d}"
    return f"-{text}" if amount < 0 and cents > 0 else text
