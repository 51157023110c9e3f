"""Oracle validity checks.

The engine never fetches prices; OracleData arrives inside the snapshot.
Staleness is judged by the subscriber, only the confidence band is checked here.
"""

from dataclasses import dataclass

from src.perp_common.enums import OracleSource
from src.perp_common.precision import MARGIN_PRECISION, PRICE_PRECISION
from src.perp_market.domain.models import OracleData

QUOTE_ASSET_ORACLE = OracleData(
    address="",
    price=PRICE_PRECISION,
    confidence=0,
    timestamp=0,
    source=OracleSource.QUOTE_ASSET,
)


@dataclass(frozen=True)
class OracleGuardRails:
    max_confidence_bps: int = 200  # MARGIN_PRECISION, confidence / price


def is_oracle_valid(oracle: OracleData, guard_rails: OracleGuardRails) -> bool:
    """price > 0 and confidence / price <= max_confidence_bps / MARGIN_PRECISION."""
    if oracle.source == OracleSource.QUOTE_ASSET:
        return True
    if oracle.price <= 0 or oracle.confidence < 0:
        return False
    # cross-multiplied to avoid a division
    return oracle.confidence * MARGIN_PRECISION <= oracle.price * guard_rails.max_confidence_bps
