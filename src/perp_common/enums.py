"""Global enums shared by the pricing, exposure and margin modules."""

from enum import Enum


class MarketStatus(str, Enum):
    """Perp market lifecycle. Gates order execution only, never the margin math."""
    INITIALIZED = "INITIALIZED"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    SETTLEMENT = "SETTLEMENT"
    CLOSED = "CLOSED"


class MarketType(str, Enum):
    PERP = "PERP"
    SPOT = "SPOT"


class OracleSource(str, Enum):
    PYTH = "PYTH"
    SWITCHBOARD = "SWITCHBOARD"
    QUOTE_ASSET = "QUOTE_ASSET"  # fixed at PRICE_PRECISION, no feed


class PositionDirection(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class MarginRequirementType(str, Enum):
    INITIAL = "INITIAL"
    MAINTENANCE = "MAINTENANCE"


class MarginCalculationMode(str, Enum):
    STANDARD = "STANDARD"
    LIQUIDATION = "LIQUIDATION"


class SpotBalanceType(str, Enum):
    DEPOSIT = "DEPOSIT"
    BORROW = "BORROW"


class AssetType(str, Enum):
    BASE = "BASE"
    QUOTE = "QUOTE"


class SwapDirection(str, Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"
