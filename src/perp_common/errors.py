"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Math/Precision
  2xxx: Account/Snapshot
  3xxx: Market/Oracle
  4xxx: Margin calculation
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Math/Precision ---

class InvalidPrecisionError(AppError):
    """Quantity outside its expected scale, or negative where none is allowed."""

    def __init__(self, detail: str) -> None:
        super().__init__(1001, f"Invalid precision: {detail}", 422)


class MathOverflowError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1002, f"Math overflow: {detail}", 500)


# --- 2xxx: Account/Snapshot ---

class SnapshotNotFoundError(AppError):
    def __init__(self, authority: str) -> None:
        super().__init__(2001, f"No account snapshot published for {authority}", 404)


class StaleSnapshotError(AppError):
    def __init__(self, authority: str, slot: int, published_slot: int) -> None:
        super().__init__(
            2002,
            f"Stale snapshot for {authority}: slot {slot} < published slot {published_slot}",
            409,
        )


class InvalidSnapshotError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2003, f"Invalid account snapshot: {detail}", 422)


# --- 3xxx: Market/Oracle ---

class MarketNotFoundError(AppError):
    def __init__(self, market_index: int) -> None:
        super().__init__(3001, f"Perp market not found: {market_index}", 404)


class SpotMarketNotFoundError(AppError):
    def __init__(self, market_index: int) -> None:
        super().__init__(3002, f"Spot market not found: {market_index}", 404)


class OracleNotFoundError(AppError):
    def __init__(self, address: str) -> None:
        super().__init__(3003, f"Oracle data not found: {address}", 404)


class MarginTierConfigError(AppError):
    """Empty or malformed margin tier table. Never defaults to zero margin."""

    def __init__(self, market_index: int, detail: str) -> None:
        super().__init__(
            3004, f"Invalid margin tiers for market {market_index}: {detail}", 500
        )


# --- 4xxx: Margin calculation ---

class InvalidMarginCalculationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Invalid margin calculation: {detail}", 500)
