"""Domain models for perp_account — frozen dataclasses, no I/O.

A UserAccountSnapshot is one consistent generation of everything the margin
engine reads: the user's positions, resting orders and spot balances plus
the markets and oracle data they reference.
"""

from dataclasses import dataclass, field

from src.perp_common.enums import OracleSource, PositionDirection, SpotBalanceType
from src.perp_common.errors import (
    InvalidSnapshotError,
    MarketNotFoundError,
    OracleNotFoundError,
    SpotMarketNotFoundError,
)
from src.perp_common.precision import ensure_i64, ensure_non_negative, ensure_u64
from src.perp_market.domain.models import OracleData, PerpMarket, SpotMarket
from src.perp_market.domain.oracle import QUOTE_ASSET_ORACLE


@dataclass(frozen=True)
class PerpPosition:
    market_index: int
    base_asset_amount: int = 0        # BASE_PRECISION, signed, > 0 long
    quote_cost_basis: int = 0         # QUOTE_PRECISION, signed, net quote paid to hold the position
    settled_funding: int = 0          # QUOTE_PRECISION, signed, > 0 received
    last_cumulative_funding_rate: int = 0   # FUNDING_RATE_PRECISION

    def __post_init__(self) -> None:
        ensure_i64(self.base_asset_amount, "base_asset_amount")
        ensure_i64(self.quote_cost_basis, "quote_cost_basis")

    @property
    def is_open(self) -> bool:
        return self.base_asset_amount != 0


@dataclass(frozen=True)
class OpenOrder:
    market_index: int
    direction: PositionDirection
    base_asset_amount_remaining: int   # BASE_PRECISION, unfilled quantity

    def __post_init__(self) -> None:
        ensure_u64(self.base_asset_amount_remaining, "base_asset_amount_remaining")


@dataclass(frozen=True)
class SpotBalance:
    market_index: int
    scaled_balance: int                # SPOT_BALANCE_PRECISION, never negative
    balance_type: SpotBalanceType = SpotBalanceType.DEPOSIT

    def __post_init__(self) -> None:
        ensure_non_negative(self.scaled_balance, "scaled_balance")


@dataclass(frozen=True)
class UserAccountSnapshot:
    authority: str
    slot: int = 0
    perp_positions: tuple[PerpPosition, ...] = ()
    open_orders: tuple[OpenOrder, ...] = ()
    spot_balances: tuple[SpotBalance, ...] = ()
    perp_markets: tuple[PerpMarket, ...] = ()
    spot_markets: tuple[SpotMarket, ...] = ()
    oracles: tuple[OracleData, ...] = ()
    _perp_market_map: dict[int, PerpMarket] = field(init=False, repr=False, compare=False)
    _spot_market_map: dict[int, SpotMarket] = field(init=False, repr=False, compare=False)
    _oracle_map: dict[str, OracleData] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        seen: set[int] = set()
        for pos in self.perp_positions:
            if pos.market_index in seen:
                raise InvalidSnapshotError(
                    f"duplicate perp position for market {pos.market_index}"
                )
            seen.add(pos.market_index)

        seen.clear()
        for bal in self.spot_balances:
            if bal.market_index in seen:
                raise InvalidSnapshotError(
                    f"duplicate spot balance for market {bal.market_index}"
                )
            seen.add(bal.market_index)

        # frozen: lookup maps are derived once, after validation
        object.__setattr__(self, "_perp_market_map", {m.market_index: m for m in self.perp_markets})
        object.__setattr__(self, "_spot_market_map", {m.market_index: m for m in self.spot_markets})
        object.__setattr__(self, "_oracle_map", {o.address: o for o in self.oracles})

    def find_perp_market(self, market_index: int) -> PerpMarket | None:
        return self._perp_market_map.get(market_index)

    def get_perp_market(self, market_index: int) -> PerpMarket:
        market = self.find_perp_market(market_index)
        if market is None:
            raise MarketNotFoundError(market_index)
        return market

    def get_spot_market(self, market_index: int) -> SpotMarket:
        market = self._spot_market_map.get(market_index)
        if market is None:
            raise SpotMarketNotFoundError(market_index)
        return market

    def get_oracle(self, address: str, source: OracleSource) -> OracleData:
        if source == OracleSource.QUOTE_ASSET:
            return QUOTE_ASSET_ORACLE
        oracle = self._oracle_map.get(address)
        if oracle is None:
            raise OracleNotFoundError(address)
        return oracle

    def get_oracle_for_perp_market(self, market_index: int) -> OracleData:
        market = self.get_perp_market(market_index)
        return self.get_oracle(market.oracle, market.oracle_source)

    def get_perp_position(self, market_index: int) -> PerpPosition | None:
        for pos in self.perp_positions:
            if pos.market_index == market_index:
                return pos
        return None

    def active_perp_market_indexes(self) -> list[int]:
        """Markets with a position record or a resting order, in first-seen order."""
        indexes: dict[int, None] = {}
        for pos in self.perp_positions:
            indexes[pos.market_index] = None
        for order in self.open_orders:
            indexes[order.market_index] = None
        return list(indexes)
