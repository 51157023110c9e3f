"""Integration tests for the risk endpoints over the ASGI app.

Each test gets a fresh SnapshotStore through the client fixture in
tests/integration/conftest.py.
"""

from typing import Any

import pytest
from httpx import AsyncClient

from src.perp_common.precision import MAX_MARGIN_RATIO

pytestmark = pytest.mark.asyncio


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _snapshot(
    authority: str = "alice",
    slot: int = 100,
    oracle_price: int = 50_000_000,
    positions: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """20 USDC deposited, SOL-PERP at a $50 mark with 5x max leverage."""
    return {
        "authority": authority,
        "slot": slot,
        "perp_positions": positions or [],
        "spot_balances": [{"market_index": 0, "scaled_balance": 20_000_000_000}],
        "perp_markets": [
            {
                "market_index": 0,
                "amm": {
                    "base_asset_reserve": 200_000_000_000_000,
                    "quote_asset_reserve": 200_000_000_000_000,
                    "peg_multiplier": 50_000_000,
                },
                "margin_tiers": [
                    {"size_breakpoint": 100_000_000_000, "initial_margin_ratio": 2000,
                     "maintenance_margin_ratio": 500},
                    {"size_breakpoint": 1_000_000_000_000, "initial_margin_ratio": 3000,
                     "maintenance_margin_ratio": 1000},
                ],
                "oracle": "sol-oracle",
                "name": "SOL-PERP",
            }
        ],
        "spot_markets": [{"market_index": 0, "decimals": 6, "name": "USDC"}],
        "oracles": [{"address": "sol-oracle", "price": oracle_price, "confidence": 500}],
    }


LONG_ONE_SOL = {"market_index": 0, "base_asset_amount": 1_000_000_000, "quote_cost_basis": 50_000_250}

DEPOSIT_ONLY = {
    "authority": "bob",
    "spot_balances": [{"market_index": 0, "scaled_balance": 20_000_000_000}],
    "spot_markets": [{"market_index": 0, "decimals": 6}],
}


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestPreviewMetrics:
    async def test_deposit_only(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/risk/metrics", json=_snapshot())
        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        assert body["request_id"] == resp.headers["X-Request-ID"]
        data = body["data"]
        assert data["total_collateral"] == 20_000_000
        assert data["total_collateral_display"] == "$20.00"
        assert data["leverage"] == 0
        assert data["margin_ratio"] == MAX_MARGIN_RATIO
        assert data["buying_power"] == 100_000_000

    async def test_long_position(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/risk/metrics", json=_snapshot(positions=[LONG_ONE_SOL])
        )
        data = resp.json()["data"]
        assert data["unrealized_pnl"] == -250
        assert data["free_collateral"] == 9_999_750
        assert data["leverage"] == 25_000
        assert data["margin_ratio"] == 3999
        assert data["maintenance_margin_requirement"] == 2_500_000
        assert data["can_exit_liquidation"] is True

    async def test_unknown_market_has_no_buying_power(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/risk/metrics?market_index=5", json=_snapshot())
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["free_collateral"] == 20_000_000
        assert data["buying_power"] is None
        assert data["buying_power_display"] is None

    async def test_zero_oracle_price_returns_422(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/risk/metrics", json=_snapshot(oracle_price=0))
        assert resp.status_code == 422

    async def test_malformed_tiers_return_500(self, client: AsyncClient) -> None:
        body = _snapshot(positions=[LONG_ONE_SOL])
        body["perp_markets"][0]["margin_tiers"] = []
        resp = await client.post("/api/v1/risk/metrics", json=body)
        assert resp.status_code == 500
        assert resp.json()["code"] == 3004
        assert resp.json()["data"] is None

    async def test_missing_oracle_returns_404(self, client: AsyncClient) -> None:
        body = _snapshot(positions=[LONG_ONE_SOL])
        body["oracles"] = []
        resp = await client.post("/api/v1/risk/metrics", json=body)
        assert resp.status_code == 404
        assert resp.json()["code"] == 3003

    async def test_schema_validation_returns_422(self, client: AsyncClient) -> None:
        body = _snapshot()
        body["spot_balances"][0]["scaled_balance"] = -1
        resp = await client.post("/api/v1/risk/metrics", json=body)
        assert resp.status_code == 422


class TestPublishedSnapshots:
    async def test_publish_then_get(self, client: AsyncClient) -> None:
        resp = await client.put(
            "/api/v1/risk/accounts/alice/snapshot", json=_snapshot(positions=[LONG_ONE_SOL])
        )
        assert resp.status_code == 200
        assert resp.json()["data"] == {"authority": "alice", "slot": 100, "generation": 1}

        resp = await client.get("/api/v1/risk/accounts/alice")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["authority"] == "alice"
        assert data["slot"] == 100
        assert data["total_collateral"] == 19_999_750

    async def test_newer_snapshot_replaces(self, client: AsyncClient) -> None:
        await client.put(
            "/api/v1/risk/accounts/alice/snapshot", json=_snapshot(positions=[LONG_ONE_SOL])
        )
        await client.put(
            "/api/v1/risk/accounts/alice/snapshot",
            json=_snapshot(slot=101, oracle_price=55_000_000, positions=[LONG_ONE_SOL]),
        )
        data = (await client.get("/api/v1/risk/accounts/alice")).json()["data"]
        assert data["slot"] == 101
        assert data["unrealized_pnl"] == 4_999_750
        assert data["buying_power"] == 69_998_750

    async def test_stale_snapshot_returns_409(self, client: AsyncClient) -> None:
        await client.put("/api/v1/risk/accounts/alice/snapshot", json=_snapshot(slot=100))
        resp = await client.put("/api/v1/risk/accounts/alice/snapshot", json=_snapshot(slot=99))
        assert resp.status_code == 409
        assert resp.json()["code"] == 2002

        data = (await client.get("/api/v1/risk/accounts/alice")).json()["data"]
        assert data["slot"] == 100

    async def test_authority_mismatch_returns_422(self, client: AsyncClient) -> None:
        resp = await client.put("/api/v1/risk/accounts/bob/snapshot", json=_snapshot())
        assert resp.status_code == 422
        assert resp.json()["code"] == 2003

    async def test_unknown_authority_returns_404(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/risk/accounts/nobody")
        assert resp.status_code == 404
        assert resp.json()["code"] == 2001

    async def test_remove_snapshot(self, client: AsyncClient) -> None:
        await client.put("/api/v1/risk/accounts/alice/snapshot", json=_snapshot())
        resp = await client.delete("/api/v1/risk/accounts/alice/snapshot")
        assert resp.status_code == 200
        resp = await client.get("/api/v1/risk/accounts/alice")
        assert resp.status_code == 404


class TestDepositOnlyAccount:
    """An account with spot deposits and no perp market at all."""

    async def test_preview(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/risk/metrics", json=DEPOSIT_ONLY)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["total_collateral"] == 20_000_000
        assert data["free_collateral"] == 20_000_000
        assert data["leverage"] == 0
        assert data["margin_ratio"] == MAX_MARGIN_RATIO
        assert data["buying_power"] is None
        assert data["can_exit_liquidation"] is True

    async def test_published(self, client: AsyncClient) -> None:
        resp = await client.put("/api/v1/risk/accounts/bob/snapshot", json=DEPOSIT_ONLY)
        assert resp.status_code == 200
        resp = await client.get("/api/v1/risk/accounts/bob")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["authority"] == "bob"
        assert data["free_collateral"] == 20_000_000
        assert data["margin_ratio"] == MAX_MARGIN_RATIO
        assert data["buying_power"] is None
