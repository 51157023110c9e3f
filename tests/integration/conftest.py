"""Integration-test fixtures."""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.main import app
from src.perp_account.domain.snapshot_store import SnapshotStore
from src.perp_margin.api.router import get_risk_service
from src.perp_margin.application.service import RiskApplicationService
from src.perp_market.domain.oracle import OracleGuardRails


@pytest_asyncio.fixture
async def client() -> AsyncClient:
    """Async HTTP client with a fresh SnapshotStore per test."""
    service = RiskApplicationService(
        store=SnapshotStore(),
        guard_rails=OracleGuardRails(max_confidence_bps=200),
        margin_buffer=200,
    )
    app.dependency_overrides[get_risk_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
