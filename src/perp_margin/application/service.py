"""RiskApplicationService — thin composition layer.

Converts request schemas to domain snapshots, publishes them to the
SnapshotStore and runs the margin engine over exactly one snapshot per call.
"""

import logging

from config.settings import settings
from src.perp_account.domain.models import UserAccountSnapshot
from src.perp_account.domain.snapshot_store import SnapshotStore
from src.perp_common.errors import InvalidSnapshotError
from src.perp_margin.application.schemas import (
    AccountSnapshotRequest,
    PublishSnapshotResponse,
    RiskMetricsResponse,
)
from src.perp_margin.domain.metrics import compute_risk_metrics
from src.perp_market.domain.oracle import OracleGuardRails

logger = logging.getLogger(__name__)


class RiskApplicationService:
    def __init__(
        self,
        store: SnapshotStore | None = None,
        guard_rails: OracleGuardRails | None = None,
        margin_buffer: int | None = None,
    ) -> None:
        self._store = store or SnapshotStore()
        self._guard_rails = guard_rails or OracleGuardRails(
            max_confidence_bps=settings.ORACLE_MAX_CONFIDENCE_BPS
        )
        self._margin_buffer = (
            settings.LIQUIDATION_MARGIN_BUFFER_BPS if margin_buffer is None else margin_buffer
        )

    @property
    def store(self) -> SnapshotStore:
        return self._store

    def _metrics(self, snapshot: UserAccountSnapshot, market_index: int) -> RiskMetricsResponse:
        metrics = compute_risk_metrics(
            snapshot, market_index, self._margin_buffer, self._guard_rails
        )
        return RiskMetricsResponse.from_metrics(metrics)

    def preview_metrics(self, body: AccountSnapshotRequest, market_index: int) -> RiskMetricsResponse:
        """Metrics for a caller-supplied snapshot; nothing is published."""
        return self._metrics(body.to_domain(), market_index)

    def publish_snapshot(self, authority: str, body: AccountSnapshotRequest) -> PublishSnapshotResponse:
        if body.authority != authority:
            raise InvalidSnapshotError(
                f"path authority {authority} does not match body authority {body.authority}"
            )
        snapshot = body.to_domain()
        generation = self._store.publish(snapshot)
        return PublishSnapshotResponse(
            authority=snapshot.authority, slot=snapshot.slot, generation=generation
        )

    def remove_snapshot(self, authority: str) -> None:
        self._store.remove(authority)

    def get_metrics(self, authority: str, market_index: int) -> RiskMetricsResponse:
        """Metrics over the currently published snapshot for authority."""
        snapshot = self._store.get(authority)
        logger.debug(
            "Computing metrics: authority=%s slot=%d generation=%d",
            authority, snapshot.slot, self._store.generation,
        )
        return self._metrics(snapshot, market_index)
