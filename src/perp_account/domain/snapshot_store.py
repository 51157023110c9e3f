"""Published account snapshots — copy-on-write, lock-free reads.

The subscriber (outside this service) calls publish() whenever it has a fresh,
complete snapshot. publish() builds a new mapping and swaps the single
reference; readers only ever dereference that reference, so each read sees
one whole generation and never waits on a writer.
"""

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from src.perp_account.domain.models import UserAccountSnapshot
from src.perp_common.errors import SnapshotNotFoundError, StaleSnapshotError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Generation:
    number: int
    snapshots: Mapping[str, UserAccountSnapshot]


class SnapshotStore:
    def __init__(self) -> None:
        self._generation = Generation(number=0, snapshots=MappingProxyType({}))
        self._write_lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation.number

    def publish(self, snapshot: UserAccountSnapshot) -> int:
        """Swap in snapshot for its authority. Returns the new generation number.

        A snapshot from an earlier slot than the one already published raises
        StaleSnapshotError; the same slot replaces it.
        """
        with self._write_lock:
            current = self._generation
            published = current.snapshots.get(snapshot.authority)
            if published is not None and snapshot.slot < published.slot:
                logger.warning(
                    "Rejected stale snapshot: authority=%s slot=%d published_slot=%d",
                    snapshot.authority, snapshot.slot, published.slot,
                )
                raise StaleSnapshotError(snapshot.authority, snapshot.slot, published.slot)

            snapshots = dict(current.snapshots)
            snapshots[snapshot.authority] = snapshot
            self._generation = Generation(
                number=current.number + 1, snapshots=MappingProxyType(snapshots)
            )
            logger.info(
                "Published snapshot: authority=%s slot=%d generation=%d",
                snapshot.authority, snapshot.slot, self._generation.number,
            )
            return self._generation.number

    def get(self, authority: str) -> UserAccountSnapshot:
        snapshot = self._generation.snapshots.get(authority)
        if snapshot is None:
            raise SnapshotNotFoundError(authority)
        return snapshot

    def current(self) -> Generation:
        """The whole published generation, for reads spanning several accounts."""
        return self._generation

    def remove(self, authority: str) -> None:
        with self._write_lock:
            current = self._generation
            if authority not in current.snapshots:
                raise SnapshotNotFoundError(authority)
            snapshots = dict(current.snapshots)
            del snapshots[authority]
            self._generation = Generation(
                number=current.number + 1, snapshots=MappingProxyType(snapshots)
            )
            logger.info("Removed snapshot: authority=%s", authority)
