from __future__ import annotations

import logging
from typing import Dict, List

from abtest.app.schemas.snapshot import Snapshot

logger = logging.getLogger(__name__)


class InMemorySnapshotStore:
    """
    Process-local snapshot store with auto-incrementing ids.

    Suitable for tests and short-lived sessions; nothing is persisted.
    Stored snapshots carry their assigned id.
    """

    def __init__(self) -> None:
        self._snapshots: Dict[int, Snapshot] = {}
        self._next_id = 1

    def add(self, snapshot: Snapshot) -> int:
        snapshot_id = self._next_id
        self._next_id += 1

        self._snapshots[snapshot_id] = snapshot.with_id(snapshot_id)
        logger.debug("Stored snapshot %d '%s'", snapshot_id, snapshot.name)
        return snapshot_id

    def get_all(self) -> List[Snapshot]:
        return list(self._snapshots.values())

    def delete(self, snapshot_id: int) -> None:
        self._snapshots.pop(snapshot_id, None)
