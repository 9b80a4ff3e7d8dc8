# fleetdesk/core/notifications.py

"""
Per-owner notification batching.

A bulk import can touch hundreds of riders belonging to the same team leader.
Rows are only counted while the run is in progress; each owner gets exactly one
notification carrying their total when the run ends.
"""

import logging
from typing import Optional

from fleetdesk.core.store import NotificationSink
from fleetdesk.models import ImportType

logger = logging.getLogger(__name__)


class NotificationBatcher:
    """Counts affected records per owner for one run."""

    def __init__(self):
        self._counts: dict[str, int] = {}

    def add(self, owner_id: Optional[str], count: int = 1) -> None:
        """Count records for an owner; unassigned records are ignored."""
        if not owner_id or count <= 0:
            return
        self._counts[owner_id] = self._counts.get(owner_id, 0) + count

    @property
    def counts(self) -> dict[str, int]:
        return dict(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def flush(self, sink: NotificationSink, import_type: ImportType) -> int:
        """
        Emit one notification per owner and reset the counts.

        Delivery is fire-and-forget: a failing owner is logged and skipped.
        Returns the number of notifications that were accepted by the sink.
        """
        pending, self._counts = self._counts, {}
        delivered = 0

        for owner_id, count in pending.items():
            try:
                sink.emit_batch(owner_id, count, import_type=import_type)
                delivered += 1
            except Exception as e:
                logger.warning(f"Failed to notify owner {owner_id} about {count} records: {e}")

        if pending:
            logger.info(f"Sent {delivered}/{len(pending)} batched {import_type} notifications")

        return delivered
