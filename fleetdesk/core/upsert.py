# fleetdesk/core/upsert.py

"""
Builds rider write payloads and issues the insert or update.
"""

from datetime import datetime

from fleetdesk.core.store import RecordStore
from fleetdesk.models import RecordRef, ResolvedIdentity, RiderRecord, RowAction

UNASSIGNED = "Unassigned"


def build_rider_payload(record: RiderRecord, identity: ResolvedIdentity, now: datetime) -> dict:
    """
    Canonical riders-table payload for a roster row.

    team_leader_name keeps the reference exactly as typed in the sheet so the
    dashboard can show where an assignment came from.
    """
    return {
        "rider_name": record.rider_name,
        "mobile_number": record.mobile_number,
        "triev_id": record.triev_id,
        "chassis_number": record.chassis_number,
        "client_name": record.client_name,
        "client_id": record.client_id,
        "wallet_amount": record.wallet_amount,
        "allotment_date": record.allotment_date.isoformat(),
        "remarks": record.remarks,
        "team_leader_id": identity.owner_id,
        "team_leader_name": identity.raw_reference if identity.is_resolved else UNASSIGNED,
        "status": record.status,
        "updated_at": now.isoformat(),
    }


class UpsertOrchestrator:
    """Writes one row at a time; every call is a single store write."""

    def __init__(self, store: RecordStore):
        self.store = store

    def write_rider(
        self,
        record: RiderRecord,
        identity: ResolvedIdentity,
        existing: RecordRef | None,
        now: datetime,
    ) -> tuple[str, RowAction]:
        """
        Update the matched rider or insert a new one.

        Returns (record_id, action). Raises StoreError on a failed write.
        """
        payload = build_rider_payload(record, identity, now)

        if existing is not None:
            self.store.update(existing.id, payload)
            return existing.id, "updated"

        payload["created_at"] = now.isoformat()
        created = self.store.insert(payload)
        return created.id, "inserted"

    def write_wallet(self, existing: RecordRef, amount: float, now: datetime) -> None:
        """Set a rider's wallet balance."""
        self.store.update(
            existing.id,
            {
                "wallet_amount": amount,
                "updated_at": now.isoformat(),
            },
        )
