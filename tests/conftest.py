# tests/conftest.py

"""
Shared fixtures: environment defaults and in-memory import collaborators.
"""

import os
import uuid

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("GOOGLE_SHEETS_API_KEY", "test-sheets-key")

import pytest

from fleetdesk.core.errors import StoreError
from fleetdesk.models import DuplicateKeys, OwnerDirectoryEntry, RecordRef


# ============================================
# In-memory collaborators
# ============================================

class FakeRecordStore:
    """Riders table kept in a list, in insertion order."""

    def __init__(self, owners=None):
        self.owners = list(owners or [])
        self.rows: list[dict] = []
        self.inserts = 0
        self.updates = 0
        # rider_name values whose write raises StoreError
        self.failing_names: set[str] = set()
        self.fail_owners = False

    def lookup(self, keys: DuplicateKeys) -> list[RecordRef]:
        filters = keys.as_filters()
        return [
            RecordRef(id=row["id"], rider_name=row.get("rider_name"), owner_id=row.get("team_leader_id"))
            for row in self.rows
            if any(row.get(column) == value for column, value in filters.items())
        ]

    def insert(self, payload: dict) -> RecordRef:
        if payload.get("rider_name") in self.failing_names:
            raise StoreError("Insert rider failed: duplicate key value violates unique constraint")
        row = {"id": str(uuid.uuid4()), **payload}
        self.rows.append(row)
        self.inserts += 1
        return RecordRef(id=row["id"], rider_name=row.get("rider_name"), owner_id=row.get("team_leader_id"))

    def update(self, record_id: str, payload: dict) -> None:
        for row in self.rows:
            if row["id"] == record_id:
                if row.get("rider_name") in self.failing_names:
                    raise StoreError("Update rider failed: timed out")
                row.update(payload)
                self.updates += 1
                return
        raise StoreError(f"Update rider failed: {record_id} not found")

    def list_owners(self, roles=None) -> list[OwnerDirectoryEntry]:
        if self.fail_owners:
            raise StoreError("Load owners failed: connection refused")
        return list(self.owners)

    def get(self, triev_id: str) -> dict:
        return next(row for row in self.rows if row.get("triev_id") == triev_id)


class FakeNotificationSink:
    def __init__(self):
        self.sent: list[tuple[str, int, str]] = []
        self.failing_owners: set[str] = set()

    def emit_batch(self, owner_id: str, count: int, *, import_type: str) -> None:
        if owner_id in self.failing_owners:
            raise RuntimeError("notification insert failed")
        self.sent.append((owner_id, count, import_type))


class FakeHistoryLogger:
    def __init__(self):
        self.records = []

    def record(self, run, summary) -> None:
        self.records.append((run, summary))


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def owners() -> list[OwnerDirectoryEntry]:
    return [
        OwnerDirectoryEntry(id="u1", display_name="Asha Kumar ( BADGE/10 )", email="asha@fleet.test"),
        OwnerDirectoryEntry(id="u2", display_name="Asha Kumar ( BADGE/100 )", email="asha.k@fleet.test"),
        OwnerDirectoryEntry(id="u3", display_name="Ravi Shankar", email="ravi@fleet.test"),
    ]


@pytest.fixture
def store(owners) -> FakeRecordStore:
    return FakeRecordStore(owners)


@pytest.fixture
def notifier() -> FakeNotificationSink:
    return FakeNotificationSink()


@pytest.fixture
def history() -> FakeHistoryLogger:
    return FakeHistoryLogger()
