# tests/test_database.py

"""
Tests for the Supabase collaborators, using a recording stand-in for the client.
"""

import pytest
from datetime import datetime, timezone

from postgrest.exceptions import APIError

from fleetdesk.core.errors import StoreError
from fleetdesk.database import (
    SupabaseImportHistory,
    SupabaseNotificationSink,
    SupabaseRecordStore,
)
from fleetdesk.models import DuplicateKeys, ImportRowError, ImportSummary, RunMetadata


class RecordingQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []

    def __getattr__(self, name):
        def call(*args, **kwargs):
            self.calls.append((name, args))
            return self
        return call

    def execute(self):
        self.client.queries.append((self.table, self.calls))
        if self.table in self.client.failing_tables:
            raise APIError({"message": f"{self.table} is read-only", "code": "42501"})
        return type("Response", (), {"data": self.client.data.get(self.table, [])})()


class RecordingClient:
    def __init__(self, data=None, failing_tables=()):
        self.data = data or {}
        self.failing_tables = set(failing_tables)
        self.queries = []

    def table(self, name):
        return RecordingQuery(self, name)

    def inserted(self, table):
        return [args[0] for t, calls in self.queries if t == table for name, args in calls if name == "insert"]


def make_summary(failures: int) -> ImportSummary:
    errors = [ImportRowError(row=i + 2, identifier=f"Row {i + 2}", reason="Missing Rider Name") for i in range(failures)]
    return ImportSummary(import_type="rider", total=failures + 1, success=1, failed=failures, errors=errors)


def make_run() -> RunMetadata:
    return RunMetadata(
        admin_id="admin-1",
        admin_name="Ops Admin",
        import_type="rider",
        source="roster.csv",
        started_at=datetime(2025, 1, 15, tzinfo=timezone.utc),
    )


class TestRecordStore:

    def test_lookup_builds_or_filter(self):
        client = RecordingClient({"riders": [{"id": "r1", "rider_name": "Suresh", "team_leader_id": "u3"}]})

        refs = SupabaseRecordStore(client).lookup(DuplicateKeys(triev_id="TRV-1", mobile_number="9876543210"))

        assert refs[0].owner_id == "u3"
        _, calls = client.queries[0]
        assert ("or_", ('triev_id.eq."TRV-1",mobile_number.eq."9876543210"',)) in calls

    def test_api_error_becomes_store_error(self):
        client = RecordingClient(failing_tables={"riders"})

        with pytest.raises(StoreError, match="read-only"):
            SupabaseRecordStore(client).update("r1", {"wallet_amount": 5})

    def test_list_owners(self):
        client = RecordingClient({"users": [
            {"id": "u1", "full_name": " Asha Kumar ", "email": "ASHA@fleet.test", "role": "teamLeader"},
            {"id": None, "full_name": "Ghost"},
        ]})

        owners = SupabaseRecordStore(client).list_owners(["teamLeader"])

        assert [(o.id, o.display_name, o.email) for o in owners] == [("u1", "Asha Kumar", "asha@fleet.test")]


class TestImportHistory:

    def test_errors_capped(self):
        client = RecordingClient()

        SupabaseImportHistory(client).record(make_run(), make_summary(60))

        history = client.inserted("import_history")[0]
        assert history["failure_count"] == 60
        assert len(history["errors"]) == 50
        assert history["status"] == "partial"
        assert client.inserted("activity_logs")[0]["action_type"] == "bulkImport"

    def test_activity_log_failure_is_logged(self):
        client = RecordingClient(failing_tables={"activity_logs"})

        SupabaseImportHistory(client).record(make_run(), make_summary(0))

        assert len(client.inserted("import_history")) == 1


class TestNotificationSink:

    def test_wallet_notification(self):
        client = RecordingClient()

        SupabaseNotificationSink(client).emit_batch("u3", 4, import_type="wallet")

        notification = client.inserted("notifications")[0]
        assert notification["user_id"] == "u3"
        assert notification["type"] == "walletAlert"
        assert "4 rider(s)" in notification["message"]
