# tests/test_imports_router.py

"""
Tests for the /imports routes, with Supabase swapped for in-memory fakes.
"""

import pytest
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

from fleetdesk.dependencies import (
    AdminUser,
    get_current_admin,
    get_history_logger,
    get_notification_sink,
    get_record_store,
)
from fleetdesk.integrations.google_sheets import SheetFetchError
from fleetdesk.main import app
from fleetdesk.routers import imports as imports_router

ROSTER_CSV = (
    "Rider Name,Triev ID,Mobile Number,Team Leader,Wallet Amount\n"
    "Suresh,TRV-1,9876543210,Ravi Shankar,(-) 200\n"
    "No Name,,,,\n"
)


@pytest.fixture
def client(store, notifier, history):
    app.dependency_overrides[get_current_admin] = lambda: AdminUser(id="admin-1", name="Ops Admin")
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_notification_sink] = lambda: notifier
    app.dependency_overrides[get_history_logger] = lambda: history
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestFileImports:

    def test_rider_upload(self, client, store, history):
        response = client.post(
            "/imports/riders",
            files={"file": ("roster.csv", ROSTER_CSV.encode(), "text/csv")},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert body["success"] == 1
        assert body["failed"] == 1
        assert body["status"] == "partial"
        assert body["errors"][0]["row"] == 3
        assert store.get("TRV-1")["team_leader_id"] == "u3"

        run, _ = history.records[0]
        assert run.admin_name == "Ops Admin"
        assert run.source == "roster.csv"

    def test_wallet_upload(self, client, store):
        client.post("/imports/riders", files={"file": ("roster.csv", ROSTER_CSV.encode(), "text/csv")})

        response = client.post(
            "/imports/wallets",
            files={"file": ("wallets.csv", b"Triev ID,Wallet Amount\nTRV-1,750\n", "text/csv")},
        )

        assert response.status_code == 200
        assert response.json()["import_type"] == "wallet"
        assert store.get("TRV-1")["wallet_amount"] == 750.0

    def test_unsupported_file(self, client):
        response = client.post("/imports/riders", files={"file": ("roster.pdf", b"%PDF", "application/pdf")})

        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["detail"]

    def test_directory_failure_is_503(self, client, store):
        store.fail_owners = True

        response = client.post("/imports/riders", files={"file": ("roster.csv", ROSTER_CSV.encode(), "text/csv")})

        assert response.status_code == 503
        assert store.rows == []


class TestGoogleSheetSync:

    def test_sheet_sync(self, client, store, history, monkeypatch):
        def fake_fetch(sheet_id, cell_range, api_key=None):
            assert cell_range == "Roster!A1:F50"
            return [["Rider Name", "Triev ID"], ["Suresh", "TRV-5"]]

        monkeypatch.setattr(imports_router, "fetch_sheet_values", fake_fetch)

        response = client.post("/imports/google-sheet", json={"sheet_id": "abc", "range": "Roster!A1:F50"})

        assert response.status_code == 200
        assert response.json()["import_type"] == "googleSheet"
        assert store.get("TRV-5")["rider_name"] == "Suresh"
        assert history.records[0][0].source == "abc:Roster!A1:F50"

    def test_sheet_fetch_error_is_502(self, client, monkeypatch):
        def fake_fetch(sheet_id, cell_range, api_key=None):
            raise SheetFetchError("Google Sheets API error (404): Requested entity was not found.")

        monkeypatch.setattr(imports_router, "fetch_sheet_values", fake_fetch)

        response = client.post("/imports/google-sheet", json={"sheet_id": "missing"})

        assert response.status_code == 502


class TestHistory:

    def test_lists_runs(self, client, monkeypatch):
        monkeypatch.setattr(imports_router, "get_import_history", lambda limit: [{"id": "h1"}][:limit])

        response = client.get("/imports/history?limit=5")

        assert response.json() == {"runs": [{"id": "h1"}], "count": 1}

    def test_limit_bounds(self, client):
        assert client.get("/imports/history?limit=0").status_code == 422

    def test_store_outage_is_503(self, client, monkeypatch):
        def failing_history(limit):
            raise APIError({"message": "upstream connect error", "code": "503"})

        monkeypatch.setattr(imports_router, "get_import_history", failing_history)

        response = client.get("/imports/history")

        assert response.status_code == 503
