# fleetdesk/database.py

"""
Supabase-backed collaborators for the import engine.

All writes go through the service-role client. Every PostgREST or transport
failure is re-raised as StoreError so the pipeline can record it per row.
"""

from functools import lru_cache
from typing import Optional, Sequence
import logging

import httpx
from postgrest.exceptions import APIError
from supabase import Client, ClientOptions, create_client

from fleetdesk.config import get_settings
from fleetdesk.core.errors import StoreError
from fleetdesk.core.summary import cap_errors
from fleetdesk.models import (
    DuplicateKeys,
    ImportHistoryRecord,
    ImportSummary,
    ImportType,
    OwnerDirectoryEntry,
    RecordRef,
    RunMetadata,
)

settings = get_settings()
logger = logging.getLogger(__name__)

# Enough to notice ambiguity without pulling every duplicate
LOOKUP_CANDIDATE_LIMIT = 5

NOTIFICATION_TEMPLATES: dict[str, tuple[str, str]] = {
    "rider": (
        "Bulk Rider Import",
        "{count} rider(s) on your team were added or updated by a bulk import.",
    ),
    "googleSheet": (
        "Google Sheet Sync",
        "{count} rider(s) on your team were added or updated by a Google Sheet sync.",
    ),
    "wallet": (
        "Wallet Balances Updated",
        "Wallet balances of {count} rider(s) on your team were updated.",
    ),
}

ACTIVITY_ACTIONS: dict[str, str] = {
    "rider": "bulkImport",
    "googleSheet": "bulkImport",
    "wallet": "Wallet Bulk Update",
}


# ============================================
# Clients
# ============================================

@lru_cache()
def get_supabase_admin() -> Client:
    """Admin client (bypasses RLS - use carefully). Requests time out per row."""
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
        options=ClientOptions(postgrest_client_timeout=settings.row_timeout_seconds),
    )


def _store_error(action: str, error: Exception) -> StoreError:
    if isinstance(error, httpx.TimeoutException):
        return StoreError(f"{action} timed out after {settings.row_timeout_seconds}s")
    message = getattr(error, "message", None) or str(error)
    return StoreError(f"{action} failed: {message}")


def _or_condition(column: str, value: str) -> str:
    """PostgREST `or` filter term with the value quoted."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'{column}.eq."{escaped}"'


# ============================================
# Record store
# ============================================

class SupabaseRecordStore:
    """The riders and users tables as a RecordStore."""

    def __init__(self, client: Optional[Client] = None):
        self.client = client or get_supabase_admin()

    def lookup(self, keys: DuplicateKeys) -> list[RecordRef]:
        conditions = [_or_condition(column, value) for column, value in keys.as_filters().items()]
        if not conditions:
            return []

        try:
            response = (
                self.client.table("riders")
                .select("id, rider_name, team_leader_id")
                .or_(",".join(conditions))
                .order("created_at")
                .order("id")
                .limit(LOOKUP_CANDIDATE_LIMIT)
                .execute()
            )
        except (APIError, httpx.HTTPError) as e:
            raise _store_error("Duplicate search", e) from e

        return [
            RecordRef(id=r["id"], rider_name=r.get("rider_name"), owner_id=r.get("team_leader_id"))
            for r in response.data or []
        ]

    def insert(self, payload: dict) -> RecordRef:
        try:
            response = self.client.table("riders").insert(payload).execute()
        except (APIError, httpx.HTTPError) as e:
            raise _store_error("Insert", e) from e

        if not response.data:
            raise StoreError("Insert failed: no row returned")
        row = response.data[0]
        return RecordRef(id=row["id"], rider_name=row.get("rider_name"), owner_id=row.get("team_leader_id"))

    def update(self, record_id: str, payload: dict) -> None:
        try:
            self.client.table("riders").update(payload).eq("id", record_id).execute()
        except (APIError, httpx.HTTPError) as e:
            raise _store_error("Update", e) from e

    def list_owners(self, roles: Optional[Sequence[str]] = None) -> list[OwnerDirectoryEntry]:
        query = self.client.table("users").select("id, full_name, email, role")
        if roles:
            query = query.in_("role", list(roles))

        try:
            response = query.order("id").execute()
        except (APIError, httpx.HTTPError) as e:
            raise _store_error("Owner directory fetch", e) from e

        return [
            OwnerDirectoryEntry(
                id=u["id"],
                display_name=(u.get("full_name") or "").strip(),
                email=(u.get("email") or "").strip().lower(),
                role=u.get("role"),
            )
            for u in response.data or []
            if u.get("id")
        ]


# ============================================
# Notifications
# ============================================

class SupabaseNotificationSink:
    """Writes one row per owner into the notifications table."""

    def __init__(self, client: Optional[Client] = None):
        self.client = client or get_supabase_admin()

    def emit_batch(self, owner_id: str, count: int, *, import_type: ImportType) -> None:
        title, template = NOTIFICATION_TEMPLATES[import_type]
        notification = {
            "user_id": owner_id,
            "title": title,
            "message": template.format(count=count),
            "type": "walletAlert" if import_type == "wallet" else "riderAlert",
            "related_entity": {"type": "system", "count": count},
            "is_read": False,
        }
        try:
            self.client.table("notifications").insert(notification).execute()
        except (APIError, httpx.HTTPError) as e:
            raise _store_error("Notification", e) from e


# ============================================
# Import history
# ============================================

class SupabaseImportHistory:
    """Writes the import_history row and the matching activity log entry."""

    def __init__(self, client: Optional[Client] = None):
        self.client = client or get_supabase_admin()

    def record(self, run: RunMetadata, summary: ImportSummary) -> None:
        history = ImportHistoryRecord(
            admin_id=run.admin_id,
            admin_name=run.admin_name,
            import_type=run.import_type,
            total_rows=summary.total,
            success_count=summary.success,
            failure_count=summary.failed,
            status=summary.status,
            errors=cap_errors(summary.errors, settings.history_error_cap),
            timestamp=run.finished_at or run.started_at,
        )
        try:
            self.client.table("import_history").insert(
                history.model_dump(mode="json", exclude_none=True)
            ).execute()
        except (APIError, httpx.HTTPError) as e:
            raise _store_error("Import history", e) from e

        self._log_activity(run, summary, history.timestamp.isoformat())

    def _log_activity(self, run: RunMetadata, summary: ImportSummary, timestamp: str) -> None:
        noun = "wallets" if run.import_type == "wallet" else "riders"
        entry = {
            "user_id": run.admin_id,
            "user_name": run.admin_name,
            "user_role": "admin",
            "action_type": ACTIVITY_ACTIONS[run.import_type],
            "target_type": "system",
            "target_id": "multiple",
            "details": f"Imported {summary.success} {noun}, {summary.failed} failures.",
            "metadata": {
                "adminName": run.admin_name,
                "success": summary.success,
                "failed": summary.failed,
                "source": run.source,
            },
            "timestamp": timestamp,
            "is_deleted": False,
        }
        try:
            self.client.table("activity_logs").insert(entry).execute()
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Failed to write activity log for {run.import_type} import: {e}")


def get_import_history(limit: int = 20) -> list[dict]:
    """Most recent import runs, newest first."""
    response = (
        get_supabase_admin()
        .table("import_history")
        .select("*")
        .order("timestamp", desc=True)
        .limit(limit)
        .execute()
    )
    return response.data


def get_user_profile(user_id: str) -> dict | None:
    """A row of the users table."""
    response = get_supabase_admin().table("users").select("id, full_name, email, role").eq("id", user_id).execute()
    return response.data[0] if response.data else None
