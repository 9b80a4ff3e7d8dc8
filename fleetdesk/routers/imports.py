# fleetdesk/routers/imports.py

"""
Bulk import routes.

Runs the rider roster import and the wallet balance update over an uploaded
CSV/Excel file or a Google Sheet range. Handlers are sync: an import is a long
sequence of blocking store calls, so FastAPI runs it in its threadpool.
"""

from datetime import datetime, timezone
from typing import Literal, Optional
import logging

import httpx
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from postgrest.exceptions import APIError
from pydantic import BaseModel, Field

from fleetdesk.core.errors import DirectoryLoadError, SourceFormatError
from fleetdesk.core.ingestion import read_upload, rows_from_table
from fleetdesk.core.pipeline import run_rider_import, run_wallet_update
from fleetdesk.core.store import ImportHistoryLogger, NotificationSink, RecordStore
from fleetdesk.database import get_import_history
from fleetdesk.dependencies import (
    AdminUser,
    get_current_admin,
    get_history_logger,
    get_notification_sink,
    get_record_store,
)
from fleetdesk.integrations.google_sheets import SheetFetchError, fetch_sheet_values
from fleetdesk.models import ImportRow, ImportSummary, ImportType, RunMetadata

logger = logging.getLogger(__name__)
router = APIRouter()


class SheetSyncRequest(BaseModel):
    sheet_id: str
    cell_range: str = Field("Sheet1!A1:Z1000", alias="range")
    mode: Literal["rider", "wallet"] = "rider"
    api_key: Optional[str] = None


def _read_file(file: UploadFile) -> list[ImportRow]:
    try:
        return read_upload(file.filename or "", file.file.read())
    except SourceFormatError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _run(
    mode: Literal["rider", "wallet"],
    rows: list[ImportRow],
    admin: AdminUser,
    import_type: ImportType,
    source: str,
    store: RecordStore,
    notifier: NotificationSink,
    history: ImportHistoryLogger,
) -> ImportSummary:
    run = RunMetadata(
        admin_id=admin.id,
        admin_name=admin.name,
        import_type=import_type,
        source=source,
        started_at=datetime.now(timezone.utc),
    )
    pipeline = run_wallet_update if mode == "wallet" else run_rider_import

    try:
        return pipeline(rows, run, store, notifier, history)
    except DirectoryLoadError as e:
        logger.error(f"Import aborted: {e}")
        raise HTTPException(status_code=503, detail=str(e))


# ============================================
# File uploads
# ============================================

@router.post("/riders", response_model=ImportSummary)
def import_riders(
    file: UploadFile = File(...),
    admin: AdminUser = Depends(get_current_admin),
    store: RecordStore = Depends(get_record_store),
    notifier: NotificationSink = Depends(get_notification_sink),
    history: ImportHistoryLogger = Depends(get_history_logger),
):
    """
    Import a rider roster.

    New riders are inserted, riders matching on Triev ID, mobile or chassis
    are updated. Team leaders are assigned from the "Team Leader" column.
    """
    rows = _read_file(file)
    return _run("rider", rows, admin, "rider", file.filename or "upload", store, notifier, history)


@router.post("/wallets", response_model=ImportSummary)
def import_wallets(
    file: UploadFile = File(...),
    admin: AdminUser = Depends(get_current_admin),
    store: RecordStore = Depends(get_record_store),
    notifier: NotificationSink = Depends(get_notification_sink),
    history: ImportHistoryLogger = Depends(get_history_logger),
):
    """Set wallet balances of existing riders."""
    rows = _read_file(file)
    return _run("wallet", rows, admin, "wallet", file.filename or "upload", store, notifier, history)


# ============================================
# Google Sheets
# ============================================

@router.post("/google-sheet", response_model=ImportSummary)
def sync_google_sheet(
    request: SheetSyncRequest,
    admin: AdminUser = Depends(get_current_admin),
    store: RecordStore = Depends(get_record_store),
    notifier: NotificationSink = Depends(get_notification_sink),
    history: ImportHistoryLogger = Depends(get_history_logger),
):
    """Pull a sheet range and run it through the rider or wallet import."""
    try:
        values = fetch_sheet_values(request.sheet_id, request.cell_range, api_key=request.api_key)
    except SheetFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))

    rows = rows_from_table(values)
    import_type: ImportType = "wallet" if request.mode == "wallet" else "googleSheet"
    source = f"{request.sheet_id}:{request.cell_range}"
    return _run(request.mode, rows, admin, import_type, source, store, notifier, history)


# ============================================
# History
# ============================================

@router.get("/history")
def list_import_history(
    admin: AdminUser = Depends(get_current_admin),
    limit: int = Query(20, ge=1, le=100),
):
    """Recent import runs, newest first."""
    try:
        runs = get_import_history(limit)
    except (APIError, httpx.HTTPError) as e:
        logger.error(f"Failed to load import history: {e}")
        raise HTTPException(status_code=503, detail="Import history is unavailable")

    return {
        "runs": runs,
        "count": len(runs),
    }
