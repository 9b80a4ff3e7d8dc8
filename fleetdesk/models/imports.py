# fleetdesk/models/imports.py

from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel, Field, computed_field

from fleetdesk.models.owner import MatchStrategy

ImportType = Literal["rider", "wallet", "googleSheet"]

ImportStatus = Literal["success", "partial", "failed"]

RowAction = Literal["inserted", "updated"]


# ============================================
# Per-row results
# ============================================

class ImportRowError(BaseModel):
    """A row that could not be imported."""

    row: int
    identifier: str
    reason: str
    data: dict = Field(default_factory=dict)


class ImportWarning(BaseModel):
    """A row that was imported but needs an operator's attention."""

    row: int
    identifier: str
    message: str
    raw_reference: str = ""


class RowOutcome(BaseModel):
    """A row that was written to the store."""

    row: int
    identifier: str
    record_id: str
    action: RowAction
    owner_id: Optional[str] = None
    # None for rows that never resolve an owner (wallet updates)
    match_strategy: Optional[MatchStrategy] = None


# ============================================
# Run summary
# ============================================

class ImportSummary(BaseModel):
    """Aggregate result of one import run."""

    import_type: ImportType
    total: int = 0
    success: int = 0
    failed: int = 0
    inserted: int = 0
    updated: int = 0
    errors: list[ImportRowError] = Field(default_factory=list)
    warnings: list[ImportWarning] = Field(default_factory=list)
    outcomes: list[RowOutcome] = Field(default_factory=list)
    match_strategies: dict[str, int] = Field(default_factory=dict)
    notified_owners: int = 0

    @computed_field
    @property
    def status(self) -> ImportStatus:
        if self.failed == 0:
            return "success"
        if self.success == 0:
            return "failed"
        return "partial"


class RunMetadata(BaseModel):
    """Who started a run and from where."""

    admin_id: str
    admin_name: str
    import_type: ImportType
    source: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None


class ImportHistoryRecord(BaseModel):
    """An import run as stored in the import_history table."""

    id: Optional[str] = None
    admin_id: str
    admin_name: str
    import_type: ImportType
    total_rows: int
    success_count: int
    failure_count: int
    status: ImportStatus
    errors: list[dict] = Field(default_factory=list)
    timestamp: datetime

    class Config:
        from_attributes = True
