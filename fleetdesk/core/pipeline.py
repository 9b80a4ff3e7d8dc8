# fleetdesk/core/pipeline.py

"""
Bulk import pipelines.

One run processes one uploaded table, row by row:

    row -> normalize -> (parse amount, resolve owner) -> find duplicate -> write

Rows are handled strictly in order because row N's duplicate lookup must see
row N-1's insert (the same Triev ID twice in a file is a create followed by
an update). Each row is its own unit of work: a failed row is recorded and the
run moves on; rows already written stay written if the run is cancelled or
runs out of time.

The only failure that stops a run is not being able to load the owner
directory before the first row.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence
import logging
import time

from fleetdesk.config import get_settings
from fleetdesk.core.duplicates import DuplicateDetector, keys_for
from fleetdesk.core.errors import DirectoryLoadError, RowValidationError, StoreError
from fleetdesk.core.identity import IdentityResolver, OwnerDirectory, build_unique_id_pattern
from fleetdesk.core.normalizers import (
    RIDER_FIELD_ALIASES,
    WALLET_FIELD_ALIASES,
    clean_text,
    map_fields,
    to_rider_record,
    to_wallet_record,
)
from fleetdesk.core.notifications import NotificationBatcher
from fleetdesk.core.store import ImportHistoryLogger, NotificationSink, RecordStore
from fleetdesk.core.summary import ImportSummaryAggregator, RowResult
from fleetdesk.core.upsert import UpsertOrchestrator
from fleetdesk.models import (
    DuplicateKeys,
    ImportRow,
    ImportRowError,
    ImportSummary,
    ImportWarning,
    RowOutcome,
    RunMetadata,
)

settings = get_settings()
logger = logging.getLogger(__name__)

# Spreadsheet line of the first data row (line 1 holds the headers)
FIRST_DATA_LINE = 2

DEADLINE_REASON = "Import deadline exceeded before this row was processed"
CANCELLED_REASON = "Import cancelled before this row was processed"

RowHandler = Callable[[ImportRow, int, datetime], tuple[RowResult, Optional[ImportWarning]]]


@dataclass
class RunState:
    """Accumulators threaded through the row loop of a single run."""

    summary: ImportSummaryAggregator
    notifications: NotificationBatcher = field(default_factory=NotificationBatcher)


def fold_row(state: RunState, result: RowResult, warning: Optional[ImportWarning]) -> RunState:
    """Apply one row's result to the run state."""
    state.summary.add(result)
    if warning is not None:
        state.summary.warn(warning)
    if isinstance(result, RowOutcome):
        state.notifications.add(result.owner_id)
    return state


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _row_error(row: ImportRow, row_number: int, identifier: str, reason: str) -> ImportRowError:
    return ImportRowError(
        row=row_number,
        identifier=identifier or f"Row {row_number}",
        reason=reason,
        data=dict(row),
    )


def _guard_row(
    handle: Callable[[], tuple[RowResult, Optional[ImportWarning]]],
    row: ImportRow,
    row_number: int,
    identifier: str,
) -> tuple[RowResult, Optional[ImportWarning]]:
    """Run one row and turn any failure into an ImportRowError."""
    try:
        return handle()
    except RowValidationError as e:
        return _row_error(row, row_number, identifier, str(e)), None
    except StoreError as e:
        logger.warning(f"Row {row_number} ({identifier}): store error: {e}")
        return _row_error(row, row_number, identifier, str(e)), None
    except Exception as e:
        logger.exception(f"Row {row_number} ({identifier}): unexpected error")
        return _row_error(row, row_number, identifier, f"Unexpected error: {e}"), None


def _run_rows(
    rows: Sequence[ImportRow],
    run: RunMetadata,
    handle_row: RowHandler,
    notifier: NotificationSink,
    history: Optional[ImportHistoryLogger],
    cancel: Optional[Callable[[], bool]],
    deadline_seconds: Optional[float],
    clock: Callable[[], float],
) -> ImportSummary:
    """Shared row loop: deadline/cancel checks, folding, notification flush, history."""
    state = RunState(summary=ImportSummaryAggregator(run.import_type))
    started = clock()
    stop_reason: Optional[str] = None

    for index, row in enumerate(rows):
        row_number = index + FIRST_DATA_LINE

        if stop_reason is None:
            if cancel is not None and cancel():
                stop_reason = CANCELLED_REASON
                logger.warning(f"{run.import_type} import cancelled at row {row_number}")
            elif deadline_seconds is not None and clock() - started > deadline_seconds:
                stop_reason = DEADLINE_REASON
                logger.warning(f"{run.import_type} import hit its {deadline_seconds}s deadline at row {row_number}")

        if stop_reason is not None:
            fold_row(state, _row_error(row, row_number, "", stop_reason), None)
            continue

        result, warning = handle_row(row, row_number, _utcnow())
        fold_row(state, result, warning)

    notified = state.notifications.flush(notifier, run.import_type)
    summary = state.summary.build(notified_owners=notified)

    logger.info(
        f"{run.import_type} import by {run.admin_name}: {summary.success}/{summary.total} succeeded, "
        f"{summary.failed} failed, {len(summary.warnings)} warnings"
    )

    if history is not None:
        finished = run.model_copy(update={"finished_at": _utcnow()})
        try:
            history.record(finished, summary)
        except Exception as e:
            # History is informational; the run itself already succeeded
            logger.error(f"Failed to log import history: {e}")

    return summary


# ============================================
# Rider roster import
# ============================================

def load_owner_directory(store: RecordStore) -> OwnerDirectory:
    """
    Load the owner directory snapshot for a run.

    Raises DirectoryLoadError; nothing is imported without a directory.
    """
    try:
        owners = store.list_owners(settings.owner_roles or None)
    except StoreError as e:
        raise DirectoryLoadError(f"Could not load owner directory: {e}") from e

    directory = OwnerDirectory(owners, build_unique_id_pattern(settings.owner_badge_prefixes))
    logger.info(f"Loaded {len(directory)} owners for team leader assignment")
    return directory


def process_rider_row(
    row: ImportRow,
    row_number: int,
    now: datetime,
    resolver: IdentityResolver,
    detector: DuplicateDetector,
    orchestrator: UpsertOrchestrator,
) -> tuple[RowResult, Optional[ImportWarning]]:
    """Normalize, resolve, de-duplicate and write one roster row."""
    fields = map_fields(row, RIDER_FIELD_ALIASES)
    identifier = fields["rider_name"]

    def handle() -> tuple[RowResult, Optional[ImportWarning]]:
        record = to_rider_record(fields, now)
        identity = resolver.resolve(record.owner_reference)
        existing = detector.find_existing(keys_for(record))
        record_id, action = orchestrator.write_rider(record, identity, existing, now)

        warning = None
        if identity.match_strategy == "unresolved":
            logger.warning(f"Row {row_number}: team leader '{identity.raw_reference}' not found; rider left unassigned")
            warning = ImportWarning(
                row=row_number,
                identifier=record.rider_name,
                message=f"Team Leader '{identity.raw_reference}' not found. Rider assigned to 'Unassigned'.",
                raw_reference=identity.raw_reference,
            )

        outcome = RowOutcome(
            row=row_number,
            identifier=record.rider_name,
            record_id=record_id,
            action=action,
            owner_id=identity.owner_id,
            match_strategy=identity.match_strategy,
        )
        return outcome, warning

    return _guard_row(handle, row, row_number, identifier)


def run_rider_import(
    rows: Sequence[ImportRow],
    run: RunMetadata,
    store: RecordStore,
    notifier: NotificationSink,
    history: Optional[ImportHistoryLogger] = None,
    cancel: Optional[Callable[[], bool]] = None,
    deadline_seconds: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
) -> ImportSummary:
    """
    Import a rider roster.

    1. Load the owner directory (fatal on failure)
    2. Insert or update each row, recording failures per row
    3. Send one notification per affected team leader
    4. Log the run to import history
    """
    directory = load_owner_directory(store)
    resolver = IdentityResolver(directory)
    detector = DuplicateDetector(store)
    orchestrator = UpsertOrchestrator(store)

    def handle_row(row: ImportRow, row_number: int, now: datetime):
        return process_rider_row(row, row_number, now, resolver, detector, orchestrator)

    if deadline_seconds is None:
        deadline_seconds = settings.run_deadline_seconds

    return _run_rows(rows, run, handle_row, notifier, history, cancel, deadline_seconds, clock)


# ============================================
# Wallet balance update
# ============================================

def process_wallet_row(
    row: ImportRow,
    row_number: int,
    now: datetime,
    detector: DuplicateDetector,
    orchestrator: UpsertOrchestrator,
) -> tuple[RowResult, Optional[ImportWarning]]:
    """
    Set the wallet balance of one existing rider.

    Triev ID is tried first; the mobile number only when the Triev ID finds
    nobody. A row that matches no rider fails.
    """
    fields = map_fields(row, WALLET_FIELD_ALIASES)
    identifier = clean_text(fields["triev_id"]) or clean_text(fields["mobile_number"])

    def handle() -> tuple[RowResult, Optional[ImportWarning]]:
        record = to_wallet_record(fields)

        existing = None
        if record.triev_id:
            existing = detector.find_existing(DuplicateKeys(triev_id=record.triev_id))
        if existing is None and record.mobile_number:
            existing = detector.find_existing(DuplicateKeys(mobile_number=record.mobile_number))

        if existing is None:
            lookup = f"Triev ID: {record.triev_id}" if record.triev_id else f"Mobile: {record.mobile_number}"
            raise RowValidationError(f"Rider not found for {lookup}. Ensure rider exists in system.")

        orchestrator.write_wallet(existing, record.wallet_amount, now)
        logger.debug(f"Row {row_number}: wallet for {existing.rider_name or existing.id} set to {record.wallet_amount}")

        outcome = RowOutcome(
            row=row_number,
            identifier=identifier,
            record_id=existing.id,
            action="updated",
            owner_id=existing.owner_id,
        )
        return outcome, None

    return _guard_row(handle, row, row_number, identifier)


def run_wallet_update(
    rows: Sequence[ImportRow],
    run: RunMetadata,
    store: RecordStore,
    notifier: NotificationSink,
    history: Optional[ImportHistoryLogger] = None,
    cancel: Optional[Callable[[], bool]] = None,
    deadline_seconds: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
) -> ImportSummary:
    """Apply a wallet-balance sheet to existing riders."""
    detector = DuplicateDetector(store)
    orchestrator = UpsertOrchestrator(store)

    def handle_row(row: ImportRow, row_number: int, now: datetime):
        return process_wallet_row(row, row_number, now, detector, orchestrator)

    if deadline_seconds is None:
        deadline_seconds = settings.run_deadline_seconds

    return _run_rows(rows, run, handle_row, notifier, history, cancel, deadline_seconds, clock)
