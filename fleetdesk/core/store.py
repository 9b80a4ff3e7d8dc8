# fleetdesk/core/store.py

"""
Collaborator interfaces the import engine is written against.

The Supabase implementations live in fleetdesk.database; tests use in-memory
fakes. Store implementations report failures as StoreError.
"""

from typing import Optional, Protocol, Sequence

from fleetdesk.models import (
    DuplicateKeys,
    ImportSummary,
    ImportType,
    OwnerDirectoryEntry,
    RecordRef,
    RunMetadata,
)


class RecordStore(Protocol):
    """Keyed rider store with query/insert/update primitives."""

    def lookup(self, keys: DuplicateKeys) -> list[RecordRef]:
        """
        Riders matching ANY of the present keys, in the store's natural order.
        """
        ...

    def insert(self, payload: dict) -> RecordRef:
        ...

    def update(self, record_id: str, payload: dict) -> None:
        ...

    def list_owners(self, roles: Optional[Sequence[str]] = None) -> list[OwnerDirectoryEntry]:
        ...


class NotificationSink(Protocol):
    """Receives one aggregated notification per owner at the end of a run."""

    def emit_batch(self, owner_id: str, count: int, *, import_type: ImportType) -> None:
        ...


class ImportHistoryLogger(Protocol):
    """Persists the outcome of a run."""

    def record(self, run: RunMetadata, summary: ImportSummary) -> None:
        ...
