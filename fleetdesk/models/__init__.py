# fleetdesk/models/__init__.py

from fleetdesk.models.owner import (
    OwnerDirectoryEntry,
    MatchStrategy,
    ResolvedIdentity,
)
from fleetdesk.models.rider import (
    RiderRecord,
    RiderStatus,
    ClientName,
    CLIENT_NAMES,
    ImportRow,
    WalletUpdateRecord,
    DuplicateKeys,
    RecordRef,
)
from fleetdesk.models.imports import (
    ImportType,
    ImportStatus,
    RowAction,
    ImportRowError,
    ImportWarning,
    RowOutcome,
    ImportSummary,
    RunMetadata,
    ImportHistoryRecord,
)

__all__ = [
    # Owner
    "OwnerDirectoryEntry",
    "MatchStrategy",
    "ResolvedIdentity",
    # Rider
    "RiderRecord",
    "RiderStatus",
    "ClientName",
    "CLIENT_NAMES",
    "ImportRow",
    "WalletUpdateRecord",
    "DuplicateKeys",
    "RecordRef",
    # Imports
    "ImportType",
    "ImportStatus",
    "RowAction",
    "ImportRowError",
    "ImportWarning",
    "RowOutcome",
    "ImportSummary",
    "RunMetadata",
    "ImportHistoryRecord",
]
