# fleetdesk/core/__init__.py

from fleetdesk.core.pipeline import run_rider_import, run_wallet_update
from fleetdesk.core.identity import IdentityResolver, OwnerDirectory
from fleetdesk.core.duplicates import DuplicateDetector
from fleetdesk.core.upsert import UpsertOrchestrator
from fleetdesk.core.notifications import NotificationBatcher
from fleetdesk.core.summary import ImportSummaryAggregator
from fleetdesk.core.normalizers import (
    map_fields,
    normalize_header,
    parse_currency,
    normalize_mobile,
)

__all__ = [
    "run_rider_import",
    "run_wallet_update",
    "IdentityResolver",
    "OwnerDirectory",
    "DuplicateDetector",
    "UpsertOrchestrator",
    "NotificationBatcher",
    "ImportSummaryAggregator",
    "map_fields",
    "normalize_header",
    "parse_currency",
    "normalize_mobile",
]
