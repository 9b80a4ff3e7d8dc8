# fleetdesk/core/duplicates.py

"""
Duplicate detection against the rider store.

A row matches an existing rider when ANY of its Triev ID, mobile number or
chassis number matches. Several candidates under that disjunction is a
data-quality problem, not a reason to fail the row: the first candidate in the
store's natural order wins.
"""

import logging
from typing import Optional

from fleetdesk.core.store import RecordStore
from fleetdesk.models import DuplicateKeys, RecordRef, RiderRecord

logger = logging.getLogger(__name__)


def keys_for(record: RiderRecord) -> DuplicateKeys:
    """Candidate keys of a roster record."""
    return DuplicateKeys(
        triev_id=record.triev_id,
        mobile_number=record.mobile_number,
        chassis_number=record.chassis_number,
    )


class DuplicateDetector:
    """Finds the existing rider a normalized row refers to."""

    def __init__(self, store: RecordStore):
        self.store = store

    def find_existing(self, keys: DuplicateKeys) -> Optional[RecordRef]:
        """
        Return the matching rider, or None when the row is new.

        Raises StoreError when the lookup itself fails.
        """
        if keys.is_empty:
            return None

        candidates = self.store.lookup(keys)
        if not candidates:
            return None

        if len(candidates) > 1:
            logger.warning(
                f"{len(candidates)} riders match {keys.as_filters()}; "
                f"updating the first one ({candidates[0].id})"
            )

        return candidates[0]
