# fleetdesk/core/identity.py

"""
Owner identity resolution.

Maps a free-text "Team Leader" cell to a user id from the owner directory.
Strategies run in a fixed order and the first hit wins:

1. Exact UUID that exists in the directory
2. Email (case-insensitive)
3. Embedded unique id, e.g. "KONTI/357" inside "Om Prakash ( KONTI/357 )"
4. Exact name (case-insensitive, whitespace-collapsed)
5. Name with "(...)" segments removed on both sides
6. Substring of the cleaned names, either direction

Strategies 5 and 6 refuse a pair when both sides carry an embedded unique id
and the ids differ, so two people sharing a name are never merged.

The directory is a snapshot taken once per run. Entries are ordered by id, so
whenever several entries qualify the same one is picked on every run.
"""

import logging
import re
from typing import Callable, Iterable, Optional, Pattern, Sequence

from fleetdesk.core.normalizers import clean_text, normalize_name, strip_parentheticals
from fleetdesk.models import MatchStrategy, OwnerDirectoryEntry, ResolvedIdentity

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Shorter cleaned names are too generic to match by containment
MIN_SUBSTRING_LENGTH = 3


def build_unique_id_pattern(prefixes: Sequence[str] = ()) -> Pattern[str]:
    """
    Pattern for an embedded badge code: PREFIX, "/", digits.

    With no prefixes configured any alphabetic prefix is accepted.
    """
    if prefixes:
        prefix = "|".join(re.escape(p.strip()) for p in prefixes if p.strip())
    else:
        prefix = r"[a-z][a-z0-9]*"
    return re.compile(rf"(?<![a-z0-9])({prefix})\s*/\s*(\d+)(?!\d)", re.IGNORECASE)


DEFAULT_UNIQUE_ID_PATTERN = build_unique_id_pattern()


def extract_unique_id(text: Optional[str], pattern: Pattern[str] = DEFAULT_UNIQUE_ID_PATTERN) -> Optional[str]:
    """
    Normalized embedded unique id, or None.

    "Asha Kumar ( Badge / 10 )" -> "badge/10"
    """
    if not text:
        return None
    match = pattern.search(text)
    if not match:
        return None
    return f"{match.group(1)}/{match.group(2)}".lower()


def unique_ids_conflict(left: Optional[str], right: Optional[str]) -> bool:
    """True only when both sides carry an id and the ids differ."""
    return bool(left and right and left != right)


# ============================================
# Owner Directory
# ============================================

class OwnerDirectory:
    """
    Read-only lookup tables over the owners loaded for one run.
    """

    def __init__(
        self,
        entries: Iterable[OwnerDirectoryEntry],
        unique_id_pattern: Pattern[str] = DEFAULT_UNIQUE_ID_PATTERN,
    ):
        self.unique_id_pattern = unique_id_pattern

        prepared = []
        for entry in entries:
            if not entry.id:
                continue
            if entry.extracted_unique_id is None:
                entry = entry.model_copy(
                    update={"extracted_unique_id": extract_unique_id(entry.display_name, unique_id_pattern)}
                )
            prepared.append(entry)

        self.entries: tuple[OwnerDirectoryEntry, ...] = tuple(sorted(prepared, key=lambda e: e.id))

        self._ids: set[str] = set()
        self._by_email: dict[str, OwnerDirectoryEntry] = {}
        self._by_unique_id: dict[str, list[OwnerDirectoryEntry]] = {}
        self._by_name: dict[str, OwnerDirectoryEntry] = {}
        self._by_clean_name: dict[str, list[OwnerDirectoryEntry]] = {}
        self._clean_names: list[tuple[str, OwnerDirectoryEntry]] = []

        for entry in self.entries:
            self._ids.add(entry.id)

            email = clean_text(entry.email).lower()
            if email:
                self._by_email.setdefault(email, entry)

            if entry.extracted_unique_id:
                self._by_unique_id.setdefault(entry.extracted_unique_id, []).append(entry)

            name = normalize_name(entry.display_name)
            if name:
                self._by_name.setdefault(name, entry)

            clean_name = strip_parentheticals(entry.display_name)
            if clean_name:
                self._by_clean_name.setdefault(clean_name, []).append(entry)
                self._clean_names.append((clean_name, entry))

        for unique_id, owners in self._by_unique_id.items():
            if len(owners) > 1:
                logger.warning(
                    f"Unique id '{unique_id}' is shared by {len(owners)} directory entries; "
                    f"'{owners[0].display_name}' will be used"
                )

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, owner_id: object) -> bool:
        return owner_id in self._ids

    def by_email(self, email: str) -> Optional[OwnerDirectoryEntry]:
        return self._by_email.get(email)

    def by_unique_id(self, unique_id: str) -> Optional[OwnerDirectoryEntry]:
        owners = self._by_unique_id.get(unique_id)
        return owners[0] if owners else None

    def by_name(self, name: str) -> Optional[OwnerDirectoryEntry]:
        return self._by_name.get(name)

    def by_clean_name(self, clean_name: str) -> list[OwnerDirectoryEntry]:
        return list(self._by_clean_name.get(clean_name, []))

    def clean_names(self) -> list[tuple[str, OwnerDirectoryEntry]]:
        return list(self._clean_names)


# ============================================
# Resolver
# ============================================

class IdentityResolver:
    """Resolves owner references against one directory snapshot."""

    def __init__(self, directory: OwnerDirectory):
        self.directory = directory
        self._ladder: list[tuple[MatchStrategy, Callable[[str], Optional[str]]]] = [
            ("uuid", self._match_uuid),
            ("email", self._match_email),
            ("unique_id", self._match_unique_id),
            ("exact_name", self._match_exact_name),
            ("clean_name", self._match_clean_name),
            ("substring", self._match_substring),
        ]

    def resolve(self, reference: Optional[str]) -> ResolvedIdentity:
        """
        Resolve a free-text owner reference.

        An empty reference gives strategy "none"; a reference nothing matches
        gives strategy "unresolved". Neither is an error.
        """
        raw = clean_text(reference)
        if not raw:
            return ResolvedIdentity(owner_id=None, match_strategy="none", raw_reference="")

        for strategy, matcher in self._ladder:
            owner_id = matcher(raw)
            if owner_id is not None:
                logger.debug(f"Owner reference '{raw}' resolved to {owner_id} via {strategy}")
                return ResolvedIdentity(owner_id=owner_id, match_strategy=strategy, raw_reference=raw)

        return ResolvedIdentity(owner_id=None, match_strategy="unresolved", raw_reference=raw)

    # Strategy 1
    def _match_uuid(self, raw: str) -> Optional[str]:
        if UUID_PATTERN.match(raw) and raw in self.directory:
            return raw
        return None

    # Strategy 2
    def _match_email(self, raw: str) -> Optional[str]:
        if "@" not in raw:
            return None
        entry = self.directory.by_email(raw.lower())
        return entry.id if entry else None

    # Strategy 3
    def _match_unique_id(self, raw: str) -> Optional[str]:
        unique_id = extract_unique_id(raw, self.directory.unique_id_pattern)
        if not unique_id:
            return None
        entry = self.directory.by_unique_id(unique_id)
        return entry.id if entry else None

    # Strategy 4
    def _match_exact_name(self, raw: str) -> Optional[str]:
        entry = self.directory.by_name(normalize_name(raw))
        return entry.id if entry else None

    # Strategy 5. Also unique-id guarded: "Asha (BADGE/99)" never lands on "Asha (BADGE/10)"
    def _match_clean_name(self, raw: str) -> Optional[str]:
        clean_name = strip_parentheticals(raw)
        if not clean_name:
            return None
        reference_id = extract_unique_id(raw, self.directory.unique_id_pattern)
        for entry in self.directory.by_clean_name(clean_name):
            if not unique_ids_conflict(reference_id, entry.extracted_unique_id):
                return entry.id
        return None

    # Strategy 6
    def _match_substring(self, raw: str) -> Optional[str]:
        clean_name = strip_parentheticals(raw)
        if len(clean_name) < MIN_SUBSTRING_LENGTH:
            if clean_name and any(clean_name in name for name, _ in self.directory.clean_names()):
                logger.warning(
                    f"Owner reference '{raw}' is shorter than {MIN_SUBSTRING_LENGTH} characters; "
                    f"not matching it by substring"
                )
            return None
        reference_id = extract_unique_id(raw, self.directory.unique_id_pattern)

        candidates: list[OwnerDirectoryEntry] = []
        for entry_name, entry in self.directory.clean_names():
            shorter = min(entry_name, clean_name, key=len)
            if len(shorter) < MIN_SUBSTRING_LENGTH:
                continue
            if clean_name not in entry_name and entry_name not in clean_name:
                continue
            if unique_ids_conflict(reference_id, entry.extracted_unique_id):
                continue
            candidates.append(entry)

        if not candidates:
            return None
        if len(candidates) > 1:
            logger.warning(
                f"Owner reference '{raw}' matched {len(candidates)} directory entries by substring; "
                f"using '{candidates[0].display_name}'"
            )
        return candidates[0].id
