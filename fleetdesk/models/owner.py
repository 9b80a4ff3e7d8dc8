# fleetdesk/models/owner.py

from typing import Optional, Literal
from pydantic import BaseModel


# ============================================
# Owner Directory
# ============================================

class OwnerDirectoryEntry(BaseModel):
    """A user that riders can be routed to (usually a team leader)."""

    id: str
    display_name: str = ""
    email: str = ""
    role: Optional[str] = None
    extracted_unique_id: Optional[str] = None

    class Config:
        from_attributes = True
        frozen = True


# ============================================
# Identity Resolution
# ============================================

MatchStrategy = Literal[
    "uuid",
    "email",
    "unique_id",
    "exact_name",
    "clean_name",
    "substring",
    "unresolved",
    "none",
]


class ResolvedIdentity(BaseModel):
    """Outcome of resolving a free-text owner reference."""

    owner_id: Optional[str] = None
    match_strategy: MatchStrategy = "none"
    raw_reference: str = ""

    @property
    def is_resolved(self) -> bool:
        return self.owner_id is not None
