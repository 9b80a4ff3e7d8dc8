# fleetdesk/dependencies.py

"""
Dependencies for FastAPI routes.

Validates Supabase JWTs to identify the calling admin and builds the Supabase
collaborators an import run writes through.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from fleetdesk.database import (
    SupabaseImportHistory,
    SupabaseNotificationSink,
    SupabaseRecordStore,
    get_supabase_admin,
    get_user_profile,
)

security = HTTPBearer()


class AdminUser(BaseModel):
    """The admin running an import."""

    id: str
    name: str


def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AdminUser:
    """
    Validate the Supabase JWT and return the calling user.

    This is a sync function -- FastAPI auto-runs it in a threadpool.
    """
    token = credentials.credentials

    try:
        user_response = get_supabase_admin().auth.get_user(token)
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user_response is None or user_response.user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = user_response.user
    profile = get_user_profile(user.id) or {}
    metadata = user.user_metadata or {}
    name = profile.get("full_name") or metadata.get("full_name") or user.email or "Admin"

    return AdminUser(id=user.id, name=name)


# ============================================
# Import collaborators
# ============================================

def get_record_store() -> SupabaseRecordStore:
    return SupabaseRecordStore()


def get_notification_sink() -> SupabaseNotificationSink:
    return SupabaseNotificationSink()


def get_history_logger() -> SupabaseImportHistory:
    return SupabaseImportHistory()
