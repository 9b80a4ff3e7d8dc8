# fleetdesk/routers/health.py

from fastapi import APIRouter

from fleetdesk.database import get_supabase_admin

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "fleetdesk-api",
    }


@router.get("/ready")
def readiness_check():
    """Readiness check - verifies the users table is reachable."""
    try:
        get_supabase_admin().table("users").select("id").limit(1).execute()
        database = "ok"
    except Exception as e:
        database = f"error: {e}"

    return {
        "status": "ready" if database == "ok" else "degraded",
        "checks": {
            "database": database,
        }
    }
