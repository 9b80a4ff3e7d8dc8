# fleetdesk/routers/__init__.py

from fleetdesk.routers import health
from fleetdesk.routers import imports

__all__ = ["health", "imports"]
