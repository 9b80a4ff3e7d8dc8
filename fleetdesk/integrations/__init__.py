# fleetdesk/integrations/__init__.py

from fleetdesk.integrations import google_sheets

__all__ = ["google_sheets"]
