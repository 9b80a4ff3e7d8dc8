# fleetdesk/integrations/google_sheets.py

"""
Google Sheets integration for roster and wallet syncing.

Reads a public (viewer) sheet range through the Sheets v4 values endpoint.
"""

import logging
from urllib.parse import quote

import httpx

from fleetdesk.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"


class SheetFetchError(Exception):
    """The sheet could not be read."""


def fetch_sheet_values(
    sheet_id: str,
    cell_range: str,
    api_key: str | None = None,
    client: httpx.Client | None = None,
) -> list[list[str]]:
    """
    Fetch a sheet range as a header-first table.

    Args:
        sheet_id: The spreadsheet id from the sheet URL
        cell_range: A1 range, e.g. "Sheet1!A1:Z500"
        api_key: Overrides the configured API key
        client: Optional httpx client (tests pass one with a mock transport)

    Raises SheetFetchError when the request fails or the range is empty.
    """
    if not sheet_id or not cell_range:
        raise SheetFetchError("Sheet ID and Range are required")

    key = api_key or settings.google_sheets_api_key
    if not key:
        raise SheetFetchError("No Google Sheets API key configured")

    url = f"{SHEETS_API_BASE}/{quote(sheet_id, safe='')}/values/{quote(cell_range, safe='!:')}"
    logger.info(f"Fetching Google Sheet {sheet_id}, range {cell_range}")

    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=settings.google_sheets_timeout_seconds)

    try:
        response = client.get(url, params={"key": key})
    except httpx.HTTPError as e:
        raise SheetFetchError(f"Failed to fetch Google Sheet data: {e}") from e
    finally:
        if owns_client:
            client.close()

    if response.status_code != 200:
        try:
            message = response.json().get("error", {}).get("message") or response.reason_phrase
        except ValueError:
            message = response.reason_phrase
        raise SheetFetchError(
            f"Google Sheets API error ({response.status_code}): {message}. "
            "Ensure the sheet is shared as Viewer or check the API key."
        )

    values = response.json().get("values") or []
    if not values:
        raise SheetFetchError("No data found in the spreadsheet.")

    return values
