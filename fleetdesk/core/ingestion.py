# fleetdesk/core/ingestion.py

"""
Turns uploaded files and sheet ranges into import rows.

Every source is first reduced to a 2-D table whose first row holds the headers.
"""

from datetime import date, datetime
from io import BytesIO, StringIO
from typing import Any, Sequence
import csv
import logging

from openpyxl import load_workbook

from fleetdesk.core.errors import SourceFormatError
from fleetdesk.core.normalizers import clean_text
from fleetdesk.models import ImportRow

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = {".csv", ".txt"}
EXCEL_EXTENSIONS = {".xlsx", ".xlsm"}


def cell_text(value: Any) -> str:
    """
    Spreadsheet cell as text.

    Whole-number floats lose their ".0" so mobile numbers read from Excel stay
    intact; dates become ISO strings.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return clean_text(value)


def rows_from_table(cells: Sequence[Sequence[Any]]) -> list[ImportRow]:
    """
    Convert a header-first table into header -> value rows.

    Columns with a blank header are ignored, as are repeated headers after
    their first occurrence and rows where every kept cell is blank.
    """
    if not cells:
        return []

    headers = [cell_text(h) for h in cells[0]]
    columns: list[tuple[int, str]] = []
    seen: set[str] = set()
    for index, header in enumerate(headers):
        if not header:
            continue
        if header in seen:
            logger.warning(f"Ignoring repeated column header '{header}'")
            continue
        seen.add(header)
        columns.append((index, header))

    rows: list[ImportRow] = []
    for line in cells[1:]:
        line = list(line or [])
        row = {
            header: cell_text(line[index]) if index < len(line) else ""
            for index, header in columns
        }
        if any(row.values()):
            rows.append(row)

    return rows


def read_csv(content: bytes) -> list[list[str]]:
    """Parse CSV bytes (UTF-8, BOM tolerated, cp1252 fallback) into a table."""
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("cp1252", errors="replace")

    try:
        dialect = csv.Sniffer().sniff(text[:4096], delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel

    return [line for line in csv.reader(StringIO(text), dialect)]


def read_workbook(content: bytes) -> list[list[Any]]:
    """Read the first worksheet of an .xlsx workbook into a table."""
    try:
        workbook = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise SourceFormatError(f"Failed to parse Excel file: {e}") from e

    try:
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def read_upload(filename: str, content: bytes) -> list[ImportRow]:
    """
    Rows of an uploaded CSV or Excel file.

    Raises SourceFormatError for unsupported or empty files.
    """
    name = (filename or "").lower()
    extension = name[name.rfind("."):] if "." in name else ""

    if extension in CSV_EXTENSIONS:
        table = read_csv(content)
    elif extension in EXCEL_EXTENSIONS:
        table = read_workbook(content)
    else:
        raise SourceFormatError("Unsupported file type. Please upload CSV or Excel.")

    rows = rows_from_table(table)
    if not rows:
        raise SourceFormatError("File is empty")
    return rows
