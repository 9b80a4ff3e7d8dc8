# fleetdesk/core/normalizers.py

"""
Row and field normalization for spreadsheet imports.

Spreadsheets arrive with whatever headers the author felt like typing, so every
canonical field is looked up through an ordered list of header aliases.
"""

from datetime import date, datetime, time, timezone
from typing import Any, Mapping, Sequence
import math
import re

from fleetdesk.core.errors import RowValidationError
from fleetdesk.models import CLIENT_NAMES, RiderRecord, WalletUpdateRecord


# ============================================
# Header alias tables
# ============================================

RIDER_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "rider_name": ("Rider Name", "Name", "Full Name", "Driver Name"),
    "mobile_number": ("Mobile Number", "Mobile", "Mobile No", "Phone", "Phone Number", "Contact Number"),
    "triev_id": ("Triev ID", "ID", "Rider ID"),
    "chassis_number": ("Chassis Number", "Chassis", "Chassis No", "Vehicle Chassis"),
    "client_name": ("Client Name", "Client"),
    "client_id": ("Client ID",),
    "wallet_amount": ("Wallet Amount", "Wallet", "Wallet Balance", "Balance", "Amount"),
    "owner_reference": ("Team Leader", "Team Leader Name", "TL", "TL Name", "Base"),
    "allotment_date": ("Allotment Date", "Allotted On", "Date"),
    "remarks": ("Remarks", "Remark", "Comments", "Notes"),
    "status": ("Status",),
}

WALLET_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "triev_id": RIDER_FIELD_ALIASES["triev_id"],
    "mobile_number": RIDER_FIELD_ALIASES["mobile_number"],
    "wallet_amount": RIDER_FIELD_ALIASES["wallet_amount"],
}

_WHITESPACE = re.compile(r"\s+")
_PARENTHETICAL = re.compile(r"\s*\(.*?\)\s*")
_CURRENCY_WORDS = re.compile(r"\b(?:rs|inr)\.?", re.IGNORECASE)


# ============================================
# Text helpers
# ============================================

def clean_text(value: Any) -> str:
    """Cell value as trimmed text; None becomes an empty string."""
    if value is None:
        return ""
    return str(value).replace("\xa0", " ").strip()


def normalize_header(header: Any) -> str:
    """
    Normalize a column header for alias lookup.

    "Triev ID", " triev id " and "TrievId" all become "trievid".
    """
    return _WHITESPACE.sub("", clean_text(header).lower())


def normalize_name(name: str | None) -> str:
    """Lowercase, trim and collapse inner whitespace."""
    if not name:
        return ""
    return _WHITESPACE.sub(" ", name.replace("\xa0", " ")).strip().lower()


def strip_parentheticals(name: str | None) -> str:
    """
    Drop every "(...)" segment and normalize the rest.

    "Om Prakash Singh ( KONTI/357 )" -> "om prakash singh"
    """
    if not name:
        return ""
    return normalize_name(_PARENTHETICAL.sub(" ", name))


# ============================================
# Row normalizer
# ============================================

def normalize_row(row: Mapping[Any, Any]) -> dict[str, str]:
    """
    Re-key a raw row by normalized header.

    Blank headers are dropped. When two headers normalize to the same key the
    first non-empty value wins.
    """
    normalized: dict[str, str] = {}
    for header, value in row.items():
        key = normalize_header(header)
        if not key:
            continue
        text = clean_text(value)
        if key not in normalized or (not normalized[key] and text):
            normalized[key] = text
    return normalized


def get_field(normalized_row: Mapping[str, str], aliases: Sequence[str]) -> str:
    """Value of the first alias with a non-empty cell, else ""."""
    for alias in aliases:
        value = normalized_row.get(normalize_header(alias), "")
        if value:
            return value
    return ""


def map_fields(
    row: Mapping[Any, Any],
    alias_table: Mapping[str, Sequence[str]],
) -> dict[str, str]:
    """Map a raw row onto canonical field names using an alias table."""
    normalized = normalize_row(row)
    return {field: get_field(normalized, aliases) for field, aliases in alias_table.items()}


# ============================================
# Field parsers
# ============================================

def parse_currency(value: Any) -> float:
    """
    Parse a signed amount as typed into a spreadsheet.

    Handles:
    - Plain decimals ("500", "-500.50")
    - Accounting negatives ("(-) 500", "(500)")
    - Currency symbols and thousands separators ("₹1,250", "Rs. 500")

    Empty input is 0. Malformed input returns nan instead of raising; callers
    decide whether that is an error.
    """
    if value is None:
        return 0.0

    if isinstance(value, bool):
        return math.nan

    if isinstance(value, (int, float)):
        return float(value)

    text = clean_text(value)
    if not text:
        return 0.0

    # Symbols, separators and whitespace go first so "₹ (500)" reads as "(500)"
    text = _CURRENCY_WORDS.sub("", text)
    text = re.sub(r"[^\d.\-()]", "", text)

    negative = False
    if text.startswith("(-)"):
        negative = True
        text = text[3:]
    elif text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]

    cleaned = re.sub(r"[^\d.\-]", "", text)
    if negative:
        cleaned = cleaned.replace("-", "")

    if not re.search(r"\d", cleaned):
        return math.nan

    try:
        amount = float(cleaned)
    except ValueError:
        return math.nan

    return -abs(amount) if negative else amount


def normalize_mobile(value: Any) -> str:
    """
    Digits-only mobile number.

    A 12-digit number carrying the 91 country code, or an 11-digit number with a
    trunk 0, is reduced to the 10-digit subscriber number.
    """
    digits = re.sub(r"\D", "", clean_text(value))
    if len(digits) == 12 and digits.startswith("91"):
        return digits[-10:]
    if len(digits) == 11 and digits.startswith("0"):
        return digits[-10:]
    return digits


def normalize_client_name(value: Any) -> str:
    """Canonical client name, or "Other" for anything unknown."""
    text = clean_text(value).lower()
    for client in CLIENT_NAMES:
        if client.lower() == text:
            return client
    return "Other"


def normalize_status(value: Any) -> str:
    text = clean_text(value).lower()
    return text if text in ("active", "inactive") else "active"


def normalize_date(d: Any) -> date | None:
    """
    Normalize date to date object.

    Handles:
    - date / datetime objects (as produced by openpyxl)
    - ISO strings, with or without a time part
    - Day-first strings ("05/01/2025", "05-01-2025", "05.01.2025")
    """
    if d is None:
        return None

    if isinstance(d, datetime):
        return d.date()

    if isinstance(d, date):
        return d

    text = clean_text(d)
    if not text:
        return None

    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError:
        pass

    formats = [
        '%d/%m/%Y',
        '%d-%m-%Y',
        '%d.%m.%Y',
        '%Y/%m/%d',
        '%d %b %Y',
        '%d-%b-%Y',
        '%d/%m/%y',
    ]
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


# ============================================
# Record builders
# ============================================

def to_rider_record(fields: Mapping[str, str], now: datetime) -> RiderRecord:
    """
    Validate mapped roster fields and build a RiderRecord.

    Raises RowValidationError when the row has no identifier, no rider name,
    or an amount that cannot be parsed.
    """
    triev_id = clean_text(fields.get("triev_id"))
    mobile = normalize_mobile(fields.get("mobile_number"))
    chassis = clean_text(fields.get("chassis_number"))
    rider_name = clean_text(fields.get("rider_name"))

    if not triev_id and not mobile and not chassis:
        raise RowValidationError("Missing Identifier (Triev ID, Mobile, or Chassis required)")
    if not rider_name:
        raise RowValidationError("Missing Rider Name")

    amount = parse_currency(fields.get("wallet_amount"))
    if math.isnan(amount):
        raise RowValidationError(f"Invalid Wallet Amount value: '{fields.get('wallet_amount')}'")

    allotted = normalize_date(fields.get("allotment_date"))
    allotment_date = datetime.combine(allotted, time.min, tzinfo=timezone.utc) if allotted else now

    return RiderRecord(
        rider_name=rider_name,
        mobile_number=mobile,
        triev_id=triev_id,
        chassis_number=chassis,
        client_name=normalize_client_name(fields.get("client_name")),
        client_id=clean_text(fields.get("client_id")),
        wallet_amount=amount,
        owner_reference=clean_text(fields.get("owner_reference")),
        allotment_date=allotment_date,
        remarks=clean_text(fields.get("remarks")),
        status=normalize_status(fields.get("status")),
    )


def to_wallet_record(fields: Mapping[str, str]) -> WalletUpdateRecord:
    """Validate mapped wallet fields and build a WalletUpdateRecord."""
    triev_id = clean_text(fields.get("triev_id"))
    mobile = normalize_mobile(fields.get("mobile_number"))

    if not triev_id and not mobile:
        raise RowValidationError("Missing Identifier: 'Triev ID' or 'Mobile Number' is required column.")

    amount = parse_currency(fields.get("wallet_amount"))
    if math.isnan(amount):
        raise RowValidationError(f"Invalid Wallet Amount value: '{fields.get('wallet_amount')}'")

    return WalletUpdateRecord(triev_id=triev_id, mobile_number=mobile, wallet_amount=amount)
