# fleetdesk/models/rider.py

from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel

RiderStatus = Literal["active", "inactive", "deleted"]

ClientName = Literal["Zomato", "Zepto", "Blinkit", "Uber", "Porter", "Rapido", "Swiggy", "FLK", "Other"]

CLIENT_NAMES: tuple[str, ...] = ("Zomato", "Zepto", "Blinkit", "Uber", "Porter", "Rapido", "Swiggy", "FLK", "Other")

# Raw spreadsheet line: column header -> cell text
ImportRow = dict[str, str]


class RiderRecord(BaseModel):
    """A roster row after header normalization and field cleanup."""

    rider_name: str
    mobile_number: str = ""
    triev_id: str = ""
    chassis_number: str = ""
    client_name: ClientName = "Other"
    client_id: str = ""
    wallet_amount: float = 0.0
    owner_reference: str = ""
    allotment_date: datetime
    remarks: str = ""
    status: RiderStatus = "active"

    @property
    def has_identifier(self) -> bool:
        return bool(self.triev_id or self.mobile_number or self.chassis_number)


class WalletUpdateRecord(BaseModel):
    """A wallet-balance row."""

    triev_id: str = ""
    mobile_number: str = ""
    wallet_amount: float


class DuplicateKeys(BaseModel):
    """Candidate keys used to find an existing rider; absent keys are empty."""

    triev_id: str = ""
    mobile_number: str = ""
    chassis_number: str = ""

    def as_filters(self) -> dict[str, str]:
        """Column -> value for every key that is present."""
        return {column: value for column, value in self.model_dump().items() if value}

    @property
    def is_empty(self) -> bool:
        return not self.as_filters()


class RecordRef(BaseModel):
    """Reference to an existing rider row."""

    id: str
    rider_name: Optional[str] = None
    owner_id: Optional[str] = None
