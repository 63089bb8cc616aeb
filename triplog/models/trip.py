"""
Core Data Models for Trip Log

These models define the schemas for all data flowing through the system.
They are designed to:
1. Keep the persisted camelCase field names (via aliases)
2. Tolerate legacy or partially-filled records on load
3. Be serializable back to the same blob layout
4. Keep numeric values as the strings the user typed

DESIGN DECISION: Odometer readings, miles and timestamps are stored as
strings, exactly as entered. Parsing happens in the calculator and the
validator, which decide what to do with values that do not parse.
"""

import secrets
import string
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TripType(str, Enum):
    """
    Trip categories, each with its own reimbursement rate.

    Stored values that are absent or not recognized are treated as business.
    """
    BUSINESS = "business"
    MEDICAL = "medical"
    MOVING = "moving"
    CHARITABLE = "charitable"

    @classmethod
    def parse(cls, value: Optional[str]) -> "TripType":
        """Resolve a stored category string, case-insensitively."""
        if value:
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.BUSINESS

    @classmethod
    def is_recognized(cls, value: Optional[str]) -> bool:
        if not value:
            return False
        return value.strip().lower() in {member.value for member in cls}


class DistanceUnit(str, Enum):
    """Preferred distance label. Display only, no conversion."""
    MILES = "mi"
    KILOMETERS = "km"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


# =============================================================================
# IDENTIFIERS
# =============================================================================

TRIP_ID_ALPHABET = string.digits + string.ascii_lowercase
TRIP_ID_LENGTH = 8


def generate_trip_id(existing: Optional[set[str]] = None) -> str:
    """
    Generate a random trip id that is not in `existing`.

    Ids are 8 lowercase base36 characters, the same shape earlier app versions
    wrote, so old and new records look alike.
    """
    existing = existing or set()
    while True:
        candidate = "".join(
            secrets.choice(TRIP_ID_ALPHABET) for _ in range(TRIP_ID_LENGTH)
        )
        if candidate not in existing:
            return candidate


# =============================================================================
# CORE TRIP MODEL
# =============================================================================

class Trip(BaseModel):
    """
    A persisted trip.

    CRITICAL: `id` is assigned once at creation and never reassigned.
    `miles` is derived from the odometer readings and is not edited directly.
    Keys this model does not know are kept and written back unchanged.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier"
    )
    start: str = Field(default="", description="Starting location")
    destination: str = Field(default="", description="Destination")
    purpose: str = Field(default="", description="Why the trip was made")
    vehicle: str = Field(
        default="",
        description="Vehicle name (not enforced against the registry)"
    )
    trip_type: str = Field(
        default=TripType.BUSINESS.value,
        alias="tripType",
        description="Category used to pick the reimbursement rate"
    )
    start_odometer: str = Field(default="", alias="startOdometer")
    end_odometer: str = Field(default="", alias="endOdometer")
    miles: str = Field(
        default="",
        description="endOdometer - startOdometer, as a decimal string"
    )
    start_date_time: str = Field(
        default="",
        alias="startDateTime",
        description="ISO timestamp the trip started"
    )
    end_date_time: str = Field(
        default="",
        alias="endDateTime",
        description="ISO timestamp the trip ended"
    )
    date_logged: Optional[str] = Field(
        default=None,
        alias="dateLogged",
        description="ISO timestamp the trip was recorded"
    )

    @property
    def category(self) -> TripType:
        """The trip type, with unknown values resolved to business."""
        return TripType.parse(self.trip_type)

    def to_storage_dict(self) -> dict:
        """Serialize using the persisted (camelCase) field names."""
        exclude = {"date_logged"} if self.date_logged is None else None
        return self.model_dump(by_alias=True, exclude=exclude)


class NewTrip(BaseModel):
    """
    Input for creating a trip.

    Every field has a default so that the validator, not pydantic,
    reports which required fields are missing.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start: str = ""
    destination: str = ""
    purpose: str = ""
    vehicle: str = ""
    trip_type: str = Field(default=TripType.BUSINESS.value, alias="tripType")
    start_odometer: str = Field(default="", alias="startOdometer")
    end_odometer: str = Field(default="", alias="endOdometer")
    start_date_time: Optional[datetime] = Field(default=None, alias="startDateTime")
    end_date_time: Optional[datetime] = Field(default=None, alias="endDateTime")


class TripUpdate(BaseModel):
    """
    Field changes for an existing trip.

    Only fields that are set are applied. There is deliberately no `id`
    and no `miles`: the former never changes, the latter is recomputed.
    """
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    start: Optional[str] = None
    destination: Optional[str] = None
    purpose: Optional[str] = None
    vehicle: Optional[str] = None
    trip_type: Optional[str] = Field(default=None, alias="tripType")
    start_odometer: Optional[str] = Field(default=None, alias="startOdometer")
    end_odometer: Optional[str] = Field(default=None, alias="endOdometer")
    start_date_time: Optional[datetime] = Field(default=None, alias="startDateTime")
    end_date_time: Optional[datetime] = Field(default=None, alias="endDateTime")

    def changes(self) -> dict:
        """Fields explicitly set on this update, by attribute name."""
        return self.model_dump(exclude_unset=True)

    @property
    def touches_odometer(self) -> bool:
        changed = self.model_fields_set
        return "start_odometer" in changed or "end_odometer" in changed


# =============================================================================
# RATE TABLE
# =============================================================================

class RateTable(BaseModel):
    """
    Reimbursement rate per trip category (currency per distance unit).

    Unknown categories fall back to the business rate.
    """
    model_config = ConfigDict(frozen=True)

    business: Decimal = Field(default=Decimal("0.70"), ge=0)
    medical: Decimal = Field(default=Decimal("0.21"), ge=0)
    moving: Decimal = Field(default=Decimal("0.21"), ge=0)
    charitable: Decimal = Field(default=Decimal("0.14"), ge=0)

    def rate_for(self, category: TripType) -> Decimal:
        return getattr(self, category.value)

    def with_business_rate(self, rate: Decimal) -> "RateTable":
        """Copy of this table with the user's overridden default rate."""
        return self.model_copy(update={"business": rate})


# =============================================================================
# USER PREFERENCES
# =============================================================================

class Preferences(BaseModel):
    """
    Settings the user changes inside the app.

    Passed explicitly to whatever needs them; there is no global copy.
    """
    model_config = ConfigDict(frozen=True)

    theme: Theme = Theme.LIGHT
    distance_unit: DistanceUnit = DistanceUnit.MILES
    mileage_rate: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Overrides the business rate when set"
    )

    def apply_to(self, rates: RateTable) -> RateTable:
        if self.mileage_rate is None:
            return rates
        return rates.with_business_rate(self.mileage_rate)

    @property
    def is_dark(self) -> bool:
        return self.theme == Theme.DARK


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue (persisted camelCase name)"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'not_a_number', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Outcome of validating trip input. Errors block the write, warnings don't."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_fields(self) -> list[str]:
        """Offending fields, in the order they were found, without repeats."""
        fields: list[str] = []
        for issue in self.issues:
            if issue.severity == "error" and issue.field not in fields:
                fields.append(issue.field)
        return fields

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# QUERY RESULT MODELS
# =============================================================================

class YearGroup(BaseModel):
    """Trips whose start falls in one calendar year, for the history view."""

    year: str
    trips: list[Trip] = Field(default_factory=list)
    total_miles: Decimal = Decimal("0")
    total_deduction: Decimal = Decimal("0")


class TripSummary(BaseModel):
    """Aggregate figures over a trip collection."""

    total_trips: int = Field(ge=0)
    total_miles: Decimal
    total_deduction: Decimal
    most_used_vehicle: str = "-"
    top_purpose: str = "-"
    miles_by_category: dict[TripType, Decimal] = Field(default_factory=dict)
    deduction_by_category: dict[TripType, Decimal] = Field(default_factory=dict)


class ExportDocument(BaseModel):
    """Rendered export, ready to be written or shared by the caller."""

    filename: str
    content: str
    row_count: int = Field(ge=0)
    year: Optional[str] = None
