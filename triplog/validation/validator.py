"""
Trip Input Validation

DESIGN DECISION: Validation collects every issue before reporting, so the
form can highlight all offending fields at once instead of one per attempt.

Issues carry a severity:
- error:   the write is refused (missing field, odometer not a number
           or out of range, unknown trip type, trip ending before it starts)
- warning: the write goes through but the user should look again
           (end odometer below start odometer)

IMPORTANT: Validation NEVER silently fixes input. Whitespace-only text
counts as missing; values are stored as typed.
"""

from datetime import datetime
from typing import Iterable, Optional, Union

from triplog.deductions.calculator import is_out_of_range, parse_decimal
from triplog.models.trip import (
    NewTrip,
    Trip,
    TripType,
    TripUpdate,
    ValidationIssue,
    ValidationResult,
)


class ValidationError(Exception):
    """
    Input rejected. `fields` names every offending field
    (persisted camelCase names), `issues` has the details.
    """

    def __init__(self, issues: list[ValidationIssue], message: Optional[str] = None):
        self.issues = issues
        self.fields: list[str] = []
        for issue in issues:
            if issue.severity == "error" and issue.field not in self.fields:
                self.fields.append(issue.field)
        super().__init__(message or f"Missing or invalid: {', '.join(self.fields)}")


class EmptyNameError(ValidationError):
    """A vehicle name that is empty after trimming."""


# field -> label shown to the user
REQUIRED_TEXT_FIELDS = {
    "start": "Starting location",
    "destination": "Destination",
    "purpose": "Purpose",
    "vehicle": "Vehicle",
}
ODOMETER_FIELDS = {
    "startOdometer": "Starting odometer",
    "endOdometer": "Ending odometer",
}

# attribute name -> persisted name
ATTRIBUTE_TO_FIELD = {
    "start": "start",
    "destination": "destination",
    "purpose": "purpose",
    "vehicle": "vehicle",
    "trip_type": "tripType",
    "start_odometer": "startOdometer",
    "end_odometer": "endOdometer",
    "start_date_time": "startDateTime",
    "end_date_time": "endDateTime",
}


def _as_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


class TripValidator:
    """Checks trip input for create and edit."""

    def _check_text(self, field: str, value: Optional[str]) -> list[ValidationIssue]:
        if value is not None and value.strip():
            return []
        label = REQUIRED_TEXT_FIELDS[field]
        return [ValidationIssue(
            field=field,
            issue_type="missing",
            message=f"{label} is required",
            severity="error",
            suggested_fix=f"Enter the {label.lower()}",
        )]

    def _check_odometer(self, field: str, value: Optional[str]) -> list[ValidationIssue]:
        label = ODOMETER_FIELDS[field]
        if value is None or not value.strip():
            return [ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{label} is required",
                severity="error",
                suggested_fix="Read the odometer and enter the number shown",
            )]
        if is_out_of_range(value):
            return [ValidationIssue(
                field=field,
                issue_type="out_of_range",
                message=f"{label} is out of range (got '{value}')",
                severity="error",
                suggested_fix="Enter the reading as shown, e.g. 12034.5",
            )]
        if parse_decimal(value) is None:
            return [ValidationIssue(
                field=field,
                issue_type="not_a_number",
                message=f"{label} must be a number (got '{value}')",
                severity="error",
                suggested_fix="Use digits and an optional decimal point, e.g. 12034.5",
            )]
        return []

    def _check_trip_type(self, value: Optional[str]) -> list[ValidationIssue]:
        # Absent means business
        if not value or TripType.is_recognized(value):
            return []
        allowed = ", ".join(member.value for member in TripType)
        return [ValidationIssue(
            field="tripType",
            issue_type="unknown_category",
            message=f"Trip type '{value}' is not one of: {allowed}",
            severity="error",
        )]

    def _check_distance(self, start: Optional[str], end: Optional[str]) -> list[ValidationIssue]:
        start_value = parse_decimal(start)
        end_value = parse_decimal(end)
        if start_value is None or end_value is None or end_value >= start_value:
            return []
        return [ValidationIssue(
            field="endOdometer",
            issue_type="negative_distance",
            message="Ending odometer is lower than starting odometer",
            severity="warning",
            suggested_fix="Check whether the two readings were swapped",
        )]

    def _check_timing(
        self,
        start: Union[str, datetime, None],
        end: Union[str, datetime, None],
    ) -> list[ValidationIssue]:
        start_at = _as_datetime(start)
        end_at = _as_datetime(end)
        if start_at is None or end_at is None:
            return []
        if (start_at.tzinfo is None) != (end_at.tzinfo is None):
            return []
        if end_at >= start_at:
            return []
        return [ValidationIssue(
            field="endDateTime",
            issue_type="inconsistent",
            message="Trip ends before it starts",
            severity="error",
            suggested_fix="Set the end time after the start time",
        )]

    def validate_new_trip(self, new_trip: NewTrip) -> ValidationResult:
        """Validate everything a new trip needs."""
        issues: list[ValidationIssue] = []
        for field in REQUIRED_TEXT_FIELDS:
            issues.extend(self._check_text(field, getattr(new_trip, field)))
        issues.extend(self._check_odometer("startOdometer", new_trip.start_odometer))
        issues.extend(self._check_odometer("endOdometer", new_trip.end_odometer))
        issues.extend(self._check_trip_type(new_trip.trip_type))
        issues.extend(self._check_distance(new_trip.start_odometer, new_trip.end_odometer))
        issues.extend(self._check_timing(new_trip.start_date_time, new_trip.end_date_time))
        return ValidationResult(issues=issues)

    def validate_update(self, current: Trip, update: TripUpdate) -> ValidationResult:
        """
        Validate the fields an edit touches.

        Untouched fields are not re-checked, so records saved by older app
        versions with gaps in them can still be edited.
        """
        changes = update.changes()
        touched = {ATTRIBUTE_TO_FIELD[name] for name in changes}
        issues: list[ValidationIssue] = []

        for field in REQUIRED_TEXT_FIELDS:
            if field in touched:
                issues.extend(self._check_text(field, changes[field]))

        if "tripType" in touched:
            issues.extend(self._check_trip_type(changes["trip_type"]))

        start_odometer = changes.get("start_odometer", current.start_odometer)
        end_odometer = changes.get("end_odometer", current.end_odometer)
        if update.touches_odometer:
            issues.extend(self._check_odometer("startOdometer", start_odometer))
            issues.extend(self._check_odometer("endOdometer", end_odometer))
            issues.extend(self._check_distance(start_odometer, end_odometer))

        if touched & {"startDateTime", "endDateTime"}:
            issues.extend(self._check_timing(
                changes.get("start_date_time") or current.start_date_time,
                changes.get("end_date_time") or current.end_date_time,
            ))

        return ValidationResult(issues=issues)

    def validate_vehicle_name(self, name: Optional[str]) -> str:
        """
        Trimmed vehicle name.

        Raises:
            EmptyNameError: If nothing is left after trimming
        """
        trimmed = (name or "").strip()
        if not trimmed:
            raise EmptyNameError([ValidationIssue(
                field="vehicle",
                issue_type="missing",
                message="Vehicle name cannot be empty",
                severity="error",
            )])
        return trimmed

    @staticmethod
    def raise_for_errors(result: ValidationResult) -> None:
        if result.has_errors:
            raise ValidationError(result.issues)


def get_user_friendly_summary(issues: Iterable[ValidationIssue]) -> str:
    """Short text for an alert: errors first, then warnings."""
    issues = list(issues)
    errors = [issue for issue in issues if issue.severity == "error"]
    warnings = [issue for issue in issues if issue.severity == "warning"]

    lines = []
    if errors:
        lines.append("Please fix the following:")
        lines.extend(f"  - {issue.message}" for issue in errors)
    if warnings:
        if lines:
            lines.append("")
        lines.append("Please double-check:")
        lines.extend(f"  - {issue.message}" for issue in warnings)
    return "\n".join(lines)
