"""
Data Models Package

This package contains all Pydantic models used in Trip Log.
All data flowing through the system must conform to these schemas.
"""

from triplog.models.trip import (
    DistanceUnit,
    ExportDocument,
    NewTrip,
    Preferences,
    RateTable,
    Theme,
    Trip,
    TripSummary,
    TripType,
    TripUpdate,
    ValidationIssue,
    ValidationResult,
    YearGroup,
    generate_trip_id,
)
from triplog.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Trip models
    "DistanceUnit",
    "ExportDocument",
    "NewTrip",
    "Preferences",
    "RateTable",
    "Theme",
    "Trip",
    "TripSummary",
    "TripType",
    "TripUpdate",
    "ValidationIssue",
    "ValidationResult",
    "YearGroup",
    "generate_trip_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
