"""
Audit Models for Trip Log

Every change to the trip ledger, the vehicle registry or the preferences
produces an audit event. Events go to the structured log; they explain
what happened to the local data when something looks wrong later.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Trip lifecycle
    TRIP_CREATED = "trip_created"
    TRIP_UPDATED = "trip_updated"
    TRIP_DELETED = "trip_deleted"
    TRIP_VALIDATION_FAILED = "trip_validation_failed"

    # Load-time migration
    TRIPS_MIGRATED = "trips_migrated"
    STORED_DATA_UNREADABLE = "stored_data_unreadable"

    # Vehicle registry
    VEHICLE_ADDED = "vehicle_added"
    VEHICLE_REMOVED = "vehicle_removed"
    VEHICLE_REJECTED = "vehicle_rejected"

    # Preferences
    PREFERENCES_UPDATED = "preferences_updated"

    # Export
    EXPORT_GENERATED = "export_generated"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'trip', 'vehicle', 'export')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Trip id, vehicle name, or store key"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.trip_created(trip_id, miles, trip_type)
        event = AuditEventBuilder.vehicle_removed(name, existed=True)
    """

    @staticmethod
    def trip_created(
        trip_id: str,
        miles: str,
        trip_type: str,
        warnings: Optional[list[str]] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRIP_CREATED,
            severity=AuditSeverity.WARNING if warnings else AuditSeverity.INFO,
            entity_type="trip",
            entity_id=trip_id,
            description=f"Trip logged: {miles} miles",
            details={"miles": miles, "trip_type": trip_type, "warnings": warnings or []},
            is_user_action=True,
        )

    @staticmethod
    def trip_updated(
        trip_id: str,
        fields: list[str],
        miles_recomputed: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRIP_UPDATED,
            entity_type="trip",
            entity_id=trip_id,
            description=f"Trip edited: {', '.join(fields) or 'no changes'}",
            details={"fields": fields, "miles_recomputed": miles_recomputed},
            is_user_action=True,
        )

    @staticmethod
    def trip_deleted(trip_id: str, existed: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRIP_DELETED,
            entity_type="trip",
            entity_id=trip_id,
            description="Trip deleted" if existed else "Trip already absent",
            details={"existed": existed},
            is_user_action=True,
        )

    @staticmethod
    def trip_validation_failed(
        fields: list[str],
        trip_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRIP_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="trip",
            entity_id=trip_id,
            description=f"Trip input rejected: {', '.join(fields)}",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def trips_migrated(key: str, changed: int, total: int, version: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRIPS_MIGRATED,
            entity_type="store",
            entity_id=key,
            description=f"Normalized {changed} of {total} stored trips",
            details={"changed": changed, "total": total, "schema_version": version},
        )

    @staticmethod
    def stored_data_unreadable(key: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORED_DATA_UNREADABLE,
            severity=AuditSeverity.WARNING,
            entity_type="store",
            entity_id=key,
            description=f"Stored value under '{key}' could not be read; treated as empty",
            error_message=error,
        )

    @staticmethod
    def vehicle_added(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VEHICLE_ADDED,
            entity_type="vehicle",
            entity_id=name,
            description=f"Vehicle added: {name}",
            is_user_action=True,
        )

    @staticmethod
    def vehicle_removed(name: str, existed: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VEHICLE_REMOVED,
            entity_type="vehicle",
            entity_id=name,
            description=f"Vehicle removed: {name}" if existed else f"Vehicle not registered: {name}",
            details={"existed": existed},
            is_user_action=True,
        )

    @staticmethod
    def vehicle_rejected(name: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VEHICLE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="vehicle",
            entity_id=name,
            description=f"Vehicle not added: {reason}",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def preferences_updated(fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PREFERENCES_UPDATED,
            entity_type="preferences",
            description=f"Preferences saved: {', '.join(fields)}",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def export_generated(filename: str, row_count: int, year: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            entity_type="export",
            entity_id=filename,
            description=f"Exported {row_count} trips to {filename}",
            details={"row_count": row_count, "year": year},
            is_user_action=True,
        )

    @staticmethod
    def storage_error(key: str, operation: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type="store",
            entity_id=key,
            description=f"Storage {operation} failed for '{key}'",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
