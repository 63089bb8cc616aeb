"""
Audit Logger

DESIGN DECISION: Every change to local data is logged as a structured
event. This provides:
1. Traceability of what happened to the trip log and when
2. Debugging capability when a stored blob looks wrong
3. A record of failed writes the user may not have noticed

The audit logger never raises into the caller: a logging failure must not
turn a successful save into a reported error.
"""

import logging
from typing import Optional

import structlog

from triplog.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


class AuditLogger:
    """
    Central audit logging service.

    Writes each event to the structured log at the level matching
    its severity.
    """

    def __init__(self, name: str = "triplog.audit"):
        self._logger = structlog.get_logger(name)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written.
        """
        log_dict = event.to_log_dict()
        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            logging.getLogger(__name__).error("audit logging failed: %s", e)
            return False
        return True

    def log_trip_created(
        self,
        trip_id: str,
        miles: str,
        trip_type: str,
        warnings: Optional[list[str]] = None,
    ) -> None:
        self.log(AuditEventBuilder.trip_created(trip_id, miles, trip_type, warnings))

    def log_trip_updated(self, trip_id: str, fields: list[str], miles_recomputed: bool) -> None:
        self.log(AuditEventBuilder.trip_updated(trip_id, fields, miles_recomputed))

    def log_trip_deleted(self, trip_id: str, existed: bool) -> None:
        self.log(AuditEventBuilder.trip_deleted(trip_id, existed))

    def log_validation_failed(self, fields: list[str], trip_id: Optional[str] = None) -> None:
        self.log(AuditEventBuilder.trip_validation_failed(fields, trip_id))

    def log_trips_migrated(self, key: str, changed: int, total: int, version: int) -> None:
        self.log(AuditEventBuilder.trips_migrated(key, changed, total, version))

    def log_stored_data_unreadable(self, key: str, error: str) -> None:
        self.log(AuditEventBuilder.stored_data_unreadable(key, error))

    def log_vehicle_added(self, name: str) -> None:
        self.log(AuditEventBuilder.vehicle_added(name))

    def log_vehicle_removed(self, name: str, existed: bool) -> None:
        self.log(AuditEventBuilder.vehicle_removed(name, existed))

    def log_vehicle_rejected(self, name: str, reason: str) -> None:
        self.log(AuditEventBuilder.vehicle_rejected(name, reason))

    def log_preferences_updated(self, fields: list[str]) -> None:
        self.log(AuditEventBuilder.preferences_updated(fields))

    def log_export_generated(self, filename: str, row_count: int, year: Optional[str]) -> None:
        self.log(AuditEventBuilder.export_generated(filename, row_count, year))

    def log_storage_error(self, key: str, operation: str, error_message: str) -> None:
        self.log(AuditEventBuilder.storage_error(key, operation, error_message))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.log(AuditEventBuilder.system_error(error_type, error_message, details))
