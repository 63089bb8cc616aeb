"""
Trip Ledger Orchestrator for Trip Log

This module ties together storage, validation, the calculator and the
exporter, and defines the operations every screen calls:
1. Trip lifecycle (create → edit → delete)
2. Read views (history by year, summary, export)

DESIGN DECISION: Every mutation is a read-modify-write of the whole
collection: load, build a NEW list, save. The list that was loaded is
never mutated, so if the save fails the caller's view is unchanged and
the user can simply retry.

KNOWN LIMITATION: There is no optimistic-concurrency check. Two
overlapping mutations against the same store can lose one update.
Callers issue one mutation at a time.
"""

from datetime import datetime
from typing import Callable, NamedTuple, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from triplog.audit import AuditLogger, configure_logging
from triplog.config import get_settings
from triplog.deductions.calculator import (
    compute_miles,
    summarize,
    trips_for_year,
    year_groups,
)
from triplog.export import build_export
from triplog.models.trip import (
    ExportDocument,
    NewTrip,
    Preferences,
    RateTable,
    Trip,
    TripSummary,
    TripType,
    TripUpdate,
    ValidationIssue,
    YearGroup,
    generate_trip_id,
)
from triplog.services.storage import (
    JSONFileKeyValueStore,
    KeyValueStoreInterface,
    NotFoundError,
    PreferencesStore,
    TripStore,
    VehicleRegistry,
)
from triplog.validation import TripValidator, ValidationError
from triplog.validation.validator import ATTRIBUTE_TO_FIELD


Clock = Callable[[], datetime]

TIMESTAMP_FIELDS = {
    "startDateTime": "start_date_time",
    "endDateTime": "end_date_time",
}


def _timestamp(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


def _issues_from_pydantic(error: PydanticValidationError) -> list[ValidationIssue]:
    """Translate a model parsing error into our issue list."""
    issues = []
    for detail in error.errors():
        location = detail.get("loc") or ("input",)
        name = str(location[0])
        field = ATTRIBUTE_TO_FIELD.get(name, name)
        if detail.get("type") == "extra_forbidden":
            message = f"{field} cannot be changed"
        else:
            message = f"{field}: {detail.get('msg', 'invalid value')}"
        issues.append(ValidationIssue(
            field=field,
            issue_type=detail.get("type", "invalid_value"),
            message=message,
            severity="error",
        ))
    return issues


class TripLedger:
    """
    Trip lifecycle operations and read views.

    State machine per trip:
        absent --create--> persisted --edit--> persisted --delete--> absent
    """

    def __init__(
        self,
        trip_store: TripStore,
        base_rates: Optional[RateTable] = None,
        preferences: Optional[Preferences] = None,
        validator: Optional[TripValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = datetime.now,
    ):
        self._store = trip_store
        self._base_rates = base_rates or RateTable()
        self._preferences = preferences or Preferences()
        self._validator = validator or TripValidator()
        self._audit = audit_logger or AuditLogger()
        self._clock = clock

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    def apply_preferences(self, preferences: Preferences) -> None:
        """Use new preferences (e.g. after the settings screen saved them)."""
        self._preferences = preferences

    @property
    def rates(self) -> RateTable:
        """Rates in effect: configured defaults with the user's override applied."""
        return self._preferences.apply_to(self._base_rates)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_trips(self) -> list[Trip]:
        return await self._store.load_all()

    async def get_trip(self, trip_id: str) -> Trip:
        """
        Raises:
            NotFoundError: If no trip has this id
        """
        for trip in await self._store.load_all():
            if trip.id == trip_id:
                return trip
        raise NotFoundError(f"Trip not found: {trip_id}")

    async def history(self) -> list[YearGroup]:
        """Trips grouped by start year, newest year first."""
        return year_groups(await self._store.load_all(), self.rates)

    async def summary(self, year: Optional[str] = None) -> TripSummary:
        trips = await self._store.load_all()
        if year is not None:
            trips = trips_for_year(trips, year)
        return summarize(trips, self.rates)

    async def export_csv(self, year: Optional[str] = None) -> ExportDocument:
        """Render the export; saving or sharing it is up to the caller."""
        document = build_export(await self._store.load_all(), self.rates, year=year)
        self._audit.log_export_generated(document.filename, document.row_count, year)
        return document

    async def trips_referencing_vehicle(self, name: str) -> list[Trip]:
        """Trips that would be left pointing at `name` if it were removed."""
        return [trip for trip in await self._store.load_all() if trip.vehicle == name]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def create_trip(self, fields: Union[NewTrip, dict]) -> Trip:
        """
        Validate, build and persist a new trip.

        Missing start/end timestamps default to the current clock time.

        Raises:
            ValidationError: Naming every offending field; nothing is written
            StorageError: If the save fails
        """
        try:
            new_trip = fields if isinstance(fields, NewTrip) else NewTrip.model_validate(fields)
        except PydanticValidationError as e:
            issues = _issues_from_pydantic(e)
            self._audit.log_validation_failed([issue.field for issue in issues])
            raise ValidationError(issues) from e

        now = self._clock()
        new_trip = new_trip.model_copy(update={
            "start_date_time": new_trip.start_date_time or now,
            "end_date_time": new_trip.end_date_time or now,
        })

        result = self._validator.validate_new_trip(new_trip)
        if result.has_errors:
            self._audit.log_validation_failed(result.error_fields)
            raise ValidationError(result.issues)

        trips = await self._store.load_all()
        trip = Trip(
            id=generate_trip_id({existing.id for existing in trips}),
            start=new_trip.start,
            destination=new_trip.destination,
            purpose=new_trip.purpose,
            vehicle=new_trip.vehicle,
            trip_type=TripType.parse(new_trip.trip_type).value,
            start_odometer=new_trip.start_odometer,
            end_odometer=new_trip.end_odometer,
            miles=compute_miles(new_trip.start_odometer, new_trip.end_odometer),
            start_date_time=_timestamp(new_trip.start_date_time),
            end_date_time=_timestamp(new_trip.end_date_time),
            date_logged=_timestamp(now),
        )

        await self._store.save_all([*trips, trip])
        self._audit.log_trip_created(trip.id, trip.miles, trip.trip_type, result.warnings)
        return trip

    async def update_trip(self, trip_id: str, changes: Union[TripUpdate, dict]) -> Trip:
        """
        Apply field changes to one trip, recomputing miles when an
        odometer reading changed.

        Raises:
            NotFoundError: If no trip has this id
            ValidationError: If a changed field is invalid (or `id` is in the changes)
            StorageError: If the save fails
        """
        try:
            update = changes if isinstance(changes, TripUpdate) else TripUpdate.model_validate(changes)
        except PydanticValidationError as e:
            issues = _issues_from_pydantic(e)
            self._audit.log_validation_failed([issue.field for issue in issues], trip_id)
            raise ValidationError(issues) from e

        trips = await self._store.load_all()
        index = next((i for i, trip in enumerate(trips) if trip.id == trip_id), None)
        if index is None:
            raise NotFoundError(f"Trip not found: {trip_id}")
        current = trips[index]

        result = self._validator.validate_update(current, update)
        if result.has_errors:
            self._audit.log_validation_failed(result.error_fields, trip_id)
            raise ValidationError(result.issues)

        # Required fields set to None were rejected above; None elsewhere means unchanged
        values = {name: value for name, value in update.changes().items() if value is not None}
        for name in ("start_date_time", "end_date_time"):
            if isinstance(values.get(name), datetime):
                values[name] = _timestamp(values[name])
        if "trip_type" in values:
            values["trip_type"] = TripType.parse(values["trip_type"]).value

        updated = current.model_copy(update=values)
        if update.touches_odometer:
            updated = updated.model_copy(update={
                "miles": compute_miles(updated.start_odometer, updated.end_odometer),
            })

        await self._store.save_all([*trips[:index], updated, *trips[index + 1:]])
        self._audit.log_trip_updated(
            trip_id,
            [ATTRIBUTE_TO_FIELD[name] for name in values],
            update.touches_odometer,
        )
        return updated

    async def set_to_now(self, trip_id: str, field: str) -> Trip:
        """Set startDateTime or endDateTime to the current clock time."""
        attribute = TIMESTAMP_FIELDS.get(field)
        if attribute is None:
            raise ValidationError([ValidationIssue(
                field=field,
                issue_type="not_a_timestamp",
                message=f"{field} is not a timestamp field",
                severity="error",
            )])
        return await self.update_trip(trip_id, TripUpdate(**{attribute: self._clock()}))

    async def delete_trip(self, trip_id: str) -> list[Trip]:
        """
        Remove a trip. Deleting an id that is not there is not an error.

        Returns:
            The resulting collection
        """
        trips = await self._store.load_all()
        remaining = [trip for trip in trips if trip.id != trip_id]
        existed = len(remaining) != len(trips)
        if existed:
            await self._store.save_all(remaining)
        self._audit.log_trip_deleted(trip_id, existed)
        return remaining


class AppComponents(NamedTuple):
    ledger: TripLedger
    vehicles: VehicleRegistry
    preferences_store: PreferencesStore


async def create_app_components(
    store: Optional[KeyValueStoreInterface] = None,
    clock: Clock = datetime.now,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        store: Key-value backend. Defaults to the JSON file from settings.
        clock: Source of "now" for default timestamps.

    Returns:
        (ledger, vehicle_registry, preferences_store)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    store = store or JSONFileKeyValueStore()
    audit_logger = AuditLogger()

    preferences_store = PreferencesStore(store, audit_logger)
    preferences = await preferences_store.load()

    ledger = TripLedger(
        trip_store=TripStore(store, audit_logger),
        base_rates=RateTable(**settings.rates.model_dump()),
        preferences=preferences,
        audit_logger=audit_logger,
        clock=clock,
    )

    return AppComponents(
        ledger=ledger,
        vehicles=VehicleRegistry(store, audit_logger),
        preferences_store=preferences_store,
    )
