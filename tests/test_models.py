"""
Tests for Trip Log models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Flow tests for the ledger against an in-memory store
3. No test reads or writes the user's real data file
"""

import pytest
from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError

from triplog.models.trip import (
    DistanceUnit,
    NewTrip,
    Preferences,
    RateTable,
    Theme,
    Trip,
    TripType,
    TripUpdate,
    ValidationIssue,
    ValidationResult,
    generate_trip_id,
)
from triplog.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestTripModels:
    """Tests for trip-related Pydantic models."""

    def test_trip_accepts_persisted_field_names(self):
        """Test Trip can be built from the camelCase blob layout."""
        trip = Trip.model_validate({
            "id": "k3j9x0ab",
            "start": "Home",
            "destination": "Clinic",
            "purpose": "Checkup",
            "vehicle": "Civic",
            "tripType": "medical",
            "startOdometer": "100",
            "endOdometer": "112.5",
            "miles": "12.5",
            "startDateTime": "2024-01-02T08:00:00",
            "endDateTime": "2024-01-02T08:30:00",
        })
        assert trip.trip_type == "medical"
        assert trip.start_odometer == "100"
        assert trip.category == TripType.MEDICAL

    def test_trip_storage_dict_uses_aliases(self):
        """Test that serialization keeps the persisted names and drops unset dateLogged."""
        trip = Trip(id="abc", trip_type="moving", start_odometer="1", end_odometer="2")
        data = trip.to_storage_dict()
        assert data["tripType"] == "moving"
        assert data["startOdometer"] == "1"
        assert "trip_type" not in data
        assert "dateLogged" not in data

    def test_trip_requires_id(self):
        """Test that an empty id is rejected."""
        with pytest.raises(PydanticValidationError):
            Trip(id="")

    def test_unknown_trip_type_resolves_to_business(self):
        """Test that unrecognized stored categories count as business."""
        trip = Trip(id="abc", trip_type="commute")
        assert trip.category == TripType.BUSINESS

    def test_trip_type_parse_is_case_insensitive(self):
        """Test TripType.parse with mixed case."""
        assert TripType.parse("Medical") == TripType.MEDICAL
        assert TripType.parse(" CHARITABLE ") == TripType.CHARITABLE
        assert TripType.parse(None) == TripType.BUSINESS
        assert TripType.is_recognized("Moving")
        assert not TripType.is_recognized("")

    def test_new_trip_defaults_are_blank(self):
        """Test that NewTrip leaves missing fields for the validator to report."""
        new_trip = NewTrip()
        assert new_trip.destination == ""
        assert new_trip.trip_type == "business"
        assert new_trip.start_date_time is None

    def test_trip_update_tracks_only_set_fields(self):
        """Test TripUpdate.changes() reports what the caller set."""
        update = TripUpdate(purpose="Site visit", endOdometer="200")
        assert update.changes() == {"purpose": "Site visit", "end_odometer": "200"}
        assert update.touches_odometer

    def test_trip_update_rejects_id(self):
        """Test that an edit cannot carry an id."""
        with pytest.raises(PydanticValidationError):
            TripUpdate.model_validate({"id": "other"})


class TestTripIds:
    """Tests for trip id generation."""

    def test_id_shape(self):
        """Test ids are 8 lowercase base36 characters."""
        trip_id = generate_trip_id()
        assert len(trip_id) == 8
        assert all(c in "0123456789abcdefghijklmnopqrstuvwxyz" for c in trip_id)

    def test_ids_avoid_existing(self):
        """Test that generated ids never repeat an existing one."""
        existing = {generate_trip_id() for _ in range(50)}
        for _ in range(50):
            assert generate_trip_id(existing) not in existing


class TestRatesAndPreferences:
    """Tests for the rate table and user preferences."""

    def test_default_rates(self):
        """Test the standard rate per category."""
        rates = RateTable()
        assert rates.rate_for(TripType.BUSINESS) == Decimal("0.70")
        assert rates.rate_for(TripType.MEDICAL) == Decimal("0.21")
        assert rates.rate_for(TripType.MOVING) == Decimal("0.21")
        assert rates.rate_for(TripType.CHARITABLE) == Decimal("0.14")

    def test_rates_reject_negative(self):
        """Test that negative rates are rejected."""
        with pytest.raises(PydanticValidationError):
            RateTable(business=Decimal("-0.1"))

    def test_preferences_override_business_rate(self):
        """Test that a mileage-rate preference replaces only the business rate."""
        prefs = Preferences(mileage_rate=Decimal("0.67"))
        rates = prefs.apply_to(RateTable())
        assert rates.business == Decimal("0.67")
        assert rates.medical == Decimal("0.21")

    def test_preferences_without_override(self):
        """Test that no override leaves the table alone."""
        rates = RateTable()
        assert Preferences().apply_to(rates) is rates

    def test_preferences_defaults(self):
        """Test default theme and unit."""
        prefs = Preferences()
        assert prefs.theme == Theme.LIGHT
        assert prefs.distance_unit == DistanceUnit.MILES
        assert not prefs.is_dark


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRIP_CREATED,
            description="Trip logged",
        )
        assert event.event_type == AuditEventType.TRIP_CREATED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.VEHICLE_ADDED,
            entity_type="vehicle",
            entity_id="Civic",
            description="Vehicle added: Civic",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "vehicle_added"
        assert log_dict["entity_id"] == "Civic"
        assert "timestamp" in log_dict

    def test_builder_trip_created_with_warnings(self):
        """Test that warnings raise the event severity."""
        event = AuditEventBuilder.trip_created(
            "abc12345", "-5.0", "business", ["Ending odometer is lower than starting odometer"]
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details["miles"] == "-5.0"
        assert event.is_user_action

    def test_builder_storage_error(self):
        """Test storage error events."""
        event = AuditEventBuilder.storage_error("trips", "save", "disk full")
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "disk full"
        assert event.entity_id == "trips"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test ValidationResult with errors."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="destination",
                issue_type="missing",
                message="Destination is required",
                severity="error",
            ),
            ValidationIssue(
                field="destination",
                issue_type="missing",
                message="Destination is required",
                severity="error",
            ),
        ])
        assert result.has_errors
        assert not result.is_valid
        assert result.error_fields == ["destination"]

    def test_validation_result_warnings_only(self):
        """Test ValidationResult with only warnings."""
        result = ValidationResult(issues=[
            ValidationIssue(
                field="endOdometer",
                issue_type="negative_distance",
                message="Ending odometer is lower than starting odometer",
                severity="warning",
            ),
        ])
        assert not result.has_errors
        assert result.is_valid
        assert result.warnings == ["Ending odometer is lower than starting odometer"]

    def test_validation_issue_rejects_unknown_severity(self):
        """Test that severity is limited to error/warning/info."""
        with pytest.raises(PydanticValidationError):
            ValidationIssue(field="start", issue_type="x", message="x", severity="fatal")
