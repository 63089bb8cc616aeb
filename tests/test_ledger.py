"""
Tests for the trip ledger (create → edit → delete) and its read views.
"""

import json

import pytest
from decimal import Decimal

from triplog.models.trip import NewTrip, Preferences, TripUpdate
from triplog.orchestrator import TripLedger, create_app_components
from triplog.services.storage import (
    InMemoryKeyValueStore,
    NotFoundError,
    StorageError,
    TripStore,
)
from triplog.validation import ValidationError

from tests.conftest import FIXED_NOW


class TestCreateTrip:
    """Tests for logging a new trip."""

    def test_create_persists_trip(self, run, ledger, trip_fields):
        """Test a valid trip is saved with computed miles and defaulted timestamps."""
        trip = run(ledger.create_trip(trip_fields))

        assert len(trip.id) == 8
        assert trip.miles == "42.5"
        assert trip.trip_type == "business"
        assert trip.start_date_time == FIXED_NOW.isoformat()
        assert trip.end_date_time == FIXED_NOW.isoformat()
        assert trip.date_logged == FIXED_NOW.isoformat()
        assert run(ledger.list_trips()) == [trip]

    def test_miles_match_odometers(self, run, ledger, trip_fields):
        """Test miles equal end minus start exactly."""
        trip_fields.update(startOdometer="100", endOdometer="150.25")
        trip = run(ledger.create_trip(trip_fields))
        assert Decimal(trip.miles) == Decimal(trip.end_odometer) - Decimal(trip.start_odometer)

    def test_create_accepts_model_input(self, run, ledger, trip_fields):
        """Test create with a NewTrip instead of a dict."""
        trip = run(ledger.create_trip(NewTrip.model_validate(trip_fields)))
        assert trip.destination == "Client office"

    def test_trip_type_is_normalized(self, run, ledger, trip_fields):
        """Test that a recognized type is stored in lowercase."""
        trip_fields["tripType"] = "Medical"
        assert run(ledger.create_trip(trip_fields)).trip_type == "medical"

    def test_explicit_timestamps_kept(self, run, ledger, trip_fields):
        """Test that given start/end times are stored as ISO text."""
        trip_fields.update(startDateTime="2023-11-02T07:15:00", endDateTime="2023-11-02T08:00:00")
        trip = run(ledger.create_trip(trip_fields))
        assert trip.start_date_time == "2023-11-02T07:15:00"
        assert trip.end_date_time == "2023-11-02T08:00:00"

    def test_empty_destination_rejected_without_write(self, run, store, ledger, trip_fields):
        """Test create with destination='' names destination and writes nothing."""
        trip_fields["destination"] = ""
        with pytest.raises(ValidationError) as exc_info:
            run(ledger.create_trip(trip_fields))
        assert exc_info.value.fields == ["destination"]
        assert store.write_count == 0

    def test_all_missing_fields_reported(self, run, store, ledger):
        """Test that every required field is named at once."""
        with pytest.raises(ValidationError) as exc_info:
            run(ledger.create_trip({"purpose": "   "}))
        assert exc_info.value.fields == [
            "start", "destination", "purpose", "vehicle", "startOdometer", "endOdometer",
        ]
        assert store.write_count == 0

    def test_non_numeric_odometer_rejected(self, run, ledger, trip_fields):
        """Test that odometer readings must parse as finite numbers."""
        trip_fields.update(startOdometer="twelve", endOdometer="inf")
        with pytest.raises(ValidationError) as exc_info:
            run(ledger.create_trip(trip_fields))
        assert exc_info.value.fields == ["startOdometer", "endOdometer"]

    def test_huge_odometer_rejected_without_write(self, run, store, ledger, trip_fields):
        """Test that an out-of-range reading is refused instead of crashing."""
        trip_fields["endOdometer"] = "1e30"
        with pytest.raises(ValidationError) as exc_info:
            run(ledger.create_trip(trip_fields))
        assert exc_info.value.fields == ["endOdometer"]
        assert exc_info.value.issues[0].issue_type == "out_of_range"
        assert store.write_count == 0

    def test_unknown_trip_type_rejected(self, run, ledger, trip_fields):
        """Test that only known categories can be entered."""
        trip_fields["tripType"] = "commute"
        with pytest.raises(ValidationError) as exc_info:
            run(ledger.create_trip(trip_fields))
        assert exc_info.value.fields == ["tripType"]

    def test_end_before_start_rejected(self, run, ledger, trip_fields):
        """Test that a trip cannot end before it starts."""
        trip_fields.update(startDateTime="2024-03-15T10:00:00", endDateTime="2024-03-15T09:00:00")
        with pytest.raises(ValidationError) as exc_info:
            run(ledger.create_trip(trip_fields))
        assert exc_info.value.fields == ["endDateTime"]

    def test_unparseable_timestamp_rejected(self, run, store, ledger, trip_fields):
        """Test that a malformed timestamp is reported against its field."""
        trip_fields["startDateTime"] = "half past nine"
        with pytest.raises(ValidationError) as exc_info:
            run(ledger.create_trip(trip_fields))
        assert exc_info.value.fields == ["startDateTime"]
        assert store.write_count == 0

    def test_lower_end_odometer_is_only_a_warning(self, run, ledger, trip_fields):
        """Test that negative distance is saved as entered."""
        trip_fields.update(startOdometer="200", endOdometer="190")
        assert run(ledger.create_trip(trip_fields)).miles == "-10.0"

    def test_failed_save_leaves_collection_unchanged(self, run, store, ledger, trip_fields):
        """Test that a storage failure is raised and nothing is recorded."""
        existing = run(ledger.create_trip(trip_fields))
        store.fail_writes = True
        with pytest.raises(StorageError):
            run(ledger.create_trip(trip_fields))
        store.fail_writes = False
        assert run(ledger.list_trips()) == [existing]

    def test_create_then_delete_restores_ids(self, run, ledger, trip_fields):
        """Test create followed by delete of the same id."""
        run(ledger.create_trip(trip_fields))
        before = {trip.id for trip in run(ledger.list_trips())}

        created = run(ledger.create_trip(trip_fields))
        remaining = run(ledger.delete_trip(created.id))

        assert {trip.id for trip in remaining} == before
        assert {trip.id for trip in run(ledger.list_trips())} == before


class TestUpdateTrip:
    """Tests for editing a trip."""

    def test_odometer_edit_recomputes_miles(self, run, ledger, trip_fields):
        """Test that changing an odometer reading updates miles."""
        trip = run(ledger.create_trip(trip_fields))
        updated = run(ledger.update_trip(trip.id, {"endOdometer": "12100"}))

        assert updated.id == trip.id
        assert updated.end_odometer == "12100"
        assert updated.miles == "100.0"
        assert run(ledger.get_trip(trip.id)) == updated

    def test_text_edit_keeps_miles(self, run, ledger, trip_fields):
        """Test that unrelated edits leave miles alone."""
        trip = run(ledger.create_trip(trip_fields))
        updated = run(ledger.update_trip(trip.id, TripUpdate(purpose="Site visit")))
        assert updated.purpose == "Site visit"
        assert updated.miles == trip.miles

    def test_edit_only_touches_target(self, run, ledger, trip_fields):
        """Test that other trips are unaffected and order is kept."""
        first = run(ledger.create_trip(trip_fields))
        second = run(ledger.create_trip(trip_fields))
        run(ledger.update_trip(first.id, {"vehicle": "Truck"}))

        trips = run(ledger.list_trips())
        assert [t.id for t in trips] == [first.id, second.id]
        assert trips[1] == second

    def test_edit_cannot_change_id(self, run, ledger, trip_fields):
        """Test that id is not an editable field."""
        trip = run(ledger.create_trip(trip_fields))
        with pytest.raises(ValidationError) as exc_info:
            run(ledger.update_trip(trip.id, {"id": "zzzzzzzz"}))
        assert exc_info.value.fields == ["id"]

    def test_unknown_id(self, run, ledger):
        """Test NotFoundError for an id that is not stored."""
        with pytest.raises(NotFoundError):
            run(ledger.update_trip("missing1", {"purpose": "x"}))
        with pytest.raises(NotFoundError):
            run(ledger.get_trip("missing1"))

    def test_clearing_required_field_rejected(self, run, store, ledger, trip_fields):
        """Test that an edit cannot blank out a required field."""
        trip = run(ledger.create_trip(trip_fields))
        writes = store.write_count
        with pytest.raises(ValidationError) as exc_info:
            run(ledger.update_trip(trip.id, {"destination": " "}))
        assert exc_info.value.fields == ["destination"]
        assert store.write_count == writes

    def test_edit_end_before_start_rejected(self, run, ledger, trip_fields):
        """Test timing is checked against the stored start time."""
        trip = run(ledger.create_trip(trip_fields))
        with pytest.raises(ValidationError) as exc_info:
            run(ledger.update_trip(trip.id, {"endDateTime": "2020-01-01T00:00:00"}))
        assert exc_info.value.fields == ["endDateTime"]

    def test_legacy_trip_with_gaps_still_editable(self, run, trip_fields):
        """Test that untouched missing fields do not block an edit."""
        store = InMemoryKeyValueStore({"trips": '[{"id": "old00001", "destination": "Depot"}]'})
        ledger = TripLedger(TripStore(store), clock=lambda: FIXED_NOW)
        updated = run(ledger.update_trip("old00001", {"purpose": "Restock"}))
        assert updated.purpose == "Restock"
        assert updated.destination == "Depot"

    def test_blank_trip_type_stored_as_business(self, run, ledger, trip_fields):
        """Test that clearing the trip type falls back to business."""
        trip_fields["tripType"] = "medical"
        trip = run(ledger.create_trip(trip_fields))
        updated = run(ledger.update_trip(trip.id, {"tripType": ""}))
        assert updated.trip_type == "business"
        assert run(ledger.get_trip(trip.id)).trip_type == "business"

    def test_unknown_stored_keys_survive_edit(self, run):
        """Test that keys written by other app versions are kept on edit."""
        store = InMemoryKeyValueStore(
            {"trips": '[{"id": "old00001", "destination": "Depot", "notes": "keep me"}]'}
        )
        ledger = TripLedger(TripStore(store), clock=lambda: FIXED_NOW)
        run(ledger.update_trip("old00001", {"purpose": "Restock"}))
        stored = json.loads(store.snapshot()["trips"])
        assert stored[0]["notes"] == "keep me"
        assert stored[0]["purpose"] == "Restock"

    def test_failed_save_leaves_trip_unchanged(self, run, store, ledger, trip_fields):
        """Test that a storage failure during edit keeps the old values."""
        trip = run(ledger.create_trip(trip_fields))
        store.fail_writes = True
        with pytest.raises(StorageError):
            run(ledger.update_trip(trip.id, {"purpose": "Changed"}))
        store.fail_writes = False
        assert run(ledger.get_trip(trip.id)) == trip


class TestSetToNow:
    """Tests for the 'set to now' shortcut."""

    def test_set_end_to_now(self, run, ledger, trip_fields):
        """Test endDateTime takes the clock time."""
        trip_fields.update(startDateTime="2024-03-15T08:00:00", endDateTime="2024-03-15T08:30:00")
        trip = run(ledger.create_trip(trip_fields))
        updated = run(ledger.set_to_now(trip.id, "endDateTime"))
        assert updated.end_date_time == FIXED_NOW.isoformat()
        assert updated.start_date_time == "2024-03-15T08:00:00"

    def test_set_start_after_end_rejected(self, run, ledger, trip_fields):
        """Test that moving the start past the end is refused."""
        trip_fields.update(startDateTime="2024-03-15T08:00:00", endDateTime="2024-03-15T08:30:00")
        trip = run(ledger.create_trip(trip_fields))
        with pytest.raises(ValidationError) as exc_info:
            run(ledger.set_to_now(trip.id, "startDateTime"))
        assert exc_info.value.fields == ["endDateTime"]

    def test_only_timestamp_fields(self, run, ledger, trip_fields):
        """Test that other fields cannot be set to now."""
        trip = run(ledger.create_trip(trip_fields))
        with pytest.raises(ValidationError):
            run(ledger.set_to_now(trip.id, "miles"))


class TestDeleteTrip:
    """Tests for deleting trips."""

    def test_delete_absent_id_is_not_an_error(self, run, store, ledger, trip_fields):
        """Test that deleting an unknown id changes nothing."""
        trip = run(ledger.create_trip(trip_fields))
        writes = store.write_count
        assert run(ledger.delete_trip("missing1")) == [trip]
        assert store.write_count == writes

    def test_delete_twice(self, run, ledger, trip_fields):
        """Test delete is idempotent."""
        trip = run(ledger.create_trip(trip_fields))
        assert run(ledger.delete_trip(trip.id)) == []
        assert run(ledger.delete_trip(trip.id)) == []


class TestReadViews:
    """Tests for history, summary, export and vehicle references."""

    def _log(self, run, ledger, trip_fields, **changes):
        fields = dict(trip_fields)
        fields.update(changes)
        return run(ledger.create_trip(fields))

    def test_history_groups_by_year(self, run, ledger, trip_fields):
        """Test the history view is grouped newest year first."""
        self._log(run, ledger, trip_fields,
                  startDateTime="2022-05-01T08:00:00", endDateTime="2022-05-01T09:00:00")
        self._log(run, ledger, trip_fields)

        groups = run(ledger.history())
        assert [group.year for group in groups] == ["2024", "2022"]
        assert groups[0].total_miles == Decimal("42.5")

    def test_summary_for_one_year(self, run, ledger, trip_fields):
        """Test the summary can be limited to a year."""
        self._log(run, ledger, trip_fields,
                  startDateTime="2022-05-01T08:00:00", endDateTime="2022-05-01T09:00:00",
                  vehicle="Truck")
        self._log(run, ledger, trip_fields)

        assert run(ledger.summary()).total_trips == 2
        summary = run(ledger.summary("2022"))
        assert summary.total_trips == 1
        assert summary.most_used_vehicle == "Truck"

    def test_rate_override_applies(self, run, ledger, trip_fields):
        """Test that a preferred mileage rate changes business deductions."""
        self._log(run, ledger, trip_fields, startOdometer="0", endOdometer="10")
        assert run(ledger.summary()).total_deduction == Decimal("7.00")

        ledger.apply_preferences(Preferences(mileage_rate=Decimal("1.00")))
        assert ledger.rates.business == Decimal("1.00")
        assert run(ledger.summary()).total_deduction == Decimal("10.00")

    def test_export_for_year(self, run, ledger, trip_fields):
        """Test the export document for one year."""
        self._log(run, ledger, trip_fields,
                  startDateTime="2022-05-01T08:00:00", endDateTime="2022-05-01T09:00:00")
        self._log(run, ledger, trip_fields)

        document = run(ledger.export_csv("2024"))
        assert document.filename == "trips-2024.csv"
        assert document.row_count == 1
        assert len(document.content.split("\n")) == 2

        everything = run(ledger.export_csv())
        assert everything.filename == "trips.csv"
        assert everything.row_count == 2

    def test_trips_referencing_vehicle(self, run, ledger, trip_fields):
        """Test finding trips that name a vehicle."""
        civic = self._log(run, ledger, trip_fields)
        self._log(run, ledger, trip_fields, vehicle="Truck")
        assert run(ledger.trips_referencing_vehicle("Honda Civic")) == [civic]
        assert run(ledger.trips_referencing_vehicle("honda civic")) == []


class TestAppComponents:
    """Tests for wiring the application together."""

    def test_components_share_store_and_preferences(self, run):
        """Test that stored preferences reach the ledger's rates."""
        store = InMemoryKeyValueStore({"mileageRate": "0.5", "vehicles": '["Civic"]'})
        components = run(create_app_components(store=store))

        assert components.ledger.rates.business == Decimal("0.5")
        assert components.ledger.rates.medical == Decimal("0.21")
        assert run(components.vehicles.load_all()) == ["Civic"]
        assert run(components.preferences_store.load()).mileage_rate == Decimal("0.5")
