"""
Trip Record Migrations

Stored trips come from several generations of the app: early records have
no `id`, store timestamps under `startTime`/`endTime` in a locale format,
miss `tripType`, or hold numbers where strings are expected.

DESIGN DECISION: Normalization is an ordered list of small, pure steps
applied to every raw record on load. Each step only acts when its
trigger is present, so running the whole chain on an already-canonical
record returns it unchanged. The chain length is the schema version.
"""

from datetime import datetime
from typing import Any, Callable, Optional

from triplog.deductions.calculator import compute_miles
from triplog.models.trip import TripType, generate_trip_id


class MigrationContext:
    """
    Ids seen so far in one load.

    `reserved` holds every id present anywhere in the raw blob, so a
    freshly generated id never collides with a record further down.
    """

    def __init__(self, reserved: Optional[set[str]] = None):
        self.reserved: set[str] = set(reserved or ())
        self.seen: set[str] = set()

    def claim(self, trip_id: str) -> bool:
        """Mark an id as used. False if an earlier record already has it."""
        if trip_id in self.seen:
            return False
        self.seen.add(trip_id)
        return True

    def new_id(self) -> str:
        trip_id = generate_trip_id(self.seen | self.reserved)
        self.seen.add(trip_id)
        return trip_id


MigrationStep = Callable[[dict, MigrationContext], dict]

STRING_FIELDS = (
    "id",
    "start",
    "destination",
    "purpose",
    "vehicle",
    "tripType",
    "startOdometer",
    "endOdometer",
    "miles",
    "startDateTime",
    "endDateTime",
    "dateLogged",
)

# canonical name -> legacy name
LEGACY_TIMESTAMP_FIELDS = {
    "startDateTime": "startTime",
    "endDateTime": "endTime",
}

# Locale formats older app versions wrote before switching to ISO
LEGACY_TIMESTAMP_FORMATS = (
    "%m/%d/%Y, %I:%M:%S %p",
    "%m/%d/%Y, %H:%M:%S",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M",
)


def parse_legacy_timestamp(value: str) -> str:
    """
    Convert a legacy timestamp to ISO format.

    Values that are already ISO pass through unchanged; values in none of
    the known formats are returned verbatim so nothing is lost.
    """
    text = value.replace("\u202f", " ").strip()
    try:
        datetime.fromisoformat(text)
        return value
    except ValueError:
        pass

    for fmt in LEGACY_TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt).isoformat()
        except ValueError:
            continue
    return value


def _stringify_fields(record: dict, context: MigrationContext) -> dict:
    """Numbers and other scalars become strings; nulls are dropped."""
    result = {}
    for key, value in record.items():
        if key in STRING_FIELDS:
            if value is None:
                continue
            if not isinstance(value, str):
                value = _to_text(value)
        result[key] = value
    return result


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _backfill_id(record: dict, context: MigrationContext) -> dict:
    """Give id-less records (and repeated ids) a fresh unique id."""
    trip_id = record.get("id")
    if trip_id and context.claim(trip_id):
        return record

    new_id = context.new_id()
    return {"id": new_id, **{k: v for k, v in record.items() if k != "id"}}


def _rename_legacy_timestamps(record: dict, context: MigrationContext) -> dict:
    result = dict(record)
    for canonical, legacy in LEGACY_TIMESTAMP_FIELDS.items():
        if legacy not in result:
            continue
        legacy_value = result.pop(legacy)
        if not result.get(canonical) and isinstance(legacy_value, str) and legacy_value:
            result[canonical] = parse_legacy_timestamp(legacy_value)
    return result


def _backfill_trip_type(record: dict, context: MigrationContext) -> dict:
    if record.get("tripType"):
        return record
    return {**record, "tripType": TripType.BUSINESS.value}


def _backfill_miles(record: dict, context: MigrationContext) -> dict:
    if record.get("miles"):
        return record
    miles = compute_miles(record.get("startOdometer"), record.get("endOdometer"))
    if miles is None:
        return record
    return {**record, "miles": miles}


MIGRATIONS: tuple[MigrationStep, ...] = (
    _stringify_fields,
    _backfill_id,
    _rename_legacy_timestamps,
    _backfill_trip_type,
    _backfill_miles,
)

CURRENT_SCHEMA_VERSION = len(MIGRATIONS)


def migrate_trip(record: dict, context: MigrationContext) -> dict:
    """Apply every step to one raw record. `context` records the ids claimed."""
    for step in MIGRATIONS:
        record = step(record, context)
    return record


def migrate_trips(raw: Any) -> tuple[list[dict], int]:
    """
    Normalize a decoded trip blob.

    Non-list blobs yield no trips; non-object entries are dropped.

    Returns: (canonical_records, number_of_records_changed_or_dropped)
    """
    if not isinstance(raw, list):
        return [], 0

    context = MigrationContext(
        {entry["id"] for entry in raw if isinstance(entry, dict) and isinstance(entry.get("id"), str)}
    )
    migrated = []
    changed = 0
    for entry in raw:
        if not isinstance(entry, dict):
            changed += 1
            continue
        record = migrate_trip(entry, context)
        if record != entry:
            changed += 1
        migrated.append(record)

    return migrated, changed
