"""
CSV Export Formatter

Renders a trip collection as delimited text: a header row, then one row
per trip, every field double-quoted, comma-separated, "\\n" between lines.

The formatter does no I/O. Writing the text to a file or handing it to a
share sheet is the caller's job.
"""

import csv
import io
from typing import Callable, Iterable, NamedTuple, Optional, Sequence

from triplog.deductions.calculator import deduction_for, format_amount, trip_year
from triplog.models.trip import ExportDocument, RateTable, Trip


class ExportColumn(NamedTuple):
    """A header and how to read its value from a trip."""
    header: str
    select: Callable[[Trip, RateTable], str]


EXPORT_COLUMNS: tuple[ExportColumn, ...] = (
    ExportColumn("Start", lambda trip, rates: trip.start),
    ExportColumn("Destination", lambda trip, rates: trip.destination),
    ExportColumn("Purpose", lambda trip, rates: trip.purpose),
    ExportColumn("Vehicle", lambda trip, rates: trip.vehicle),
    ExportColumn("Start Odometer", lambda trip, rates: trip.start_odometer),
    ExportColumn("End Odometer", lambda trip, rates: trip.end_odometer),
    ExportColumn("Miles", lambda trip, rates: trip.miles),
    ExportColumn("Start Time", lambda trip, rates: trip.start_date_time),
    ExportColumn("End Time", lambda trip, rates: trip.end_date_time),
    ExportColumn("Trip Type", lambda trip, rates: trip.category.value),
    ExportColumn("Deduction", lambda trip, rates: format_amount(deduction_for(trip, rates))),
)


def to_delimited_text(
    trips: Iterable[Trip],
    rates: RateTable,
    columns: Sequence[ExportColumn] = EXPORT_COLUMNS,
    year: Optional[str] = None,
) -> str:
    """
    Render trips as CSV text.

    Args:
        trips: Trips in the order they should appear
        rates: Rate table used for the Deduction column
        columns: Column selectors, in output order
        year: If given, only trips starting in that year are included

    Returns:
        Header line plus one line per trip, no trailing newline
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([column.header for column in columns])
    for trip in trips:
        if year is not None and trip_year(trip) != year:
            continue
        writer.writerow([column.select(trip, rates) for column in columns])

    # Every line ends in a closing quote, so the last "\n" is always the terminator
    return buffer.getvalue()[:-1]


def parse_delimited_text(text: str) -> list[list[str]]:
    """Read exported text back into rows (header included)."""
    return list(csv.reader(io.StringIO(text)))


def export_filename(year: Optional[str] = None) -> str:
    return f"trips-{year}.csv" if year else "trips.csv"


def build_export(
    trips: Sequence[Trip],
    rates: RateTable,
    year: Optional[str] = None,
) -> ExportDocument:
    """Render an export together with its suggested filename and row count."""
    content = to_delimited_text(trips, rates, year=year)
    row_count = sum(1 for trip in trips if year is None or trip_year(trip) == year)
    return ExportDocument(
        filename=export_filename(year),
        content=content,
        row_count=row_count,
        year=year,
    )
