"""
Mileage Deduction Calculator

Pure functions over (trips, rate table). Nothing here touches storage.

GUARANTEES:
- A miles value that does not parse as a finite, in-range number counts
  as 0; NaN, infinity or "1e30" never reaches a displayed total
- Money is computed with Decimal and only rounded when rendered
- `group_by_year` partitions its input: every trip lands in exactly one bucket
"""

import re
from collections import Counter
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Iterable, Optional, Union

from triplog.models.trip import (
    RateTable,
    Trip,
    TripSummary,
    TripType,
    YearGroup,
)


TWO_PLACES = Decimal("0.01")
ONE_PLACE = Decimal("0.1")
ZERO = Decimal("0")

UNKNOWN_YEAR = "Unknown"

# Numbers outside these bounds do not parse: at most 15 digits before the
# point and 10 after
MAX_ADJUSTED_EXPONENT = 14
MIN_EXPONENT = -10

_YEAR_PATTERN = re.compile(r"(?<!\d)(\d{4})(?!\d)")


# =============================================================================
# PARSING
# =============================================================================

def _finite_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        number = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    if not number.is_finite():
        return None
    return number


def _in_range(number: Decimal) -> bool:
    if number.is_zero():
        return True
    return (
        number.adjusted() <= MAX_ADJUSTED_EXPONENT
        and number.as_tuple().exponent >= MIN_EXPONENT
    )


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse user-entered numeric text.

    Returns None for blanks, garbage, NaN, infinities and numbers
    outside the supported range (e.g. "1e30").
    """
    number = _finite_decimal(value)
    if number is None or not _in_range(number):
        return None
    return number


def is_out_of_range(value: Any) -> bool:
    """True for a well-formed finite number that is too large or too precise."""
    number = _finite_decimal(value)
    return number is not None and not _in_range(number)


def _quantize(value: Decimal, exponent: Decimal, rounding: Optional[str] = None) -> Decimal:
    """Quantize with enough precision for `value`, however large."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() - exponent.as_tuple().exponent + 2)
        if rounding is not None:
            ctx.rounding = rounding
        return value.quantize(exponent)


def parse_miles(value: Any) -> Decimal:
    """Miles as a number, 0 when the stored text does not parse."""
    number = parse_decimal(value)
    return number if number is not None else ZERO


def format_distance(value: Decimal) -> str:
    """
    Render a distance with at least one decimal place.

    Extra precision the user typed is kept, so the rendered value
    parses back to exactly end - start.
    """
    if value.as_tuple().exponent >= -1:
        value = _quantize(value, ONE_PLACE)
    return format(value, "f")


def compute_miles(start_odometer: Any, end_odometer: Any) -> Optional[str]:
    """endOdometer - startOdometer as a decimal string, None if either is unparseable."""
    start = parse_decimal(start_odometer)
    end = parse_decimal(end_odometer)
    if start is None or end is None:
        return None
    return format_distance(end - start)


# =============================================================================
# DEDUCTIONS
# =============================================================================

def rate_for(trip_type: Union[TripType, str, None], rates: RateTable) -> Decimal:
    """Rate for a category; unknown or absent categories use the business rate."""
    category = trip_type if isinstance(trip_type, TripType) else TripType.parse(trip_type)
    return rates.rate_for(category)


def deduction_for(trip: Trip, rates: RateTable) -> Decimal:
    return parse_miles(trip.miles) * rate_for(trip.trip_type, rates)


def total_deduction(trips: Iterable[Trip], rates: RateTable) -> Decimal:
    return sum((deduction_for(trip, rates) for trip in trips), ZERO)


def total_miles(trips: Iterable[Trip]) -> Decimal:
    return sum((parse_miles(trip.miles) for trip in trips), ZERO)


# =============================================================================
# YEAR GROUPING
# =============================================================================

def trip_year(trip: Trip) -> str:
    """
    Four-digit year the trip started in.

    ISO timestamps are parsed; anything else falls back to the first
    standalone four-digit number, then to UNKNOWN_YEAR.
    """
    text = (trip.start_date_time or "").strip()
    if text:
        try:
            return f"{datetime.fromisoformat(text).year:04d}"
        except ValueError:
            match = _YEAR_PATTERN.search(text)
            if match:
                return match.group(1)
    return UNKNOWN_YEAR


def group_by_year(trips: Iterable[Trip]) -> dict[str, list[Trip]]:
    """
    Bucket trips by start year.

    Keys are ordered newest year first; within a year the input order is kept.
    """
    buckets: dict[str, list[Trip]] = {}
    for trip in trips:
        buckets.setdefault(trip_year(trip), []).append(trip)
    ordered = sorted((year for year in buckets if year != UNKNOWN_YEAR), reverse=True)
    if UNKNOWN_YEAR in buckets:
        ordered.append(UNKNOWN_YEAR)
    return {year: buckets[year] for year in ordered}


def years(trips: Iterable[Trip]) -> list[str]:
    return list(group_by_year(trips))


def trips_for_year(trips: Iterable[Trip], year: str) -> list[Trip]:
    return [trip for trip in trips if trip_year(trip) == year]


def year_groups(trips: Iterable[Trip], rates: RateTable) -> list[YearGroup]:
    """History view: one group per year with its totals."""
    return [
        YearGroup(
            year=year,
            trips=bucket,
            total_miles=total_miles(bucket),
            total_deduction=total_deduction(bucket, rates),
        )
        for year, bucket in group_by_year(trips).items()
    ]


# =============================================================================
# SUMMARY
# =============================================================================

def _most_common(values: Iterable[str]) -> str:
    counts = Counter(value for value in values if value and value.strip())
    if not counts:
        return "-"
    # Counter keeps first-seen order among equal counts
    return counts.most_common(1)[0][0]


def summarize(trips: Iterable[Trip], rates: RateTable) -> TripSummary:
    trips = list(trips)

    miles_by_category: dict[TripType, Decimal] = {}
    deduction_by_category: dict[TripType, Decimal] = {}
    for trip in trips:
        category = trip.category
        miles_by_category[category] = miles_by_category.get(category, ZERO) + parse_miles(trip.miles)
        deduction_by_category[category] = (
            deduction_by_category.get(category, ZERO) + deduction_for(trip, rates)
        )

    return TripSummary(
        total_trips=len(trips),
        total_miles=total_miles(trips),
        total_deduction=total_deduction(trips, rates),
        most_used_vehicle=_most_common(trip.vehicle for trip in trips),
        top_purpose=_most_common(trip.purpose for trip in trips),
        miles_by_category=miles_by_category,
        deduction_by_category=deduction_by_category,
    )


# =============================================================================
# FORMATTING
# =============================================================================

def format_currency(amount: Decimal, prefix: str = "$") -> str:
    """Two decimal places, literal prefix, sign in front: -$1.50."""
    rounded = _quantize(amount, TWO_PLACES, ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{prefix}{abs(rounded):.2f}"


def format_amount(amount: Decimal) -> str:
    """Two decimal places, no prefix (used in exports)."""
    return f"{_quantize(amount, TWO_PLACES, ROUND_HALF_UP):.2f}"


def format_miles(value: Decimal) -> str:
    return f"{_quantize(value, ONE_PLACE, ROUND_HALF_UP):.1f}"
