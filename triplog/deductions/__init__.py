"""Deduction calculation package."""

from triplog.deductions.calculator import (
    UNKNOWN_YEAR,
    compute_miles,
    deduction_for,
    format_amount,
    format_currency,
    format_miles,
    group_by_year,
    is_out_of_range,
    parse_decimal,
    parse_miles,
    rate_for,
    summarize,
    total_deduction,
    total_miles,
    trip_year,
    trips_for_year,
    year_groups,
    years,
)

__all__ = [
    "UNKNOWN_YEAR",
    "compute_miles",
    "deduction_for",
    "format_amount",
    "format_currency",
    "format_miles",
    "group_by_year",
    "is_out_of_range",
    "parse_decimal",
    "parse_miles",
    "rate_for",
    "summarize",
    "total_deduction",
    "total_miles",
    "trip_year",
    "trips_for_year",
    "year_groups",
    "years",
]
