"""
Trip Log - Source Package

A local-first mileage logbook: record trips, keep a vehicle list,
compute mileage deductions per trip category and export CSV records.

DESIGN PRINCIPLES:
1. One canonical trip schema, legacy records migrated on load
2. Whole-collection load/save, no partial writes
3. Validation reports every offending field at once
4. Calculations are pure and never raise on bad numbers
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Trip Log Team"
