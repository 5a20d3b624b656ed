"""
Reports Package

Deterministic aggregations over stored transactions (monthly series and
category breakdowns).
"""

from moneymate.reports.generator import (
    ReportGenerator,
    monthly_series,
    spending_breakdown,
)

__all__ = [
    "ReportGenerator",
    "monthly_series",
    "spending_breakdown",
]
