"""
core/fields.py — Field rules shared by the write paths
"""

from datetime import date
from typing import Any, Optional

from config import settings
from core.errors import ValidationError

QUARTERS = ("Q1", "Q2", "Q3", "Q4")


def validate_quarter(quarter: Any) -> str:
    if quarter not in QUARTERS:
        raise ValidationError(f"Invalid quarter '{quarter}'. Must be one of: {', '.join(QUARTERS)}")
    return quarter


def validate_year(year: Any, today: Optional[date] = None) -> int:
    """Four-digit year between MIN_RECORD_YEAR and next year inclusive."""
    today = today or date.today()
    if isinstance(year, bool) or not isinstance(year, int):
        raise ValidationError(f"Year must be an integer, got '{year}'")
    if not settings.MIN_RECORD_YEAR <= year <= today.year + 1:
        raise ValidationError(
            f"Year {year} is out of range ({settings.MIN_RECORD_YEAR}-{today.year + 1})"
        )
    return year


def calculate_age(dob: date, today: Optional[date] = None) -> int:
    """Whole years between dob and today."""
    today = today or date.today()
    years = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        years -= 1
    return years


def normalize_amount(value: Any) -> Optional[float]:
    """Empty-string amounts are stored as NULL."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Amount must be numeric, got '{value}'")
