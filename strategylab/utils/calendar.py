"""
Business-day calendar.

Counts weekend days and public holidays between two dates using the
`holidays` package. Unsupported countries fall back to the US calendar with
a warning.
"""

from datetime import date, timedelta
from typing import TYPE_CHECKING, Optional
import logging

import holidays

from strategylab.core.exceptions import CalendarLookupError, InvalidNumericInputError

if TYPE_CHECKING:
    from strategylab.engine.cache import EngineCache

logger = logging.getLogger(__name__)

DEFAULT_COUNTRY = "US"
WEEKEND = (5, 6)  # Saturday, Sunday


def _country_holidays(country: str, years):
    try:
        return holidays.country_holidays(country, years=years)
    except (NotImplementedError, KeyError) as e:
        raise CalendarLookupError(f"No holiday calendar for country '{country}'") from e


def get_nonbusiness_days(
    start_date: date,
    end_date: date,
    country: str = DEFAULT_COUNTRY,
    cache: Optional["EngineCache"] = None,
) -> int:
    """
    Number of weekend days and holidays in [start_date, end_date).

    Args:
        start_date: First day counted
        end_date: Day after the last day counted
        country: ISO country code of the holiday calendar
        cache: Optional cache for repeated lookups

    Returns:
        Count of non-business days

    Raises:
        InvalidNumericInputError: If end_date is not after start_date
    """
    if end_date <= start_date:
        raise InvalidNumericInputError("End date must be after start date!")

    key = (country, start_date, end_date)
    if cache is not None and key in cache.nonbusiness_days:
        return cache.nonbusiness_days[key]

    years = range(start_date.year, end_date.year + 1)
    try:
        calendar = _country_holidays(country, years)
    except CalendarLookupError as e:
        logger.warning(f"{e}, falling back to {DEFAULT_COUNTRY}")
        calendar = _country_holidays(DEFAULT_COUNTRY, years)

    n_days = (end_date - start_date).days
    nonbusiness_days = 0
    for i in range(n_days):
        current = start_date + timedelta(days=i)
        if current.weekday() in WEEKEND or current in calendar:
            nonbusiness_days += 1

    if cache is not None:
        cache.nonbusiness_days[key] = nonbusiness_days

    return nonbusiness_days


__all__ = ["get_nonbusiness_days"]
