"""
Tests for the Business-Day Calendar
"""

import logging
from datetime import date

import pytest

from strategylab.core.exceptions import InvalidNumericInputError
from strategylab.engine.cache import EngineCache
from strategylab.utils.calendar import get_nonbusiness_days


class TestNonBusinessDays:
    def test_weekend_only(self):
        # Monday to the following Monday
        assert get_nonbusiness_days(date(2023, 3, 6), date(2023, 3, 13)) == 2

    def test_end_date_excluded(self):
        # Friday to Saturday: the Saturday itself is not counted
        assert get_nonbusiness_days(date(2023, 3, 10), date(2023, 3, 11)) == 0

    def test_holiday(self):
        assert get_nonbusiness_days(date(2023, 12, 25), date(2023, 12, 26)) == 1

    def test_weekends_and_mlk_day(self):
        assert get_nonbusiness_days(date(2023, 1, 16), date(2023, 2, 17)) == 9

    def test_country_calendar(self):
        # Boxing Day is a UK holiday but not a US one
        us = get_nonbusiness_days(date(2023, 12, 26), date(2023, 12, 27), "US")
        uk = get_nonbusiness_days(date(2023, 12, 26), date(2023, 12, 27), "GB")
        assert us == 0
        assert uk == 1

    def test_unknown_country_falls_back_to_us(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = get_nonbusiness_days(date(2023, 1, 16), date(2023, 2, 17), "XX")
        assert result == 9
        assert "falling back to US" in caplog.text

    @pytest.mark.parametrize("end", [date(2023, 3, 6), date(2023, 3, 1)])
    def test_end_not_after_start(self, end):
        with pytest.raises(InvalidNumericInputError, match="End date must be after start date!"):
            get_nonbusiness_days(date(2023, 3, 6), end)

    def test_cached(self):
        cache = EngineCache()
        get_nonbusiness_days(date(2023, 1, 16), date(2023, 2, 17), cache=cache)
        assert cache.nonbusiness_days == {("US", date(2023, 1, 16), date(2023, 2, 17)): 9}
        assert len(cache) == 1
