from datetime import datetime, timezone

import pytest

from shadebot.config import Settings
from shadebot.services.business_hours import auto_escalation_threshold, is_business_hours, next_opening


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestBusinessHours:
    @pytest.mark.parametrize(
        "now,expected",
        [
            (_utc(2024, 6, 3, 15, 0), True),  # Monday 09:00 in Mexico City
            (_utc(2024, 6, 3, 23, 59), True),  # Monday 17:59
            (_utc(2024, 6, 4, 0, 0), False),  # Monday 18:00
            (_utc(2024, 6, 3, 14, 59), False),  # Monday 08:59
            (_utc(2024, 6, 1, 18, 0), False),  # Saturday noon
        ],
    )
    def test_is_business_hours(self, settings, now, expected):
        assert is_business_hours(now, settings) is expected

    @pytest.mark.parametrize(
        "now,expected",
        [
            (_utc(2024, 6, 4, 12, 0), "hoy a las 9:00"),  # Tuesday 06:00
            (_utc(2024, 6, 6, 1, 0), "mañana a las 9:00"),  # Wednesday 19:00
            (_utc(2024, 6, 8, 1, 0), "el lunes a las 9:00"),  # Friday 19:00
            (_utc(2024, 6, 1, 18, 0), "el lunes a las 9:00"),  # Saturday
            (_utc(2024, 6, 3, 2, 0), "mañana lunes a las 9:00"),  # Sunday 20:00
        ],
    )
    def test_next_opening(self, settings, now, expected):
        assert next_opening(now, settings) == expected

    def test_threshold_is_lower_while_advisors_are_online(self, settings):
        assert auto_escalation_threshold(_utc(2024, 6, 3, 15, 0), settings) == 1
        assert auto_escalation_threshold(_utc(2024, 6, 1, 18, 0), settings) == 2

    def test_hours_come_from_settings(self):
        settings = Settings(openai_api_key="test-key", business_hours_start=7, business_hours_end=20)
        assert is_business_hours(_utc(2024, 6, 3, 13, 30), settings) is True  # Monday 07:30
        assert next_opening(_utc(2024, 6, 3, 12, 0), settings) == "hoy a las 7:00"
