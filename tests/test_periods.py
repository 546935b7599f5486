"""Unit tests for half-year certificate periods."""

from datetime import date, datetime, timezone

import pytest

from app.exceptions import ValidationError
from app.services.certificate_service import attendee_display_name, generate_certificate_code
from app.services.periods import period_bounds, period_dates, period_display, period_for_date


class TestPeriods:
    def test_first_half_dates(self):
        assert period_dates("first_half", 2026) == (date(2026, 1, 1), date(2026, 7, 1))

    def test_second_half_ends_at_new_year(self):
        assert period_dates("second_half", 2026) == (date(2026, 7, 1), date(2027, 1, 1))

    def test_bounds_are_utc(self):
        start, end = period_bounds("first_half", 2026)
        assert start == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert end == datetime(2026, 7, 1, tzinfo=timezone.utc)

    def test_display(self):
        assert period_display("second_half", 2025) == "July - December 2025"

    @pytest.mark.parametrize(
        "day,expected",
        [
            (date(2026, 1, 1), ("first_half", 2026)),
            (date(2026, 6, 30), ("first_half", 2026)),
            (date(2026, 7, 1), ("second_half", 2026)),
            (date(2026, 12, 31), ("second_half", 2026)),
        ],
    )
    def test_period_for_run_date(self, day, expected):
        assert period_for_date(day) == expected

    def test_unknown_period_rejected(self):
        with pytest.raises(ValidationError):
            period_dates("q3", 2026)


class TestCertificateCodes:
    def test_seminar_code_carries_period(self):
        code = generate_certificate_code("second_half", 2026)
        assert code.startswith("CE-SEM-2026-H2-")
        assert len(code.rsplit("-", 1)[1]) == 8

    def test_course_code(self):
        assert generate_certificate_code().startswith("CE-CRS-")

    def test_codes_are_unique(self):
        assert len({generate_certificate_code("first_half", 2026) for _ in range(50)}) == 50

    def test_display_name_falls_back_to_email(self):
        assert attendee_display_name("Grace", "Hopper") == "Grace Hopper"
        assert attendee_display_name(None, None, "g@navy.test") == "g@navy.test"
        assert attendee_display_name(None, None) == "Unknown"
