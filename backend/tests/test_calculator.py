from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import InvalidArgumentError
from app.services.calculator import duration_minutes, minutes_to_hours, session_cost

START = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


def test_duration_truncates_partial_minutes():
    assert duration_minutes(START, START + timedelta(minutes=89, seconds=59)) == 89
    assert duration_minutes(START, START + timedelta(seconds=30)) == 0


def test_open_interval_is_measured_against_now():
    assert duration_minutes(START, None, now=START + timedelta(hours=2)) == 120


def test_naive_timestamps_are_treated_as_utc():
    naive_start = START.replace(tzinfo=None)
    assert duration_minutes(naive_start, START + timedelta(minutes=15)) == 15


def test_negative_interval_is_rejected():
    with pytest.raises(InvalidArgumentError):
        duration_minutes(START, START - timedelta(minutes=1))


def test_cost_without_rate_is_zero():
    assert session_cost(90) == 0.0
    assert session_cost(90, None) == 0.0


def test_cost_uses_fractional_hours():
    assert session_cost(90, 50.0) == pytest.approx(75.0)
    assert session_cost(20, 30.0) == pytest.approx(10.0)
    assert minutes_to_hours(45) == pytest.approx(0.75)
