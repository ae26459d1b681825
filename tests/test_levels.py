"""Level calculator tests."""

from __future__ import annotations

import pytest

from growshare.models import levels


@pytest.mark.parametrize(
    ("points", "expected"),
    [(0, 1), (99, 1), (100, 2), (399, 2), (400, 3), (899, 3), (900, 4), (10000, 11)],
)
def test_current_level_thresholds(points, expected):
    assert levels.current_level(points) == expected


def test_negative_points_count_as_zero():
    assert levels.current_level(-50) == 1
    assert levels.progress_percent(-50) == 0.0


def test_next_level_threshold_is_quadratic():
    assert [levels.points_for_next_level(level) for level in range(1, 5)] == [100, 400, 900, 1600]


def test_threshold_rejects_level_zero():
    with pytest.raises(ValueError):
        levels.threshold(0)


def test_progress_through_current_level():
    assert levels.progress_percent(0) == 0.0
    assert levels.progress_percent(50) == 50.0
    # level 2 spans 100..400
    assert levels.progress_percent(250) == 50.0
    assert levels.progress_percent(100) == 0.0


def test_progress_is_monotonic_within_level():
    values = [levels.progress_percent(points) for points in range(400, 900, 25)]
    assert values == sorted(values)
    assert all(0.0 <= value <= 100.0 for value in values)


def test_level_titles():
    assert levels.level_title(1) == "Seedling"
    assert levels.level_title(10) == "Agricultural Legend"
    assert levels.level_title(42) == "Agricultural Legend"


def test_next_threshold_always_above_total():
    previous = 1
    for points in range(0, 5000, 7):
        level = levels.current_level(points)
        assert level >= previous
        assert levels.points_for_next_level(level) > points
        assert levels.threshold(level) <= points
        previous = level
