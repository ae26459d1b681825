"""Level progression derived from cumulative points.

Level ``L`` starts at ``(L - 1) ** 2 * 100`` points, so thresholds are spaced
quadratically: 0, 100, 400, 900, 1600, ...
"""

from __future__ import annotations

import math

POINTS_PER_LEVEL_UNIT = 100

LEVEL_TITLES = {
    1: "Seedling",
    2: "Sprout",
    3: "Growing",
    4: "Blooming",
    5: "Thriving",
    6: "Harvester",
    7: "Cultivator",
    8: "Steward",
    9: "Master Grower",
    10: "Agricultural Legend",
}


def threshold(level: int) -> int:
    """Points at which ``level`` begins."""

    if level < 1:
        raise ValueError("Levels start at 1.")
    return (level - 1) ** 2 * POINTS_PER_LEVEL_UNIT


def current_level(points: int) -> int:
    """Return ``floor(sqrt(points / 100)) + 1``; negative totals count as zero."""

    points = max(int(points), 0)
    return math.isqrt(points // POINTS_PER_LEVEL_UNIT) + 1


def points_for_next_level(level: int) -> int:
    return threshold(level + 1)


def progress_percent(points: int) -> float:
    """Progress through the current level, clamped to [0, 100]."""

    points = max(int(points), 0)
    level = current_level(points)
    floor_points = threshold(level)
    span = points_for_next_level(level) - floor_points
    fraction = (points - floor_points) / span * 100
    return round(min(max(fraction, 0.0), 100.0), 2)


def level_title(level: int) -> str:
    return LEVEL_TITLES.get(level, LEVEL_TITLES[max(LEVEL_TITLES)])
