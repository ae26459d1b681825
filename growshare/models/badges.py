"""Badge catalogue for the gamification layer.

A badge is earned either by accumulating ``count`` points events of one
category or by reaching a level. Earning a badge pays its ``points`` through
the ledger like any other event.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

TIER_ORDER = ("BRONZE", "SILVER", "GOLD", "PLATINUM")


@dataclass(frozen=True)
class Badge:
    code: str
    name: str
    description: str
    category: str
    tier: str
    points: int
    event_category: Optional[str] = None
    count: int = 1
    level: Optional[int] = None

    def is_earned_by(self, event_counts: dict[str, int], level: int) -> bool:
        if self.level is not None:
            return level >= self.level
        return event_counts.get(self.event_category, 0) >= self.count

    def criteria(self) -> dict:
        if self.level is not None:
            return {"type": "LEVEL", "level": self.level}
        return {"type": self.event_category, "count": self.count}

    def to_dict(self) -> dict:
        return {
            "id": self.code,
            "name": self.name,
            "description": self.description,
            "category": self.category.lower(),
            "tier": self.tier.lower(),
            "points": self.points,
            "criteria": self.criteria(),
        }


BADGES = (
    Badge(
        code="FIRST_STEPS",
        name="First Steps",
        description="Booked your first plot or tool",
        category="MILESTONE",
        tier="BRONZE",
        points=100,
        event_category="BOOKING_CREATED",
    ),
    Badge(
        code="LAND_SHARER",
        name="Land Sharer",
        description="Listed your first plot for rent",
        category="MILESTONE",
        tier="BRONZE",
        points=50,
        event_category="PLOT_LISTED",
    ),
    Badge(
        code="REGULAR_RENTER",
        name="Regular Renter",
        description="Made ten bookings",
        category="MILESTONE",
        tier="SILVER",
        points=250,
        event_category="BOOKING_CREATED",
        count=10,
    ),
    Badge(
        code="GOOD_HOST",
        name="Good Host",
        description="Approved five booking requests",
        category="COMMUNITY",
        tier="SILVER",
        points=200,
        event_category="BOOKING_APPROVED",
        count=5,
    ),
    Badge(
        code="TRUSTED_REVIEWER",
        name="Trusted Reviewer",
        description="Reviewed five completed rentals",
        category="COMMUNITY",
        tier="SILVER",
        points=150,
        event_category="REVIEW_CREATED",
        count=5,
    ),
    Badge(
        code="NEIGHBORHOOD_FAVORITE",
        name="Neighborhood Favorite",
        description="Gained ten followers",
        category="COMMUNITY",
        tier="GOLD",
        points=300,
        event_category="NEW_FOLLOWER",
        count=10,
    ),
    Badge(
        code="SEASONED_GROWER",
        name="Seasoned Grower",
        description="Reached level 5",
        category="MILESTONE",
        tier="GOLD",
        points=500,
        level=5,
    ),
)

BADGES_BY_CODE = {badge.code: badge for badge in BADGES}


def catalogue() -> list[Badge]:
    """Badges ordered by tier, then name."""

    return sorted(BADGES, key=lambda badge: (TIER_ORDER.index(badge.tier), badge.name))
