"""Gamification ledger: append-only points events plus the cached account total."""

from __future__ import annotations

import json
import logging
from typing import Optional

from ..errors import NotFound, ValidationError
from ..models import badges, levels
from ..models.entities import Activity, EarnedBadge, PointsEvent
from .db import execute, get_db, parse_timestamp, query_all, query_one, transaction

logger = logging.getLogger(__name__)

BOOKING_CREATED = "BOOKING_CREATED"
BOOKING_APPROVED = "BOOKING_APPROVED"
PLOT_LISTED = "PLOT_LISTED"
REVIEW_CREATED = "REVIEW_CREATED"
NEW_FOLLOWER = "NEW_FOLLOWER"
LEVEL_UP = "LEVEL_UP"
BADGE_EARNED = "BADGE_EARNED"

CATEGORY_POINTS = {
    BOOKING_CREATED: 25,
    BOOKING_APPROVED: 15,
    PLOT_LISTED: 50,
    REVIEW_CREATED: 10,
    NEW_FOLLOWER: 5,
}


def _row_to_event(row) -> PointsEvent:
    return PointsEvent(
        event_id=row["event_id"],
        account_id=row["account_id"],
        category=row["category"],
        points=row["points"],
        title=row["title"],
        metadata=json.loads(row["metadata"]) if row["metadata"] else None,
        created_at=parse_timestamp(row["created_at"]),
    )


def _row_to_activity(row) -> Activity:
    return Activity(
        activity_id=row["activity_id"],
        account_id=row["account_id"],
        type=row["type"],
        title=row["title"],
        description=row["description"],
        points=row["points"],
        created_at=parse_timestamp(row["created_at"]),
    )


def award_points(
    account_id: int,
    category: str,
    points: int,
    title: str,
    metadata: Optional[dict] = None,
    description: Optional[str] = None,
    connection=None,
) -> PointsEvent:
    """Append a points event and bump the account total in one transaction.

    The stored level is recalculated from the new total and a feed entry is
    written for the event, plus a level-up entry when a threshold is crossed.
    Badges the account now qualifies for are granted in the same transaction,
    each paying its points as a ``BADGE_EARNED`` event.
    """

    if not category:
        raise ValidationError("A points category is required.")
    db = connection or get_db()
    with transaction(db):
        account = query_one(
            db,
            "SELECT total_points, level FROM accounts WHERE account_id = ?",
            (account_id,),
        )
        if account is None:
            raise NotFound(f"Account {account_id} not found.")

        cursor = execute(
            db,
            """
            INSERT INTO points_events (account_id, category, points, title, metadata)
            VALUES (?, ?, ?, ?, ?)
            """,
            (account_id, category, int(points), title, json.dumps(metadata) if metadata else None),
        )
        event_id = cursor.lastrowid
        new_total = account["total_points"] + int(points)
        new_level = levels.current_level(new_total)
        execute(
            db,
            "UPDATE accounts SET total_points = ?, level = ? WHERE account_id = ?",
            (new_total, new_level, account_id),
        )
        record_activity(account_id, category, title, description, points=int(points), connection=db)
        if new_level > account["level"]:
            record_activity(
                account_id,
                LEVEL_UP,
                f"Reached level {new_level}",
                levels.level_title(new_level),
                connection=db,
            )
            logger.info("Account %s reached level %s", account_id, new_level)
        _grant_badges(db, account_id, new_level)

        row = query_one(db, "SELECT * FROM points_events WHERE event_id = ?", (event_id,))

    logger.info("Awarded %s points (%s) to account %s", points, category, account_id)
    return _row_to_event(row)


def _grant_badges(db, account_id: int, level: int) -> None:
    counts = {
        row["category"]: row["total"]
        for row in query_all(
            db,
            "SELECT category, COUNT(*) AS total FROM points_events WHERE account_id = ? GROUP BY category",
            (account_id,),
        )
    }
    for badge in badges.BADGES:
        if not badge.is_earned_by(counts, level):
            continue
        # Badges already held, including ones a nested award just granted, are ignored.
        inserted = execute(
            db,
            "INSERT OR IGNORE INTO account_badges (account_id, badge_code) VALUES (?, ?)",
            (account_id, badge.code),
        ).rowcount
        if not inserted:
            continue
        logger.info("Account %s earned badge %s", account_id, badge.code)
        award_points(
            account_id,
            BADGE_EARNED,
            badge.points,
            f"Earned {badge.name} badge",
            metadata={"badge": badge.code},
            description=badge.description,
            connection=db,
        )


def award_for(account_id: int, category: str, title: str, **kwargs) -> PointsEvent:
    """Award the standard point value for ``category``."""

    return award_points(account_id, category, CATEGORY_POINTS[category], title, **kwargs)


def record_activity(
    account_id: int,
    activity_type: str,
    title: str,
    description: Optional[str] = None,
    points: int = 0,
    connection=None,
) -> None:
    """Insert a user-visible feed entry."""

    db = connection or get_db()
    execute(
        db,
        """
        INSERT INTO activities (account_id, type, title, description, points)
        VALUES (?, ?, ?, ?, ?)
        """,
        (account_id, activity_type, title, description, points),
    )


def list_events(account_id: int, limit: Optional[int] = None) -> list[PointsEvent]:
    """Return an account's ledger entries, newest first."""

    db = get_db()
    query = "SELECT * FROM points_events WHERE account_id = ? ORDER BY event_id DESC"
    params: list = [account_id]
    if limit:
        query += " LIMIT ?"
        params.append(limit)
    return [_row_to_event(row) for row in query_all(db, query, params)]


def total_from_events(account_id: int, connection=None) -> int:
    """Recompute an account total from the ledger."""

    db = connection or get_db()
    row = query_one(
        db,
        "SELECT COALESCE(SUM(points), 0) AS total FROM points_events WHERE account_id = ?",
        (account_id,),
    )
    return int(row["total"])


def leaderboard(limit: int = 20) -> list[dict]:
    """Top active accounts by cached point total."""

    db = get_db()
    rows = query_all(
        db,
        """
        SELECT account_id, username, first_name, last_name, total_points, level
        FROM accounts
        WHERE is_active = 1
        ORDER BY total_points DESC, account_id ASC
        LIMIT ?
        """,
        (limit,),
    )
    return [
        {
            "rank": index,
            "accountId": row["account_id"],
            "username": row["username"],
            "displayName": f"{row['first_name']} {row['last_name']}".strip() or row["username"],
            "totalPoints": row["total_points"],
            "level": row["level"],
            "levelTitle": levels.level_title(row["level"]),
        }
        for index, row in enumerate(rows, start=1)
    ]


def list_activities(
    limit: int = 20,
    offset: int = 0,
    activity_type: Optional[str] = None,
    account_id: Optional[int] = None,
) -> list[Activity]:
    """Recent feed entries, optionally filtered by type or account."""

    db = get_db()
    query = "SELECT * FROM activities WHERE 1 = 1"
    params: list = []
    if activity_type:
        query += " AND type = ?"
        params.append(activity_type)
    if account_id:
        query += " AND account_id = ?"
        params.append(account_id)
    query += " ORDER BY activity_id DESC LIMIT ? OFFSET ?"
    params.extend([limit, offset])
    return [_row_to_activity(row) for row in query_all(db, query, params)]


def list_badges(account_id: int) -> list[EarnedBadge]:
    """Badges held by an account, most recently earned first."""

    db = get_db()
    rows = query_all(
        db,
        """
        SELECT badge_code, earned_at FROM account_badges
        WHERE account_id = ?
        ORDER BY earned_at DESC, rowid DESC
        """,
        (account_id,),
    )
    return [
        EarnedBadge(badge=badges.BADGES_BY_CODE[row["badge_code"]], earned_at=parse_timestamp(row["earned_at"]))
        for row in rows
        if row["badge_code"] in badges.BADGES_BY_CODE
    ]


def achievements(account_id: int) -> dict:
    """Earned and still-available badges with summary stats."""

    db = get_db()
    account = query_one(db, "SELECT total_points, level FROM accounts WHERE account_id = ?", (account_id,))
    if account is None:
        raise NotFound(f"Account {account_id} not found.")
    earned = list_badges(account_id)
    earned_codes = {item.badge.code for item in earned}
    available = [badge for badge in badges.catalogue() if badge.code not in earned_codes]
    return {
        "stats": {
            "totalBadges": len(earned),
            "availableBadges": len(available),
            "totalPoints": account["total_points"],
            "level": account["level"],
            "levelTitle": levels.level_title(account["level"]),
        },
        "earnedBadges": [item.to_dict() for item in earned],
        "availableBadges": [badge.to_dict() for badge in available],
        "nextBadge": available[0].to_dict() if available else None,
    }
