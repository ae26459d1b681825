"""Follow and block edges between accounts."""

from __future__ import annotations

import logging
import sqlite3

from ..errors import ConflictError, NotFound, ValidationError
from . import points_dao
from .accounts_dao import get_account_by_id
from .db import execute, get_db, query_one, transaction

logger = logging.getLogger(__name__)


def follow(follower_id: int, followee_id: int) -> None:
    """Create a follow edge; duplicates are rejected by the primary key."""

    if follower_id == followee_id:
        raise ValidationError("Cannot follow yourself.")
    db = get_db()
    followee = get_account_by_id(followee_id, connection=db)
    if followee is None:
        raise NotFound("Target account not found.")
    follower = get_account_by_id(follower_id, connection=db)
    with transaction(db):
        try:
            execute(
                db,
                "INSERT INTO follows (follower_id, followee_id) VALUES (?, ?)",
                (follower_id, followee_id),
            )
        except sqlite3.IntegrityError as exc:
            raise ConflictError("Already following this account.") from exc
        points_dao.award_for(
            followee_id,
            points_dao.NEW_FOLLOWER,
            "New follower",
            description=f"{follower.display_name} started following you",
            metadata={"followerId": follower_id},
            connection=db,
        )


def unfollow(follower_id: int, followee_id: int) -> None:
    db = get_db()
    cursor = execute(
        db,
        "DELETE FROM follows WHERE follower_id = ? AND followee_id = ?",
        (follower_id, followee_id),
    )
    if cursor.rowcount == 0:
        raise ValidationError("Not following this account.")


def is_following(follower_id: int, followee_id: int, connection=None) -> bool:
    db = connection or get_db()
    row = query_one(
        db,
        "SELECT 1 FROM follows WHERE follower_id = ? AND followee_id = ?",
        (follower_id, followee_id),
    )
    return row is not None


def follow_counts(account_id: int) -> dict:
    db = get_db()
    row = query_one(
        db,
        """
        SELECT
            (SELECT COUNT(*) FROM follows WHERE followee_id = ?) AS followers,
            (SELECT COUNT(*) FROM follows WHERE follower_id = ?) AS following
        """,
        (account_id, account_id),
    )
    return {"followers": row["followers"], "following": row["following"]}


def block(blocker_id: int, blocked_id: int) -> None:
    """Block an account and drop follow edges in both directions."""

    if blocker_id == blocked_id:
        raise ValidationError("Cannot block yourself.")
    db = get_db()
    if get_account_by_id(blocked_id, connection=db) is None:
        raise NotFound("Target account not found.")
    with transaction(db):
        try:
            execute(
                db,
                "INSERT INTO blocks (blocker_id, blocked_id) VALUES (?, ?)",
                (blocker_id, blocked_id),
            )
        except sqlite3.IntegrityError as exc:
            raise ConflictError("Account is already blocked.") from exc
        execute(
            db,
            """
            DELETE FROM follows
            WHERE (follower_id = ? AND followee_id = ?) OR (follower_id = ? AND followee_id = ?)
            """,
            (blocker_id, blocked_id, blocked_id, blocker_id),
        )
    logger.info("Account %s blocked account %s", blocker_id, blocked_id)


def unblock(blocker_id: int, blocked_id: int) -> None:
    db = get_db()
    cursor = execute(
        db,
        "DELETE FROM blocks WHERE blocker_id = ? AND blocked_id = ?",
        (blocker_id, blocked_id),
    )
    if cursor.rowcount == 0:
        raise ValidationError("Account is not blocked.")


def has_blocked(blocker_id: int, blocked_id: int, connection=None) -> bool:
    """Return True when ``blocker_id`` has blocked ``blocked_id``."""

    db = connection or get_db()
    row = query_one(
        db,
        "SELECT 1 FROM blocks WHERE blocker_id = ? AND blocked_id = ?",
        (blocker_id, blocked_id),
    )
    return row is not None
