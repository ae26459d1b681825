"Data access helpers for resource reviews."

from __future__ import annotations

import sqlite3
from typing import Optional

from ..errors import ConflictError, Forbidden, ValidationError
from ..models.entities import Review
from . import points_dao, reservations_dao
from .db import execute, get_db, parse_timestamp, query_all, query_one, transaction


def _row_to_review(row) -> Review:
    return Review(
        review_id=row["review_id"],
        resource_id=row["resource_id"],
        reviewer_id=row["reviewer_id"],
        rating=row["rating"],
        comment=row["comment"],
        timestamp=parse_timestamp(row["timestamp"]),
    )


def create_review(resource_id: int, reviewer_id: int, rating: int, comment: str) -> Review:
    """Insert a review for a completed reservation and award the reviewer."""

    if not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5.")
    comment = (comment or "").strip()
    if not comment:
        raise ValidationError("A comment is required.")
    if not reservations_dao.has_completed_reservation(resource_id, reviewer_id):
        raise Forbidden("You can only review listings after completing a booking.")

    db = get_db()
    with transaction(db):
        try:
            cursor = execute(
                db,
                """
                INSERT INTO reviews (resource_id, reviewer_id, rating, comment)
                VALUES (?, ?, ?, ?)
                """,
                (resource_id, reviewer_id, rating, comment),
            )
        except sqlite3.IntegrityError as exc:
            raise ConflictError("You have already reviewed this listing.") from exc
        review_id = cursor.lastrowid
        points_dao.award_for(
            reviewer_id,
            points_dao.REVIEW_CREATED,
            "Left a review",
            metadata={"resourceId": resource_id, "reviewId": review_id},
            connection=db,
        )
    return get_review_by_id(review_id, connection=db)


def get_review_by_id(review_id: int, connection=None) -> Review | None:
    """Fetch a review by primary key."""

    db = connection or get_db()
    row = query_one(
        db,
        "SELECT * FROM reviews WHERE review_id = ?",
        (review_id,),
    )
    return _row_to_review(row) if row else None


def list_reviews_for_resource(resource_id: int) -> list[Review]:
    """Return reviews in reverse chronological order."""

    db = get_db()
    rows = query_all(
        db,
        """
        SELECT * FROM reviews
        WHERE resource_id = ?
        ORDER BY timestamp DESC, review_id DESC
        """,
        (resource_id,),
    )
    return [_row_to_review(row) for row in rows]


def average_rating(resource_id: int) -> Optional[float]:
    """Compute the average rating for display."""

    db = get_db()
    row = query_one(
        db,
        "SELECT ROUND(AVG(rating), 2) AS avg_rating FROM reviews WHERE resource_id = ?",
        (resource_id,),
    )
    return row["avg_rating"] if row and row["avg_rating"] is not None else None
