"""Owner-declared blackout ranges on a resource's calendar."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional, Union

from ..errors import ConflictError, NotFound
from ..models.entities import BlackoutRange
from .db import execute, get_db, parse_date, query_all, query_one, transaction

logger = logging.getLogger(__name__)

DateLike = Union[str, date]


def _row_to_blackout(row) -> BlackoutRange:
    return BlackoutRange(
        blackout_id=row["blackout_id"],
        resource_id=row["resource_id"],
        start_date=parse_date(row["start_date"]),
        end_date=parse_date(row["end_date"]),
        reason=row["reason"],
    )


def list_blackouts(resource_id: int) -> list[BlackoutRange]:
    """Return every blackout range for a resource ordered by start."""

    db = get_db()
    rows = query_all(
        db,
        "SELECT * FROM blackout_ranges WHERE resource_id = ? ORDER BY start_date ASC, blackout_id ASC",
        (resource_id,),
    )
    return [_row_to_blackout(row) for row in rows]


def find_overlapping(resource_id: int, start: date, end: date, connection=None) -> list[BlackoutRange]:
    """Blackout ranges touching or intersecting the window."""

    db = connection or get_db()
    rows = query_all(
        db,
        """
        SELECT * FROM blackout_ranges
        WHERE resource_id = ?
          AND start_date <= ?
          AND end_date >= ?
        ORDER BY start_date ASC, blackout_id ASC
        """,
        (resource_id, end.isoformat(), start.isoformat()),
    )
    return [_row_to_blackout(row) for row in rows]


def create_blackout(
    resource_id: int,
    start_date: DateLike,
    end_date: DateLike,
    reason: Optional[str] = None,
) -> BlackoutRange:
    """Block a window that has no live reservations."""

    # Imported here to avoid a cycle: reservations_dao reads blackouts for availability.
    from . import reservations_dao  # pylint: disable=import-outside-toplevel

    start, end = reservations_dao.validate_window(start_date, end_date)
    db = get_db()
    with transaction(db):
        if reservations_dao.find_overlapping_reservations(resource_id, start, end, connection=db):
            raise ConflictError("Cannot block dates that have existing bookings.")
        cursor = execute(
            db,
            """
            INSERT INTO blackout_ranges (resource_id, start_date, end_date, reason)
            VALUES (?, ?, ?, ?)
            """,
            (resource_id, start.isoformat(), end.isoformat(), reason or None),
        )
        row = query_one(db, "SELECT * FROM blackout_ranges WHERE blackout_id = ?", (cursor.lastrowid,))
    logger.info("Blackout %s added to resource %s", row["blackout_id"], resource_id)
    return _row_to_blackout(row)


def delete_blackout(resource_id: int, blackout_id: int) -> None:
    """Remove a blackout range that belongs to ``resource_id``."""

    db = get_db()
    cursor = execute(
        db,
        "DELETE FROM blackout_ranges WHERE blackout_id = ? AND resource_id = ?",
        (blackout_id, resource_id),
    )
    if cursor.rowcount == 0:
        raise NotFound("Blocked date not found.")
