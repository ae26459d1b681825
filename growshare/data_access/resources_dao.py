"""Data access helpers for bookable resources (land plots and tools)."""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import NotFound, ValidationError
from ..models.entities import Resource, Role
from . import accounts_dao, points_dao
from .db import execute, get_db, parse_timestamp, query_all, query_one, transaction

logger = logging.getLogger(__name__)

RESOURCE_KINDS = {"plot", "tool"}
RESOURCE_STATUSES = {"draft", "published", "archived"}

_SELECT_WITH_RATING = """
    SELECT
        r.*,
        ROUND(AVG(rv.rating), 2) AS average_rating
    FROM resources r
    LEFT JOIN reviews rv ON rv.resource_id = r.resource_id
"""


def _row_to_resource(row) -> Resource:
    keys = row.keys() if hasattr(row, "keys") else []
    return Resource(
        resource_id=row["resource_id"],
        owner_id=row["owner_id"],
        kind=row["kind"],
        title=row["title"],
        description=row["description"],
        location=row["location"],
        rate=row["rate"],
        minimum_duration=row["minimum_duration"],
        instant_book=bool(row["instant_book"]),
        status=row["status"],
        created_at=parse_timestamp(row["created_at"]),
        average_rating=row["average_rating"] if "average_rating" in keys else None,
    )


def create_resource(
    owner_id: int,
    kind: str,
    title: str,
    rate: float,
    description: str = "",
    location: str = "",
    minimum_duration: int = 1,
    instant_book: bool = False,
    status: str = "published",
) -> Resource:
    """Insert a new resource; listing a plot grants the owner the landowner role."""

    if kind not in RESOURCE_KINDS:
        raise ValidationError(f"Unsupported resource kind '{kind}'.")
    if status not in RESOURCE_STATUSES:
        raise ValidationError(f"Unsupported resource status '{status}'.")
    if rate is None or rate < 0:
        raise ValidationError("Rate must be zero or greater.")
    if minimum_duration < 1:
        raise ValidationError("Minimum duration must be at least 1.")

    db = get_db()
    with transaction(db):
        cursor = execute(
            db,
            """
            INSERT INTO resources (
                owner_id, kind, title, description, location,
                rate, minimum_duration, instant_book, status
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                owner_id,
                kind,
                title,
                description,
                location,
                rate,
                minimum_duration,
                int(instant_book),
                status,
            ),
        )
        resource_id = cursor.lastrowid
        if kind == "plot":
            accounts_dao.add_roles(owner_id, Role.LANDOWNER, connection=db)
            points_dao.award_for(
                owner_id,
                points_dao.PLOT_LISTED,
                "Listed a plot",
                description=title,
                metadata={"resourceId": resource_id},
                connection=db,
            )
    logger.info("Resource %s (%s) created by account %s", resource_id, kind, owner_id)
    return get_resource_by_id(resource_id, include_unpublished=True, connection=db)


def update_resource(resource_id: int, **fields) -> None:
    """Update mutable fields for a resource."""

    allowed = {
        "title",
        "description",
        "location",
        "rate",
        "minimum_duration",
        "instant_book",
        "status",
    }
    updates = {key: value for key, value in fields.items() if key in allowed and value is not None}
    if "status" in updates and updates["status"] not in RESOURCE_STATUSES:
        raise ValidationError(f"Unsupported resource status '{updates['status']}'.")
    if "rate" in updates and updates["rate"] < 0:
        raise ValidationError("Rate must be zero or greater.")
    if "minimum_duration" in updates and updates["minimum_duration"] < 1:
        raise ValidationError("Minimum duration must be at least 1.")
    if "instant_book" in updates:
        updates["instant_book"] = int(bool(updates["instant_book"]))
    if not updates:
        return

    columns = ", ".join(f"{key} = ?" for key in updates.keys())
    params = list(updates.values()) + [resource_id]
    db = get_db()
    execute(db, f"UPDATE resources SET {columns} WHERE resource_id = ?", params)


def set_status(resource_id: int, status: str) -> None:
    """Update a resource status lifecycle value."""

    update_resource(resource_id, status=status)


def get_resource_by_id(
    resource_id: int,
    include_unpublished: bool = False,
    connection=None,
) -> Resource | None:
    """Fetch a single resource, optionally including drafts."""

    db = connection or get_db()
    query = _SELECT_WITH_RATING + " WHERE r.resource_id = ?"
    params = [resource_id]
    if not include_unpublished:
        query += " AND r.status = 'published'"
    query += " GROUP BY r.resource_id"
    row = query_one(db, query, params)
    return _row_to_resource(row) if row else None


def require_resource(resource_id: int, connection=None) -> Resource:
    resource = get_resource_by_id(resource_id, include_unpublished=True, connection=connection)
    if resource is None:
        raise NotFound(f"Resource {resource_id} not found.")
    return resource


def list_resources_for_owner(owner_id: int) -> list[Resource]:
    """Return all resources created by a specific owner."""

    db = get_db()
    rows = query_all(
        db,
        _SELECT_WITH_RATING
        + """
        WHERE r.owner_id = ?
        GROUP BY r.resource_id
        ORDER BY r.created_at DESC, r.resource_id DESC
        """,
        (owner_id,),
    )
    return [_row_to_resource(row) for row in rows]


def search_resources(
    keyword: Optional[str] = None,
    kind: Optional[str] = None,
    location: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    sort: str = "recent",
) -> list[Resource]:
    """Perform filtered search across published resources.

    When a date window is given, both ends are required and resources with a
    live reservation or blackout touching it are excluded. A malformed or
    inverted window raises ValidationError.
    """

    # Imported here to avoid a cycle: reservations_dao loads resources.
    from . import reservations_dao  # pylint: disable=import-outside-toplevel

    db = get_db()
    query = _SELECT_WITH_RATING + " WHERE r.status = 'published'"
    params: list = []
    if keyword:
        query += " AND (r.title LIKE ? OR r.description LIKE ?)"
        like_term = f"%{keyword}%"
        params.extend([like_term, like_term])
    if kind:
        query += " AND r.kind = ?"
        params.append(kind)
    if location:
        query += " AND r.location LIKE ?"
        params.append(f"%{location}%")
    if start_date or end_date:
        window_start, window_end = reservations_dao.validate_window(start_date, end_date)
        query += """
            AND r.resource_id NOT IN (
                SELECT b.resource_id
                FROM reservations b
                WHERE b.status IN ('PENDING', 'APPROVED', 'ACTIVE')
                AND b.start_date <= ? AND b.end_date >= ?
            )
            AND r.resource_id NOT IN (
                SELECT x.resource_id
                FROM blackout_ranges x
                WHERE x.start_date <= ? AND x.end_date >= ?
            )
        """
        params.extend(
            [
                window_end.isoformat(),
                window_start.isoformat(),
                window_end.isoformat(),
                window_start.isoformat(),
            ]
        )
    query += " GROUP BY r.resource_id"
    if sort == "top-rated":
        query += " ORDER BY (average_rating IS NULL), average_rating DESC, r.created_at DESC"
    elif sort == "price":
        query += " ORDER BY r.rate ASC, r.resource_id ASC"
    else:
        query += " ORDER BY r.created_at DESC, r.resource_id DESC"
    rows = query_all(db, query, params)
    return [_row_to_resource(row) for row in rows]
