"""Reservations: availability, conflict guard, and lifecycle transitions.

Two windows overlap when ``existing.start <= query.end AND existing.end >=
query.start``: boundaries are inclusive, so a reservation ending on the day
another begins conflicts with it. The same predicate backs the
``reservations_no_overlap_*`` triggers in ``schema.sql``.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ..errors import ConflictError, NotFound, ValidationError
from ..models.entities import (
    ALLOWED_TRANSITIONS,
    BLOCKING_STATUSES,
    Availability,
    Reservation,
    ReservationStatus,
    Resource,
    TERMINAL_STATUSES,
)
from . import blackouts_dao, points_dao, resources_dao
from .db import execute, get_db, parse_date, parse_timestamp, query_all, query_one, transaction

logger = logging.getLogger(__name__)

DateLike = Union[str, date]

DAYS_PER_MONTH = 30
DEFAULT_HORIZON_DAYS = 365
OVERLAP_TRIGGER_MESSAGE = "reservation_overlap"

_BLOCKING_SQL = ", ".join(f"'{status.value}'" for status in BLOCKING_STATUSES)


def _row_to_reservation(row) -> Reservation:
    return Reservation(
        reservation_id=row["reservation_id"],
        resource_id=row["resource_id"],
        renter_id=row["renter_id"],
        start_date=parse_date(row["start_date"]),
        end_date=parse_date(row["end_date"]),
        status=ReservationStatus(row["status"]),
        rate=row["rate"],
        total_amount=row["total_amount"],
        message=row["message"],
        created_at=parse_timestamp(row["created_at"]),
        updated_at=parse_timestamp(row["updated_at"]),
    )


def _coerce_date(value: DateLike, label: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return parse_date(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid {label} date format.") from exc


def validate_window(start: Optional[DateLike], end: Optional[DateLike]) -> tuple[date, date]:
    """Parse and check a ``start``..``end`` window; end must follow start."""

    if not start or not end:
        raise ValidationError("Start and end dates are required.")
    start_value = _coerce_date(start, "start")
    end_value = _coerce_date(end, "end")
    if end_value <= start_value:
        raise ValidationError("End date must be after start date.")
    return start_value, end_value


def billable_units(resource: Resource, start: date, end: date) -> int:
    """Months (rounded up) for plots, days for tools."""

    days = (end - start).days
    if resource.kind == "plot":
        return math.ceil(days / DAYS_PER_MONTH)
    return days


def quote(resource: Resource, start: date, end: date) -> float:
    return round(resource.rate * billable_units(resource, start, end), 2)


def find_overlapping_reservations(
    resource_id: int,
    start: date,
    end: date,
    connection=None,
) -> list[Reservation]:
    """Live reservations on ``resource_id`` touching or intersecting the window."""

    db = connection or get_db()
    rows = query_all(
        db,
        f"""
        SELECT * FROM reservations
        WHERE resource_id = ?
          AND status IN ({_BLOCKING_SQL})
          AND start_date <= ?
          AND end_date >= ?
        ORDER BY start_date ASC, reservation_id ASC
        """,
        (resource_id, end.isoformat(), start.isoformat()),
    )
    return [_row_to_reservation(row) for row in rows]


def get_availability(
    resource_id: int,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    connection=None,
) -> Availability:
    """Reservations and blackout ranges intersecting a window.

    The window defaults to today through ``horizon_days`` from today. Raises
    NotFound for an unknown resource.
    """

    db = connection or get_db()
    resource = resources_dao.require_resource(resource_id, connection=db)
    window_start = _coerce_date(start, "start") if start else date.today()
    window_end = _coerce_date(end, "end") if end else window_start + timedelta(days=horizon_days)
    if window_end <= window_start:
        raise ValidationError("End date must be after start date.")
    return Availability(
        resource=resource,
        window_start=window_start,
        window_end=window_end,
        reservations=find_overlapping_reservations(resource_id, window_start, window_end, connection=db),
        blackout_ranges=blackouts_dao.find_overlapping(resource_id, window_start, window_end, connection=db),
    )


def find_conflicts(resource_id: int, start: date, end: date, connection=None) -> Availability:
    """Availability of exactly the proposed window, used as the pre-insert check."""

    return get_availability(resource_id, start, end, connection=connection)


def create_reservation(
    resource_id: int,
    renter_id: int,
    start_date: DateLike,
    end_date: DateLike,
    message: Optional[str] = None,
    connection=None,
) -> Reservation:
    """Create a reservation after re-validating the window is free.

    The pre-check and insert share one transaction, and the insert is also
    guarded by the storage-level overlap trigger, so a concurrent writer whose
    pre-check passed is still rejected with ConflictError.
    """

    start, end = validate_window(start_date, end_date)
    db = connection or get_db()
    resource = resources_dao.get_resource_by_id(resource_id, include_unpublished=True, connection=db)
    if resource is None or resource.status != "published":
        raise NotFound("Plot not found.")
    if resource.owner_id == renter_id:
        raise ValidationError("You cannot book your own listing.")
    units = billable_units(resource, start, end)
    if units < resource.minimum_duration:
        unit_name = "month" if resource.kind == "plot" else "day"
        raise ValidationError(
            f"Minimum lease is {resource.minimum_duration} {unit_name}(s) for this listing."
        )

    status = ReservationStatus.APPROVED if resource.instant_book else ReservationStatus.PENDING
    with transaction(db):
        conflicts = find_conflicts(resource_id, start, end, connection=db)
        if conflicts.reservations:
            raise ConflictError("This plot is already booked for the selected dates.")
        if conflicts.blackout_ranges:
            raise ConflictError("The owner has blocked some of the selected dates.")
        try:
            cursor = execute(
                db,
                """
                INSERT INTO reservations (
                    resource_id, renter_id, start_date, end_date, status, rate, total_amount, message
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    resource_id,
                    renter_id,
                    start.isoformat(),
                    end.isoformat(),
                    status.value,
                    resource.rate,
                    quote(resource, start, end),
                    message,
                ),
            )
        except sqlite3.IntegrityError as exc:
            if OVERLAP_TRIGGER_MESSAGE in str(exc):
                logger.warning(
                    "Storage rejected overlapping reservation on resource %s for %s..%s",
                    resource_id,
                    start,
                    end,
                )
                raise ConflictError("This plot is already booked for the selected dates.") from exc
            raise
        reservation_id = cursor.lastrowid
        points_dao.award_for(
            renter_id,
            points_dao.BOOKING_CREATED,
            "Booking confirmed" if resource.instant_book else "Booking requested",
            description=f"{resource.title} in {resource.location}" if resource.location else resource.title,
            metadata={"reservationId": reservation_id},
            connection=db,
        )
        points_dao.record_activity(
            resource.owner_id,
            "BOOKING_RECEIVED",
            "New booking" if resource.instant_book else "New booking request",
            f"{resource.title}: {start.isoformat()} to {end.isoformat()}",
            connection=db,
        )
    logger.info(
        "Reservation %s created on resource %s by account %s (%s)",
        reservation_id,
        resource_id,
        renter_id,
        status.value,
    )
    return get_reservation_by_id(reservation_id, connection=db)


def get_reservation_by_id(reservation_id: int, connection=None) -> Reservation | None:
    """Fetch a specific reservation."""

    db = connection or get_db()
    row = query_one(db, "SELECT * FROM reservations WHERE reservation_id = ?", (reservation_id,))
    return _row_to_reservation(row) if row else None


def require_reservation(reservation_id: int) -> Reservation:
    reservation = get_reservation_by_id(reservation_id)
    if reservation is None:
        raise NotFound("Booking not found.")
    return reservation


def transition_reservation(
    reservation_id: int,
    new_status: Union[str, ReservationStatus],
    actor_id: int,
) -> Reservation:
    """Move a reservation along its lifecycle.

    Only forward transitions listed in ``ALLOWED_TRANSITIONS`` are accepted.
    The update is a compare-and-set on the prior status, so a transition that
    lost a race to another writer fails with ConflictError.
    """

    try:
        target = ReservationStatus(new_status)
    except ValueError as exc:
        raise ValidationError(f"Unknown reservation status '{new_status}'.") from exc

    db = get_db()
    with transaction(db):
        reservation = get_reservation_by_id(reservation_id, connection=db)
        if reservation is None:
            raise NotFound("Booking not found.")
        if reservation.status in TERMINAL_STATUSES:
            raise ValidationError(f"Booking is already {reservation.status.value.lower()}.")
        allowed = ALLOWED_TRANSITIONS.get(reservation.status, frozenset())
        if target not in allowed:
            raise ValidationError(
                f"Cannot move a {reservation.status.value.lower()} booking to {target.value.lower()}."
            )
        cursor = execute(
            db,
            """
            UPDATE reservations
            SET status = ?, updated_at = CURRENT_TIMESTAMP
            WHERE reservation_id = ? AND status = ?
            """,
            (target.value, reservation_id, reservation.status.value),
        )
        if cursor.rowcount == 0:
            raise ConflictError("Booking was modified by another request.")
        resource = resources_dao.require_resource(reservation.resource_id, connection=db)
        _record_transition(db, reservation, resource, target, actor_id)

    logger.info(
        "Reservation %s moved %s -> %s by account %s",
        reservation_id,
        reservation.status.value,
        target.value,
        actor_id,
    )
    return get_reservation_by_id(reservation_id, connection=db)


def _record_transition(db, reservation: Reservation, resource: Resource, target: ReservationStatus, actor_id: int) -> None:
    if target is ReservationStatus.APPROVED:
        points_dao.award_for(
            resource.owner_id,
            points_dao.BOOKING_APPROVED,
            "Booking approved",
            description=f"Approved booking for {resource.title}",
            metadata={"reservationId": reservation.reservation_id},
            connection=db,
        )
        points_dao.record_activity(
            reservation.renter_id,
            "BOOKING_APPROVED",
            "Booking confirmed",
            f"Your booking for {resource.title} has been approved",
            connection=db,
        )
    elif target is ReservationStatus.REJECTED:
        points_dao.record_activity(
            reservation.renter_id,
            "BOOKING_REJECTED",
            "Booking declined",
            f"Your booking request for {resource.title} was declined",
            connection=db,
        )
    elif target is ReservationStatus.CANCELLED:
        other_party = resource.owner_id if actor_id == reservation.renter_id else reservation.renter_id
        points_dao.record_activity(
            actor_id,
            "BOOKING_CANCELLED",
            "Booking cancelled",
            f"Cancelled booking for {resource.title}",
            connection=db,
        )
        points_dao.record_activity(
            other_party,
            "BOOKING_CANCELLED",
            "Booking cancelled",
            f"Booking for {resource.title} was cancelled",
            connection=db,
        )


def advance_reservations(today: Optional[date] = None) -> dict:
    """Apply time-driven transitions.

    PENDING requests the owner never answered are REJECTED once their start date
    arrives, releasing the calendar. APPROVED reservations become ACTIVE on their
    start date and ACTIVE ones COMPLETED on their end date.
    """

    today_value = (today or date.today()).isoformat()
    db = get_db()
    with transaction(db):
        stale = query_all(
            db,
            """
            SELECT b.reservation_id, b.renter_id, r.title
            FROM reservations b
            JOIN resources r ON r.resource_id = b.resource_id
            WHERE b.status = 'PENDING' AND b.start_date <= ?
            """,
            (today_value,),
        )
        for row in stale:
            execute(
                db,
                """
                UPDATE reservations
                SET status = 'REJECTED', updated_at = CURRENT_TIMESTAMP
                WHERE reservation_id = ?
                """,
                (row["reservation_id"],),
            )
            points_dao.record_activity(
                row["renter_id"],
                "BOOKING_EXPIRED",
                "Booking request expired",
                f"Your request for {row['title']} was not answered before it started",
                connection=db,
            )
        activated = execute(
            db,
            """
            UPDATE reservations
            SET status = 'ACTIVE', updated_at = CURRENT_TIMESTAMP
            WHERE status = 'APPROVED' AND start_date <= ?
            """,
            (today_value,),
        ).rowcount
        completed = execute(
            db,
            """
            UPDATE reservations
            SET status = 'COMPLETED', updated_at = CURRENT_TIMESTAMP
            WHERE status = 'ACTIVE' AND end_date <= ?
            """,
            (today_value,),
        ).rowcount
    logger.info(
        "Advanced reservations: %s expired, %s activated, %s completed",
        len(stale),
        activated,
        completed,
    )
    return {"expired": len(stale), "activated": activated, "completed": completed}


def list_reservations_for_renter(renter_id: int) -> list[Reservation]:
    """Return reservations made by a renter."""

    db = get_db()
    rows = query_all(
        db,
        """
        SELECT * FROM reservations
        WHERE renter_id = ?
        ORDER BY created_at DESC, reservation_id DESC
        """,
        (renter_id,),
    )
    return [_row_to_reservation(row) for row in rows]


def list_reservations_for_owner(owner_id: int, status: Optional[str] = None) -> list[Reservation]:
    """Reservations on resources owned by the specified account."""

    db = get_db()
    query = """
        SELECT b.*
        FROM reservations b
        JOIN resources r ON r.resource_id = b.resource_id
        WHERE r.owner_id = ?
    """
    params: list = [owner_id]
    if status:
        query += " AND b.status = ?"
        params.append(status)
    query += " ORDER BY b.created_at DESC, b.reservation_id DESC"
    return [_row_to_reservation(row) for row in query_all(db, query, params)]


def has_completed_reservation(resource_id: int, renter_id: int) -> bool:
    db = get_db()
    row = query_one(
        db,
        """
        SELECT 1 FROM reservations
        WHERE resource_id = ? AND renter_id = ? AND status = 'COMPLETED'
        """,
        (resource_id, renter_id),
    )
    return row is not None


def parties_share_reservation(first_id: int, second_id: int, live_only: bool = False) -> bool:
    """True when either account has booked a listing owned by the other."""

    db = get_db()
    query = """
        SELECT 1
        FROM reservations b
        JOIN resources r ON r.resource_id = b.resource_id
        WHERE ((b.renter_id = ? AND r.owner_id = ?) OR (b.renter_id = ? AND r.owner_id = ?))
    """
    if live_only:
        query += f" AND b.status IN ({_BLOCKING_SQL})"
    query += " LIMIT 1"
    row = query_one(db, query, (first_id, second_id, second_id, first_id))
    return row is not None
