"""Disputes on reservations and reports against content."""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional, Union

from ..errors import ConflictError, Forbidden, NotFound, ValidationError
from ..models.entities import CaseStatus, Dispute, Report
from . import points_dao, reservations_dao, resources_dao
from .accounts_dao import log_admin_action
from .db import execute, get_db, parse_timestamp, query_all, query_one, transaction

logger = logging.getLogger(__name__)

REPORTABLE_CONTENT = {"account", "resource", "review", "message"}


def _optional_timestamp(value):
    return parse_timestamp(value) if value else None


def _row_to_dispute(row) -> Dispute:
    return Dispute(
        dispute_id=row["dispute_id"],
        reservation_id=row["reservation_id"],
        filed_by=row["filed_by"],
        against_id=row["against_id"],
        reason=row["reason"],
        description=row["description"],
        requested_amount=row["requested_amount"],
        status=CaseStatus(row["status"]),
        resolution_note=row["resolution_note"],
        resolved_by=row["resolved_by"],
        created_at=parse_timestamp(row["created_at"]),
        resolved_at=_optional_timestamp(row["resolved_at"]),
    )


def _row_to_report(row) -> Report:
    return Report(
        report_id=row["report_id"],
        reporter_id=row["reporter_id"],
        reported_account_id=row["reported_account_id"],
        content_type=row["content_type"],
        content_id=row["content_id"],
        reason=row["reason"],
        details=row["details"],
        status=CaseStatus(row["status"]),
        resolution_note=row["resolution_note"],
        resolved_by=row["resolved_by"],
        created_at=parse_timestamp(row["created_at"]),
        resolved_at=_optional_timestamp(row["resolved_at"]),
    )


def _closing_status(value: Union[str, CaseStatus]) -> CaseStatus:
    try:
        status = CaseStatus(value)
    except ValueError as exc:
        raise ValidationError("Status must be RESOLVED or DISMISSED.") from exc
    if status is CaseStatus.PENDING:
        raise ValidationError("Status must be RESOLVED or DISMISSED.")
    return status


def file_dispute(
    reservation_id: int,
    filed_by: int,
    reason: str,
    description: str,
    requested_amount: Optional[float] = None,
) -> Dispute:
    """Open a dispute on a reservation; only its renter or owner may file."""

    if not reason or not description:
        raise ValidationError("Reason and description are required.")
    if requested_amount is not None and requested_amount < 0:
        raise ValidationError("Requested amount cannot be negative.")
    reservation = reservations_dao.require_reservation(reservation_id)
    resource = resources_dao.require_resource(reservation.resource_id)
    if filed_by == reservation.renter_id:
        against_id = resource.owner_id
    elif filed_by == resource.owner_id:
        against_id = reservation.renter_id
    else:
        raise Forbidden("You can only file disputes for your own bookings.")

    db = get_db()
    with transaction(db):
        try:
            cursor = execute(
                db,
                """
                INSERT INTO disputes (reservation_id, filed_by, against_id, reason, description, requested_amount)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (reservation_id, filed_by, against_id, reason, description, requested_amount),
            )
        except sqlite3.IntegrityError as exc:
            raise ConflictError("A dispute has already been filed for this booking.") from exc
        points_dao.record_activity(
            against_id,
            "DISPUTE_FILED",
            "Dispute filed",
            f"A dispute has been filed for booking #{reservation_id}. Please review and respond.",
            connection=db,
        )
    logger.info("Dispute %s filed on reservation %s by account %s", cursor.lastrowid, reservation_id, filed_by)
    return get_dispute_by_id(cursor.lastrowid, connection=db)


def get_dispute_by_id(dispute_id: int, connection=None) -> Dispute | None:
    db = connection or get_db()
    row = query_one(db, "SELECT * FROM disputes WHERE dispute_id = ?", (dispute_id,))
    return _row_to_dispute(row) if row else None


def get_dispute_for_reservation(reservation_id: int) -> Dispute | None:
    db = get_db()
    row = query_one(db, "SELECT * FROM disputes WHERE reservation_id = ?", (reservation_id,))
    return _row_to_dispute(row) if row else None


def list_disputes_for_account(account_id: int, role: str = "all", status: Optional[str] = None) -> list[Dispute]:
    """Disputes the account filed (``filed``), received (``received``), or either."""

    db = get_db()
    if role == "filed":
        query = "SELECT * FROM disputes WHERE filed_by = ?"
        params: list = [account_id]
    elif role == "received":
        query = "SELECT * FROM disputes WHERE against_id = ?"
        params = [account_id]
    else:
        query = "SELECT * FROM disputes WHERE (filed_by = ? OR against_id = ?)"
        params = [account_id, account_id]
    if status and status != "all":
        query += " AND status = ?"
        params.append(status)
    query += " ORDER BY created_at DESC, dispute_id DESC"
    return [_row_to_dispute(row) for row in query_all(db, query, params)]


def list_disputes(status: Optional[str] = None) -> list[Dispute]:
    db = get_db()
    query = "SELECT * FROM disputes"
    params: list = []
    if status:
        query += " WHERE status = ?"
        params.append(status)
    query += " ORDER BY created_at ASC, dispute_id ASC"
    return [_row_to_dispute(row) for row in query_all(db, query, params)]


def close_dispute(dispute_id: int, admin_id: int, status: Union[str, CaseStatus], note: Optional[str] = None) -> Dispute:
    """Resolve or dismiss a pending dispute."""

    target = _closing_status(status)
    db = get_db()
    with transaction(db):
        dispute = get_dispute_by_id(dispute_id, connection=db)
        if dispute is None:
            raise NotFound("Dispute not found.")
        cursor = execute(
            db,
            """
            UPDATE disputes
            SET status = ?, resolution_note = ?, resolved_by = ?, resolved_at = CURRENT_TIMESTAMP
            WHERE dispute_id = ? AND status = 'PENDING'
            """,
            (target.value, note, admin_id, dispute_id),
        )
        if cursor.rowcount == 0:
            raise ConflictError(f"Dispute is already {dispute.status.value.lower()}.")
        log_admin_action(db, admin_id, "disputes", f"{target.value.title()} dispute {dispute_id}", note)
        for party in (dispute.filed_by, dispute.against_id):
            points_dao.record_activity(
                party,
                "DISPUTE_CLOSED",
                f"Dispute {target.value.lower()}",
                note,
                connection=db,
            )
    return get_dispute_by_id(dispute_id, connection=db)


def file_report(
    reporter_id: int,
    content_type: str,
    content_id: int,
    reason: str,
    details: Optional[str] = None,
    reported_account_id: Optional[int] = None,
) -> Report:
    """Report a piece of content; one open report per reporter and item."""

    if content_type not in REPORTABLE_CONTENT:
        raise ValidationError(f"Unsupported content type '{content_type}'.")
    if not reason:
        raise ValidationError("A reason is required.")
    if content_type == "account":
        reported_account_id = reported_account_id or content_id
    if reported_account_id == reporter_id:
        raise ValidationError("You cannot report yourself.")

    db = get_db()
    try:
        cursor = execute(
            db,
            """
            INSERT INTO reports (reporter_id, reported_account_id, content_type, content_id, reason, details)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (reporter_id, reported_account_id, content_type, content_id, reason, details),
        )
    except sqlite3.IntegrityError as exc:
        raise ConflictError("You have already reported this content.") from exc
    return get_report_by_id(cursor.lastrowid, connection=db)


def get_report_by_id(report_id: int, connection=None) -> Report | None:
    db = connection or get_db()
    row = query_one(db, "SELECT * FROM reports WHERE report_id = ?", (report_id,))
    return _row_to_report(row) if row else None


def list_reports(status: Optional[str] = None) -> list[Report]:
    db = get_db()
    query = "SELECT * FROM reports"
    params: list = []
    if status:
        query += " WHERE status = ?"
        params.append(status)
    query += " ORDER BY created_at ASC, report_id ASC"
    return [_row_to_report(row) for row in query_all(db, query, params)]


def close_report(report_id: int, admin_id: int, status: Union[str, CaseStatus], note: Optional[str] = None) -> Report:
    """Resolve or dismiss a pending report."""

    target = _closing_status(status)
    db = get_db()
    with transaction(db):
        report = get_report_by_id(report_id, connection=db)
        if report is None:
            raise NotFound("Report not found.")
        cursor = execute(
            db,
            """
            UPDATE reports
            SET status = ?, resolution_note = ?, resolved_by = ?, resolved_at = CURRENT_TIMESTAMP
            WHERE report_id = ? AND status = 'PENDING'
            """,
            (target.value, note, admin_id, report_id),
        )
        if cursor.rowcount == 0:
            raise ConflictError(f"Report is already {report.status.value.lower()}.")
        log_admin_action(db, admin_id, "reports", f"{target.value.title()} report {report_id}", note)
    logger.info("Report %s %s by admin %s", report_id, target.value.lower(), admin_id)
    return get_report_by_id(report_id, connection=db)
