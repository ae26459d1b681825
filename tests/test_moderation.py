"""Reviews, disputes, reports, and admin account actions."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from growshare.data_access import accounts_dao, moderation_dao, points_dao, reservations_dao, reviews_dao
from growshare.data_access.db import get_db, query_all
from growshare.errors import ConflictError, Forbidden, NotFound, ValidationError
from growshare.models.entities import CaseStatus, Role


def _complete_tiller_rental(renter):
    reservation = reservations_dao.list_reservations_for_renter(renter.account_id)[0]
    reservations_dao.advance_reservations(date.today() + timedelta(days=5))
    reservations_dao.advance_reservations(date.today() + timedelta(days=7))
    return reservation


def test_review_requires_completed_booking(app, tiller, grower):
    with app.app_context():
        with pytest.raises(Forbidden):
            reviews_dao.create_review(tiller.resource_id, grower.account_id, 5, "Great tiller")


def test_review_after_completion(app, tiller, second_grower):
    with app.app_context():
        _complete_tiller_rental(second_grower)
        review = reviews_dao.create_review(tiller.resource_id, second_grower.account_id, 4, "Started first pull")
        assert review.rating == 4
        assert reviews_dao.average_rating(tiller.resource_id) == 4
        assert accounts_dao.get_account_by_id(second_grower.account_id).total_points == 135

        with pytest.raises(ConflictError):
            reviews_dao.create_review(tiller.resource_id, second_grower.account_id, 5, "Again")


def test_review_validation(app, tiller, second_grower):
    with app.app_context():
        with pytest.raises(ValidationError):
            reviews_dao.create_review(tiller.resource_id, second_grower.account_id, 6, "Too good")
        with pytest.raises(ValidationError):
            reviews_dao.create_review(tiller.resource_id, second_grower.account_id, 3, "  ")


def test_dispute_flow(app, second_grower, tool_owner, admin, grower):
    with app.app_context():
        reservation = reservations_dao.list_reservations_for_renter(second_grower.account_id)[0]

        with pytest.raises(Forbidden):
            moderation_dao.file_dispute(reservation.reservation_id, grower.account_id, "Damage", "Not my booking")

        dispute = moderation_dao.file_dispute(
            reservation.reservation_id, second_grower.account_id, "Broken tine", "Tiller failed on day one", 35.0
        )
        assert dispute.against_id == tool_owner.account_id
        assert dispute.status is CaseStatus.PENDING
        assert moderation_dao.list_disputes_for_account(tool_owner.account_id, "received")[0].dispute_id == (
            dispute.dispute_id
        )

        with pytest.raises(ConflictError):
            moderation_dao.file_dispute(reservation.reservation_id, tool_owner.account_id, "Late return", "Returned late")

        closed = moderation_dao.close_dispute(dispute.dispute_id, admin.account_id, "RESOLVED", "Refund issued")
        assert closed.status is CaseStatus.RESOLVED
        assert closed.resolved_by == admin.account_id
        with pytest.raises(ConflictError):
            moderation_dao.close_dispute(dispute.dispute_id, admin.account_id, "DISMISSED")

        feed = points_dao.list_activities(account_id=tool_owner.account_id, activity_type="DISPUTE_CLOSED")
        assert len(feed) == 1


def test_report_flow(app, grower, second_grower, admin):
    with app.app_context():
        report = moderation_dao.file_report(grower.account_id, "account", second_grower.account_id, "Spam")
        assert report.reported_account_id == second_grower.account_id
        with pytest.raises(ConflictError):
            moderation_dao.file_report(grower.account_id, "account", second_grower.account_id, "Spam again")
        with pytest.raises(ValidationError):
            moderation_dao.file_report(grower.account_id, "account", grower.account_id, "Myself")
        with pytest.raises(ValidationError):
            moderation_dao.file_report(grower.account_id, "planet", 1, "Unknown")

        with pytest.raises(ValidationError):
            moderation_dao.close_report(report.report_id, admin.account_id, "PENDING")
        closed = moderation_dao.close_report(report.report_id, admin.account_id, "DISMISSED", "No spam found")
        assert closed.status is CaseStatus.DISMISSED
        assert moderation_dao.list_reports("PENDING") == []

        logs = query_all(get_db(), "SELECT action FROM admin_logs WHERE admin_id = ?", (admin.account_id,))
        assert any("report" in row["action"] for row in logs)


def test_admin_account_actions(app, grower, admin):
    with app.app_context():
        updated = accounts_dao.set_roles(grower.account_id, Role.GROWER | Role.LANDOWNER, admin.account_id)
        assert updated.roles.names() == ["GROWER", "LANDOWNER"]

        verified = accounts_dao.set_verification(grower.account_id, admin.account_id, email=True, government_id=True)
        assert verified.email_verified and verified.id_verified and not verified.phone_verified

        accounts_dao.deactivate_account(grower.account_id)
        assert not accounts_dao.get_account_by_id(grower.account_id).is_active
        accounts_dao.activate_account(grower.account_id)
        assert accounts_dao.get_account_by_id(grower.account_id).is_active


def test_reset_account_cascades(app, grower):
    with app.app_context():
        accounts_dao.reset_account(grower.account_id)
        assert accounts_dao.get_account_by_id(grower.account_id) is None
        assert reservations_dao.list_reservations_for_renter(grower.account_id) == []
        assert points_dao.list_events(grower.account_id) == []
        with pytest.raises(NotFound):
            accounts_dao.reset_account(grower.account_id)
