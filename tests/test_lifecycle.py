"""Reservation lifecycle tests."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from growshare.data_access import accounts_dao, points_dao, reservations_dao
from growshare.errors import NotFound, ValidationError
from growshare.models.entities import ReservationStatus


def _pending(river_plot):
    return reservations_dao.get_availability(river_plot.resource_id).reservations[0]


def test_request_to_book_starts_pending_and_awards_renter(app, river_plot, grower):
    with app.app_context():
        reservation = _pending(river_plot)
        assert reservation.status is ReservationStatus.PENDING
        assert reservation.renter_id == grower.account_id
        categories = [event.category for event in points_dao.list_events(grower.account_id)]
        assert categories == [points_dao.BADGE_EARNED, points_dao.BOOKING_CREATED]


def test_approval_awards_owner_and_notifies_renter(app, river_plot, landowner, grower):
    with app.app_context():
        reservation = _pending(river_plot)
        approved = reservations_dao.transition_reservation(
            reservation.reservation_id, "APPROVED", landowner.account_id
        )
        assert approved.status is ReservationStatus.APPROVED
        assert accounts_dao.get_account_by_id(landowner.account_id).total_points == 165
        feed = points_dao.list_activities(account_id=grower.account_id, activity_type="BOOKING_APPROVED")
        assert len(feed) == 1


def test_terminal_states_are_final(app, river_plot, landowner):
    with app.app_context():
        reservation = _pending(river_plot)
        reservations_dao.transition_reservation(reservation.reservation_id, "REJECTED", landowner.account_id)
        with pytest.raises(ValidationError):
            reservations_dao.transition_reservation(reservation.reservation_id, "APPROVED", landowner.account_id)


def test_pending_cannot_skip_to_completed(app, river_plot, landowner):
    with app.app_context():
        reservation = _pending(river_plot)
        with pytest.raises(ValidationError):
            reservations_dao.transition_reservation(reservation.reservation_id, "COMPLETED", landowner.account_id)
        with pytest.raises(ValidationError):
            reservations_dao.transition_reservation(reservation.reservation_id, "bogus", landowner.account_id)


def test_unknown_reservation(app, landowner):
    with app.app_context():
        with pytest.raises(NotFound):
            reservations_dao.transition_reservation(9999, "APPROVED", landowner.account_id)


def test_cancellation_notifies_both_parties(app, tiller, second_grower, tool_owner):
    with app.app_context():
        reservation = reservations_dao.list_reservations_for_renter(second_grower.account_id)[0]
        assert reservation.resource_id == tiller.resource_id
        reservations_dao.transition_reservation(reservation.reservation_id, "CANCELLED", second_grower.account_id)
        for account_id in (second_grower.account_id, tool_owner.account_id):
            feed = points_dao.list_activities(account_id=account_id, activity_type="BOOKING_CANCELLED")
            assert len(feed) == 1


def test_advance_moves_time_driven_states(app, second_grower):
    """The seeded tiller rental starts in five days and ends in seven."""

    with app.app_context():
        today = date.today()
        reservation = reservations_dao.list_reservations_for_renter(second_grower.account_id)[0]
        assert reservation.status is ReservationStatus.APPROVED

        assert reservations_dao.advance_reservations(today) == {"expired": 0, "activated": 0, "completed": 0}
        assert reservations_dao.advance_reservations(today + timedelta(days=5)) == {"expired": 0, "activated": 1, "completed": 0}
        assert reservations_dao.get_reservation_by_id(reservation.reservation_id).status is ReservationStatus.ACTIVE
        assert reservations_dao.advance_reservations(today + timedelta(days=7)) == {"expired": 0, "activated": 0, "completed": 1}
        assert reservations_dao.has_completed_reservation(reservation.resource_id, second_grower.account_id)


def test_owner_listing_filters_by_status(app, landowner):
    with app.app_context():
        assert len(reservations_dao.list_reservations_for_owner(landowner.account_id)) == 1
        assert reservations_dao.list_reservations_for_owner(landowner.account_id, "APPROVED") == []


def test_completed_reservation_is_final(app, second_grower, tool_owner):
    with app.app_context():
        reservation = reservations_dao.list_reservations_for_renter(second_grower.account_id)[0]
        reservations_dao.advance_reservations(date.today() + timedelta(days=5))
        reservations_dao.advance_reservations(date.today() + timedelta(days=7))
        with pytest.raises(ValidationError):
            reservations_dao.transition_reservation(reservation.reservation_id, "CANCELLED", tool_owner.account_id)


def test_unanswered_request_expires_on_start_date(app, river_plot, grower, second_grower):
    """The seeded river plot request starts in thirty days and is never answered."""

    with app.app_context():
        today = date.today()
        pending = _pending(river_plot)
        assert reservations_dao.advance_reservations(today + timedelta(days=29))["expired"] == 0

        result = reservations_dao.advance_reservations(today + timedelta(days=30))
        assert result["expired"] == 1
        assert reservations_dao.get_reservation_by_id(pending.reservation_id).status is ReservationStatus.REJECTED
        assert reservations_dao.get_availability(river_plot.resource_id).reservations == []
        feed = points_dao.list_activities(account_id=grower.account_id, activity_type="BOOKING_EXPIRED")
        assert len(feed) == 1

        replacement = reservations_dao.create_reservation(
            river_plot.resource_id,
            second_grower.account_id,
            today + timedelta(days=40),
            today + timedelta(days=100),
        )
        assert replacement.status is ReservationStatus.PENDING
