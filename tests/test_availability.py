"""Availability query and blackout tests."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from growshare.data_access import blackouts_dao, reservations_dao, resources_dao
from growshare.errors import ConflictError, NotFound, ValidationError
from growshare.models.entities import ReservationStatus


def test_default_window_lists_seeded_holds(app, river_plot):
    """Without bounds the window runs from today over the configured horizon."""

    with app.app_context():
        availability = reservations_dao.get_availability(river_plot.resource_id)
        assert availability.window_start == date.today()
        assert availability.window_end == date.today() + timedelta(days=365)
        assert [r.status for r in availability.reservations] == [ReservationStatus.PENDING]
        assert len(availability.blackout_ranges) == 1
        assert not availability.available


def test_window_touching_reservation_end_is_unavailable(app, river_plot):
    """A window starting on the day a reservation ends still intersects it."""

    with app.app_context():
        reservation_end = date.today() + timedelta(days=90)
        touching = reservations_dao.get_availability(
            river_plot.resource_id, reservation_end, reservation_end + timedelta(days=10)
        )
        assert len(touching.reservations) == 1
        assert not touching.available

        after = reservations_dao.get_availability(
            river_plot.resource_id, reservation_end + timedelta(days=1), reservation_end + timedelta(days=10)
        )
        assert after.reservations == []
        assert after.available


def test_terminal_reservations_are_omitted(app, river_plot, landowner):
    with app.app_context():
        pending = reservations_dao.get_availability(river_plot.resource_id).reservations[0]
        reservations_dao.transition_reservation(pending.reservation_id, "REJECTED", landowner.account_id)
        assert reservations_dao.get_availability(river_plot.resource_id).reservations == []


def test_unknown_resource_is_not_found(app):
    with app.app_context():
        with pytest.raises(NotFound):
            reservations_dao.get_availability(424242)


def test_inverted_window_rejected(app, river_plot):
    with app.app_context():
        with pytest.raises(ValidationError):
            reservations_dao.get_availability(river_plot.resource_id, "2030-02-01", "2030-01-01")


def test_blackout_cannot_cover_live_reservation(app, river_plot):
    with app.app_context():
        today = date.today()
        with pytest.raises(ConflictError):
            blackouts_dao.create_blackout(river_plot.resource_id, today + timedelta(days=40), today + timedelta(days=45))


def test_blackout_round_trip(app, orchard_plot):
    with app.app_context():
        blackout = blackouts_dao.create_blackout(orchard_plot.resource_id, "2030-04-01", "2030-04-15", "Pruning")
        listed = blackouts_dao.list_blackouts(orchard_plot.resource_id)
        assert [b.blackout_id for b in listed] == [blackout.blackout_id]
        assert blackout.reason == "Pruning"

        blackouts_dao.delete_blackout(orchard_plot.resource_id, blackout.blackout_id)
        assert blackouts_dao.list_blackouts(orchard_plot.resource_id) == []
        with pytest.raises(NotFound):
            blackouts_dao.delete_blackout(orchard_plot.resource_id, blackout.blackout_id)


def test_search_excludes_unavailable_listings(app, river_plot, orchard_plot):
    with app.app_context():
        today = date.today()
        start = (today + timedelta(days=40)).isoformat()
        end = (today + timedelta(days=50)).isoformat()
        found = {r.resource_id for r in resources_dao.search_resources(start_date=start, end_date=end)}
        assert river_plot.resource_id not in found
        assert orchard_plot.resource_id in found


def test_search_filters_and_sorting(app, tiller, draft_plot):
    with app.app_context():
        tools = resources_dao.search_resources(kind="tool")
        assert [r.resource_id for r in tools] == [tiller.resource_id]

        by_price = resources_dao.search_resources(sort="price")
        rates = [r.rate for r in by_price]
        assert rates == sorted(rates)
        assert draft_plot.resource_id not in {r.resource_id for r in by_price}

        assert resources_dao.search_resources(keyword="orchard")[0].title == "Hilltop Orchard Rows"


def test_blackout_only_window_is_unavailable(app, orchard_plot):
    with app.app_context():
        blackouts_dao.create_blackout(orchard_plot.resource_id, "2030-08-01", "2030-08-20")
        availability = reservations_dao.get_availability(orchard_plot.resource_id, "2030-08-10", "2030-09-01")
        assert availability.reservations == []
        assert len(availability.blackout_ranges) == 1
        assert not availability.available


def test_search_excludes_listing_touching_window(app, tiller, grower):
    with app.app_context():
        reservations_dao.create_reservation(tiller.resource_id, grower.account_id, "2030-06-01", "2030-06-10")
        touching = resources_dao.search_resources(kind="tool", start_date="2030-06-10", end_date="2030-06-12")
        assert tiller.resource_id not in {r.resource_id for r in touching}
        later = resources_dao.search_resources(kind="tool", start_date="2030-06-11", end_date="2030-06-12")
        assert tiller.resource_id in {r.resource_id for r in later}


@pytest.mark.parametrize(
    "start, end",
    [
        ("2030-6-5", "2030-6-8"),
        ("soon", "2030-06-08"),
        ("2030-06-08", "2030-06-05"),
        ("2030-06-05", None),
        (None, "2030-06-08"),
    ],
)
def test_search_rejects_bad_windows(app, tiller, grower, start, end):
    with app.app_context():
        reservations_dao.create_reservation(tiller.resource_id, grower.account_id, "2030-06-01", "2030-06-10")
        with pytest.raises(ValidationError):
            resources_dao.search_resources(start_date=start, end_date=end)
