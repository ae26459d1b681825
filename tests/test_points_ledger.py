"""Points ledger tests."""

from __future__ import annotations

import sqlite3

import pytest

from growshare.data_access import accounts_dao, points_dao
from growshare.data_access.db import get_db, query_all, query_one
from growshare.errors import NotFound


def _fresh_account(subject: str = "test|ledger"):
    return accounts_dao.create_account(
        subject=subject,
        email=f"{subject.replace('|', '.')}@example.com",
        username=subject.replace("|", "_"),
    )


def test_events_accumulate_into_total_and_level(app):
    """25 then 250 points leaves a total of 275 at level 2."""

    with app.app_context():
        account = _fresh_account()
        points_dao.award_points(account.account_id, "BONUS", 25, "Welcome bonus")
        points_dao.award_points(account.account_id, "BONUS", 250, "Bonus")

        refreshed = accounts_dao.get_account_by_id(account.account_id)
        assert refreshed.total_points == 275
        assert refreshed.level == 2
        assert points_dao.total_from_events(account.account_id) == 275


def test_level_up_writes_activity(app):
    with app.app_context():
        account = _fresh_account()
        points_dao.award_points(account.account_id, "BONUS", 120, "Bonus")
        types = [activity.type for activity in points_dao.list_activities(account_id=account.account_id)]
        assert types == ["LEVEL_UP", "BONUS"]


def test_award_for_uses_category_value(app, grower):
    with app.app_context():
        before = accounts_dao.get_account_by_id(grower.account_id).total_points
        event = points_dao.award_for(grower.account_id, points_dao.REVIEW_CREATED, "Left a review")
        assert event.points == points_dao.CATEGORY_POINTS[points_dao.REVIEW_CREATED] == 10
        assert accounts_dao.get_account_by_id(grower.account_id).total_points == before + 10


def test_unknown_account_leaves_no_event(app):
    with app.app_context():
        db = get_db()
        count_before = query_one(db, "SELECT COUNT(*) AS total FROM points_events")["total"]
        with pytest.raises(NotFound):
            points_dao.award_points(99999, "BONUS", 10, "Nobody")
        count_after = query_one(db, "SELECT COUNT(*) AS total FROM points_events")["total"]
        assert count_before == count_after


def test_events_are_append_only(app, grower):
    with app.app_context():
        event = points_dao.award_points(grower.account_id, "BONUS", 5, "Bonus")
        db = get_db()
        with pytest.raises(sqlite3.IntegrityError):
            db.execute("UPDATE points_events SET points = 500 WHERE event_id = ?", (event.event_id,))


def test_cached_total_matches_ledger_for_seed_accounts(app):
    with app.app_context():
        db = get_db()
        for row in query_all(db, "SELECT account_id, total_points FROM accounts"):
            assert points_dao.total_from_events(row["account_id"]) == row["total_points"]


def test_seed_point_totals(app, landowner, tool_owner, grower, second_grower):
    # Two plots plus the Land Sharer badge; instant tool bookings do not award the owner.
    assert landowner.total_points == 150
    assert landowner.level == 2
    assert tool_owner.total_points == 100
    # One booking plus the First Steps badge.
    assert grower.total_points == 125
    assert second_grower.total_points == 125


def test_leaderboard_orders_by_points(app, landowner):
    with app.app_context():
        board = points_dao.leaderboard(limit=3)
        assert [entry["rank"] for entry in board] == [1, 2, 3]
        assert board[0]["accountId"] == landowner.account_id
        totals = [entry["totalPoints"] for entry in board]
        assert totals == sorted(totals, reverse=True)


def test_leaderboard_skips_inactive_accounts(app, landowner):
    with app.app_context():
        accounts_dao.deactivate_account(landowner.account_id)
        board = points_dao.leaderboard()
        assert landowner.account_id not in {entry["accountId"] for entry in board}
