"""Badge catalogue and achievement tests."""

from __future__ import annotations

from growshare.data_access import accounts_dao, points_dao
from growshare.data_access.db import get_db, query_one
from growshare.models import badges


def _fresh_account(subject: str = "test|badges"):
    return accounts_dao.create_account(
        subject=subject,
        email=f"{subject.replace('|', '.')}@example.com",
        username=subject.replace("|", "_"),
    )


def _codes(account_id: int) -> list[str]:
    return [item.badge.code for item in points_dao.list_badges(account_id)]


def test_catalogue_is_ordered_by_tier():
    tiers = [badge.tier for badge in badges.catalogue()]
    assert tiers == sorted(tiers, key=badges.TIER_ORDER.index)
    assert len({badge.code for badge in badges.BADGES}) == len(badges.BADGES)


def test_seeded_first_booking_earns_first_steps(app, grower):
    with app.app_context():
        assert _codes(grower.account_id) == ["FIRST_STEPS"]
        event = points_dao.list_events(grower.account_id)[0]
        assert event.category == points_dao.BADGE_EARNED
        assert event.points == badges.BADGES_BY_CODE["FIRST_STEPS"].points
        assert event.metadata == {"badge": "FIRST_STEPS"}


def test_badge_is_granted_once(app, landowner):
    """Two seeded plot listings still hold a single Land Sharer badge."""

    with app.app_context():
        assert _codes(landowner.account_id) == ["LAND_SHARER"]
        row = query_one(
            get_db(),
            "SELECT COUNT(*) AS total FROM points_events WHERE account_id = ? AND category = 'BADGE_EARNED'",
            (landowner.account_id,),
        )
        assert row["total"] == 1


def test_count_badge_waits_for_threshold(app):
    with app.app_context():
        account = _fresh_account()
        for _ in range(4):
            points_dao.award_for(account.account_id, points_dao.REVIEW_CREATED, "Left a review")
        assert _codes(account.account_id) == []

        points_dao.award_for(account.account_id, points_dao.REVIEW_CREATED, "Left a review")
        assert _codes(account.account_id) == ["TRUSTED_REVIEWER"]
        refreshed = accounts_dao.get_account_by_id(account.account_id)
        assert refreshed.total_points == 5 * 10 + 150
        assert points_dao.total_from_events(account.account_id) == refreshed.total_points


def test_level_badge_and_feed_entry(app):
    with app.app_context():
        account = _fresh_account()
        points_dao.award_points(account.account_id, "BONUS", 1600, "Bonus")
        assert _codes(account.account_id) == ["SEASONED_GROWER"]
        assert accounts_dao.get_account_by_id(account.account_id).total_points == 2100

        points_dao.award_points(account.account_id, "BONUS", 10, "Bonus")
        assert _codes(account.account_id) == ["SEASONED_GROWER"]
        feed = points_dao.list_activities(account_id=account.account_id, activity_type="BADGE_EARNED")
        assert [entry.title for entry in feed] == ["Earned Seasoned Grower badge"]


def test_achievements_split_earned_and_available(app, grower):
    with app.app_context():
        summary = points_dao.achievements(grower.account_id)
        assert [badge["id"] for badge in summary["earnedBadges"]] == ["FIRST_STEPS"]
        assert summary["stats"]["totalBadges"] == 1
        assert summary["stats"]["availableBadges"] == len(badges.BADGES) - 1
        assert "FIRST_STEPS" not in {badge["id"] for badge in summary["availableBadges"]}
        assert summary["nextBadge"]["id"] == "LAND_SHARER"
        assert summary["earnedBadges"][0]["tier"] == "bronze"


def test_reset_account_drops_badges(app, grower):
    with app.app_context():
        accounts_dao.reset_account(grower.account_id)
        assert points_dao.list_badges(grower.account_id) == []
