"""Follow, block, and profile visibility tests."""

from __future__ import annotations

import pytest

from growshare.data_access import accounts_dao, messages_dao, privacy, social_dao
from growshare.errors import ConflictError, NotFound, ValidationError


def test_follow_awards_followee_once(app, grower, landowner):
    with app.app_context():
        social_dao.follow(grower.account_id, landowner.account_id)
        assert social_dao.is_following(grower.account_id, landowner.account_id)
        assert accounts_dao.get_account_by_id(landowner.account_id).total_points == 155

        with pytest.raises(ConflictError):
            social_dao.follow(grower.account_id, landowner.account_id)
        assert accounts_dao.get_account_by_id(landowner.account_id).total_points == 155
        assert social_dao.follow_counts(landowner.account_id) == {"followers": 1, "following": 0}


def test_follow_edge_cases(app, grower):
    with app.app_context():
        with pytest.raises(ValidationError):
            social_dao.follow(grower.account_id, grower.account_id)
        with pytest.raises(NotFound):
            social_dao.follow(grower.account_id, 9999)
        with pytest.raises(ValidationError):
            social_dao.unfollow(grower.account_id, 9999)


def test_block_removes_follows_both_ways(app, grower, second_grower):
    with app.app_context():
        social_dao.follow(grower.account_id, second_grower.account_id)
        social_dao.follow(second_grower.account_id, grower.account_id)
        social_dao.block(grower.account_id, second_grower.account_id)

        assert not social_dao.is_following(grower.account_id, second_grower.account_id)
        assert not social_dao.is_following(second_grower.account_id, grower.account_id)
        assert social_dao.has_blocked(grower.account_id, second_grower.account_id)
        assert not social_dao.has_blocked(second_grower.account_id, grower.account_id)

        social_dao.unblock(grower.account_id, second_grower.account_id)
        assert not social_dao.has_blocked(grower.account_id, second_grower.account_id)


def test_public_profile_visible_to_anonymous(app, landowner):
    with app.app_context():
        assert privacy.can_view_profile(None, landowner).allowed


def test_private_profile_cascade(app, grower, second_grower, landowner):
    with app.app_context():
        private = accounts_dao.update_privacy(grower.account_id, profile_visibility="PRIVATE")

        assert privacy.can_view_profile(None, private).reason == "login_required"
        assert privacy.can_view_profile(grower.account_id, private).allowed
        assert privacy.can_view_profile(second_grower.account_id, private).reason == "private"
        # Gus requested Lena's riverside plot, so they share a reservation.
        assert privacy.can_view_profile(landowner.account_id, private).allowed

        messages_dao.send_message(second_grower.account_id, grower.account_id, "Hello neighbour")
        assert privacy.can_view_profile(second_grower.account_id, private).allowed


def test_blocked_viewer_cannot_see_private_profile(app, grower, landowner):
    with app.app_context():
        private = accounts_dao.update_privacy(grower.account_id, profile_visibility="PRIVATE")
        social_dao.block(grower.account_id, landowner.account_id)
        decision = privacy.can_view_profile(landowner.account_id, private)
        assert not decision.allowed
        assert decision.to_dict() == {"canView": False, "reason": "blocked"}


def test_privacy_values_validated(app, grower):
    with app.app_context():
        with pytest.raises(ValidationError):
            accounts_dao.update_privacy(grower.account_id, profile_visibility="FRIENDS")
        with pytest.raises(ValidationError):
            accounts_dao.update_privacy(grower.account_id, allow_messages="SOMETIMES")


def test_username_rules(app, grower, second_grower):
    with app.app_context():
        assert accounts_dao.update_username(grower.account_id, "gus_the_grower").username == "gus_the_grower"
        with pytest.raises(ValidationError):
            accounts_dao.update_username(grower.account_id, "no spaces allowed")
        with pytest.raises(ConflictError):
            accounts_dao.update_username(grower.account_id, second_grower.username)


def test_first_sight_provisioning(app):
    with app.app_context():
        account = accounts_dao.ensure_account("oidc|new", {"email": "gus@elsewhere.test"})
        assert account.username == "gus"
        assert accounts_dao.ensure_account("oidc|new").account_id == account.account_id

        other = accounts_dao.ensure_account("oidc|other", {"email": "gus@another.test"})
        assert other.username == "gus1"
