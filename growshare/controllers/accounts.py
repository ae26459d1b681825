"""Account profile, privacy, and social graph routes."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from flask_login import current_user, login_required
from flask_wtf import FlaskForm
from wtforms import SelectField, StringField
from wtforms.validators import InputRequired, Optional

from ..data_access import accounts_dao, points_dao, privacy, social_dao
from ..errors import Forbidden, NotFound
from .api import int_arg, validate_form
from .auth import optional_account

bp = Blueprint("accounts", __name__, url_prefix="/accounts")


class UsernameForm(FlaskForm):
    username = StringField("Username", validators=[InputRequired(message="Username is required.")])


class PrivacyForm(FlaskForm):
    """Profile visibility and who may start a conversation."""

    profileVisibility = SelectField(
        "Profile visibility",
        choices=[("PUBLIC", "Public"), ("PRIVATE", "Private")],
        validators=[Optional()],
    )
    allowMessages = SelectField(
        "Allow messages",
        choices=[("EVERYONE", "Everyone"), ("FOLLOWERS", "Followers"), ("NONE", "Nobody")],
        validators=[Optional()],
    )


@bp.route("/me", methods=["GET"])
@login_required
def me():
    """The signed-in account with level progress and follow counts."""

    payload = current_user.to_private_dict()
    payload.update(social_dao.follow_counts(current_user.account_id))
    return jsonify(payload)


@bp.route("/me/username", methods=["PATCH"])
@login_required
def change_username():
    form = UsernameForm()
    validate_form(form)
    account = accounts_dao.update_username(current_user.account_id, form.username.data)
    return jsonify(account.to_private_dict())


@bp.route("/me/privacy", methods=["PATCH"])
@login_required
def change_privacy():
    form = PrivacyForm()
    validate_form(form)
    account = accounts_dao.update_privacy(
        current_user.account_id,
        profile_visibility=form.profileVisibility.data or None,
        allow_messages=form.allowMessages.data or None,
    )
    return jsonify(account.to_private_dict())


@bp.route("/me", methods=["DELETE"])
@login_required
def delete_me():
    """Remove the account and everything it owns."""

    account_id = current_user.account_id
    accounts_dao.reset_account(account_id)
    current_app.logger.info("Account %s deleted itself", account_id)
    return jsonify({"success": True})


@bp.route("/me/points", methods=["GET"])
@login_required
def my_points():
    """Ledger entries for the signed-in account, newest first."""

    limit = int_arg("limit", current_app.config["ACTIVITY_PAGE_SIZE"], maximum=100)
    events = points_dao.list_events(current_user.account_id, limit=limit)
    return jsonify(
        {
            "totalPoints": current_user.total_points,
            "level": current_user.level,
            "events": [event.to_dict() for event in events],
        }
    )


@bp.route("/me/achievements", methods=["GET"])
@login_required
def my_achievements():
    """Earned badges, badges still available, and the next one to aim for."""

    return jsonify(points_dao.achievements(current_user.account_id))


def _profile_response(account):
    """A profile, subject to the owner's visibility settings and block list."""

    account_id = account.account_id
    viewer = optional_account()
    decision = privacy.can_view_profile(viewer.account_id if viewer else None, account)
    if not decision.allowed:
        return jsonify(decision.to_dict()), 403
    payload = account.to_public_dict()
    payload.update(social_dao.follow_counts(account_id))
    if viewer is not None and viewer.account_id != account_id:
        payload["isFollowing"] = social_dao.is_following(viewer.account_id, account_id)
    return jsonify(payload)


@bp.route("/<int:account_id>", methods=["GET"])
def profile(account_id: int):
    return _profile_response(accounts_dao.require_account(account_id))


@bp.route("/by-username/<username>", methods=["GET"])
def profile_by_username(username: str):
    account = accounts_dao.get_account_by_username(username)
    if account is None:
        raise NotFound("User not found.")
    return _profile_response(account)


@bp.route("/<int:account_id>/follow", methods=["POST"])
@login_required
def follow(account_id: int):
    if social_dao.has_blocked(account_id, current_user.account_id):
        raise Forbidden("You cannot follow this user.")
    social_dao.follow(current_user.account_id, account_id)
    return jsonify({"following": True}), 201


@bp.route("/<int:account_id>/follow", methods=["DELETE"])
@login_required
def unfollow(account_id: int):
    social_dao.unfollow(current_user.account_id, account_id)
    return jsonify({"following": False})


@bp.route("/<int:account_id>/follow", methods=["GET"])
@login_required
def follow_status(account_id: int):
    accounts_dao.require_account(account_id)
    return jsonify({"following": social_dao.is_following(current_user.account_id, account_id)})


@bp.route("/<int:account_id>/block", methods=["POST"])
@login_required
def block(account_id: int):
    """Block an account; follow edges in both directions are removed."""

    social_dao.block(current_user.account_id, account_id)
    return jsonify({"blocked": True}), 201


@bp.route("/<int:account_id>/block", methods=["DELETE"])
@login_required
def unblock(account_id: int):
    social_dao.unblock(current_user.account_id, account_id)
    return jsonify({"blocked": False})
