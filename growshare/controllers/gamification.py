"""Leaderboard and activity feed."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from ..data_access import points_dao
from .api import int_arg

bp = Blueprint("gamification", __name__)


@bp.route("/leaderboard", methods=["GET"])
def leaderboard():
    limit = int_arg("limit", current_app.config["LEADERBOARD_LIMIT"], maximum=100)
    return jsonify(points_dao.leaderboard(limit or current_app.config["LEADERBOARD_LIMIT"]))


@bp.route("/activity", methods=["GET"])
def activity_feed():
    """Recent activities, paged with ``limit``/``offset`` and filterable by ``type``."""

    page_size = current_app.config["ACTIVITY_PAGE_SIZE"]
    activities = points_dao.list_activities(
        limit=int_arg("limit", page_size, maximum=100) or page_size,
        offset=int_arg("offset", 0),
        activity_type=(request.args.get("type") or "").upper() or None,
        account_id=int_arg("accountId", 0) or None,
    )
    return jsonify([activity.to_dict() for activity in activities])
