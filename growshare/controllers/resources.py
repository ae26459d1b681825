"""Resource listing, availability, and blackout routes."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from flask_wtf import FlaskForm
from wtforms import BooleanField, DateField, FloatField, IntegerField, SelectField, StringField
from wtforms.validators import InputRequired, Length, NumberRange, Optional

from ..authz import Action, authorize, can
from ..data_access import blackouts_dao, reservations_dao, resources_dao, reviews_dao
from ..errors import NotFound
from .api import validate_form
from .auth import optional_account

bp = Blueprint("resources", __name__, url_prefix="/resources")

SORT_OPTIONS = {"recent", "top-rated", "price"}


class ResourceForm(FlaskForm):
    """Payload for listing a plot or tool."""

    kind = SelectField("Kind", choices=[("plot", "Plot"), ("tool", "Tool")], validators=[InputRequired()])
    title = StringField("Title", validators=[InputRequired(), Length(max=150)])
    description = StringField("Description", validators=[Optional(), Length(max=2000)])
    location = StringField("Location", validators=[Optional(), Length(max=150)])
    rate = FloatField("Rate", validators=[InputRequired(), NumberRange(min=0)])
    minimumDuration = IntegerField("Minimum duration", validators=[Optional(), NumberRange(min=1)], default=1)
    instantBook = BooleanField("Instant book")
    status = SelectField(
        "Status",
        choices=[("draft", "Draft"), ("published", "Published")],
        validators=[Optional()],
        default="published",
    )


class ResourceUpdateForm(FlaskForm):
    """Partial update of a listing."""

    title = StringField("Title", validators=[Optional(), Length(max=150)])
    description = StringField("Description", validators=[Optional(), Length(max=2000)])
    location = StringField("Location", validators=[Optional(), Length(max=150)])
    rate = FloatField("Rate", validators=[Optional(), NumberRange(min=0)])
    minimumDuration = IntegerField("Minimum duration", validators=[Optional(), NumberRange(min=1)])
    instantBook = BooleanField("Instant book", validators=[Optional()])
    status = SelectField(
        "Status",
        choices=[("draft", "Draft"), ("published", "Published"), ("archived", "Archived")],
        validators=[Optional()],
    )


class BlackoutForm(FlaskForm):
    """Owner-declared unavailable window."""

    start = DateField("Start", format="%Y-%m-%d", validators=[InputRequired()])
    end = DateField("End", format="%Y-%m-%d", validators=[InputRequired()])
    reason = StringField("Reason", validators=[Optional(), Length(max=255)])


def _visible_resource(resource_id: int):
    """Published listings for everyone; drafts and archives for their owner or admins."""

    resource = resources_dao.require_resource(resource_id)
    if resource.status != "published" and not can(
        optional_account(), Action.EDIT_RESOURCE, owners=[resource.owner_id]
    ):
        raise NotFound("Plot not found.")
    return resource


@bp.route("/", methods=["GET"])
def list_resources():
    """Search published listings."""

    sort = (request.args.get("sort") or "recent").strip()
    if sort not in SORT_OPTIONS:
        sort = "recent"
    resources = resources_dao.search_resources(
        keyword=(request.args.get("q") or "").strip() or None,
        kind=(request.args.get("kind") or "").strip() or None,
        location=(request.args.get("location") or "").strip() or None,
        start_date=(request.args.get("start") or "").strip() or None,
        end_date=(request.args.get("end") or "").strip() or None,
        sort=sort,
    )
    return jsonify([resource.to_dict() for resource in resources])


@bp.route("/mine", methods=["GET"])
@login_required
def my_resources():
    """List listings owned by the current account."""

    items = resources_dao.list_resources_for_owner(current_user.account_id)
    return jsonify([resource.to_dict() for resource in items])


@bp.route("/", methods=["POST"])
@login_required
def create_resource():
    """List a new plot or tool."""

    form = ResourceForm()
    validate_form(form)
    resource = resources_dao.create_resource(
        owner_id=current_user.account_id,
        kind=form.kind.data,
        title=form.title.data,
        description=form.description.data or "",
        location=form.location.data or "",
        rate=form.rate.data,
        minimum_duration=form.minimumDuration.data or 1,
        instant_book=form.instantBook.data,
        status=form.status.data or "published",
    )
    current_app.logger.info("Account %s listed resource %s", current_user.account_id, resource.resource_id)
    return jsonify(resource.to_dict()), 201


@bp.route("/<int:resource_id>", methods=["GET"])
def detail(resource_id: int):
    """Show a listing with its reviews."""

    resource = _visible_resource(resource_id)
    payload = resource.to_dict()
    payload["reviews"] = [review.to_dict() for review in reviews_dao.list_reviews_for_resource(resource_id)]
    return jsonify(payload)


@bp.route("/<int:resource_id>", methods=["PATCH"])
@login_required
def edit(resource_id: int):
    """Edit an existing listing."""

    resource = resources_dao.require_resource(resource_id)
    authorize(current_user, Action.EDIT_RESOURCE, owners=[resource.owner_id])
    form = ResourceUpdateForm()
    validate_form(form)
    payload = request.get_json(silent=True) or {}
    resources_dao.update_resource(
        resource_id,
        title=form.title.data or None,
        description=form.description.data if "description" in payload else None,
        location=form.location.data if "location" in payload else None,
        rate=form.rate.data,
        minimum_duration=form.minimumDuration.data,
        instant_book=form.instantBook.data if "instantBook" in payload else None,
        status=form.status.data or None,
    )
    return jsonify(resources_dao.require_resource(resource_id).to_dict())


@bp.route("/<int:resource_id>/availability", methods=["GET"])
def availability(resource_id: int):
    """Reservations and blackout ranges touching ``start`` through ``end``."""

    _visible_resource(resource_id)
    result = reservations_dao.get_availability(
        resource_id,
        start=request.args.get("start") or None,
        end=request.args.get("end") or None,
        horizon_days=current_app.config["AVAILABILITY_HORIZON_DAYS"],
    )
    resource = result.resource
    return jsonify(
        {
            "resource": {
                "id": resource.resource_id,
                "title": resource.title,
                "kind": resource.kind,
                "rate": resource.rate,
                "minimumDuration": resource.minimum_duration,
                "instantBook": resource.instant_book,
            },
            "window": {"start": result.window_start.isoformat(), "end": result.window_end.isoformat()},
            "available": result.available,
            "reservations": [
                {
                    "id": reservation.reservation_id,
                    "start": reservation.start_date.isoformat(),
                    "end": reservation.end_date.isoformat(),
                    "status": reservation.status.value,
                }
                for reservation in result.reservations
            ],
            "blackoutRanges": [blackout.to_dict() for blackout in result.blackout_ranges],
        }
    )


@bp.route("/<int:resource_id>/blackouts", methods=["GET"])
def list_blackouts(resource_id: int):
    _visible_resource(resource_id)
    return jsonify([blackout.to_dict() for blackout in blackouts_dao.list_blackouts(resource_id)])


@bp.route("/<int:resource_id>/blackouts", methods=["POST"])
@login_required
def add_blackout(resource_id: int):
    """Block a window on the owner's calendar."""

    resource = resources_dao.require_resource(resource_id)
    authorize(current_user, Action.MANAGE_BLACKOUTS, owners=[resource.owner_id])
    form = BlackoutForm()
    validate_form(form)
    blackout = blackouts_dao.create_blackout(resource_id, form.start.data, form.end.data, form.reason.data)
    return jsonify(blackout.to_dict()), 201


@bp.route("/<int:resource_id>/blackouts/<int:blackout_id>", methods=["DELETE"])
@login_required
def remove_blackout(resource_id: int, blackout_id: int):
    """Unblock a window."""

    resource = resources_dao.require_resource(resource_id)
    authorize(current_user, Action.MANAGE_BLACKOUTS, owners=[resource.owner_id])
    blackouts_dao.delete_blackout(resource_id, blackout_id)
    return jsonify({"success": True})
