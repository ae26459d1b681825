"""Reservation workflow blueprint."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from flask_wtf import FlaskForm
from wtforms import DateField, FloatField, IntegerField, SelectField, StringField
from wtforms.validators import InputRequired, Length, NumberRange, Optional

from ..authz import Action, authorize
from ..data_access import moderation_dao, reservations_dao, resources_dao
from ..errors import ValidationError
from ..models.entities import ReservationStatus
from .api import validate_form

bp = Blueprint("reservations", __name__, url_prefix="/reservations")


class ReservationRequestForm(FlaskForm):
    """Request to reserve a resource from ``start`` to ``end``."""

    resourceId = IntegerField("Resource", validators=[InputRequired(message="resourceId is required.")])
    start = DateField("Start", format="%Y-%m-%d", validators=[InputRequired(message="Please provide a start date.")])
    end = DateField("End", format="%Y-%m-%d", validators=[InputRequired(message="Please provide an end date.")])
    message = StringField("Message", validators=[Optional(), Length(max=1000)])


class StatusForm(FlaskForm):
    status = SelectField(
        "Status",
        choices=[(status.value, status.value.title()) for status in ReservationStatus],
        validators=[InputRequired()],
    )


class DisputeForm(FlaskForm):
    """Dispute details raised by a party to the booking."""

    reason = StringField("Reason", validators=[InputRequired(), Length(max=150)])
    description = StringField("Description", validators=[InputRequired(), Length(max=4000)])
    requestedAmount = FloatField("Requested amount", validators=[Optional(), NumberRange(min=0)])


def _serialize(reservation) -> dict:
    payload = reservation.to_dict()
    resource = resources_dao.get_resource_by_id(reservation.resource_id, include_unpublished=True)
    if resource is not None:
        payload["resource"] = {"id": resource.resource_id, "title": resource.title, "ownerId": resource.owner_id}
    return payload


@bp.route("/", methods=["POST"])
@login_required
def create():
    """Create a reservation for a resource."""

    form = ReservationRequestForm()
    validate_form(form)
    reservation = reservations_dao.create_reservation(
        form.resourceId.data,
        current_user.account_id,
        form.start.data,
        form.end.data,
        message=form.message.data or None,
    )
    return jsonify(_serialize(reservation)), 201


@bp.route("/", methods=["GET"])
@login_required
def list_reservations():
    """Reservations the current account made, or received with ``?as=owner``."""

    perspective = request.args.get("as", "renter")
    if perspective == "owner":
        status = (request.args.get("status") or "").upper() or None
        items = reservations_dao.list_reservations_for_owner(current_user.account_id, status)
    elif perspective == "renter":
        items = reservations_dao.list_reservations_for_renter(current_user.account_id)
    else:
        raise ValidationError("as must be renter or owner.")
    return jsonify([_serialize(reservation) for reservation in items])


@bp.route("/<int:reservation_id>", methods=["GET"])
@login_required
def detail(reservation_id: int):
    reservation = reservations_dao.require_reservation(reservation_id)
    resource = resources_dao.require_resource(reservation.resource_id)
    authorize(current_user, Action.VIEW_RESERVATION, owners=[reservation.renter_id, resource.owner_id])
    payload = _serialize(reservation)
    dispute = moderation_dao.get_dispute_for_reservation(reservation_id)
    payload["dispute"] = dispute.to_dict() if dispute else None
    return jsonify(payload)


@bp.route("/<int:reservation_id>", methods=["PATCH"])
@login_required
def update_status(reservation_id: int):
    """Approve, reject, or cancel a reservation.

    Owners (and admins) decide pending requests; either party may cancel.
    """

    form = StatusForm()
    validate_form(form)
    target = ReservationStatus(form.status.data)
    reservation = reservations_dao.require_reservation(reservation_id)
    resource = resources_dao.require_resource(reservation.resource_id)
    if target in (ReservationStatus.APPROVED, ReservationStatus.REJECTED):
        authorize(current_user, Action.DECIDE_RESERVATION, owners=[resource.owner_id])
    elif target is ReservationStatus.CANCELLED:
        authorize(current_user, Action.CANCEL_RESERVATION, owners=[reservation.renter_id, resource.owner_id])
    else:
        raise ValidationError(f"Status {target.value} is applied automatically.")

    updated = reservations_dao.transition_reservation(reservation_id, target, current_user.account_id)
    current_app.logger.info(
        "Account %s set reservation %s to %s", current_user.account_id, reservation_id, target.value
    )
    return jsonify(_serialize(updated))


@bp.route("/<int:reservation_id>/dispute", methods=["POST"])
@login_required
def file_dispute(reservation_id: int):
    """Open a dispute on a reservation."""

    reservation = reservations_dao.require_reservation(reservation_id)
    resource = resources_dao.require_resource(reservation.resource_id)
    authorize(current_user, Action.FILE_DISPUTE, owners=[reservation.renter_id, resource.owner_id])
    form = DisputeForm()
    validate_form(form)
    dispute = moderation_dao.file_dispute(
        reservation_id,
        current_user.account_id,
        form.reason.data,
        form.description.data,
        form.requestedAmount.data,
    )
    return jsonify(dispute.to_dict()), 201
