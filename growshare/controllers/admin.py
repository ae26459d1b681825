"""Administrative dashboard and moderation routes."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user
from flask_wtf import FlaskForm
from wtforms import SelectField, StringField
from wtforms.validators import InputRequired, Length, Optional

from ..data_access import accounts_dao, moderation_dao, resources_dao
from ..data_access.db import get_db, query_one
from ..errors import ValidationError
from ..models.entities import Role
from .api import validate_form
from .auth import admin_required

bp = Blueprint("admin", __name__, url_prefix="/admin")

CASE_STATUSES = {"PENDING", "RESOLVED", "DISMISSED"}


class CaseDecisionForm(FlaskForm):
    """Outcome for a report or dispute."""

    status = SelectField(
        "Status",
        choices=[("RESOLVED", "Resolved"), ("DISMISSED", "Dismissed")],
        validators=[InputRequired()],
    )
    note = StringField("Resolution note", validators=[Optional(), Length(max=2000)])


def _status_filter() -> str | None:
    status = (request.args.get("status") or "").upper() or None
    if status is not None and status not in CASE_STATUSES:
        raise ValidationError("status must be PENDING, RESOLVED, or DISMISSED.")
    return status


def _optional_bool(payload: dict, key: str) -> bool | None:
    if key not in payload or payload[key] is None:
        return None
    if not isinstance(payload[key], bool):
        raise ValidationError(f"{key} must be true or false.")
    return payload[key]


@bp.route("/", methods=["GET"])
@admin_required
def dashboard():
    """Headline counts for the moderation queue."""

    db = get_db()
    row = query_one(
        db,
        """
        SELECT
            (SELECT COUNT(*) FROM accounts) AS accounts,
            (SELECT COUNT(*) FROM resources WHERE status = 'published') AS published_resources,
            (SELECT COUNT(*) FROM reservations WHERE status IN ('PENDING', 'APPROVED', 'ACTIVE')) AS live_reservations,
            (SELECT COUNT(*) FROM reports WHERE status = 'PENDING') AS pending_reports,
            (SELECT COUNT(*) FROM disputes WHERE status = 'PENDING') AS pending_disputes
        """,
    )
    return jsonify(
        {
            "accounts": row["accounts"],
            "publishedResources": row["published_resources"],
            "liveReservations": row["live_reservations"],
            "pendingReports": row["pending_reports"],
            "pendingDisputes": row["pending_disputes"],
        }
    )


@bp.route("/accounts", methods=["GET"])
@admin_required
def accounts():
    return jsonify([account.to_private_dict() for account in accounts_dao.list_accounts()])


@bp.route("/accounts/<int:account_id>", methods=["PATCH"])
@admin_required
def update_account(account_id: int):
    """Change roles, verification flags, or the active flag of an account.

    Body keys are optional: ``roles`` (list of names), ``verification``
    (``email``/``phone``/``governmentId`` booleans), and ``active``.
    """

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Expected a JSON request body.")
    accounts_dao.require_account(account_id)
    admin_id = current_user.account_id

    if "roles" in payload:
        if not isinstance(payload["roles"], list):
            raise ValidationError("roles must be a list of role names.")
        try:
            roles = Role.parse(payload["roles"])
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if account_id == admin_id and Role.ADMIN not in roles:
            raise ValidationError("You cannot remove your own administrator role.")
        accounts_dao.set_roles(account_id, roles, admin_id)

    verification = payload.get("verification")
    if verification is not None:
        if not isinstance(verification, dict):
            raise ValidationError("verification must be an object.")
        accounts_dao.set_verification(
            account_id,
            admin_id,
            email=_optional_bool(verification, "email"),
            phone=_optional_bool(verification, "phone"),
            government_id=_optional_bool(verification, "governmentId"),
        )

    active = _optional_bool(payload, "active")
    if active is False:
        if account_id == admin_id:
            raise ValidationError("You cannot deactivate your own account.")
        accounts_dao.deactivate_account(account_id)
    elif active is True:
        accounts_dao.activate_account(account_id)

    current_app.logger.info("Admin %s updated account %s", admin_id, account_id)
    return jsonify(accounts_dao.require_account(account_id).to_private_dict())


@bp.route("/resources/<int:resource_id>/archive", methods=["POST"])
@admin_required
def archive_resource(resource_id: int):
    resources_dao.require_resource(resource_id)
    resources_dao.set_status(resource_id, "archived")
    return jsonify(resources_dao.require_resource(resource_id).to_dict())


@bp.route("/reports", methods=["GET"])
@admin_required
def reports():
    return jsonify([report.to_dict() for report in moderation_dao.list_reports(_status_filter())])


@bp.route("/reports/<int:report_id>", methods=["POST"])
@admin_required
def decide_report(report_id: int):
    form = CaseDecisionForm()
    validate_form(form)
    report = moderation_dao.close_report(report_id, current_user.account_id, form.status.data, form.note.data or None)
    return jsonify(report.to_dict())


@bp.route("/disputes", methods=["GET"])
@admin_required
def disputes():
    return jsonify([dispute.to_dict() for dispute in moderation_dao.list_disputes(_status_filter())])


@bp.route("/disputes/<int:dispute_id>", methods=["POST"])
@admin_required
def decide_dispute(dispute_id: int):
    """Resolve or dismiss a dispute; both parties are notified."""

    form = CaseDecisionForm()
    validate_form(form)
    dispute = moderation_dao.close_dispute(
        dispute_id, current_user.account_id, form.status.data, form.note.data or None
    )
    return jsonify(dispute.to_dict())
