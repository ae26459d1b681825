"""User-facing reports and dispute listings."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required
from flask_wtf import FlaskForm
from wtforms import IntegerField, SelectField, StringField
from wtforms.validators import InputRequired, Length, Optional

from ..data_access import moderation_dao
from ..data_access.moderation_dao import REPORTABLE_CONTENT
from ..errors import ValidationError
from .api import validate_form

bp = Blueprint("moderation", __name__)

DISPUTE_ROLES = {"all", "filed", "received"}


class ReportForm(FlaskForm):
    """Report a piece of content for review."""

    contentType = SelectField(
        "Content type",
        choices=[(kind, kind.title()) for kind in sorted(REPORTABLE_CONTENT)],
        validators=[InputRequired()],
    )
    contentId = IntegerField("Content", validators=[InputRequired()])
    reason = StringField("Reason", validators=[InputRequired(), Length(max=150)])
    details = StringField("Details", validators=[Optional(), Length(max=2000)])
    reportedAccountId = IntegerField("Reported account", validators=[Optional()])


@bp.route("/reports", methods=["POST"])
@login_required
def file_report():
    form = ReportForm()
    validate_form(form)
    report = moderation_dao.file_report(
        current_user.account_id,
        form.contentType.data,
        form.contentId.data,
        form.reason.data,
        details=form.details.data or None,
        reported_account_id=form.reportedAccountId.data,
    )
    return jsonify(report.to_dict()), 201


@bp.route("/disputes", methods=["GET"])
@login_required
def my_disputes():
    """Disputes the current account filed or received."""

    role = request.args.get("role", "all")
    if role not in DISPUTE_ROLES:
        raise ValidationError("role must be all, filed, or received.")
    status = (request.args.get("status") or "").upper() or None
    disputes = moderation_dao.list_disputes_for_account(current_user.account_id, role, status)
    return jsonify([dispute.to_dict() for dispute in disputes])
