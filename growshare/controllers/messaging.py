"""Direct messaging between accounts."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required
from flask_wtf import FlaskForm
from wtforms import IntegerField, TextAreaField
from wtforms.validators import InputRequired, Length

from ..data_access import accounts_dao, messages_dao
from ..data_access.messages_dao import MAX_MESSAGE_LENGTH
from .api import int_arg, validate_form

bp = Blueprint("messaging", __name__, url_prefix="/messages")


class MessageForm(FlaskForm):
    """Form for sending a message."""

    receiverId = IntegerField("Receiver", validators=[InputRequired(message="receiverId is required.")])
    content = TextAreaField("Message", validators=[InputRequired(), Length(max=MAX_MESSAGE_LENGTH)])


@bp.route("/", methods=["POST"])
@login_required
def send():
    """Send a message, honouring the receiver's block list and permissions."""

    form = MessageForm()
    validate_form(form)
    message = messages_dao.send_message(current_user.account_id, form.receiverId.data, form.content.data)
    return jsonify(message.to_dict()), 201


@bp.route("/", methods=["GET"])
@login_required
def inbox():
    """Conversation partners ordered by most recent activity."""

    partners = messages_dao.list_conversation_partners(current_user.account_id, limit=int_arg("limit", 0) or None)
    for partner in partners:
        account = accounts_dao.get_account_by_id(partner["partnerId"])
        partner["username"] = account.username if account else None
    return jsonify(partners)


@bp.route("/unread-count", methods=["GET"])
@login_required
def unread():
    return jsonify({"unread": messages_dao.unread_count(current_user.account_id)})


@bp.route("/<int:account_id>", methods=["GET"])
@login_required
def conversation(account_id: int):
    """Messages exchanged with another account; incoming ones are marked read."""

    accounts_dao.require_account(account_id)
    messages = messages_dao.get_conversation(current_user.account_id, account_id)
    return jsonify([message.to_dict() for message in messages])
