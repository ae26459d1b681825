"""Identity integration: maps gateway-supplied subjects to accounts."""

from __future__ import annotations

from functools import wraps
from typing import Callable

from flask import current_app, jsonify, request
from flask_login import LoginManager, current_user, login_required

from ..authz import Action, authorize
from ..data_access import accounts_dao
from ..models.entities import Account

login_manager = LoginManager()


def _claims_from_headers() -> dict:
    headers = current_app.config["IDENTITY_CLAIM_HEADERS"]
    return {claim: request.headers.get(header) for claim, header in headers.items()}


@login_manager.request_loader
def load_account_from_request(req) -> Account | None:
    """Resolve the identity subject header, provisioning an account on first sight."""

    subject = req.headers.get(current_app.config["IDENTITY_SUBJECT_HEADER"])
    if not subject:
        return None
    account = accounts_dao.ensure_account(subject.strip(), _claims_from_headers())
    if not account.is_active:
        current_app.logger.info("Rejected deactivated account %s", account.account_id)
        return None
    return account


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Unauthorized", "kind": "Unauthorized"}), 401


def optional_account() -> Account | None:
    """The signed-in account, or None for anonymous requests."""

    return current_user if current_user.is_authenticated else None


def admin_required(view: Callable) -> Callable:
    """Decorator enforcing the moderation capability."""

    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        authorize(current_user, Action.MODERATE)
        return view(*args, **kwargs)

    return wrapped
