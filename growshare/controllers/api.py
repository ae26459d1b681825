"""Helpers shared by the JSON blueprints."""

from __future__ import annotations

from typing import Optional

from flask import request
from flask_wtf import FlaskForm

from ..errors import ValidationError


def validate_form(form: FlaskForm) -> None:
    """Raise ValidationError with the first field error when ``form`` is invalid."""

    if form.validate_on_submit():
        return
    if not request.is_json and not request.form:
        raise ValidationError("Expected a JSON request body.")
    for field, errors in form.errors.items():
        for error in errors:
            raise ValidationError(f"{field}: {error}")
    raise ValidationError("Invalid request.")


def int_arg(name: str, default: int, maximum: Optional[int] = None) -> int:
    """Read a non-negative integer query parameter."""

    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be an integer.") from exc
    if value < 0:
        raise ValidationError(f"{name} must not be negative.")
    if maximum is not None:
        value = min(value, maximum)
    return value
