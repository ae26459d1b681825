"""Reviews blueprint for feedback on resources."""

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_login import current_user, login_required
from flask_wtf import FlaskForm
from wtforms import IntegerField, TextAreaField
from wtforms.validators import InputRequired, Length, NumberRange

from ..data_access import resources_dao, reviews_dao
from ..errors import NotFound
from .api import validate_form

bp = Blueprint("reviews", __name__, url_prefix="/reviews")


class ReviewForm(FlaskForm):
    """Form capturing a rating and narrative feedback."""

    rating = IntegerField(
        "Rating",
        validators=[InputRequired(), NumberRange(min=1, max=5, message="Rating must be between 1 and 5.")],
    )
    comment = TextAreaField("Comment", validators=[InputRequired(), Length(max=1000)])


@bp.route("/<int:resource_id>", methods=["POST"])
@login_required
def submit(resource_id: int):
    """Accept a review if the account completed a booking."""

    if resources_dao.get_resource_by_id(resource_id) is None:
        raise NotFound("Plot not found.")
    form = ReviewForm()
    validate_form(form)
    review = reviews_dao.create_review(
        resource_id=resource_id,
        reviewer_id=current_user.account_id,
        rating=form.rating.data,
        comment=form.comment.data,
    )
    return jsonify(review.to_dict()), 201


@bp.route("/<int:resource_id>", methods=["GET"])
def list_for_resource(resource_id: int):
    resources_dao.require_resource(resource_id)
    return jsonify(
        {
            "averageRating": reviews_dao.average_rating(resource_id),
            "reviews": [review.to_dict() for review in reviews_dao.list_reviews_for_resource(resource_id)],
        }
    )
