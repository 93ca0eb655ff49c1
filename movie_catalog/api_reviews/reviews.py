import logging
from datetime import datetime, timezone

from flask import Blueprint, g, jsonify, request
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from movie_catalog.api_movies.movies_functions import parse_movie_id, serialize_document
from movie_catalog.api_reviews.reviews_functions import attach_authors, build_review, read_review_fields
from movie_catalog.auth import require_auth
from movie_catalog.errors import AuthenticationError, NotFoundError, ServerError, ValidationError
from movie_catalog.store import get_store, scoping_filter, to_object_id

logger = logging.getLogger(__name__)

reviews_bp = Blueprint("reviews", __name__)


@reviews_bp.route("/api/movies/<movie_id>/reviews", methods=["POST"])
@require_auth()
def create_review(movie_id: str):
    """
    Handle POST requests that add a review to a movie.

    Args:
        movie_id (str): External movie id from the path.

    Returns:
        Response: Created review with 201, or error payload.
    """
    external_id = parse_movie_id(movie_id)
    if external_id is None:
        return ValidationError(details="movie id must be an integer").to_response()

    user_id = to_object_id(g.identity.user_id)
    if user_id is None:
        return AuthenticationError().to_response()

    fields, error = read_review_fields(request.get_json(silent=True))
    if error:
        return ValidationError(details=error).to_response()

    review = build_review(fields, user_id, external_id)
    try:
        result = get_store().reviews.insert_one(review)
    except PyMongoError:
        logger.exception("Error in POST /api/movies/%s/reviews", movie_id)
        return ServerError().to_response()

    review["_id"] = result.inserted_id
    return jsonify(serialize_document(review)), 201


@reviews_bp.route("/api/movies/<movie_id>/reviews", methods=["GET"])
def list_reviews(movie_id: str):
    """
    Handle GET requests for a movie's reviews; open to anyone.

    Args:
        movie_id (str): External movie id from the path.

    Returns:
        Response: JSON list of reviews with their author's email.
    """
    external_id = parse_movie_id(movie_id)
    if external_id is None:
        return jsonify([])

    store = get_store()
    try:
        reviews = list(store.reviews.find({"movieId": external_id}).sort("created_at", DESCENDING))
        reviews = attach_authors(reviews, store.users)
    except PyMongoError:
        logger.exception("Error in GET /api/movies/%s/reviews", movie_id)
        return ServerError().to_response()

    return jsonify([serialize_document(review) for review in reviews])


@reviews_bp.route("/api/reviews/<review_id>", methods=["PUT"])
@require_auth()
def update_review(review_id: str):
    """
    Handle PUT requests that edit one of the caller's reviews.

    A review owned by someone else does not match the scoping filter and is
    reported as not found.

    Args:
        review_id (str): Review identifier from the path.

    Returns:
        Response: Updated review, or error payload.
    """
    fields, error = read_review_fields(request.get_json(silent=True), partial=True)
    if error:
        return ValidationError(details=error).to_response()

    review_filter = scoping_filter(review_id, g.identity.user_id)
    if review_filter is None:
        return NotFoundError("Review not found").to_response()

    fields["updated_at"] = datetime.now(timezone.utc)
    try:
        updated = get_store().reviews.find_one_and_update(
            review_filter,
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError:
        logger.exception("Error in PUT /api/reviews/%s", review_id)
        return ServerError().to_response()

    if not updated:
        return NotFoundError("Review not found").to_response()
    return jsonify(serialize_document(updated))


@reviews_bp.route("/api/reviews/<review_id>", methods=["DELETE"])
@require_auth()
def delete_review(review_id: str):
    """
    Handle DELETE requests that remove one of the caller's reviews.

    Args:
        review_id (str): Review identifier from the path.

    Returns:
        Response: Success flag, or 404 when no review of the caller matches.
    """
    review_filter = scoping_filter(review_id, g.identity.user_id)
    if review_filter is None:
        return NotFoundError("Review not found").to_response()

    try:
        result = get_store().reviews.delete_one(review_filter)
    except PyMongoError:
        logger.exception("Error in DELETE /api/reviews/%s", review_id)
        return ServerError().to_response()

    if result.deleted_count == 0:
        return NotFoundError("Review not found").to_response()
    return jsonify({"success": True})
