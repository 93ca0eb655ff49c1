import logging

from flask import Blueprint, g, jsonify, render_template, request
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from movie_catalog.api_movies.movies_functions import parse_movie_id, serialize_document
from movie_catalog.api_watchlist.watchlist_functions import build_watchlist_item
from movie_catalog.auth import require_auth
from movie_catalog.errors import AuthenticationError, NotFoundError, ServerError, ValidationError
from movie_catalog.store import get_store, scoping_filter, to_object_id

logger = logging.getLogger(__name__)

watchlist_bp = Blueprint("watchlist", __name__)


@watchlist_bp.route("/watchlist", methods=["GET"])
def watchlist_page():
    """Render the watchlist shell; items are loaded client-side from the API."""
    return render_template("watchlist.html", title="My Watchlist")


@watchlist_bp.route("/api/watchlist", methods=["POST"])
@require_auth()
def add_watchlist_item():
    """
    Handle POST requests that add a movie to the caller's watchlist.

    Returns:
        Response: Created item with 201, the existing item with 200, or error payload.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return ValidationError(details="Request body must be a JSON object").to_response()
    user_id = to_object_id(g.identity.user_id)
    if user_id is None:
        return AuthenticationError().to_response()

    store = get_store()
    movie_id = parse_movie_id(payload.get("movieId"))
    try:
        if movie_id is not None:
            existing = store.watchlist.find_one({"user": user_id, "movieId": movie_id})
            if existing:
                return jsonify(serialize_document(existing))

        movie = None
        if movie_id is not None and not (payload.get("movieTitle") and payload.get("poster_url")):
            movie = store.movies.find_one({"id": movie_id})

        item, error = build_watchlist_item(payload, user_id, movie)
        if error:
            return ValidationError(details=error).to_response()

        try:
            result = store.watchlist.insert_one(item)
        except DuplicateKeyError:
            # a concurrent add won the unique (user, movieId) index
            existing = store.watchlist.find_one({"user": user_id, "movieId": item["movieId"]})
            return jsonify(serialize_document(existing))
    except PyMongoError:
        logger.exception("Error in POST /api/watchlist")
        return ServerError().to_response()

    item["_id"] = result.inserted_id
    return jsonify(serialize_document(item)), 201


@watchlist_bp.route("/api/watchlist", methods=["GET"])
@require_auth()
def list_watchlist():
    """
    Handle GET requests for the caller's watchlist.

    Returns:
        Response: JSON list of the caller's items, newest first.
    """
    user_id = to_object_id(g.identity.user_id)
    if user_id is None:
        return jsonify([])

    try:
        cursor = get_store().watchlist.find({"user": user_id}).sort("created_at", DESCENDING)
        items = [serialize_document(doc) for doc in cursor]
    except PyMongoError:
        logger.exception("Error in GET /api/watchlist")
        return ServerError().to_response()

    return jsonify(items)


@watchlist_bp.route("/api/watchlist/<item_id>", methods=["DELETE"])
@require_auth()
def delete_watchlist_item(item_id: str):
    """
    Handle DELETE requests that remove one of the caller's watchlist items.

    Args:
        item_id (str): Watchlist item identifier from the path.

    Returns:
        Response: Success flag, or 404 when no item of the caller matches.
    """
    item_filter = scoping_filter(item_id, g.identity.user_id)
    if item_filter is None:
        return NotFoundError("Item not found").to_response()

    try:
        result = get_store().watchlist.delete_one(item_filter)
    except PyMongoError:
        logger.exception("Error in DELETE /api/watchlist/%s", item_id)
        return ServerError().to_response()

    if result.deleted_count == 0:
        return NotFoundError("Item not found").to_response()
    return jsonify({"success": True})
