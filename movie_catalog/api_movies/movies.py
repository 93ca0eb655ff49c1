import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, redirect, render_template, request, url_for
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from movie_catalog.api_movies.movies_functions import (
    ALL_GENRES,
    build_movie_filter,
    build_pagination,
    build_payload,
    clamp_page,
    count_pages,
    is_displayable,
    map_movie_for_card,
    map_movie_for_detail,
    page_offset,
    parse_limit_param,
    parse_movie_id,
    parse_page,
    serialize_document,
)
from movie_catalog.auth import require_auth
from movie_catalog.errors import NotFoundError, ServerError, ValidationError
from movie_catalog.store import get_store

logger = logging.getLogger(__name__)

movies_bp = Blueprint("movies", __name__)


@movies_bp.route("/", methods=["GET"])
def index():
    return redirect(url_for("movies.list_movies_page"))


@movies_bp.route("/movies", methods=["GET"])
def list_movies_page():
    """
    Handle GET requests for the listing page with search, genre and rating filters.

    Returns:
        Response: Rendered listing page.
    """
    query = request.args.get("q", "")
    genre = request.args.get("genre", "")
    min_rating = request.args.get("minRating", "")
    requested_page = parse_page(request.args.get("page"))
    limit = current_app.config["LISTING_PAGE_SIZE"]

    movies_collection = get_store().movies
    base_filter = build_movie_filter(query, genre, min_rating)

    try:
        total_count = movies_collection.count_documents(base_filter)
        total_pages = count_pages(total_count, limit)
        page = clamp_page(requested_page, total_pages)

        cursor = (
            movies_collection.find(base_filter)
            .sort("popularity", DESCENDING)
            .skip(page_offset(page, limit))
            .limit(limit)
        )
        cards = [map_movie_for_card(doc) for doc in cursor]
    except PyMongoError:
        logger.exception("Error loading movies")
        return render_template("error.html", title="Server error", message="Server error"), 500

    movies = [card for card in cards if is_displayable(card)]

    return render_template(
        "movies.html",
        title="All Movies",
        movies=movies,
        total_movies=total_count,
        query=query,
        genre=genre,
        min_rating=min_rating,
        current_page=page,
        total_pages=total_pages,
        has_prev_page=page > 1,
        has_next_page=page < total_pages,
        prev_page=page - 1 if page > 1 else 1,
        next_page=page + 1 if page < total_pages else max(total_pages, 1),
        pagination=build_pagination(page, total_pages),
        genres=ALL_GENRES,
    )


@movies_bp.route("/movie/<movie_id>", methods=["GET"])
def movie_detail_page(movie_id: str):
    """
    Handle GET requests for a movie detail page.

    Args:
        movie_id (str): External movie id from the path segment.

    Returns:
        Response: Rendered detail page, or the error page with 404.
    """
    external_id = parse_movie_id(movie_id)
    if external_id is None:
        return render_template("error.html", title="Not found", message="Movie not found"), 404

    try:
        document = get_store().movies.find_one({"id": external_id})
    except PyMongoError:
        logger.exception("Error loading movie detail %s", movie_id)
        return render_template("error.html", title="Server error", message="Server error"), 500

    if not document:
        return render_template("error.html", title="Not found", message="Movie not found"), 404

    movie = map_movie_for_detail(document)
    return render_template("movie_detail.html", movie=movie)


@movies_bp.route("/api/movies", methods=["GET"])
def api_list_movies():
    """
    Handle GET requests for the JSON movie listing.

    Pages past the end are not clamped and yield an empty ``data`` list.

    Returns:
        Response: JSON payload with paging metadata.
    """
    page = parse_page(request.args.get("page"))
    per_page = parse_limit_param(
        request.args.get("perPage"),
        current_app.config["API_DEFAULT_PAGE_SIZE"],
        current_app.config["API_MAX_PAGE_SIZE"],
    )
    base_filter = build_movie_filter(
        request.args.get("q"),
        request.args.get("genre"),
        request.args.get("minRating"),
        trusted_posters=True,
    )

    movies_collection = get_store().movies
    try:
        total_count = movies_collection.count_documents(base_filter)
        cursor = (
            movies_collection.find(base_filter)
            .sort("popularity", DESCENDING)
            .skip(page_offset(page, per_page))
            .limit(per_page)
        )
        items = [serialize_document(doc) for doc in cursor]
    except PyMongoError:
        logger.exception("Error in GET /api/movies")
        return ServerError().to_response()

    return jsonify({
        "page": page,
        "perPage": per_page,
        "totalPages": count_pages(total_count, per_page),
        "totalCount": total_count,
        "data": items,
    })


@movies_bp.route("/api/movies/<movie_id>", methods=["GET"])
def api_get_movie(movie_id: str):
    """
    Handle GET requests for a single movie document.

    Args:
        movie_id (str): External movie id from the path segment.

    Returns:
        Response: JSON movie or error payload.
    """
    external_id = parse_movie_id(movie_id)
    if external_id is None:
        return NotFoundError("Movie not found").to_response()

    try:
        document = get_store().movies.find_one({"id": external_id})
    except PyMongoError:
        logger.exception("Error in GET /api/movies/%s", movie_id)
        return ServerError().to_response()

    if not document:
        return NotFoundError("Movie not found").to_response()
    return jsonify(serialize_document(document))


@movies_bp.route("/api/movies", methods=["POST"])
@require_auth("admin")
def api_create_movie():
    """
    Handle POST requests that insert a movie (admin only).

    Returns:
        Response: Created movie with 201, or error payload.
    """
    payload, error = build_payload(request.get_json(silent=True))
    if error:
        return ValidationError(error).to_response()

    now = datetime.now(timezone.utc)
    payload["created_at"] = now
    payload["updated_at"] = now

    movies_collection = get_store().movies
    try:
        result = movies_collection.insert_one(payload)
        document = movies_collection.find_one({"_id": result.inserted_id})
    except DuplicateKeyError:
        return ValidationError("Movie already exists").to_response()
    except PyMongoError:
        logger.exception("Error in POST /api/movies")
        return ServerError().to_response()

    logger.info("Movie %s created", payload["id"])
    return jsonify(serialize_document(document)), 201


@movies_bp.route("/api/movies/<movie_id>", methods=["PUT"])
@require_auth("admin")
def api_update_movie(movie_id: str):
    """
    Handle PUT requests that update movie fields (admin only).

    Args:
        movie_id (str): External movie id from the path segment.

    Returns:
        Response: Updated movie, or error payload.
    """
    external_id = parse_movie_id(movie_id)
    if external_id is None:
        return NotFoundError("Movie not found").to_response()

    updates, error = build_payload(request.get_json(silent=True), require_identity=False)
    if error:
        return ValidationError(error).to_response()
    updates["updated_at"] = datetime.now(timezone.utc)

    try:
        document = get_store().movies.find_one_and_update(
            {"id": external_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError:
        logger.exception("Error in PUT /api/movies/%s", movie_id)
        return ServerError().to_response()

    if not document:
        return NotFoundError("Movie not found").to_response()
    return jsonify(serialize_document(document))


@movies_bp.route("/api/movies/<movie_id>", methods=["DELETE"])
@require_auth("admin")
def api_delete_movie(movie_id: str):
    """
    Handle DELETE requests that remove a movie (admin only).

    Args:
        movie_id (str): External movie id from the path segment.

    Returns:
        Response: Success flag, or error payload.
    """
    external_id = parse_movie_id(movie_id)
    if external_id is None:
        return NotFoundError("Movie not found").to_response()

    try:
        result = get_store().movies.delete_one({"id": external_id})
    except PyMongoError:
        logger.exception("Error in DELETE /api/movies/%s", movie_id)
        return ServerError().to_response()

    if result.deleted_count == 0:
        return NotFoundError("Movie not found").to_response()
    logger.info("Movie %s deleted", external_id)
    return jsonify({"success": True})
