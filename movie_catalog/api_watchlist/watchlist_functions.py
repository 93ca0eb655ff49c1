from datetime import datetime, timezone

from movie_catalog.api_movies.movies_functions import parse_movie_id

DEFAULT_STATUS = "planned"
STATUSES = {"planned", "watching", "watched"}


def build_watchlist_item(payload: dict | None, user_id: object, movie: dict | None = None):
    """
    Validate a watchlist payload and build the document to insert.

    ``movieTitle`` and ``poster_url`` are denormalized for display; when the
    client omits them they are copied from the catalog movie.

    Args:
        payload (dict | None): Request body.
        user_id (ObjectId): Owner of the item.
        movie (dict | None): Catalog movie matching ``movieId``, if any.

    Returns:
        tuple[dict | None, str | None]: Item document, or None and an error message.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return None, "Request body must be a JSON object"
    movie_id = parse_movie_id(payload.get("movieId"))
    if movie_id is None:
        return None, "movieId is required and must be an integer"

    movie = movie or {}
    title = payload.get("movieTitle") or movie.get("title") or movie.get("original_title")
    poster_url = payload.get("poster_url") or movie.get("poster_url")
    if not isinstance(title, str) or not title.strip():
        return None, "movieTitle is required"
    if not isinstance(poster_url, str) or not poster_url.strip():
        return None, "poster_url is required"

    status = str(payload.get("status") or DEFAULT_STATUS).strip().lower()
    if status not in STATUSES:
        return None, f"status must be one of: {', '.join(sorted(STATUSES))}"

    now = datetime.now(timezone.utc)
    item = {
        "user": user_id,
        "movieId": movie_id,
        "movieTitle": title.strip(),
        "poster_url": poster_url.strip(),
        "status": status,
        "created_at": now,
        "updated_at": now,
    }
    return item, None
