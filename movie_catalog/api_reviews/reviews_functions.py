from datetime import datetime, timezone

from pymongo.collection import Collection

from movie_catalog.api_movies.movies_functions import safe_float

MIN_RATING = 1
MAX_RATING = 10
MAX_COMMENT_LENGTH = 2000


def read_review_fields(payload: dict | None, partial: bool = False):
    """
    Validate the editable review fields.

    Args:
        payload (dict | None): Request body.
        partial (bool): Allow either field to be omitted (update).

    Returns:
        tuple[dict | None, str | None]: Clean fields, or None and an error message.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return None, "Request body must be a JSON object"
    fields = {}

    if "rating" in payload or not partial:
        rating = safe_float(payload.get("rating"))
        if rating is None:
            return None, "rating is required and must be a number"
        if not MIN_RATING <= rating <= MAX_RATING:
            return None, f"rating must be between {MIN_RATING} and {MAX_RATING}"
        fields["rating"] = int(rating) if rating.is_integer() else rating

    if "comment" in payload or not partial:
        comment = payload.get("comment")
        if comment is None:
            comment = ""
        if not isinstance(comment, str):
            return None, "comment must be a string"
        comment = comment.strip()
        if len(comment) > MAX_COMMENT_LENGTH:
            return None, f"comment must be at most {MAX_COMMENT_LENGTH} characters"
        fields["comment"] = comment

    if not fields:
        return None, "Nothing to update"
    return fields, None


def build_review(fields: dict, user_id: object, movie_id: int):
    """Build the review document to insert."""
    now = datetime.now(timezone.utc)
    review = {"user": user_id, "movieId": movie_id}
    review.update(fields)
    review["created_at"] = now
    review["updated_at"] = now
    return review


def attach_authors(reviews: list[dict], users_collection: Collection):
    """
    Replace each review's ``user`` id with ``{_id, email}`` using one lookup.

    Args:
        reviews (list[dict]): Review documents.
        users_collection (Collection): MongoDB collection handle.

    Returns:
        list[dict]: Reviews with the author summary attached.
    """
    user_ids = list({review["user"] for review in reviews if review.get("user") is not None})
    if not user_ids:
        return reviews

    authors = {
        user["_id"]: {"_id": user["_id"], "email": user.get("email")}
        for user in users_collection.find({"_id": {"$in": user_ids}}, {"email": 1})
    }
    for review in reviews:
        review["user"] = authors.get(review.get("user"), review.get("user"))
    return reviews
