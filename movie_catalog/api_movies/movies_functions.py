import math
import re
from datetime import date, datetime

from bson import ObjectId

TRUSTED_POSTER_PREFIX = r"^https://image\.tmdb\.org"
PAGINATION_WINDOW = 5
OVERVIEW_SHORT_LENGTH = 180
GENRE_SEPARATOR = " • "
ALL_GENRES = [
    "Action", "Adventure", "Animation", "Comedy", "Crime",
    "Documentary", "Drama", "Family", "Fantasy", "History",
    "Horror", "Music", "Mystery", "Romance", "Science Fiction",
    "TV Movie", "Thriller", "War", "Western",
]
PROTECTED_FIELDS = {"_id", "id", "created_at"}


def safe_float(value, default=None):
    """
    Convert arbitrary values into floats while guarding against failures.

    Args:
        value (Any): Raw value to convert.
        default (float | None): Fallback value when parsing is unsuccessful.

    Returns:
        float | None: Parsed float or the provided default.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = float(str(value).strip().replace(",", "."))
    except (TypeError, ValueError):
        return default
    if math.isnan(parsed) or math.isinf(parsed):
        return default
    return parsed


def safe_int(value, default=0):
    """
    Parse a value into an integer, tolerating strings and floats.

    Args:
        value (Any): Raw value to convert.
        default (int): Fallback value when parsing fails.

    Returns:
        int: Parsed integer or the default.
    """
    parsed = safe_float(value)
    if parsed is None:
        return default
    return int(parsed)


def parse_page(raw_value: object):
    """
    Parse a ``page`` query parameter, defaulting to 1 for anything not positive.

    Args:
        raw_value (Any): Raw query value.

    Returns:
        int: 1-based page number.
    """
    try:
        page = int(str(raw_value).strip())
    except (TypeError, ValueError):
        return 1
    return page if page > 0 else 1


def parse_limit_param(raw_value: object, default_limit: int, max_limit: int):
    """
    Parse a page size, clamping it between 1 and ``max_limit``.

    Args:
        raw_value (Any): Raw query value.
        default_limit (int): Value used when the parameter is absent or invalid.
        max_limit (int): Upper bound.

    Returns:
        int: Page size.
    """
    try:
        limit = int(str(raw_value).strip())
    except (TypeError, ValueError):
        return default_limit
    if limit <= 0:
        return default_limit
    return min(limit, max_limit)


def build_movie_filter(query: str | None = None, genre: str | None = None, min_rating: object = None, trusted_posters: bool = False):
    """
    Build the conjunctive listing filter for the movies collection.

    Args:
        query (str | None): Substring the title must contain.
        genre (str | None): Substring one of the genre names must contain.
        min_rating (Any): Minimum ``vote_average``; ignored when not numeric.
        trusted_posters (bool): Require posters hosted on the TMDB image host
            instead of any non-empty poster URL.

    Returns:
        dict: MongoDB filter.
    """
    if trusted_posters:
        base_filter = {"poster_url": {"$type": "string", "$regex": TRUSTED_POSTER_PREFIX, "$options": "i"}}
    else:
        base_filter = {"poster_url": {"$type": "string", "$ne": ""}}

    conditions = []
    query = (query or "").strip()
    if query:
        conditions.append({"title": {"$regex": re.escape(query), "$options": "i"}})

    genre = (genre or "").strip()
    if genre:
        conditions.append({"genres.name": {"$regex": re.escape(genre), "$options": "i"}})

    rating = safe_float(min_rating)
    if rating is not None:
        conditions.append({"vote_average": {"$gte": rating}})

    if conditions:
        base_filter["$and"] = conditions
    return base_filter


def page_offset(page: int, limit: int):
    """Return how many documents precede ``page``."""
    return (page - 1) * limit


def count_pages(total_count: int, limit: int):
    """Return the number of pages needed for ``total_count`` documents."""
    if limit <= 0:
        return 0
    return math.ceil(total_count / limit)


def clamp_page(page: int, total_pages: int):
    """
    Clamp a page number into ``[1, total_pages]``.

    Args:
        page (int): Requested page.
        total_pages (int): Available pages, possibly 0.

    Returns:
        int: Page within range (1 when there are no pages).
    """
    if total_pages < 1:
        return 1
    return min(max(page, 1), total_pages)


def build_pagination(current_page: int, total_pages: int, max_buttons: int = PAGINATION_WINDOW):
    """
    Build the window of page buttons shown under the listing.

    The window is centered on the current page, clipped to the available
    pages and shifted left at the end so it keeps ``max_buttons`` entries
    whenever there are enough pages.

    Args:
        current_page (int): 1-based current page.
        total_pages (int): Number of pages.
        max_buttons (int): Window size.

    Returns:
        list[dict]: Entries with ``number`` and ``is_current``.
    """
    start = max(1, current_page - max_buttons // 2)
    end = min(total_pages, start + max_buttons - 1)

    if end - start < max_buttons - 1:
        start = max(1, end - max_buttons + 1)

    return [{"number": number, "is_current": number == current_page} for number in range(start, end + 1)]


def entry_name(entry: object):
    """Return the display name of a nested list entry (``{name}`` or plain string)."""
    if isinstance(entry, str):
        return entry.strip()
    if isinstance(entry, dict):
        name = entry.get("name")
        if isinstance(name, str):
            return name.strip()
    return ""


def join_names(value: object, separator: str = ", ", limit: int | None = None, keep_string: bool = True):
    """
    Flatten a nested list of ``{name}`` entries into a display string.

    Args:
        value (Any): Field value from the movie document.
        separator (str): String placed between names.
        limit (int | None): Maximum number of names kept.
        keep_string (bool): Return a plain string value untouched.

    Returns:
        str: Joined names, or an empty string for unusable values.
    """
    if isinstance(value, list):
        names = [name for name in (entry_name(entry) for entry in value) if name]
        if limit is not None:
            names = names[:limit]
        return separator.join(names)
    if keep_string and isinstance(value, str):
        return value
    return ""


def extract_year(value: object):
    """
    Extract the release year from a date or an ISO-like string.

    Args:
        value (Any): ``release_date`` field.

    Returns:
        int | str: Year, or an empty string when it cannot be resolved.
    """
    if isinstance(value, (datetime, date)):
        return value.year
    if isinstance(value, str):
        match = re.match(r"\s*(\d{4})", value)
        if match:
            return int(match.group(1))
    return ""


def format_rating(value: object):
    """Format ``vote_average`` to one decimal, ``"N/A"`` when it is not a number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "N/A"
    if math.isnan(value):
        return "N/A"
    return f"{value:.1f}"


def format_runtime(value: object):
    """Format a runtime in minutes as ``"<n> min"``."""
    minutes = safe_int(value, 0)
    if minutes <= 0:
        return ""
    return f"{minutes} min"


def shorten(text: object, length: int = OVERVIEW_SHORT_LENGTH):
    """
    Shorten an overview on a word boundary.

    Args:
        text (Any): Overview value.
        length (int): Maximum number of characters kept before the ellipsis.

    Returns:
        str: Possibly truncated text, empty when the value is not a string.
    """
    if not isinstance(text, str):
        return ""
    text = text.strip()
    if len(text) <= length:
        return text
    cut = text[:length].rsplit(" ", 1)[0].rstrip(" ,.;:")
    return f"{cut or text[:length]}..."


def resolve_title(movie: dict):
    """Return the title, falling back to the original title, then ``""``."""
    title = movie.get("title")
    if isinstance(title, str):
        return title
    original = movie.get("original_title")
    if isinstance(original, str):
        return original
    return ""


def map_movie_for_card(movie: dict):
    """
    Flatten a movie document into the fields used by listing cards.

    Args:
        movie (dict): Movie document.

    Returns:
        dict: Card view.
    """
    poster_url = movie.get("poster_url")
    return {
        "id": movie.get("id"),
        "title": resolve_title(movie),
        "year": extract_year(movie.get("release_date")),
        "poster_url": poster_url if isinstance(poster_url, str) else "",
        "genresText": join_names(movie.get("genres"), GENRE_SEPARATOR, limit=3),
        "countryText": join_names(movie.get("production_countries"), ", ", limit=2),
        "rating": format_rating(movie.get("vote_average")),
        "runtimeText": format_runtime(movie.get("runtime")),
        "overviewShort": shorten(movie.get("overview")),
    }


def map_movie_for_detail(movie: dict):
    """
    Flatten a movie document into the fields used by the detail page.

    Args:
        movie (dict): Movie document.

    Returns:
        dict: Card view extended with the full detail fields.
    """
    card = map_movie_for_card(movie)

    countries = movie.get("production_countries")
    if isinstance(countries, list):
        countries_text = join_names(countries)
    else:
        countries_text = card["countryText"]

    detail = dict(card)
    detail.update({
        "overview": movie.get("overview") if isinstance(movie.get("overview"), str) else "",
        "release_date": movie.get("release_date"),
        "vote_average": movie.get("vote_average"),
        "vote_count": movie.get("vote_count"),
        "budget": movie.get("budget"),
        "revenue": movie.get("revenue"),
        "homepage": movie.get("homepage"),
        "tagline": movie.get("tagline") if isinstance(movie.get("tagline"), str) else "",
        "countriesText": countries_text,
        "languagesText": join_names(movie.get("spoken_languages"), keep_string=False),
        "companiesText": join_names(movie.get("production_companies"), keep_string=False),
    })
    return detail


def is_displayable(card: dict):
    """Check that a card has both a title and a poster to show."""
    return bool(card.get("title", "").strip()) and bool(card.get("poster_url", "").strip())


def serialize_value(value: object):
    """Convert BSON values nested anywhere in a document into JSON-friendly ones."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: serialize_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [serialize_value(item) for item in value]
    return value


def serialize_document(doc: dict | None):
    """
    Convert a MongoDB document into an API-friendly dictionary.

    Args:
        doc (dict | None): MongoDB document.

    Returns:
        dict: Serializable representation with string identifiers.
    """
    if not doc:
        return {}
    return serialize_value(dict(doc))


def parse_movie_id(raw_value: object):
    """
    Parse an external movie id from a path segment or payload.

    Args:
        raw_value (Any): Candidate id.

    Returns:
        int | None: Numeric id, or None when the value is not an integer.
    """
    if isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, int):
        return raw_value
    try:
        return int(str(raw_value).strip())
    except (TypeError, ValueError):
        return None


def build_payload(data: dict | None, require_identity: bool = True):
    """
    Prepare an incoming JSON movie payload for persistence.

    Args:
        data (dict | None): Submitted JSON body.
        require_identity (bool): Require ``id`` and ``title`` (creation).

    Returns:
        tuple[dict | None, str | None]: Cleaned payload, or None and an error message.
    """
    if not data or not isinstance(data, dict):
        return None, "Request body must be a JSON object"

    payload = {key: value for key, value in data.items() if key not in PROTECTED_FIELDS}

    if require_identity:
        movie_id = parse_movie_id(data.get("id"))
        if movie_id is None:
            return None, "id is required and must be an integer"
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            return None, "title is required"
        payload["id"] = movie_id
        payload["title"] = title.strip()
    elif not payload:
        return None, "No fields to update"

    return payload, None
