import ast
import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd
from pymongo import UpdateOne
from pymongo.collection import Collection

logger = logging.getLogger(__name__)

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
NESTED_FIELDS = ["genres", "production_companies", "production_countries", "spoken_languages"]
INT_FIELDS = ["id", "budget", "revenue", "runtime", "vote_count"]
FLOAT_FIELDS = ["popularity", "vote_average"]
BOOL_FIELDS = ["adult", "video"]
TEXT_FIELDS = [
    "title", "original_title", "original_language", "overview", "tagline",
    "homepage", "imdb_id", "status", "poster_path", "poster_url",
]


def load_dataset(path: str | Path):
    """
    Read a movie dataset from CSV, JSON or JSON lines.

    Args:
        path (str | Path): Dataset file.

    Returns:
        DataFrame: Raw rows with numeric and date columns coerced.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".jsonl":
        frame = pd.read_json(path, lines=True, dtype=False)
    elif suffix == ".json":
        frame = pd.read_json(path, dtype=False)
    else:
        frame = pd.read_csv(path, low_memory=False)

    for column in INT_FIELDS + FLOAT_FIELDS:
        if column in frame.columns:
            frame[column] = pd.to_numeric(frame[column], errors="coerce")
    if "release_date" in frame.columns:
        frame["release_date"] = pd.to_datetime(frame["release_date"], errors="coerce")
    return frame


def is_missing(value: object):
    """Check for None, NaN and NaT cells."""
    if value is None or value is pd.NaT:
        return True
    return isinstance(value, float) and math.isnan(value)


def parse_nested(value: object):
    """
    Parse a nested list column (``[{'id': 18, 'name': 'Drama'}]``).

    CSV exports store these lists as JSON or Python literals; plain
    strings inside the list become ``{"name": ...}`` entries.

    Args:
        value (Any): Cell value.

    Returns:
        list[dict]: Parsed entries, empty when the cell is unusable.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        try:
            value = json.loads(text)
        except ValueError:
            try:
                value = ast.literal_eval(text)
            except (ValueError, SyntaxError):
                return []

    if not isinstance(value, (list, tuple)):
        return []

    entries = []
    for entry in value:
        if isinstance(entry, dict) and entry.get("name"):
            entries.append({key: clean_scalar(item) for key, item in entry.items()})
        elif isinstance(entry, str) and entry.strip():
            entries.append({"name": entry.strip()})
    return entries


def clean_scalar(value: object):
    """Convert pandas/numpy cell values into plain Python values."""
    if is_missing(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if hasattr(value, "item"):
        return value.item()
    return value


def parse_bool(value: object):
    """Parse ``True``/``"False"``/``1`` style flags."""
    if isinstance(value, bool):
        return value
    if is_missing(value):
        return False
    return str(value).strip().lower() in {"1", "true", "yes"}


def build_poster_url(poster_url: object, poster_path: object):
    """
    Resolve the absolute poster URL for a movie.

    Args:
        poster_url (Any): Existing absolute URL, if the dataset has one.
        poster_path (Any): TMDB relative path such as ``/abc.jpg``.

    Returns:
        str | None: Absolute URL, or None when neither field is usable.
    """
    if isinstance(poster_url, str) and poster_url.strip():
        return poster_url.strip()
    if isinstance(poster_path, str) and poster_path.strip():
        path = poster_path.strip()
        if path.startswith("http"):
            return path
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{POSTER_BASE_URL}{path}"
    return None


def normalize_record(row: dict):
    """
    Turn one dataset row into a movie document.

    Args:
        row (dict): Row from the dataset.

    Returns:
        dict | None: Movie document, or None when the row has no numeric id.
    """
    movie_id = clean_scalar(row.get("id"))
    if movie_id is None:
        return None
    try:
        movie_id = int(movie_id)
    except (TypeError, ValueError):
        return None

    record = {"id": movie_id}

    for field in TEXT_FIELDS:
        value = clean_scalar(row.get(field))
        if isinstance(value, str) and value.strip():
            record[field] = value.strip()

    for field in INT_FIELDS[1:]:
        value = clean_scalar(row.get(field))
        if value is not None:
            record[field] = int(value)

    for field in FLOAT_FIELDS:
        value = clean_scalar(row.get(field))
        if value is not None:
            record[field] = float(value)

    for field in BOOL_FIELDS:
        if field in row:
            record[field] = parse_bool(row.get(field))

    for field in NESTED_FIELDS:
        record[field] = parse_nested(row.get(field))

    release_date = clean_scalar(row.get("release_date"))
    if isinstance(release_date, datetime):
        record["release_date"] = release_date
    elif isinstance(release_date, str) and release_date.strip():
        parsed = pd.to_datetime(release_date, errors="coerce")
        if not is_missing(parsed):
            record["release_date"] = parsed.to_pydatetime()

    poster_url = build_poster_url(record.get("poster_url"), record.get("poster_path"))
    if poster_url:
        record["poster_url"] = poster_url

    return record


def iter_records(frame: pd.DataFrame):
    """
    Yield normalized movie documents, skipping rows without a usable id.

    Args:
        frame (DataFrame): Dataset rows.

    Yields:
        dict: Movie documents.
    """
    skipped = 0
    for row in frame.to_dict(orient="records"):
        record = normalize_record(row)
        if record is None:
            skipped += 1
            continue
        yield record
    if skipped:
        logger.warning("Skipped %d rows without a numeric id", skipped)


def persist_movies(buffer: list, collection: Collection):
    """
    Upsert buffered movie documents by external id.

    Args:
        buffer (list): Movie documents to write; cleared afterwards.
        collection (Collection): Movies collection.

    Returns:
        int: Number of documents inserted or modified.
    """
    if not buffer:
        return 0

    now = datetime.now(timezone.utc)
    operations = []
    for record in buffer:
        fields = dict(record)
        fields["updated_at"] = now
        operations.append(UpdateOne(
            {"id": record["id"]},
            {"$set": fields, "$setOnInsert": {"created_at": now}},
            upsert=True,
        ))

    result = collection.bulk_write(operations, ordered=False)
    buffer.clear()
    return result.upserted_count + result.modified_count


def import_movies(frame: pd.DataFrame, collection: Collection, batch_size: int = 500):
    """
    Write every dataset row to the movies collection in batches.

    Args:
        frame (DataFrame): Dataset rows.
        collection (Collection): Movies collection.
        batch_size (int): Documents per ``bulk_write``.

    Returns:
        int: Number of documents inserted or modified.
    """
    buffer = []
    written = 0
    for record in iter_records(frame):
        buffer.append(record)
        if len(buffer) >= batch_size:
            written += persist_movies(buffer, collection)
            logger.info("Imported %d movies so far", written)
    written += persist_movies(buffer, collection)
    return written
