import logging

from bson import ObjectId
from bson.errors import InvalidId
from flask import current_app
from pymongo import ASCENDING, DESCENDING, MongoClient

logger = logging.getLogger(__name__)


class MongoStore:
    """
    Explicit handle on the catalog database.

    The handle owns the ``MongoClient`` it is given (or creates one from a
    URI), exposes the four collections used by the application and is
    closed once at shutdown.
    """

    def __init__(self, client: MongoClient, db_name: str):
        self.client = client
        self.db = client[db_name]
        self.movies = self.db["movies"]
        self.users = self.db["users"]
        self.watchlist = self.db["watchlist_items"]
        self.reviews = self.db["reviews"]

    @classmethod
    def connect(cls, uri: str, db_name: str, client: MongoClient | None = None):
        """
        Open a store handle and make sure the indexes exist.

        Args:
            uri (str): MongoDB connection string.
            db_name (str): Database name.
            client (MongoClient | None): Pre-built client, used by tests.

        Returns:
            MongoStore: Ready to use store handle.
        """
        if client is None:
            client = MongoClient(uri)
        store = cls(client, db_name)
        store.ensure_indexes()
        logger.info("Connected to MongoDB database %s", db_name)
        return store

    def ensure_indexes(self):
        """Create the indexes the handlers rely on."""
        self.movies.create_index([("id", ASCENDING)], unique=True)
        self.movies.create_index([("popularity", DESCENDING)])
        self.users.create_index([("email", ASCENDING)], unique=True)
        self.watchlist.create_index([("user", ASCENDING), ("movieId", ASCENDING)], unique=True)
        self.reviews.create_index([("movieId", ASCENDING)])

    def ping(self):
        """Round-trip to the server; raises ``PyMongoError`` when it is unreachable."""
        self.client.admin.command("ping")

    def close(self):
        """Release the client connections."""
        self.client.close()
        logger.info("MongoDB connection closed")


def get_store() -> MongoStore:
    """Return the store handle attached to the running application."""
    return current_app.extensions["store"]


def to_object_id(value: object):
    """
    Convert a path or token identifier into an ``ObjectId``.

    Args:
        value (Any): Candidate identifier.

    Returns:
        ObjectId | None: Parsed identifier, or None when the value is not a valid id.
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def scoping_filter(record_id: object, user_id: object):
    """
    Build the filter that restricts a mutation to the caller's own record.

    Ownership is enforced only through this filter: a record that belongs to
    another user simply does not match, so handlers report not-found.

    Args:
        record_id (Any): Identifier of the watchlist item or review.
        user_id (Any): Identifier of the authenticated user.

    Returns:
        dict | None: MongoDB filter, or None when either id is malformed.
    """
    record_oid = to_object_id(record_id)
    user_oid = to_object_id(user_id)
    if record_oid is None or user_oid is None:
        return None
    return {"_id": record_oid, "user": user_oid}
