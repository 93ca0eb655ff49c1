import argparse
import logging

from pymongo.errors import PyMongoError

from movie_catalog.config import Config
from movie_catalog.importer.import_functions import import_movies, load_dataset
from movie_catalog.store import MongoStore

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None):
    """
    Bulk import a TMDB-style dataset into the movies collection.

    Args:
        argv (list[str] | None): Command line arguments, ``sys.argv`` when None.

    Returns:
        int: Process exit code.
    """
    parser = argparse.ArgumentParser(description="Import a movie dataset (CSV, JSON or JSON lines) into MongoDB.")
    parser.add_argument("path", type=str, help="Dataset file to import.")
    parser.add_argument("--mongo-uri", type=str, default=Config.MONGO_URI, help="Override the MongoDB connection string.")
    parser.add_argument("--db", type=str, default=Config.MONGO_DB, help="Override the database name.")
    parser.add_argument("--batch-size", type=int, default=500, help="Documents written per bulk request.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=Config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    frame = load_dataset(args.path)
    logger.info("Loaded %d rows from %s", len(frame), args.path)

    store = MongoStore.connect(args.mongo_uri, args.db)
    try:
        written = import_movies(frame, store.movies, batch_size=max(args.batch_size, 1))
    except PyMongoError:
        logger.exception("Import failed")
        return 1
    finally:
        store.close()

    logger.info("Imported %d movies into %s", written, args.db)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
