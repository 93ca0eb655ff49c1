import atexit
import logging

from flask import Flask, jsonify, render_template, request
from flask_cors import CORS
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from movie_catalog.api_movies.movies import movies_bp
from movie_catalog.api_reviews.reviews import reviews_bp
from movie_catalog.api_users.users import users_bp
from movie_catalog.api_watchlist.watchlist import watchlist_bp
from movie_catalog.config import Config
from movie_catalog.errors import NotFoundError
from movie_catalog.store import MongoStore, get_store

logger = logging.getLogger(__name__)


def create_app(test_config: dict | None = None, mongo_client: MongoClient | None = None):
    """
    Build the Flask application and open its store handle.

    Refuses to start without a ``JWT_SECRET`` unless ``TESTING`` is set.

    Args:
        test_config (dict | None): Settings overriding ``Config``.
        mongo_client (MongoClient | None): Client to use instead of connecting
            to ``MONGO_URI`` (tests pass a mongomock client).

    Returns:
        Flask: Configured application.
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)
    app.json.sort_keys = False

    if not app.config.get("JWT_SECRET") and not app.config.get("TESTING"):
        raise RuntimeError("JWT_SECRET must be set")

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = MongoStore.connect(app.config["MONGO_URI"], app.config["MONGO_DB"], client=mongo_client)
    app.extensions["store"] = store
    if mongo_client is None:
        atexit.register(store.close)

    CORS(app, resources={r"/api/*": {"origins": "*"}})

    app.register_blueprint(movies_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(watchlist_bp)
    app.register_blueprint(reviews_bp)

    @app.route("/health")
    def health():
        """Health check endpoint"""
        try:
            get_store().ping()
        except PyMongoError:
            logger.exception("Health check failed")
            return jsonify({"status": "unhealthy"}), 503
        return jsonify({"status": "healthy"}), 200

    @app.errorhandler(404)
    def not_found(error):
        if request.path.startswith("/api/"):
            return NotFoundError("Not found").to_response()
        return render_template("error.html", title="Not found", message="Page not found"), 404

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=app.config["PORT"], debug=False)
