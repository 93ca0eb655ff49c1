import mongomock
import pytest
from flask import template_rendered

from movie_catalog import create_app

TEST_SECRET = "test-secret-key-with-enough-length-for-hs256"


def make_movie(movie_id: int, **overrides):
    """Build a catalog movie document shaped like the TMDB export."""
    movie = {
        "id": movie_id,
        "title": f"Movie {movie_id}",
        "original_title": f"Original {movie_id}",
        "overview": "A story.",
        "genres": [{"id": 18, "name": "Drama"}],
        "production_countries": [{"iso_3166_1": "US", "name": "United States of America"}],
        "production_companies": [{"id": 1, "name": "Studio"}],
        "spoken_languages": [{"iso_639_1": "en", "name": "English"}],
        "vote_average": 7.0,
        "vote_count": 100,
        "popularity": float(movie_id),
        "runtime": 120,
        "release_date": "2001-05-04",
        "poster_url": f"https://image.tmdb.org/t/p/w500/{movie_id}.jpg",
    }
    movie.update(overrides)
    return movie


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "JWT_SECRET": TEST_SECRET,
            "JWT_EXPIRES_IN": "1h",
            "MONGO_DB": "movie_catalog_test",
        },
        mongo_client=mongomock.MongoClient(),
    )
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions["store"]


@pytest.fixture
def captured_templates(app):
    recorded = []

    def record(sender, template, context, **extra):
        recorded.append((template, context))

    template_rendered.connect(record, app)
    yield recorded
    template_rendered.disconnect(record, app)


def register_and_login(client, email: str, password: str = "secret123"):
    """Register an account and return its bearer headers and login payload."""
    client.post("/auth/register", json={"email": email, "password": password})
    response = client.post("/auth/login", json={"email": email, "password": password})
    data = response.get_json()
    return {"Authorization": f"Bearer {data['token']}"}, data


@pytest.fixture
def alice(client):
    headers, _ = register_and_login(client, "alice@example.com")
    return headers


@pytest.fixture
def bob(client):
    headers, _ = register_and_login(client, "bob@example.com")
    return headers
