import mongomock
import pytest

from movie_catalog import create_app
from movie_catalog.auth import issue_token

from conftest import TEST_SECRET


def test_create_app_requires_jwt_secret_outside_testing():
    with pytest.raises(RuntimeError):
        create_app({"TESTING": False, "JWT_SECRET": None}, mongo_client=mongomock.MongoClient())

    with pytest.raises(RuntimeError):
        create_app({"TESTING": False, "JWT_SECRET": ""}, mongo_client=mongomock.MongoClient())


def test_create_app_with_configured_secret_rejects_foreign_tokens():
    app = create_app(
        {"TESTING": False, "JWT_SECRET": TEST_SECRET, "MONGO_DB": "movie_catalog_test"},
        mongo_client=mongomock.MongoClient(),
    )
    client = app.test_client()

    forged = issue_token("0123456789abcdef01234567", "admin", "dev_jwt_secret_change_me_before_deploying")
    response = client.post(
        "/api/movies",
        json={"id": 1, "title": "Forged"},
        headers={"Authorization": f"Bearer {forged}"},
    )
    assert response.status_code == 401
    assert app.extensions["store"].movies.count_documents({}) == 0
