from datetime import datetime

import mongomock
import pandas as pd
from pymongo.errors import PyMongoError

from movie_catalog.importer.import_functions import (
    build_poster_url,
    import_movies,
    load_dataset,
    normalize_record,
    parse_nested,
)
from movie_catalog.importer import import_movies as cli

CSV_ROWS = """id,title,poster_path,genres,vote_average,popularity,release_date,adult
603,The Matrix,/matrix.jpg,"[{'id': 28, 'name': 'Action'}, {'id': 878, 'name': 'Science Fiction'}]",8.2,80.5,1999-03-30,False
abc,Broken Row,/broken.jpg,[],5.0,1.0,2000-01-01,False
604,The Matrix Reloaded,,"[{""id"": 28, ""name"": ""Action""}]",6.9,40.1,,True
"""


def write_dataset(tmp_path):
    path = tmp_path / "movies.csv"
    path.write_text(CSV_ROWS)
    return path


def test_parse_nested_accepts_json_and_python_literals():
    assert parse_nested('[{"id": 18, "name": "Drama"}]') == [{"id": 18, "name": "Drama"}]
    assert parse_nested("[{'id': 18, 'name': 'Drama'}]") == [{"id": 18, "name": "Drama"}]
    assert parse_nested(["Drama", " "]) == [{"name": "Drama"}]
    assert parse_nested("not a list") == []
    assert parse_nested(float("nan")) == []
    assert parse_nested("") == []


def test_build_poster_url():
    assert build_poster_url(None, "/abc.jpg") == "https://image.tmdb.org/t/p/w500/abc.jpg"
    assert build_poster_url(None, "abc.jpg") == "https://image.tmdb.org/t/p/w500/abc.jpg"
    assert build_poster_url("https://cdn.example/x.jpg", "/abc.jpg") == "https://cdn.example/x.jpg"
    assert build_poster_url(None, None) is None


def test_normalize_record():
    record = normalize_record({
        "id": "42",
        "title": " Hitchhiker ",
        "poster_path": "/h.jpg",
        "runtime": 109.0,
        "vote_average": "7.5",
        "genres": "[{'id': 35, 'name': 'Comedy'}]",
        "release_date": "2005-04-28",
        "adult": "false",
    })
    assert record["id"] == 42
    assert record["title"] == "Hitchhiker"
    assert record["poster_url"] == "https://image.tmdb.org/t/p/w500/h.jpg"
    assert record["runtime"] == 109
    assert record["vote_average"] == 7.5
    assert record["genres"] == [{"id": 35, "name": "Comedy"}]
    assert record["release_date"] == datetime(2005, 4, 28)
    assert record["adult"] is False
    assert record["spoken_languages"] == []


def test_normalize_record_requires_numeric_id():
    assert normalize_record({"title": "No id"}) is None
    assert normalize_record({"id": "tt0133093"}) is None
    assert normalize_record({"id": float("nan")}) is None


def test_load_dataset_coerces_columns(tmp_path):
    frame = load_dataset(write_dataset(tmp_path))
    assert len(frame) == 3
    assert pd.isna(frame.loc[1, "id"])
    assert pd.isna(frame.loc[2, "release_date"])


def test_import_movies_upserts_by_id(tmp_path):
    collection = mongomock.MongoClient()["catalog"]["movies"]
    frame = load_dataset(write_dataset(tmp_path))

    assert import_movies(frame, collection, batch_size=1) == 2
    assert collection.count_documents({}) == 2

    matrix = collection.find_one({"id": 603})
    assert matrix["poster_url"] == "https://image.tmdb.org/t/p/w500/matrix.jpg"
    assert [genre["name"] for genre in matrix["genres"]] == ["Action", "Science Fiction"]
    assert matrix["release_date"] == datetime(1999, 3, 30)
    created_at = matrix["created_at"]

    reloaded = collection.find_one({"id": 604})
    assert "poster_url" not in reloaded
    assert "release_date" not in reloaded
    assert reloaded["adult"] is True

    # a second run updates in place and keeps the original creation time
    import_movies(frame, collection)
    assert collection.count_documents({}) == 2
    assert collection.find_one({"id": 603})["created_at"] == created_at


def test_import_cli_reports_store_failure(tmp_path, monkeypatch):
    class FailingStore:
        movies = None
        closed = False

        def close(self):
            FailingStore.closed = True

    def fail(frame, collection, batch_size):
        raise PyMongoError("down")

    monkeypatch.setattr(cli.MongoStore, "connect", classmethod(lambda cls, uri, db: FailingStore()))
    monkeypatch.setattr(cli, "import_movies", fail)

    assert cli.main([str(write_dataset(tmp_path)), "--db", "scratch"]) == 1
    assert FailingStore.closed is True
