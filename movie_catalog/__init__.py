from movie_catalog.app import create_app

__all__ = ["create_app"]
