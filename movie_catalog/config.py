import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application settings read from the environment (or a ``.env`` file)."""

    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB = os.getenv("MONGO_DB", "movie_catalog")

    JWT_SECRET = os.getenv("JWT_SECRET")
    JWT_EXPIRES_IN = os.getenv("JWT_EXPIRES_IN", "1d")

    PORT = int(os.getenv("PORT", 5000))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    LISTING_PAGE_SIZE = 30
    API_DEFAULT_PAGE_SIZE = 10
    API_MAX_PAGE_SIZE = int(os.getenv("API_MAX_PAGE_SIZE", 100))
