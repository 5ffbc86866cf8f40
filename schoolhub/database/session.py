from pymongo import MongoClient
from pymongo.database import Database

from schoolhub.config.settings import settings


_mongo_client: MongoClient | None = None


def _get_client() -> MongoClient:
    """Get MongoDB client with pooled connections"""
    global _mongo_client
    if _mongo_client is None:
        _mongo_client = MongoClient(
            settings.MONGO_URI,
            maxPoolSize=100,
            minPoolSize=10,
            maxIdleTimeMS=30000,
            serverSelectionTimeoutMS=5000,  # fail fast if MongoDB is unavailable
            connectTimeoutMS=5000,
            socketTimeoutMS=10000,
        )
    return _mongo_client


def get_database() -> Database:
    return _get_client()[settings.MONGO_DB_NAME]


def get_db():
    """
    FastAPI dependency yielding the database handle.
    Connections go back to the pool on their own, nothing to close here.
    """
    yield get_database()


def close_client() -> None:
    global _mongo_client
    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None
