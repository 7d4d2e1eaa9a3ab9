from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database

from .config import settings

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        # MongoClient connects lazily, so this never blocks on import
        _client = MongoClient(settings.mongo_uri, tz_aware=False)
    return _client


def get_db() -> Database:
    """FastAPI dependency returning the configured database."""
    return get_client().get_default_database("gearguard")
