# FastAPI dependencies (database, store, lookup client, history recorder)
# bingeclub/api/deps.py

import logging
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from bingeclub.core.config import get_settings
from bingeclub.data_access.mongo_client import MongoConnection
from bingeclub.services.history_recorder import SearchHistoryRecorder
from bingeclub.services.movie_store import MovieStore
from bingeclub.services.omdb_client import MovieLookupClient, OmdbClient

logger = logging.getLogger(__name__)


# --- Database Dependency ---

def get_db(request: Request) -> AsyncIOMotorDatabase:
    """
    Returns the database opened in the application lifespan.

    Raises:
        HTTPException 503: If the database is not available.
    """
    connection: MongoConnection = getattr(request.app.state, "mongo", None)
    if connection is None or connection.db is None:
        logger.critical("MongoDB database instance is not available. Check initialization.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service not available.",
        )
    return connection.db


# --- Service Dependencies ---

def get_movie_store(db: AsyncIOMotorDatabase = Depends(get_db)) -> MovieStore:
    return MovieStore(db=db)


def get_history_recorder(store: MovieStore = Depends(get_movie_store)) -> SearchHistoryRecorder:
    return SearchHistoryRecorder(store=store)


@lru_cache()
def get_movie_lookup_client() -> MovieLookupClient:
    settings = get_settings()
    return OmdbClient(
        api_key=settings.OMDB_API_KEY.get_secret_value(),
        base_url=settings.OMDB_BASE_URL,
    )
