# Configuration and connectivity diagnostics
# bingeclub/api/endpoints/debug.py

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends

from bingeclub.api.deps import get_movie_store
from bingeclub.core.config import get_settings
from bingeclub.core.errors import UpstreamError
from bingeclub.core.security import optional_identity
from bingeclub.models.identity import Identity
from bingeclub.services.movie_store import MovieStore

logger = logging.getLogger(__name__)
router = APIRouter()


def _presence(value) -> str:
    return "Set" if value else "Missing"


@router.get("/env", summary="Configuration Presence")
async def debug_env(identity: Optional[Identity] = Depends(optional_identity)):
    """
    Reports which settings are configured, never their values. A valid
    bearer token is optional and only reflected in `authenticated`.
    """
    settings = get_settings()
    return {
        "status": "OK",
        "environment": {
            "MONGODB_URI": _presence(settings.MONGODB_URI.get_secret_value()),
            "MONGODB_DB_NAME": settings.MONGODB_DB_NAME,
            "SUPABASE_URL": _presence(settings.SUPABASE_URL),
            "SUPABASE_JWT_SECRET": _presence(settings.SUPABASE_JWT_SECRET.get_secret_value()),
            "OMDB_API_KEY": _presence(settings.OMDB_API_KEY.get_secret_value()),
        },
        "authenticated": identity is not None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/database", summary="Database Connectivity")
async def debug_database(store: MovieStore = Depends(get_movie_store)):
    try:
        await store.ping()
    except Exception as e:
        logger.error(f"Database connection check failed: {e}", exc_info=True)
        raise UpstreamError("Database connection failed", str(e))
    return {
        "status": "OK",
        "message": "Database connection successful",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
