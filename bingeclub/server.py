"""
Primary FastAPI application entry point
"""
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from bingeclub.api.api import api_router
from bingeclub.core.config import get_settings
from bingeclub.core.errors import http_exception_handler, unhandled_exception_handler
from bingeclub.data_access.mongo_client import MongoConnection
from bingeclub.services.movie_store import MovieStore

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Application startup: Initializing connections...")
    mongo = MongoConnection(settings)
    await mongo.connect()
    if mongo.db is not None:
        try:
            await MovieStore(mongo.db).ensure_indexes()
        except PyMongoError as e:
            logger.error(f"Could not create MongoDB indexes: {e}", exc_info=True)
    app.state.mongo = mongo
    yield
    # Shutdown
    logger.info("Application shutdown: Closing connections...")
    mongo.close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    docs_url=f"{settings.API_PREFIX}/docs",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/health", status_code=status.HTTP_200_OK, tags=["Health"])
async def health_check():
    """Liveness check; does not touch the database."""
    return {
        "status": "OK",
        "message": "Binge Club API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# For local development
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("bingeclub.server:app", host="0.0.0.0", port=settings.PORT, reload=True)
