# bingeclub/api/endpoints/movies.py

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from bingeclub.api.deps import get_history_recorder, get_movie_lookup_client, get_movie_store
from bingeclub.core.config import get_settings
from bingeclub.core.errors import BadRequestError, NotFoundError, UpstreamError
from bingeclub.core.security import require_identity
from bingeclub.models.history import HistoryResponse
from bingeclub.models.identity import Identity
from bingeclub.models.movie import (
    DeleteMovieResponse,
    ExistsResponse,
    MovieListResponse,
    MovieMetadata,
    MovieResponse,
    MovieSaveRequest,
    SaveMovieResponse,
)
from bingeclub.services.history_recorder import SearchHistoryRecorder
from bingeclub.services.movie_store import MovieStore
from bingeclub.services.omdb_client import MovieLookupClient, MovieNotFoundError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/search", # GET /api/movies/search?title=...
    response_model=MovieMetadata,
    summary="Search Movie",
    description="Looks a title up on OMDb and records the search in the caller's history.",
    responses={
        400: {"description": "Title parameter missing"},
        404: {"description": "No matching movie or show"},
    }
)
async def search_movie(
    background_tasks: BackgroundTasks,
    title: Optional[str] = Query(None, description="Title to look up."),
    identity: Identity = Depends(require_identity),
    lookup_client: MovieLookupClient = Depends(get_movie_lookup_client),
    store: MovieStore = Depends(get_movie_store),
    history_recorder: SearchHistoryRecorder = Depends(get_history_recorder),
):
    owner_id = identity.external_user_id
    if not title or not title.strip():
        raise BadRequestError("Title parameter is required")
    title = title.strip()
    logger.info(f"Search request: title '{title}', user {owner_id}")

    try:
        metadata = await lookup_client.lookup(title)
    except MovieNotFoundError as e:
        logger.info(f"Search for '{title}' found nothing: {e}")
        raise NotFoundError(str(e))
    except Exception as e:
        logger.error(f"Error fetching movie data for '{title}': {e}", exc_info=True)
        raise UpstreamError("Failed to fetch movie data", str(e))

    # Link the history entry to the caller's saved copy, if any. Like the
    # history write itself, this must not fail the search.
    referenced_movie_id = None
    try:
        referenced_movie_id = await store.find_movie_id(owner_id, metadata.external_id)
    except Exception as e:
        logger.warning(f"Could not resolve saved movie for history entry ({metadata.external_id}): {e}")

    background_tasks.add_task(history_recorder.record, owner_id, title, referenced_movie_id)
    return metadata


@router.post(
    "/save", # POST /api/movies/save
    response_model=SaveMovieResponse,
    summary="Save Movie",
    description="Saves a movie to the caller's list. Saving the same title twice returns the existing record.",
    responses={
        400: {"description": "Title or IMDb ID missing"},
    }
)
async def save_movie(
    movie: MovieSaveRequest,
    identity: Identity = Depends(require_identity),
    store: MovieStore = Depends(get_movie_store),
):
    owner_id = identity.external_user_id
    logger.info(f"Save movie request: title '{movie.title}', imdbID {movie.external_id}, user {owner_id}")
    if not movie.title or not movie.external_id:
        raise BadRequestError("Title and IMDB ID are required")

    try:
        await store.upsert_identity(identity)
        result = await store.insert_movie_if_absent(owner_id, movie)
    except Exception as e:
        logger.error(f"Error saving movie {movie.external_id} for user {owner_id}: {e}", exc_info=True)
        raise UpstreamError("Failed to save movie", str(e))

    record = result.record
    if result.is_new and movie.ratings:
        # The movie stays saved even when its ratings cannot be written.
        try:
            ratings = await store.insert_ratings(owner_id, record.id, movie.ratings)
            record = record.model_copy(update={"ratings": ratings})
        except Exception as e:
            logger.warning(f"Movie {record.id} saved without ratings: {e}", exc_info=True)

    return SaveMovieResponse(
        message="Movie saved successfully" if result.is_new else "Movie already exists",
        data=record,
    )


@router.get(
    "/saved", # GET /api/movies/saved
    response_model=MovieListResponse,
    summary="List Saved Movies",
    description="All movies the caller has saved, newest first, with their ratings.",
)
async def list_saved_movies(
    identity: Identity = Depends(require_identity),
    store: MovieStore = Depends(get_movie_store),
):
    try:
        movies = await store.list_movies(identity.external_user_id)
    except Exception as e:
        logger.error(f"Error fetching saved movies for user {identity.external_user_id}: {e}", exc_info=True)
        raise UpstreamError("Failed to fetch saved movies", str(e))
    return MovieListResponse(data=movies)


@router.get(
    "/saved/{movie_id}", # GET /api/movies/saved/{movie_id}
    response_model=MovieResponse,
    summary="Get Saved Movie",
    description="One of the caller's saved movies by its internal ID.",
    responses={
        404: {"description": "No such movie in the caller's list"},
    }
)
async def get_saved_movie(
    movie_id: str,
    identity: Identity = Depends(require_identity),
    store: MovieStore = Depends(get_movie_store),
):
    try:
        movie = await store.get_movie(identity.external_user_id, movie_id)
    except Exception as e:
        logger.error(f"Error fetching movie {movie_id} for user {identity.external_user_id}: {e}", exc_info=True)
        raise UpstreamError("Failed to fetch movie", str(e))
    if movie is None:
        raise NotFoundError("Movie not found")
    return MovieResponse(data=movie)


@router.get(
    "/history", # GET /api/movies/history?limit=N
    response_model=HistoryResponse,
    summary="Search History",
    description="The caller's most recent searches, newest first.",
)
async def get_search_history(
    limit: Optional[int] = Query(None, ge=1, le=100, description="Number of entries to return (default 10)."),
    identity: Identity = Depends(require_identity),
    store: MovieStore = Depends(get_movie_store),
):
    if limit is None:
        limit = get_settings().SEARCH_HISTORY_DEFAULT_LIMIT
    try:
        history = await store.list_search_history(identity.external_user_id, limit=limit)
    except Exception as e:
        logger.error(f"Error fetching search history for user {identity.external_user_id}: {e}", exc_info=True)
        raise UpstreamError("Failed to fetch search history", str(e))
    return HistoryResponse(data=history)


@router.get(
    "/check/{external_id}", # GET /api/movies/check/{external_id}
    response_model=ExistsResponse,
    summary="Check Saved",
    description="Whether the caller has already saved the title with this IMDb ID.",
)
async def check_movie_exists(
    external_id: str,
    identity: Identity = Depends(require_identity),
    store: MovieStore = Depends(get_movie_store),
):
    if not external_id.strip():
        raise BadRequestError("IMDB ID is required")
    try:
        exists = await store.movie_exists(identity.external_user_id, external_id)
    except Exception as e:
        logger.error(f"Error checking movie existence ({external_id}) for user {identity.external_user_id}: {e}", exc_info=True)
        raise UpstreamError("Failed to check movie existence", str(e))
    return ExistsResponse(exists=exists)


@router.get("/health", status_code=status.HTTP_200_OK, summary="Movies API Health")
async def movies_health():
    return {
        "status": "OK",
        "service": "Movies API",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.delete(
    "/{movie_id}", # DELETE /api/movies/{movie_id}
    response_model=DeleteMovieResponse,
    summary="Delete Saved Movie",
    description="Removes a movie and its ratings from the caller's list. Unknown IDs are a no-op.",
)
async def delete_movie(
    movie_id: str,
    identity: Identity = Depends(require_identity),
    store: MovieStore = Depends(get_movie_store),
):
    if not movie_id.strip():
        raise BadRequestError("Movie ID is required")
    try:
        await store.delete_movie(identity.external_user_id, movie_id)
    except Exception as e:
        logger.error(f"Error deleting movie {movie_id} for user {identity.external_user_id}: {e}", exc_info=True)
        raise UpstreamError("Failed to delete movie", str(e))
    return DeleteMovieResponse()
