# bingeclub/services/movie_store.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from bingeclub.models.history import HistoryMovieRef, SearchHistoryEntry
from bingeclub.models.identity import Identity, UserProfile
from bingeclub.models.movie import MovieRecord, MovieSaveRequest, RatingEntry, RatingRecord, SaveResult

logger = logging.getLogger(__name__)

PROFILES_COLLECTION = "user_profiles"
MOVIES_COLLECTION = "movies"
RATINGS_COLLECTION = "ratings"
HISTORY_COLLECTION = "search_history"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_object_id(id_str: Optional[str]) -> Optional[ObjectId]:
    if id_str and ObjectId.is_valid(id_str):
        return ObjectId(id_str)
    return None


class MovieStore:
    """
    Per-user persistence for saved movies, their ratings, user profiles and
    the search-history log.

    Every method takes the owner's user id explicitly and filters or writes
    with it; the store keeps no notion of a "current user".
    """
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.profiles = db[PROFILES_COLLECTION]
        self.movies = db[MOVIES_COLLECTION]
        self.ratings = db[RATINGS_COLLECTION]
        self.history = db[HISTORY_COLLECTION]

    async def ensure_indexes(self) -> None:
        """Creates the indexes the store relies on. Safe to call repeatedly."""
        # Settles concurrent saves of the same title
        await self.movies.create_index(
            [("owner_user_id", ASCENDING), ("external_id", ASCENDING)],
            unique=True,
            name="owner_external_id_unique",
        )
        await self.movies.create_index([("owner_user_id", ASCENDING), ("created_at", DESCENDING)])
        await self.ratings.create_index([("movie_internal_id", ASCENDING), ("owner_user_id", ASCENDING)])
        await self.history.create_index([("owner_user_id", ASCENDING), ("searched_at", DESCENDING)])
        await self.profiles.create_index("external_user_id", unique=True)
        logger.info("MongoDB indexes ensured.")

    async def ping(self) -> None:
        await self.db.command("ping")

    # --- User profiles ---

    async def upsert_identity(self, identity: Identity) -> UserProfile:
        """
        Creates the caller's profile on first use and refreshes its display
        fields on every later call. `created_at` is only written on insert.
        """
        now = _utcnow()
        query = {"external_user_id": identity.external_user_id}
        update = {
            "$set": {
                "email": identity.email,
                "display_name": identity.display_name,
                "avatar_url": identity.avatar_url,
                "updated_at": now,
            },
            "$setOnInsert": {"created_at": now},
        }
        try:
            await self.profiles.update_one(query, update, upsert=True)
        except DuplicateKeyError:
            # Two first-time upserts raced; the other one created the row.
            logger.info(f"Profile for user {identity.external_user_id} created concurrently, updating instead.")
            await self.profiles.update_one(query, {"$set": update["$set"]})

        doc = await self.profiles.find_one(query)
        return UserProfile.model_validate(doc)

    # --- Movies ---

    async def insert_movie_if_absent(self, owner_user_id: str, movie: MovieSaveRequest) -> SaveResult:
        """
        Inserts the movie for this owner unless one with the same external id
        is already saved, in which case the existing record is returned with
        `is_new=False`.

        Raises:
            PyMongoError: If a database error other than the duplicate key occurs.
        """
        query = {"owner_user_id": owner_user_id, "external_id": movie.external_id}

        existing = await self.movies.find_one(query)
        if existing:
            logger.info(f"Movie {movie.external_id} already saved for user {owner_user_id}.")
            return SaveResult(is_new=False, record=await self._with_ratings(owner_user_id, existing))

        doc = movie.to_document(owner_user_id, _utcnow())
        try:
            result = await self.movies.insert_one(doc)
        except DuplicateKeyError:
            # Lost the race against a concurrent save of the same title.
            existing = await self.movies.find_one(query)
            if existing is None:
                raise
            logger.info(f"Concurrent save of {movie.external_id} for user {owner_user_id} resolved as existing.")
            return SaveResult(is_new=False, record=await self._with_ratings(owner_user_id, existing))

        doc["_id"] = result.inserted_id
        logger.info(f"Saved movie {movie.external_id} for user {owner_user_id} (ID {result.inserted_id}).")
        return SaveResult(is_new=True, record=MovieRecord.from_document(doc))

    async def insert_ratings(
        self, owner_user_id: str, movie_internal_id: str, ratings: Optional[Iterable[Any]]
    ) -> List[RatingRecord]:
        """
        Inserts the rating rows for a saved movie and returns them.

        Raises:
            ValueError: If a rating row is malformed (nothing is inserted).
            PyMongoError: If the insert fails.
        """
        rows = []
        for raw in ratings or []:
            entry = raw if isinstance(raw, RatingEntry) else RatingEntry.model_validate(raw)
            rows.append({
                "movie_internal_id": ObjectId(movie_internal_id),
                "owner_user_id": owner_user_id,
                "source_name": entry.source,
                "value_text": entry.value,
            })
        if not rows:
            return []

        await self.ratings.insert_many(rows)
        logger.debug(f"Inserted {len(rows)} ratings for movie {movie_internal_id}.")
        return [RatingRecord(source_name=row["source_name"], value_text=row["value_text"]) for row in rows]

    async def list_movies(self, owner_user_id: str) -> List[MovieRecord]:
        """All movies saved by the owner, newest first, with their ratings."""
        cursor = self.movies.find({"owner_user_id": owner_user_id}).sort(
            [("created_at", DESCENDING), ("_id", DESCENDING)]
        )
        docs = await cursor.to_list(length=None)
        ratings_by_movie = await self._ratings_for(owner_user_id, [doc["_id"] for doc in docs])
        logger.info(f"Fetched {len(docs)} saved movies for user {owner_user_id}.")
        return [MovieRecord.from_document(doc, ratings_by_movie.get(doc["_id"])) for doc in docs]

    async def get_movie(self, owner_user_id: str, movie_internal_id: str) -> Optional[MovieRecord]:
        obj_id = _to_object_id(movie_internal_id)
        if obj_id is None:
            return None
        doc = await self.movies.find_one({"_id": obj_id, "owner_user_id": owner_user_id})
        if doc is None:
            return None
        return await self._with_ratings(owner_user_id, doc)

    async def delete_movie(self, owner_user_id: str, movie_internal_id: str) -> int:
        """
        Deletes the owner's movie and its ratings (ratings first). Returns the
        number of movies removed; ids that are malformed or belong to someone
        else match nothing and return 0.
        """
        obj_id = _to_object_id(movie_internal_id)
        if obj_id is None:
            logger.warning(f"Delete requested with invalid movie ID format: {movie_internal_id}")
            return 0

        await self.ratings.delete_many({"movie_internal_id": obj_id, "owner_user_id": owner_user_id})
        result = await self.movies.delete_one({"_id": obj_id, "owner_user_id": owner_user_id})
        if result.deleted_count:
            logger.info(f"Deleted movie {movie_internal_id} for user {owner_user_id}.")
        else:
            logger.info(f"Delete of movie {movie_internal_id} for user {owner_user_id} matched nothing.")
        return result.deleted_count

    async def movie_exists(self, owner_user_id: str, external_id: str) -> bool:
        return await self.find_movie_id(owner_user_id, external_id) is not None

    async def find_movie_id(self, owner_user_id: str, external_id: str) -> Optional[str]:
        doc = await self.movies.find_one(
            {"owner_user_id": owner_user_id, "external_id": external_id},
            {"_id": 1},
        )
        return str(doc["_id"]) if doc else None

    # --- Search history ---

    async def append_search_history(
        self, owner_user_id: str, query_text: str, referenced_movie_id: Optional[str] = None
    ) -> str:
        """
        Appends one history entry. Errors propagate; callers that want
        best-effort semantics go through SearchHistoryRecorder.
        """
        result = await self.history.insert_one({
            "owner_user_id": owner_user_id,
            "query_text": query_text,
            "referenced_movie_id": _to_object_id(referenced_movie_id),
            "searched_at": _utcnow(),
        })
        return str(result.inserted_id)

    async def list_search_history(self, owner_user_id: str, limit: int = 10) -> List[SearchHistoryEntry]:
        """
        The owner's most recent searches, newest first. Entries whose movie
        reference still resolves (within the owner's own movies) carry the
        movie's title, year and poster.
        """
        cursor = self.history.find({"owner_user_id": owner_user_id}).sort(
            [("searched_at", DESCENDING), ("_id", DESCENDING)]
        ).limit(limit)
        docs = await cursor.to_list(length=limit)

        ref_ids = list({doc["referenced_movie_id"] for doc in docs if doc.get("referenced_movie_id")})
        movies_by_id: Dict[ObjectId, HistoryMovieRef] = {}
        if ref_ids:
            movie_cursor = self.movies.find(
                {"_id": {"$in": ref_ids}, "owner_user_id": owner_user_id},
                {"title": 1, "release_year": 1, "poster_url": 1},
            )
            for movie_doc in await movie_cursor.to_list(length=len(ref_ids)):
                movies_by_id[movie_doc["_id"]] = HistoryMovieRef(
                    title=movie_doc.get("title"),
                    release_year=movie_doc.get("release_year"),
                    poster_url=movie_doc.get("poster_url"),
                )

        entries = []
        for doc in docs:
            ref = doc.get("referenced_movie_id")
            entries.append(SearchHistoryEntry(
                id=str(doc["_id"]),
                query_text=doc["query_text"],
                referenced_movie_id=str(ref) if ref else None,
                searched_at=doc["searched_at"],
                movie=movies_by_id.get(ref) if ref else None,
            ))
        return entries

    # --- Helpers ---

    async def _ratings_for(self, owner_user_id: str, movie_ids: List[ObjectId]) -> Dict[ObjectId, List[Dict[str, Any]]]:
        if not movie_ids:
            return {}
        cursor = self.ratings.find(
            {"owner_user_id": owner_user_id, "movie_internal_id": {"$in": movie_ids}}
        ).sort("_id", ASCENDING)
        grouped: Dict[ObjectId, List[Dict[str, Any]]] = {}
        for rating in await cursor.to_list(length=None):
            grouped.setdefault(rating["movie_internal_id"], []).append(rating)
        return grouped

    async def _with_ratings(self, owner_user_id: str, doc: Dict[str, Any]) -> MovieRecord:
        ratings = await self._ratings_for(owner_user_id, [doc["_id"]])
        return MovieRecord.from_document(doc, ratings.get(doc["_id"]))


