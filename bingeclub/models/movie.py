# bingeclub/models/movie.py

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# --- Provider-facing models ---
class RatingEntry(BaseModel):
    """One third-party rating as OMDb reports it (e.g. Rotten Tomatoes, 87%)."""
    model_config = ConfigDict(populate_by_name=True)

    # Stored names (source_name/value_text) are accepted too.
    source: str = Field(
        ..., alias="Source", validation_alias=AliasChoices("Source", "source", "source_name"), min_length=1
    )
    value: str = Field(
        ..., alias="Value", validation_alias=AliasChoices("Value", "value", "value_text"), min_length=1
    )


class MovieMetadata(BaseModel):
    """
    Normalized lookup result returned by GET /search. Serialized with the
    camelCase names the web client already understands.
    """
    model_config = ConfigDict(populate_by_name=True)

    title: str
    year: Optional[str] = None
    plot: Optional[str] = None
    ratings: List[RatingEntry] = Field(default_factory=list)
    genre: Optional[str] = None
    director: Optional[str] = None
    actors: Optional[str] = None
    imdb_rating: Optional[str] = Field(None, alias="imdbRating")
    imdb_votes: Optional[str] = Field(None, alias="imdbVotes")
    media_type: Optional[str] = Field(None, alias="type")
    poster: Optional[str] = None
    external_id: str = Field(..., alias="imdbID")


# --- Request body for POST /save ---
class MovieSaveRequest(BaseModel):
    """
    Body of a save request. Everything is optional at the schema level so the
    handler can answer a missing title/id with its own 400 instead of a 422.
    Field names from the search response and from the stored record are both
    accepted.
    """
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    external_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("imdbID", "external_id", "externalId", "imdb_id")
    )
    year: Optional[str] = Field(None, validation_alias=AliasChoices("year", "release_year"))
    plot: Optional[str] = None
    poster_url: Optional[str] = Field(None, validation_alias=AliasChoices("poster", "poster_url"))
    genre: Optional[str] = None
    director: Optional[str] = None
    cast: Optional[str] = Field(None, validation_alias=AliasChoices("actors", "cast"))
    aggregate_rating: Optional[str] = Field(None, validation_alias=AliasChoices("imdbRating", "aggregate_rating"))
    vote_count: Optional[str] = Field(None, validation_alias=AliasChoices("imdbVotes", "vote_count"))
    media_type: Optional[str] = Field(None, validation_alias=AliasChoices("type", "media_type"))
    # Left untyped: rating rows are validated when they are inserted so a bad
    # row cannot reject the movie itself.
    ratings: Optional[List[Any]] = None

    @field_validator("title", "external_id", "year", "aggregate_rating", "vote_count", mode="before")
    @classmethod
    def coerce_numbers_to_text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def to_document(self, owner_user_id: str, created_at: datetime) -> Dict[str, Any]:
        """Builds the `movies` document for this request (ratings excluded)."""
        return {
            "owner_user_id": owner_user_id,
            "external_id": self.external_id,
            "title": self.title,
            "release_year": self.year,
            "plot": self.plot,
            "poster_url": self.poster_url,
            "genre": self.genre,
            "director": self.director,
            "cast": self.cast,
            "aggregate_rating": self.aggregate_rating,
            "vote_count": self.vote_count,
            "media_type": self.media_type,
            "created_at": created_at,
        }


# --- Stored records ---
class RatingRecord(BaseModel):
    source_name: str
    value_text: str


class MovieRecord(BaseModel):
    """A saved movie as returned by the API (owner id is never echoed back)."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Internal database ID (MongoDB ObjectId as string).")
    external_id: str
    title: str
    release_year: Optional[str] = None
    plot: Optional[str] = None
    poster_url: Optional[str] = None
    genre: Optional[str] = None
    director: Optional[str] = None
    cast: Optional[str] = None
    aggregate_rating: Optional[str] = None
    vote_count: Optional[str] = None
    media_type: Optional[str] = None
    created_at: Optional[datetime] = None
    ratings: List[RatingRecord] = Field(default_factory=list)

    @classmethod
    def from_document(cls, doc: Dict[str, Any], ratings: Optional[List[Dict[str, Any]]] = None) -> "MovieRecord":
        fields = {k: v for k, v in doc.items() if k not in ("_id", "owner_user_id")}
        return cls(
            id=str(doc["_id"]),
            ratings=[RatingRecord(source_name=r["source_name"], value_text=r["value_text"]) for r in ratings or []],
            **fields,
        )


class SaveResult(BaseModel):
    """Outcome of an insert-if-absent: `is_new` is False for an existing record."""
    is_new: bool
    record: MovieRecord


# --- Response envelopes ---
class SaveMovieResponse(BaseModel):
    success: bool = True
    message: str
    data: MovieRecord


class MovieListResponse(BaseModel):
    success: bool = True
    data: List[MovieRecord]


class DeleteMovieResponse(BaseModel):
    success: bool = True
    message: str = "Movie deleted successfully"


class MovieResponse(BaseModel):
    success: bool = True
    data: MovieRecord


class ExistsResponse(BaseModel):
    success: bool = True
    exists: bool
