# bingeclub/models/history.py

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class HistoryMovieRef(BaseModel):
    """Denormalized view of the movie a history entry points at."""
    title: Optional[str] = None
    release_year: Optional[str] = None
    poster_url: Optional[str] = None


class SearchHistoryEntry(BaseModel):
    id: str
    query_text: str
    referenced_movie_id: Optional[str] = Field(
        None, description="Weak reference to a saved movie; may no longer resolve."
    )
    searched_at: datetime
    movie: Optional[HistoryMovieRef] = Field(None, description="Present only when the reference still resolves.")


class HistoryResponse(BaseModel):
    success: bool = True
    data: List[SearchHistoryEntry]
