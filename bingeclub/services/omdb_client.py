# bingeclub/services/omdb_client.py

import logging
from typing import Any, Dict, Optional, Protocol

import aiohttp

from bingeclub.models.movie import MovieMetadata, RatingEntry

logger = logging.getLogger(__name__)

DEFAULT_NOT_FOUND_MESSAGE = "Movie/TV show not found"


class MovieNotFoundError(Exception):
    """The metadata provider has no title matching the query."""
    pass


class MovieLookupError(Exception):
    """The metadata provider could not be reached or answered unexpectedly."""
    pass


class MovieLookupClient(Protocol):
    async def lookup(self, title: str) -> MovieMetadata:
        ...


def normalize_omdb_payload(data: Dict[str, Any]) -> MovieMetadata:
    """
    Converts an OMDb `?t=` response into MovieMetadata.

    Raises:
        MovieNotFoundError: If OMDb reports `Response: "False"`.
    """
    if str(data.get("Response", "True")).lower() == "false":
        raise MovieNotFoundError(data.get("Error") or DEFAULT_NOT_FOUND_MESSAGE)

    ratings = [
        RatingEntry(source=r["Source"], value=r["Value"])
        for r in data.get("Ratings") or []
        if r.get("Source") and r.get("Value")
    ]
    return MovieMetadata(
        title=data.get("Title"),
        year=data.get("Year"),
        plot=data.get("Plot"),
        ratings=ratings,
        genre=data.get("Genre"),
        director=data.get("Director"),
        actors=data.get("Actors"),
        imdb_rating=data.get("imdbRating"),
        imdb_votes=data.get("imdbVotes"),
        media_type=data.get("Type"),
        poster=data.get("Poster"),
        external_id=data.get("imdbID"),
    )


class OmdbClient:
    """Looks up a single title on OMDb (https://www.omdbapi.com/)."""

    def __init__(self, api_key: str, base_url: str = "https://www.omdbapi.com/"):
        self.api_key = api_key
        self.base_url = base_url

    async def lookup(self, title: str) -> MovieMetadata:
        """
        Fetches metadata for the best match of `title`.

        Raises:
            MovieNotFoundError: If OMDb has no match.
            MovieLookupError: On transport errors, non-200 statuses or unparseable bodies.
        """
        params = {"t": title, "apikey": self.api_key}
        logger.info(f"Looking up title on OMDb: '{title}'")
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(self.base_url, params=params) as response:
                    if response.status != 200:
                        raise MovieLookupError(f"OMDb request failed: HTTP {response.status}")
                    data: Optional[Dict[str, Any]] = await response.json(content_type=None)
        except aiohttp.ClientError as e:
            logger.error(f"OMDb request error for '{title}': {e}", exc_info=True)
            raise MovieLookupError(f"OMDb request failed: {e}") from e
        except ValueError as e:
            logger.error(f"OMDb returned a non-JSON body for '{title}': {e}")
            raise MovieLookupError("OMDb returned an invalid response") from e

        if not isinstance(data, dict):
            raise MovieLookupError("OMDb returned an invalid response")
        return normalize_omdb_payload(data)
