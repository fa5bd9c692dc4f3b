# bingeclub/services/history_recorder.py

import logging
from typing import Optional

from bingeclub.services.movie_store import MovieStore

logger = logging.getLogger(__name__)


class SearchHistoryRecorder:
    """
    Fire-and-forget writer for the search-history log.

    `record` is meant to be scheduled as a background task after the search
    response is built. It never raises: a failed write is reported as a
    warning log event and a False return value.
    """
    def __init__(self, store: MovieStore):
        self.store = store

    async def record(self, owner_user_id: str, query_text: str, referenced_movie_id: Optional[str] = None) -> bool:
        try:
            await self.store.append_search_history(owner_user_id, query_text, referenced_movie_id)
        except Exception as e:
            logger.warning(
                f"search history write failed for user {owner_user_id} (query '{query_text}'): {e}",
                exc_info=True,
            )
            return False
        logger.debug(f"Recorded search '{query_text}' for user {owner_user_id}.")
        return True
