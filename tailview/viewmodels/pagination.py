"""Incremental loading of the browse sequence"""

import dataclasses
import logging
from typing import Callable

from tailview.models.session import Page, PaginationState, SessionState
from tailview.viewmodels.status import LOAD_STATUS_DURATION, StatusLine
from tailview.viewmodels.tasks import TaskRunner

logger = logging.getLogger(__name__)

# How close to the end of the loaded entries the selection must be
LOAD_AHEAD = 5

Fetch = Callable[[str, str], Page]


def near_end(
    pagination: PaginationState, index: int, length: int, window: int = LOAD_AHEAD
) -> bool:
    """Whether the selection is close enough to the end to load the next page"""
    return pagination.can_load_more and index >= length - window


class PaginationController:
    """Fetches further browse pages in the background as the user scrolls"""

    def __init__(
        self,
        state: SessionState,
        fetch: Fetch,
        tasks: TaskRunner,
        status: StatusLine,
    ) -> None:
        self._state = state
        self._fetch = fetch
        self._tasks = tasks
        self._status = status

    def maybe_load_more(self, window: int = LOAD_AHEAD) -> bool:
        """Start loading the next page if the selection is near the end"""
        pagination = self._state.pagination
        if not near_end(
            pagination,
            self._state.current_index,
            len(self._state.browse_entries),
            window,
        ):
            return False

        generation = pagination.generation
        cursor = pagination.cursor
        self._state.pagination = dataclasses.replace(pagination, loading=True)
        self._status.show("Loading more...")
        logger.debug("Loading next page from cursor %r", cursor)
        self._tasks.submit(
            lambda: self._fetch(cursor, ""),
            lambda page, error: self._on_page(generation, page, error),
        )
        return True

    def _on_page(
        self, generation: int, page: Page | None, error: BaseException | None
    ) -> None:
        pagination = self._state.pagination
        if generation != pagination.generation:
            logger.debug("Discarding stale page of generation %d", generation)
            return

        if error is not None or page is None:
            self._state.pagination = dataclasses.replace(pagination, loading=False)
            self._status.show(f"Error loading: {error}", LOAD_STATUS_DURATION)
            return

        self._state.extend_browse(page.entries)
        self._state.pagination = pagination.advanced(page)
        self._status.show(
            f"Loaded {len(page.entries)} new entries", LOAD_STATUS_DURATION
        )
