"""Reloading the browse sequence for a date range"""

import dataclasses
import logging
from typing import Callable

from tailview.models.session import DateFilterState, Page, PaginationState, SessionState
from tailview.timespec import TimeSpecError, resolve_time_spec
from tailview.viewmodels.search import SearchController
from tailview.viewmodels.status import FILTER_STATUS_DURATION, StatusLine
from tailview.viewmodels.tasks import TaskRunner

logger = logging.getLogger(__name__)

Reload = Callable[[str, str], Page]


class DateFilterController:
    """Replaces everything on screen with the entries of a date range"""

    def __init__(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        state: SessionState,
        reload: Reload,
        tasks: TaskRunner,
        status: StatusLine,
        search: SearchController,
    ) -> None:
        self._state = state
        self._reload = reload
        self._tasks = tasks
        self._status = status
        self._search = search

    def reload(self, start: str, end: str) -> bool:
        """Query the range between two time specs; blank specs clear the filter.

        Returns whether a request was started.
        """
        start, end = start.strip(), end.strip()
        for label, spec in (("start", start), ("end", end)):
            try:
                resolve_time_spec(spec)
            except TimeSpecError as e:
                self._status.show(f"Invalid {label} time: {e}", FILTER_STATUS_DURATION)
                return False

        date_filter = self._state.date_filter
        if date_filter.loading:
            return False

        generation = date_filter.generation + 1
        self._state.date_filter = dataclasses.replace(
            date_filter, loading=True, generation=generation
        )
        self._status.show("Loading logs with date filter...")
        logger.info("Reloading with date range %r to %r", start, end)
        self._tasks.submit(
            lambda: self._reload(start, end),
            lambda page, error: self._on_reloaded(generation, start, end, page, error),
        )
        return True

    def _on_reloaded(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        generation: int,
        start: str,
        end: str,
        page: Page | None,
        error: BaseException | None,
    ) -> None:
        date_filter = self._state.date_filter
        if generation != date_filter.generation:
            logger.debug("Discarding stale reload of generation %d", generation)
            return

        if error is not None or page is None:
            self._state.date_filter = dataclasses.replace(date_filter, loading=False)
            self._status.show(f"Request error: {error}", FILTER_STATUS_DURATION)
            return

        self._search.reset()
        self._state.browse_entries = list(page.entries)
        self._state.pagination = PaginationState.from_page(
            page, generation=self._state.pagination.generation + 1
        )
        self._state.reset_view_state()
        self._state.current_index = 0
        self._state.date_filter = DateFilterState(
            start=start, end=end, generation=generation
        )

        if not page.entries:
            message = "No logs found for the specified date range"
        else:
            suffix = " (filtered)" if start or end else ""
            message = f"Loaded {len(page.entries)} entries{suffix}"
        self._status.show(message, FILTER_STATUS_DURATION)
