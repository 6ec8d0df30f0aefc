"""Server-side search mode"""

import dataclasses
import logging

from tailview.models.session import (
    Page,
    PaginationState,
    SearchPhase,
    SearchState,
    SessionState,
)
from tailview.viewmodels.pagination import LOAD_AHEAD, Fetch, near_end
from tailview.viewmodels.status import LOAD_STATUS_DURATION, StatusLine
from tailview.viewmodels.tasks import TaskRunner

logger = logging.getLogger(__name__)


def describe_results(count: int, page: Page) -> str:
    """Status text announcing the first page of search results"""
    if page.total:
        found = f"{count} of {page.total}"
    elif page.has_more:
        found = f"{count}+"
    else:
        found = str(count)
    more = " - scroll down to load more" if page.has_more else ""
    return f"Found {found} results{more} - Esc to clear"


class SearchController:
    """Runs queries against the server and pages through their results.

    Results live in their own sequence with their own pagination, so the
    browse sequence is untouched and shown again once the search is cleared.
    """

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

    @property
    def active(self) -> bool:
        """Whether a search is active"""
        return self._state.search.active

    def submit(self, query: str) -> None:
        """Start a new search; an empty query clears the current one"""
        query = query.strip()
        if not query:
            self.clear()
            return

        previous = self._state.search
        return_index = (
            previous.return_index if previous.active else self._state.current_index
        )
        generation = previous.pagination.generation + 1
        self._state.search_entries = []
        self._state.search = SearchState(
            active=True,
            query=query,
            phase=SearchPhase.SEARCHING,
            pagination=PaginationState(loading=True, generation=generation),
            return_index=return_index,
        )
        self._state.reset_view_state()
        self._state.select(0)
        self._status.show(f"Searching for '{query}'...")
        logger.info("Searching for %r", query)
        self._tasks.submit(
            lambda: self._fetch("", query),
            lambda page, error: self._on_results(generation, page, error),
        )

    def _on_results(
        self, generation: int, page: Page | None, error: BaseException | None
    ) -> None:
        search = self._state.search
        if generation != search.pagination.generation:
            logger.debug("Discarding stale search results of generation %d", generation)
            return

        if error is not None or page is None:
            self._state.search = dataclasses.replace(
                search,
                phase=SearchPhase.NO_MATCHES,
                pagination=dataclasses.replace(search.pagination, loading=False),
            )
            self._status.show(f"Search error: {error}")
            return

        count = len(page.entries)
        self._state.search_entries = list(page.entries)
        self._state.search = dataclasses.replace(
            search,
            phase=SearchPhase.RESULTS if count else SearchPhase.NO_MATCHES,
            pagination=PaginationState.from_page(page, generation),
            matches=tuple(range(count)),
        )
        self._state.select(0)
        if count:
            self._status.show(describe_results(count, page))
        else:
            self._status.show(f"No matches for '{search.query}' (Esc: clear)")

    def maybe_load_more(self, window: int = LOAD_AHEAD) -> bool:
        """Start loading more results if the selection is near the end"""
        search = self._state.search
        if not search.active or not near_end(
            search.pagination,
            self._state.current_index,
            len(self._state.search_entries),
            window,
        ):
            return False

        generation = search.pagination.generation
        cursor = search.pagination.cursor
        query = search.query
        self._state.search = dataclasses.replace(
            search, pagination=dataclasses.replace(search.pagination, loading=True)
        )
        self._status.show("Loading more search results...")
        self._tasks.submit(
            lambda: self._fetch(cursor, query),
            lambda page, error: self._on_more_results(generation, page, error),
        )
        return True

    def _on_more_results(
        self, generation: int, page: Page | None, error: BaseException | None
    ) -> None:
        search = self._state.search
        if generation != search.pagination.generation:
            logger.debug("Discarding stale search page of generation %d", generation)
            return

        if error is not None or page is None:
            self._state.search = dataclasses.replace(
                search,
                pagination=dataclasses.replace(search.pagination, loading=False),
            )
            self._status.show(f"Error loading: {error}", LOAD_STATUS_DURATION)
            return

        start = len(self._state.search_entries)
        self._state.extend_search(page.entries)
        self._state.search = dataclasses.replace(
            search,
            pagination=search.pagination.advanced(page),
            matches=search.matches
            + tuple(range(start, start + len(page.entries))),
        )
        total = f" ({page.total} total)" if page.total is not None else ""
        self._status.show(
            f"Loaded {len(page.entries)} more results{total}", LOAD_STATUS_DURATION
        )

    def clear(self) -> None:
        """Leave search mode and return to the browse entries"""
        search = self._state.search
        if not search.active:
            return
        self.reset()
        self._state.reset_view_state()
        self._state.select(search.return_index)
        self._status.show("Search cleared - back to normal mode")
        logger.info("Search cleared")

    def reset(self) -> None:
        """Drop any search silently, invalidating outstanding requests"""
        generation = self._state.search.pagination.generation + 1
        self._state.search = SearchState(
            pagination=PaginationState(generation=generation)
        )
        self._state.search_entries = []
