"""Maps key events to session transitions"""

import logging
from typing import Callable

from tailview.display import format_entry, one_line
from tailview.helpers.ansi import CLEAR_SCREEN, plain_text
from tailview.models.session import SessionState
from tailview.terminal import Key, KeyEvent, TerminalDriver
from tailview.viewmodels.date_filter import DateFilterController
from tailview.viewmodels.pagination import LOAD_AHEAD, PaginationController
from tailview.viewmodels.search import SearchController
from tailview.views.viewport import SELECTION_MARKER, content_height

logger = logging.getLogger(__name__)

HORIZONTAL_STEP = 10

DATE_PROMPT_HEADER = (
    "Date Range Filter\n"
    "Examples: -1h, -30m, -24h, 2025-01-01\n"
    "Leave both blank to clear filters\n"
)


class InputDispatcher:  # pylint: disable=too-many-instance-attributes
    """Applies one key event at a time to the session"""

    def __init__(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        state: SessionState,
        terminal: TerminalDriver,
        pagination: PaginationController,
        search: SearchController,
        date_filter: DateFilterController,
        needs_redraw: Callable[[], None],
    ) -> None:
        self._state = state
        self._terminal = terminal
        self._pagination = pagination
        self._search = search
        self._date_filter = date_filter
        self._needs_redraw = needs_redraw

    @property
    def _page_height(self) -> int:
        return content_height(self._state.terminal_size)

    def dispatch(self, event: KeyEvent) -> bool:
        """Handle one event; returns False when the viewer should quit"""
        key = event.key
        if key == Key.QUIT:
            return False

        if key == Key.DOWN:
            self._down()
        elif key == Key.UP:
            self._up()
        elif key == Key.LEFT:
            self._scroll_horizontally(-HORIZONTAL_STEP)
        elif key == Key.RIGHT:
            self._scroll_horizontally(HORIZONTAL_STEP)
        elif key == Key.PAGE_DOWN:
            self._move_to(self._state.current_index + self._page_height)
            self._load_more(self._page_height)
        elif key == Key.PAGE_UP:
            self._move_to(self._state.current_index - self._page_height)
        elif key == Key.HOME:
            self._move_to(0)
        elif key == Key.END:
            self._move_to(len(self._state.entries) - 1)
            self._load_more()
        elif key == Key.TOGGLE_EXPAND:
            if self._state.entries:
                self._state.toggle_expanded(self._state.current_index)
        elif key == Key.NEXT:
            if self._search.active:
                self._move_to(self._state.current_index + 1)
                self._load_more()
        elif key == Key.PREV:
            if self._search.active:
                self._move_to(self._state.current_index - 1)
        elif key == Key.ESCAPE:
            self._search.clear()
        elif key == Key.SLASH_SEARCH:
            self._prompt_search()
        elif key == Key.DATE_FILTER:
            self._prompt_date_filter()
        return True

    def _move_to(self, index: int) -> None:
        self._state.select(index)

    def _load_more(self, window: int = LOAD_AHEAD) -> None:
        if self._search.active:
            self._search.maybe_load_more(window)
        else:
            self._pagination.maybe_load_more(window)

    def _down(self) -> None:
        state = self._state
        entry = state.current_entry
        if entry is None:
            return
        index = state.current_index
        if state.is_expanded(index) and state.scroll_expanded(
            index, 1, len(entry.pretty_lines())
        ):
            return
        self._move_to(index + 1)
        self._load_more()

    def _up(self) -> None:
        state = self._state
        entry = state.current_entry
        if entry is None:
            return
        index = state.current_index
        if state.is_expanded(index) and state.scroll_expanded(
            index, -1, len(entry.pretty_lines())
        ):
            return
        self._move_to(index - 1)

    def _line_length(self) -> int:
        state = self._state
        entry = state.current_entry
        if entry is None:
            return 0
        if state.is_expanded(state.current_index):
            longest = max(
                (len(one_line(line)) for line in entry.pretty_lines()), default=0
            )
        else:
            longest = len(plain_text(format_entry(entry)))
        return len(SELECTION_MARKER) + longest

    def _scroll_horizontally(self, delta: int) -> None:
        state = self._state
        if state.current_entry is None:
            return
        index = state.current_index
        max_offset = max(0, self._line_length() - state.terminal_size.width)
        offset = state.horizontal_scroll.get(index, 0) + delta
        state.set_horizontal_scroll(index, max(0, min(offset, max_offset)))

    def _prompt_search(self) -> None:
        self._terminal.write(CLEAR_SCREEN)
        query = self._terminal.read_line("Search: ")
        self._needs_redraw()
        self._search.submit(query)

    def _prompt_date_filter(self) -> None:
        self._terminal.write(CLEAR_SCREEN + DATE_PROMPT_HEADER)
        start = self._terminal.read_line("Start time: ")
        end = self._terminal.read_line("End time (optional): ")
        self._needs_redraw()
        self._date_filter.reload(start, end)
