"""State of a viewer session"""

import dataclasses
import enum
from typing import Sequence

from tailview.helpers.ansi import Size
from tailview.helpers.state import Field, State
from tailview.models.entry import EntryDocument


class SessionMode(enum.Enum):
    """Which entry source is displayed and governs background loading"""

    BROWSING = "browsing"
    SEARCHING = "searching"
    DATE_FILTERING = "date_filtering"


class SearchPhase(enum.Enum):
    """Phases of a server-side search"""

    IDLE = "idle"
    SEARCHING = "searching"
    RESULTS = "results"
    NO_MATCHES = "no_matches"


@dataclasses.dataclass(frozen=True)
class Page:
    """One page of entries, as returned by the fetch and reload collaborators"""

    entries: tuple[EntryDocument, ...] = ()
    has_more: bool = False
    total: int | None = None
    next_cursor: str = ""


@dataclasses.dataclass(frozen=True)
class PaginationState:
    """Cursor bookkeeping for one stream of pages"""

    cursor: str = ""
    has_more: bool = False
    total: int | None = None
    loading: bool = False
    generation: int = 0

    @classmethod
    def from_page(cls, page: Page, generation: int = 0) -> "PaginationState":
        """Pagination state right after the given first page"""
        return cls(
            cursor=page.next_cursor,
            has_more=page.has_more,
            total=page.total,
            generation=generation,
        )

    @property
    def can_load_more(self) -> bool:
        """Whether another page may be requested now"""
        return not self.loading and self.has_more and bool(self.cursor)

    def advanced(self, page: Page) -> "PaginationState":
        """Pagination state after the given continuation page arrived"""
        return dataclasses.replace(
            self,
            cursor=page.next_cursor,
            has_more=page.has_more,
            total=page.total,
            loading=False,
        )


@dataclasses.dataclass(frozen=True)
class SearchState:
    """Server-side search bookkeeping, independent of browse pagination"""

    active: bool = False
    query: str = ""
    phase: SearchPhase = SearchPhase.IDLE
    pagination: PaginationState = dataclasses.field(default_factory=PaginationState)
    matches: tuple[int, ...] = ()
    return_index: int = 0


@dataclasses.dataclass(frozen=True)
class DateFilterState:
    """The applied date range, as typed by the user"""

    start: str = ""
    end: str = ""
    loading: bool = False
    generation: int = 0

    @property
    def active(self) -> bool:
        """Whether a range is applied"""
        return bool(self.start or self.end)

    def describe(self) -> str:
        """Short description of the range for the header"""
        if self.start and self.end:
            return f"[{self.start} to {self.end}]"
        if self.start:
            return f"[from {self.start}]"
        if self.end:
            return f"[until {self.end}]"
        return ""


class SessionState(State):  # pylint: disable=too-many-instance-attributes
    """All mutable viewer state.

    The browse and search sequences are kept apart; `entries` is whichever
    one the current mode displays. Per-entry view state is keyed by index
    into the displayed sequence.
    """

    terminal_size = Field[Size](Size(0, 0))
    browse_entries = Field[list[EntryDocument]](list)
    search_entries = Field[list[EntryDocument]](list)
    pagination = Field[PaginationState](PaginationState)
    search = Field[SearchState](SearchState)
    date_filter = Field[DateFilterState](DateFilterState)
    expanded = Field[set[int]](set)
    vertical_scroll = Field[dict[int, int]](dict)
    horizontal_scroll = Field[dict[int, int]](dict)
    current_index = Field[int](0)
    status = Field[str]("")

    FIELDS = (
        "terminal_size",
        "browse_entries",
        "search_entries",
        "pagination",
        "search",
        "date_filter",
        "expanded",
        "vertical_scroll",
        "horizontal_scroll",
        "current_index",
        "status",
    )

    @classmethod
    def from_page(cls, page: Page) -> "SessionState":
        """Create the session around the initially loaded page"""
        state = cls()
        state.browse_entries = list(page.entries)
        state.pagination = PaginationState.from_page(page)
        state.clear_changes()
        return state

    @property
    def mode(self) -> SessionMode:
        """The current session mode"""
        if self.search.active:
            return SessionMode.SEARCHING
        if self.date_filter.active:
            return SessionMode.DATE_FILTERING
        return SessionMode.BROWSING

    @property
    def entries(self) -> Sequence[EntryDocument]:
        """The displayed entries"""
        if self.search.active:
            return self.search_entries
        return self.browse_entries

    @property
    def active_pagination(self) -> PaginationState:
        """Pagination state of the displayed stream"""
        if self.search.active:
            return self.search.pagination
        return self.pagination

    @property
    def loading(self) -> bool:
        """Whether any background load is in flight"""
        return (
            self.pagination.loading
            or self.search.pagination.loading
            or self.date_filter.loading
        )

    @property
    def current_entry(self) -> EntryDocument | None:
        """The selected entry, if any"""
        if not self.entries:
            return None
        return self.entries[self.current_index]

    def select(self, index: int) -> None:
        """Move the selection, clamped to the displayed entries"""
        count = len(self.entries)
        new_index = max(0, min(index, count - 1)) if count else 0
        old_index = self.current_index
        if new_index != old_index and old_index not in self.expanded:
            self.horizontal_scroll.pop(old_index, None)
        self.current_index = new_index

    def clamp_selection(self) -> None:
        """Re-establish the selection invariant after the entries changed"""
        self.select(self.current_index)

    def is_expanded(self, index: int) -> bool:
        """Whether the entry at index is expanded"""
        return index in self.expanded

    def toggle_expanded(self, index: int) -> bool:
        """Expand or collapse an entry, returning whether it is now expanded"""
        if index in self.expanded:
            self.expanded.discard(index)
            self.vertical_scroll.pop(index, None)
            self.horizontal_scroll.pop(index, None)
            return False
        self.expanded.add(index)
        self.vertical_scroll[index] = 0
        return True

    def scroll_expanded(self, index: int, delta: int, line_count: int) -> bool:
        """Scroll the content of an expanded entry, returning whether it moved"""
        if index not in self.expanded:
            return False
        current = self.vertical_scroll.get(index, 0)
        new_offset = max(0, min(current + delta, line_count - 1))
        if new_offset == current:
            return False
        self.vertical_scroll[index] = new_offset
        return True

    def set_horizontal_scroll(self, index: int, offset: int) -> None:
        """Set the horizontal scroll of an entry"""
        if offset <= 0:
            self.horizontal_scroll.pop(index, None)
        else:
            self.horizontal_scroll[index] = offset

    def reset_view_state(self) -> None:
        """Collapse everything and forget all scroll offsets"""
        self.expanded.clear()
        self.vertical_scroll.clear()
        self.horizontal_scroll.clear()

    def extend_browse(self, entries: Sequence[EntryDocument]) -> None:
        """Append a page to the browse sequence"""
        if entries:
            self.browse_entries.extend(entries)

    def extend_search(self, entries: Sequence[EntryDocument]) -> None:
        """Append a page to the search sequence"""
        if entries:
            self.search_entries.extend(entries)
