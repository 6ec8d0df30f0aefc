"""Renders the session state into a single terminal frame"""

from typing import NamedTuple

from tailview.display import format_entry, one_line
from tailview.helpers.ansi import (
    CLEAR_LINE,
    CLEAR_TO_END,
    CURSOR_HOME,
    RESET,
    Color,
    Segment,
    Size,
    plain_text,
    render_segments,
    slice_segments,
    style,
    truncate,
)
from tailview.models.session import SearchPhase, SessionMode, SessionState

# Header, status, top rule, bottom rule and footer
RESERVED_ROWS = 5

SELECTION_MARKER = "▶ "
NO_MARKER = "  "


class Viewport(NamedTuple):
    """The range of entry indexes shown on screen"""

    start: int
    end: int


def content_height(size: Size) -> int:
    """Number of rows available for entries"""
    return max(1, size.height - RESERVED_ROWS)


def compute_viewport(current_index: int, length: int, height: int) -> Viewport:
    """Center the current index in a window of the given height"""
    start = max(0, current_index - height // 2)
    end = min(length, start + height)
    if end == length:
        start = max(0, end - height)
    return Viewport(start, end)


def clamp_offset(offset: int, length: int, width: int) -> int:
    """Clamp a horizontal scroll offset so the window stays on the line"""
    return max(0, min(offset, max(0, length - width)))


def window_segments(segments: list[Segment], offset: int, width: int) -> list[Segment]:
    """Cut the part of a line visible at a horizontal offset.

    Hidden content on either side is marked by replacing the outermost
    visible character with '<' or '>'.
    """
    length = len(plain_text(segments))
    if length <= width:
        return segments

    offset = clamp_offset(offset, length, width)
    end = offset + width
    visible = slice_segments(segments, offset, end)
    hidden_left = offset > 0
    hidden_right = end < length
    if hidden_left and hidden_right and width < 3:
        return visible
    if hidden_left:
        first = visible[0]
        visible[0] = Segment("<" + first.text[1:], first.color)
    if hidden_right:
        last = visible[-1]
        visible[-1] = Segment(last.text[:-1] + ">", last.color)
    return visible


def horizontal_window(text: str, offset: int, width: int) -> str:
    """Plain-text version of window_segments"""
    return plain_text(window_segments([Segment(text)], offset, width))


def collapsed_line(state: SessionState, index: int) -> list[Segment]:
    """The single line shown for an entry that is not expanded"""
    marker = (
        Segment(SELECTION_MARKER, Color.INFO)
        if index == state.current_index
        else Segment(NO_MARKER)
    )
    return [marker, *format_entry(state.entries[index])]


class ViewportRenderer:
    """Builds complete frames from the session state"""

    def __init__(self, with_color: bool = True) -> None:
        self._with_color = with_color

    def render(self, state: SessionState, size: Size) -> str:
        """Render one frame; the result is meant to be written in one go"""
        width = max(1, size.width)
        height = content_height(size)
        rule = "─" * width

        lines = [
            truncate(self._header(state), width),
            style(truncate(state.status, width), Color.WARNING, self._with_color),
            rule,
            *self._content(state, height, width),
            rule,
            truncate(self._footer(state, height), width),
        ]

        return (
            CURSOR_HOME
            + "\n".join(line + RESET + CLEAR_LINE for line in lines)
            + CLEAR_TO_END
        )

    def _content(self, state: SessionState, height: int, width: int) -> list[str]:
        entries = state.entries
        if not entries:
            message = (
                "Searching..."
                if state.search.phase == SearchPhase.SEARCHING
                else "No entries"
            )
            rows = [style(NO_MARKER + message, Color.DIM, self._with_color)]
        else:
            viewport = compute_viewport(state.current_index, len(entries), height)
            start = viewport.start
            rows, shown = self._entry_rows(state, start, viewport.end, height, width)
            # Expanded entries above the selection may push it off screen
            while state.current_index not in shown and start < state.current_index:
                start += 1
                rows, shown = self._entry_rows(
                    state, start, viewport.end, height, width
                )

        return rows + [""] * (height - len(rows))

    def _entry_rows(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self, state: SessionState, start: int, end: int, height: int, width: int
    ) -> tuple[list[str], set[int]]:
        rows: list[str] = []
        shown = set()
        for index in range(start, end):
            budget = height - len(rows)
            if budget <= 0:
                break
            shown.add(index)
            offset = state.horizontal_scroll.get(index, 0)
            if state.is_expanded(index):
                block = self._expanded_block(state, index, budget)
            else:
                block = [collapsed_line(state, index)]
            rows.extend(
                render_segments(window_segments(line, offset, width), self._with_color)
                for line in block
            )
        return rows, shown

    @staticmethod
    def _expanded_block(
        state: SessionState, index: int, budget: int
    ) -> list[list[Segment]]:
        lines = state.entries[index].pretty_lines()
        scroll = max(0, min(state.vertical_scroll.get(index, 0), len(lines) - 1))
        visible_count = min(len(lines) - scroll, budget)
        clipped = scroll > 0 or scroll + visible_count < len(lines)
        if clipped and visible_count == budget and budget > 1:
            visible_count -= 1

        marker = (
            Segment(SELECTION_MARKER, Color.INFO)
            if index == state.current_index
            else Segment(NO_MARKER)
        )
        block = [
            [marker if i == 0 else Segment(NO_MARKER), Segment(one_line(line))]
            for i, line in enumerate(lines[scroll : scroll + visible_count])
        ]
        if clipped and len(block) < budget:
            indicator = (
                f"{NO_MARKER}[Lines {scroll + 1}-{scroll + visible_count}"
                f" of {len(lines)}]"
            )
            block.append([Segment(indicator, Color.DIM)])
        return block

    @staticmethod
    def _header(state: SessionState) -> str:
        pagination = state.active_pagination
        mode = state.mode
        if mode == SessionMode.SEARCHING:
            title = f"Search Results for '{state.search.query}'"
        elif mode == SessionMode.DATE_FILTERING:
            title = "Filtered Logs"
        else:
            title = "Logs"

        total_info = ""
        if pagination.total:
            total_info = f" of {pagination.total} total"
        elif pagination.has_more:
            total_info = " (more available)"

        parts = [f"{title} ({len(state.entries)} loaded{total_info})"]
        if state.date_filter.active:
            parts.append(state.date_filter.describe())
        if state.loading:
            parts.append("(loading...)")
        header = " ".join(parts)
        return (
            f"{header} - Use j/k or ↓/↑ to navigate,"
            f" Space/Enter to expand/collapse, q to quit"
        )

    @staticmethod
    def _footer(state: SessionState, height: int) -> str:
        count = len(state.entries)
        searching = state.mode == SessionMode.SEARCHING
        position = f"Entry {state.current_index + 1 if count else 0}/{count}"
        if count > height:
            position += f" [{int(state.current_index / count * 100)}%]"

        parts = [position]
        if state.active_pagination.has_more:
            parts.append(
                "More results (will auto-load)"
                if searching
                else "More available (will auto-load)"
            )
        if searching:
            parts.append("n/N: next/prev | Esc: clear search | f: date filter")
        else:
            parts.append("/: search | f: date filter")
        parts.append("Space: expand | q: quit")
        return " | ".join(parts)
