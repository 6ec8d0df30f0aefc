"""ANSI terminal utility functions"""

import enum
from typing import NamedTuple

ESC = 27

CSI = "\x1b["
HIDE_CURSOR = CSI + "?25l"
SHOW_CURSOR = CSI + "?25h"
CURSOR_HOME = CSI + "H"
CLEAR_LINE = CSI + "K"
CLEAR_TO_END = CSI + "J"
CLEAR_SCREEN = CSI + "2J" + CURSOR_HOME
RESET = CSI + "0m"


class Size(NamedTuple):
    """A simple size class"""

    height: int
    width: int


class Color(enum.StrEnum):
    """Enumeration of colors, as ANSI SGR foreground codes"""

    DEFAULT = "37"
    ERROR = "31"
    WARNING = "33"
    INFO = "36"
    DEBUG = "35"
    DIM = "90"


def style(text: str, color: Color | None, enabled: bool = True) -> str:
    """Wrap text in the escape codes for a color"""
    if not enabled or color is None or not text:
        return text
    return f"{CSI}{color}m{text}{RESET}"


class Segment(NamedTuple):
    """A run of text drawn in a single color"""

    text: str
    color: Color | None = None


def plain_text(segments: list[Segment]) -> str:
    """Get the text of a line without any colors"""
    return "".join(segment.text for segment in segments)


def render_segments(segments: list[Segment], enabled: bool = True) -> str:
    """Render a line of segments to a string with escape codes"""
    return "".join(style(segment.text, segment.color, enabled) for segment in segments)


def slice_segments(segments: list[Segment], start: int, stop: int) -> list[Segment]:
    """Get the part of a line between two character offsets, keeping colors"""
    result = []
    pos = 0
    for segment in segments:
        seg_start, seg_stop = pos, pos + len(segment.text)
        pos = seg_stop
        lo, hi = max(start, seg_start), min(stop, seg_stop)
        if lo < hi:
            result.append(
                Segment(segment.text[lo - seg_start : hi - seg_start], segment.color)
            )
    return result


def truncate(text: str, width: int) -> str:
    """Cut text to the given width, marking the cut with an ellipsis"""
    if len(text) <= width:
        return text
    if width <= 3:
        return "..."[:max(0, width)]
    return text[: width - 3] + "..."
