"""Formatting of log entries for the terminal"""

from tailview.helpers.ansi import Color, Segment
from tailview.models.entry import EntryDocument


def color_for_level(level: str) -> Color:
    """Get the display color for a severity level"""
    level = level.upper()
    if level in ["ERROR", "ERR", "CRITICAL", "FATAL"]:
        return Color.ERROR
    if level in ["WARN", "WARNING"]:
        return Color.WARNING
    if level in ["INFO"]:
        return Color.INFO
    if level in ["DEBUG"]:
        return Color.DEBUG
    if level in ["TRACE"]:
        return Color.DIM
    return Color.DEFAULT


def format_entry(entry: EntryDocument) -> list[Segment]:
    """Format an entry as a single line of colored segments"""
    level = entry.level.upper()

    # The raw message is the original log line, already formatted
    raw_message = entry.raw_message
    if raw_message:
        color = color_for_level(level) if level else None
        return [Segment(one_line(raw_message), color)]

    segments = []
    timestamp = entry.timestamp
    if timestamp:
        segments += [Segment(one_line(timestamp), Color.DIM), Segment(" ")]
    if level:
        segments += [Segment(one_line(level), color_for_level(level)), Segment(" ")]
    message = entry.message
    if message:
        segments.append(Segment(one_line(message)))

    if not segments:
        return [Segment(one_line(entry.to_json()))]
    return segments


_REPLACEMENTS = {"\r": "\\r", "\n": "\\n", "\t": " "}


def one_line(text: str) -> str:
    """Escape control characters so the text is one line of printable cells"""
    if text.isprintable():
        return text
    return "".join(
        char if char.isprintable() else _REPLACEMENTS.get(char, repr(char)[1:-1])
        for char in text
    )
