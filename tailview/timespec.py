"""Flexible time specifications, as typed on the command line or in the
date filter prompt.

Supported forms:
  - "now"
  - relative offsets into the past: "-1h", "-30m", "-2h30m", "-7d", "-1.5h"
  - dates and times in local time: "2024-01-02", "2024-01-02 15:04",
    "2024-01-02 15:04:05"
  - ISO-8601 / RFC3339 timestamps: "2024-01-02T15:04:05Z"
  - epoch seconds or milliseconds: "1704207845", "1704207845000"

Everything resolves to an aware datetime in UTC.
"""

import datetime
import re

LOCAL_LAYOUTS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d")

_UNITS = {
    "ms": datetime.timedelta(milliseconds=1),
    "s": datetime.timedelta(seconds=1),
    "m": datetime.timedelta(minutes=1),
    "h": datetime.timedelta(hours=1),
    "d": datetime.timedelta(days=1),
}

_PART = r"(\d+(?:\.\d+)?)(ms|s|m|h|d)"
_RELATIVE_RE = re.compile(rf"^-(?:{_PART})+$")
_PART_RE = re.compile(_PART)
_EPOCH_RE = re.compile(r"^\d{9,}$")

# Epoch values above this are taken to be milliseconds
_MILLIS_THRESHOLD = 100_000_000_000

_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


class TimeSpecError(ValueError):
    """Raised for time specifications that cannot be parsed"""


def resolve_time_spec(
    value: str, now: datetime.datetime | None = None
) -> datetime.datetime | None:
    """Resolve a time specification to a UTC datetime; None for blank input"""
    value = value.strip()
    if not value:
        return None

    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    now = now.astimezone(datetime.timezone.utc)

    if value.lower() == "now":
        return now
    if value.startswith("-"):
        return now - _parse_offset(value)
    if _EPOCH_RE.match(value):
        return _from_epoch(int(value))

    for layout in LOCAL_LAYOUTS:
        try:
            parsed = datetime.datetime.strptime(value, layout)
        except ValueError:
            continue
        return parsed.astimezone(datetime.timezone.utc)

    try:
        parsed = datetime.datetime.fromisoformat(value)
    except ValueError as e:
        raise TimeSpecError(f"could not parse time value {value!r}") from e
    return parsed.astimezone(datetime.timezone.utc)


def _parse_offset(value: str) -> datetime.timedelta:
    if not _RELATIVE_RE.match(value):
        raise TimeSpecError(f"invalid relative duration {value!r}")
    offset = datetime.timedelta()
    for amount, unit in _PART_RE.findall(value):
        offset += float(amount) * _UNITS[unit]
    return offset


def _from_epoch(number: int) -> datetime.datetime:
    seconds = number / 1000 if number > _MILLIS_THRESHOLD else number
    try:
        return datetime.datetime.fromtimestamp(seconds, datetime.timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise TimeSpecError(f"epoch value out of range: {number}") from e


def to_epoch_millis(moment: datetime.datetime) -> int:
    """Milliseconds since the epoch, as the log service expects them"""
    return (moment - _EPOCH) // datetime.timedelta(milliseconds=1)
