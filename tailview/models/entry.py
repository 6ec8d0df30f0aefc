"""A single log entry, as fetched from the remote service"""

import copy
import functools
import json
import types
from typing import Any, Iterator, Mapping

MESSAGE_FIELDS = ("raw_message", "message", "msg", "body", "description")
TIMESTAMP_FIELDS = ("timestamp", "time", "created_at", "datetime", "logged_at")

MISSING = object()


def stringify(value: Any) -> str:
    """Format a document value as display text"""
    if value is None or value is MISSING:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(_plain(value), ensure_ascii=False, separators=(",", ":"))
    return str(value)


def _plain(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


class EntryDocument(Mapping[str, Any]):
    """Represents a single log entry.

    The document is opaque to the viewer apart from a few well-known display
    fields. It is read-only: the data is copied on construction and exposed
    through a read-only mapping.
    """

    def __init__(self, data: Mapping[str, Any]) -> None:
        self._data = types.MappingProxyType(copy.deepcopy(dict(data)))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"EntryDocument({dict(self._data)!r})"

    def get_value(self, key: str) -> str:
        """Get the value of a field, formatted as a string"""
        return stringify(self._data.get(key, MISSING))

    def first_value(self, *keys: str) -> str:
        """Get the first non-empty value among the given fields"""
        for key in keys:
            value = self.get_value(key)
            if value:
                return value
        return ""

    @property
    def raw_message(self) -> str:
        """The pre-formatted log line, if the service sent one"""
        return self.get_value("raw_message")

    @property
    def message(self) -> str:
        """The message text"""
        return self.first_value(*MESSAGE_FIELDS)

    @property
    def timestamp(self) -> str:
        """The timestamp text"""
        return self.first_value(*TIMESTAMP_FIELDS)

    @property
    def level(self) -> str:
        """The severity level, parsed fields first"""
        fields = self._data.get("fields")
        if isinstance(fields, Mapping) and "level" in fields:
            return stringify(fields["level"])
        return self.get_value("level")

    def to_json(self) -> str:
        """Compact JSON form of the whole document"""
        return stringify(self._data)

    def pretty_lines(self) -> list[str]:
        """Indented JSON form of the document, one list item per line"""
        return list(self._pretty)

    @functools.cached_property
    def _pretty(self) -> tuple[str, ...]:
        return tuple(
            json.dumps(
                _plain(self._data), indent=2, sort_keys=True, ensure_ascii=False
            ).split("\n")
        )
