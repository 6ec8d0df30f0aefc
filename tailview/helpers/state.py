"""Observable state infrastructure: change tracking and watcher notification"""

import collections
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")

MISSING = object()

_MUTATING_METHODS = frozenset(
    {
        "append",
        "extend",
        "insert",
        "pop",
        "remove",
        "clear",
        "sort",
        "reverse",
        "update",
        "setdefault",
        "popitem",
        "add",
        "discard",
        "difference_update",
        "intersection_update",
        "symmetric_difference_update",
    }
)


class Observable(Generic[T]):
    """Wraps a list, dict or set and reports in-place mutations"""

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, data: T, callback: Callable[[], None]) -> None:
        self._data = data
        self._callback = callback

    @property
    def data(self) -> T:
        """The wrapped object"""
        return self._data

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._data, name)
        if name not in _MUTATING_METHODS:
            return attr

        def _mutating(*args: Any, **kwargs: Any) -> Any:
            result = attr(*args, **kwargs)
            self._callback()
            return result

        return _mutating

    def __setitem__(self, key: Any, value: Any) -> None:
        self._data[key] = value  # type: ignore[index]
        self._callback()

    def __delitem__(self, key: Any) -> None:
        del self._data[key]  # type: ignore[attr-defined]
        self._callback()

    def __getitem__(self, key: Any) -> Any:
        return self._data[key]  # type: ignore[index]

    def __len__(self) -> int:
        return len(self._data)  # type: ignore[arg-type]

    def __iter__(self):
        return iter(self._data)  # type: ignore[call-overload]

    def __contains__(self, item: Any) -> bool:
        return item in self._data  # type: ignore[operator]

    def __bool__(self) -> bool:
        return bool(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Observable):
            other = other.data
        return self._data == other

    def __repr__(self) -> str:
        return f"Observable({self._data!r})"


def _observe(value: Any, callback: Callable[[], None]) -> Any:
    if isinstance(value, Observable):
        value = value.data
    if isinstance(value, (list, dict, set)):
        return Observable(value, callback)
    return value


class Field(Generic[T]):
    """Descriptor for a tracked state attribute.

    The default is either a value or a zero-argument factory. Mutable
    containers are wrapped in an Observable so that in-place changes are
    tracked as well as assignments.
    """

    def __init__(self, default: T | Callable[[], T]) -> None:
        self._default = default
        self._name = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self._name = name

    def _initial(self) -> T:
        if callable(self._default):
            return self._default()  # type: ignore[return-value]
        return self._default

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        values = instance.__dict__
        if self._name not in values:
            values[self._name] = _observe(
                self._initial(), lambda: instance._changed(self._name)
            )
        return values[self._name]

    def __set__(self, instance: Any, value: T) -> None:
        old_value = instance.__dict__.get(self._name, MISSING)
        instance.__dict__[self._name] = _observe(
            value, lambda: instance._changed(self._name)
        )
        if old_value is MISSING or old_value != value:
            instance._changed(self._name)


class State:
    """Base class for state objects that track changes to their attributes"""

    def __init__(self) -> None:
        object.__setattr__(self, "_changes", set())
        object.__setattr__(
            self, "_watchers", collections.defaultdict(list)
        )

    def __setattr__(self, name: str, value: Any) -> None:
        if isinstance(getattr(type(self), name, None), Field):
            super().__setattr__(name, value)
            return

        # Only track changes for public attributes (not starting with _)
        old_value = getattr(self, name, MISSING)
        super().__setattr__(name, value)
        if not name.startswith("_") and old_value != value:
            self._changed(name)

    def _changed(self, name: str) -> None:
        self._changes.add(name)
        for callback in self._watchers[name]:
            callback()

    @property
    def changes(self) -> set[str]:
        """Get the set of attribute names that have changed."""
        return self._changes.copy()

    def clear_changes(self) -> None:
        """Clear the changes set."""
        self._changes.clear()

    def register_watcher(self, name: str, callback: Callable[[], None]) -> None:
        """Register a callback to be notified when an attribute changes"""
        self._watchers[name].append(callback)
