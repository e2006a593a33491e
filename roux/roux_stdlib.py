"""
Native libraries for Roux and the binder contract used to install them.
"""
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

from roux.roux_datatypes import NativeClass, roux_api_method
from roux.roux_printer import Printer


class LibraryBinder(ABC):
    """Installs native values into a runtime's global frame.

    `bind` is called once per runtime, before any script runs.
    """

    @abstractmethod
    def bind(self, runtime) -> None:
        raise NotImplementedError


def _key(value: Any) -> Tuple[type, Any]:
    # Keys are tagged by type so that `true` and `1` stay distinct keys.
    return (type(value), value)


def _index(value: Any, size: int, kind: str) -> int:
    if type(value) is not float or not value.is_integer():
        raise TypeError(f"{kind} index must be an integer.")
    i = int(value)
    if i < 0 or i >= size:
        raise IndexError(f"{kind} index out of range.")
    return i


class ListBacking:
    """A growable, zero-indexed sequence of values."""

    def __init__(self):
        self._items: List[Any] = []

    @roux_api_method
    def add(self, value):
        self._items.append(value)

    @roux_api_method
    def at(self, index):
        return self._items[_index(index, len(self._items), "List")]

    @roux_api_method
    def set_at(self, index, value):
        self._items[_index(index, len(self._items), "List")] = value
        return value

    @roux_api_method
    def count(self):
        return len(self._items)

    @roux_api_method
    def remove_at(self, index):
        return self._items.pop(_index(index, len(self._items), "List"))


class MapBacking:
    """An associative collection from values to values."""

    def __init__(self):
        self._entries: Dict[Tuple[type, Any], Any] = {}

    @roux_api_method
    def add(self, key, value):
        k = _key(key)
        if k in self._entries:
            raise ValueError(f"Map already contains key {Printer().pformat(key)}.")
        self._entries[k] = value

    @roux_api_method
    def at(self, key):
        k = _key(key)
        if k not in self._entries:
            raise KeyError(f"Map has no key {Printer().pformat(key)}.")
        return self._entries[k]

    @roux_api_method
    def set_at(self, key, value):
        self._entries[_key(key)] = value
        return value

    @roux_api_method
    def has(self, key):
        return _key(key) in self._entries

    @roux_api_method
    def count(self):
        return len(self._entries)


def clock():
    """Seconds since the epoch, as a number."""
    return time.time()


class StandardLibrary(LibraryBinder):
    """Defines `List`, `Map` and `clock` in the global frame."""

    def bind(self, runtime) -> None:
        runtime.define_value("List", NativeClass("List", ListBacking))
        runtime.define_value("Map", NativeClass("Map", MapBacking))
        runtime.define_value("clock", clock)
