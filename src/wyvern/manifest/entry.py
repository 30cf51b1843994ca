"""Uniform access to a dependency entry regardless of its TOML syntax."""

from __future__ import annotations

from abc import ABC
from collections.abc import Iterator, MutableMapping
from enum import Enum
from typing import Any

import tomlkit
from tomlkit.items import InlineTable, Item, Table


class EntryKind(Enum):
    """Surface syntax of a dependency entry."""

    INLINE = "inline"
    TABLE = "table"


class EntryHandle(ABC):
    """A dependency entry, ``foo = { ... }`` or ``[dependencies.foo]``.

    Both variants share one interface. Values are returned as plain Python
    values; writes keep the surrounding formatting of the document.
    """

    kind: EntryKind

    def __init__(self, container: InlineTable | Table) -> None:
        self._container = container

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._container:
            return default
        value = self._container[key]
        return value.unwrap() if isinstance(value, Item) else value

    def set(self, key: str, value: Any) -> None:
        self._container[key] = value

    def remove(self, key: str) -> bool:
        """Remove a key; returns whether it was present."""
        if key not in self._container:
            return False
        del self._container[key]
        return True

    def __contains__(self, key: object) -> bool:
        return key in self._container

    def keys(self) -> list[str]:
        return list(self._container.keys())

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    @property
    def is_path(self) -> bool:
        return "path" in self._container

    def promote(self, key: str, value: Any) -> None:
        """Set ``key`` to ``value`` and move it in front of every other key."""
        if key in self._container:
            self._container.remove(key)
        rest = [(k, self._container.item(k)) for k in list(self._container.keys())]
        for k, _ in rest:
            self._container.remove(k)
        self._container.append(key, self._new_item(value))
        for k, existing in rest:
            self._container.append(k, existing)

    def _new_item(self, value: Any) -> Item:
        return tomlkit.item(value)


class InlineEntry(EntryHandle):
    """``foo = { version = "1", path = "../foo" }``

    Adding, removing or reordering keys rebuilds the inline table in its
    parent slot, so the result reads ``{ a = 1, b = 2 }`` instead of keeping
    the separators of the removed keys.
    """

    kind = EntryKind.INLINE

    def __init__(
        self,
        container: InlineTable,
        parent: MutableMapping[str, Any] | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(container)
        self._parent = parent
        self._key = key

    def _rebuild(self, items: list[tuple[str, Item]]) -> bool:
        if self._parent is None or self._key is None:
            return False
        table = _inline_from_items(items)
        self._parent[self._key] = table
        self._container = table
        return True

    def _items(self, skip: str | None = None) -> list[tuple[str, Item]]:
        return [(k, self._container.item(k)) for k in self.keys() if k != skip]

    def set(self, key: str, value: Any) -> None:
        if key in self._container or not self._rebuild(
            [*self._items(), (key, tomlkit.item(value))]
        ):
            super().set(key, value)

    def remove(self, key: str) -> bool:
        if key not in self._container:
            return False
        if not self._rebuild(self._items(skip=key)):
            return super().remove(key)
        return True

    def promote(self, key: str, value: Any) -> None:
        if not self._rebuild([(key, tomlkit.item(value)), *self._items(skip=key)]):
            super().promote(key, value)

    def _new_item(self, value: Any) -> Item:
        new = tomlkit.item(value)
        new.trivia.indent = " "
        return new


class TableEntry(EntryHandle):
    """``[dependencies.foo]`` followed by one key per line."""

    kind = EntryKind.TABLE


def wrap_entry(
    value: Any,
    parent: MutableMapping[str, Any] | None = None,
    key: str | None = None,
) -> EntryHandle | None:
    """Wrap a parsed value as an entry handle, ``None`` for other syntaxes.

    ``parent`` and ``key`` locate the value, which lets inline entries be
    rebuilt in place.
    """
    if isinstance(value, InlineTable):
        return InlineEntry(value, parent, key)
    if isinstance(value, Table):
        return TableEntry(value)
    return None


def _inline_from_items(items: list[tuple[str, Item]]) -> InlineTable:
    table = tomlkit.inline_table()
    for idx, (key, value) in enumerate(items):
        value.trivia.indent = " " if idx == 0 else ""
        value.trivia.trail = " " if idx == len(items) - 1 else ""
        table.append(key, value)
    return table


def new_inline_table(values: dict[str, Any]) -> InlineTable:
    """Build ``{ key = value, ... }`` with the spacing Cargo manifests use."""
    return _inline_from_items([(k, tomlkit.item(v)) for k, v in values.items()])
