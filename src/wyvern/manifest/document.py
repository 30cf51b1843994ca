"""Lossless manifest documents."""

from __future__ import annotations

from collections.abc import MutableMapping
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.toml_document import TOMLDocument

from wyvern.errors import ManifestIOError


class ManifestDocument:
    """A Cargo.toml kept as a concrete syntax tree.

    Everything that is not edited, comments and whitespace included, is
    written back exactly as it was read. The file is only rewritten when an
    edit marked the document dirty.

    Attributes:
        path: Location of the manifest.
        document: The tomlkit document.
    """

    def __init__(self, path: Path, document: TOMLDocument) -> None:
        self.path = path
        self.document = document
        self._dirty = False

    @classmethod
    def load(cls, path: Path) -> ManifestDocument:
        """Read and parse a manifest.

        Raises:
            ManifestIOError: If the file cannot be read or parsed.
        """
        # bytes keep line endings exactly as they are on disk
        try:
            text = path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestIOError(path, str(e)) from e
        return cls.parse(text, path)

    @classmethod
    def parse(cls, text: str, path: Path) -> ManifestDocument:
        """Parse manifest text.

        Raises:
            ManifestIOError: If the text is not valid TOML.
        """
        try:
            return cls(path, tomlkit.parse(text))
        except TOMLKitError as e:
            raise ManifestIOError(path, f"invalid TOML: {e}") from e

    @property
    def dirty(self) -> bool:
        return self._dirty

    def mark_dirty(self) -> None:
        self._dirty = True

    def as_string(self) -> str:
        return self.document.as_string()

    def table(self, *keys: str) -> MutableMapping[str, Any] | None:
        """Return the table at ``keys``, or ``None`` if any part is missing."""
        current: Any = self.document
        for key in keys:
            if not isinstance(current, MutableMapping) or key not in current:
                return None
            current = current[key]
        return current if isinstance(current, MutableMapping) else None

    def set_value(self, keys: tuple[str, ...], value: Any) -> None:
        """Set a value, creating missing tables along the way."""
        *parents, last = keys
        current: Any = self.document
        for key in parents:
            if key not in current:
                current[key] = tomlkit.table()
            current = current[key]
        current[last] = value
        self.mark_dirty()

    def save(self) -> bool:
        """Write the document back if it was changed.

        Returns:
            Whether the file was written.

        Raises:
            ManifestIOError: If writing fails.
        """
        if not self._dirty:
            return False
        try:
            self.path.write_bytes(self.as_string().encode("utf-8"))
        except OSError as e:
            raise ManifestIOError(self.path, str(e)) from e
        self._dirty = False
        return True
