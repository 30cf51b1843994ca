"""Compatibility layer for Python version differences."""

from __future__ import annotations

import sys
import tarfile
from pathlib import Path

# tomllib is only available in Python 3.11+
# Use tomli for Python 3.10
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found]


def safe_extract(archive: tarfile.TarFile, destination: Path) -> None:
    """Extract an archive, refusing members that escape the destination."""
    if hasattr(tarfile, "data_filter"):
        archive.extractall(destination, filter="data")
        return

    root = destination.resolve()
    for member in archive.getmembers():
        target = (destination / member.name).resolve()
        if root != target and root not in target.parents:
            raise tarfile.TarError(f"{member.name} would be extracted outside of {destination}")
        if member.issym() or member.islnk():
            raise tarfile.TarError(f"{member.name} is a link, refusing to extract")
    archive.extractall(destination)


__all__ = ["tomllib", "safe_extract"]
