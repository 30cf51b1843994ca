"""Content digests of source trees."""

from __future__ import annotations

import hashlib
import os
from collections.abc import Iterable, Mapping
from pathlib import Path

DEFAULT_EXCLUDE = ("target", "Cargo.lock", ".cargo-ok")


def snapshot(root: Path, exclude: Iterable[str] = DEFAULT_EXCLUDE) -> dict[str, str]:
    """Digest every file below ``root``, keyed by its relative POSIX path.

    Top level entries named in ``exclude`` are skipped; those are the places
    a build is allowed to write to.
    """
    excluded = set(exclude)
    digests: dict[str, str] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        if current == root:
            dirnames[:] = [d for d in dirnames if d not in excluded]
            filenames = [f for f in filenames if f not in excluded]
        dirnames.sort()
        for name in filenames:
            path = current / name
            digests[path.relative_to(root).as_posix()] = hashlib.sha256(
                path.read_bytes()
            ).hexdigest()
    return digests


def fingerprint(root: Path, exclude: Iterable[str] = DEFAULT_EXCLUDE) -> str:
    """Single digest over the relative paths and contents of a tree."""
    return combine(snapshot(root, exclude))


def combine(digests: Mapping[str, str]) -> str:
    h = hashlib.sha256()
    for rel in sorted(digests):
        h.update(rel.encode("utf-8"))
        h.update(b"\0")
        h.update(digests[rel].encode("ascii"))
        h.update(b"\n")
    return h.hexdigest()


def changed_paths(before: Mapping[str, str], after: Mapping[str, str]) -> list[str]:
    """Relative paths added, removed or modified between two snapshots."""
    keys = set(before) | set(after)
    return sorted(k for k in keys if before.get(k) != after.get(k))
