"""Creating and unpacking distributable archives."""

from __future__ import annotations

import shutil
import tarfile
from pathlib import Path, PurePosixPath

from wyvern.compat import safe_extract
from wyvern.errors import PackagingError
from wyvern.workspace import Package


def package_args(pkg: Package, target_dir: Path) -> list[str]:
    return [
        "package",
        "--manifest-path",
        str(pkg.manifest_path),
        "--no-verify",
        "--allow-dirty",
        "--target-dir",
        str(target_dir),
    ]


def archive_path(pkg: Package, target_dir: Path) -> Path:
    """Where cargo leaves the archive of ``pkg``."""
    return target_dir / "package" / f"{pkg.name}-{pkg.version}.crate"


def unpack_archive(archive: Path, destination: Path) -> Path:
    """Extract an archive below ``destination``.

    Any previous extraction of the same archive is removed first.

    Returns:
        The extracted package directory.

    Raises:
        PackagingError: If the archive cannot be read or has an unexpected layout.
    """
    try:
        with tarfile.open(archive, "r:gz") as tar:
            tops = {PurePosixPath(m.name).parts[0] for m in tar.getmembers() if m.name}
            if len(tops) != 1:
                raise PackagingError(archive.name, "archive must contain exactly one directory")
            root = destination / tops.pop()
            if root.exists():
                shutil.rmtree(root)
            destination.mkdir(parents=True, exist_ok=True)
            safe_extract(tar, destination)
    except (OSError, tarfile.TarError) as e:
        raise PackagingError(archive.name, f"cannot unpack {archive}: {e}") from e
    return root
