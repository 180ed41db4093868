"""Path identity helpers.

Output files are identified by their absolute path compared case-insensitively,
the way the file systems generated code usually lands on behave.
"""

from __future__ import annotations

import os
from pathlib import Path


def full_path(base_dir: str | Path, path: str | Path) -> Path:
    """Resolve *path* against *base_dir* unless it is already absolute.

    The result is normalized (``..`` and ``.`` collapsed) but symlinks are
    not followed, so the path stays stable for files that do not exist yet.
    """
    path = str(path).replace("\\", "/")
    if not os.path.isabs(path):
        path = os.path.join(str(base_dir), path)
    return Path(os.path.normpath(os.path.abspath(path)))


def path_key(path: str | Path) -> str:
    """Return the comparison key for *path*: normalized, forward slashes, casefolded."""
    normalized = os.path.normpath(str(path)).replace("\\", "/")
    return normalized.casefold()


def same_path(first: str | Path, second: str | Path) -> bool:
    """Check whether two absolute paths refer to the same file."""
    return path_key(first) == path_key(second)


def is_within(path: str | Path, directory: str | Path) -> bool:
    """Check whether *path* is *directory* itself or lies below it."""
    child = path_key(path)
    parent = path_key(directory).rstrip("/")
    return child == parent or child.startswith(parent + "/")


def relative_path(from_file: str | Path, to_path: str | Path) -> str:
    """Relative path from the directory of *from_file* to *to_path*.

    Always uses forward slashes so the stored value is identical across
    platforms.
    """
    base = os.path.dirname(str(from_file))
    return os.path.relpath(str(to_path), base).replace(os.sep, "/")
