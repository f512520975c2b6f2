"""
Filesystem utilities for nuresolve.

Helpers for reading definition and configuration files and for locating
them on disk. Read errors are normalized to ``FileOperationError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

from nuresolve.utils.logger import get_logger
from nuresolve.exceptions import FileOperationError
from nuresolve.constants import (
    MAX_FILE_SIZE,
    PACKAGES_CONFIG_FILE_NAME,
    PROJECT_FILE_SUFFIXES,
)

logger = get_logger("filesystem")

PathLike = Union[str, Path]


def _validated_file(path: Path) -> Path:
    """Check that *path* names an existing regular file and resolve it."""
    if not path.exists():
        raise FileOperationError(
            f"File not found: {path}",
            file_path=str(path),
            operation="read",
        )
    if not path.is_file():
        raise FileOperationError(
            f"Not a file: {path}",
            file_path=str(path),
            operation="read",
        )
    return path.resolve()


def safe_read_file(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    encoding: str = "utf-8",
) -> str:
    """Read a text file, refusing files above *max_size* bytes.

    A UTF-8 byte order mark, common in files written by Visual Studio, is
    dropped.

    Raises:
        FileOperationError: Missing, oversized, or unreadable file.
    """
    path = _validated_file(Path(file_path))
    size = path.stat().st_size

    if max_size is not None and size > max_size:
        raise FileOperationError(
            f"File too large: {size} bytes (max {max_size})",
            file_path=str(path),
            operation="read",
        )

    try:
        text = path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise FileOperationError(
            f"Failed to read file: {exc}",
            file_path=str(path),
            operation="read",
            original_error=exc,
        ) from exc

    return text.lstrip("\ufeff")


def is_definition_file(path: PathLike) -> bool:
    """Return True for ``packages.config`` and SDK-style project files."""
    name = Path(path).name.lower()
    return name == PACKAGES_CONFIG_FILE_NAME or name.endswith(tuple(PROJECT_FILE_SUFFIXES))


def find_definition_files(
    directory: PathLike = ".",
    *,
    recursive: bool = True,
) -> List[Path]:
    """Find NuGet definition files within a directory."""
    root = Path(directory).resolve()
    if not root.is_dir():
        return []

    iterator = root.rglob("*") if recursive else root.glob("*")
    return sorted(p for p in iterator if p.is_file() and is_definition_file(p))


def find_upwards(start: PathLike, file_name: str) -> Optional[Path]:
    """Find *file_name* in *start* or one of its parents.

    Names are compared case-insensitively, so ``NuGet.Config`` matches
    ``nuget.config``.
    """
    directory = Path(start).resolve()
    if directory.is_file():
        directory = directory.parent

    wanted = file_name.lower()
    for candidate_dir in (directory, *directory.parents):
        try:
            entries = sorted(candidate_dir.iterdir())
        except OSError as exc:
            logger.debug("Cannot list %s: %s", candidate_dir, exc)
            continue

        for entry in entries:
            if entry.name.lower() == wanted and entry.is_file():
                return entry

    return None
