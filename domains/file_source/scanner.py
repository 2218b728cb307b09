"""
Recursive directory scanner for the File Source domain.

Walks the configured root and yields every regular file as a FileCandidate.
Unreadable subdirectories are logged and skipped; symlinked directories are
never followed.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from app.utils.helpers import normalise_path, relative_to_base
from domains.file_source.errors import DirectoryError


@dataclass(frozen=True, slots=True)
class FileCandidate:
    """A regular file found during one poll."""

    path: Path
    relative_path: str
    size: int
    modified: float

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def from_path(cls, path: Path, root: Path) -> "FileCandidate":
        """Stat ``path`` and build a candidate relative to ``root``."""
        stats = path.stat()
        return cls(
            path=path,
            relative_path=relative_to_base(path, root) or path.name,
            size=stats.st_size,
            modified=stats.st_mtime,
        )


def validate_root(directory: Path) -> Path:
    """
    Check that ``directory`` can be scanned.

    Args:
        directory: Configured root directory

    Returns:
        The resolved root

    Raises:
        DirectoryError: if the root is missing, not a directory or unreadable
    """
    root = normalise_path(directory)

    if not root.exists():
        raise DirectoryError(root, "directory does not exist")
    if not root.is_dir():
        raise DirectoryError(root, "not a directory")
    if not os.access(root, os.R_OK | os.X_OK):
        raise DirectoryError(root, "directory is not readable")

    return root


class RecursiveDirectoryScanner:
    """Lists regular files under a root directory, descending into subdirectories."""

    def __init__(self, max_depth: Optional[int] = None):
        self.max_depth = max_depth

    def scan(self, root: Path) -> Iterator[FileCandidate]:
        """
        Lazily walk ``root``.

        Each call starts a fresh walk, so the result can be re-scanned on
        every poll. Entries are visited in name order.

        Args:
            root: Directory to walk

        Yields:
            FileCandidate for each regular file found
        """
        root = normalise_path(root)
        visited: set[tuple[int, int]] = set()
        yield from self._walk(root, root, 0, visited)

    def _walk(
        self,
        current: Path,
        root: Path,
        depth: int,
        visited: set[tuple[int, int]],
    ) -> Iterator[FileCandidate]:
        try:
            stats = current.stat()
            identity = (stats.st_dev, stats.st_ino)
            if identity in visited:
                return
            visited.add(identity)

            entries = sorted(current.iterdir(), key=lambda p: p.name)
        except PermissionError:
            logger.warning(f"Permission denied: {current}")
            return
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {current}: {e}")
            return

        for entry in entries:
            try:
                if entry.is_symlink() and entry.is_dir():
                    logger.debug(f"Not following directory link: {entry}")
                    continue

                if entry.is_dir():
                    if self.max_depth is not None and depth >= self.max_depth:
                        continue
                    yield from self._walk(entry, root, depth + 1, visited)
                elif entry.is_file():
                    yield FileCandidate.from_path(entry, root)

            except FileNotFoundError:
                # Removed between listing and stat
                logger.debug(f"Vanished during scan: {entry}")
            except OSError as e:
                logger.warning(f"Skipping {entry}: {e}")
