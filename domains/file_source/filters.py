"""
File filters for the File Source domain.

A file is emitted only when every filter of the chain accepts it. The chain
is built once, in a fixed order:

1. IgnoreHiddenFilter - drops dot-files
2. SimplePatternFilter / RegexPatternFilter - optional name match
3. PersistentAcceptOnceFilter - drops files already recorded in the metadata store
"""

import fnmatch
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

from app.utils.config import Settings
from app.utils.helpers import is_hidden, mtime_millis
from domains.file_source.metadata_store import MetadataStore
from domains.file_source.scanner import FileCandidate


class FileFilter(ABC):
    """Predicate over scanned files."""

    @abstractmethod
    def accept(self, candidate: FileCandidate) -> bool:
        """Return True if ``candidate`` may be emitted."""

    def rollback(self, candidate: FileCandidate):
        """Undo any state recorded when ``candidate`` was accepted."""


class IgnoreHiddenFilter(FileFilter):
    """Rejects files whose name starts with a dot."""

    def accept(self, candidate: FileCandidate) -> bool:
        return not is_hidden(candidate.path)

    def __repr__(self) -> str:
        return "IgnoreHiddenFilter()"


class SimplePatternFilter(FileFilter):
    """Accepts files whose name matches a glob (``*``, ``?``, ``[...]``)."""

    def __init__(self, pattern: str):
        self.pattern = pattern

    def accept(self, candidate: FileCandidate) -> bool:
        return fnmatch.fnmatchcase(candidate.name, self.pattern)

    def __repr__(self) -> str:
        return f"SimplePatternFilter({self.pattern!r})"


class RegexPatternFilter(FileFilter):
    """Accepts files whose whole name matches a regular expression."""

    def __init__(self, regex: str):
        self.regex = re.compile(regex)

    def accept(self, candidate: FileCandidate) -> bool:
        return self.regex.fullmatch(candidate.name) is not None

    def __repr__(self) -> str:
        return f"RegexPatternFilter({self.regex.pattern!r})"


class PersistentAcceptOnceFilter(FileFilter):
    """
    Accepts a file at most once, remembering it in a metadata store.

    The key is ``prefix + absolute path`` and the value is the file's
    modification time in milliseconds. Acceptance is decided by an atomic
    put-if-absent, so two instances sharing one store cannot both accept the
    same file as long as the store honours that contract.

    With ``accept_modified`` a file whose stored modification time differs
    from the current one is accepted again, guarded by an atomic replace.

    Store failures propagate as MetadataStoreError.
    """

    def __init__(self, store: MetadataStore, prefix: str = "seen-files", accept_modified: bool = False):
        self.store = store
        self.prefix = prefix
        self.accept_modified = accept_modified

    def key_for_path(self, path: Path) -> str:
        return f"{self.prefix}{path}"

    def key_for(self, candidate: FileCandidate) -> str:
        return self.key_for_path(candidate.path)

    def forget(self, path: Path) -> bool:
        """Drop the record for ``path``; True if one existed."""
        return self.store.remove(self.key_for_path(path)) is not None

    def accept(self, candidate: FileCandidate) -> bool:
        key = self.key_for(candidate)
        value = mtime_millis(candidate.modified)

        previous = self.store.put_if_absent(key, value)
        if previous is None:
            return True

        if self.accept_modified and previous != value:
            if self.store.replace(key, previous, value):
                logger.debug(f"Modified since last seen: {candidate.path}")
                return True

        return False

    def rollback(self, candidate: FileCandidate):
        self.store.remove(self.key_for(candidate))

    def __repr__(self) -> str:
        return f"PersistentAcceptOnceFilter(prefix={self.prefix!r})"


class CompositeFilter(FileFilter):
    """Ordered, immutable chain of filters evaluated with short-circuit."""

    def __init__(self, filters: Sequence[FileFilter]):
        self.filters = tuple(filters)

    def accept(self, candidate: FileCandidate) -> bool:
        return all(f.accept(candidate) for f in self.filters)

    def rollback(self, candidate: FileCandidate):
        for f in self.filters:
            f.rollback(candidate)

    def __repr__(self) -> str:
        return f"CompositeFilter({', '.join(repr(f) for f in self.filters)})"


def build_filter_chain(settings: Settings, store: Optional[MetadataStore]) -> CompositeFilter:
    """
    Build the filter chain described by ``settings``.

    Args:
        settings: Application settings
        store: Metadata store for deduplication, required when
            ``prevent_duplicates`` is enabled

    Returns:
        The composed filter chain
    """
    filters: list[FileFilter] = [IgnoreHiddenFilter()]

    if settings.filename_pattern:
        filters.append(SimplePatternFilter(settings.filename_pattern))
    elif settings.filename_regex:
        filters.append(RegexPatternFilter(settings.filename_regex))

    if settings.prevent_duplicates:
        if store is None:
            raise ValueError("A metadata store is required when prevent_duplicates is enabled")
        filters.append(
            PersistentAcceptOnceFilter(store, settings.seen_key_prefix, settings.accept_modified)
        )

    chain = CompositeFilter(filters)
    logger.info(f"Filter chain: {chain!r}")
    return chain
