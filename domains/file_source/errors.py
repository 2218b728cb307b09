"""Exceptions raised by the file source pipeline."""

from pathlib import Path


class FileSourceError(Exception):
    """Base class for file source failures."""


class DirectoryError(FileSourceError):
    """The configured root directory cannot be used."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class MetadataStoreError(FileSourceError):
    """The metadata store could not complete an operation."""


class FileReadError(FileSourceError):
    """An accepted file could not be read for emission."""

    def __init__(self, path: Path, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to read {path}: {cause}")


class ChannelError(FileSourceError):
    """A message could not be published to the output channel."""
