"""
Message emitter for the File Source domain.

Turns an accepted file into outbound messages according to the reading mode:

- ref: one message carrying the absolute path
- contents: one message carrying the file bytes
- lines: one message per text line, optionally framed by START/END markers
"""

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Union

from app.utils.config import ReadingMode
from domains.file_source.errors import FileReadError
from domains.file_source.scanner import FileCandidate


class MarkerType(str, Enum):
    START = "START"
    END = "END"


@dataclass(slots=True)
class FileMarker:
    """Frames the line messages of one file."""

    file_path: str
    mark: MarkerType
    line_count: int = 0

    def to_json(self) -> str:
        payload = asdict(self)
        payload["mark"] = self.mark.value
        return json.dumps(payload)


Payload = Union[str, bytes, FileMarker]


@dataclass(slots=True)
class FileMessage:
    """A message ready for the output channel."""

    payload: Payload
    headers: Dict[str, Any] = field(default_factory=dict)


def file_headers(candidate: FileCandidate) -> Dict[str, Any]:
    """Headers attached to every message derived from ``candidate``."""
    return {
        "file_name": candidate.name,
        "file_originalFile": str(candidate.path),
        "file_relativePath": candidate.relative_path,
    }


class FileMessageEmitter:
    """Converts accepted files into messages."""

    def __init__(
        self,
        mode: ReadingMode = ReadingMode.REF,
        with_markers: bool = False,
        markers_json: bool = True,
        encoding: str = "utf-8",
    ):
        self.mode = ReadingMode(mode)
        self.with_markers = with_markers
        self.markers_json = markers_json
        self.encoding = encoding

    def to_messages(self, candidate: FileCandidate) -> List[FileMessage]:
        """
        Materialise every message for ``candidate``.

        The file is read completely before anything is returned, so a read
        failure never leaves a partial batch behind.

        Raises:
            FileReadError: if the file vanished or cannot be read
        """
        if self.mode is ReadingMode.REF:
            return [FileMessage(str(candidate.path), file_headers(candidate))]

        if self.mode is ReadingMode.CONTENTS:
            try:
                data = candidate.path.read_bytes()
            except OSError as e:
                raise FileReadError(candidate.path, e) from e
            return [FileMessage(data, file_headers(candidate))]

        return list(self._line_messages(candidate))

    def _line_messages(self, candidate: FileCandidate) -> Iterator[FileMessage]:
        try:
            with candidate.path.open("r", encoding=self.encoding, newline=None) as handle:
                # Universal newlines: only \n, \r and \r\n end a line
                lines = [line[:-1] if line.endswith("\n") else line for line in handle]
        except (OSError, UnicodeDecodeError) as e:
            raise FileReadError(candidate.path, e) from e

        headers = file_headers(candidate)

        if self.with_markers:
            yield self._marker(candidate, MarkerType.START, 0, headers)

        for number, line in enumerate(lines, 1):
            yield FileMessage(line, {**headers, "sequenceNumber": number})

        if self.with_markers:
            yield self._marker(candidate, MarkerType.END, len(lines), headers)

    def _marker(
        self,
        candidate: FileCandidate,
        mark: MarkerType,
        line_count: int,
        headers: Dict[str, Any],
    ) -> FileMessage:
        marker = FileMarker(str(candidate.path), mark, line_count)
        payload: Payload = marker.to_json() if self.markers_json else marker
        return FileMessage(payload, {**headers, "file_marker": mark.value})
