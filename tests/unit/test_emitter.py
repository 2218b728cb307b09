import json

import pytest

from app.utils.config import ReadingMode
from domains.file_source.emitter import FileMarker, FileMessageEmitter, MarkerType
from domains.file_source.errors import FileReadError
from domains.file_source.scanner import FileCandidate


@pytest.fixture
def candidate(tmp_path) -> FileCandidate:
    path = tmp_path / "sub" / "notes.txt"
    path.parent.mkdir()
    path.write_bytes(b"first\r\nsecond\nthird")
    return FileCandidate.from_path(path, tmp_path)


def test_ref_mode_emits_path(candidate):
    messages = FileMessageEmitter(ReadingMode.REF).to_messages(candidate)

    assert len(messages) == 1
    assert messages[0].payload == str(candidate.path)
    assert messages[0].headers == {
        "file_name": "notes.txt",
        "file_originalFile": str(candidate.path),
        "file_relativePath": "sub/notes.txt",
    }


def test_ref_mode_does_not_read_file(candidate):
    candidate.path.unlink()

    messages = FileMessageEmitter("ref").to_messages(candidate)

    assert messages[0].payload == str(candidate.path)


def test_contents_mode_emits_bytes(candidate):
    messages = FileMessageEmitter(ReadingMode.CONTENTS).to_messages(candidate)

    assert len(messages) == 1
    assert messages[0].payload == b"first\r\nsecond\nthird"


def test_lines_mode_one_message_per_line_in_order(candidate):
    messages = FileMessageEmitter(ReadingMode.LINES).to_messages(candidate)

    assert [m.payload for m in messages] == ["first", "second", "third"]
    assert [m.headers["sequenceNumber"] for m in messages] == [1, 2, 3]
    assert all(m.headers["file_name"] == "notes.txt" for m in messages)


def test_lines_mode_empty_file(tmp_path):
    path = tmp_path / "empty.txt"
    path.write_text("")
    candidate = FileCandidate.from_path(path, tmp_path)

    assert FileMessageEmitter(ReadingMode.LINES).to_messages(candidate) == []


def test_lines_mode_keeps_unicode_separators_inside_line(tmp_path):
    path = tmp_path / "table.txt"
    path.write_bytes("col1\x0ccol2\nsecond\u2028part\nthird\x1crow\x85end\r\nlast\rtail".encode("utf-8"))
    candidate = FileCandidate.from_path(path, tmp_path)

    messages = FileMessageEmitter(ReadingMode.LINES).to_messages(candidate)

    assert [m.payload for m in messages] == [
        "col1\x0ccol2",
        "second\u2028part",
        "third\x1crow\x85end",
        "last",
        "tail",
    ]


def test_lines_mode_json_markers(candidate):
    emitter = FileMessageEmitter(ReadingMode.LINES, with_markers=True)

    messages = emitter.to_messages(candidate)

    assert len(messages) == 5
    start = json.loads(messages[0].payload)
    end = json.loads(messages[-1].payload)
    assert start == {"file_path": str(candidate.path), "mark": "START", "line_count": 0}
    assert end == {"file_path": str(candidate.path), "mark": "END", "line_count": 3}
    assert messages[0].headers["file_marker"] == "START"
    assert [m.payload for m in messages[1:-1]] == ["first", "second", "third"]


def test_lines_mode_object_markers(candidate):
    emitter = FileMessageEmitter(ReadingMode.LINES, with_markers=True, markers_json=False)

    messages = emitter.to_messages(candidate)

    assert isinstance(messages[0].payload, FileMarker)
    assert messages[0].payload.mark is MarkerType.START
    assert messages[-1].payload.line_count == 3


@pytest.mark.parametrize("mode", [ReadingMode.CONTENTS, ReadingMode.LINES])
def test_vanished_file_raises_read_error(candidate, mode):
    candidate.path.unlink()

    with pytest.raises(FileReadError) as exc_info:
        FileMessageEmitter(mode).to_messages(candidate)

    assert exc_info.value.path == candidate.path


def test_undecodable_file_raises_read_error(tmp_path):
    path = tmp_path / "binary.dat"
    path.write_bytes(b"\xff\xfe\xfa")
    candidate = FileCandidate.from_path(path, tmp_path)

    with pytest.raises(FileReadError):
        FileMessageEmitter(ReadingMode.LINES, encoding="utf-8").to_messages(candidate)
