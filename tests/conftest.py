from pathlib import Path
from typing import Dict, List, Optional

import pytest

from app.utils.config import Settings
from domains.file_source.errors import MetadataStoreError
from domains.file_source.metadata_store import MetadataStore


class InMemoryMetadataStore(MetadataStore):
    """Dict-backed store; ``available = False`` makes every call fail like a dropped connection."""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})
        self.available = True
        self.fail_after: Optional[int] = None
        self.calls = 0
        self.closed = False

    def _check(self):
        self.calls += 1
        if self.fail_after is not None and self.calls > self.fail_after:
            self.available = False
        if not self.available:
            raise MetadataStoreError("connection refused")

    def get(self, key):
        self._check()
        return self.data.get(key)

    def put(self, key, value):
        self._check()
        self.data[key] = value

    def put_if_absent(self, key, value):
        self._check()
        if key in self.data:
            return self.data[key]
        self.data[key] = value
        return None

    def replace(self, key, old_value, new_value):
        self._check()
        if self.data.get(key) != old_value:
            return False
        self.data[key] = new_value
        return True

    def remove(self, key):
        self._check()
        return self.data.pop(key, None)

    def count(self):
        self._check()
        return len(self.data)

    def ping(self):
        return self.available

    def close(self):
        self.closed = True


class FakeRedis:
    """Records XADD calls."""

    def __init__(self):
        self.streams: Dict[str, List[dict]] = {}
        self.fail = False
        self.closed = False

    def xadd(self, name, fields, maxlen=None, approximate=True):
        from redis.exceptions import ConnectionError

        if self.fail:
            raise ConnectionError("redis down")
        self.streams.setdefault(name, []).append(dict(fields))
        return f"{len(self.streams[name])}-0"

    def close(self):
        self.closed = True


@pytest.fixture
def store() -> InMemoryMetadataStore:
    return InMemoryMetadataStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides) -> Settings:
        values = {"directory": tmp_path, "output_channel": "memory"}
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def source_dir(tmp_path) -> Path:
    """Directory with a.txt, .hidden and b.log."""
    (tmp_path / "a.txt").write_text("alpha\n")
    (tmp_path / ".hidden").write_text("secret\n")
    (tmp_path / "b.log").write_text("log line\n")
    return tmp_path
