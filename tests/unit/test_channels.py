import json

import pytest

from domains.file_source.channels import MemoryChannel, RedisStreamChannel, create_output_channel
from domains.file_source.emitter import FileMarker, FileMessage, MarkerType
from domains.file_source.errors import ChannelError


def test_redis_channel_appends_to_stream(fake_redis):
    channel = RedisStreamChannel(fake_redis, "files")

    channel.send(FileMessage("/data/a.txt", {"file_name": "a.txt"}))

    entries = fake_redis.streams["files"]
    assert entries == [{"payload": "/data/a.txt", "headers": json.dumps({"file_name": "a.txt"})}]


def test_redis_channel_keeps_bytes_raw(fake_redis):
    channel = RedisStreamChannel(fake_redis, "files")

    channel.send(FileMessage(b"\x00\x01", {}))

    assert fake_redis.streams["files"][0]["payload"] == b"\x00\x01"


def test_redis_channel_serialises_marker_objects(fake_redis):
    channel = RedisStreamChannel(fake_redis, "files")

    channel.send(FileMessage(FileMarker("/data/a.txt", MarkerType.END, 2), {}))

    payload = json.loads(fake_redis.streams["files"][0]["payload"])
    assert payload["mark"] == "END"
    assert payload["line_count"] == 2


def test_redis_failure_raises_channel_error(fake_redis):
    fake_redis.fail = True
    channel = RedisStreamChannel(fake_redis, "files")

    with pytest.raises(ChannelError):
        channel.send(FileMessage("x", {}))


def test_redis_channel_close(fake_redis):
    RedisStreamChannel(fake_redis, "files").close()
    assert fake_redis.closed


def test_memory_channel_fifo():
    channel = MemoryChannel()
    channel.send(FileMessage("one"))
    channel.send(FileMessage("two"))

    assert len(channel) == 2
    assert channel.receive().payload == "one"
    assert [m.payload for m in channel.drain()] == ["two"]
    assert channel.receive() is None


def test_memory_channel_capacity_drops_oldest():
    channel = MemoryChannel(capacity=2)
    for payload in ("a", "b", "c"):
        channel.send(FileMessage(payload))

    assert [m.payload for m in channel.drain()] == ["b", "c"]


def test_create_output_channel_memory_is_bounded(make_settings):
    channel = create_output_channel(make_settings(output_channel="memory", memory_channel_capacity=2))
    assert isinstance(channel, MemoryChannel)

    for payload in ("a", "b", "c"):
        channel.send(FileMessage(payload))

    assert len(channel) == 2


def test_create_output_channel_redis(make_settings):
    channel = create_output_channel(
        make_settings(output_channel="redis", output_stream="events", output_stream_maxlen=100)
    )

    assert isinstance(channel, RedisStreamChannel)
    assert channel.stream == "events"
    assert channel.maxlen == 100
