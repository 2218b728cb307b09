"""
Output channels for the File Source domain.

- RedisStreamChannel: appends each message to a Redis stream
- MemoryChannel: bounded in-process queue
"""

import json
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, List, Optional

import redis
from loguru import logger
from redis.exceptions import RedisError

from app.utils.config import Settings
from app.utils.helpers import redact_uri
from domains.file_source.emitter import FileMarker, FileMessage
from domains.file_source.errors import ChannelError


class OutputChannel(ABC):
    """Destination for emitted file messages."""

    @abstractmethod
    def send(self, message: FileMessage):
        """Publish ``message``; raise ChannelError on failure."""

    def close(self):
        pass


class RedisStreamChannel(OutputChannel):
    """Publishes messages with XADD to one Redis stream."""

    def __init__(self, client: "redis.Redis", stream: str, maxlen: Optional[int] = None):
        self.client = client
        self.stream = stream
        self.maxlen = maxlen

    @classmethod
    def from_url(cls, url: str, stream: str, maxlen: Optional[int] = None) -> "RedisStreamChannel":
        logger.info(f"Publishing to Redis stream '{stream}' at {redact_uri(url)}")
        client = redis.from_url(
            url,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True,
        )
        return cls(client, stream, maxlen)

    def encode(self, message: FileMessage) -> dict:
        """Stream entry fields for ``message``."""
        payload = message.payload
        if isinstance(payload, FileMarker):
            payload = payload.to_json()
        return {
            "payload": payload,
            "headers": json.dumps(message.headers, default=str),
        }

    def send(self, message: FileMessage):
        try:
            self.client.xadd(
                self.stream,
                self.encode(message),
                maxlen=self.maxlen,
                approximate=True,
            )
        except RedisError as e:
            raise ChannelError(f"Failed to publish to stream {self.stream}: {e}") from e

    def close(self):
        self.client.close()


class MemoryChannel(OutputChannel):
    """In-process queue; the oldest messages are dropped once ``capacity`` is reached."""

    def __init__(self, capacity: Optional[int] = None):
        self._queue: Deque[FileMessage] = deque(maxlen=capacity)

    def send(self, message: FileMessage):
        self._queue.append(message)

    def receive(self) -> Optional[FileMessage]:
        """Pop the oldest message, or None if empty."""
        return self._queue.popleft() if self._queue else None

    def drain(self) -> List[FileMessage]:
        """Pop every queued message in order."""
        messages = list(self._queue)
        self._queue.clear()
        return messages

    def __len__(self) -> int:
        return len(self._queue)


def create_output_channel(settings: Settings) -> OutputChannel:
    """Build the channel selected by ``settings.output_channel``."""
    if settings.output_channel == "memory":
        return MemoryChannel(settings.memory_channel_capacity)
    return RedisStreamChannel.from_url(
        settings.redis_url,
        settings.output_stream,
        settings.output_stream_maxlen,
    )
