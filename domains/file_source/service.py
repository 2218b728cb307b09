#!/usr/bin/env python3
"""
File source service.

Builds every component of the pipeline explicitly from settings and owns
their lifecycle: start() schedules polling, stop() halts it and releases the
metadata store and output channel.
"""

import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from app.utils.config import Settings, get_settings
from app.utils.helpers import configure_logging
from domains.file_source.channels import OutputChannel, create_output_channel
from domains.file_source.emitter import FileMessageEmitter
from domains.file_source.errors import FileSourceError
from domains.file_source.filters import build_filter_chain
from domains.file_source.metadata_store import MetadataStore, create_metadata_store
from domains.file_source.pipeline import FileSourcePipeline, PollResult
from domains.file_source.scanner import RecursiveDirectoryScanner, validate_root
from domains.file_source.trigger import PollTrigger


class FileSourceService:
    """Owns the pipeline, its trigger and its external connections."""

    def __init__(
        self,
        pipeline: FileSourcePipeline,
        trigger: PollTrigger,
        store: Optional[MetadataStore],
        channel: OutputChannel,
    ):
        self.pipeline = pipeline
        self.trigger = trigger
        self.store = store
        self.channel = channel

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: Optional[MetadataStore] = None,
        channel: Optional[OutputChannel] = None,
    ) -> "FileSourceService":
        """
        Wire the service described by ``settings``.

        Args:
            settings: Application settings
            store: Metadata store to use instead of the configured backend
            channel: Output channel to use instead of the configured one

        Raises:
            DirectoryError: if the root directory cannot be scanned
        """
        root = validate_root(settings.directory)
        logger.info(f"Source directory: {root}")

        if store is None and settings.prevent_duplicates:
            store = create_metadata_store(settings)
        if channel is None:
            channel = create_output_channel(settings)

        pipeline = FileSourcePipeline(
            root=root,
            scanner=RecursiveDirectoryScanner(max_depth=settings.max_depth),
            file_filter=build_filter_chain(settings, store),
            emitter=FileMessageEmitter(
                mode=settings.mode,
                with_markers=settings.with_markers,
                markers_json=settings.markers_json,
                encoding=settings.encoding,
            ),
            channel=channel,
            max_messages=settings.max_messages,
        )

        return cls(pipeline, PollTrigger.from_settings(settings), store, channel)

    def poll(self) -> PollResult:
        """Run a single poll outside the schedule."""
        return self.pipeline.poll()

    def reset(self, path: Path) -> bool:
        return self.pipeline.reset(path)

    def store_connected(self) -> bool:
        if self.store is None:
            return True
        return self.store.ping()

    def start(self):
        """Start periodic polling."""
        self.trigger.start(self.pipeline.poll)
        logger.success("File source started")

    def stop(self):
        """Stop polling and close external connections."""
        self.trigger.stop()
        self.channel.close()
        if self.store is not None:
            self.store.close()
        logger.info("File source stopped")


def main(argv: Optional[list[str]] = None) -> int:
    """Run the file source until interrupted."""
    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging(settings.log_level)
    logger.info("File Source - directory poller")

    try:
        service = FileSourceService.from_settings(settings)
    except FileSourceError as e:
        logger.error(f"File source failed to start: {e}")
        return 1

    stop_event = threading.Event()

    def _signal_handler(signum, frame):  # noqa: D401
        logger.info(f"Received signal {signum}, shutting down.")
        stop_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    service.start()
    try:
        while not stop_event.is_set():
            stop_event.wait(1.0)
    finally:
        service.stop()

    return 0


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
