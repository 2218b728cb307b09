"""
File source pipeline.

One poll scans the root directory, runs every candidate through the filter
chain and publishes the messages of each accepted file to the output channel.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from loguru import logger

from domains.file_source.channels import OutputChannel
from domains.file_source.emitter import FileMessageEmitter
from domains.file_source.errors import ChannelError, FileReadError, MetadataStoreError
from domains.file_source.filters import CompositeFilter, PersistentAcceptOnceFilter
from domains.file_source.scanner import FileCandidate, RecursiveDirectoryScanner


@dataclass
class FileError:
    """
    A file that was accepted but could not be emitted.

    The file's seen-record is rolled back so a later poll retries it. When
    ``messages_sent`` is non-zero the channel already holds those messages
    and the retry delivers them a second time.
    """

    path: str
    error: str
    messages_sent: int = 0


@dataclass
class PollResult:
    """Outcome of one poll."""

    started_at: datetime
    files_accepted: int = 0
    files_emitted: int = 0
    messages_emitted: int = 0
    file_errors: List[FileError] = field(default_factory=list)
    store_error: Optional[str] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.store_error is None and not self.file_errors


@dataclass
class PipelineStats:
    """Counters accumulated since the pipeline was built."""

    polls: int = 0
    files_emitted: int = 0
    messages_emitted: int = 0
    file_errors: int = 0
    store_errors: int = 0
    last_poll: Optional[datetime] = None
    last_result: Optional[PollResult] = None


class FileSourcePipeline:
    """Runs scan, filter and emit for one root directory."""

    def __init__(
        self,
        root: Path,
        scanner: RecursiveDirectoryScanner,
        file_filter: CompositeFilter,
        emitter: FileMessageEmitter,
        channel: OutputChannel,
        max_messages: int = -1,
    ):
        self.root = root
        self.scanner = scanner
        self.file_filter = file_filter
        self.emitter = emitter
        self.channel = channel
        self.max_messages = max_messages

        self.stats = PipelineStats()
        self._lock = threading.Lock()
        # Accepted but never emitted, and the store refused the rollback
        self._pending_rollback: List[FileCandidate] = []

    @property
    def polling(self) -> bool:
        return self._lock.locked()

    def poll(self) -> PollResult:
        """
        Run one poll to completion.

        Returns immediately with ``skipped`` set if another poll holds the lock.
        """
        if not self._lock.acquire(blocking=False):
            logger.debug("Poll already in progress, skipping")
            return PollResult(started_at=datetime.now(timezone.utc), skipped=True)

        try:
            result = self._poll()
        finally:
            self._lock.release()

        self._record(result)
        return result

    def _poll(self) -> PollResult:
        result = PollResult(started_at=datetime.now(timezone.utc))

        try:
            self._retry_pending_rollback()
            accepted = self._collect()
        except MetadataStoreError as e:
            logger.error(f"Metadata store unavailable, poll aborted: {e}")
            result.store_error = str(e)
            return result

        result.files_accepted = len(accepted)

        for index, candidate in enumerate(accepted):
            sent = 0
            try:
                messages = self.emitter.to_messages(candidate)
                for message in messages:
                    self.channel.send(message)
                    sent += 1
            except (FileReadError, ChannelError) as e:
                if sent:
                    # The retry on the next poll re-sends these
                    logger.warning(
                        f"Failed to emit {candidate.path} after {sent} of "
                        f"{len(messages)} messages, they will be sent again: {e}"
                    )
                else:
                    logger.warning(f"Failed to emit {candidate.path}: {e}")
                result.file_errors.append(FileError(str(candidate.path), str(e), sent))
                self._rollback([candidate])
                continue
            except Exception:
                self._rollback(accepted[index:])
                raise

            result.files_emitted += 1
            result.messages_emitted += len(messages)
            logger.debug(f"Emitted {candidate.relative_path} ({len(messages)} messages)")

        if result.files_emitted:
            logger.info(
                f"Poll emitted {result.files_emitted} files "
                f"({result.messages_emitted} messages)"
            )

        return result

    def _collect(self) -> List[FileCandidate]:
        """Accept candidates up to ``max_messages``; roll back this poll's keys on store failure."""
        accepted: List[FileCandidate] = []
        try:
            for candidate in self.scanner.scan(self.root):
                if self.max_messages > 0 and len(accepted) >= self.max_messages:
                    break
                if self.file_filter.accept(candidate):
                    accepted.append(candidate)
        except MetadataStoreError:
            self._rollback(accepted)
            raise
        return accepted

    def _rollback(self, candidates: List[FileCandidate]):
        """Forget ``candidates``; the ones the store refuses are retried next poll."""
        for candidate in candidates:
            try:
                self.file_filter.rollback(candidate)
            except MetadataStoreError as e:
                logger.error(f"Could not roll back seen-record for {candidate.path}, will retry: {e}")
                self._pending_rollback.append(candidate)

    def _retry_pending_rollback(self):
        """
        Finish rollbacks left over from an earlier store failure.

        Raises:
            MetadataStoreError: if the store still refuses; the poll must not scan
        """
        while self._pending_rollback:
            candidate = self._pending_rollback[0]
            self.file_filter.rollback(candidate)
            self._pending_rollback.pop(0)
            logger.info(f"Rolled back seen-record for {candidate.path}")

    def _record(self, result: PollResult):
        self.stats.polls += 1
        self.stats.files_emitted += result.files_emitted
        self.stats.messages_emitted += result.messages_emitted
        self.stats.file_errors += len(result.file_errors)
        self.stats.store_errors += 1 if result.store_error else 0
        self.stats.last_poll = result.started_at
        self.stats.last_result = result

    def reset(self, path: Path) -> bool:
        """
        Forget that ``path`` was emitted so the next poll picks it up again.

        Returns:
            True if a seen-record was removed
        """
        for f in self.file_filter.filters:
            if isinstance(f, PersistentAcceptOnceFilter):
                return f.forget(path)
        return False
