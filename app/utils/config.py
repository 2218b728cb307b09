"""
Configuration management for the File Source service.

Uses pydantic-settings to load configuration from environment variables
and .env files.
"""

import codecs
import re
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReadingMode(str, Enum):
    """How an accepted file is turned into outbound messages."""

    REF = "ref"
    CONTENTS = "contents"
    LINES = "lines"


class TimeUnit(str, Enum):
    """Units accepted for trigger delays."""

    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"

    def to_seconds(self, value: float) -> float:
        factor = {
            TimeUnit.MILLISECONDS: 0.001,
            TimeUnit.SECONDS: 1,
            TimeUnit.MINUTES: 60,
            TimeUnit.HOURS: 3600,
        }[self]
        return value * factor


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Source Directory Configuration
    directory: Path
    filename_pattern: Optional[str] = None
    filename_regex: Optional[str] = None
    prevent_duplicates: bool = True
    accept_modified: bool = False
    max_depth: Optional[int] = None

    # Reading Mode Configuration
    mode: ReadingMode = ReadingMode.REF
    with_markers: bool = False
    markers_json: bool = True
    encoding: str = "utf-8"

    # Trigger Configuration
    fixed_delay: float = 1
    initial_delay: float = 0
    time_unit: TimeUnit = TimeUnit.SECONDS
    cron: Optional[str] = None
    max_messages: int = -1  # -1 means unlimited

    # Metadata Store Configuration
    metadata_store: str = "mongodb"
    metadata_collection: str = "integrationMetadataStore"
    seen_key_prefix: str = "seen-files"

    # MongoDB Configuration
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "file_source"

    # Neo4j Configuration
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = "password"

    # Output Channel Configuration
    output_channel: str = "redis"
    redis_url: str = "redis://localhost:6379/0"
    output_stream: str = "file-source-output"
    output_stream_maxlen: Optional[int] = None
    memory_channel_capacity: int = 10000

    # API Configuration
    api_port: int = 8000
    log_level: str = "INFO"
    api_title: str = "File Source"
    api_version: str = "1.0.0"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("directory", mode="before")
    @classmethod
    def _directory_not_empty(cls, value):
        if value is None or not str(value).strip():
            raise ValueError("directory must not be empty")
        return value

    @field_validator("filename_pattern", "filename_regex", "cron", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("filename_regex")
    @classmethod
    def _valid_regex(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"Invalid filename_regex: {e}") from e
        return value

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {value}") from e
        return value

    @field_validator("max_depth")
    @classmethod
    def _non_negative_depth(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            raise ValueError("max_depth must not be negative")
        return value

    @field_validator("metadata_store")
    @classmethod
    def _known_store(cls, value: str) -> str:
        value = value.lower()
        if value not in {"mongodb", "neo4j"}:
            raise ValueError(f"Unknown metadata store: {value}")
        return value

    @field_validator("output_channel")
    @classmethod
    def _known_channel(cls, value: str) -> str:
        value = value.lower()
        if value not in {"redis", "memory"}:
            raise ValueError(f"Unknown output channel: {value}")
        return value

    @model_validator(mode="after")
    def _check_consistency(self):
        if self.filename_pattern and self.filename_regex:
            raise ValueError("filename_pattern and filename_regex are mutually exclusive")
        if self.max_messages == 0 or self.max_messages < -1:
            raise ValueError("max_messages must be positive or -1 for unlimited")
        if self.fixed_delay <= 0:
            raise ValueError("fixed_delay must be positive")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must not be negative")
        if self.memory_channel_capacity <= 0:
            raise ValueError("memory_channel_capacity must be positive")
        return self

    def poll_interval_seconds(self) -> float:
        """Fixed delay between polls, in seconds."""
        return self.time_unit.to_seconds(self.fixed_delay)

    def initial_delay_seconds(self) -> float:
        """Delay before the first poll, in seconds."""
        return self.time_unit.to_seconds(self.initial_delay)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
