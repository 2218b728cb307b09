"""
Helper utilities for the File Source service.

Common functions used across domains.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO"):
    """Replace loguru's default sink with the service format."""
    logger.remove()
    logger.add(sys.stdout, format=LOG_FORMAT, level=level.upper())


def now_iso() -> str:
    """Get current timestamp as ISO string."""
    return datetime.now(timezone.utc).isoformat()


def normalise_path(path: Path) -> Path:
    """Return a resolved version of ``path`` without forcing existence."""
    try:
        return path.expanduser().resolve()
    except FileNotFoundError:
        return path.expanduser().absolute()


def relative_to_base(path: Path, base: Optional[Path]) -> Optional[str]:
    """Return ``path`` relative to ``base`` when possible."""
    if base is None:
        return None

    try:
        return path.relative_to(base).as_posix()
    except ValueError:
        return None


def is_hidden(path: Path) -> bool:
    """Check if path is hidden (starts with dot)."""
    return path.name.startswith('.')


def mtime_millis(mtime: float) -> str:
    """Format a stat mtime as whole milliseconds."""
    return str(int(mtime * 1000))


def redact_uri(uri: str) -> str:
    """Hide credentials embedded in a connection URI."""
    if "@" not in uri or "://" not in uri:
        return uri
    scheme, rest = uri.split("://", 1)
    return f"{scheme}://***@{rest.rsplit('@', 1)[1]}"
