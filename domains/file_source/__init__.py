"""
File Source Domain

Polls a directory tree and publishes every new file to an output channel:
- scanner.py - recursive directory walk
- filters.py - hidden / pattern / persistent accept-once filter chain
- metadata_store.py - MongoDB and Neo4j backed seen-file records
- emitter.py - ref / contents / lines reading modes
- channels.py - Redis stream and in-memory output channels
- trigger.py - APScheduler poll cadence
- pipeline.py - one scan-filter-emit poll
- service.py - wiring and lifecycle
"""

__all__ = [
    "channels",
    "emitter",
    "errors",
    "filters",
    "metadata_store",
    "pipeline",
    "scanner",
    "service",
    "trigger",
]
