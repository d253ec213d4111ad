"""
Exceptions raised by the ingestion pipeline.

SourceFetchError is transient and ends the current chunk. RecordError is
caught per item by the loaders and counted. ConfigurationError aborts the
whole invocation before anything is written.
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for sync failures."""
    pass


class SourceFetchError(SyncError):
    """Raised when an external source answers with a non-2xx status or cannot be reached."""

    def __init__(self, source: str, url: str, status: Optional[int] = None, body: str = ''):
        self.source = source
        self.url = url
        self.status = status
        self.body = body
        detail = f"HTTP {status}" if status is not None else "request failed"
        super().__init__(f"{source} fetch error: {detail} for url: {url} - {body[:500]}")


class RecordError(SyncError):
    """Raised for a single record that cannot be normalized or persisted."""

    def __init__(self, message: str, source_id: Optional[str] = None):
        self.source_id = source_id
        super().__init__(message)


class ConfigurationError(SyncError, ValueError):
    """Raised when required configuration (API keys, database URL) is missing."""
    pass
