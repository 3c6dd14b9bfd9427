"""
Custom exceptions for the mapping module.

Each error carries an ErrorKind so callers can tell transport failures,
HTTP status failures and bad record data apart without isinstance chains.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests


class ErrorKind(str, Enum):
    """Kinds of failure a map saving run can report."""

    CONFIG = "config"
    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    DATA_VALIDATION = "data_validation"
    CACHE = "cache"
    FILE_WRITE = "file_write"


class MapSaverError(Exception):
    """Base exception for the mapping module."""

    kind: ErrorKind = None


class TransportError(MapSaverError):
    """Raised when a request never produced a response (connection, timeout, TLS)."""

    kind = ErrorKind.TRANSPORT


class HttpStatusError(MapSaverError):
    """Reported when an API answered with a non-2xx status."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(self, status_code: int, reason: str = "", body: str = ""):
        super().__init__(f"HTTP {status_code} {reason}".strip())
        self.status_code = status_code
        self.reason = reason
        self.body = body


class DataValidationError(MapSaverError):
    """Raised when a record lacks the data needed to save its maps."""

    kind = ErrorKind.DATA_VALIDATION

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id


class CacheError(MapSaverError):
    """Raised on cache write/remove failures."""

    kind = ErrorKind.CACHE


class FileWriteError(MapSaverError):
    """Raised when a downloaded image cannot be written to disk."""

    kind = ErrorKind.FILE_WRITE

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


@dataclass
class RequestOutcome:
    """Result of an API call: the response (if any) and the error (if any)."""

    response: Optional[requests.Response] = None
    error: Optional[MapSaverError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.response is not None
