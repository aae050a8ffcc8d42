from __future__ import annotations

from typing import Any, Optional


class ArchiverError(Exception):
    """Base class for errors that abort an archival run."""


class RemoteApiError(ArchiverError):
    """Raised when GitHub or Google Drive rejects a call or reports errors."""

    def __init__(self, message: str, status: Optional[int] = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload


class LocalToolError(ArchiverError):
    """Raised when git or the local filesystem fails during archival."""
