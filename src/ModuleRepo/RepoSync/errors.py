"""Exception hierarchy for registry synchronisation.

The sync engine never raises these to the code that triggered a fetch; they
are delivered to subscribed listeners through ``on_failure``.  The hierarchy
lets listeners tell a dead network apart from a malformed payload without
inspecting messages.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "RepoSyncError",
    "ConfigurationError",
    "EndpointUnavailableError",
    "HttpStatusError",
    "IngestError",
]


class RepoSyncError(RuntimeError):
    """Base exception for registry synchronisation failures."""


class ConfigurationError(RepoSyncError):
    """Raised when settings files, environment or overrides are invalid."""


class EndpointUnavailableError(RepoSyncError):
    """Raised when no response could be obtained from any registry endpoint."""

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class HttpStatusError(RepoSyncError):
    """Raised when a per-module fetch receives a non-success status."""

    def __init__(self, message: str, *, status_code: int, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class IngestError(RepoSyncError):
    """Raised when a fetched payload cannot be parsed, indexed, or persisted.

    The sub-step that failed is intentionally not distinguished; the original
    exception is available as ``__cause__``.
    """

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url
