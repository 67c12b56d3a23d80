"""Exception hierarchy for value set resolution.

Per-item failures (``NetworkError``, ``ProtocolError``, ``PersistenceError``)
are caught at the adapter-call boundary by ``CodeService`` and collected
into a single ``ValueSetDownloadError``. ``ConfigurationError`` is raised on
its own, before any network activity.
"""

from __future__ import annotations

from pathlib import Path


class VsacError(Exception):
    """Base exception for all value set resolution errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ConfigurationError(VsacError):
    """Missing or incomplete credential / configuration."""


class NetworkError(VsacError):
    """Non-success HTTP status or transport failure for one round-trip."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        """Initialize network error.

        Args:
            message: Error message.
            status_code: HTTP status code, or None for transport failures.
            response_body: Truncated response body if applicable.
        """
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class AuthenticationError(NetworkError):
    """401/403 at any ticket or retrieval stage."""


class ProtocolError(VsacError):
    """Response body present but missing what the protocol promises."""


class PersistenceError(VsacError):
    """Writing the snapshot or a raw response to the cache failed."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else None
        super().__init__(message)


class DownloadError(VsacError):
    """A single value set in a batch could not be downloaded."""

    def __init__(self, oid: str, version: str | None, cause: BaseException) -> None:
        self.oid = oid
        self.version = version
        self.cause = cause
        label = oid if version is None else f"{oid} version {version}"
        super().__init__(f"Error downloading valueset: {label}: {cause}")


class ValueSetDownloadError(VsacError):
    """Aggregate failure of an ``ensure_value_sets`` batch.

    Successful items of the same batch have already been merged (and
    persisted, when caching) by the time this is raised.
    """

    def __init__(self, errors: list[VsacError]) -> None:
        self.errors = errors
        super().__init__(
            f"{len(errors)} value set(s) failed: "
            + "; ".join(str(e) for e in errors)
        )
