"""
Exception hierarchy for rgupdate.

Every error raised by the engine derives from RgUpdateError so the CLI can
report it uniformly. Batch operations (remove, purge) do not raise for
per-version failures; those are collected into the operation outcome.
"""

from __future__ import annotations


class RgUpdateError(Exception):
    """
    Base exception for rgupdate errors.

    Attributes:
        message: Human-readable error message
        retryable: Whether repeating the operation may succeed
        remediation: Suggested fix for the error
    """
    def __init__(
        self,
        message: str,
        retryable: bool = False,
        remediation: str | None = None,
    ):
        self.message = message
        self.retryable = retryable
        self.remediation = remediation
        super().__init__(message)


class UnsupportedProductError(RgUpdateError):
    """Raised for a product name outside the supported table."""
    pass


class PreconditionError(RgUpdateError):
    """Raised when arguments are rejected before any side effect."""
    pass


class CatalogError(RgUpdateError):
    """Raised when remote version discovery fails."""
    pass


class NetworkError(CatalogError):
    """Raised when a catalog request fails or times out."""
    def __init__(self, message: str, product: str = "", remediation: str | None = None):
        self.product = product
        super().__init__(message, retryable=True, remediation=remediation)


class ParseError(CatalogError):
    """Raised when a catalog document cannot be parsed."""
    pass


class InstallError(RgUpdateError):
    """Base exception for installation errors."""
    pass


class VersionNotFoundError(InstallError):
    """Raised when a version specifier matches nothing."""
    pass


class DownloadError(InstallError):
    """
    Raised when an archive download fails.

    Attributes:
        status_code: HTTP status code, if the server answered
    """
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retryable: bool = False,
        remediation: str | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, retryable=retryable, remediation=remediation)


class UnsupportedArchiveError(InstallError):
    """Raised when an archive has an extension we cannot extract."""
    pass


class CorruptArchiveError(InstallError):
    """Raised when an archive cannot be read."""
    pass


class ActivationError(RgUpdateError):
    """Raised when a version cannot be activated."""
    pass
