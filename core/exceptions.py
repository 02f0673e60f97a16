from __future__ import annotations

from typing import Any, Dict, Optional


class DiscogsWooError(Exception):
    """Base exception for the Discogs → WooCommerce importer."""


class ConfigurationError(DiscogsWooError):
    """Settings are missing or invalid."""


class MissingCredentialsError(ConfigurationError):
    """Raised when API credentials are not configured."""


class UpstreamAPIError(DiscogsWooError):
    """A remote service answered with an error status."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details or {}

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} (HTTP {self.status})"
        return self.message


class NotFoundError(DiscogsWooError):
    """Search returned no results, or the target record does not exist."""


class PermissionDeniedError(DiscogsWooError):
    """The store rejected our credentials for this operation."""


class ValidationError(DiscogsWooError):
    """Required identifiers or inputs are missing."""


class ImageImportError(DiscogsWooError):
    """A single image could not be downloaded or attached."""

    def __init__(self, uri: str, reason: str) -> None:
        super().__init__(f"Image {uri} skipped: {reason}")
        self.uri = uri
        self.reason = reason


class InvalidStateError(DiscogsWooError):
    """An import session action was called from the wrong state."""
