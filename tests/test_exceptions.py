"""
Tests for custom exceptions.
"""

import pytest

from core.exceptions import (
    ConfigurationError,
    DiscogsWooError,
    ImageImportError,
    InvalidStateError,
    MissingCredentialsError,
    NotFoundError,
    PermissionDeniedError,
    UpstreamAPIError,
    ValidationError,
)


@pytest.mark.parametrize(
    "exc_type",
    [
        ConfigurationError,
        ImageImportError,
        InvalidStateError,
        MissingCredentialsError,
        NotFoundError,
        PermissionDeniedError,
        UpstreamAPIError,
        ValidationError,
    ],
)
def test_all_inherit_from_base(exc_type):
    assert issubclass(exc_type, DiscogsWooError)


def test_missing_credentials_is_configuration_error():
    assert issubclass(MissingCredentialsError, ConfigurationError)


def test_upstream_error_carries_status():
    err = UpstreamAPIError("Invalid consumer token.", status=401, details={"code": "x"})
    assert err.status == 401
    assert err.details == {"code": "x"}
    assert str(err) == "Invalid consumer token. (HTTP 401)"
    assert str(UpstreamAPIError("timeout")) == "timeout"


def test_image_import_error():
    err = ImageImportError("https://i.discogs.com/a.jpg", "HTTP 404")
    assert err.uri == "https://i.discogs.com/a.jpg"
    assert "HTTP 404" in str(err)
