"""
Tests for the low-level Discogs HTTP wrapper.
"""

from unittest.mock import Mock, patch

import pytest
import requests

import discogs_client
from discogs_client import DiscogsCredentials
from core.exceptions import MissingCredentialsError, UpstreamAPIError


def _response(status=200, body=None, headers=None):
    resp = Mock()
    resp.status_code = status
    resp.headers = headers or {}
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body if body is not None else {}
    return resp


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("discogs_client.time.sleep") as sleep:
        yield sleep


@pytest.fixture
def mock_get():
    with patch("discogs_client.requests.get") as get:
        yield get


KEY_SECRET = DiscogsCredentials(consumer_key="k", consumer_secret="s")
TOKEN = DiscogsCredentials(token="tok")


class TestCredentials:
    def test_missing_credentials_raise_before_request(self, mock_get):
        with pytest.raises(MissingCredentialsError):
            discogs_client.api_get("/database/search", DiscogsCredentials())
        mock_get.assert_not_called()

    def test_key_and_secret_sent_as_params(self, mock_get):
        mock_get.return_value = _response(body={"results": []})
        discogs_client.search_by_barcode(KEY_SECRET, "123")
        _, kwargs = mock_get.call_args
        assert kwargs["params"] == {"barcode": "123", "type": "release", "key": "k", "secret": "s"}
        assert "Authorization" not in kwargs["headers"]
        assert kwargs["headers"]["User-Agent"].startswith("DiscogsForWooCommerce/")

    def test_token_sent_as_header(self, mock_get):
        mock_get.return_value = _response(body={"id": 1})
        discogs_client.get_release(TOKEN, 1)
        args, kwargs = mock_get.call_args
        assert args[0] == "https://api.discogs.com/releases/1"
        assert kwargs["headers"]["Authorization"] == "Discogs token=tok"
        assert "key" not in kwargs["params"]


class TestErrors:
    def test_non_2xx_uses_body_message(self, mock_get):
        mock_get.return_value = _response(status=401, body={"message": "Invalid consumer token."})
        with pytest.raises(UpstreamAPIError) as exc:
            discogs_client.get_release(TOKEN, 5)
        assert exc.value.status == 401
        assert exc.value.message == "Invalid consumer token."

    def test_non_2xx_without_message(self, mock_get):
        mock_get.return_value = _response(status=404, body=ValueError("no json"))
        with pytest.raises(UpstreamAPIError) as exc:
            discogs_client.get_release(TOKEN, 5)
        assert exc.value.message == "Unknown API error."

    def test_invalid_json_on_success(self, mock_get):
        mock_get.return_value = _response(status=200, body=ValueError("bad"))
        with pytest.raises(UpstreamAPIError):
            discogs_client.get_release(TOKEN, 5)


class TestRetry:
    def test_retries_server_errors(self, mock_get):
        mock_get.side_effect = [_response(status=502), _response(status=200, body={"id": 9})]
        assert discogs_client.get_release(TOKEN, 9) == {"id": 9}
        assert mock_get.call_count == 2

    def test_retries_rate_limit(self, mock_get):
        mock_get.side_effect = [_response(status=429), _response(status=200, body={"ok": True})]
        assert discogs_client.api_get("/x", TOKEN) == {"ok": True}

    def test_gives_up_after_max_retries(self, mock_get):
        mock_get.return_value = _response(status=503, body={"message": "down"})
        with pytest.raises(UpstreamAPIError) as exc:
            discogs_client.api_get("/x", TOKEN)
        assert exc.value.status == 503
        assert mock_get.call_count == 5

    def test_network_error_retried_then_raised(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("boom")
        with pytest.raises(UpstreamAPIError):
            discogs_client.api_get("/x", TOKEN)
        assert mock_get.call_count == 5

    def test_low_rate_limit_remaining_slows_down(self, mock_get, no_sleep):
        mock_get.return_value = _response(body={}, headers={"X-Discogs-Ratelimit-Remaining": "2"})
        discogs_client.api_get("/x", TOKEN)
        assert any(call.args == (1.0,) for call in no_sleep.call_args_list)
