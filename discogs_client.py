#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
discogs_client.py
===============================================================================
Thin, safe wrapper around the Discogs API with retry + basic throttling.

All network calls to Discogs should go through this module instead of calling
`requests` directly from the CLI or other modules. Errors are raised as the
typed exceptions from core.exceptions so callers can report them.
===============================================================================
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from core.config import APP_VERSION
from core.exceptions import MissingCredentialsError, UpstreamAPIError
from dfw_logging import get_logger

logger = get_logger(__name__)

DISCOGS_API_BASE = "https://api.discogs.com"
USER_AGENT = f"DiscogsForWooCommerce/{APP_VERSION}"
BASE_DELAY = 0.5  # small delay before each request to ease rate limits


@dataclass(frozen=True)
class DiscogsCredentials:
    """Either a personal access token or an app consumer key/secret pair."""

    token: str = ""
    consumer_key: str = ""
    consumer_secret: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.token or (self.consumer_key and self.consumer_secret))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _build_headers(credentials: DiscogsCredentials) -> Dict[str, str]:
    headers = {
        "User-Agent": USER_AGENT,
        "Accept": "application/json",
    }
    token = (credentials.token or "").strip()
    if token:
        headers["Authorization"] = f"Discogs token={token}"
    return headers


def _auth_params(credentials: DiscogsCredentials) -> Dict[str, str]:
    if credentials.token:
        return {}
    return {"key": credentials.consumer_key, "secret": credentials.consumer_secret}


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return "Unknown API error."


def _safe_get(
    path: str,
    credentials: DiscogsCredentials,
    params: Optional[Dict[str, Any]] = None,
    max_retries: int = 5,
    timeout: int = 40,
) -> requests.Response:
    """
    Perform a GET with retry and simple backoff.

    Network errors, 429 and 5xx responses are retried. The last response is
    returned once retries run out; a network error on the final attempt is
    raised as UpstreamAPIError.
    """
    url = f"{DISCOGS_API_BASE}{path}"
    headers = _build_headers(credentials)
    query: Dict[str, Any] = dict(params or {})
    query.update(_auth_params(credentials))

    backoff = 1.0
    time.sleep(BASE_DELAY)

    for attempt in range(1, max_retries + 1):
        try:
            resp = requests.get(url, headers=headers, params=query, timeout=timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(
                "Discogs GET failed (attempt %d/%d) %s: %s",
                attempt,
                max_retries,
                url,
                e,
            )
            if attempt == max_retries:
                raise UpstreamAPIError(f"Discogs request failed: {e}") from e
            time.sleep(backoff)
            backoff = min(backoff * 2, 10.0)
            continue

        remaining = resp.headers.get("X-Discogs-Ratelimit-Remaining")
        try:
            if remaining is not None and int(remaining) < 5:
                time.sleep(1.0)
        except ValueError:
            pass

        if resp.status_code == 429:
            logger.warning("Discogs rate limit hit on %s (attempt %d/%d)", url, attempt, max_retries)
            if attempt == max_retries:
                return resp
            time.sleep(max(backoff, 3.0))
            backoff = min(backoff * 2, 10.0)
            continue

        if 500 <= resp.status_code < 600:
            logger.warning(
                "Discogs server error %s on %s (attempt %d/%d)",
                resp.status_code,
                url,
                attempt,
                max_retries,
            )
            if attempt == max_retries:
                return resp
            time.sleep(backoff)
            backoff = min(backoff * 2, 10.0)
            continue

        return resp

    raise UpstreamAPIError(f"Discogs request to {url} was not attempted")  # max_retries < 1


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def api_get(
    path: str,
    credentials: DiscogsCredentials,
    params: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    GET a Discogs endpoint and return the decoded JSON body.

    Raises MissingCredentialsError before any request when no credentials
    are configured, and UpstreamAPIError for non-2xx answers.
    """
    if not credentials.configured:
        raise MissingCredentialsError("Discogs API credentials are not configured.")

    resp = _safe_get(path, credentials, params=params)
    if not 200 <= resp.status_code < 300:
        message = _error_message(resp)
        logger.warning("Discogs GET %s returned HTTP %s: %s", path, resp.status_code, message)
        raise UpstreamAPIError(message, status=resp.status_code)

    try:
        return resp.json()
    except ValueError as e:
        logger.warning("Discogs JSON parse failed for %s: %s", path, e)
        raise UpstreamAPIError(f"Discogs returned invalid JSON: {e}", status=resp.status_code) from e


def search_by_barcode(credentials: DiscogsCredentials, barcode: str) -> Dict[str, Any]:
    """
    Search Discogs releases by barcode (EAN/UPC). Returns the raw search payload.
    """
    params = {"barcode": barcode, "type": "release"}
    logger.info("Discogs search params: %s", params)
    return api_get("/database/search", credentials, params=params)


def get_release(credentials: DiscogsCredentials, release_id: int) -> Dict[str, Any]:
    """
    Fetch /releases/{id}.
    """
    return api_get(f"/releases/{int(release_id)}", credentials)
