from __future__ import annotations

import html
import logging
import time
from typing import Any, Dict, List, Optional

import requests

from core.config import Settings
from core.exceptions import (
    ImageImportError,
    MissingCredentialsError,
    NotFoundError,
    PermissionDeniedError,
    UpstreamAPIError,
)

logger = logging.getLogger(__name__)


def _term_name(raw: Any) -> str:
    # WooCommerce returns term names HTML-escaped ("Folk, World, &amp; Country").
    return html.unescape(str(raw or ""))


class WooCommerceClient:
    """Minimal WooCommerce REST (wc/v3) client for updating products and terms."""

    def __init__(
        self,
        store_url: str,
        consumer_key: str,
        consumer_secret: str,
        api_version: str = "wc/v3",
        session: Optional[requests.Session] = None,
        calls_per_second: float = 4.0,
        timeout: int = 20,
    ) -> None:
        if not (store_url and consumer_key and consumer_secret):
            raise MissingCredentialsError("WooCommerce store URL or API keys are not configured.")
        self.store_url = store_url.rstrip("/")
        self.api_version = api_version
        self.session = session or requests.Session()
        self.session.auth = (consumer_key, consumer_secret)
        self.min_interval = 1.0 / max(0.5, calls_per_second)
        self.timeout = timeout
        self._last_call_ts = 0.0

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "WooCommerceClient":
        return cls(
            store_url=settings.store_url,
            consumer_key=settings.wc_consumer_key,
            consumer_secret=settings.wc_consumer_secret,
            session=session,
        )

    def _sleep_for_rate_limit(self) -> None:
        now = time.time()
        elapsed = now - self._last_call_ts
        if elapsed < self.min_interval:
            time.sleep(self.min_interval - elapsed)
        self._last_call_ts = time.time()

    def _url(self, path: str) -> str:
        return f"{self.store_url}/wp-json/{self.api_version}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        self._sleep_for_rate_limit()
        url = self._url(path)
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise UpstreamAPIError(f"WooCommerce {method} {path} failed: {e}") from e

        if 200 <= resp.status_code < 300:
            try:
                return resp.json()
            except ValueError as e:
                raise UpstreamAPIError(
                    f"WooCommerce returned invalid JSON for {method} {path}", status=resp.status_code
                ) from e

        try:
            details = resp.json()
        except ValueError:
            details = {}
        message = details.get("message") if isinstance(details, dict) else None
        message = message or resp.text or "Unknown API error."
        logger.warning("WooCommerce %s %s failed: %s %s", method, path, resp.status_code, message)

        if resp.status_code in (401, 403):
            raise PermissionDeniedError(message)
        if resp.status_code == 404:
            raise NotFoundError(message)
        raise UpstreamAPIError(
            message,
            status=resp.status_code,
            details=details if isinstance(details, dict) else None,
        )

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def get_product(self, product_id: int) -> Dict[str, Any]:
        return self._request("GET", f"products/{int(product_id)}")

    def update_product(self, product_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        """PUT partial product data. Only keys present in `payload` change."""
        return self._request("PUT", f"products/{int(product_id)}", json=payload)

    def edit_url(self, product_id: int) -> str:
        return f"{self.store_url}/wp-admin/post.php?post={int(product_id)}&action=edit"

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def find_category(self, name: str, parent: int = 0) -> Optional[int]:
        """Exact-name lookup of a product category under `parent`."""
        results = self._request(
            "GET",
            "products/categories",
            params={"search": name, "parent": parent, "per_page": 100},
        )
        for cat in results or []:
            if _term_name(cat.get("name")) == name and int(cat.get("parent") or 0) == parent:
                return int(cat["id"])
        return None

    def create_category(self, name: str, parent: int = 0) -> int:
        try:
            created = self._request("POST", "products/categories", json={"name": name, "parent": parent})
        except UpstreamAPIError as e:
            # term_exists carries the id of the clashing term.
            if e.details.get("code") == "term_exists":
                existing = (e.details.get("data") or {}).get("resource_id")
                if existing:
                    return int(existing)
            raise
        return int(created["id"])

    def get_or_create_category(self, name: str, parent: int = 0) -> int:
        existing = self.find_category(name, parent)
        if existing is not None:
            return existing
        logger.info("Creating product category %r (parent=%s)", name, parent)
        return self.create_category(name, parent)

    # ------------------------------------------------------------------
    # Attributes and terms
    # ------------------------------------------------------------------

    def list_attributes(self) -> List[Dict[str, Any]]:
        return self._request("GET", "products/attributes") or []

    def attribute_id_by_slug(self, slug: str) -> Optional[int]:
        """Look up a global attribute id; accepts "dfw_year" or "pa_dfw_year"."""
        wanted = slug if slug.startswith("pa_") else f"pa_{slug}"
        for attr in self.list_attributes():
            if attr.get("slug") == wanted:
                return int(attr["id"])
        return None

    def create_attribute(self, name: str, slug: str) -> int:
        created = self._request(
            "POST",
            "products/attributes",
            json={
                "name": name,
                "slug": slug,
                "type": "select",
                "order_by": "menu_order",
                "has_archives": False,
            },
        )
        return int(created["id"])

    def find_attribute_term(self, attribute_id: int, name: str) -> Optional[int]:
        results = self._request(
            "GET",
            f"products/attributes/{int(attribute_id)}/terms",
            params={"search": name, "per_page": 100},
        )
        for term in results or []:
            if _term_name(term.get("name")) == name:
                return int(term["id"])
        return None

    def create_attribute_term(self, attribute_id: int, name: str) -> int:
        created = self._request(
            "POST",
            f"products/attributes/{int(attribute_id)}/terms",
            json={"name": name},
        )
        return int(created["id"])

    def get_or_create_attribute_term(self, attribute_id: int, name: str) -> int:
        existing = self.find_attribute_term(attribute_id, name)
        if existing is not None:
            return existing
        logger.info("Creating attribute term %r for attribute id=%s", name, attribute_id)
        return self.create_attribute_term(attribute_id, name)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def check_image(self, uri: str, timeout: int = 8) -> None:
        """
        Best-effort fetch to see if an image URL is reachable before the
        store tries to sideload it. Raises ImageImportError when it is not.
        """
        try:
            resp = requests.get(uri, stream=True, timeout=timeout)
        except requests.exceptions.RequestException as e:
            raise ImageImportError(uri, str(e)) from e
        try:
            content_type = resp.headers.get("Content-Type") or ""
            logger.info(
                "Image preflight url=%s status=%s content_type=%s content_length=%s",
                uri,
                resp.status_code,
                content_type,
                resp.headers.get("Content-Length"),
            )
            if not resp.ok:
                raise ImageImportError(uri, f"HTTP {resp.status_code}")
            if content_type and not content_type.startswith("image/"):
                raise ImageImportError(uri, f"unexpected content type {content_type}")
        finally:
            resp.close()
