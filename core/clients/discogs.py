from __future__ import annotations

import logging
from typing import Optional

import discogs_client as legacy_discogs
from discogs_client import DiscogsCredentials

from core.cache import TransientCache, barcode_cache_key
from core.config import Settings
from core.exceptions import NotFoundError, ValidationError
from core.models import Release

logger = logging.getLogger(__name__)


class DiscogsClient:
    """Wrapper for Discogs API interactions (barcode search and release detail)."""

    def __init__(
        self,
        credentials: DiscogsCredentials,
        cache: Optional[TransientCache] = None,
    ) -> None:
        self.credentials = credentials
        self.cache = cache

    @classmethod
    def from_settings(cls, settings: Settings, use_cache: bool = True) -> "DiscogsClient":
        credentials = DiscogsCredentials(
            token=settings.discogs_token,
            consumer_key=settings.consumer_key,
            consumer_secret=settings.consumer_secret,
        )
        cache = TransientCache(settings.cache_dir, ttl=settings.cache_ttl) if use_cache else None
        return cls(credentials, cache=cache)

    def search_barcode(self, barcode: str) -> Release:
        """
        Return the full release for the first search hit on `barcode`.

        The parsed release is cached per barcode (as `Release.to_dict()`), so
        repeated lookups do not hit the API until the entry expires.
        """
        barcode = (barcode or "").strip()
        if not barcode:
            raise ValidationError("No barcode provided.")

        cache_key = barcode_cache_key(barcode)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info("Discogs cache hit for barcode %s", barcode)
                return Release.from_dict(cached)

        search = legacy_discogs.search_by_barcode(self.credentials, barcode)
        results = search.get("results") or []
        if not results:
            raise NotFoundError(f"No results found for barcode {barcode}.")

        release_id = results[0].get("id")
        if release_id is None:
            raise NotFoundError(f"First search result for barcode {barcode} has no release id.")

        release = self.get_release(release_id)
        logger.info(
            "Matched barcode %s to Discogs release %s (%r)",
            barcode,
            release_id,
            release.title,
        )

        if self.cache is not None:
            self.cache.set(cache_key, release.to_dict())
        return release

    def get_release(self, release_id: int) -> Release:
        """Fetch detailed release data by ID."""
        details = legacy_discogs.get_release(self.credentials, release_id)
        return Release.from_dict(details)
