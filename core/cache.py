from __future__ import annotations

import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional

from core.config import DEFAULT_CACHE_TTL

logger = logging.getLogger(__name__)


def barcode_cache_key(barcode: str) -> str:
    return "dfw_barcode_" + hashlib.md5(barcode.encode("utf-8")).hexdigest()


class TransientCache:
    """
    Small JSON-file cache with a fixed time-to-live per entry.

    One file per key under `cache_dir`; expired or unreadable entries count
    as a miss.
    """

    def __init__(
        self,
        cache_dir: Path,
        ttl: int = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl
        self._clock = clock

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                entry = json.load(f)
            expires = float(entry["expires"])
            value = entry["value"]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable cache entry %s: %s", path, e)
            self.delete(key)
            return None

        if expires <= self._clock():
            logger.debug("Cache entry %s expired", key)
            self.delete(key)
            return None
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = self.ttl if ttl is None else ttl
        entry = {"expires": self._clock() + ttl, "value": value}
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with self._path(key).open("w", encoding="utf-8") as f:
                json.dump(entry, f)
        except OSError as e:
            logger.warning("Could not write cache entry %s: %s", key, e)

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not delete cache entry %s: %s", key, e)

    def clear(self) -> int:
        removed = 0
        if not self.cache_dir.exists():
            return removed
        for path in self.cache_dir.glob("*.json"):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning("Could not delete cache entry %s: %s", path, e)
        return removed
