from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

APP_VERSION = "1.0"
APP_DIR_NAME = ".discogs_to_woocommerce"
SETTINGS_FILE_NAME = "settings.json"
CACHE_DIR_NAME = "cache"
LOGS_DIR_NAME = "logs"
DEFAULT_CACHE_TTL = 24 * 60 * 60  # one day

# Environment variable → settings field.
ENV_OVERRIDES = {
    "DISCOGS_TOKEN": "discogs_token",
    "DISCOGS_CONSUMER_KEY": "consumer_key",
    "DISCOGS_CONSUMER_SECRET": "consumer_secret",
    "WC_STORE_URL": "store_url",
    "WC_CONSUMER_KEY": "wc_consumer_key",
    "WC_CONSUMER_SECRET": "wc_consumer_secret",
    "DFW_DESCRIPTION_TEMPLATE": "description_template",
}


@dataclass
class Settings:
    """Plugin-wide configuration, read once at startup and passed down explicitly."""

    consumer_key: str = ""
    consumer_secret: str = ""
    discogs_token: str = ""
    description_template: str = ""
    store_url: str = ""
    wc_consumer_key: str = ""
    wc_consumer_secret: str = ""
    cache_ttl: int = DEFAULT_CACHE_TTL
    base_dir: str = ""

    @property
    def discogs_credentials_configured(self) -> bool:
        return bool(self.discogs_token or (self.consumer_key and self.consumer_secret))

    @property
    def woocommerce_configured(self) -> bool:
        return bool(self.store_url and self.wc_consumer_key and self.wc_consumer_secret)

    @property
    def app_dir(self) -> Path:
        return Path(self.base_dir).expanduser() if self.base_dir else Path.home() / APP_DIR_NAME

    @property
    def cache_dir(self) -> Path:
        return self.app_dir / CACHE_DIR_NAME

    @property
    def logs_dir(self) -> Path:
        return self.app_dir / LOGS_DIR_NAME

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        known = {f.name: f for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key not in known or value is None:
                continue
            if key == "cache_ttl":
                try:
                    kwargs[key] = int(value)
                except (TypeError, ValueError):
                    logger.warning("Ignoring invalid cache_ttl %r", value)
                continue
            kwargs[key] = str(value).strip() if key != "description_template" else str(value)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def get_settings_path() -> Path:
    """Return the JSON settings file path under the user's home directory."""
    return Path.home() / APP_DIR_NAME / SETTINGS_FILE_NAME


def _read_settings_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Could not read settings from %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Settings file %s does not hold a JSON object; ignoring it.", path)
        return {}
    return data


def load_settings(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Load settings from the JSON file, then apply environment overrides.
    """
    path = path or get_settings_path()
    environ = os.environ if environ is None else environ

    data = _read_settings_file(path)
    for env_name, key in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            data[key] = value
    return Settings.from_dict(data)


def save_settings(settings: Settings, path: Optional[Path] = None) -> None:
    path = path or get_settings_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)
    except OSError as e:
        raise ConfigurationError(f"Could not save settings to {path}: {e}") from e
    logger.info("Saved settings to %s", path)
