from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from core.formatting import render_description
from core.models import (
    IMAGE_SLOT_GALLERY,
    IMAGE_SLOT_PRIMARY,
    Image,
    ImageChoice,
    ProductPayload,
    Release,
    Selection,
)

logger = logging.getLogger(__name__)

# Fields the product writer understands. Anything else in a selection is dropped.
SERVER_FIELD_KEYS = (
    "title",
    "artists_sort",
    "country",
    "year",
    "formats",
    "genres",
    "description",
)

# Release field → product attribute taxonomy.
ATTRIBUTE_MAP = {
    "artists_sort": "pa_dfw_artist",
    "country": "pa_dfw_country",
    "year": "pa_dfw_year",
}

# Attributes created in the store by `setup-attributes`.
MANAGED_ATTRIBUTES = (
    {"slug": "dfw_artist", "name": "Artist"},
    {"slug": "dfw_country", "name": "Country"},
    {"slug": "dfw_year", "name": "Year"},
)

_FieldHandler = Callable[[Release, Optional[str]], Any]

FIELD_HANDLERS: Dict[str, _FieldHandler] = {
    "title": lambda release, _tpl: release.title or None,
    "artists_sort": lambda release, _tpl: release.artists_sort or None,
    "country": lambda release, _tpl: release.country or None,
    "year": lambda release, _tpl: release.year or None,
    "formats": lambda release, _tpl: release.format_names or None,
    "genres": lambda release, _tpl: list(release.genres) or None,
    # Rendered at submission time so the current template always wins.
    "description": lambda release, tpl: render_description(tpl, release) or None,
}


def split_images(images: Sequence[Image]) -> Tuple[Optional[Image], List[Image]]:
    """Return (primary, secondaries). Falls back to the first image when none is marked primary."""
    if not images:
        return None, []
    primary = next((img for img in images if img.is_primary), images[0])
    return primary, [img for img in images if img is not primary]


def default_selection(release: Release, template: Optional[str] = None) -> Selection:
    """Everything ticked: each field that has a value plus every image."""
    fields = {key for key in SERVER_FIELD_KEYS if FIELD_HANDLERS[key](release, template) is not None}

    primary, gallery = split_images(release.images)
    images: List[ImageChoice] = []
    if primary is not None and primary.uri:
        images.append(ImageChoice(uri=primary.uri, type=IMAGE_SLOT_PRIMARY))
    images.extend(ImageChoice(uri=img.uri, type=IMAGE_SLOT_GALLERY) for img in gallery if img.uri)
    return Selection(fields=fields, images=images)


def map_selection(
    release: Release,
    selection: Selection,
    template: Optional[str] = None,
) -> Optional[ProductPayload]:
    """
    Project the selected release fields onto product fields.

    Returns None when nothing was selected; callers must not submit then.
    """
    if selection.is_empty:
        return None

    fields: Dict[str, Any] = {}
    for key in sorted(selection.fields):
        handler = FIELD_HANDLERS.get(key)
        if handler is None:
            logger.debug("Ignoring non-server field %r", key)
            continue
        value = handler(release, template)
        if value is not None:
            fields[key] = value

    images = [
        img for img in selection.images if img.uri and img.type in (IMAGE_SLOT_PRIMARY, IMAGE_SLOT_GALLERY)
    ]

    payload = ProductPayload(fields=fields, images=images)
    if payload.is_empty:
        return None
    return payload


def _as_list(value: Any) -> List[str]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v]
    return [str(value)]


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def project_categories(fields: Dict[str, Any]) -> List[Tuple[str, List[str]]]:
    """Each format is a top-level category; every genre goes under every format."""
    formats = _unique(_as_list(fields.get("formats")))
    genres = _unique(_as_list(fields.get("genres")))
    return [(fmt, list(genres)) for fmt in formats]


def project_attributes(fields: Dict[str, Any]) -> Iterable[Tuple[str, str]]:
    for key, taxonomy in ATTRIBUTE_MAP.items():
        value = fields.get(key)
        if value in (None, "", 0):
            continue
        yield taxonomy, str(value)
