from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from core.formatting import format_artists, render_description
from core.mapping import split_images
from core.models import Image, Release

# (release field, label) in display order.
PREVIEW_FIELDS = (
    ("title", "Title"),
    ("artists_sort", "Artist"),
    ("year", "Year"),
    ("country", "Country"),
    ("formats", "Category (format)"),
    ("genres", "Subcategories (genre)"),
)


@dataclass
class PreviewRow:
    key: str
    label: str
    value: str


@dataclass
class TrackRow:
    position: str
    artists: str
    title: str
    duration: str


@dataclass
class Preview:
    """What the operator sees before choosing what to import."""

    release: Release
    rows: List[PreviewRow] = field(default_factory=list)
    tracks: List[TrackRow] = field(default_factory=list)
    primary_image: Optional[Image] = None
    gallery: List[Image] = field(default_factory=list)
    description: str = ""


def _field_value(release: Release, key: str) -> str:
    if key == "formats":
        return ", ".join(release.format_names)
    if key == "genres":
        return ", ".join(release.genres)
    if key == "year":
        return str(release.year) if release.year else ""
    return getattr(release, key) or ""


def preview_rows(release: Release) -> List[PreviewRow]:
    rows: List[PreviewRow] = []
    for key, label in PREVIEW_FIELDS:
        value = _field_value(release, key)
        if value:
            rows.append(PreviewRow(key=key, label=label, value=value))
    return rows


def track_rows(release: Release) -> List[TrackRow]:
    return [
        TrackRow(
            position=t.position,
            artists=format_artists(t.artists),
            title=t.title,
            duration=t.duration or "",
        )
        for t in release.tracklist
        if t.type_ == "track"
    ]


def build_preview(release: Release, template: Optional[str] = None) -> Preview:
    primary, gallery = split_images(release.images)
    return Preview(
        release=release,
        rows=preview_rows(release),
        tracks=track_rows(release),
        primary_image=primary,
        gallery=gallery,
        description=render_description(template, release),
    )


def preview_as_text(preview: Preview) -> str:
    """Plain-text rendering used by the CLI."""
    lines: List[str] = []
    width = max((len(r.label) for r in preview.rows), default=0)
    for row in preview.rows:
        lines.append(f"{row.label.ljust(width)}  {row.value}  [{row.key}]")

    if preview.tracks:
        lines.append("")
        lines.append("Tracklist")
        for t in preview.tracks:
            cells: Tuple[str, ...] = (t.position, t.artists, t.title, t.duration)
            lines.append("  " + " | ".join(c for c in cells if c))

    if preview.primary_image is not None:
        lines.append("")
        lines.append(f"Product Image: {preview.primary_image.uri}")
    for img in preview.gallery:
        lines.append(f"Product Gallery: {img.uri}")

    if preview.description:
        lines.append("")
        lines.append("Description [description]")
        lines.append(preview.description)
    return "\n".join(lines)
