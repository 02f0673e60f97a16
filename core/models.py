from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class Artist:
    """Credited artist as returned in Discogs release/track JSON."""

    name: str
    anv: Optional[str] = None  # artist name variation
    join: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.anv or self.name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Artist":
        return cls(
            name=_text(data.get("name")),
            anv=data.get("anv") or None,
            join=data.get("join") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "anv": self.anv or "", "join": self.join or ""}


@dataclass(frozen=True)
class Format:
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Format":
        return cls(name=_text(data.get("name")))


@dataclass(frozen=True)
class Image:
    uri: str
    uri150: str = ""
    type: str = ""

    @property
    def is_primary(self) -> bool:
        return self.type == "primary"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Image":
        return cls(
            uri=_text(data.get("uri")),
            uri150=_text(data.get("uri150")),
            type=_text(data.get("type")),
        )


@dataclass(frozen=True)
class Track:
    position: str
    title: str
    duration: Optional[str] = None
    artists: List[Artist] = field(default_factory=list)
    type_: str = "track"  # "track", "heading" or "index"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        return cls(
            position=_text(data.get("position")),
            title=_text(data.get("title")),
            duration=data.get("duration") or None,
            artists=[Artist.from_dict(a) for a in data.get("artists") or []],
            type_=_text(data.get("type_") or "track"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type_": self.type_,
            "position": self.position,
            "title": self.title,
            "duration": self.duration or "",
            "artists": [a.to_dict() for a in self.artists],
        }


@dataclass(frozen=True)
class Release:
    """A Discogs release. Built once per search and never modified."""

    id: Optional[int]
    title: str
    artists_sort: str = ""
    year: Optional[int] = None
    country: str = ""
    formats: List[Format] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    images: List[Image] = field(default_factory=list)
    tracklist: List[Track] = field(default_factory=list)
    artists: List[Artist] = field(default_factory=list)

    @property
    def format_names(self) -> List[str]:
        return [f.name for f in self.formats if f.name]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Release":
        year = data.get("year")
        try:
            year = int(year) if year not in (None, "") else None
        except (TypeError, ValueError):
            year = None
        release_id = data.get("id")
        return cls(
            id=int(release_id) if release_id is not None else None,
            title=_text(data.get("title")),
            artists_sort=_text(data.get("artists_sort")),
            year=year,
            country=_text(data.get("country")),
            formats=[Format.from_dict(f) for f in data.get("formats") or []],
            genres=[str(g) for g in data.get("genres") or []],
            images=[Image.from_dict(i) for i in data.get("images") or []],
            tracklist=[Track.from_dict(t) for t in data.get("tracklist") or []],
            artists=[Artist.from_dict(a) for a in data.get("artists") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        """Discogs-shaped JSON, suitable for caching and re-loading."""
        return {
            "id": self.id,
            "title": self.title,
            "artists_sort": self.artists_sort,
            "year": self.year,
            "country": self.country,
            "formats": [{"name": f.name} for f in self.formats],
            "genres": list(self.genres),
            "images": [{"uri": i.uri, "uri150": i.uri150, "type": i.type} for i in self.images],
            "tracklist": [t.to_dict() for t in self.tracklist],
            "artists": [a.to_dict() for a in self.artists],
        }


IMAGE_SLOT_PRIMARY = "image"
IMAGE_SLOT_GALLERY = "gallery"


@dataclass(frozen=True)
class ImageChoice:
    """An image picked for import; type is "image" (featured) or "gallery"."""

    uri: str
    type: str = IMAGE_SLOT_GALLERY

    def to_dict(self) -> Dict[str, str]:
        return {"uri": self.uri, "type": self.type}


@dataclass
class Selection:
    """Field keys and images ticked by the user. Never persisted."""

    fields: Set[str] = field(default_factory=set)
    images: List[ImageChoice] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.fields and not self.images


@dataclass
class ProductPayload:
    """Mapped fields and images, ready to be written onto a product."""

    fields: Dict[str, Any] = field(default_factory=dict)
    images: List[ImageChoice] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.fields and not self.images

    def to_form(self) -> Dict[str, str]:
        """Two JSON strings, as sent in the outbound form submission."""
        return {
            "fields": json.dumps(self.fields),
            "images": json.dumps([img.to_dict() for img in self.images]),
        }


@dataclass
class ApplyResult:
    """Outcome of writing a payload onto a product."""

    product_id: int
    edit_url: str = ""
    failed_images: List[str] = field(default_factory=list)
    dry_run: bool = False


@dataclass
class ImportSummary:
    """Aggregated results from a batch run."""

    total_rows: int
    applied_count: int
    unmatched_count: int
    skipped_count: int
    failed_image_count: int = 0
