"""
Text helpers that turn a Discogs release into product copy.

Nothing here touches the network or mutates its input; absent values simply
render as empty strings.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from core.models import Artist, Release, Track

# Discogs disambiguates same-named artists with a numeric suffix: "Artist (2)".
_DISAMBIGUATION_RE = re.compile(r" +\(\d+\)$")
_DISC_PREFIX_RE = re.compile(r"^(\d+)-(.*)$")

PLACEHOLDERS = (
    "[title]",
    "[artist]",
    "[year]",
    "[country]",
    "[format]",
    "[genre]",
    "[tracklist]",
)
_PLACEHOLDER_RE = re.compile("|".join(re.escape(p) for p in PLACEHOLDERS))

ArtistLike = Union[Artist, Dict[str, Any]]


def _as_artist(artist: ArtistLike) -> Artist:
    if isinstance(artist, Artist):
        return artist
    return Artist.from_dict(artist)


def strip_disambiguation(name: str) -> str:
    return _DISAMBIGUATION_RE.sub("", name or "")


def format_artists(artists: Optional[Sequence[ArtistLike]]) -> str:
    """
    Join track/release artists into one display string.

    The join word belongs to the artist before the separator; without one
    the artists are separated by ", ".
    """
    if not artists:
        return ""

    parts: List[str] = []
    last = len(artists) - 1
    for i, raw in enumerate(artists):
        artist = _as_artist(raw)
        parts.append(strip_disambiguation(artist.display_name))
        if i < last:
            parts.append(f" {artist.join} " if artist.join else ", ")
    return "".join(parts)


def parse_position(position: Optional[str]) -> Tuple[Optional[str], str]:
    """Split "2-05" into ("2", "05"). Positions without a disc prefix give (None, position)."""
    if not position:
        return None, ""
    match = _DISC_PREFIX_RE.match(position)
    if not match:
        return None, position
    return match.group(1), match.group(2)


def _track_line(track: Track, label: str) -> str:
    artist = format_artists(track.artists)
    line = f"{label}. " if label else ""
    if artist:
        line += f"{artist} - "
    line += track.title
    if track.duration:
        line += f" ({track.duration})"
    return line


def format_tracklist(tracklist: Optional[Iterable[Union[Track, Dict[str, Any]]]]) -> str:
    """
    Plain-text tracklist for the [tracklist] placeholder.

    Headings and index entries are dropped. If any track carries a disc
    prefix the list is grouped into "CD <n>" blocks, ordered by disc number.
    """
    if not tracklist:
        return ""

    tracks = [t if isinstance(t, Track) else Track.from_dict(t) for t in tracklist]
    tracks = [t for t in tracks if t.type_ == "track"]
    if not tracks:
        return ""

    parsed = [(track, parse_position(track.position)) for track in tracks]
    multi_disc = any(disc is not None for _, (disc, _label) in parsed)

    if not multi_disc:
        return "\n".join(_track_line(track, label) for track, (_disc, label) in parsed)

    discs: Dict[str, List[str]] = {}
    for track, (disc, label) in parsed:
        # Unprefixed tracks on a multi-disc release land on disc 1.
        discs.setdefault(disc or "1", []).append(_track_line(track, label))

    blocks = [
        f"CD {disc}\n" + "\n".join(lines)
        for disc, lines in sorted(discs.items(), key=lambda item: int(item[0]))
    ]
    return "\n\n".join(blocks)


def placeholder_values(release: Release) -> Dict[str, str]:
    return {
        "[title]": release.title or "",
        "[artist]": release.artists_sort or "",
        "[year]": str(release.year) if release.year else "",
        "[country]": release.country or "",
        "[format]": ", ".join(release.format_names),
        "[genre]": ", ".join(release.genres),
        "[tracklist]": format_tracklist(release.tracklist),
    }


def render_description(template: Optional[str], release: Release) -> str:
    """
    Fill a description template from a release.

    Substitution happens in a single pass over the template, so a value
    that itself looks like a placeholder is inserted verbatim.
    """
    if not template:
        return ""
    values = placeholder_values(release)
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(0)], template)
