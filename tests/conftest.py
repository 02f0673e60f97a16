"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

# Flat layout: make the repo root importable.
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.models import ApplyResult, Release  # noqa: E402


@pytest.fixture
def release_data():
    """Discogs /releases/{id} payload trimmed to the fields we use."""
    return {
        "id": 249504,
        "title": "Never Gonna Give You Up",
        "artists_sort": "Rick Astley",
        "artists": [{"name": "Rick Astley", "anv": "", "join": ""}],
        "year": 1987,
        "country": "UK",
        "formats": [{"name": "Vinyl", "qty": "1", "descriptions": ["7\"", "45 RPM"]}],
        "genres": ["Electronic", "Pop"],
        "images": [
            {"uri": "https://i.discogs.com/back.jpg", "uri150": "https://i.discogs.com/back-150.jpg", "type": "secondary"},
            {"uri": "https://i.discogs.com/front.jpg", "uri150": "https://i.discogs.com/front-150.jpg", "type": "primary"},
        ],
        "tracklist": [
            {"type_": "track", "position": "A", "title": "Never Gonna Give You Up", "duration": "3:32", "artists": []},
            {"type_": "track", "position": "B", "title": "Never Gonna Give You Up (Instrumental)", "duration": "3:30"},
        ],
    }


@pytest.fixture
def release(release_data):
    return Release.from_dict(release_data)


@pytest.fixture
def mock_discogs_client(release):
    client = Mock()
    client.search_barcode = Mock(return_value=release)
    return client


@pytest.fixture
def mock_writer():
    writer = Mock()
    writer.apply = Mock(side_effect=lambda product_id, payload: ApplyResult(product_id=product_id))
    return writer
