"""
Tests for applying mapped Discogs data to a WooCommerce product.
"""

import logging
from unittest.mock import Mock

import pytest

from core.exceptions import ImageImportError, UpstreamAPIError, ValidationError
from core.exporters.woocommerce_api_exporter import WooCommerceAPIExporter
from core.models import ImageChoice, ProductPayload

ATTRIBUTES = [
    {"id": 1, "slug": "pa_dfw_artist"},
    {"id": 2, "slug": "pa_dfw_country"},
    {"id": 3, "slug": "pa_dfw_year"},
]


@pytest.fixture
def client():
    client = Mock()
    client.get_product.return_value = {"id": 10, "attributes": [], "images": []}
    client.update_product.side_effect = lambda pid, update: {"id": pid, **update}
    client.edit_url.side_effect = lambda pid: f"https://shop.example/wp-admin/post.php?post={pid}&action=edit"
    client.list_attributes.return_value = ATTRIBUTES

    def attribute_id_by_slug(slug):
        return {a["slug"]: a["id"] for a in ATTRIBUTES}.get(slug)

    client.attribute_id_by_slug.side_effect = attribute_id_by_slug

    categories = {}

    def get_or_create_category(name, parent=0):
        return categories.setdefault((name, parent), 100 + len(categories))

    client.get_or_create_category.side_effect = get_or_create_category
    client.get_or_create_attribute_term.return_value = 500
    return client


def _update(client):
    args, _ = client.update_product.call_args
    return args[1]


class TestApply:
    def test_requires_product_id_and_payload(self, client):
        exporter = WooCommerceAPIExporter(client)
        with pytest.raises(ValidationError):
            exporter.apply(0, ProductPayload(fields={"title": "T"}))
        with pytest.raises(ValidationError):
            exporter.apply(10, ProductPayload())
        client.update_product.assert_not_called()

    def test_title_sets_name_slug_and_draft(self, client):
        result = WooCommerceAPIExporter(client).apply(10, ProductPayload(fields={"title": "Never Gonna Give You Up"}))
        update = _update(client)
        assert update["name"] == "Never Gonna Give You Up"
        assert update["slug"] == "never-gonna-give-you-up"
        assert update["status"] == "draft"
        assert "categories" not in update
        assert "images" not in update
        assert result.edit_url.endswith("post=10&action=edit")

    def test_description(self, client):
        WooCommerceAPIExporter(client).apply(10, ProductPayload(fields={"description": "<p>Hi</p>"}))
        assert _update(client)["description"] == "<p>Hi</p>"

    def test_categories_cross_product(self, client):
        payload = ProductPayload(fields={"formats": ["Vinyl", "CD"], "genres": ["Rock", "Pop"]})
        WooCommerceAPIExporter(client).apply(10, payload)
        calls = [c.args for c in client.get_or_create_category.call_args_list]
        assert calls == [
            ("Vinyl",),
            ("Rock", 100),
            ("Pop", 100),
            ("CD",),
            ("Rock", 103),
            ("Pop", 103),
        ]
        assert _update(client)["categories"] == [{"id": i} for i in (100, 101, 102, 103, 104, 105)]

    def test_repeated_format_sent_once(self, client):
        payload = ProductPayload(fields={"formats": ["Vinyl", "Vinyl", "CD"], "genres": ["Rock"]})
        WooCommerceAPIExporter(client).apply(10, payload)
        assert client.get_or_create_category.call_count == 4
        assert _update(client)["categories"] == [{"id": i} for i in (100, 101, 102, 103)]

    def test_attributes_merged_with_existing(self, client):
        client.get_product.return_value = {
            "id": 10,
            "attributes": [
                {"id": 3, "options": ["1970"], "visible": True},
                {"id": 0, "name": "Condition", "options": ["Used"]},
            ],
            "images": [],
        }
        payload = ProductPayload(fields={"artists_sort": "Rick Astley", "year": 1987})
        WooCommerceAPIExporter(client).apply(10, payload)

        client.get_or_create_attribute_term.assert_any_call(1, "Rick Astley")
        client.get_or_create_attribute_term.assert_any_call(3, "1987")
        assert _update(client)["attributes"] == [
            {"id": 3, "options": ["1987"], "visible": True, "variation": False},
            {"id": 0, "name": "Condition", "options": ["Used"]},
            {"id": 1, "options": ["Rick Astley"], "visible": True, "variation": False},
        ]

    def test_attribute_term_failure_skips_only_that_attribute(self, client):
        client.get_or_create_attribute_term.side_effect = [UpstreamAPIError("nope", status=500), 501]
        payload = ProductPayload(fields={"artists_sort": "A", "country": "UK"})
        WooCommerceAPIExporter(client).apply(10, payload)
        assert [a["id"] for a in _update(client)["attributes"]] == [2]

    def test_missing_attribute_is_skipped(self, client):
        client.attribute_id_by_slug.side_effect = None
        client.attribute_id_by_slug.return_value = None
        WooCommerceAPIExporter(client).apply(10, ProductPayload(fields={"country": "UK"}))
        assert "attributes" not in _update(client)

    def test_dry_run_does_not_write(self, client, caplog):
        caplog.set_level(logging.INFO)
        result = WooCommerceAPIExporter(client, dry_run=True).apply(10, ProductPayload(fields={"title": "T"}))
        assert result.dry_run
        client.update_product.assert_not_called()
        assert 'fields={"title": "T"} images=[]' in caplog.text


class TestImages:
    def test_featured_first_then_gallery(self, client):
        payload = ProductPayload(
            images=[
                ImageChoice(uri="https://i.discogs.com/x/back.jpg", type="gallery"),
                ImageChoice(uri="https://i.discogs.com/x/front.jpg", type="image"),
            ]
        )
        result = WooCommerceAPIExporter(client).apply(10, payload)
        assert _update(client)["images"] == [
            {"src": "https://i.discogs.com/x/front.jpg", "name": "front.jpg"},
            {"src": "https://i.discogs.com/x/back.jpg", "name": "back.jpg"},
        ]
        assert result.failed_images == []

    def test_failed_image_skipped_rest_applied(self, client):
        def check_image(uri):
            if "broken" in uri:
                raise ImageImportError(uri, "HTTP 404")

        client.check_image.side_effect = check_image
        payload = ProductPayload(
            fields={"title": "T"},
            images=[
                ImageChoice(uri="https://i.discogs.com/front.jpg", type="image"),
                ImageChoice(uri="https://i.discogs.com/broken.jpg", type="gallery"),
                ImageChoice(uri="https://i.discogs.com/back.jpg", type="gallery"),
            ],
        )
        result = WooCommerceAPIExporter(client).apply(10, payload)
        assert result.failed_images == ["https://i.discogs.com/broken.jpg"]
        assert [img.get("src") for img in _update(client)["images"]] == [
            "https://i.discogs.com/front.jpg",
            "https://i.discogs.com/back.jpg",
        ]
        assert _update(client)["name"] == "T"

    def test_existing_attachment_reused(self, client):
        client.get_product.return_value = {
            "id": 10,
            "attributes": [],
            "images": [{"id": 77, "src": "https://shop.example/uploads/front.jpg"}],
        }
        payload = ProductPayload(images=[ImageChoice(uri="https://i.discogs.com/r/front.jpg", type="image")])
        WooCommerceAPIExporter(client).apply(10, payload)
        assert _update(client)["images"] == [{"id": 77}]
        client.check_image.assert_not_called()

    def test_gallery_only_keeps_current_featured(self, client):
        client.get_product.return_value = {
            "id": 10,
            "attributes": [],
            "images": [{"id": 5, "src": "https://shop.example/uploads/cover.jpg"}],
        }
        payload = ProductPayload(images=[ImageChoice(uri="https://i.discogs.com/back.jpg", type="gallery")])
        WooCommerceAPIExporter(client).apply(10, payload)
        assert _update(client)["images"] == [
            {"id": 5},
            {"src": "https://i.discogs.com/back.jpg", "name": "back.jpg"},
        ]

    def test_featured_only_keeps_current_gallery(self, client):
        client.get_product.return_value = {
            "id": 10,
            "attributes": [],
            "images": [
                {"id": 5, "src": "https://shop.example/uploads/cover.jpg"},
                {"id": 6, "src": "https://shop.example/uploads/insert.jpg"},
            ],
        }
        payload = ProductPayload(images=[ImageChoice(uri="https://i.discogs.com/front.jpg", type="image")])
        WooCommerceAPIExporter(client).apply(10, payload)
        assert _update(client)["images"] == [
            {"src": "https://i.discogs.com/front.jpg", "name": "front.jpg"},
            {"id": 6},
        ]

    def test_gallery_image_promoted_to_featured_not_duplicated(self, client):
        client.get_product.return_value = {
            "id": 10,
            "attributes": [],
            "images": [
                {"id": 1, "src": "https://shop.example/uploads/cover.jpg"},
                {"id": 2, "src": "https://shop.example/uploads/back.jpg"},
                {"id": 3, "src": "https://shop.example/uploads/insert.jpg"},
            ],
        }
        payload = ProductPayload(images=[ImageChoice(uri="https://i.discogs.com/r/back.jpg", type="image")])
        WooCommerceAPIExporter(client).apply(10, payload)
        assert _update(client)["images"] == [{"id": 2}, {"id": 3}]

    def test_all_images_failed_leaves_images_untouched(self, client):
        client.check_image.side_effect = ImageImportError("u", "down")
        payload = ProductPayload(
            fields={"title": "T"},
            images=[ImageChoice(uri="https://i.discogs.com/front.jpg", type="image")],
        )
        result = WooCommerceAPIExporter(client).apply(10, payload)
        assert "images" not in _update(client)
        assert result.failed_images == ["https://i.discogs.com/front.jpg"]


class TestEnsureAttributes:
    def test_creates_only_missing(self, client):
        client.list_attributes.return_value = [{"id": 1, "slug": "pa_dfw_artist"}]
        client.create_attribute.side_effect = [2, 3]
        ids = WooCommerceAPIExporter(client).ensure_attributes()
        assert ids == {"pa_dfw_artist": 1, "pa_dfw_country": 2, "pa_dfw_year": 3}
        assert [c.args for c in client.create_attribute.call_args_list] == [
            ("Country", "dfw_country"),
            ("Year", "dfw_year"),
        ]

    def test_dry_run(self, client):
        client.list_attributes.return_value = []
        assert WooCommerceAPIExporter(client, dry_run=True).ensure_attributes() == {}
        client.create_attribute.assert_not_called()
