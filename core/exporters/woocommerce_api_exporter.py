from __future__ import annotations

import posixpath
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from slugify import slugify

from core.clients.woocommerce import WooCommerceClient
from core.exceptions import DiscogsWooError, ImageImportError, ValidationError
from core.exporters.base import ProductWriter
from core.mapping import MANAGED_ATTRIBUTES, project_attributes, project_categories
from core.models import IMAGE_SLOT_PRIMARY, ApplyResult, ImageChoice, ProductPayload
from dfw_logging import get_logger

logger = get_logger(__name__)

PRODUCT_STATUS_AFTER_IMPORT = "draft"


def _image_filename(uri: str) -> str:
    return posixpath.basename(urlparse(uri).path)


class WooCommerceAPIExporter(ProductWriter):
    """
    Writes mapped Discogs fields onto an existing WooCommerce product.

    - Title sets name and slug; description replaces the long description.
    - Formats become top-level categories, genres child categories under each.
    - Artist/country/year become global attribute terms (get-or-create).
    - Images: an unreachable image is skipped and reported, the rest still apply.
    - The product is left as a draft for review.
    """

    def __init__(self, client: WooCommerceClient, dry_run: bool = False) -> None:
        self.client = client
        self.dry_run = dry_run
        self._attribute_ids: Dict[str, Optional[int]] = {}

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def ensure_attributes(self) -> Dict[str, int]:
        """Create the managed global attributes when they are missing."""
        ids: Dict[str, int] = {}
        existing = {a.get("slug"): int(a["id"]) for a in self.client.list_attributes()}
        for attr in MANAGED_ATTRIBUTES:
            taxonomy = f"pa_{attr['slug']}"
            if taxonomy in existing:
                ids[taxonomy] = existing[taxonomy]
                continue
            if self.dry_run:
                logger.info("Dry run: would create attribute %s", taxonomy)
                continue
            ids[taxonomy] = self.client.create_attribute(attr["name"], attr["slug"])
            logger.info("Created attribute %s id=%s", taxonomy, ids[taxonomy])
        self._attribute_ids.update(ids)
        return ids

    def _attribute_id(self, taxonomy: str) -> Optional[int]:
        if taxonomy not in self._attribute_ids:
            self._attribute_ids[taxonomy] = self.client.attribute_id_by_slug(taxonomy)
        return self._attribute_ids[taxonomy]

    # ------------------------------------------------------------------
    # Field builders
    # ------------------------------------------------------------------

    def _category_ids(self, fields: Dict[str, Any]) -> List[int]:
        ids: List[int] = []
        for format_name, genres in project_categories(fields):
            parent_id = self.client.get_or_create_category(format_name)
            ids.append(parent_id)
            for genre in genres:
                child_id = self.client.get_or_create_category(genre, parent_id)
                if child_id not in ids:
                    ids.append(child_id)
        return ids

    def _attributes(self, product: Dict[str, Any], fields: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
        updates: Dict[int, Dict[str, Any]] = {}
        for taxonomy, value in project_attributes(fields):
            try:
                attribute_id = self._attribute_id(taxonomy)
                if attribute_id is None:
                    logger.warning(
                        "Attribute %s does not exist; run setup-attributes first. Skipping %r.",
                        taxonomy,
                        value,
                    )
                    continue
                self.client.get_or_create_attribute_term(attribute_id, value)
            except DiscogsWooError as e:
                logger.warning("Could not set %s=%r: %s", taxonomy, value, e)
                continue
            updates[attribute_id] = {
                "id": attribute_id,
                "options": [value],
                "visible": True,
                "variation": False,
            }

        if not updates:
            return None

        merged: List[Dict[str, Any]] = []
        for attr in product.get("attributes") or []:
            attr_id = int(attr.get("id") or 0)
            if attr_id and attr_id in updates:
                merged.append(updates.pop(attr_id))
            else:
                merged.append(attr)
        merged.extend(updates.values())
        return merged

    def _images(
        self, product: Dict[str, Any], images: List[ImageChoice]
    ) -> Tuple[Optional[List[Dict[str, Any]]], List[str]]:
        """
        Returns (WooCommerce image list or None, failed URIs).

        The featured image goes first; gallery images follow in order.
        """
        if not images:
            return None, []

        attached = {}
        for img in product.get("images") or []:
            name = _image_filename(str(img.get("src") or ""))
            if name and img.get("id"):
                attached[name] = int(img["id"])

        featured: Optional[Dict[str, Any]] = None
        gallery: List[Dict[str, Any]] = []
        failed: List[str] = []

        for choice in images:
            filename = _image_filename(choice.uri)
            if filename in attached:
                entry: Dict[str, Any] = {"id": attached[filename]}
            else:
                try:
                    self.client.check_image(choice.uri)
                except ImageImportError as e:
                    logger.warning("%s", e)
                    failed.append(choice.uri)
                    continue
                entry = {"src": choice.uri, "name": filename}

            if choice.type == IMAGE_SLOT_PRIMARY:
                featured = entry
            else:
                gallery.append(entry)

        if featured is None and not gallery:
            return None, failed

        # Slots that were not imported keep what the product already has.
        current_images = [img for img in product.get("images") or [] if img.get("id")]
        if featured is None and current_images:
            featured = {"id": current_images[0]["id"]}
        if not gallery:
            featured_id = featured.get("id") if featured else None
            gallery = [
                {"id": img["id"]}
                for img in current_images[1:]
                if featured_id is None or int(img["id"]) != int(featured_id)
            ]

        result = ([featured] if featured else []) + gallery
        return result, failed

    def build_update(
        self, product: Dict[str, Any], payload: ProductPayload
    ) -> Tuple[Dict[str, Any], List[str]]:
        fields = payload.fields
        update: Dict[str, Any] = {}

        title = fields.get("title")
        if title:
            update["name"] = str(title)
            update["slug"] = slugify(str(title), lowercase=True)

        description = fields.get("description")
        if description:
            update["description"] = str(description)

        if fields.get("formats") or fields.get("genres"):
            category_ids = self._category_ids(fields)
            if category_ids:
                update["categories"] = [{"id": cid} for cid in category_ids]

        attributes = self._attributes(product, fields)
        if attributes is not None:
            update["attributes"] = attributes

        update["status"] = PRODUCT_STATUS_AFTER_IMPORT

        images, failed = self._images(product, payload.images)
        if images is not None:
            update["images"] = images
        return update, failed

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    def apply(self, product_id: int, payload: ProductPayload) -> ApplyResult:
        if not product_id:
            raise ValidationError("Missing product ID.")
        if payload is None or payload.is_empty:
            raise ValidationError("Missing fields or images to apply.")

        product = self.client.get_product(product_id)
        update, failed = self.build_update(product, payload)

        logger.info(
            "Prepared update for product id=%s keys=%s images=%d failed_images=%d",
            product_id,
            sorted(update),
            len(update.get("images") or []),
            len(failed),
        )
        logger.debug("WooCommerce update payload for id=%s: %s", product_id, update)

        if self.dry_run:
            form = payload.to_form()
            logger.info(
                "Dry run: product id=%s not saved. fields=%s images=%s",
                product_id,
                form["fields"],
                form["images"],
            )
            return ApplyResult(product_id=product_id, failed_images=failed, dry_run=True)

        try:
            saved = self.client.update_product(product_id, update)
        except DiscogsWooError:
            logger.exception("WooCommerce update_product failed for id=%s", product_id)
            raise

        logger.info(
            "Updated WooCommerce product id=%s name=%r status=%s",
            saved.get("id", product_id),
            saved.get("name"),
            saved.get("status"),
        )
        return ApplyResult(
            product_id=product_id,
            edit_url=self.client.edit_url(product_id),
            failed_images=failed,
        )
