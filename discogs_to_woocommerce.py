#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
discogs_to_woocommerce.py

Command-line front end for the Discogs → WooCommerce importer.

    search BARCODE              show what Discogs has for a barcode
    apply BARCODE PRODUCT_ID    import the selected fields onto a product
    batch INPUT                 import a CSV/XLSX of product_id + barcode rows
    setup-attributes            create the Artist/Country/Year attributes
    configure [--KEY VALUE ...] show or update the saved settings
    clear-cache                 drop cached barcode lookups
    placeholders                list description template placeholders

Settings are read once here and passed down; nothing below this module
reads the environment or the settings file.
"""

import argparse
import datetime as dt
import logging
import sys
from pathlib import Path
from typing import List, Optional

from core.cache import TransientCache
from core.clients.discogs import DiscogsClient
from core.clients.woocommerce import WooCommerceClient
from core.config import Settings, get_settings_path, load_settings, save_settings
from core.exceptions import DiscogsWooError, MissingCredentialsError
from core.exporters.woocommerce_api_exporter import WooCommerceAPIExporter
from core.formatting import PLACEHOLDERS
from core.mapping import SERVER_FIELD_KEYS
from core.models import IMAGE_SLOT_PRIMARY, Selection
from core.preview import preview_as_text
from core.processing import Processor
from core.session import ImportSession
from dfw_logging import get_logger, setup_logging

logger = get_logger(__name__)

CONFIGURABLE_SETTINGS = (
    "discogs_token",
    "consumer_key",
    "consumer_secret",
    "store_url",
    "wc_consumer_key",
    "wc_consumer_secret",
    "description_template",
    "cache_ttl",
)
SECRET_SETTINGS = {"discogs_token", "consumer_secret", "wc_consumer_secret"}


def print_run_banner() -> None:
    """Print a line showing when this script is running."""
    now = dt.datetime.now().isoformat(timespec="seconds")
    print(f"[discogs_to_woocommerce] Run at {now}", flush=True)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch release data from Discogs by barcode and apply it to WooCommerce products."
    )
    parser.add_argument("--settings", type=str, default=None, help="Path to settings JSON")
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console logging level",
    )
    parser.add_argument("--no-cache", action="store_true", help="Bypass the barcode cache")

    sub = parser.add_subparsers(dest="command", required=True)

    p_search = sub.add_parser("search", help="Preview the Discogs release for a barcode")
    p_search.add_argument("barcode", type=str)

    p_apply = sub.add_parser("apply", help="Apply Discogs data to a product")
    p_apply.add_argument("barcode", type=str)
    p_apply.add_argument("product_id", type=int)
    p_apply.add_argument(
        "--fields",
        type=str,
        default=None,
        help=f"Comma-separated fields to import (default: all of {', '.join(SERVER_FIELD_KEYS)})",
    )
    p_apply.add_argument("--no-images", action="store_true", help="Do not import any images")
    p_apply.add_argument("--no-gallery", action="store_true", help="Import only the primary image")
    p_apply.add_argument("--dry-run", action="store_true", help="Build the update without saving")

    p_batch = sub.add_parser("batch", help="Apply Discogs data to many products from CSV/XLSX")
    p_batch.add_argument("input", type=str, help="Input file with product_id and barcode columns")
    p_batch.add_argument("--unmatched", type=str, default=None, help="Where to write unmatched rows")
    p_batch.add_argument(
        "--dry-limit",
        type=int,
        default=None,
        help="Optional limit on number of input rows to process (for testing)",
    )
    p_batch.add_argument("--dry-run", action="store_true", help="Build updates without saving")

    p_setup = sub.add_parser("setup-attributes", help="Create the managed product attributes")
    p_setup.add_argument("--dry-run", action="store_true")

    p_config = sub.add_parser("configure", help="Show or update the saved settings file")
    for name in CONFIGURABLE_SETTINGS:
        p_config.add_argument(
            "--" + name.replace("_", "-"),
            dest=name,
            type=int if name == "cache_ttl" else str,
            default=None,
        )

    sub.add_parser("clear-cache", help="Remove all cached barcode lookups")
    sub.add_parser("placeholders", help="List description template placeholders")

    return parser.parse_args(argv)


def build_selection(session: ImportSession, args: argparse.Namespace) -> Selection:
    selection = session.default_selection()
    if args.fields:
        wanted = {f.strip() for f in args.fields.split(",") if f.strip()}
        unknown = wanted - set(SERVER_FIELD_KEYS)
        if unknown:
            logger.warning("Ignoring unknown field(s): %s", ", ".join(sorted(unknown)))
        selection.fields &= wanted
    if args.no_images:
        selection.images = []
    elif args.no_gallery:
        selection.images = [img for img in selection.images if img.type == IMAGE_SLOT_PRIMARY]
    return selection


def _writer(settings: Settings, dry_run: bool) -> WooCommerceAPIExporter:
    if not settings.woocommerce_configured:
        raise MissingCredentialsError(
            "WooCommerce is not configured (store_url, wc_consumer_key, wc_consumer_secret)."
        )
    return WooCommerceAPIExporter(WooCommerceClient.from_settings(settings), dry_run=dry_run)


def _discogs(settings: Settings, args: argparse.Namespace) -> DiscogsClient:
    if not settings.discogs_credentials_configured:
        raise MissingCredentialsError(
            "Discogs is not configured (discogs_token, or consumer_key and consumer_secret)."
        )
    return DiscogsClient.from_settings(settings, use_cache=not args.no_cache)


def cmd_search(settings: Settings, args: argparse.Namespace) -> int:
    discogs = _discogs(settings, args)
    session = ImportSession(discogs, description_template=settings.description_template)
    preview = session.fetch(args.barcode)
    print(preview_as_text(preview))
    session.cancel()
    return 0


def cmd_apply(settings: Settings, args: argparse.Namespace) -> int:
    discogs = _discogs(settings, args)
    session = ImportSession(
        discogs,
        writer=_writer(settings, args.dry_run),
        description_template=settings.description_template,
    )
    session.fetch(args.barcode)
    result = session.submit(args.product_id, build_selection(session, args))
    if result is None:
        print("Nothing selected; product left unchanged.")
        return 0
    for uri in result.failed_images:
        print(f"Skipped image: {uri}")
    if result.dry_run:
        print(f"Dry run: product {result.product_id} not saved.")
    else:
        print(f"Updated product {result.product_id}: {result.edit_url}")
    return 0


def cmd_batch(settings: Settings, args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        logger.error("Input file does not exist: %s", input_path)
        return 1
    processor = Processor(
        _discogs(settings, args),
        _writer(settings, args.dry_run),
        description_template=settings.description_template,
    )
    summary = processor.process_file(
        input_path,
        unmatched_path=Path(args.unmatched) if args.unmatched else None,
        limit=args.dry_limit,
    )
    print(
        f"Processed {summary.total_rows} row(s): {summary.applied_count} applied, "
        f"{summary.unmatched_count} unmatched, {summary.skipped_count} skipped."
    )
    return 0


def cmd_setup_attributes(settings: Settings, args: argparse.Namespace) -> int:
    ids = _writer(settings, args.dry_run).ensure_attributes()
    for taxonomy, attr_id in sorted(ids.items()):
        print(f"{taxonomy}: {attr_id}")
    return 0


def cmd_configure(settings: Settings, args: argparse.Namespace) -> int:
    # Start from the file alone so environment overrides are never persisted.
    path = Path(args.settings) if args.settings else get_settings_path()
    stored = load_settings(path, environ={})
    changed = {
        name: getattr(args, name)
        for name in CONFIGURABLE_SETTINGS
        if getattr(args, name) is not None
    }
    if not changed:
        for name in CONFIGURABLE_SETTINGS:
            value = getattr(stored, name)
            if name in SECRET_SETTINGS and value:
                value = "****"
            print(f"{name}: {value}")
        return 0

    updated = Settings.from_dict({**stored.to_dict(), **changed})
    save_settings(updated, path)
    print(f"Saved {', '.join(sorted(changed))} to {path}")
    return 0


def cmd_clear_cache(settings: Settings, args: argparse.Namespace) -> int:
    removed = TransientCache(settings.cache_dir, ttl=settings.cache_ttl).clear()
    print(f"Removed {removed} cached lookup(s) from {settings.cache_dir}")
    return 0


def cmd_placeholders(settings: Settings, args: argparse.Namespace) -> int:
    print("Use placeholders to build a product description template. Available placeholders:")
    print(" ".join(PLACEHOLDERS))
    return 0


COMMANDS = {
    "search": cmd_search,
    "apply": cmd_apply,
    "batch": cmd_batch,
    "setup-attributes": cmd_setup_attributes,
    "configure": cmd_configure,
    "clear-cache": cmd_clear_cache,
    "placeholders": cmd_placeholders,
}


def main(argv: Optional[List[str]] = None) -> None:
    if argv is None:
        argv = sys.argv[1:]

    args = parse_args(argv)
    settings = load_settings(Path(args.settings) if args.settings else None)
    setup_logging(log_root=str(settings.logs_dir), console_level=getattr(logging, args.log_level))

    try:
        print_run_banner()
        code = COMMANDS[args.command](settings, args)
    except DiscogsWooError as e:
        logger.error("%s", e)
        sys.exit(1)
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
