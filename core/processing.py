from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from core.clients.discogs import DiscogsClient
from core.exceptions import DiscogsWooError
from core.exporters.base import ProductWriter
from core.mapping import default_selection, map_selection
from core.models import ImportSummary

PRODUCT_ID_COLUMN = "product_id"
BARCODE_COLUMN = "barcode"


def read_input(path: Path) -> List[Dict[str, Any]]:
    """Read CSV or XLSX into a list of dict rows."""
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    elif suffix in {".xlsx", ".xls"}:
        df = pd.read_excel(path, dtype=str)
        df = df.fillna("")
    else:
        raise ValueError(f"Unsupported input format: {suffix} (use CSV or XLSX)")
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = {PRODUCT_ID_COLUMN, BARCODE_COLUMN} - set(df.columns)
    if missing:
        raise ValueError(f"Input is missing required column(s): {', '.join(sorted(missing))}")
    return df.to_dict(orient="records")


def write_unmatched(rows: List[Dict[str, Any]], path: Path) -> None:
    pd.DataFrame(rows, columns=[PRODUCT_ID_COLUMN, BARCODE_COLUMN, "unmatched_reason"]).to_csv(
        path, index=False
    )


class Processor:
    """Coordinator for batch imports: lookup, default selection, apply."""

    def __init__(
        self,
        discogs_client: DiscogsClient,
        writer: ProductWriter,
        description_template: str = "",
    ) -> None:
        self.discogs_client = discogs_client
        self.writer = writer
        self.description_template = description_template
        self.unmatched: List[Dict[str, Any]] = []
        self.logger = logging.getLogger(__name__)

    def _unmatched(self, row: Dict[str, Any], reason: str) -> None:
        self.unmatched.append(
            {
                PRODUCT_ID_COLUMN: row.get(PRODUCT_ID_COLUMN, ""),
                BARCODE_COLUMN: row.get(BARCODE_COLUMN, ""),
                "unmatched_reason": reason,
            }
        )

    def process_rows(self, rows: List[Dict[str, Any]], limit: Optional[int] = None) -> ImportSummary:
        if limit is not None:
            rows = rows[:limit]

        applied = 0
        skipped = 0
        failed_images = 0
        self.unmatched = []

        for row in rows:
            barcode = str(row.get(BARCODE_COLUMN) or "").strip()
            raw_id = str(row.get(PRODUCT_ID_COLUMN) or "").strip()
            if not barcode or not raw_id.isdigit():
                self.logger.warning("Skipping row with product_id=%r barcode=%r", raw_id, barcode)
                self._unmatched(row, "missing product_id or barcode")
                continue
            product_id = int(raw_id)

            self.logger.info("Processing product id=%s barcode=%s", product_id, barcode)
            try:
                release = self.discogs_client.search_barcode(barcode)
            except DiscogsWooError as e:
                self.logger.warning("Lookup failed for barcode %s: %s", barcode, e)
                self._unmatched(row, str(e))
                continue

            payload = map_selection(
                release,
                default_selection(release, self.description_template),
                self.description_template,
            )
            if payload is None:
                skipped += 1
                self.logger.info("Release %s has nothing to import; skipping.", release.id)
                continue

            try:
                result = self.writer.apply(product_id, payload)
            except DiscogsWooError as e:
                self.logger.warning("Apply failed for product id=%s: %s", product_id, e)
                self._unmatched(row, str(e))
                continue

            applied += 1
            failed_images += len(result.failed_images)

        summary = ImportSummary(
            total_rows=len(rows),
            applied_count=applied,
            unmatched_count=len(self.unmatched),
            skipped_count=skipped,
            failed_image_count=failed_images,
        )
        self.logger.info(
            "Processing complete: total=%d applied=%d unmatched=%d skipped=%d failed_images=%d",
            summary.total_rows,
            summary.applied_count,
            summary.unmatched_count,
            summary.skipped_count,
            summary.failed_image_count,
        )
        return summary

    def process_file(
        self,
        input_path: Path,
        unmatched_path: Optional[Path] = None,
        limit: Optional[int] = None,
    ) -> ImportSummary:
        rows = read_input(input_path)
        summary = self.process_rows(rows, limit=limit)
        if self.unmatched:
            unmatched_path = unmatched_path or input_path.with_name(input_path.stem + "_unmatched.csv")
            write_unmatched(self.unmatched, unmatched_path)
            self.logger.info("Wrote %d unmatched row(s) to %s", len(self.unmatched), unmatched_path)
        return summary
