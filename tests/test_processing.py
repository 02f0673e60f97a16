"""
Tests for the batch importer.
"""

import pandas as pd
import pytest

from core.exceptions import NotFoundError, UpstreamAPIError
from core.models import ApplyResult
from core.processing import Processor, read_input


def _write_csv(path, rows):
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def test_read_input_csv(tmp_path):
    path = _write_csv(tmp_path / "in.csv", [{"Product_ID": "10", "Barcode": "0123"}])
    assert read_input(path) == [{"product_id": "10", "barcode": "0123"}]


def test_read_input_requires_columns(tmp_path):
    path = _write_csv(tmp_path / "in.csv", [{"sku": "x"}])
    with pytest.raises(ValueError):
        read_input(path)


def test_read_input_rejects_other_formats(tmp_path):
    path = tmp_path / "in.txt"
    path.write_text("product_id,barcode\n", encoding="utf-8")
    with pytest.raises(ValueError):
        read_input(path)


def test_process_rows(mock_discogs_client, mock_writer):
    rows = [
        {"product_id": "10", "barcode": "111"},
        {"product_id": "", "barcode": "222"},
        {"product_id": "12", "barcode": "333"},
    ]
    mock_discogs_client.search_barcode.side_effect = [
        mock_discogs_client.search_barcode.return_value,
        NotFoundError("No results found."),
    ]
    processor = Processor(mock_discogs_client, mock_writer, description_template="[title]")

    summary = processor.process_rows(rows)

    assert summary.total_rows == 3
    assert summary.applied_count == 1
    assert summary.unmatched_count == 2
    assert [u["unmatched_reason"] for u in processor.unmatched] == [
        "missing product_id or barcode",
        "No results found.",
    ]
    payload = mock_writer.apply.call_args.args[1]
    assert payload.fields["description"] == "Never Gonna Give You Up"


def test_apply_failure_is_unmatched(mock_discogs_client, mock_writer):
    mock_writer.apply.side_effect = UpstreamAPIError("Invalid ID.", status=400)
    summary = Processor(mock_discogs_client, mock_writer).process_rows([{"product_id": "1", "barcode": "9"}])
    assert summary.applied_count == 0
    assert summary.unmatched_count == 1


def test_failed_images_counted(mock_discogs_client, mock_writer):
    mock_writer.apply.side_effect = lambda pid, payload: ApplyResult(product_id=pid, failed_images=["a", "b"])
    summary = Processor(mock_discogs_client, mock_writer).process_rows([{"product_id": "1", "barcode": "9"}])
    assert summary.failed_image_count == 2


def test_limit(mock_discogs_client, mock_writer):
    rows = [{"product_id": str(i), "barcode": str(i)} for i in range(1, 6)]
    summary = Processor(mock_discogs_client, mock_writer).process_rows(rows, limit=2)
    assert summary.total_rows == 2
    assert mock_writer.apply.call_count == 2


def test_process_file_writes_unmatched(tmp_path, mock_discogs_client, mock_writer):
    mock_discogs_client.search_barcode.side_effect = NotFoundError("No results found.")
    path = _write_csv(tmp_path / "stock.csv", [{"product_id": "10", "barcode": "111"}])

    Processor(mock_discogs_client, mock_writer).process_file(path)

    out = pd.read_csv(tmp_path / "stock_unmatched.csv", dtype=str)
    assert out.to_dict(orient="records") == [
        {"product_id": "10", "barcode": "111", "unmatched_reason": "No results found."}
    ]
