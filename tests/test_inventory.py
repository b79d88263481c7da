"""
Tests for receipt scanning and price verification.

Model calls are patched at the module that imports call_llm_chat.
"""

import json
from unittest.mock import AsyncMock, patch

from conftest import run

from cuisineduo.inventory.prices import verify_prices, weighed_items
from cuisineduo.inventory.scan import (
    MAX_CORRECTION_RETRIES,
    clean_items,
    parse_scan_response,
    scan_receipt,
    totals_match,
)
from cuisineduo.llm.client import LLMResult


def _reply(payload) -> LLMResult:
    return LLMResult(text=json.dumps(payload), model="gpt-4.1")


def _scan_payload(prices: list[float], total: float | None) -> dict:
    return {
        "items": [{"name": f"Item {i}", "price": p, "unit": "piece", "category": "snacks"} for i, p in enumerate(prices)],
        "receipt_total": total,
    }


class TestCleanItems:
    """Tests for clean_items."""

    def test_drops_items_without_name(self):
        items = clean_items([{"name": "  "}, {"price": 2}, "junk", {"name": "Bread"}], "receipt")

        assert [i["name"] for i in items] == ["Bread"]

    def test_defaults_for_bad_values(self):
        [item] = clean_items([{
            "name": " Yogurt ",
            "quantity": 0,
            "unit": "bucket",
            "category": "treats",
            "price": "2.10",
            "brand": "",
        }], "receipt")

        assert item["name"] == "Yogurt"
        assert item["quantity"] == 1
        assert item["unit"] == "piece"
        assert item["category"] == "other"
        assert item["price"] is None
        assert item["brand"] is None
        assert item["price_estimated"] is False

    def test_photo_prices_always_estimated(self):
        [item] = clean_items([{"name": "Apples", "price": 3.0, "price_estimated": False}], "photo")

        assert item["price_estimated"] is True

    def test_weighed_item_kept(self):
        [item] = clean_items([{
            "name": "Tomatoes", "quantity": 0.543, "unit": "kg", "price": 3.25, "price_per_kg": 5.99,
        }], "receipt")

        assert item["quantity"] == 0.543
        assert item["price_per_kg"] == 5.99


class TestParseScanResponse:
    """Tests for parse_scan_response."""

    def test_object_with_total(self):
        parsed = parse_scan_response('```json\n{"items": [{"name": "Milk"}], "receipt_total": 1.29}\n```')

        assert parsed.items == [{"name": "Milk"}]
        assert parsed.receipt_total == 1.29

    def test_bare_array(self):
        parsed = parse_scan_response('[{"name": "Milk"}]')

        assert parsed.items == [{"name": "Milk"}]
        assert parsed.receipt_total is None

    def test_non_numeric_total_dropped(self):
        parsed = parse_scan_response('{"items": [], "receipt_total": "12.50"}')

        assert parsed.receipt_total is None

    def test_garbage(self):
        assert parse_scan_response("I cannot read this receipt") is None


class TestScanReceipt:
    """Tests for scan_receipt and the total reconciliation loop."""

    def test_matching_total_needs_one_call(self):
        mock_llm = AsyncMock(return_value=_reply(_scan_payload([1.0, 2.0], 3.0)))

        with patch("cuisineduo.inventory.scan.call_llm_chat", mock_llm):
            result = run(scan_receipt("aGVsbG8=", mode="receipt"))

        assert mock_llm.await_count == 1
        assert len(result["items"]) == 2
        assert result["receipt_total"] == 3.0

    def test_mismatch_is_corrected(self):
        mock_llm = AsyncMock(side_effect=[
            _reply(_scan_payload([1.0, 2.0], 5.0)),
            _reply(_scan_payload([1.0, 4.0], 5.0)),
        ])

        with patch("cuisineduo.inventory.scan.call_llm_chat", mock_llm):
            result = run(scan_receipt("aGVsbG8=", mode="receipt"))

        assert mock_llm.await_count == 2
        assert [i["price"] for i in result["items"]] == [1.0, 4.0]
        assert mock_llm.await_args_list[1].kwargs["node_name"] == "scan-receipt-correction"

    def test_retries_are_bounded(self):
        mock_llm = AsyncMock(return_value=_reply(_scan_payload([1.0], 9.0)))

        with patch("cuisineduo.inventory.scan.call_llm_chat", mock_llm):
            result = run(scan_receipt("aGVsbG8=", mode="auto"))

        assert mock_llm.await_count == 1 + MAX_CORRECTION_RETRIES
        assert result["items"][0]["price"] == 1.0
        assert not totals_match(result["items"], result["receipt_total"])

    def test_unparseable_correction_keeps_items(self):
        mock_llm = AsyncMock(side_effect=[
            _reply(_scan_payload([1.0], 9.0)),
            LLMResult(text="sorry"),
        ])

        with patch("cuisineduo.inventory.scan.call_llm_chat", mock_llm):
            result = run(scan_receipt("aGVsbG8=", mode="receipt"))

        assert mock_llm.await_count == 2
        assert result["items"][0]["name"] == "Item 0"

    def test_no_total_skips_reconciliation(self):
        mock_llm = AsyncMock(return_value=_reply(_scan_payload([1.0, 2.0], None)))

        with patch("cuisineduo.inventory.scan.call_llm_chat", mock_llm):
            result = run(scan_receipt("aGVsbG8=", mode="photo"))

        assert mock_llm.await_count == 1
        assert all(i["price_estimated"] for i in result["items"])

    def test_unparseable_first_reply_returns_raw(self):
        mock_llm = AsyncMock(return_value=LLMResult(text="not json at all"))

        with patch("cuisineduo.inventory.scan.call_llm_chat", mock_llm):
            result = run(scan_receipt("aGVsbG8="))

        assert result == {"items": [], "receipt_total": None, "raw": "not json at all"}

    def test_sends_image_with_mime_type(self):
        mock_llm = AsyncMock(return_value=_reply(_scan_payload([], None)))

        with patch("cuisineduo.inventory.scan.call_llm_chat", mock_llm):
            run(scan_receipt("aGVsbG8=", mime_type="image/png", mode="bogus"))

        content = mock_llm.await_args.kwargs["messages"][0]["content"]
        assert content[1]["image_url"]["url"] == "data:image/png;base64,aGVsbG8="
        assert mock_llm.await_args.kwargs["scan"] is True


class TestVerifyPrices:
    """Tests for verify_prices."""

    ITEMS = [
        {"name": "Chicken", "unit": "kg", "category": "meat", "quantity": 0.5, "price": 6.0, "price_per_kg": 6.0},
        {"name": "Soap", "unit": "piece", "category": "hygiene", "quantity": 1, "price": 2.0},
        {"name": "Carrots", "unit": "kg", "category": "vegetables", "quantity": 1.0, "price": 1.5},
    ]

    def test_weighed_items(self):
        assert [i for i, _ in weighed_items(self.ITEMS)] == [0, 2]

    def test_no_store_returns_input(self):
        mock_llm = AsyncMock()

        with patch("cuisineduo.inventory.prices.call_llm_chat", mock_llm):
            result = run(verify_prices(self.ITEMS, None))

        assert result is self.ITEMS
        mock_llm.assert_not_awaited()

    def test_corrections_applied_by_candidate_index(self):
        corrections = [{"index": 1, "corrected_price_per_kg": 12.0, "corrected_price": 6.0, "source": "store site"}]
        mock_llm = AsyncMock(return_value=_reply(corrections))

        with patch("cuisineduo.inventory.prices.call_llm_chat", mock_llm):
            result = run(verify_prices(self.ITEMS, "Carrefour"))

        assert result[0]["price_per_kg"] == 12.0
        assert result[0]["price_verified"] is True
        assert "price_verified" not in result[2]
        assert mock_llm.await_args.kwargs["web_search"] is True

    def test_out_of_range_index_ignored(self):
        mock_llm = AsyncMock(return_value=_reply([{"index": 7, "corrected_price_per_kg": 1.0}]))

        with patch("cuisineduo.inventory.prices.call_llm_chat", mock_llm):
            result = run(verify_prices(self.ITEMS, "Lidl"))

        assert result == self.ITEMS

    def test_search_failure_keeps_prices(self):
        mock_llm = AsyncMock(side_effect=RuntimeError("search unavailable"))

        with patch("cuisineduo.inventory.prices.call_llm_chat", mock_llm):
            result = run(verify_prices(self.ITEMS, "Lidl"))

        assert result is self.ITEMS
