"""
Receipt and product-photo scanning.

A receipt scan is checked against the total printed on the ticket. When the
line prices do not add up (beyond RECEIPT_TOLERANCE), the model is asked to
re-read the image with the mismatch spelled out, at most
MAX_CORRECTION_RETRIES times. After that we keep the best data we have.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal

from cuisineduo.inventory.constants import (
    SCAN_MODES,
    VALID_CATEGORIES,
    VALID_UNITS,
    product_language_instruction,
)
from cuisineduo.llm.client import call_llm_chat, image_part, user_message
from cuisineduo.llm.parsing import parse_json

logger = logging.getLogger(__name__)

ScanMode = Literal["receipt", "photo", "auto"]

MAX_CORRECTION_RETRIES = 2
RECEIPT_TOLERANCE = 0.50


@dataclass
class ParsedScan:
    items: list[Any]
    receipt_total: float | None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _clean_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def clean_items(raw_items: list[Any], mode: ScanMode) -> list[dict[str, Any]]:
    """Normalise model items; drop anything without a name."""
    cleaned = []
    for item in raw_items:
        if not isinstance(item, dict) or not _clean_str(item.get("name")):
            continue
        quantity = item.get("quantity")
        cleaned.append({
            "name": item["name"].strip(),
            "brand": _clean_str(item.get("brand")),
            "quantity": quantity if _is_number(quantity) and quantity > 0 else 1,
            "unit": item.get("unit") if item.get("unit") in VALID_UNITS else "piece",
            "price": item.get("price") if _is_number(item.get("price")) else None,
            "price_per_kg": item.get("price_per_kg") if _is_number(item.get("price_per_kg")) else None,
            "price_estimated": True if mode == "photo" else item.get("price_estimated") is True,
            "category": item.get("category") if item.get("category") in VALID_CATEGORIES else "other",
            "estimated_expiry_days": (
                item.get("estimated_expiry_days") if _is_number(item.get("estimated_expiry_days")) else None
            ),
            "store": item["store"].strip() if isinstance(item.get("store"), str) else None,
        })
    return cleaned


def parse_scan_response(text: str) -> ParsedScan | None:
    """Accept {items, receipt_total} or a bare item array; None if unparseable."""
    parsed = parse_json(text)
    if isinstance(parsed, list):
        return ParsedScan(items=parsed, receipt_total=None)
    if not isinstance(parsed, dict):
        return None

    items = parsed.get("items")
    if not isinstance(items, list):
        items = [items] if items else []
    total = parsed.get("receipt_total")
    return ParsedScan(items=items, receipt_total=total if _is_number(total) else None)


def compute_total(items: list[dict[str, Any]]) -> float:
    return sum(item.get("price") or 0 for item in items)


def totals_match(items: list[dict[str, Any]], receipt_total: float) -> bool:
    return abs(compute_total(items) - receipt_total) <= RECEIPT_TOLERANCE


# =============================================================================
# Prompts
# =============================================================================

_ITEM_SCHEMA = """Each item has:
- "name": clean, human-readable product name (NOT the raw ticket abbreviation)
- "brand": brand if identifiable, else null. Store brands use the full brand name (e.g. "Carrefour Bio")
- "quantity": number bought (default 1). For weighed items, the actual weight (0.543 for 543 g)
- "unit": one of "piece", "kg", "g", "l", "ml", "pack"
- "price": TOTAL paid for the line in euros, or null. For weighed items, quantity * price_per_kg
- "price_per_kg": per-kg (or per-litre) rate in euros, or null for items sold by piece
- "price_estimated": true if the price is an estimate rather than read from a receipt
- "category": one of "dairy", "meat", "fish", "vegetables", "fruits", "grains", "bakery", "frozen", "beverages", "snacks", "condiments", "hygiene", "household", "other"
- "estimated_expiry_days": typical shelf life in days (milk 7, bread 5, canned 365, fresh meat 3, vegetables 7, frozen 90)
- "store": store name if visible, else null

Weighed items (fruit, vegetables, meat, cheese, deli) usually show a per-kg rate, a weight and a line total.
For "5.99 EUR/kg, 0.543 kg, 3.25 EUR" set quantity=0.543, unit="kg", price=3.25, price_per_kg=5.99."""

_ITEM_EXAMPLE = {
    "name": "Semi-skimmed milk",
    "brand": "Carrefour Bio",
    "quantity": 1,
    "unit": "l",
    "price": 1.29,
    "price_per_kg": None,
    "price_estimated": False,
    "category": "dairy",
    "estimated_expiry_days": 7,
    "store": "Carrefour",
}

_MODE_INTROS = {
    "receipt": """You scan grocery receipts. Extract every purchased item from this receipt image.

Receipt lines are abbreviated ("CRF BIO LT DEMI-ECR 1L"). Turn them into clean product names, work out the
brand from the abbreviation or the store, and use the printed prices (price_estimated: false).

Return a JSON object with "items" (array) and "receipt_total" (the printed total as a number, or null if not visible).""",
    "photo": """You identify products. List every product visible in this photo (shelf, fridge, pantry...).

Read names and brands from labels and packaging, estimate a typical retail price in euros
(price_estimated: true for every item), and pick the category and typical shelf life.

Return a JSON object with "items" (array) and "receipt_total" (always null for photos).""",
    "auto": """You are a smart grocery scanner. Decide whether this image is:
1. A receipt: extract items with real prices (price_estimated: false) and the printed "receipt_total"
2. A photo of products: identify them and estimate prices (price_estimated: true), "receipt_total" null

Clean up receipt abbreviations and identify brands; for photos, read labels and packaging.

Return a JSON object with "items" (array) and "receipt_total" (number or null).""",
}


def build_scan_prompt(mode: ScanMode, lang: str | None) -> str:
    example_item = dict(_ITEM_EXAMPLE, price_estimated=(mode == "photo"))
    example = {"items": [example_item], "receipt_total": None if mode == "photo" else 12.5}
    return (
        f"{_MODE_INTROS[mode]}\n{_ITEM_SCHEMA}\n\n{product_language_instruction(lang)}\n\n"
        f"Return ONLY a valid JSON object, no markdown, no explanation. Example:\n{json.dumps(example)}"
    )


def build_correction_prompt(items: list[dict[str, Any]], receipt_total: float, lang: str | None) -> str:
    return f"""You extracted these items from a receipt, but the line prices do not add up to the receipt total.

Extracted items:
{json.dumps(items, indent=2, ensure_ascii=False)}

Computed total from items: {compute_total(items):.2f}
Actual receipt total: {receipt_total:.2f}

Re-read the receipt image and correct the individual prices so they match the total.
Keep the same items, fix the prices, and return the receipt_total too.

{product_language_instruction(lang)}

Return ONLY a valid JSON object with "items" (array) and "receipt_total" (number), no markdown, no explanation."""


# =============================================================================
# Scan
# =============================================================================


async def scan_receipt(
    image_base64: str,
    *,
    mime_type: str | None = None,
    lang: str | None = "fr",
    mode: str | None = "auto",
) -> dict[str, Any]:
    """
    Extract items from a receipt or a product photo.

    Returns:
        {items, receipt_total}, or {items: [], receipt_total: None, raw}
        when the first reply cannot be parsed
    """
    scan_mode: ScanMode = mode if mode in SCAN_MODES else "auto"  # type: ignore[assignment]
    image = image_part(image_base64, mime_type or "image/jpeg")

    async def ask(prompt: str, node: str) -> str:
        result = await call_llm_chat(
            messages=[user_message(prompt, image)],
            node_name=node,
            complexity="medium",
            scan=True,
        )
        return result.text

    text = await ask(build_scan_prompt(scan_mode, lang), "scan-receipt")
    parsed = parse_scan_response(text)
    if parsed is None:
        return {"items": [], "receipt_total": None, "raw": text}

    items = clean_items(parsed.items, scan_mode)
    receipt_total = parsed.receipt_total

    if receipt_total is not None:
        retries = 0
        while retries < MAX_CORRECTION_RETRIES and not totals_match(items, receipt_total):
            logger.info(
                f"Receipt mismatch: computed={compute_total(items):.2f}, receipt={receipt_total:.2f}, "
                f"retry {retries + 1}/{MAX_CORRECTION_RETRIES}"
            )
            correction = parse_scan_response(
                await ask(build_correction_prompt(items, receipt_total, lang), "scan-receipt-correction")
            )
            if correction is None:
                logger.info("Correction reply unparseable, keeping previous items")
                break
            items = clean_items(correction.items, scan_mode)
            if correction.receipt_total is not None:
                receipt_total = correction.receipt_total
            retries += 1

        if retries:
            logger.info(
                f"After {retries} correction(s): computed={compute_total(items):.2f}, "
                f"receipt={receipt_total:.2f}, match={totals_match(items, receipt_total)}"
            )

    return {"items": items, "receipt_total": receipt_total}
