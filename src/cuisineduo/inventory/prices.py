"""
Per-kg price verification for weighed items.

Receipt OCR often puts the line total where the per-kg rate should be. For
items sold by the kilo in fresh categories, a web-search model looks up the
real rate at the store. This is best effort: any failure returns the items
untouched.
"""

import logging
from typing import Any

from cuisineduo.inventory.constants import WEIGHT_CATEGORIES
from cuisineduo.llm.client import call_llm_chat, user_message
from cuisineduo.llm.parsing import parse_json

logger = logging.getLogger(__name__)


def weighed_items(items: list[dict[str, Any]]) -> list[tuple[int, dict[str, Any]]]:
    """(original index, item) for items worth checking."""
    return [
        (index, item)
        for index, item in enumerate(items)
        if item.get("unit") == "kg" and item.get("category") in WEIGHT_CATEGORIES
    ]


def build_prompt(candidates: list[tuple[int, dict[str, Any]]], store: str) -> str:
    lines = "\n".join(
        f'{n}. "{item.get("name")}" - current price: {item.get("price_per_kg") or "unknown"} EUR/kg, '
        f'quantity: {item.get("quantity")} kg, line total: {item.get("price") or "unknown"} EUR'
        for n, (_, item) in enumerate(candidates, start=1)
    )
    return f"""You check supermarket prices. These products were bought by weight at "{store}".
Their per-kg prices were read from a receipt by OCR and may be wrong (the line total is often taken as the per-kg rate).

Products:
{lines}

For each product, look up the real per-kg price at "{store}" (or the average French price if not found).
Answer ONLY with a JSON array of objects:
- index: product number (1-based)
- corrected_price_per_kg: corrected per-kg price (number)
- corrected_price: corrected_price_per_kg * quantity (number)
- source: short note on the source

Example: [{{"index": 1, "corrected_price_per_kg": 12.90, "corrected_price": 6.45, "source": "average free-range chicken price"}}]

Leave out any product you cannot find reliable information for."""


def apply_corrections(
    items: list[dict[str, Any]],
    candidates: list[tuple[int, dict[str, Any]]],
    corrections: list[Any],
) -> list[dict[str, Any]]:
    corrected = list(items)
    for correction in corrections:
        if not isinstance(correction, dict):
            continue
        position = correction.get("index")
        if not isinstance(position, int) or not 1 <= position <= len(candidates):
            continue
        original_index, _ = candidates[position - 1]
        corrected[original_index] = {
            **corrected[original_index],
            "price_per_kg": correction.get("corrected_price_per_kg"),
            "price": correction.get("corrected_price"),
            "price_verified": True,
        }
    return corrected


async def verify_prices(items: list[dict[str, Any]], store: str | None) -> list[dict[str, Any]]:
    """Return items with per-kg prices corrected where the search found better data."""
    candidates = weighed_items(items)
    if not candidates or not store:
        return items

    try:
        result = await call_llm_chat(
            messages=[user_message(build_prompt(candidates, store))],
            node_name="verify-prices",
            web_search=True,
        )
    except Exception as e:
        logger.warning(f"Price verification failed, keeping scanned prices: {e}")
        return items

    corrections = parse_json(result.text, default=[])
    if not isinstance(corrections, list):
        return items
    return apply_corrections(items, candidates, corrections)
