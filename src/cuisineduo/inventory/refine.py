"""Conversational refinement of scanned items before they join the inventory."""

import json
import logging
from typing import Any, Literal

from pydantic import BaseModel

from cuisineduo.inventory.constants import VALID_CATEGORIES, VALID_UNITS
from cuisineduo.llm.client import call_llm_chat, user_message
from cuisineduo.llm.parsing import parse_json_object
from cuisineduo.models import InventoryItem

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20

INITIAL_MESSAGE = "Review the proposed items, flag duplicates with the existing inventory and summarise."


class ScanChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


def _inventory_context(existing: list[InventoryItem] | None) -> str:
    if not existing:
        return "\nThe inventory is currently empty.\n"
    lines = "\n".join(
        f"- {i.name}{f' ({i.brand})' if i.brand else ''}: {i.quantity} {i.unit}" for i in existing
    )
    return f"\nProducts already in stock:\n{lines}\n"


def build_system_prompt(items: list[dict[str, Any]], existing: list[InventoryItem] | None, lang: str) -> str:
    return f"""You are a kitchen inventory assistant. You help the user refine the result of a product photo scan.
{_inventory_context(existing)}
Items currently proposed by the scan:
{json.dumps(items, indent=2, ensure_ascii=False)}

Rules:
1. Flag proposed items that duplicate products already in stock.
2. Apply the user's commands: "remove the milk", "make it 3 yoghurts", "that's margarine, not butter", "add eggs"...
3. You may fix names, quantities, units and categories.
4. ALWAYS answer with raw JSON (no markdown):
{{
  "response": "your message to the user (in {lang})",
  "items": [/* the COMPLETE updated list, same format as the input items */],
  "duplicates": [/* 0-based indices of items that duplicate the inventory */]
}}
5. Each item has name, quantity, unit, category, price (nullable), estimated_expiry_days (nullable), brand (nullable).
6. Valid units: {', '.join(VALID_UNITS)}
7. Valid categories: {', '.join(VALID_CATEGORIES)}
8. With no user message, summarise what was detected and flag duplicates.
9. Answer in the user's language ({lang})."""


async def refine_scan(
    items: list[dict[str, Any]],
    *,
    message: str | None = None,
    existing_inventory: list[InventoryItem] | None = None,
    history: list[ScanChatTurn] | None = None,
    lang: str = "fr",
) -> dict[str, Any]:
    """
    Returns:
        {response, items, duplicates}; on an unparseable reply the original
        items come back with the raw text as the response
    """
    messages = [{"role": t.role, "content": t.content} for t in (history or [])[-HISTORY_LIMIT:]]
    messages.append(user_message(message or INITIAL_MESSAGE))

    result = await call_llm_chat(
        messages=messages,
        system_prompt=build_system_prompt(items, existing_inventory, lang),
        node_name="scan-photo-inventory",
        max_tokens=2000,
        temperature=0.3,
    )

    parsed = parse_json_object(result.text)
    if parsed and isinstance(parsed.get("items"), list) and parsed.get("response") is not None:
        duplicates = parsed.get("duplicates")
        return {
            "response": parsed["response"],
            "items": parsed["items"],
            "duplicates": [d for d in duplicates if isinstance(d, int)] if isinstance(duplicates, list) else [],
        }

    return {"response": result.text, "items": items, "duplicates": []}
