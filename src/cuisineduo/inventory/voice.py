"""
Dictation clean-up and voice commands.

Contexts:
- chat: fix speech-recognition errors in a chat message
- scan-correction: apply spoken corrections to scanned items
- inventory-update: turn spoken instructions into inventory updates
- inventory-update-search: same, with web search for missing facts
"""

import json
import logging
from typing import Any, Literal

from pydantic import BaseModel

from cuisineduo.inventory.constants import VALID_CATEGORIES, VALID_UNITS
from cuisineduo.llm.client import call_llm_chat, user_message
from cuisineduo.llm.parsing import parse_json_object

logger = logging.getLogger(__name__)

VoiceContext = Literal["chat", "scan-correction", "inventory-update", "inventory-update-search"]
VOICE_CONTEXTS: tuple[str, ...] = ("chat", "scan-correction", "inventory-update", "inventory-update-search")

# Contexts that operate on an item list
ITEM_CONTEXTS = ("scan-correction", "inventory-update", "inventory-update-search")


class ChatLine(BaseModel):
    author: str
    content: str


_UPDATE_RULES = f"""The user speaks "{{lang}}". Instructions may:
- change any field: name, brand, quantity, unit, price, price_per_kg, fill_level, category, store, notes, estimated_expiry_date
- mark an item consumed ("the butter is finished")
- recompute quantity from price and a spoken per-kg rate: quantity = price / price_per_kg
  (1.32 EUR at 8.95 EUR/kg is 0.148 kg); pick kg or g for readability
- combine any of the above

Fill levels: 1 (full), 0.75, 0.5 (half), 0.25 (quarter)
Valid units: {', '.join(VALID_UNITS)}
Valid categories: {', '.join(VALID_CATEGORIES)}

Each item has item_id, name, brand, quantity, unit, price, price_per_kg, fill_level, category.

Items in scope:
{{items}}"""

_UPDATE_SCHEMA = """{
  "updates": [
    {"item_id": "uuid", "action": "update", "fields": {"fill_level": 0.5}},
    {"item_id": "uuid", "action": "update", "fields": {"quantity": 0.148, "unit": "kg", "price_per_kg": 8.95}},
    {"item_id": "uuid", "action": "consumed"}
  ],
  "summary": "what was changed"
}
For "update", "fields" holds ONLY the changed keys. Match item names loosely ("lait" matches "Lait demi-écrémé").
Apply every instruction; skip what you cannot understand and say so in "summary"."""


def _chat_prompt(lang: str, chat_history: list[ChatLine] | None) -> str:
    prompt = (
        f'You correct speech-to-text output. The user dictated a message in "{lang}". '
        "Fix recognition errors, punctuation and capitalisation, keeping meaning and tone. "
        "Do NOT translate, add or remove content. Reply with ONLY the corrected text."
    )
    if chat_history:
        lines = "\n".join(f"{m.author}: {m.content}" for m in chat_history)
        prompt += (
            "\n\nRecent conversation, to disambiguate names and topics (never include it in your reply):\n"
            + lines
        )
    return prompt


def _scan_prompt(lang: str, items: list[dict[str, Any]]) -> str:
    return f"""You interpret voice corrections about scanned grocery items and return the updated list.

The user speaks "{lang}". Instructions may change a field (brand, name, price, quantity, unit, category, store),
remove an item (by name or position, "the third one"), add an item, or any combination.

Current items:
{json.dumps(items, indent=2, ensure_ascii=False)}

Item fields: name, brand, quantity, unit, price (line total), price_per_kg, price_estimated, category, store, purchase_date, expiry_date.
Valid categories: {', '.join(VALID_CATEGORIES)}
Valid units: {', '.join(VALID_UNITS)}

Return a JSON object:
{{"items": [/* full updated array */], "changes": "what was changed"}}
Apply every instruction; skip what you cannot understand and mention it in "changes"."""


def _update_prompt(lang: str, items: list[dict[str, Any]], searching: bool) -> str:
    rules = _UPDATE_RULES.replace("{lang}", lang).replace("{items}", json.dumps(items, indent=2, ensure_ascii=False))
    if searching:
        return (
            "You interpret dictated inventory updates and can search the web for missing facts.\n\n"
            f"{rules}\n\nReturn a JSON object:\n{_UPDATE_SCHEMA}\nReturn ONLY the JSON object, no markdown."
        )
    return (
        "You interpret dictated inventory updates.\n\n"
        f"{rules}\n\n"
        "If you need the internet (typical expiry dates, product details), return ONLY:\n"
        '{"search_needed": true, "search_query": "query", "search_reason": "why"}\n'
        "Never combine search_needed with updates.\n\n"
        f"Otherwise return a JSON object:\n{_UPDATE_SCHEMA}"
    )


async def correct_transcription(
    text: str,
    *,
    context: VoiceContext,
    lang: str = "fr",
    items: list[dict[str, Any]] | None = None,
    chat_history: list[ChatLine] | None = None,
) -> dict[str, Any]:
    """
    Returns by context:
        chat → {corrected}
        scan-correction → {items, changes}
        inventory-update(-search) → {updates, summary} or {search_needed, ...}
    """
    if context == "chat":
        result = await call_llm_chat(
            messages=[user_message(text)],
            system_prompt=_chat_prompt(lang, chat_history),
            node_name="correct-transcription",
            complexity="low",
        )
        return {"corrected": result.text}

    items = items or []

    if context == "scan-correction":
        result = await call_llm_chat(
            messages=[user_message(text)],
            system_prompt=_scan_prompt(lang, items),
            node_name="correct-transcription-scan",
            complexity="low",
            json_mode=True,
        )
        parsed = parse_json_object(result.text)
        if parsed is None or not isinstance(parsed.get("items"), list):
            return {"items": items, "changes": ""}
        return {"items": parsed["items"], "changes": parsed.get("changes") or ""}

    searching = context == "inventory-update-search"
    result = await call_llm_chat(
        messages=[user_message(text)],
        system_prompt=_update_prompt(lang, items, searching),
        node_name=context,
        complexity="low",
        json_mode=not searching,
        web_search=searching,
    )
    parsed = parse_json_object(result.text)
    if parsed is None:
        return {"updates": [], "summary": ""}
    if parsed.get("search_needed") and not searching:
        return {
            "search_needed": True,
            "search_query": parsed.get("search_query") or text,
            "search_reason": parsed.get("search_reason") or "",
        }
    updates = parsed.get("updates")
    return {
        "updates": [u for u in updates if isinstance(u, dict) and u.get("item_id")] if isinstance(updates, list) else [],
        "summary": parsed.get("summary") or "",
    }
