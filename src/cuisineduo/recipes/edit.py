"""Dictated recipe edits: interpret a voice instruction into field updates."""

import json
import logging
from typing import Any, Literal

from cuisineduo.llm.client import call_llm_chat, user_message
from cuisineduo.llm.parsing import parse_json_object
from cuisineduo.prompts import INGREDIENT_UNITS, RECIPE_CATEGORIES

logger = logging.getLogger(__name__)

EditContext = Literal["recipe-edit", "recipe-edit-search"]

EMPTY_EDIT: dict[str, Any] = {"updates": {}, "summary": ""}


def _base_instruction(recipe: dict[str, Any] | None, lang: str) -> str:
    return f"""You interpret dictated instructions for a recipe editor. Return ONLY the fields that must change.

The user speaks "{lang}". Write all text content (names, instructions, descriptions, tips) in English.

Instructions may change scalar fields (name, description, category, servings, prep_time, cook_time, difficulty)
or add/remove/modify equipment, ingredients, steps and tips, in any combination.

Valid categories: {', '.join(RECIPE_CATEGORIES)}
Valid difficulties: easy, medium, hard
Valid ingredient units: {', '.join(INGREDIENT_UNITS)}

Current recipe:
{json.dumps(recipe or {}, indent=2, ensure_ascii=False)}

Arrays are returned COMPLETE, never as a diff:
- ingredients: {{name, quantity, unit, optional}}
- steps: {{instruction, duration}}
- equipment: {{name}}
- tips: {{text}}"""


_EDIT_SCHEMA = """
Return a JSON object:
{"updates": {...only changed fields...}, "summary": "what changed"}

If the request needs information from the web (authentic quantities, temperatures, techniques), return ONLY:
{"search_needed": true, "search_query": "query to run", "search_reason": "why"}
Never combine search_needed with updates."""

_SEARCH_SCHEMA = """
You can search the web for what the changes need.
Return a JSON object:
{"updates": {...only changed fields...}, "summary": "what changed, including what the search found"}
Return ONLY the JSON object, no markdown fences."""


async def edit_recipe(
    text: str,
    *,
    recipe: dict[str, Any] | None = None,
    lang: str = "fr",
    context: EditContext = "recipe-edit",
) -> dict[str, Any]:
    """
    Turn a dictated instruction into recipe updates.

    Returns:
        {updates, summary}, or {search_needed, search_query, search_reason}
        when the plain edit decides it needs the web
    """
    searching = context == "recipe-edit-search"
    system_prompt = _base_instruction(recipe, lang) + (_SEARCH_SCHEMA if searching else _EDIT_SCHEMA)

    result = await call_llm_chat(
        messages=[user_message(text)],
        system_prompt=system_prompt,
        node_name=context,
        complexity="low",
        json_mode=not searching,
        web_search=searching,
    )

    parsed = parse_json_object(result.text)
    if parsed is None:
        return dict(EMPTY_EDIT)

    if parsed.get("search_needed") and not searching:
        return {
            "search_needed": True,
            "search_query": parsed.get("search_query") or text,
            "search_reason": parsed.get("search_reason") or "",
        }

    updates = parsed.get("updates")
    return {
        "updates": updates if isinstance(updates, dict) else {},
        "summary": parsed.get("summary") or "",
    }
