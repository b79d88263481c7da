"""Suggest three recipes from what is in stock, in all three languages."""

import logging
from typing import Any

from cuisineduo.llm.client import AIResponseError, call_llm_chat, user_message
from cuisineduo.llm.parsing import parse_json_object
from cuisineduo.models import InventoryItem
from cuisineduo.prompts import LANGUAGE_NAMES, sort_by_expiry

logger = logging.getLogger(__name__)

INVENTORY_LIMIT = 30


def _ingredient_line(item: InventoryItem) -> str:
    expiry = f", expires: {item.estimated_expiry_date}" if item.estimated_expiry_date else ""
    return f"{item.name} ({item.quantity} {item.unit}{expiry})"


def _translation_block() -> str:
    return """{
          "name": "Translated name",
          "description": "Translated description",
          "ingredients": [{"name": "translated ingredient name"}],
          "steps": [{"instruction": "Translated step"}],
          "tips": ["Translated tip"]
        }"""


def build_prompt(inventory: list[InventoryItem], lang: str, preferences: str | None) -> str:
    ingredients = "\n".join(_ingredient_line(i) for i in sort_by_expiry(inventory)[:INVENTORY_LIMIT])
    other_langs = [code for code in LANGUAGE_NAMES if code != lang]
    other_labels = ", ".join(f"{code} ({LANGUAGE_NAMES[code]})" for code in other_langs)
    translations = ",\n        ".join(f'"{code}": {_translation_block()}' for code in other_langs)

    return f"""You are a creative chef. These ingredients are available in the household:

{ingredients}

{f'Preferences: {preferences}' if preferences else ''}

Create exactly 3 recipes that mostly use these ingredients (basic seasonings like salt, pepper and oil are assumed).
Prioritise ingredients close to their expiry date.

Answer ONLY with valid JSON (no markdown) in this format:
{{
  "recipes": [
    {{
      "name": "Recipe name",
      "description": "Short description (1-2 sentences)",
      "category": "appetizer|main|dessert|snack|drink|other",
      "difficulty": "easy|medium|hard",
      "prep_time": 15,
      "cook_time": 30,
      "servings": 4,
      "ingredients": [{{"name": "ingredient", "quantity": 200, "unit": "g"}}],
      "steps": [{{"instruction": "Detailed step", "duration_minutes": 5}}],
      "equipment": ["Oven"],
      "tips": ["Useful tip"],
      "translations": {{
        {translations}
      }}
    }}
  ]
}}

Main fields (name, description, ingredients, steps, tips) are in {LANGUAGE_NAMES[lang]}.
"translations" holds {other_labels}. Keep ingredient and step translations in the same order and count as the main arrays.
category, difficulty, prep_time, cook_time, servings and equipment are not translated."""


def _with_current_language(recipe: dict[str, Any], lang: str) -> dict[str, Any]:
    """Copy the main fields into translations[lang] so all three languages are present."""
    translations = dict(recipe.get("translations") or {})
    translations[lang] = {
        "name": recipe.get("name"),
        "description": recipe.get("description"),
        "ingredients": [{"name": i.get("name")} for i in recipe.get("ingredients") or []],
        "steps": [{"instruction": s.get("instruction")} for s in recipe.get("steps") or []],
        "tips": recipe.get("tips"),
    }
    return {**recipe, "translations": translations}


async def suggest_recipes(
    inventory: list[InventoryItem],
    *,
    lang: str = "fr",
    preferences: str | None = None,
) -> list[dict[str, Any]]:
    """
    Suggest 3 recipes built from the inventory.

    Raises:
        AIResponseError: the reply could not be parsed
    """
    if lang not in LANGUAGE_NAMES:
        lang = "fr"

    result = await call_llm_chat(
        messages=[user_message(build_prompt(inventory, lang, preferences))],
        node_name="suggest-recipes",
        complexity="medium",
        json_mode=True,
    )

    parsed = parse_json_object(result.text)
    if parsed is None:
        raise AIResponseError("Failed to parse AI response")

    return [_with_current_language(r, lang) for r in parsed.get("recipes") or [] if isinstance(r, dict)]
