"""
Recipe translation with a per-(recipe, lang) cache.

Recipes are authored in English; French and Chinese versions are produced
on demand and cached in `recipe_translations`.
"""

import json
import logging
from typing import Any

from supabase import Client

from cuisineduo.llm.client import AIResponseError, call_llm_chat, user_message
from cuisineduo.llm.parsing import parse_json_object
from cuisineduo.prompts import language_name

logger = logging.getLogger(__name__)

SUPPORTED_LANGS = ("fr", "zh")


class RecipeNotFound(Exception):
    """Nothing to translate: no recipe data and no row for the id."""


def translatable_fields(recipe: dict[str, Any]) -> dict[str, Any]:
    """Only the text fields; quantities and units are never translated."""
    return {
        "name": recipe.get("name") or "",
        "description": recipe.get("description") or "",
        "ingredients": [{"name": i.get("name")} for i in recipe.get("ingredients") or []],
        "steps": [{"instruction": s.get("instruction")} for s in recipe.get("steps") or []],
        "tips": [{"text": t.get("text")} for t in recipe.get("tips") or []],
        "equipment": [{"name": e.get("name")} for e in recipe.get("equipment") or []],
    }


def read_cached_translation(client: Client, recipe_id: str, lang: str) -> dict[str, Any] | None:
    try:
        response = (
            client.table("recipe_translations")
            .select("translated_data")
            .eq("recipe_id", recipe_id)
            .eq("lang", lang)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.warning(f"Translation cache read failed for {recipe_id}/{lang}: {e}")
        return None
    return response.data[0]["translated_data"] if response.data else None


def write_cached_translation(client: Client, recipe_id: str, lang: str, data: dict[str, Any]) -> None:
    try:
        client.table("recipe_translations").upsert(
            {"recipe_id": recipe_id, "lang": lang, "translated_data": data},
            on_conflict="recipe_id,lang",
        ).execute()
    except Exception as e:
        logger.warning(f"Translation cache write failed for {recipe_id}/{lang}: {e}")


def _fetch_recipe(client: Client, recipe_id: str) -> dict[str, Any] | None:
    response = (
        client.table("recipes")
        .select("name, description, ingredients, steps, tips, equipment")
        .eq("id", recipe_id)
        .limit(1)
        .execute()
    )
    return response.data[0] if response.data else None


async def translate_recipe(
    client: Client,
    *,
    lang: str,
    recipe_id: str | None = None,
    recipe_data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Translate a recipe into French or Chinese.

    Returns:
        {translated_data, from_cache}

    Raises:
        RecipeNotFound: nothing to translate
        AIResponseError: the translation could not be parsed
    """
    if recipe_id:
        cached = read_cached_translation(client, recipe_id, lang)
        if cached is not None:
            return {"translated_data": cached, "from_cache": True}

    source = recipe_data
    if source is None and recipe_id:
        source = _fetch_recipe(client, recipe_id)
    if not source:
        raise RecipeNotFound(recipe_id or "")

    system_prompt = f"""You are a professional culinary translator. Translate the recipe JSON from English to {language_name(lang)}.

Translate ONLY: name, description, ingredients[].name, steps[].instruction, tips[].text, equipment[].name.
Keep the JSON structure identical. Never add or remove array items. Never translate numbers or units.
Use natural, appetizing culinary language.

Return a JSON object with the same structure as the input."""

    result = await call_llm_chat(
        messages=[user_message(json.dumps(translatable_fields(source), ensure_ascii=False))],
        system_prompt=system_prompt,
        node_name="translate-recipe",
        complexity="low",
        json_mode=True,
    )

    translated = parse_json_object(result.text)
    if translated is None:
        raise AIResponseError("Translation could not be parsed")

    if recipe_id:
        write_cached_translation(client, recipe_id, lang, translated)

    return {"translated_data": translated, "from_cache": False}
