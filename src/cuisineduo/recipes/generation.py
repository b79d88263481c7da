"""
Recipe search and full-recipe generation.

Full recipes are grounded with web search so quantities and temperatures
come from real, well-reviewed versions of the dish.
"""

import logging
from typing import Any

from cuisineduo.llm.client import AIResponseError, call_llm_chat, user_message
from cuisineduo.llm.parsing import parse_json_object
from cuisineduo.models import RecipeSummary, TasteProfile
from cuisineduo.prompts import FULL_RECIPE_SCHEMA, TASTE_DIMENSIONS, format_taste_profiles

logger = logging.getLogger(__name__)

EMPTY_SEARCH_RESULT: dict[str, Any] = {"matching_recipes": [], "suggestions": [], "summary": ""}


def _taste_guidance(profiles: list[TasteProfile] | None) -> str:
    section = format_taste_profiles(profiles, with_ratings=True)
    if not section:
        return ""
    return (
        f"{section}\n"
        "Use these to steer suggestions, not to restrict them. New ideas that stretch "
        "the household's habits are welcome; say when a suggestion is outside their usual taste."
    )


def _clamp_taste_params(params: Any) -> dict[str, int | None]:
    """Keep the seven dimensions, each an int 1-5 or None."""
    if not isinstance(params, dict):
        return {}
    cleaned: dict[str, int | None] = {}
    for dim in TASTE_DIMENSIONS:
        value = params.get(dim)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            cleaned[dim] = max(1, min(5, round(value)))
        else:
            cleaned[dim] = None
    return cleaned


async def search_recipes(
    text: str,
    *,
    lang: str = "fr",
    recipes: list[RecipeSummary] | None = None,
    taste_profiles: list[TasteProfile] | None = None,
) -> dict[str, Any]:
    """
    Match a craving against the cookbook and propose three new ideas.

    Returns:
        {matching_recipes: [{recipe_id, name, relevance_reason}],
         suggestions: [{name, description}], summary}
    """
    catalog = "\n".join(
        f"- id:{r.id} | {r.name} | {r.category or ''} | {r.description or ''} | {r.ingredients_summary or ''}"
        for r in recipes or []
    )

    system_prompt = f"""You are the recipe search assistant of a household cooking app. The user describes what they want to cook or eat.
1. Find existing recipes that match the request.
2. Propose exactly 3 new recipe ideas that are not in the list.

The user writes in "{lang}". Write "summary" and "relevance_reason" in that language.
Write suggestion "name" and "description" in English whatever the user's language.

Existing recipes:
{catalog or 'No recipes yet.'}

Return a JSON object:
{{
  "matching_recipes": [{{"recipe_id": "uuid", "name": "Recipe name", "relevance_reason": "Why it matches"}}],
  "suggestions": [{{"name": "New recipe name", "description": "Short appealing description"}}],
  "summary": "Short summary of what was found"
}}
Only use recipe_id values from the list.
{_taste_guidance(taste_profiles)}"""

    result = await call_llm_chat(
        messages=[user_message(text)],
        system_prompt=system_prompt,
        node_name="recipe-search",
        complexity="medium",
        json_mode=True,
    )

    parsed = parse_json_object(result.text)
    if parsed is None:
        return dict(EMPTY_SEARCH_RESULT)

    known_ids = {r.id for r in recipes or [] if r.id}
    matches = [
        m for m in parsed.get("matching_recipes") or []
        if isinstance(m, dict) and m.get("recipe_id") in known_ids
    ]
    return {
        "matching_recipes": matches,
        "suggestions": (parsed.get("suggestions") or [])[:3],
        "summary": parsed.get("summary") or "",
    }


async def generate_full_recipe(
    name: str,
    *,
    description: str | None = None,
    taste_profiles: list[TasteProfile] | None = None,
    node_name: str = "recipe-generate",
) -> dict[str, Any]:
    """
    Write a complete recipe (ingredients, steps, tips, taste params).

    Raises:
        AIResponseError: the model did not return a recipe object
    """
    system_prompt = f"""You are a professional chef. Write a complete, detailed recipe for the dish named by the user, based on authentic, well-reviewed versions you find on the web.

All text (name, description, ingredient names, steps, tips, equipment) must be in English.

Return a JSON object with this schema:
{FULL_RECIPE_SCHEMA}

taste_params: rate each of the 7 dimensions from 1 (very low) to 5 (very high) based on the actual dish.
Be precise with quantities. Durations are minutes (null when not applicable). Include 2-3 tips.
Return ONLY the JSON object, no markdown fences.
{_taste_guidance(taste_profiles)}"""

    prompt = f'Generate a complete recipe for "{name}".'
    if description:
        prompt += f" Description: {description}"

    result = await call_llm_chat(
        messages=[user_message(prompt)],
        system_prompt=system_prompt,
        node_name=node_name,
        max_tokens=2000,
        web_search=True,
    )

    parsed = parse_json_object(result.text)
    recipe = parsed.get("recipe") if parsed else None
    if not isinstance(recipe, dict):
        raise AIResponseError(f"No recipe in response for {name!r}")

    recipe["taste_params"] = _clamp_taste_params(recipe.get("taste_params"))
    return recipe
