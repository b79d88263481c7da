"""
Swipe session generation and finalisation.

generate_swipe_recipes fills a `generating` session with candidates and
moves it to `voting`. create_matched_recipes expands the new candidates the
household matched into full cookbook recipes and marks the session
`completed`; it is the only writer of that status.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from cuisineduo.llm.client import AIResponseError, call_llm_chat, user_message
from cuisineduo.llm.parsing import parse_json_object
from cuisineduo.models import CookingHistoryEntry, InventoryItem, RecipeSummary, TastePreference, TasteProfile
from cuisineduo.prompts import (
    format_history,
    format_inventory,
    format_preferences,
    format_recipe_catalog,
    format_taste_profiles,
)
from cuisineduo.recipes.generation import generate_full_recipe
from cuisineduo.recipes.images import generate_recipe_image
from cuisineduo.swipe.models import SessionStatus, statuses_leading_to

logger = logging.getLogger(__name__)

DEFAULT_MEAL_COUNT = 7
MIN_SUGGESTIONS = 12
EXTRA_SUGGESTIONS = 5
IMAGE_BATCH_SIZE = 3


def suggestion_count(meal_count: int | None) -> int:
    return max((meal_count or DEFAULT_MEAL_COUNT) + EXTRA_SUGGESTIONS, MIN_SUGGESTIONS)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def set_session_status(
    client: Client,
    session_id: str,
    status: SessionStatus,
    *,
    only_from: list[SessionStatus] | None = None,
) -> bool:
    """Patch the session status; `only_from` makes the write conditional. True if a row changed."""
    query = client.table("swipe_sessions").update({"status": status.value, "updated_at": _now()}).eq("id", session_id)
    if only_from is not None:
        query = query.in_("status", [s.value for s in only_from])
    return bool(query.execute().data)


# =============================================================================
# Suggestions
# =============================================================================


def build_session_rows(
    session_id: str,
    suggestions: list[dict[str, Any]],
    existing_recipes: list[RecipeSummary] | None,
) -> list[dict[str, Any]]:
    """swipe_session_recipes rows, in suggestion order; existing images reused."""
    existing_images = {r.id: r.image_url for r in existing_recipes or [] if r.id and r.image_url}
    rows = []
    for i, s in enumerate(suggestions):
        existing_id = s.get("existing_recipe_id") or None
        rows.append({
            "session_id": session_id,
            "recipe_id": existing_id,
            "name": s.get("name"),
            "description": s.get("description") or None,
            "category": s.get("category") or None,
            "image_url": existing_images.get(existing_id) if existing_id else None,
            "difficulty": s.get("difficulty") or None,
            "prep_time": s.get("prep_time") or None,
            "cook_time": s.get("cook_time") or None,
            "servings": s.get("servings") or 4,
            "is_existing_recipe": bool(s.get("is_existing")),
            "sort_order": i,
        })
    return rows


async def _illustrate(client: Client, row: dict[str, Any]) -> bool:
    try:
        image = await generate_recipe_image(row["name"], description=row.get("description"))
    except AIResponseError as e:
        logger.info(f"No image for {row['name']!r}: {e}")
        return False
    client.table("swipe_session_recipes").update({"image_url": image["image_url"]}).eq("id", row["id"]).execute()
    return True


async def illustrate_rows(client: Client, rows: list[dict[str, Any]]) -> int:
    """Generate missing images, IMAGE_BATCH_SIZE at a time. Returns how many landed."""
    pending = [r for r in rows if not r.get("image_url")]
    done = 0
    for start in range(0, len(pending), IMAGE_BATCH_SIZE):
        batch = pending[start : start + IMAGE_BATCH_SIZE]
        results = await asyncio.gather(*(_illustrate(client, r) for r in batch), return_exceptions=True)
        for row, outcome in zip(batch, results):
            if isinstance(outcome, Exception):
                logger.warning(f"Image patch for {row['name']!r} failed: {outcome}")
            elif outcome:
                done += 1
    logger.info(f"Illustrated {done}/{len(pending)} swipe recipes")
    return done


async def generate_swipe_recipes(
    client: Client,
    *,
    session_id: str,
    household_id: str,
    meal_count: int | None = None,
    meal_types: list[str] | None = None,
    existing_recipes: list[RecipeSummary] | None = None,
    taste_profiles: list[TasteProfile] | None = None,
    taste_preferences: list[TastePreference] | None = None,
    cooking_history: list[CookingHistoryEntry] | None = None,
    inventory: list[InventoryItem] | None = None,
) -> dict[str, Any]:
    """
    Fill a generating session with candidates and open it for voting.

    On any failure the session is cancelled (unless already terminal) and
    the error re-raised.
    The move to voting only applies while the session is still generating,
    so a session cancelled meanwhile stays cancelled.

    Returns:
        {suggestions: inserted rows, count}
    """
    total = suggestion_count(meal_count)
    meal_types_str = ", ".join(meal_types or []) or "any"
    logger.info(f"Generating {total} swipe suggestions for session {session_id} (household {household_id})")

    system_prompt = f"""You are a meal planning assistant. Propose {total} recipes for a household: a mix of existing favourites and new creative ideas.

Write name and description in English.

Meal types requested: {meal_types_str}
{format_taste_profiles(taste_profiles)}{format_preferences(taste_preferences)}{format_history(cooking_history)}{format_inventory(inventory, heading="Items in stock (use them, especially those expiring soon)")}{format_recipe_catalog(existing_recipes)}

Rules:
1. Include some well-rated existing recipes: is_existing=true with their existing_recipe_id.
2. Include new recipes: is_existing=false, existing_recipe_id=null.
3. Prefer ingredients in stock, especially those expiring soon.
4. Avoid recently cooked recipes.
5. Respect every member's taste profile and allergies.
6. Vary categories.
7. Include seasonal ideas.

Return JSON:
{{
  "suggestions": [
    {{
      "name": "Recipe name",
      "description": "1-2 appealing sentences",
      "category": "main|appetizer|dessert|snack|soup|salad|side|breakfast|drink|other",
      "difficulty": "easy|medium|hard",
      "prep_time": 15,
      "cook_time": 30,
      "servings": 4,
      "is_existing": false,
      "existing_recipe_id": null
    }}
  ]
}}"""

    try:
        result = await call_llm_chat(
            messages=[user_message(
                f"Generate {total} recipe suggestions for {meal_count or DEFAULT_MEAL_COUNT} meals. Types: {meal_types_str}."
            )],
            system_prompt=system_prompt,
            node_name="generate-swipe-recipes",
            complexity="high",
            json_mode=True,
        )
        parsed = parse_json_object(result.text)
        suggestions = [s for s in (parsed or {}).get("suggestions") or [] if isinstance(s, dict) and s.get("name")]
        if not suggestions:
            raise AIResponseError("No swipe suggestions in response")

        rows = build_session_rows(session_id, suggestions, existing_recipes)
        inserted = client.table("swipe_session_recipes").insert(rows).execute().data or []
        logger.info(f"Inserted {len(inserted)} swipe recipes for session {session_id}")

        await illustrate_rows(client, inserted)

        set_session_status(client, session_id, SessionStatus.VOTING, only_from=[SessionStatus.GENERATING])
        return {"suggestions": inserted, "count": len(suggestions)}

    except Exception:
        logger.exception(f"Swipe generation failed for session {session_id}")
        try:
            set_session_status(
                client,
                session_id,
                SessionStatus.CANCELLED,
                only_from=statuses_leading_to(SessionStatus.CANCELLED),
            )
        except Exception as e:
            logger.error(f"Could not cancel session {session_id}: {e}")
        raise


# =============================================================================
# Finalisation
# =============================================================================


def _recipe_row(household_id: str, recipe: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    return {
        "household_id": household_id,
        "name": recipe.get("name") or source.get("name"),
        "description": recipe.get("description") or source.get("description"),
        "category": recipe.get("category") or source.get("category"),
        "servings": recipe.get("servings") or source.get("servings") or 4,
        "prep_time": recipe.get("prep_time") or source.get("prep_time"),
        "cook_time": recipe.get("cook_time") or source.get("cook_time"),
        "difficulty": recipe.get("difficulty") or source.get("difficulty"),
        "equipment": recipe.get("equipment") or [],
        "ingredients": [{**ing, "order": i + 1} for i, ing in enumerate(recipe.get("ingredients") or [])],
        "steps": [{**step, "order": i + 1} for i, step in enumerate(recipe.get("steps") or [])],
        "tips": recipe.get("tips") or [],
        "image_url": source.get("image_url"),
    }


async def create_matched_recipes(
    client: Client,
    *,
    session_id: str,
    matched_recipe_ids: list[str],
    household_id: str,
    taste_profiles: list[TasteProfile] | None = None,
) -> dict[str, Any]:
    """
    Turn the new matched candidates into cookbook recipes.

    Per candidate: insert the recipe, insert its taste params, point the
    session row at it. These writes are independent; a failure part-way
    leaves what was written and the next load picks it up. A candidate that
    fails is logged and skipped.

    Returns:
        {created, recipes} or {created: 0, message} when nothing is new
    """
    candidates = (
        client.table("swipe_session_recipes")
        .select("*")
        .in_("id", matched_recipe_ids)
        .eq("is_existing_recipe", False)
        .execute()
        .data
        or []
    )
    if not candidates:
        set_session_status(client, session_id, SessionStatus.COMPLETED, only_from=[SessionStatus.VOTING])
        return {"created": 0, "message": "No new recipes to create"}

    created: list[dict[str, Any]] = []
    for candidate in candidates:
        try:
            recipe = await generate_full_recipe(
                candidate["name"],
                description=candidate.get("description"),
                taste_profiles=taste_profiles,
                node_name="create-matched-recipes",
            )
            inserted = client.table("recipes").insert(_recipe_row(household_id, recipe, candidate)).execute().data
            if not inserted:
                logger.error(f"Recipe insert for {candidate['name']!r} returned no row")
                continue
            row = inserted[0]

            taste_params = {k: v for k, v in (recipe.get("taste_params") or {}).items() if v is not None}
            if taste_params:
                client.table("recipe_taste_params").insert({"recipe_id": row["id"], **taste_params}).execute()

            client.table("swipe_session_recipes").update({"recipe_id": row["id"]}).eq("id", candidate["id"]).execute()
            created.append(row)
        except Exception as e:
            logger.error(f"Failed to create recipe {candidate.get('name')!r}: {e}")

    set_session_status(client, session_id, SessionStatus.COMPLETED, only_from=[SessionStatus.VOTING])
    logger.info(f"Swipe session {session_id} completed with {len(created)} new recipes")
    return {"created": len(created), "recipes": created}
