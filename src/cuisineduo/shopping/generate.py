"""
Shopping list generation.

Ingredients are merged across recipes, stock is subtracted, and the result
is written as one `shopping_lists` row plus its `shopping_list_items`.
"""

import logging
from datetime import date
from typing import Any

from supabase import Client

from cuisineduo.llm.client import AIResponseError, call_llm_chat, user_message
from cuisineduo.llm.parsing import parse_json_object
from cuisineduo.models import InventoryItem

logger = logging.getLogger(__name__)

AISLES = (
    "fruits", "vegetables", "meat", "fish", "dairy", "bakery", "grains", "condiments",
    "frozen", "beverages", "snacks", "hygiene", "household", "other",
)

DEFAULT_LIST_PREFIX = {"fr": "Courses", "en": "Groceries", "zh": "购物清单"}


def _ingredient_text(ingredient: dict[str, Any]) -> str:
    unit = ingredient.get("unit")
    unit_text = f" {unit}" if unit and unit != "none" else ""
    return f"{ingredient.get('name')}: {ingredient.get('quantity') or ''}{unit_text}"


def format_recipes(recipes: list[dict[str, Any]]) -> str:
    return "\n".join(
        f"- {r.get('name')} ({r.get('servings')} servings): "
        + ", ".join(_ingredient_text(i) for i in r.get("ingredients") or [])
        for r in recipes
    )


def fetch_recipes(client: Client, recipe_ids: list[str]) -> list[dict[str, Any]]:
    try:
        response = client.table("recipes").select("name, servings, ingredients").in_("id", recipe_ids).execute()
        return response.data or []
    except Exception as e:
        logger.warning(f"Could not load recipes for shopping list: {e}")
        return []


def default_list_name(lang: str) -> str:
    return f"{DEFAULT_LIST_PREFIX.get(lang, DEFAULT_LIST_PREFIX['fr'])} {date.today().isoformat()}"


async def generate_shopping_list(
    client: Client,
    *,
    household_id: str,
    created_by: str | None = None,
    recipe_ids: list[str] | None = None,
    recipes_data: list[dict[str, Any]] | None = None,
    inventory: list[InventoryItem] | None = None,
    list_name: str | None = None,
    session_id: str | None = None,
    lang: str = "fr",
) -> dict[str, Any]:
    """
    Build and store a shopping list.

    Returns:
        {list: shopping_lists row, items_count}

    Raises:
        AIResponseError: the list could not be parsed
    """
    recipes = recipes_data or (fetch_recipes(client, recipe_ids) if recipe_ids else [])
    stock = ""
    if inventory:
        stock = "\nItems already in stock (subtract from needed quantities):\n" + "\n".join(
            f"- {i.name}: {i.quantity} {i.unit}" for i in inventory
        )

    system_prompt = f"""You generate shopping lists. Given recipes and the current inventory, produce one merged list.

Language: {lang}. Write item names in that language.

Rules:
1. Merge identical ingredients across recipes (200 g butter + 50 g butter = 250 g butter).
2. Subtract what is already in stock.
3. Leave out anything fully covered by the inventory.
4. Group by aisle: {', '.join(AISLES)}.
5. Use standard units (g, kg, ml, L, piece).

Return JSON:
{{"items": [{{"name": "Item", "quantity": 500, "unit": "g", "category": "dairy", "recipe_name": "Recipe needing it, or 'Multiple'"}}]}}"""

    result = await call_llm_chat(
        messages=[user_message(
            f"Create a shopping list for these recipes:\n{format_recipes(recipes) or 'No specific recipes provided.'}{stock}"
        )],
        system_prompt=system_prompt,
        node_name="generate-shopping-list",
        complexity="medium",
        json_mode=True,
    )
    parsed = parse_json_object(result.text)
    if parsed is None:
        raise AIResponseError("Shopping list could not be parsed")
    list_items = [i for i in parsed.get("items") or [] if isinstance(i, dict) and i.get("name")]

    created = (
        client.table("shopping_lists")
        .insert({
            "household_id": household_id,
            "name": list_name or default_list_name(lang),
            "session_id": session_id,
            "created_by": created_by or household_id,
        })
        .execute()
        .data
    )
    if not created:
        raise RuntimeError("Shopping list insert returned no row")
    shopping_list = created[0]

    if list_items:
        client.table("shopping_list_items").insert([
            {
                "list_id": shopping_list["id"],
                "name": item["name"],
                "quantity": item.get("quantity") or None,
                "unit": item.get("unit") or None,
                "category": item.get("category") or "other",
                "recipe_name": item.get("recipe_name") or None,
                "sort_order": i,
            }
            for i, item in enumerate(list_items)
        ]).execute()

    logger.info(f"Shopping list {shopping_list['id']} created with {len(list_items)} items")
    return {"list": shopping_list, "items_count": len(list_items)}
