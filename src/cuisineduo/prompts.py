"""
Prompt fragments shared across handlers.

Each formatter returns an empty string when there is nothing to say, so
callers can concatenate sections unconditionally.
"""

from cuisineduo.models import CookingHistoryEntry, InventoryItem, RecipeSummary, TastePreference, TasteProfile

LANGUAGE_NAMES = {"fr": "French", "en": "English", "zh": "Chinese (Simplified)"}

TASTE_DIMENSIONS = ("sweetness", "saltiness", "spiciness", "acidity", "bitterness", "umami", "richness")

RECIPE_CATEGORIES = (
    "appetizer", "main", "dessert", "snack", "drink", "soup", "salad", "side", "breakfast", "other",
)

INGREDIENT_UNITS = (
    "none", "g", "kg", "ml", "l", "tsp", "tbsp", "cup", "piece", "pinch", "bunch", "slice", "clove", "can", "pack",
)

_TASTE_EXAMPLE = ", ".join(f'"{d}": 3' for d in TASTE_DIMENSIONS)

FULL_RECIPE_SCHEMA = f"""{{
  "recipe": {{
    "name": "Recipe name",
    "description": "Appealing description (1-2 sentences)",
    "category": "one of: {', '.join(RECIPE_CATEGORIES)}",
    "servings": 4,
    "prep_time": 15,
    "cook_time": 30,
    "difficulty": "one of: easy, medium, hard",
    "equipment": [{{"name": "Equipment name"}}],
    "ingredients": [
      {{"name": "Ingredient name", "quantity": 200, "unit": "one of: {', '.join(INGREDIENT_UNITS)}", "optional": false}}
    ],
    "steps": [{{"instruction": "Step instruction", "duration": 5}}],
    "tips": [{{"text": "Useful tip"}}],
    "taste_params": {{{_TASTE_EXAMPLE}}}
  }}
}}"""


def language_name(lang: str | None, default: str = "fr") -> str:
    return LANGUAGE_NAMES.get(lang or default, LANGUAGE_NAMES[default])


def format_taste_profiles(profiles: list[TasteProfile] | None, *, with_ratings: bool = False) -> str:
    if not profiles:
        return ""
    lines = []
    for p in profiles:
        prefs = ", ".join(
            f"{k}: {round(v, 1)}/5" for k, v in p.taste_profile.items() if v is not None
        )
        label = p.display_name
        if with_ratings and p.ratings_count is not None:
            label += f" ({p.ratings_count} rated recipes)"
        lines.append(f"- {label}: {prefs}")
    return "\nHousehold taste profiles:\n" + "\n".join(lines)


def format_preferences(preferences: list[TastePreference] | None) -> str:
    if not preferences:
        return ""
    lines = [f"- {p.display_name}: {p.notes or 'No notes'}" for p in preferences]
    return "\nPersonal preferences/allergies:\n" + "\n".join(lines)


def format_history(history: list[CookingHistoryEntry] | None, limit: int = 20) -> str:
    if not history:
        return ""
    lines = [f"- {h.recipe_name} ({h.cooked_at})" for h in history[:limit]]
    return "\nRecently cooked (avoid repeating):\n" + "\n".join(lines)


def format_inventory_line(item: InventoryItem) -> str:
    expiry = f" (expires: {item.estimated_expiry_date})" if item.estimated_expiry_date else ""
    return f"- {item.name}: {item.quantity} {item.unit}{expiry}"


def format_inventory(items: list[InventoryItem] | None, limit: int = 50, heading: str = "Items currently in stock") -> str:
    if not items:
        return ""
    lines = [format_inventory_line(i) for i in items[:limit]]
    return f"\n{heading}:\n" + "\n".join(lines)


def format_recipe_catalog(recipes: list[RecipeSummary] | None, limit: int = 30) -> str:
    if not recipes:
        return ""
    lines = [
        f"- id:{r.id} | {r.name} | {r.category or ''} | avg_rating:{r.avg_rating or 'none'}"
        for r in recipes[:limit]
    ]
    return "\nExisting recipes in the cookbook (can suggest well-rated ones):\n" + "\n".join(lines)


def sort_by_expiry(items: list[InventoryItem]) -> list[InventoryItem]:
    """Soonest expiry first; undated items last."""
    return sorted(items, key=lambda i: (i.estimated_expiry_date is None, i.estimated_expiry_date or ""))
