"""
Miam tool declarations.

The server never runs these; the client does. Declarations are in the
OpenAI function-calling shape. Some tools are always offered, the rest only
when the client advertises them (e.g. scan editing while a scan is under
review).
"""

from typing import Any

from cuisineduo.inventory.constants import SCAN_MODES, VALID_CATEGORIES, VALID_UNITS

PAGES = ("/", "/inventory", "/recipes", "/chat")
RECIPE_TOOL_CATEGORIES = ("appetizer", "main", "dessert", "snack", "drink", "other")
DIFFICULTIES = ("easy", "medium", "hard")
TASTE_FIELDS = {
    "sweetness": "Sweetness tolerance (1-5)",
    "saltiness": "Saltiness tolerance (1-5)",
    "spiciness": "Spiciness tolerance (1-5)",
    "acidity": "Acidity tolerance (1-5)",
    "bitterness": "Bitterness tolerance (1-5)",
    "umami": "Umami affinity (1-5)",
    "richness": "Richness affinity (1-5)",
}


def _tool(name: str, description: str, properties: dict[str, Any] | None = None,
          required: list[str] | None = None) -> dict[str, Any]:
    parameters: dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        parameters["required"] = required
    return {
        "type": "function",
        "function": {"name": name, "description": description, "parameters": parameters},
    }


def _string(description: str, enum: tuple[str, ...] | list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "string", "description": description}
    if enum:
        schema["enum"] = list(enum)
    return schema


def _number(description: str) -> dict[str, Any]:
    return {"type": "number", "description": description}


def _object(description: str) -> dict[str, Any]:
    return {"type": "object", "description": description}


_RECIPE_NAME = _string("Name of the recipe (fuzzy match)")
_ITEM_NAME = "Name of the item to {} (fuzzy match against inventory)"

TOOL_DECLARATIONS: list[dict[str, Any]] = [
    # Navigation and UI
    _tool(
        "navigate",
        "Navigate to a different page in the application. Use this when the user asks to go to a specific section.",
        {"path": _string("The route path: / for home, /inventory, /recipes, /chat", PAGES)},
        ["path"],
    ),
    _tool(
        "openAddItem",
        "Open the modal to manually add a new item to the food inventory. Use when user wants to add a product.",
    ),
    _tool(
        "openScanner",
        'Open the scanner for a receipt or a photo of products. Use source="camera" by default; '
        'source="gallery" ONLY if the user mentions gallery, library or existing photos. '
        'mode="receipt" for shopping receipts, "photo" for product photos, "auto" to detect.',
        {
            "source": _string("Where to get the image from. Default: camera.", ("camera", "gallery")),
            "mode": _string("Scan mode.", SCAN_MODES),
        },
    ),
    _tool(
        "filterCategory",
        "Filter the inventory list by a specific food category.",
        {"category": _string('The category to filter by, or "all"', ("all", *VALID_CATEGORIES))},
        ["category"],
    ),
    # Household chat
    _tool(
        "sendChatMessage",
        "Send a message in the household chat on behalf of the user.",
        {"text": _string("The message text to send in the chat")},
        ["text"],
    ),
    _tool(
        "editLastChatMessage",
        "Edit the last message Miam sent to the household chat.",
        {"newContent": _string("The new content for the last Miam chat message")},
        ["newContent"],
    ),
    _tool(
        "deleteLastChatMessage",
        "Delete the last message Miam sent to the household chat. Use when the user asks to cancel or undo it.",
    ),
    # Inventory
    _tool(
        "addInventoryItem",
        "Add a new item directly to the household food inventory without scanning.",
        {
            "name": _string("Product name (in the language of the user)"),
            "name_translations": _object('Translations of the name, e.g. {"fr":"Pomme","en":"Apple","zh":"苹果"}'),
            "quantity": _number("Quantity (default: 1)"),
            "unit": _string("Unit of measurement", VALID_UNITS),
            "category": _string("Food category", VALID_CATEGORIES),
            "brand": _string("Brand name (optional)"),
            "store": _string("Store where purchased (optional)"),
        },
        ["name", "quantity", "unit", "category"],
    ),
    _tool(
        "updateInventoryItem",
        "Update fields of an existing inventory item by name (fuzzy match).",
        {
            "name": _string(_ITEM_NAME.format("update")),
            "fields": _object(
                "Fields to update. Allowed keys: name, brand, quantity, unit, price, "
                "fill_level (1=full, 0.75, 0.5, 0.25), category, store, notes"
            ),
        },
        ["name", "fields"],
    ),
    _tool(
        "consumeInventoryItem",
        "Mark an inventory item as fully consumed and record it in consumption history. "
        "Use when the user says an item is finished, empty or used up.",
        {"name": _string(_ITEM_NAME.format("consume"))},
        ["name"],
    ),
    _tool(
        "deleteInventoryItem",
        "Permanently delete an inventory item WITHOUT recording consumption. "
        "If the user says finished or used up, prefer consumeInventoryItem.",
        {"name": _string(_ITEM_NAME.format("delete"))},
        ["name"],
    ),
    # Scan review
    _tool(
        "updateScanItem",
        "Update fields of a scanned item in the scan review list by its index.",
        {
            "index": _number("Zero-based index of the item in the scan list"),
            "fields": _object("Allowed keys: name, brand, quantity, unit, price, price_per_kg, category, store"),
        },
        ["index", "fields"],
    ),
    _tool(
        "removeScanItem",
        "Remove a scanned item from the scan review list by its index.",
        {"index": _number("Zero-based index of the item to remove")},
        ["index"],
    ),
    _tool(
        "addScanItem",
        "Add an item the scan missed to the scan review list.",
        {"item": _object("Item fields: name, quantity, unit, category, price, brand, store")},
        ["item"],
    ),
    # Recipes
    _tool(
        "addRecipe",
        "Add a new recipe to the household cookbook.",
        {
            "name": _string("Recipe name"),
            "description": _string("Short description of the recipe"),
            "category": _string("Recipe category", RECIPE_TOOL_CATEGORIES),
            "difficulty": _string("Difficulty level", DIFFICULTIES),
            "prep_time": _number("Preparation time in minutes"),
            "cook_time": _number("Cooking time in minutes"),
            "servings": _number("Number of servings"),
            "ingredients": {"type": "array", "description": "Array of {name, quantity, unit}", "items": {"type": "object"}},
            "steps": {"type": "array", "description": "Array of {instruction, duration_minutes?}", "items": {"type": "object"}},
            "equipment": {"type": "array", "description": "Equipment names", "items": {"type": "string"}},
            "tips": {"type": "array", "description": "Tips", "items": {"type": "string"}},
        },
        ["name", "category", "difficulty", "ingredients", "steps"],
    ),
    _tool(
        "deleteRecipe",
        "Delete a recipe from the household cookbook by name (fuzzy match).",
        {"name": _RECIPE_NAME},
        ["name"],
    ),
    _tool(
        "rateRecipe",
        "Rate a recipe (1-5 stars).",
        {"name": _RECIPE_NAME, "rating": _number("Rating from 1 to 5")},
        ["name", "rating"],
    ),
    _tool(
        "addRecipeComment",
        "Add a comment to a recipe.",
        {"name": _RECIPE_NAME, "content": _string("The comment text")},
        ["name", "content"],
    ),
    _tool(
        "updateRecipeStep",
        "Update a specific step of a recipe.",
        {
            "name": _RECIPE_NAME,
            "stepIndex": _number("Zero-based index of the step to update"),
            "newInstruction": _string("The new instruction text"),
        },
        ["name", "stepIndex", "newInstruction"],
    ),
    _tool(
        "addRecipeTip",
        "Add a tip or trick to a recipe.",
        {"name": _RECIPE_NAME, "tip": _string("The tip text")},
        ["name", "tip"],
    ),
    _tool(
        "updateRecipeInfo",
        "Update general info of a recipe.",
        {
            "name": _RECIPE_NAME,
            "fields": _object("Allowed keys: name, description, category, difficulty, prep_time, cook_time, servings"),
        },
        ["name", "fields"],
    ),
    _tool(
        "suggestRecipes",
        "Suggest recipes based on the current household inventory. Use when the user asks what to cook.",
    ),
    _tool(
        "updateTasteProfile",
        "Update the user's taste profile when they mention taste preferences or spice tolerance. "
        "Adjust incrementally (values 1-5).",
        {field: _number(description) for field, description in TASTE_FIELDS.items()},
    ),
]

ALWAYS_AVAILABLE = frozenset({
    "navigate",
    "sendChatMessage",
    "editLastChatMessage",
    "deleteLastChatMessage",
    "addInventoryItem",
    "updateInventoryItem",
    "consumeInventoryItem",
    "deleteInventoryItem",
    "addRecipe",
    "deleteRecipe",
    "rateRecipe",
    "addRecipeComment",
    "updateRecipeStep",
    "addRecipeTip",
    "updateRecipeInfo",
    "suggestRecipes",
    "updateTasteProfile",
})


def tool_name(declaration: dict[str, Any]) -> str:
    return declaration["function"]["name"]


def available_tools(client_actions: list[str] | None = None) -> list[dict[str, Any]]:
    """Always-available tools plus those the client advertises, in declaration order."""
    allowed = ALWAYS_AVAILABLE | set(client_actions or [])
    return [t for t in TOOL_DECLARATIONS if tool_name(t) in allowed]
