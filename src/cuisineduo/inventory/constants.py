"""Vocabularies shared by the inventory handlers."""

VALID_CATEGORIES = (
    "dairy", "meat", "fish", "vegetables", "fruits", "grains", "bakery", "frozen",
    "beverages", "snacks", "condiments", "hygiene", "household", "other",
)

VALID_UNITS = ("piece", "kg", "g", "l", "ml", "pack")

# Categories usually sold by weight; their per-kg prices are worth checking
WEIGHT_CATEGORIES = ("meat", "fish", "vegetables", "fruits", "dairy")

SCAN_MODES = ("receipt", "photo", "auto")


def product_language_instruction(lang: str | None) -> str:
    if lang == "zh":
        return "Respond with product names in Chinese."
    if lang == "en":
        return "Respond with product names in English."
    return "Respond with product names in French."
