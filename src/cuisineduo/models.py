"""
Shared request payload models.

Clients send these as context for prompts. Rows carry more columns than
we model, so extras are ignored.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Lang = Literal["fr", "en", "zh"]


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TasteProfile(_Payload):
    """One member's averaged taste scores (1-5 per dimension)."""

    display_name: str
    taste_profile: dict[str, float | None] = Field(default_factory=dict)
    ratings_count: int | None = None


class TastePreference(_Payload):
    """Free-text preferences and allergies."""

    display_name: str
    notes: str | None = None


class InventoryItem(_Payload):
    id: str | None = None
    name: str
    brand: str | None = None
    quantity: float | None = None
    unit: str | None = None
    category: str | None = None
    fill_level: float | None = None
    estimated_expiry_date: str | None = None


class RecipeSummary(_Payload):
    id: str | None = None
    name: str
    category: str | None = None
    description: str | None = None
    avg_rating: float | None = None
    image_url: str | None = None
    ingredients_summary: str | None = None


class CookingHistoryEntry(_Payload):
    recipe_name: str
    cooked_at: str | None = None


class ChatTurn(_Payload):
    """A past chat message; `is_ai` marks assistant turns."""

    content: str | None = None
    is_ai: bool = False
    display_name: str | None = None
