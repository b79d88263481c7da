"""
Request bodies.

Clients send a mix of snake_case and camelCase keys; every field accepts
both. Required text fields reject empty strings so a blank message is
reported the same way as a missing one.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cuisineduo.chat.gifs import GifUsage
from cuisineduo.inventory.refine import ScanChatTurn
from cuisineduo.inventory.voice import ChatLine
from cuisineduo.miam.orchestrator import MiamContext, MiamTurn
from cuisineduo.models import (
    ChatTurn,
    CookingHistoryEntry,
    InventoryItem,
    RecipeSummary,
    TastePreference,
    TasteProfile,
)
from cuisineduo.recipes.chat import RecipeChatTurn

RequiredText = Annotated[str, Field(min_length=1)]


class ApiRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def log_payload(self) -> dict[str, Any]:
        """What goes into the audit trail."""
        return self.model_dump(mode="json")


# =============================================================================
# Chat
# =============================================================================


class ChatRequest(ApiRequest):
    message: RequiredText
    history: list[ChatTurn] = Field(default_factory=list)
    lang: str = "fr"


class GifSearchRequest(ApiRequest):
    query: str | None = None
    offset: int = 0
    lang: str = "fr"


class GifSuggestRequest(ApiRequest):
    messages: list[ChatTurn] = Field(default_factory=list)
    gif_history: list[GifUsage] = Field(default_factory=list)
    lang: str = "fr"


class MiamRequest(ApiRequest):
    message: RequiredText
    lang: str = "fr"
    current_page: str = "home"
    available_actions: list[str] = Field(default_factory=list)
    conversation_history: list[MiamTurn] = Field(default_factory=list)
    context: MiamContext = Field(default_factory=MiamContext)


# =============================================================================
# Inventory
# =============================================================================


class ScanRequest(ApiRequest):
    image: RequiredText
    mime_type: str | None = None
    lang: str = "fr"
    mode: str | None = "auto"

    def log_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"image"})


class VerifyPricesRequest(ApiRequest):
    items: list[dict[str, Any]]
    store: str | None = None


class RefineScanRequest(ApiRequest):
    items: list[dict[str, Any]]
    message: str | None = None
    existing_inventory: list[InventoryItem] = Field(default_factory=list)
    history: list[ScanChatTurn] = Field(default_factory=list)
    lang: str = "fr"


class TranscriptionRequest(ApiRequest):
    text: RequiredText
    context: Literal["chat", "scan-correction", "inventory-update", "inventory-update-search"]
    lang: str = "fr"
    items: list[dict[str, Any]] | None = None
    chat_history: list[ChatLine] = Field(default_factory=list)


class ShoppingListRequest(ApiRequest):
    recipe_ids: list[str] = Field(default_factory=list)
    recipes_data: list[dict[str, Any]] = Field(default_factory=list)
    inventory_items: list[InventoryItem] = Field(default_factory=list)
    list_name: str | None = None
    session_id: str | None = None
    lang: str = "fr"


# =============================================================================
# Recipes
# =============================================================================


class RecipeChatRequest(ApiRequest):
    message: RequiredText
    recipe: dict[str, Any] | None = None
    history: list[RecipeChatTurn] = Field(default_factory=list)
    mode: str | None = None
    current_step: int | None = None
    household_taste_profiles: list[TasteProfile] = Field(default_factory=list)
    taste_params: dict[str, Any] | None = None
    lang: str = "fr"


class RecipeEditRequest(ApiRequest):
    text: RequiredText
    context: Literal["recipe-edit", "recipe-edit-search"] = "recipe-edit"
    use_search: bool = False
    recipe: dict[str, Any] | None = None
    lang: str = "fr"


class RecipeSearchRequest(ApiRequest):
    text: RequiredText
    lang: str = "fr"
    recipes: list[RecipeSummary] = Field(default_factory=list)
    household_taste_profiles: list[TasteProfile] = Field(default_factory=list)


class RecipeGenerateRequest(ApiRequest):
    text: RequiredText
    description: str | None = None
    household_taste_profiles: list[TasteProfile] = Field(default_factory=list)


class TranslateRequest(ApiRequest):
    lang: Literal["fr", "zh"]
    recipe_id: str | None = None
    recipe_data: dict[str, Any] | None = None


class SuggestRecipesRequest(ApiRequest):
    inventory: list[InventoryItem]
    lang: str = "fr"
    preferences: str | None = None


class RecipeImageRequest(ApiRequest):
    name: RequiredText
    description: str | None = None
    ingredients: list[Any] | None = None
    style_hint: str | None = None


# =============================================================================
# Swipe
# =============================================================================


class SwipeGenerateRequest(ApiRequest):
    session_id: RequiredText
    meal_count: int | None = None
    meal_types: list[str] = Field(default_factory=list)
    existing_recipes: list[RecipeSummary] = Field(default_factory=list)
    household_taste_profiles: list[TasteProfile] = Field(default_factory=list)
    taste_preferences: list[TastePreference] = Field(default_factory=list)
    cooking_history: list[CookingHistoryEntry] = Field(default_factory=list)
    inventory_items: list[InventoryItem] = Field(default_factory=list)


class CreateMatchedRequest(ApiRequest):
    session_id: RequiredText
    matched_recipe_ids: Annotated[list[str], Field(min_length=1)]
    taste_profiles: list[TasteProfile] = Field(default_factory=list)


class VoteRequest(ApiRequest):
    session_recipe_id: RequiredText
    liked: bool


# =============================================================================
# Push
# =============================================================================


class PushSubscriptionRequest(ApiRequest):
    subscription: dict[str, Any]


class PushSendRequest(ApiRequest):
    title: str | None = None
    body: str | None = None
    url: str | None = None
    tag: str | None = None
