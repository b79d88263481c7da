"""
Recipe AI endpoints: cooking chat, dictated edits, search, full recipe
generation, translation, inventory-based suggestions and images.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from cuisineduo.recipes.chat import recipe_chat
from cuisineduo.recipes.edit import edit_recipe
from cuisineduo.recipes.generation import generate_full_recipe, search_recipes
from cuisineduo.recipes.images import generate_recipe_image
from cuisineduo.recipes.suggest import suggest_recipes
from cuisineduo.recipes.translate import translate_recipe
from cuisineduo.web.actions import Action, dispatch
from cuisineduo.web.context import RequestContext, get_request_context
from cuisineduo.web.errors import run_audited
from cuisineduo.web.schemas import (
    RecipeChatRequest,
    RecipeEditRequest,
    RecipeGenerateRequest,
    RecipeImageRequest,
    RecipeSearchRequest,
    SuggestRecipesRequest,
    TranslateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recipes"])


# =============================================================================
# Handlers
# =============================================================================


async def chat(req: RecipeChatRequest, ctx: RequestContext) -> dict[str, Any]:
    return await run_audited(
        "recipe-chat",
        ctx,
        req.log_payload(),
        lambda: recipe_chat(
            req.message,
            recipe=req.recipe,
            history=req.history,
            mode=req.mode,
            current_step=req.current_step,
            taste_profiles=req.household_taste_profiles,
            taste_params=req.taste_params,
        ),
    )


async def edit(req: RecipeEditRequest, ctx: RequestContext) -> dict[str, Any]:
    context = "recipe-edit-search" if req.use_search else req.context
    return await run_audited(
        context,
        ctx,
        req.log_payload(),
        lambda: edit_recipe(req.text, recipe=req.recipe, lang=req.lang, context=context),
    )


async def search(req: RecipeSearchRequest, ctx: RequestContext) -> dict[str, Any]:
    return await run_audited(
        "recipe-search",
        ctx,
        req.log_payload(),
        lambda: search_recipes(
            req.text,
            lang=req.lang,
            recipes=req.recipes,
            taste_profiles=req.household_taste_profiles,
        ),
    )


async def generate(req: RecipeGenerateRequest, ctx: RequestContext) -> dict[str, Any]:
    async def call() -> dict[str, Any]:
        recipe = await generate_full_recipe(
            req.text,
            description=req.description,
            taste_profiles=req.household_taste_profiles,
        )
        return {"recipe": recipe}

    return await run_audited("recipe-generate", ctx, req.log_payload(), call)


async def translate(req: TranslateRequest, ctx: RequestContext) -> dict[str, Any]:
    if not req.recipe_id and not req.recipe_data:
        raise HTTPException(status_code=400, detail="recipe_id_or_recipe_data_required")

    return await run_audited(
        "translate-recipe",
        ctx,
        req.log_payload(),
        lambda: translate_recipe(ctx.client, lang=req.lang, recipe_id=req.recipe_id, recipe_data=req.recipe_data),
    )


async def suggest(req: SuggestRecipesRequest, ctx: RequestContext) -> dict[str, Any]:
    async def call() -> dict[str, Any]:
        return {"recipes": await suggest_recipes(req.inventory, lang=req.lang, preferences=req.preferences)}

    return await run_audited("suggest-recipes", ctx, req.log_payload(), call)


async def image(req: RecipeImageRequest, ctx: RequestContext) -> dict[str, Any]:
    async def call() -> dict[str, Any]:
        return await generate_recipe_image(
            req.name,
            description=req.description,
            ingredients=req.ingredients,
            style_hint=req.style_hint,
        )

    # The data URL is too large for the audit row
    return await run_audited(
        "generate-recipe-image", ctx, req.log_payload(), call, summarize=lambda r: {"model": r["model"]}
    )


RECIPE_ACTIONS = {
    "chat": Action(RecipeChatRequest, chat),
    "edit": Action(RecipeEditRequest, edit),
    "search": Action(RecipeSearchRequest, search),
    "generate": Action(RecipeGenerateRequest, generate),
    "translate": Action(TranslateRequest, translate),
    "suggest": Action(SuggestRecipesRequest, suggest),
    "image": Action(RecipeImageRequest, image),
}


# =============================================================================
# Routes
# =============================================================================


@router.post("/recipe-ai")
async def recipe_ai(
    body: dict[str, Any] = Body(...),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """Single entry point for recipe AI, routed on `action`."""
    return await dispatch(body, RECIPE_ACTIONS, ctx)


@router.post("/recipe-ai-chat")
async def recipe_chat_route(req: RecipeChatRequest, ctx: RequestContext = Depends(get_request_context)):
    return await chat(req, ctx)


@router.post("/recipe-ai-edit")
async def recipe_edit_route(req: RecipeEditRequest, ctx: RequestContext = Depends(get_request_context)):
    return await edit(req, ctx)


@router.post("/recipe-ai-search")
async def recipe_search_route(req: RecipeSearchRequest, ctx: RequestContext = Depends(get_request_context)):
    return await search(req, ctx)


@router.post("/translate-recipe")
async def translate_route(req: TranslateRequest, ctx: RequestContext = Depends(get_request_context)):
    return await translate(req, ctx)


@router.post("/suggest-recipes")
async def suggest_route(req: SuggestRecipesRequest, ctx: RequestContext = Depends(get_request_context)):
    return await suggest(req, ctx)


@router.post("/generate-recipe-image")
async def image_route(req: RecipeImageRequest, ctx: RequestContext = Depends(get_request_context)):
    return await image(req, ctx)
