"""
Inventory AI endpoints: scanning, price checks, scan refinement, voice
commands and shopping lists.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from cuisineduo.inventory.prices import verify_prices
from cuisineduo.inventory.refine import refine_scan
from cuisineduo.inventory.scan import scan_receipt
from cuisineduo.inventory.voice import ITEM_CONTEXTS, correct_transcription
from cuisineduo.shopping.generate import generate_shopping_list
from cuisineduo.web.actions import Action, dispatch
from cuisineduo.web.context import RequestContext, get_request_context
from cuisineduo.web.errors import run_audited
from cuisineduo.web.schemas import (
    RefineScanRequest,
    ScanRequest,
    ShoppingListRequest,
    TranscriptionRequest,
    VerifyPricesRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["inventory"])


# =============================================================================
# Handlers
# =============================================================================


async def scan(req: ScanRequest, ctx: RequestContext) -> dict[str, Any]:
    return await run_audited(
        "scan-receipt",
        ctx,
        req.log_payload(),
        lambda: scan_receipt(req.image, mime_type=req.mime_type, lang=req.lang, mode=req.mode),
    )


async def check_prices(req: VerifyPricesRequest, ctx: RequestContext) -> dict[str, Any]:
    async def call() -> dict[str, Any]:
        return {"items": await verify_prices(req.items, req.store)}

    return await run_audited("verify-prices", ctx, req.log_payload(), call)


async def refine(req: RefineScanRequest, ctx: RequestContext) -> dict[str, Any]:
    return await run_audited(
        "refine-scan",
        ctx,
        req.log_payload(),
        lambda: refine_scan(
            req.items,
            message=req.message,
            existing_inventory=req.existing_inventory,
            history=req.history,
            lang=req.lang,
        ),
    )


async def transcribe(req: TranscriptionRequest, ctx: RequestContext) -> dict[str, Any]:
    if req.context in ITEM_CONTEXTS and req.items is None:
        raise HTTPException(status_code=400, detail="items_required")

    return await run_audited(
        "correct-transcription",
        ctx,
        req.log_payload(),
        lambda: correct_transcription(
            req.text,
            context=req.context,
            lang=req.lang,
            items=req.items,
            chat_history=req.chat_history,
        ),
    )


async def shopping_list(req: ShoppingListRequest, ctx: RequestContext) -> dict[str, Any]:
    if not ctx.household_id:
        raise HTTPException(status_code=400, detail="household_id_required")

    return await run_audited(
        "generate-shopping-list",
        ctx,
        req.log_payload(),
        lambda: generate_shopping_list(
            ctx.client,
            household_id=ctx.household_id,
            created_by=ctx.profile_id,
            recipe_ids=req.recipe_ids,
            recipes_data=req.recipes_data,
            inventory=req.inventory_items,
            list_name=req.list_name,
            session_id=req.session_id,
            lang=req.lang,
        ),
    )


INVENTORY_ACTIONS = {
    "scan": Action(ScanRequest, scan),
    "verify-prices": Action(VerifyPricesRequest, check_prices),
    "refine-scan": Action(RefineScanRequest, refine),
    "correct-transcription": Action(TranscriptionRequest, transcribe),
    "generate-shopping-list": Action(ShoppingListRequest, shopping_list),
}


# =============================================================================
# Routes
# =============================================================================


@router.post("/inventory-ai")
async def inventory_ai(
    body: dict[str, Any] = Body(...),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """Single entry point for inventory AI, routed on `action`."""
    return await dispatch(body, INVENTORY_ACTIONS, ctx)


@router.post("/scan-receipt")
async def scan_receipt_route(req: ScanRequest, ctx: RequestContext = Depends(get_request_context)):
    return await scan(req, ctx)


@router.post("/verify-prices")
async def verify_prices_route(req: VerifyPricesRequest, ctx: RequestContext = Depends(get_request_context)):
    return await check_prices(req, ctx)


@router.post("/scan-photo-inventory")
async def refine_scan_route(req: RefineScanRequest, ctx: RequestContext = Depends(get_request_context)):
    return await refine(req, ctx)


@router.post("/correct-transcription")
async def correct_transcription_route(req: TranscriptionRequest, ctx: RequestContext = Depends(get_request_context)):
    return await transcribe(req, ctx)


@router.post("/generate-shopping-list")
async def shopping_list_route(req: ShoppingListRequest, ctx: RequestContext = Depends(get_request_context)):
    return await shopping_list(req, ctx)
