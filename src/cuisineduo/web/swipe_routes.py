"""
Swipe session endpoints.

Generation and finalisation run the AI handlers. The session routes expose
the aggregator: a snapshot for the caller, votes, cancellation, and a
server-sent event stream that follows the session until it ends.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from sse_starlette.sse import EventSourceResponse

from cuisineduo.config import settings
from cuisineduo.db.client import get_realtime_client
from cuisineduo.swipe.aggregator import SwipeSessionAggregator
from cuisineduo.swipe.generation import create_matched_recipes, generate_swipe_recipes
from cuisineduo.swipe.store import SupabaseSwipeStore
from cuisineduo.swipe.watcher import SwipeSessionWatcher
from cuisineduo.web.actions import Action, dispatch
from cuisineduo.web.context import RequestContext, get_request_context
from cuisineduo.web.errors import handle_failures, run_audited
from cuisineduo.web.schemas import CreateMatchedRequest, SwipeGenerateRequest, VoteRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["swipe"])


def _household(ctx: RequestContext) -> str:
    if not ctx.household_id:
        raise HTTPException(status_code=400, detail="household_id_required")
    return ctx.household_id


def _aggregator(ctx: RequestContext, session_id: str) -> SwipeSessionAggregator:
    return SwipeSessionAggregator(SupabaseSwipeStore(ctx.client), session_id, ctx.profile_id)


# =============================================================================
# AI handlers
# =============================================================================


async def generate(req: SwipeGenerateRequest, ctx: RequestContext) -> dict[str, Any]:
    household_id = _household(ctx)
    return await run_audited(
        "generate-swipe-recipes",
        ctx,
        req.log_payload(),
        lambda: generate_swipe_recipes(
            ctx.client,
            session_id=req.session_id,
            household_id=household_id,
            meal_count=req.meal_count,
            meal_types=req.meal_types,
            existing_recipes=req.existing_recipes,
            taste_profiles=req.household_taste_profiles,
            taste_preferences=req.taste_preferences,
            cooking_history=req.cooking_history,
            inventory=req.inventory_items,
        ),
        summarize=lambda r: {"count": r["count"]},
    )


async def create_final(req: CreateMatchedRequest, ctx: RequestContext) -> dict[str, Any]:
    household_id = _household(ctx)
    return await run_audited(
        "create-matched-recipes",
        ctx,
        req.log_payload(),
        lambda: create_matched_recipes(
            ctx.client,
            session_id=req.session_id,
            matched_recipe_ids=req.matched_recipe_ids,
            household_id=household_id,
            taste_profiles=req.taste_profiles,
        ),
    )


SWIPE_ACTIONS = {
    "generate-suggestions": Action(SwipeGenerateRequest, generate),
    "create-final": Action(CreateMatchedRequest, create_final),
}


@router.post("/swipe-ai")
async def swipe_ai(
    body: dict[str, Any] = Body(...),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """Single entry point for swipe AI, routed on `action`."""
    return await dispatch(body, SWIPE_ACTIONS, ctx)


@router.post("/generate-swipe-recipes")
async def generate_route(req: SwipeGenerateRequest, ctx: RequestContext = Depends(get_request_context)):
    return await generate(req, ctx)


@router.post("/create-matched-recipes")
async def create_final_route(req: CreateMatchedRequest, ctx: RequestContext = Depends(get_request_context)):
    return await create_final(req, ctx)


# =============================================================================
# Session state
# =============================================================================


@router.get("/swipe/sessions/{session_id}")
async def get_session(session_id: str, ctx: RequestContext = Depends(get_request_context)) -> dict[str, Any]:
    """Snapshot with matches, progress and the caller's remaining feed."""
    aggregator = _aggregator(ctx, session_id)
    async with handle_failures("swipe-session", fallback="session_load_failed"):
        snapshot = await aggregator.load()
    return snapshot.to_dict(ctx.profile_id)


@router.post("/swipe/sessions/{session_id}/votes")
async def cast_vote(
    session_id: str,
    req: VoteRequest,
    ctx: RequestContext = Depends(get_request_context),
) -> dict[str, Any]:
    aggregator = _aggregator(ctx, session_id)
    async with handle_failures("swipe-vote", fallback="vote_failed"):
        snapshot = await aggregator.load()
        if req.session_recipe_id not in {r.id for r in snapshot.recipes}:
            raise HTTPException(status_code=400, detail="invalid_session_recipe_id")
        vote = await aggregator.vote(req.session_recipe_id, req.liked)
    return {"vote": vote.model_dump(mode="json"), "session": aggregator.snapshot.to_dict(ctx.profile_id)}


@router.post("/swipe/sessions/{session_id}/cancel")
async def cancel_session(session_id: str, ctx: RequestContext = Depends(get_request_context)) -> dict[str, Any]:
    aggregator = _aggregator(ctx, session_id)
    async with handle_failures("swipe-cancel", fallback="cancel_failed"):
        await aggregator.cancel()
    return aggregator.snapshot.to_dict(ctx.profile_id)


@router.get("/swipe/sessions/{session_id}/events")
async def session_events(session_id: str, ctx: RequestContext = Depends(get_request_context)):
    """
    Stream snapshots as server-sent events.

    One `snapshot` event per change; the stream ends after the session
    reaches completed or cancelled.
    """
    aggregator = _aggregator(ctx, session_id)
    async with handle_failures("swipe-events", fallback="session_load_failed"):
        # Access check through the caller's client before opening realtime
        await aggregator.load()
        realtime = await get_realtime_client()
        watcher = SwipeSessionWatcher(aggregator, realtime, poll_interval=settings.swipe_poll_interval_seconds)
        try:
            await watcher.start()
        except Exception:
            await watcher.close()
            raise

    async def event_generator():
        try:
            async for snapshot in watcher.snapshots():
                yield {"event": "snapshot", "data": json.dumps(snapshot)}
            yield {"event": "end", "data": json.dumps({"status": aggregator.snapshot.session.status.value})}
        finally:
            await watcher.close()
            logger.info(f"Stopped streaming swipe session {session_id}")

    return EventSourceResponse(event_generator())
