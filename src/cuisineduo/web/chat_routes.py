"""
Household chat endpoints: Miam replies, GIF search and suggestions, and
the Miam action orchestrator.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends

from cuisineduo.chat.assistant import chat_reply
from cuisineduo.chat.gifs import search_gifs, suggest_gifs
from cuisineduo.miam.orchestrator import run_orchestrator
from cuisineduo.web.context import RequestContext, get_request_context
from cuisineduo.web.errors import handle_failures, run_audited
from cuisineduo.web.schemas import ChatRequest, GifSearchRequest, GifSuggestRequest, MiamRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/chat-ai")
async def chat_ai(req: ChatRequest, ctx: RequestContext = Depends(get_request_context)) -> dict[str, Any]:
    """Miam's reply to a message in the household chat."""
    async def call() -> dict[str, Any]:
        return {"response": await chat_reply(req.message, history=req.history, lang=req.lang)}

    return await run_audited("chat-ai", ctx, req.log_payload(), call)


@router.post("/gif-search")
async def gif_search(req: GifSearchRequest, ctx: RequestContext = Depends(get_request_context)) -> dict[str, Any]:
    """Giphy search, or trending GIFs for an empty query."""
    async with handle_failures("gif-search", fallback="gif_search_failed"):
        return await search_gifs(req.query, offset=req.offset, lang=req.lang)


@router.post("/gif-suggest")
async def gif_suggest(req: GifSuggestRequest, ctx: RequestContext = Depends(get_request_context)) -> dict[str, Any]:
    """GIFs picked to match the conversation and the user's favourites."""
    return await run_audited(
        "gif-suggest",
        ctx,
        req.log_payload(),
        lambda: suggest_gifs(req.messages, gif_history=req.gif_history, lang=req.lang),
        summarize=lambda r: {"queries_used": r["queries_used"], "count": len(r["gifs"])},
    )


@router.post("/miam-orchestrator")
async def miam_orchestrator(req: MiamRequest, ctx: RequestContext = Depends(get_request_context)) -> dict[str, Any]:
    """Turn a request to Miam into client-side actions."""
    return await run_audited(
        "miam-orchestrator",
        ctx,
        req.log_payload(),
        lambda: run_orchestrator(
            req.message,
            lang=req.lang,
            current_page=req.current_page,
            client_actions=req.available_actions,
            history=req.conversation_history,
            context=req.context,
        ),
        summarize=lambda r: {"response": r["response"], "actions": r["actions"]},
    )
