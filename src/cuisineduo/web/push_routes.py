"""Push subscription and delivery endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from cuisineduo.push.service import send_notification, subscribe, unsubscribe
from cuisineduo.web.actions import Action, dispatch
from cuisineduo.web.context import RequestContext, get_request_context
from cuisineduo.web.errors import handle_failures
from cuisineduo.web.schemas import PushSendRequest, PushSubscriptionRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["push"])


def _household(ctx: RequestContext) -> str:
    if not ctx.household_id:
        raise HTTPException(status_code=400, detail="household_id_required")
    return ctx.household_id


@router.post("/push/subscriptions")
async def subscribe_route(req: PushSubscriptionRequest, ctx: RequestContext = Depends(get_request_context)):
    household_id = _household(ctx)
    async with handle_failures("push-subscribe", fallback="subscription_save_failed"):
        subscribe(ctx.client, profile_id=ctx.profile_id, household_id=household_id, subscription=req.subscription)
    return {"ok": True}


@router.delete("/push/subscriptions")
async def unsubscribe_route(req: PushSubscriptionRequest, ctx: RequestContext = Depends(get_request_context)):
    async with handle_failures("push-unsubscribe", fallback="subscription_delete_failed"):
        unsubscribe(ctx.client, profile_id=ctx.profile_id, subscription=req.subscription)
    return {"ok": True}


@router.post("/push/send")
async def send_route(req: PushSendRequest, ctx: RequestContext = Depends(get_request_context)) -> dict[str, int]:
    """Notify the rest of the household."""
    household_id = _household(ctx)
    async with handle_failures("push-send", fallback="push_send_failed"):
        return await send_notification(
            ctx.client,
            household_id=household_id,
            sender_profile_id=ctx.profile_id,
            title=req.title,
            body=req.body,
            url=req.url,
            tag=req.tag,
        )


PUSH_ACTIONS = {
    "subscribe": Action(PushSubscriptionRequest, subscribe_route),
    "unsubscribe": Action(PushSubscriptionRequest, unsubscribe_route),
    "send": Action(PushSendRequest, send_route),
}


@router.post("/push-notifications")
async def push_notifications(
    body: dict[str, Any] = Body(...),
    ctx: RequestContext = Depends(get_request_context),
) -> Any:
    """Single entry point: action subscribe, unsubscribe or send."""
    return await dispatch(body, PUSH_ACTIONS, ctx)
