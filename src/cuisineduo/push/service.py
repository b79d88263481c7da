"""
Web push for household members.

Subscriptions live in push_subscriptions as the browser's PushSubscription
JSON. Delivery goes through pywebpush with the VAPID keys from settings.
pywebpush is blocking, so each send runs in a worker thread.
"""

import asyncio
import json
import logging
from typing import Any

from pywebpush import WebPushException, webpush
from supabase import Client

from cuisineduo.config import settings

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "CuisineDuo"
PUSH_TTL = 3600
PUSH_URGENCY = "high"
EXPIRED_STATUSES = (404, 410)


class PushNotConfigured(Exception):
    """VAPID keys are missing."""


def subscribe(client: Client, *, profile_id: str, household_id: str, subscription: dict[str, Any]) -> None:
    client.table("push_subscriptions").upsert(
        {"profile_id": profile_id, "household_id": household_id, "subscription": subscription}
    ).execute()
    logger.info(f"Push subscription saved for profile {profile_id}")


def unsubscribe(client: Client, *, profile_id: str, subscription: dict[str, Any]) -> None:
    (
        client.table("push_subscriptions")
        .delete()
        .eq("profile_id", profile_id)
        .eq("subscription->>endpoint", subscription.get("endpoint"))
        .execute()
    )
    logger.info(f"Push subscription removed for profile {profile_id}")


def _status_code(error: WebPushException) -> int | None:
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)


def _deliver(subscription: dict[str, Any], payload: str) -> None:
    webpush(
        subscription_info=subscription,
        data=payload,
        vapid_private_key=settings.vapid_private_key,
        # pywebpush adds aud/exp to the claims it is given
        vapid_claims={"sub": settings.vapid_subject},
        ttl=PUSH_TTL,
        headers={"Urgency": PUSH_URGENCY},
    )


async def send_notification(
    client: Client,
    *,
    household_id: str,
    sender_profile_id: str,
    title: str | None = None,
    body: str | None = None,
    url: str | None = None,
    tag: str | None = None,
) -> dict[str, int]:
    """
    Notify every household member except the sender.

    Subscriptions the push service reports as gone (404/410) are deleted.
    Other delivery errors are logged and counted as neither sent nor expired.

    Returns:
        {sent, expired}
    """
    if not settings.push_enabled:
        raise PushNotConfigured("VAPID keys not configured")

    rows = (
        client.table("push_subscriptions")
        .select("id, subscription")
        .eq("household_id", household_id)
        .neq("profile_id", sender_profile_id)
        .execute()
        .data
        or []
    )

    message: dict[str, Any] = {"title": title or DEFAULT_TITLE, "body": body or ""}
    if url:
        message["url"] = url
    if tag:
        message["tag"] = tag
    payload = json.dumps(message, ensure_ascii=False)

    results = await asyncio.gather(
        *(asyncio.to_thread(_deliver, row["subscription"], payload) for row in rows),
        return_exceptions=True,
    )

    sent = 0
    expired_ids = []
    for row, outcome in zip(rows, results):
        if not isinstance(outcome, BaseException):
            sent += 1
        elif isinstance(outcome, WebPushException) and _status_code(outcome) in EXPIRED_STATUSES:
            expired_ids.append(row["id"])
        else:
            logger.error(f"Push send to subscription {row['id']} failed: {outcome}")

    if expired_ids:
        client.table("push_subscriptions").delete().in_("id", expired_ids).execute()
        logger.info(f"Removed {len(expired_ids)} expired push subscription(s)")

    return {"sent": sent, "expired": len(expired_ids)}
