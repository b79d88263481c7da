"""Tests for web push subscriptions and delivery."""

import json
from unittest.mock import MagicMock, patch

import pytest
from pywebpush import WebPushException

from conftest import FakeSupabase, run

from cuisineduo.push.service import PushNotConfigured, send_notification, subscribe, unsubscribe

PUSH_SETTINGS = MagicMock(push_enabled=True, vapid_private_key="private", vapid_subject="mailto:test@cuisineduo.app")


def _subscription(endpoint: str) -> dict:
    return {"endpoint": f"https://push.example/{endpoint}", "keys": {"p256dh": "p", "auth": "a"}}


def _db() -> FakeSupabase:
    return FakeSupabase({"push_subscriptions": [
        {"id": "sub-alice", "profile_id": "alice", "household_id": "house-1", "subscription": _subscription("alice")},
        {"id": "sub-bob", "profile_id": "bob", "household_id": "house-1", "subscription": _subscription("bob")},
        {"id": "sub-bob-old", "profile_id": "bob", "household_id": "house-1", "subscription": _subscription("gone")},
        {"id": "sub-carol", "profile_id": "carol", "household_id": "house-2", "subscription": _subscription("carol")},
    ]})


def _fake_webpush(**kwargs):
    if kwargs["subscription_info"]["endpoint"].endswith("/gone"):
        raise WebPushException("Push failed: 410 Gone", response=MagicMock(status_code=410))


class TestSubscriptions:
    def test_subscribe_stores_subscription(self):
        db = FakeSupabase()

        subscribe(db, profile_id="alice", household_id="house-1", subscription=_subscription("alice"))

        [row] = db.rows("push_subscriptions")
        assert row["subscription"]["endpoint"] == "https://push.example/alice"

    def test_unsubscribe_matches_endpoint(self):
        db = _db()

        unsubscribe(db, profile_id="bob", subscription=_subscription("gone"))

        assert [r["id"] for r in db.rows("push_subscriptions")] == ["sub-alice", "sub-bob", "sub-carol"]


class TestSendNotification:
    """Tests for send_notification."""

    def test_sends_to_household_except_sender(self):
        db = _db()

        with patch("cuisineduo.push.service.settings", PUSH_SETTINGS), \
             patch("cuisineduo.push.service.webpush", side_effect=_fake_webpush) as mock_push:
            result = run(send_notification(
                db, household_id="house-1", sender_profile_id="alice", title="Dinner", body="Ready!", tag="chat",
            ))

        endpoints = sorted(c.kwargs["subscription_info"]["endpoint"] for c in mock_push.call_args_list)
        assert endpoints == ["https://push.example/bob", "https://push.example/gone"]
        assert result == {"sent": 1, "expired": 1}

        payload = json.loads(mock_push.call_args_list[0].kwargs["data"])
        assert payload == {"title": "Dinner", "body": "Ready!", "tag": "chat"}
        assert mock_push.call_args_list[0].kwargs["headers"] == {"Urgency": "high"}

    def test_expired_subscriptions_deleted(self):
        db = _db()

        with patch("cuisineduo.push.service.settings", PUSH_SETTINGS), \
             patch("cuisineduo.push.service.webpush", side_effect=_fake_webpush):
            run(send_notification(db, household_id="house-1", sender_profile_id="alice"))

        assert "sub-bob-old" not in [r["id"] for r in db.rows("push_subscriptions")]
        assert "sub-bob" in [r["id"] for r in db.rows("push_subscriptions")]

    def test_other_failures_neither_sent_nor_expired(self):
        db = _db()

        def failing(**kwargs):
            raise WebPushException("Push failed: 500", response=MagicMock(status_code=500))

        with patch("cuisineduo.push.service.settings", PUSH_SETTINGS), \
             patch("cuisineduo.push.service.webpush", side_effect=failing):
            result = run(send_notification(db, household_id="house-1", sender_profile_id="alice"))

        assert result == {"sent": 0, "expired": 0}
        assert len(db.rows("push_subscriptions")) == 4

    def test_default_title(self):
        db = _db()

        with patch("cuisineduo.push.service.settings", PUSH_SETTINGS), \
             patch("cuisineduo.push.service.webpush") as mock_push:
            run(send_notification(db, household_id="house-1", sender_profile_id="bob"))

        payload = json.loads(mock_push.call_args.kwargs["data"])
        assert payload == {"title": "CuisineDuo", "body": ""}

    def test_not_configured(self):
        with patch("cuisineduo.push.service.settings", MagicMock(push_enabled=False)):
            with pytest.raises(PushNotConfigured):
                run(send_notification(_db(), household_id="house-1", sender_profile_id="alice"))
