"""CuisineDuo - Web push notifications."""

from cuisineduo.push.service import PushNotConfigured, send_notification, subscribe, unsubscribe

__all__ = ["PushNotConfigured", "send_notification", "subscribe", "unsubscribe"]
