"""
CuisineDuo - Database Client.

Supabase access for handlers and the swipe aggregator.
"""

from cuisineduo.db.client import get_authenticated_client, get_realtime_client, get_service_client

__all__ = [
    "get_authenticated_client",
    "get_realtime_client",
    "get_service_client",
]
