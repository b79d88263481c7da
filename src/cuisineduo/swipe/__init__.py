"""
CuisineDuo - Swipe to match.

A household votes like/dislike on candidate recipes; a recipe every member
liked is a match.
"""

from cuisineduo.swipe.aggregator import SwipeSessionAggregator, SwipeSnapshot
from cuisineduo.swipe.models import (
    InvalidTransition,
    Member,
    MemberProgress,
    SessionRecipe,
    SessionStatus,
    SwipeSession,
    SwipeSessionNotFound,
    Vote,
)
from cuisineduo.swipe.realtime import RealtimeFallbackController, SyncMode

__all__ = [
    "InvalidTransition",
    "Member",
    "MemberProgress",
    "RealtimeFallbackController",
    "SessionRecipe",
    "SessionStatus",
    "SwipeSession",
    "SwipeSessionAggregator",
    "SwipeSessionNotFound",
    "SwipeSnapshot",
    "SyncMode",
    "Vote",
]
