"""Row models for swipe sessions."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class SessionStatus(str, Enum):
    """Lifecycle of a swipe session."""

    GENERATING = "generating"
    VOTING = "voting"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)


# Allowed status writes. Terminal states have no way out.
TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.GENERATING: frozenset({SessionStatus.VOTING, SessionStatus.CANCELLED}),
    SessionStatus.VOTING: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}


class SwipeSessionNotFound(Exception):
    """No swipe_sessions row with that id."""


class InvalidTransition(Exception):
    """Status write not allowed from the current status."""

    def __init__(self, current: SessionStatus, target: SessionStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move session from {current.value} to {target.value}")


def check_transition(current: SessionStatus, target: SessionStatus) -> None:
    if target not in TRANSITIONS[current]:
        raise InvalidTransition(current, target)


def statuses_leading_to(target: SessionStatus) -> list[SessionStatus]:
    """Statuses a session may be in for a write of `target` to apply."""
    return [status for status, targets in TRANSITIONS.items() if target in targets]


class _Row(BaseModel):
    # Store rows carry more columns than we model
    model_config = ConfigDict(extra="ignore")


class SwipeSession(_Row):
    id: str
    household_id: str
    status: SessionStatus
    meal_count: int | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SessionRecipe(_Row):
    """One candidate: an existing recipe or an inline proposal."""

    id: str
    session_id: str
    recipe_id: str | None = None
    name: str
    description: str | None = None
    category: str | None = None
    difficulty: str | None = None
    prep_time: int | None = None
    cook_time: int | None = None
    servings: int | None = None
    image_url: str | None = None
    is_existing_recipe: bool = False
    sort_order: int = 0


class Vote(_Row):
    id: str | None = None
    session_recipe_id: str
    profile_id: str
    vote: bool


class Member(_Row):
    id: str
    display_name: str | None = None


class MemberProgress(BaseModel):
    profile_id: str
    display_name: str | None = None
    voted_count: int
    total_count: int

    @property
    def ratio(self) -> float:
        if self.total_count == 0:
            return 0.0
        return self.voted_count / self.total_count
