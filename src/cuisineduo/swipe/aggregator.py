"""
Swipe session aggregator.

Loads a session with its recipes, votes and household members, and derives
the voting state from that snapshot:

- matches: recipes every current member liked
- members_progress: votes cast per member over the recipe count
- is_complete: every member has voted on every recipe
- unvoted_recipes: one member's remaining feed, in sort order

Derived values are properties of the snapshot, so they are recomputed on
every access and can never go stale when the snapshot is replaced.
Members are read at load time, not frozen at session creation: a member
joining mid-session raises the denominator for completion.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any

from cuisineduo.swipe.models import (
    InvalidTransition,
    Member,
    MemberProgress,
    SessionRecipe,
    SessionStatus,
    SwipeSession,
    SwipeSessionNotFound,
    Vote,
    check_transition,
    statuses_leading_to,
)
from cuisineduo.swipe.store import SwipeStore

logger = logging.getLogger(__name__)

VoteKey = tuple[str, str]  # (session_recipe_id, profile_id)


def _vote_key(vote: Vote) -> VoteKey:
    return (vote.session_recipe_id, vote.profile_id)


@dataclass(frozen=True)
class SwipeSnapshot:
    """Consistent view of one session at one moment."""

    session: SwipeSession
    recipes: list[SessionRecipe] = field(default_factory=list)
    votes: dict[VoteKey, Vote] = field(default_factory=dict)
    members: list[Member] = field(default_factory=list)

    def _liked_by_all(self, recipe_id: str) -> bool:
        for member in self.members:
            vote = self.votes.get((recipe_id, member.id))
            if vote is None or vote.vote is not True:
                return False
        return True

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    @property
    def matches(self) -> list[SessionRecipe]:
        if not self.members:
            return []
        return [recipe for recipe in self.recipes if self._liked_by_all(recipe.id)]

    @property
    def members_progress(self) -> list[MemberProgress]:
        recipe_ids = {r.id for r in self.recipes}
        total = len(self.recipes)
        progress = []
        for member in self.members:
            voted = sum(
                1
                for (recipe_id, profile_id) in self.votes
                if profile_id == member.id and recipe_id in recipe_ids
            )
            progress.append(
                MemberProgress(
                    profile_id=member.id,
                    display_name=member.display_name,
                    voted_count=voted,
                    total_count=total,
                )
            )
        return progress

    @property
    def is_complete(self) -> bool:
        if not self.members or not self.recipes:
            return False
        return all(p.voted_count >= p.total_count for p in self.members_progress)

    @property
    def is_active(self) -> bool:
        """Whether clients should still present the voting stack."""
        return not self.session.status.is_terminal

    @property
    def should_show_results(self) -> bool:
        """A cancelled session never navigates to results, whatever the votes say."""
        return self.is_complete and self.session.status != SessionStatus.CANCELLED

    def unvoted_recipes(self, profile_id: str) -> list[SessionRecipe]:
        return [r for r in self.recipes if (r.id, profile_id) not in self.votes]

    def to_dict(self, profile_id: str | None = None) -> dict[str, Any]:
        """JSON shape for the API and the event stream."""
        data: dict[str, Any] = {
            "session": self.session.model_dump(mode="json"),
            "recipes": [r.model_dump(mode="json") for r in self.recipes],
            "votes": [v.model_dump(mode="json") for v in self.votes.values()],
            "members": [m.model_dump(mode="json") for m in self.members],
            "matches": [r.id for r in self.matches],
            "members_progress": [p.model_dump() for p in self.members_progress],
            "is_complete": self.is_complete,
            "is_active": self.is_active,
            "should_show_results": self.should_show_results,
        }
        if profile_id is not None:
            data["unvoted_recipes"] = [r.id for r in self.unvoted_recipes(profile_id)]
        return data


class SwipeSessionAggregator:
    """
    Voting state for one session, seen by one member.

    The only writes are `vote` and `cancel`. Realtime events are folded in
    with the `apply_*` methods; anything structural triggers a full reload.
    """

    def __init__(self, store: SwipeStore, session_id: str, profile_id: str):
        self.store = store
        self.session_id = session_id
        self.profile_id = profile_id
        self._snapshot: SwipeSnapshot | None = None

    @property
    def snapshot(self) -> SwipeSnapshot:
        if self._snapshot is None:
            raise RuntimeError("Session not loaded; call load() first")
        return self._snapshot

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    async def load(self) -> SwipeSnapshot:
        """Fetch session, recipes, votes and members into a fresh snapshot."""
        session_row = await self.store.fetch_session(self.session_id)
        if not session_row:
            raise SwipeSessionNotFound(self.session_id)
        session = SwipeSession.model_validate(session_row)

        recipe_rows = await self.store.fetch_recipes(self.session_id)
        recipes = sorted(
            (SessionRecipe.model_validate(r) for r in recipe_rows),
            key=lambda r: r.sort_order,
        )

        vote_rows = await self.store.fetch_votes([r.id for r in recipes])
        votes: dict[VoteKey, Vote] = {}
        for row in vote_rows:
            vote = Vote.model_validate(row)
            votes[_vote_key(vote)] = vote

        member_rows = await self.store.fetch_members(session.household_id)
        members = [Member.model_validate(m) for m in member_rows]

        self._snapshot = SwipeSnapshot(session=session, recipes=recipes, votes=votes, members=members)
        logger.debug(
            f"Loaded swipe session {self.session_id}: {len(recipes)} recipes, "
            f"{len(votes)} votes, {len(members)} members"
        )
        return self._snapshot

    # =========================================================================
    # Writes
    # =========================================================================

    async def vote(self, session_recipe_id: str, liked: bool) -> Vote:
        """
        Record this member's like/dislike.

        Upsert on (session_recipe_id, profile_id): a repeat overwrites.
        Voting after completion is accepted; last write wins.
        """
        row = await self.store.upsert_vote(session_recipe_id, self.profile_id, liked)
        vote = Vote.model_validate(row)
        if self._snapshot is not None:
            self._snapshot = replace(self._snapshot, votes={**self._snapshot.votes, _vote_key(vote): vote})
        return vote

    async def cancel(self) -> SwipeSession:
        """
        Move the session to cancelled (from generating or voting).

        The write is conditional on the stored status; a session that
        reached a terminal status since the last load raises InvalidTransition.
        """
        snapshot = self._snapshot or await self.load()
        check_transition(snapshot.session.status, SessionStatus.CANCELLED)

        row = await self.store.update_session_status(
            self.session_id,
            SessionStatus.CANCELLED.value,
            only_from=[s.value for s in statuses_leading_to(SessionStatus.CANCELLED)],
        )
        if row is None:
            current = (await self.load()).session.status
            raise InvalidTransition(current, SessionStatus.CANCELLED)

        session = SwipeSession.model_validate(row)
        self._snapshot = replace(snapshot, session=session)
        logger.info(f"Swipe session {self.session_id} cancelled by {self.profile_id}")
        return session

    # =========================================================================
    # Realtime events
    # =========================================================================

    def apply_vote_event(
        self,
        event_type: str,
        record: dict[str, Any] | None,
        old_record: dict[str, Any] | None = None,
    ) -> bool:
        """
        Fold a swipe_votes change into the snapshot.

        Returns True when the snapshot changed. Votes for recipes outside
        this session are ignored.
        """
        if self._snapshot is None:
            return False
        snapshot = self._snapshot
        recipe_ids = {r.id for r in snapshot.recipes}

        if event_type == "DELETE":
            old = old_record or {}
            votes = {
                key: vote
                for key, vote in snapshot.votes.items()
                if not (
                    (old.get("id") and vote.id == old.get("id"))
                    or key == (old.get("session_recipe_id"), old.get("profile_id"))
                )
            }
            if len(votes) == len(snapshot.votes):
                return False
            self._snapshot = replace(snapshot, votes=votes)
            return True

        if not record or record.get("session_recipe_id") not in recipe_ids:
            return False

        vote = Vote.model_validate(record)
        self._snapshot = replace(snapshot, votes={**snapshot.votes, _vote_key(vote): vote})
        return True

    async def apply_session_event(
        self,
        record: dict[str, Any],
        old_record: dict[str, Any] | None = None,
    ) -> bool:
        """
        Fold a swipe_sessions UPDATE into the snapshot.

        A generating → voting move reloads everything (the recipes just
        landed). Once the session is terminal, later status writes are
        ignored: a generation finishing after a cancel does not revive it.
        """
        if self._snapshot is None:
            return False
        snapshot = self._snapshot
        incoming = SwipeSession.model_validate({**snapshot.session.model_dump(), **record})
        previous = SessionStatus((old_record or {}).get("status") or snapshot.session.status)

        if snapshot.session.status.is_terminal and incoming.status != snapshot.session.status:
            logger.info(
                f"Ignoring {incoming.status.value} for session {self.session_id}: "
                f"already {snapshot.session.status.value}"
            )
            return False

        if previous == SessionStatus.GENERATING and incoming.status == SessionStatus.VOTING:
            await self.load()
            return True

        self._snapshot = replace(snapshot, session=incoming)
        return True

    async def apply_recipe_event(self, record: dict[str, Any] | None) -> bool:
        """Recipe rows change out of band (images); reload when one of ours moves."""
        if self._snapshot is None or not record:
            return False
        if record.get("session_id") != self.session_id:
            return False
        await self.load()
        return True
