"""Storage interface shared by the SQLite and in-memory backends."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import List, Optional

from config import settings
from models.schemas import (
    Event,
    Invite,
    JudgeScore,
    Membership,
    Notification,
    Submission,
    Team,
    User,
    Vote,
)


class ConflictError(Exception):
    """A uniqueness rule was violated (duplicate vote, second active team, ...)."""


def new_id(prefix: str = "") -> str:
    ident = str(uuid.uuid4())
    return f"{prefix}-{ident}" if prefix else ident


class Store(ABC):
    """Every read and write the services need.

    Implementations enforce the storage invariants themselves and raise
    ConflictError when one would be broken:
      - one team_members row per (team, user)
      - at most one accepted membership per user
      - one vote per (user, project)
      - one submission per team
    Judge scores are upserted per (judge, project).
    """

    # --- Event ---
    @abstractmethod
    def get_event(self) -> Optional[Event]: ...

    @abstractmethod
    def save_event(self, event: Event) -> Event: ...

    # --- Users ---
    @abstractmethod
    def add_user(self, user: User) -> User: ...

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def list_users(self, free_agents_only: bool = False) -> List[User]: ...

    @abstractmethod
    def update_user(self, user_id: str, **fields) -> Optional[User]: ...

    # --- Teams ---
    @abstractmethod
    def add_team(self, team: Team) -> Team: ...

    @abstractmethod
    def get_team(self, team_id: str) -> Optional[Team]: ...

    @abstractmethod
    def find_team_by_name(self, name: str) -> Optional[Team]: ...

    @abstractmethod
    def list_teams(self) -> List[Team]: ...

    @abstractmethod
    def update_team(self, team_id: str, **fields) -> Optional[Team]: ...

    @abstractmethod
    def delete_team(self, team_id: str) -> bool:
        """Delete a team with its memberships, invites, submission, and the submission's votes/scores."""

    # --- Memberships / join requests ---
    @abstractmethod
    def add_membership(self, membership: Membership) -> Membership: ...

    @abstractmethod
    def get_membership(self, membership_id: str) -> Optional[Membership]: ...

    @abstractmethod
    def list_memberships(
        self,
        team_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Membership]:
        """Oldest first."""

    @abstractmethod
    def update_membership(self, membership_id: str, **fields) -> Optional[Membership]: ...

    @abstractmethod
    def delete_membership(self, membership_id: str) -> bool: ...

    # --- Invites ---
    @abstractmethod
    def add_invite(self, invite: Invite) -> Invite: ...

    @abstractmethod
    def get_invite(self, invite_id: str) -> Optional[Invite]: ...

    @abstractmethod
    def list_invites(
        self,
        team_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Invite]: ...

    @abstractmethod
    def update_invite(self, invite_id: str, **fields) -> Optional[Invite]: ...

    # --- Submissions ---
    @abstractmethod
    def get_submission(self, team_id: str) -> Optional[Submission]: ...

    @abstractmethod
    def get_submission_by_id(self, project_id: str) -> Optional[Submission]: ...

    @abstractmethod
    def save_submission(self, submission: Submission) -> Submission:
        """Insert or update the team's single submission; the project id never changes."""

    @abstractmethod
    def list_submissions(self, status: Optional[str] = None) -> List[Submission]: ...

    # --- Votes ---
    @abstractmethod
    def add_vote(self, vote: Vote) -> Vote: ...

    @abstractmethod
    def delete_vote(self, user_id: str, project_id: str) -> bool: ...

    @abstractmethod
    def list_votes(self, user_id: Optional[str] = None, project_id: Optional[str] = None) -> List[Vote]: ...

    # --- Judge scores ---
    @abstractmethod
    def save_score(self, score: JudgeScore) -> JudgeScore:
        """Upsert by (judge, project); the latest write wins."""

    @abstractmethod
    def list_scores(self, project_id: Optional[str] = None, judge_id: Optional[str] = None) -> List[JudgeScore]: ...

    # --- Notifications ---
    @abstractmethod
    def add_notification(self, notification: Notification) -> Notification: ...

    @abstractmethod
    def get_notification(self, notification_id: str) -> Optional[Notification]: ...

    @abstractmethod
    def list_notifications(
        self, user_id: str, limit: int = 50, kind: Optional[str] = None
    ) -> List[Notification]:
        """Newest first."""

    @abstractmethod
    def count_unread(self, user_id: str) -> int: ...

    @abstractmethod
    def mark_notifications_read(self, user_id: str, notification_id: Optional[str] = None) -> int: ...


_memory_store: Optional[Store] = None


def get_store() -> Store:
    """Demo mode shares one in-memory store per process; otherwise SQLite."""
    global _memory_store
    if settings.DEMO_MODE:
        if _memory_store is None:
            from models.memory import MemoryStore

            _memory_store = MemoryStore()
        return _memory_store
    from models.db import SqliteStore

    return SqliteStore()


def reset_store() -> None:
    global _memory_store
    _memory_store = None


__all__ = ["Store", "ConflictError", "new_id", "get_store", "reset_store"]
