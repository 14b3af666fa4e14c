from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

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
from models.store import ConflictError, Store
from utils.clock import now_iso


logger = logging.getLogger(__name__)


def _matches(obj, **filters) -> bool:
    return all(value is None or getattr(obj, key) == value for key, value in filters.items())


class MemoryStore(Store):
    """Dict-backed store used in demo mode and by the tests.

    Insertion order doubles as creation order, which keeps "oldest first"
    listings stable when timestamps collide.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._event: Optional[Event] = Event(
            id=settings.EVENT_ID,
            name=settings.EVENT_NAME,
            start_date=settings.EVENT_START,
            end_date=settings.EVENT_END,
            updated_at=now_iso(),
        )
        self._users: Dict[str, User] = {}
        self._teams: Dict[str, Team] = {}
        self._memberships: Dict[str, Membership] = {}
        self._invites: Dict[str, Invite] = {}
        self._submissions: Dict[str, Submission] = {}
        self._votes: Dict[str, Vote] = {}
        self._scores: Dict[str, JudgeScore] = {}
        self._notifications: Dict[str, Notification] = {}

    # --- Event ---
    def get_event(self) -> Optional[Event]:
        return self._event

    def save_event(self, event: Event) -> Event:
        with self._lock:
            self._event = event.model_copy(update={"updated_at": now_iso()})
            return self._event

    # --- Users ---
    def add_user(self, user: User) -> User:
        with self._lock:
            if user.id in self._users:
                raise ConflictError(f"users: duplicate id {user.id}")
            if not user.created_at:
                user = user.model_copy(update={"created_at": now_iso()})
            self._users[user.id] = user
            return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def list_users(self, free_agents_only: bool = False) -> List[User]:
        users = list(self._users.values())
        if free_agents_only:
            users = [u for u in users if u.is_free_agent]
        return users

    def update_user(self, user_id: str, **fields) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            self._users[user_id] = user.model_copy(update=fields)
            return self._users[user_id]

    # --- Teams ---
    def _check_team_name(self, name: str, team_id: str) -> None:
        for other in self._teams.values():
            if other.id != team_id and other.name.lower() == name.strip().lower():
                raise ConflictError(f"teams: name '{name}' already taken")

    def add_team(self, team: Team) -> Team:
        with self._lock:
            if team.id in self._teams:
                raise ConflictError(f"teams: duplicate id {team.id}")
            self._check_team_name(team.name, team.id)
            if not team.created_at:
                team = team.model_copy(update={"created_at": now_iso()})
            self._teams[team.id] = team
            return team

    def get_team(self, team_id: str) -> Optional[Team]:
        return self._teams.get(team_id)

    def find_team_by_name(self, name: str) -> Optional[Team]:
        wanted = name.strip().lower()
        for team in self._teams.values():
            if team.name.lower() == wanted:
                return team
        return None

    def list_teams(self) -> List[Team]:
        # Newest first, matching the SQL ordering
        return list(reversed(list(self._teams.values())))

    def update_team(self, team_id: str, **fields) -> Optional[Team]:
        with self._lock:
            team = self._teams.get(team_id)
            if team is None:
                return None
            if "name" in fields:
                self._check_team_name(fields["name"], team_id)
            self._teams[team_id] = team.model_copy(update=fields)
            return self._teams[team_id]

    def delete_team(self, team_id: str) -> bool:
        with self._lock:
            if self._teams.pop(team_id, None) is None:
                return False
            self._memberships = {k: m for k, m in self._memberships.items() if m.team_id != team_id}
            self._invites = {k: i for k, i in self._invites.items() if i.team_id != team_id}
            submission = self._submissions.pop(team_id, None)
            if submission is not None:
                self._votes = {k: v for k, v in self._votes.items() if v.project_id != submission.id}
                self._scores = {k: s for k, s in self._scores.items() if s.project_id != submission.id}
            return True

    # --- Memberships ---
    def _check_membership(self, membership: Membership) -> None:
        for other in self._memberships.values():
            if other.id == membership.id:
                continue
            if other.team_id == membership.team_id and other.user_id == membership.user_id:
                raise ConflictError("team_members: user already linked to this team")
            if (
                membership.status == "accepted"
                and other.status == "accepted"
                and other.user_id == membership.user_id
            ):
                raise ConflictError("team_members: user already on a team")

    def add_membership(self, membership: Membership) -> Membership:
        with self._lock:
            if membership.id in self._memberships:
                raise ConflictError(f"team_members: duplicate id {membership.id}")
            if membership.team_id not in self._teams or membership.user_id not in self._users:
                raise ConflictError("team_members: unknown team or user")
            self._check_membership(membership)
            if not membership.created_at:
                membership = membership.model_copy(update={"created_at": now_iso()})
            self._memberships[membership.id] = membership
            return membership

    def get_membership(self, membership_id: str) -> Optional[Membership]:
        return self._memberships.get(membership_id)

    def list_memberships(
        self,
        team_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Membership]:
        return [
            m
            for m in self._memberships.values()
            if _matches(m, team_id=team_id, user_id=user_id, status=status)
        ]

    def update_membership(self, membership_id: str, **fields) -> Optional[Membership]:
        with self._lock:
            membership = self._memberships.get(membership_id)
            if membership is None:
                return None
            updated = membership.model_copy(update=fields)
            self._check_membership(updated)
            self._memberships[membership_id] = updated
            return updated

    def delete_membership(self, membership_id: str) -> bool:
        with self._lock:
            return self._memberships.pop(membership_id, None) is not None

    # --- Invites ---
    def add_invite(self, invite: Invite) -> Invite:
        with self._lock:
            if invite.id in self._invites:
                raise ConflictError(f"team_invites: duplicate id {invite.id}")
            if invite.team_id not in self._teams or invite.user_id not in self._users:
                raise ConflictError("team_invites: unknown team or user")
            if not invite.created_at:
                invite = invite.model_copy(update={"created_at": now_iso()})
            self._invites[invite.id] = invite
            return invite

    def get_invite(self, invite_id: str) -> Optional[Invite]:
        return self._invites.get(invite_id)

    def list_invites(
        self,
        team_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Invite]:
        return [
            i for i in self._invites.values() if _matches(i, team_id=team_id, user_id=user_id, status=status)
        ]

    def update_invite(self, invite_id: str, **fields) -> Optional[Invite]:
        with self._lock:
            invite = self._invites.get(invite_id)
            if invite is None:
                return None
            self._invites[invite_id] = invite.model_copy(update=fields)
            return self._invites[invite_id]

    # --- Submissions (keyed by team) ---
    def get_submission(self, team_id: str) -> Optional[Submission]:
        return self._submissions.get(team_id)

    def get_submission_by_id(self, project_id: str) -> Optional[Submission]:
        for submission in self._submissions.values():
            if submission.id == project_id:
                return submission
        return None

    def save_submission(self, submission: Submission) -> Submission:
        with self._lock:
            if submission.team_id not in self._teams:
                raise ConflictError("projects: unknown team")
            update = {"updated_at": now_iso()}
            existing = self._submissions.get(submission.team_id)
            if existing is not None:
                update["id"] = existing.id
            saved = submission.model_copy(update=update)
            self._submissions[submission.team_id] = saved
            return saved

    def list_submissions(self, status: Optional[str] = None) -> List[Submission]:
        return [s for s in self._submissions.values() if _matches(s, status=status)]

    # --- Votes ---
    def add_vote(self, vote: Vote) -> Vote:
        with self._lock:
            for other in self._votes.values():
                if other.user_id == vote.user_id and other.project_id == vote.project_id:
                    raise ConflictError("votes: already voted for this project")
            if not vote.created_at:
                vote = vote.model_copy(update={"created_at": now_iso()})
            self._votes[vote.id] = vote
            return vote

    def delete_vote(self, user_id: str, project_id: str) -> bool:
        with self._lock:
            for key, vote in list(self._votes.items()):
                if vote.user_id == user_id and vote.project_id == project_id:
                    del self._votes[key]
                    return True
            return False

    def list_votes(self, user_id: Optional[str] = None, project_id: Optional[str] = None) -> List[Vote]:
        return [v for v in self._votes.values() if _matches(v, user_id=user_id, project_id=project_id)]

    # --- Judge scores ---
    def save_score(self, score: JudgeScore) -> JudgeScore:
        with self._lock:
            now = now_iso()
            for key, existing in self._scores.items():
                if existing.judge_id == score.judge_id and existing.project_id == score.project_id:
                    saved = existing.model_copy(
                        update={"scores": dict(score.scores), "comments": score.comments, "updated_at": now}
                    )
                    self._scores[key] = saved
                    return saved
            saved = score.model_copy(update={"created_at": now, "updated_at": now})
            self._scores[saved.id] = saved
            return saved

    def list_scores(self, project_id: Optional[str] = None, judge_id: Optional[str] = None) -> List[JudgeScore]:
        return [s for s in self._scores.values() if _matches(s, project_id=project_id, judge_id=judge_id)]

    # --- Notifications ---
    def add_notification(self, notification: Notification) -> Notification:
        with self._lock:
            if not notification.created_at:
                notification = notification.model_copy(update={"created_at": now_iso()})
            self._notifications[notification.id] = notification
            return notification

    def get_notification(self, notification_id: str) -> Optional[Notification]:
        return self._notifications.get(notification_id)

    def list_notifications(
        self, user_id: str, limit: int = 50, kind: Optional[str] = None
    ) -> List[Notification]:
        rows = [n for n in self._notifications.values() if _matches(n, user_id=user_id, kind=kind)]
        rows.reverse()
        return rows[:limit]

    def count_unread(self, user_id: str) -> int:
        return sum(1 for n in self._notifications.values() if n.user_id == user_id and not n.read)

    def mark_notifications_read(self, user_id: str, notification_id: Optional[str] = None) -> int:
        count = 0
        with self._lock:
            for key, n in self._notifications.items():
                if n.user_id != user_id or n.read:
                    continue
                if notification_id is not None and n.id != notification_id:
                    continue
                self._notifications[key] = n.model_copy(update={"read": True})
                count += 1
        logger.debug(f"Marked {count} notification(s) read for {user_id}")
        return count
