from __future__ import annotations

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
import json

from rules.phases import Phase
from rules.roles import Role
from rules.sides import Side


def _json_list(raw) -> List[str]:
    if not raw:
        return []
    if isinstance(raw, list):
        return raw
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return value if isinstance(value, list) else []


def _json_dict(raw) -> Dict[str, Any]:
    if not raw:
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return {}
    return value if isinstance(value, dict) else {}


class Event(BaseModel):
    id: str
    name: str
    phase: Phase = Phase.REGISTRATION
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    motd: str = ""
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Event":
        return cls(
            id=row["id"],
            name=row["name"],
            phase=Phase(row["phase"]),
            start_date=row["start_date"],
            end_date=row["end_date"],
            motd=row["motd"] or "",
            updated_at=row["updated_at"],
        )


class User(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    callsign: str = ""
    bio: str = ""
    role: Role = Role.PARTICIPANT
    skills: List[str] = Field(default_factory=list)
    allegiance: Side = Side.NEUTRAL
    is_free_agent: bool = True
    auto_assign_opt_in: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "User":
        return cls(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            callsign=row["callsign"] or "",
            bio=row["bio"] or "",
            role=Role(row["role"]),
            skills=_json_list(row["skills"]),
            allegiance=Side(row["allegiance"] or "neutral"),
            is_free_agent=bool(row["is_free_agent"]),
            auto_assign_opt_in=bool(row["auto_assign_opt_in"]),
            created_at=row["created_at"],
        )


class Team(BaseModel):
    id: str
    name: str
    description: str = ""
    looking_for: List[str] = Field(default_factory=list)
    side: Side = Side.NEUTRAL
    max_members: int = 6
    is_auto_created: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Team":
        return cls(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            looking_for=_json_list(row["looking_for"]),
            side=Side(row["side"] or "neutral"),
            max_members=int(row["max_members"]),
            is_auto_created=bool(row["is_auto_created"]),
            created_at=row["created_at"],
        )


class Membership(BaseModel):
    """A team_members row. Pending rows are join requests."""

    id: str
    team_id: str
    user_id: str
    role: str = "member"  # 'owner', 'member'
    status: str = "accepted"  # 'pending', 'accepted'
    message: str = ""
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Membership":
        return cls(
            id=row["id"],
            team_id=row["team_id"],
            user_id=row["user_id"],
            role=row["role"],
            status=row["status"],
            message=row["message"] or "",
            created_at=row["created_at"],
        )


class Invite(BaseModel):
    id: str
    team_id: str
    user_id: str
    invited_by: str
    message: str = ""
    status: str = "pending"  # 'pending', 'accepted', 'declined', 'expired'
    expires_at: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Invite":
        return cls(
            id=row["id"],
            team_id=row["team_id"],
            user_id=row["user_id"],
            invited_by=row["invited_by"],
            message=row["message"] or "",
            status=row["status"],
            expires_at=row["expires_at"],
            created_at=row["created_at"],
        )


class Submission(BaseModel):
    id: str  # project id, what votes and scores point at
    team_id: str
    status: str = "not_started"  # 'not_started', 'draft', 'submitted'
    project_name: str = ""
    description: str = ""
    repo_url: str = ""
    demo_video_url: str = ""
    live_demo_url: str = ""
    submitted_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Submission":
        return cls(
            id=row["id"],
            team_id=row["team_id"],
            status=row["status"],
            project_name=row["project_name"] or "",
            description=row["description"] or "",
            repo_url=row["repo_url"] or "",
            demo_video_url=row["demo_video_url"] or "",
            live_demo_url=row["live_demo_url"] or "",
            submitted_at=row["submitted_at"],
            updated_at=row["updated_at"],
        )


class Vote(BaseModel):
    id: str
    user_id: str
    project_id: str
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Vote":
        return cls(id=row["id"], user_id=row["user_id"], project_id=row["project_id"], created_at=row["created_at"])


class JudgeScore(BaseModel):
    id: str
    judge_id: str
    project_id: str
    scores: Dict[str, int] = Field(default_factory=dict)
    comments: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "JudgeScore":
        return cls(
            id=row["id"],
            judge_id=row["judge_id"],
            project_id=row["project_id"],
            scores=_json_dict(row["scores"]),
            comments=row["comments"] or "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class Notification(BaseModel):
    id: str
    user_id: str
    kind: str
    title: str
    message: str = ""
    read: bool = False
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Notification":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            kind=row["kind"],
            title=row["title"],
            message=row["message"] or "",
            read=bool(row["read"]),
            created_at=row["created_at"],
        )


# --- Composite read models ---

class MemberSummary(BaseModel):
    id: str
    name: str
    callsign: str = ""
    allegiance: Side = Side.NEUTRAL
    skills: List[str] = Field(default_factory=list)


class JoinRequestView(BaseModel):
    id: str
    user_id: str
    user_name: str
    user_skills: List[str] = Field(default_factory=list)
    message: str = ""
    timestamp: Optional[str] = None


class SubmissionView(BaseModel):
    project_id: Optional[str] = None
    status: str = "not_started"
    project_name: str = ""
    description: str = ""
    repo_url: str = ""
    demo_video_url: str = ""
    live_demo_url: str = ""
    submitted_at: Optional[str] = None
    last_updated: Optional[str] = None
    participant_votes: int = 0
    judge_scores: List[JudgeScore] = Field(default_factory=list)


class TeamView(BaseModel):
    id: str
    name: str
    description: str = ""
    looking_for: List[str] = Field(default_factory=list)
    side: Side = Side.NEUTRAL
    max_members: int
    is_auto_created: bool = False
    captain_id: Optional[str] = None
    members: List[MemberSummary] = Field(default_factory=list)
    join_requests: List[JoinRequestView] = Field(default_factory=list)
    submission: SubmissionView = Field(default_factory=SubmissionView)

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.max_members
