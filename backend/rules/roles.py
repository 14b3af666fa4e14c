from __future__ import annotations

from enum import Enum
from typing import Dict

from pydantic import BaseModel


class Role(str, Enum):
    PARTICIPANT = "participant"
    AMBASSADOR = "ambassador"
    JUDGE = "judge"
    ADMIN = "admin"


class Permissions(BaseModel):
    role: Role
    label: str
    description: str
    can_vote: bool = False
    can_judge: bool = False
    can_manage: bool = False
    can_view_analytics: bool = False


ROLE_PERMISSIONS: Dict[Role, Permissions] = {
    Role.PARTICIPANT: Permissions(
        role=Role.PARTICIPANT,
        label="Participant",
        description="Regular hackday attendee",
        can_vote=True,
    ),
    Role.AMBASSADOR: Permissions(
        role=Role.AMBASSADOR,
        label="Ambassador",
        description="Side recruiter with voting power",
        can_vote=True,
    ),
    Role.JUDGE: Permissions(
        role=Role.JUDGE,
        label="Judge",
        description="Official project evaluator",
        can_judge=True,
        can_view_analytics=True,
    ),
    Role.ADMIN: Permissions(
        role=Role.ADMIN,
        label="Admin",
        description="Event organizer with full access",
        can_manage=True,
        can_view_analytics=True,
    ),
}

# DB enum -> app value. Participants are stored as USER.
ROLE_MAP: Dict[str, Role] = {
    "USER": Role.PARTICIPANT,
    "AMBASSADOR": Role.AMBASSADOR,
    "JUDGE": Role.JUDGE,
    "ADMIN": Role.ADMIN,
}
REVERSE_ROLE_MAP: Dict[Role, str] = {role: key for key, role in ROLE_MAP.items()}

COMPETITOR_ROLES = frozenset({Role.PARTICIPANT, Role.AMBASSADOR})


def parse_role(value) -> Role:
    if isinstance(value, Role):
        return value
    raw = str(value or "").strip()
    if raw in ROLE_MAP:
        return ROLE_MAP[raw]
    try:
        return Role(raw.lower())
    except ValueError:
        raise ValueError(f"Unknown role: {value!r}") from None


def permissions_for(role) -> Permissions:
    """Unknown roles get participant permissions."""
    try:
        return ROLE_PERMISSIONS[parse_role(role)]
    except ValueError:
        return ROLE_PERMISSIONS[Role.PARTICIPANT]


__all__ = [
    "Role",
    "Permissions",
    "ROLE_PERMISSIONS",
    "ROLE_MAP",
    "REVERSE_ROLE_MAP",
    "COMPETITOR_ROLES",
    "parse_role",
    "permissions_for",
]
