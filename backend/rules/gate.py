"""Phase/role gate for every mutating action.

Each action carries an allow-list of phases (``None`` meaning "any phase")
and a role requirement, either a set of roles or a permission flag name.
Role is checked before phase so a judge asking to vote is told it is a role
problem even outside the voting window.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, List, NamedTuple, Optional, Union

from .phases import Phase, parse_phase
from .roles import COMPETITOR_ROLES, Role, parse_role, permissions_for


class Action(str, Enum):
    CREATE_TEAM = "create_team"
    EDIT_TEAM = "edit_team"
    DELETE_TEAM = "delete_team"
    REQUEST_JOIN = "request_join"
    RESPOND_REQUEST = "respond_request"
    SEND_INVITE = "send_invite"
    RESPOND_INVITE = "respond_invite"
    LEAVE_TEAM = "leave_team"
    TRANSFER_CAPTAIN = "transfer_captain"
    REMOVE_MEMBER = "remove_member"
    OPT_IN_AUTO_ASSIGN = "opt_in_auto_assign"
    SAVE_DRAFT = "save_draft"
    SUBMIT_PROJECT = "submit_project"
    VOTE = "vote"
    JUDGE = "judge"
    VIEW_RESULTS = "view_results"
    VIEW_ANALYTICS = "view_analytics"
    CHANGE_PHASE = "change_phase"
    UPDATE_MOTD = "update_motd"
    CHANGE_ROLE = "change_role"
    AUTO_ASSIGN = "auto_assign"


class Rule(NamedTuple):
    phases: Optional[FrozenSet[Phase]]
    roles: Union[FrozenSet[Role], str]


class GateDecision(NamedTuple):
    allowed: bool
    reason: Optional[str] = None
    message: Optional[str] = None


_FORMING = frozenset({Phase.REGISTRATION, Phase.TEAM_FORMATION})
_ROSTER = frozenset({Phase.REGISTRATION, Phase.TEAM_FORMATION, Phase.HACKING})

RULES: Dict[Action, Rule] = {
    Action.CREATE_TEAM: Rule(frozenset({Phase.TEAM_FORMATION}), COMPETITOR_ROLES),
    Action.EDIT_TEAM: Rule(_FORMING, COMPETITOR_ROLES),
    Action.DELETE_TEAM: Rule(_FORMING, COMPETITOR_ROLES),
    Action.REQUEST_JOIN: Rule(_FORMING, COMPETITOR_ROLES),
    Action.RESPOND_REQUEST: Rule(_FORMING, COMPETITOR_ROLES),
    Action.SEND_INVITE: Rule(_FORMING, COMPETITOR_ROLES),
    Action.RESPOND_INVITE: Rule(_FORMING, COMPETITOR_ROLES),
    Action.LEAVE_TEAM: Rule(_ROSTER, COMPETITOR_ROLES),
    Action.TRANSFER_CAPTAIN: Rule(_ROSTER, COMPETITOR_ROLES),
    Action.REMOVE_MEMBER: Rule(_ROSTER, COMPETITOR_ROLES),
    Action.OPT_IN_AUTO_ASSIGN: Rule(_FORMING, COMPETITOR_ROLES),
    Action.SAVE_DRAFT: Rule(frozenset({Phase.HACKING, Phase.SUBMISSION}), COMPETITOR_ROLES),
    Action.SUBMIT_PROJECT: Rule(frozenset({Phase.SUBMISSION}), COMPETITOR_ROLES),
    Action.VOTE: Rule(frozenset({Phase.VOTING}), "can_vote"),
    Action.JUDGE: Rule(frozenset({Phase.JUDGING}), "can_judge"),
    Action.VIEW_RESULTS: Rule(frozenset({Phase.RESULTS}), frozenset(Role)),
    Action.VIEW_ANALYTICS: Rule(None, "can_view_analytics"),
    Action.CHANGE_PHASE: Rule(None, "can_manage"),
    Action.UPDATE_MOTD: Rule(None, "can_manage"),
    Action.CHANGE_ROLE: Rule(None, "can_manage"),
    Action.AUTO_ASSIGN: Rule(None, "can_manage"),
}


def _role_ok(rule: Rule, role: Role) -> bool:
    if isinstance(rule.roles, str):
        return bool(getattr(permissions_for(role), rule.roles))
    return role in rule.roles


def check(action, phase, role) -> GateDecision:
    action = Action(action)
    rule = RULES[action]
    current = parse_phase(phase)
    try:
        who = parse_role(role)
    except ValueError:
        return GateDecision(False, "forbidden", f"Unknown role {role!r}")

    if not _role_ok(rule, who):
        return GateDecision(False, "forbidden", f"Role '{who.value}' cannot {action.value.replace('_', ' ')}")

    if rule.phases is not None and current not in rule.phases:
        # Analytics viewers see results before the results phase
        if action is Action.VIEW_RESULTS and permissions_for(who).can_view_analytics:
            return GateDecision(True)
        allowed = ", ".join(p.value for p in Phase if p in rule.phases)
        return GateDecision(
            False,
            "phase_closed",
            f"Cannot {action.value.replace('_', ' ')} during {current.value} (allowed: {allowed})",
        )
    return GateDecision(True)


def is_allowed(action, phase, role) -> bool:
    return check(action, phase, role).allowed


def available_views(role, phase) -> List[str]:
    """Navigation entries for a role in a phase; results always last."""
    perms = permissions_for(role)
    views = ["dashboard", "schedule", "teams", "rules", "submission"]
    if perms.can_vote and parse_phase(phase) is Phase.VOTING:
        views.append("voting")
    if perms.can_judge:
        views.append("judge-scoring")
    if perms.can_view_analytics:
        views.append("analytics")
    if perms.can_manage:
        views.append("admin")
    views.append("results")
    return views


__all__ = ["Action", "Rule", "GateDecision", "RULES", "check", "is_allowed", "available_views"]
