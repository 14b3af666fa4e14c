"""Team-formation matching: teams, join requests, invites and auto-assignment.

Every mutation goes through the phase/role gate first, then ownership checks,
then the roster invariants (capacity and one accepted team per user). The
stores back the last two with ConflictError, so a race that slips past the
checks here still cannot corrupt a roster.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from config import settings
from models.schemas import (
    Invite,
    JoinRequestView,
    MemberSummary,
    Membership,
    SubmissionView,
    Team,
    TeamView,
    User,
)
from models.store import ConflictError, Store, new_id
from rules import COMPETITOR_ROLES, Action, Side, parse_side, side_matches
from services import notifications
from services.common import accepted_membership, captain_of, fail, gate, ok
from utils.clock import hours_until, iso_in
from utils.text import clean_text, split_list


logger = logging.getLogger(__name__)


# --- Read models ---

def build_team_view(store: Store, team: Team) -> TeamView:
    members: List[MemberSummary] = []
    captain_id: Optional[str] = None
    for m in store.list_memberships(team_id=team.id, status="accepted"):
        user = store.get_user(m.user_id)
        if user is None:
            continue
        if m.role == "owner":
            captain_id = user.id
        members.append(
            MemberSummary(
                id=user.id, name=user.name, callsign=user.callsign, allegiance=user.allegiance, skills=user.skills
            )
        )

    requests: List[JoinRequestView] = []
    for m in store.list_memberships(team_id=team.id, status="pending"):
        user = store.get_user(m.user_id)
        requests.append(
            JoinRequestView(
                id=m.id,
                user_id=m.user_id,
                user_name=user.name if user else "Unknown",
                user_skills=user.skills if user else [],
                message=m.message,
                timestamp=m.created_at,
            )
        )

    submission = SubmissionView()
    project = store.get_submission(team.id)
    if project is not None:
        submission = SubmissionView(
            project_id=project.id,
            status=project.status,
            project_name=project.project_name,
            description=project.description,
            repo_url=project.repo_url,
            demo_video_url=project.demo_video_url,
            live_demo_url=project.live_demo_url,
            submitted_at=project.submitted_at,
            last_updated=project.updated_at,
            participant_votes=len(store.list_votes(project_id=project.id)),
            judge_scores=store.list_scores(project_id=project.id),
        )

    return TeamView(
        id=team.id,
        name=team.name,
        description=team.description,
        looking_for=team.looking_for,
        side=team.side,
        max_members=team.max_members,
        is_auto_created=team.is_auto_created,
        captain_id=captain_id,
        members=members,
        join_requests=requests,
        submission=submission,
    )


def dump_view(view: TeamView) -> Dict[str, Any]:
    out = view.model_dump()
    out["member_count"] = len(view.members)
    out["is_full"] = view.is_full
    return out


def _team_result(store: Store, team_id: str, **extra: Any) -> Dict[str, Any]:
    team = store.get_team(team_id)
    if team is None:
        return ok(team=None, **extra)
    return ok(team=dump_view(build_team_view(store, team)), **extra)


def _side_filter(value) -> Tuple[Optional[Side], Optional[Dict[str, Any]]]:
    if value is None or value == "":
        return None, None
    try:
        return parse_side(value), None
    except ValueError as e:
        return None, fail("invalid", str(e))


def list_teams(store: Store, side=None) -> Dict[str, Any]:
    wanted, err = _side_filter(side)
    if err:
        return err
    return ok(
        teams=[
            dump_view(build_team_view(store, t))
            for t in store.list_teams()
            if side_matches(wanted, t.side)
        ]
    )


def get_team_view(store: Store, team_id: str) -> Dict[str, Any]:
    team = store.get_team(team_id)
    if team is None:
        return fail("not_found", "Team not found")
    return ok(team=dump_view(build_team_view(store, team)))


def list_free_agents(store: Store, allegiance=None) -> Dict[str, Any]:
    wanted, err = _side_filter(allegiance)
    if err:
        return err
    agents = [
        u.model_dump()
        for u in store.list_users(free_agents_only=True)
        if u.role in COMPETITOR_ROLES
        and side_matches(wanted, u.allegiance)
        and accepted_membership(store, u.id) is None
    ]
    return ok(free_agents=agents)


# --- Helpers ---

def _member_count(store: Store, team_id: str) -> int:
    return len(store.list_memberships(team_id=team_id, status="accepted"))


def _is_full(store: Store, team: Team) -> bool:
    return _member_count(store, team.id) >= team.max_members


def _captain_team(store: Store, actor: User, team_id: str) -> Tuple[Optional[Team], Optional[Dict[str, Any]]]:
    team = store.get_team(team_id)
    if team is None:
        return None, fail("not_found", "Team not found")
    captain = captain_of(store, team_id)
    if captain is None or captain.user_id != actor.id:
        return None, fail("forbidden", "Only the team captain can do that")
    return team, None


def _check_name(store: Store, name: str, team_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Team names are unique ignoring case, and the Observers name is kept for auto-assignment."""
    if not name:
        return fail("invalid", "Team name is required")
    if name.lower() == settings.OBSERVERS_TEAM_NAME.lower():
        return fail("conflict", f"'{settings.OBSERVERS_TEAM_NAME}' is reserved")
    other = store.find_team_by_name(name)
    if other is not None and other.id != team_id:
        return fail("conflict", f"A team named '{name}' already exists")
    return None


def _validate_capacity(value, minimum: int) -> Tuple[Optional[int], Optional[Dict[str, Any]]]:
    try:
        size = int(value)
    except (TypeError, ValueError):
        return None, fail("invalid", "max_members must be an integer")
    if size < minimum or size > settings.MAX_TEAM_SIZE:
        return None, fail("invalid", f"max_members must be between {minimum} and {settings.MAX_TEAM_SIZE}")
    return size, None


def _clear_pending(store: Store, user_id: str) -> None:
    """Drop a newly-teamed user's outstanding join requests and invites."""
    for m in store.list_memberships(user_id=user_id, status="pending"):
        store.delete_membership(m.id)
    for inv in store.list_invites(user_id=user_id, status="pending"):
        store.update_invite(inv.id, status="declined")


def _join(store: Store, team: Team, user_id: str) -> Optional[Dict[str, Any]]:
    """Turn a user into an accepted member, re-checking the roster rules."""
    if accepted_membership(store, user_id) is not None:
        return fail("conflict", "User is already on a team")
    if _is_full(store, team):
        return fail("capacity", f"Team '{team.name}' is full")
    # A pending request is replaced so the accepted row carries the join time
    for row in store.list_memberships(team_id=team.id, user_id=user_id):
        store.delete_membership(row.id)
    try:
        store.add_membership(
            Membership(id=new_id("mem"), team_id=team.id, user_id=user_id, status="accepted")
        )
    except ConflictError as e:
        return fail("conflict", str(e))
    store.update_user(user_id, is_free_agent=False)
    _clear_pending(store, user_id)
    return None


def _release(store: Store, user_ids: Iterable[str]) -> None:
    for uid in user_ids:
        store.update_user(uid, is_free_agent=True)


# --- Team CRUD ---

def create_team(
    store: Store,
    actor: User,
    name: str,
    description: str = "",
    looking_for=None,
    max_members=None,
    side=Side.NEUTRAL,
) -> Dict[str, Any]:
    denied = gate(store, actor, Action.CREATE_TEAM)
    if denied:
        return denied
    if accepted_membership(store, actor.id) is not None:
        return fail("conflict", "You are already on a team")
    name = clean_text(name, 80)
    err = _check_name(store, name)
    if err:
        return err
    try:
        side = parse_side(side)
    except ValueError as e:
        return fail("invalid", str(e))
    size, err = _validate_capacity(
        settings.MAX_TEAM_SIZE if max_members is None else max_members, settings.MIN_TEAM_SIZE
    )
    if err:
        return err

    team = Team(
        id=new_id("team"),
        name=name,
        description=clean_text(description, 1000),
        looking_for=split_list(looking_for),
        side=side,
        max_members=size,
    )
    try:
        store.add_team(team)
    except ConflictError as e:
        return fail("conflict", str(e))
    try:
        store.add_membership(
            Membership(id=new_id("mem"), team_id=team.id, user_id=actor.id, role="owner", status="accepted")
        )
    except ConflictError as e:
        store.delete_team(team.id)
        return fail("conflict", str(e))
    store.update_user(actor.id, is_free_agent=False)
    _clear_pending(store, actor.id)
    logger.info(f"User {actor.id} created team '{name}' ({team.id})")
    return _team_result(store, team.id)


def update_team(
    store: Store,
    actor: User,
    team_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    looking_for=None,
    max_members=None,
    side=None,
) -> Dict[str, Any]:
    denied = gate(store, actor, Action.EDIT_TEAM)
    if denied:
        return denied
    team, err = _captain_team(store, actor, team_id)
    if err:
        return err

    fields: Dict[str, Any] = {}
    if name is not None:
        name = clean_text(name, 80)
        err = _check_name(store, name, team_id)
        if err:
            return err
        fields["name"] = name
    if description is not None:
        fields["description"] = clean_text(description, 1000)
    if looking_for is not None:
        fields["looking_for"] = split_list(looking_for)
    if side is not None:
        try:
            fields["side"] = parse_side(side)
        except ValueError as e:
            return fail("invalid", str(e))
    if max_members is not None:
        size, err = _validate_capacity(max_members, settings.MIN_TEAM_SIZE)
        if err:
            return err
        if size < _member_count(store, team_id):
            return fail("invalid", "Capacity cannot be lower than the current member count")
        fields["max_members"] = size

    try:
        store.update_team(team_id, **fields)
    except ConflictError as e:
        return fail("conflict", str(e))
    return _team_result(store, team_id)


def delete_team(store: Store, actor: User, team_id: str) -> Dict[str, Any]:
    denied = gate(store, actor, Action.DELETE_TEAM)
    if denied:
        return denied
    team, err = _captain_team(store, actor, team_id)
    if err:
        return err
    member_ids = [m.user_id for m in store.list_memberships(team_id=team_id, status="accepted")]
    store.delete_team(team_id)
    _release(store, member_ids)
    logger.info(f"Team '{team.name}' ({team_id}) deleted by {actor.id}")
    return ok(deleted=team_id)


# --- Join requests ---

def request_join(store: Store, actor: User, team_id: str, message: str = "") -> Dict[str, Any]:
    denied = gate(store, actor, Action.REQUEST_JOIN)
    if denied:
        return denied
    team = store.get_team(team_id)
    if team is None:
        return fail("not_found", "Team not found")
    if team.is_auto_created:
        return fail("conflict", "This team is filled automatically")
    if accepted_membership(store, actor.id) is not None:
        return fail("conflict", "You are already on a team")
    if _is_full(store, team):
        return fail("capacity", f"Team '{team.name}' is full")
    if store.list_memberships(team_id=team_id, user_id=actor.id):
        return fail("conflict", "You already asked to join this team")

    request = Membership(
        id=new_id("mem"),
        team_id=team_id,
        user_id=actor.id,
        status="pending",
        message=clean_text(message, 500),
    )
    try:
        store.add_membership(request)
    except ConflictError as e:
        return fail("conflict", str(e))

    captain = captain_of(store, team_id)
    if captain is not None:
        notifications.notify(
            store,
            captain.user_id,
            notifications.JOIN_REQUEST,
            "New join request",
            f"{actor.name} wants to join {team.name}.",
        )
    return _team_result(store, team_id, request_id=request.id)


def respond_to_request(store: Store, actor: User, request_id: str, accept: bool) -> Dict[str, Any]:
    denied = gate(store, actor, Action.RESPOND_REQUEST)
    if denied:
        return denied
    request = store.get_membership(request_id)
    if request is None or request.status != "pending":
        return fail("not_found", "Join request not found")
    team, err = _captain_team(store, actor, request.team_id)
    if err:
        return err

    if not accept:
        store.delete_membership(request.id)
        notifications.notify(
            store,
            request.user_id,
            notifications.REQUEST_DECLINED,
            "Join request declined",
            f"Your request to join {team.name} was declined.",
        )
        return _team_result(store, team.id)

    if accepted_membership(store, request.user_id) is not None:
        store.delete_membership(request.id)
        return fail("conflict", "That user already joined another team")
    err = _join(store, team, request.user_id)
    if err:
        return err
    notifications.notify(
        store,
        request.user_id,
        notifications.REQUEST_ACCEPTED,
        "Welcome to the team!",
        f"Your request to join {team.name} was accepted.",
    )
    logger.info(f"User {request.user_id} joined team {team.id} via request")
    return _team_result(store, team.id)


# --- Invites ---

def _expire_stale(store: Store, invites: Iterable[Invite]) -> List[Invite]:
    live: List[Invite] = []
    for inv in invites:
        remaining = hours_until(inv.expires_at)
        if inv.status == "pending" and remaining is not None and remaining <= 0:
            store.update_invite(inv.id, status="expired")
            continue
        live.append(inv)
    return live


def send_invite(store: Store, actor: User, team_id: str, user_id: str, message: str = "") -> Dict[str, Any]:
    denied = gate(store, actor, Action.SEND_INVITE)
    if denied:
        return denied
    team, err = _captain_team(store, actor, team_id)
    if err:
        return err
    target = store.get_user(user_id)
    if target is None:
        return fail("not_found", "User not found")
    if not target.is_free_agent or accepted_membership(store, user_id) is not None:
        return fail("conflict", f"{target.name} is not a free agent")
    if _is_full(store, team):
        return fail("capacity", f"Team '{team.name}' is full")
    if _expire_stale(store, store.list_invites(team_id=team_id, user_id=user_id, status="pending")):
        return fail("conflict", f"{target.name} already has a pending invite from this team")

    invite = Invite(
        id=new_id("inv"),
        team_id=team_id,
        user_id=user_id,
        invited_by=actor.id,
        message=clean_text(message, 500),
        expires_at=iso_in(settings.INVITE_TTL_HOURS),
    )
    try:
        store.add_invite(invite)
    except ConflictError as e:
        return fail("conflict", str(e))
    notifications.notify(
        store,
        user_id,
        notifications.TEAM_INVITE,
        "Team invite",
        f"{actor.name} invited you to join {team.name}.",
    )
    logger.info(f"Team {team_id} invited {user_id}")
    return ok(invite=invite.model_dump())


def list_invites_for_user(store: Store, user_id: str) -> Dict[str, Any]:
    invites = _expire_stale(store, store.list_invites(user_id=user_id, status="pending"))
    out = []
    for inv in invites:
        team = store.get_team(inv.team_id)
        row = inv.model_dump()
        row["team_name"] = team.name if team else None
        out.append(row)
    return ok(invites=out)


def respond_to_invite(store: Store, actor: User, invite_id: str, accept: bool) -> Dict[str, Any]:
    denied = gate(store, actor, Action.RESPOND_INVITE)
    if denied:
        return denied
    invite = store.get_invite(invite_id)
    if invite is None:
        return fail("not_found", "Invite not found")
    if invite.user_id != actor.id:
        return fail("forbidden", "This invite is for someone else")
    if invite.status != "pending":
        return fail("conflict", f"Invite is already {invite.status}")
    if not _expire_stale(store, [invite]):
        return fail("conflict", "Invite has expired")
    team = store.get_team(invite.team_id)
    if team is None:
        return fail("not_found", "Team not found")

    if not accept:
        store.update_invite(invite.id, status="declined")
        notifications.notify(
            store,
            invite.invited_by,
            notifications.INVITE_DECLINED,
            "Invite declined",
            f"{actor.name} declined the invite to {team.name}.",
        )
        return ok(invite=store.get_invite(invite.id).model_dump(), team=None)

    err = _join(store, team, actor.id)
    if err:
        return err
    store.update_invite(invite.id, status="accepted")
    notifications.notify(
        store,
        invite.invited_by,
        notifications.INVITE_ACCEPTED,
        "Invite accepted",
        f"{actor.name} joined {team.name}.",
    )
    logger.info(f"User {actor.id} joined team {team.id} via invite")
    return _team_result(store, team.id, invite=store.get_invite(invite.id).model_dump())


# --- Auto-assignment ---

def _observers_team(store: Store) -> Team:
    team = store.get_team(settings.OBSERVERS_TEAM_ID)
    if team is not None:
        return team
    return store.add_team(
        Team(
            id=settings.OBSERVERS_TEAM_ID,
            name=settings.OBSERVERS_TEAM_NAME,
            description="Auto-assigned free agents who opted in to join the hack.",
            max_members=settings.MAX_TEAM_SIZE,
            is_auto_created=True,
        )
    )


def auto_assign_free_agents(store: Store, actor: Optional[User] = None) -> Dict[str, Any]:
    """Move every opted-in, unteamed free agent into the Observers team.

    Safe to run repeatedly: already-assigned users are skipped. Capacity is
    raised to fit before anyone is added.
    """
    if actor is not None:
        denied = gate(store, actor, Action.AUTO_ASSIGN)
        if denied:
            return denied

    candidates = [
        u
        for u in store.list_users(free_agents_only=True)
        if u.auto_assign_opt_in and accepted_membership(store, u.id) is None
    ]
    if not candidates:
        return _team_result(store, settings.OBSERVERS_TEAM_ID, assigned=[])

    try:
        team = _observers_team(store)
    except ConflictError as e:
        return fail("conflict", str(e))
    needed = _member_count(store, team.id) + len(candidates)
    if needed > team.max_members:
        team = store.update_team(team.id, max_members=needed) or team

    assigned: List[str] = []
    for user in candidates:
        err = _join(store, team, user.id)
        if err:
            logger.warning(f"Auto-assign skipped {user.id}: {err['error']}")
            continue
        notifications.notify(
            store,
            user.id,
            notifications.AUTO_ASSIGNED,
            "You've been assigned to a team",
            f"You were placed on {team.name} so you can take part in the hack.",
        )
        assigned.append(user.id)

    logger.info(f"Auto-assigned {len(assigned)} free agent(s) to {team.id}")
    return _team_result(store, team.id, assigned=assigned)


# --- Roster changes ---

def leave_team(store: Store, actor: User, team_id: str) -> Dict[str, Any]:
    denied = gate(store, actor, Action.LEAVE_TEAM)
    if denied:
        return denied
    membership = accepted_membership(store, actor.id)
    if membership is None or membership.team_id != team_id:
        return fail("not_found", "You are not on this team")

    store.delete_membership(membership.id)
    store.update_user(actor.id, is_free_agent=True)
    remaining = store.list_memberships(team_id=team_id, status="accepted")
    if not remaining:
        store.delete_team(team_id)
        logger.info(f"Team {team_id} deleted after its last member left")
        return ok(team=None, deleted=True)

    if membership.role == "owner":
        successor = remaining[0]
        store.update_membership(successor.id, role="owner")
        notifications.notify(
            store,
            successor.user_id,
            notifications.CAPTAIN_TRANSFERRED,
            "You are now team captain",
            f"{actor.name} left the team and passed captaincy to you.",
        )
        logger.info(f"Captaincy of {team_id} passed to {successor.user_id}")
    return _team_result(store, team_id, deleted=False)


def transfer_captain(store: Store, actor: User, team_id: str, new_captain_id: str) -> Dict[str, Any]:
    denied = gate(store, actor, Action.TRANSFER_CAPTAIN)
    if denied:
        return denied
    team, err = _captain_team(store, actor, team_id)
    if err:
        return err
    if new_captain_id == actor.id:
        return fail("invalid", "You are already the captain")
    target = store.list_memberships(team_id=team_id, user_id=new_captain_id, status="accepted")
    if not target:
        return fail("not_found", "New captain must be a member of the team")

    current = captain_of(store, team_id)
    store.update_membership(current.id, role="member")
    store.update_membership(target[0].id, role="owner")
    logger.info(f"Captaincy of {team_id} transferred from {actor.id} to {new_captain_id}")
    return _team_result(store, team_id)


def remove_member(store: Store, actor: User, team_id: str, user_id: str) -> Dict[str, Any]:
    denied = gate(store, actor, Action.REMOVE_MEMBER)
    if denied:
        return denied
    team, err = _captain_team(store, actor, team_id)
    if err:
        return err
    if user_id == actor.id:
        return fail("invalid", "Captains cannot remove themselves; leave the team instead")
    rows = store.list_memberships(team_id=team_id, user_id=user_id, status="accepted")
    if not rows:
        return fail("not_found", "User is not a member of this team")
    store.delete_membership(rows[0].id)
    store.update_user(user_id, is_free_agent=True)
    logger.info(f"User {user_id} removed from {team_id} by {actor.id}")
    return _team_result(store, team_id)


__all__ = [
    "build_team_view",
    "dump_view",
    "list_teams",
    "get_team_view",
    "list_free_agents",
    "create_team",
    "update_team",
    "delete_team",
    "request_join",
    "respond_to_request",
    "send_invite",
    "list_invites_for_user",
    "respond_to_invite",
    "auto_assign_free_agents",
    "leave_team",
    "transfer_captain",
    "remove_member",
]
