from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from config import settings
from models.schemas import User
from models.store import ConflictError, Store, new_id
from rules import Action, Role, Side, parse_role, parse_side
from services.common import fail, gate, ok
from utils.text import clean_text, split_list


logger = logging.getLogger(__name__)


def _skills(raw) -> tuple[Optional[list], Optional[Dict[str, Any]]]:
    skills = split_list(raw)
    if len(skills) > settings.MAX_SKILLS:
        return None, fail("invalid", f"At most {settings.MAX_SKILLS} skills allowed")
    return skills, None


def register_user(
    store: Store,
    name: str,
    email: Optional[str] = None,
    role=Role.PARTICIPANT,
    skills=None,
    callsign: str = "",
    bio: str = "",
    user_id: Optional[str] = None,
    allegiance=Side.NEUTRAL,
) -> Dict[str, Any]:
    name = clean_text(name, 120)
    if not name:
        return fail("invalid", "Name is required")
    try:
        role = parse_role(role)
        allegiance = parse_side(allegiance)
    except ValueError as e:
        return fail("invalid", str(e))
    skill_list, err = _skills(skills)
    if err:
        return err

    user = User(
        id=user_id or new_id("user"),
        name=name,
        email=clean_text(email) or None,
        callsign=clean_text(callsign, 60),
        bio=clean_text(bio, 1000),
        role=role,
        skills=skill_list,
        allegiance=allegiance,
        is_free_agent=True,
    )
    try:
        store.add_user(user)
    except ConflictError as e:
        return fail("conflict", str(e))
    logger.info(f"Registered user {user.id} as {role.value}")
    return ok(user=store.get_user(user.id).model_dump())


def get_user(store: Store, user_id: str) -> Dict[str, Any]:
    user = store.get_user(user_id)
    if user is None:
        return fail("not_found", "User not found")
    return ok(user=user.model_dump())


def list_users(store: Store) -> Dict[str, Any]:
    return ok(users=[u.model_dump() for u in store.list_users()])


def update_profile(store: Store, actor: User, user_id: str, **changes: Any) -> Dict[str, Any]:
    """Users edit their own name, callsign, bio, email, skills and allegiance."""
    if actor.id != user_id:
        return fail("forbidden", "You can only edit your own profile")
    if store.get_user(user_id) is None:
        return fail("not_found", "User not found")

    fields: Dict[str, Any] = {}
    if changes.get("name") is not None:
        name = clean_text(changes["name"], 120)
        if not name:
            return fail("invalid", "Name is required")
        fields["name"] = name
    if changes.get("email") is not None:
        fields["email"] = clean_text(changes["email"]) or None
    if changes.get("callsign") is not None:
        fields["callsign"] = clean_text(changes["callsign"], 60)
    if changes.get("bio") is not None:
        fields["bio"] = clean_text(changes["bio"], 1000)
    if changes.get("skills") is not None:
        skill_list, err = _skills(changes["skills"])
        if err:
            return err
        fields["skills"] = skill_list
    if changes.get("allegiance") is not None:
        try:
            fields["allegiance"] = parse_side(changes["allegiance"])
        except ValueError as e:
            return fail("invalid", str(e))

    user = store.update_user(user_id, **fields)
    return ok(user=user.model_dump())


def change_role(store: Store, actor: User, user_id: str, role) -> Dict[str, Any]:
    denied = gate(store, actor, Action.CHANGE_ROLE)
    if denied:
        return denied
    if actor.id == user_id:
        return fail("forbidden", "Admins cannot change their own role")
    try:
        new_role = parse_role(role)
    except ValueError as e:
        return fail("invalid", str(e))
    user = store.update_user(user_id, role=new_role)
    if user is None:
        return fail("not_found", "User not found")
    logger.info(f"Role of {user_id} changed to {new_role.value} by {actor.id}")
    return ok(user=user.model_dump())


def resolve_actor(store: Store, user_id: Optional[str], impersonate_role=None) -> Optional[User]:
    """Load the acting user. In dev mode a role override applies to this request only."""
    if not user_id:
        return None
    user = store.get_user(user_id)
    if user is None:
        return None
    if impersonate_role and settings.DEV_MODE:
        try:
            role = parse_role(impersonate_role)
        except ValueError:
            logger.warning(f"Ignoring unknown impersonated role {impersonate_role!r}")
            return user
        user = user.model_copy(update={"role": role})
    return user


__all__ = ["register_user", "get_user", "list_users", "update_profile", "change_role", "resolve_actor"]
