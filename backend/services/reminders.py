"""Free-agent reminders and per-user team status."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from config import settings
from models.schemas import Event, User
from models.store import Store
from rules import COMPETITOR_ROLES, Action
from services import notifications
from services.common import accepted_membership, fail, gate, ok
from utils.clock import hours_until


logger = logging.getLogger(__name__)


def in_reminder_window(event: Optional[Event], now: Optional[datetime] = None) -> bool:
    if event is None:
        return False
    hours = hours_until(event.start_date, now)
    if hours is None:
        return False
    low, high = settings.REMINDER_WINDOW_HOURS
    return low <= hours <= high


def should_show_reminder(user: Optional[User], event: Optional[Event], now: Optional[datetime] = None) -> bool:
    if user is None or not user.is_free_agent:
        return False
    return in_reminder_window(event, now)


def _needs_reminder(store: Store, user: User) -> bool:
    if user.role not in COMPETITOR_ROLES or not user.is_free_agent:
        return False
    if accepted_membership(store, user.id) is not None:
        return False
    already = store.list_notifications(user.id, limit=1, kind=notifications.FREE_AGENT_REMINDER)
    return not already


def check_free_agent_reminders(store: Store, now: Optional[datetime] = None) -> List[str]:
    """Notify unteamed free agents once when the hack is 24-48h away. Returns notified user ids."""
    event = store.get_event()
    if not in_reminder_window(event, now):
        return []
    notified: List[str] = []
    for user in store.list_users(free_agents_only=True):
        if not _needs_reminder(store, user):
            continue
        notifications.notify(
            store,
            user.id,
            notifications.FREE_AGENT_REMINDER,
            "Hacking starts soon",
            "You are not on a team yet. Join a team or opt in to auto-assignment before hacking begins.",
        )
        notified.append(user.id)
    if notified:
        logger.info(f"Sent free-agent reminders to {len(notified)} user(s)")
    return notified


def set_auto_assign_opt_in(store: Store, actor: User, opt_in: bool) -> Dict[str, Any]:
    denied = gate(store, actor, Action.OPT_IN_AUTO_ASSIGN)
    if denied:
        return denied
    user = store.update_user(actor.id, auto_assign_opt_in=bool(opt_in))
    if user is None:
        return fail("not_found", "User not found")
    logger.info(f"User {actor.id} auto-assign opt-in set to {bool(opt_in)}")
    return ok(user=user.model_dump())


def user_status(store: Store, user_id: str) -> Dict[str, Any]:
    user = store.get_user(user_id)
    if user is None:
        return fail("not_found", "User not found")
    membership = accepted_membership(store, user_id)
    if membership is None:
        pending = store.list_invites(user_id=user_id, status="pending")
        return ok(status="free_agent", team_id=None, team_name=None, pending_invites=len(pending))

    team = store.get_team(membership.team_id)
    if team is not None and team.is_auto_created:
        status = "observer"
    elif membership.role == "owner":
        status = "captain"
    else:
        status = "member"
    return ok(
        status=status,
        team_id=membership.team_id,
        team_name=team.name if team else None,
        pending_invites=0,
    )


__all__ = [
    "in_reminder_window",
    "should_show_reminder",
    "check_free_agent_reminders",
    "set_auto_assign_opt_in",
    "user_status",
]
