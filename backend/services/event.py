from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from config import settings
from models.schemas import User
from models.store import Store
from rules import (
    PHASE_ORDER,
    PHASES,
    Action,
    Phase,
    available_views,
    can_transition,
    crosses,
    get_motd,
    parse_phase,
    permissions_for,
)
from services import reminders, teams
from services.common import fail, gate, ok
from utils.text import clean_text


logger = logging.getLogger(__name__)


def get_event(store: Store) -> Dict[str, Any]:
    event = store.get_event()
    if event is None:
        return fail("not_found", "Event not configured")
    out = event.model_dump()
    out["phase_info"] = dict(PHASES[event.phase])
    return ok(event=out)


def change_phase(store: Store, actor: User, target, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Admin-only forward move along the phase order, then its side effects."""
    denied = gate(store, actor, Action.CHANGE_PHASE)
    if denied:
        return denied
    try:
        new_phase = parse_phase(target)
    except ValueError as e:
        return fail("invalid", str(e))

    event = store.get_event()
    current = event.phase
    if not can_transition(current, new_phase):
        return fail(
            "invalid",
            f"Cannot move back from {current.value} to {new_phase.value}; phases only move forward",
        )
    if new_phase == current:
        return ok(event=event.model_dump(), effects={})

    event = store.save_event(event.model_copy(update={"phase": new_phase}))
    logger.info(f"Phase changed {current.value} -> {new_phase.value} by {actor.id}")

    effects: Dict[str, Any] = {}
    if new_phase is Phase.TEAM_FORMATION:
        effects["reminded"] = reminders.check_free_agent_reminders(store, now)
    if crosses(current, new_phase, Phase.HACKING):
        result = teams.auto_assign_free_agents(store)
        effects["auto_assigned"] = result.get("assigned", [])
        if not result["ok"]:
            logger.error(f"Auto-assign failed on entering {new_phase.value}: {result['error']}")
            effects["auto_assign_error"] = result["error"]
    return ok(event=event.model_dump(), effects=effects)


def update_motd(store: Store, actor: User, message: str) -> Dict[str, Any]:
    denied = gate(store, actor, Action.UPDATE_MOTD)
    if denied:
        return denied
    event = store.get_event()
    event = store.save_event(
        event.model_copy(update={"motd": clean_text(message, settings.MAX_MOTD_LENGTH)})
    )
    logger.info(f"MOTD updated by {actor.id}")
    return ok(event=event.model_dump())


def event_dashboard(store: Store, user: User, now: Optional[datetime] = None) -> Dict[str, Any]:
    event = store.get_event()
    phase = event.phase
    idx = PHASE_ORDER.index(phase)
    return ok(
        event=event.model_dump(),
        phase=dict(PHASES[phase]),
        next_phase=PHASE_ORDER[idx + 1].value if idx + 1 < len(PHASE_ORDER) else None,
        motd=get_motd(phase, user.role, event.motd),
        permissions=permissions_for(user.role).model_dump(),
        views=available_views(user.role, phase),
        show_reminder=reminders.should_show_reminder(user, event, now),
        unread_notifications=store.count_unread(user.id),
    )


def list_phases() -> Dict[str, Any]:
    return ok(phases=[dict(PHASES[p]) for p in PHASE_ORDER])


__all__ = ["get_event", "change_phase", "update_motd", "event_dashboard", "list_phases"]
