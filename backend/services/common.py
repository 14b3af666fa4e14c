from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from models.schemas import User
from models.store import Store
from rules import Action, check


logger = logging.getLogger(__name__)


def ok(**payload: Any) -> Dict[str, Any]:
    return {"ok": True, **payload}


def fail(reason: str, error: str) -> Dict[str, Any]:
    """Business-rule rejection; logged and returned, never raised."""
    logger.info(f"Rejected ({reason}): {error}")
    return {"ok": False, "reason": reason, "error": error}


def current_phase(store: Store):
    event = store.get_event()
    if event is None:
        raise RuntimeError("Event row missing; was init_db() run?")
    return event.phase


def gate(store: Store, actor: User, action: Action) -> Optional[Dict[str, Any]]:
    """Returns a failure dict when the actor may not perform `action` right now."""
    decision = check(action, current_phase(store), actor.role)
    if decision.allowed:
        return None
    return fail(decision.reason or "forbidden", decision.message or "Not allowed")


def accepted_membership(store: Store, user_id: str):
    rows = store.list_memberships(user_id=user_id, status="accepted")
    return rows[0] if rows else None


def captain_of(store: Store, team_id: str):
    for m in store.list_memberships(team_id=team_id, status="accepted"):
        if m.role == "owner":
            return m
    return None
