from __future__ import annotations

import logging
from typing import Any, Dict

from models.schemas import Notification, User
from models.store import Store, new_id
from services.common import fail, ok


logger = logging.getLogger(__name__)

# Notification kinds
JOIN_REQUEST = "join_request"
REQUEST_ACCEPTED = "request_accepted"
REQUEST_DECLINED = "request_declined"
TEAM_INVITE = "team_invite"
INVITE_ACCEPTED = "invite_accepted"
INVITE_DECLINED = "invite_declined"
AUTO_ASSIGNED = "auto_assigned"
FREE_AGENT_REMINDER = "free_agent_reminder"
CAPTAIN_TRANSFERRED = "captain_transferred"


def notify(store: Store, user_id: str, kind: str, title: str, message: str = "") -> Notification:
    notification = store.add_notification(
        Notification(id=new_id("ntf"), user_id=user_id, kind=kind, title=title, message=message)
    )
    logger.debug(f"Notified {user_id}: {kind}")
    return notification


def list_notifications(store: Store, actor: User, limit: int = 50) -> Dict[str, Any]:
    rows = store.list_notifications(actor.id, limit=limit)
    return ok(
        notifications=[n.model_dump() for n in rows],
        unread_count=store.count_unread(actor.id),
    )


def mark_read(store: Store, actor: User, notification_id: str) -> Dict[str, Any]:
    notification = store.get_notification(notification_id)
    if notification is None:
        return fail("not_found", "Notification not found")
    if notification.user_id != actor.id:
        return fail("forbidden", "Not your notification")
    store.mark_notifications_read(actor.id, notification_id)
    return ok(id=notification_id)


def mark_all_read(store: Store, actor: User) -> Dict[str, Any]:
    updated = store.mark_notifications_read(actor.id)
    return ok(updated=updated)


__all__ = ["notify", "list_notifications", "mark_read", "mark_all_read"]
