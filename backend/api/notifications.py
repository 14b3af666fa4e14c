from typing import Optional

from fastapi import APIRouter, Depends, Query

from models.schemas import User
from services import notifications

from .common import current_actor, respond, store, unauthorized


router = APIRouter()


@router.get("/notifications")
def get_notifications(limit: int = Query(50, ge=1, le=200), actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(notifications.list_notifications(store(), actor, limit=limit))


@router.put("/notifications/read-all")
def put_all_read(actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(notifications.mark_all_read(store(), actor))


@router.put("/notifications/{notification_id}/read")
def put_read(notification_id: str, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(notifications.mark_read(store(), actor, notification_id))
