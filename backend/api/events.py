from typing import Optional

from fastapi import APIRouter, Depends, Form

from models.schemas import User
from rules import ROLE_PERMISSIONS
from services import event as event_service

from .common import current_actor, respond, store, unauthorized


router = APIRouter()


@router.get("/event")
def get_event():
    return respond(event_service.get_event(store()))


@router.put("/event/phase")
def put_phase(phase: str = Form(...), actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(event_service.change_phase(store(), actor, phase))


@router.put("/event/motd")
def put_motd(message: str = Form(""), actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(event_service.update_motd(store(), actor, message))


@router.get("/event/dashboard")
def get_dashboard(actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(event_service.event_dashboard(store(), actor))


@router.get("/phases")
def get_phases():
    return respond(event_service.list_phases())


@router.get("/roles")
def get_roles():
    return {"ok": True, "roles": [p.model_dump() for p in ROLE_PERMISSIONS.values()]}
