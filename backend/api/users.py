from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Form
from pydantic import BaseModel

from models.schemas import User
from services import reminders, teams, users

from .common import current_actor, respond, store, unauthorized


router = APIRouter()


class UserIn(BaseModel):
    name: str
    email: Optional[str] = None
    role: str = "participant"
    skills: Union[List[str], str, None] = None
    callsign: str = ""
    bio: str = ""
    allegiance: str = "neutral"


class ProfileIn(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    skills: Union[List[str], str, None] = None
    callsign: Optional[str] = None
    bio: Optional[str] = None
    allegiance: Optional[str] = None


@router.post("/users")
def post_user(body: UserIn):
    return respond(
        users.register_user(
            store(),
            body.name,
            email=body.email,
            role=body.role,
            skills=body.skills,
            callsign=body.callsign,
            bio=body.bio,
            allegiance=body.allegiance,
        )
    )


@router.get("/users")
def get_users():
    return respond(users.list_users(store()))


@router.get("/users/{user_id}")
def get_user(user_id: str):
    return respond(users.get_user(store(), user_id))


@router.put("/users/{user_id}")
def put_user(user_id: str, body: ProfileIn, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(users.update_profile(store(), actor, user_id, **body.model_dump()))


@router.put("/users/{user_id}/role")
def put_role(user_id: str, role: str = Form(...), actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(users.change_role(store(), actor, user_id, role))


@router.put("/users/{user_id}/auto-assign")
def put_auto_assign(user_id: str, opt_in: bool = Form(...), actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    if actor.id != user_id:
        return respond({"ok": False, "reason": "forbidden", "error": "You can only change your own opt-in"})
    return respond(reminders.set_auto_assign_opt_in(store(), actor, opt_in))


@router.get("/users/{user_id}/status")
def get_status(user_id: str):
    return respond(reminders.user_status(store(), user_id))


@router.get("/users/{user_id}/invites")
def get_user_invites(user_id: str, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    if actor.id != user_id:
        return respond({"ok": False, "reason": "forbidden", "error": "You can only see your own invites"})
    return respond(teams.list_invites_for_user(store(), user_id))


@router.get("/free-agents")
def get_free_agents(allegiance: Optional[str] = None):
    return respond(teams.list_free_agents(store(), allegiance=allegiance))
