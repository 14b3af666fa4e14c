from typing import List, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from models.schemas import User
from services import teams

from .common import current_actor, respond, store, unauthorized


router = APIRouter()


class TeamIn(BaseModel):
    name: str
    description: str = ""
    looking_for: Union[List[str], str, None] = None
    side: str = "neutral"
    max_members: Optional[int] = None


class TeamUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    looking_for: Union[List[str], str, None] = None
    side: Optional[str] = None
    max_members: Optional[int] = None


class MessageIn(BaseModel):
    message: str = ""


class DecisionIn(BaseModel):
    accept: bool


class CaptainIn(BaseModel):
    user_id: str


class InviteIn(BaseModel):
    user_id: str
    message: str = ""


@router.get("/teams")
def get_teams(side: Optional[str] = None):
    return respond(teams.list_teams(store(), side=side))


@router.post("/teams")
def post_team(body: TeamIn, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(
        teams.create_team(
            store(),
            actor,
            body.name,
            description=body.description,
            looking_for=body.looking_for,
            max_members=body.max_members,
            side=body.side,
        )
    )


@router.get("/teams/{team_id}")
def get_team(team_id: str):
    return respond(teams.get_team_view(store(), team_id))


@router.put("/teams/{team_id}")
def put_team(team_id: str, body: TeamUpdate, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(teams.update_team(store(), actor, team_id, **body.model_dump()))


@router.delete("/teams/{team_id}")
def delete_team(team_id: str, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(teams.delete_team(store(), actor, team_id))


@router.post("/teams/{team_id}/join-requests")
def post_join_request(team_id: str, body: MessageIn, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(teams.request_join(store(), actor, team_id, body.message))


@router.post("/join-requests/{request_id}/respond")
def post_request_decision(request_id: str, body: DecisionIn, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(teams.respond_to_request(store(), actor, request_id, body.accept))


@router.post("/teams/{team_id}/leave")
def post_leave(team_id: str, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(teams.leave_team(store(), actor, team_id))


@router.put("/teams/{team_id}/captain")
def put_captain(team_id: str, body: CaptainIn, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(teams.transfer_captain(store(), actor, team_id, body.user_id))


@router.delete("/teams/{team_id}/members/{user_id}")
def delete_member(team_id: str, user_id: str, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(teams.remove_member(store(), actor, team_id, user_id))


@router.post("/teams/{team_id}/invites")
def post_invite(team_id: str, body: InviteIn, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(teams.send_invite(store(), actor, team_id, body.user_id, body.message))


@router.post("/invites/{invite_id}/respond")
def post_invite_decision(invite_id: str, body: DecisionIn, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(teams.respond_to_invite(store(), actor, invite_id, body.accept))


@router.post("/admin/auto-assign")
def post_auto_assign(actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(teams.auto_assign_free_agents(store(), actor))
