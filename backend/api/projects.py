from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from models.schemas import User
from services import judging, results, submissions, voting

from .common import current_actor, respond, store, unauthorized


router = APIRouter()


class SubmissionIn(BaseModel):
    project_name: Optional[str] = None
    description: Optional[str] = None
    repo_url: Optional[str] = None
    demo_video_url: Optional[str] = None
    live_demo_url: Optional[str] = None
    submit: bool = False


class VoteIn(BaseModel):
    project_id: str


class ScoreIn(BaseModel):
    project_id: str
    scores: Dict[str, int]
    comments: str = ""


@router.put("/teams/{team_id}/submission")
def put_submission(team_id: str, body: SubmissionIn, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    data = body.model_dump(exclude={"submit"}, exclude_none=True)
    return respond(submissions.save_submission(store(), actor, team_id, data, submit=body.submit))


@router.post("/votes")
def post_vote(body: VoteIn, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(voting.toggle_vote(store(), actor, body.project_id))


@router.get("/votes")
def get_votes(actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(voting.vote_summary(store(), actor.id))


@router.get("/judging/criteria")
def get_criteria():
    return respond(judging.list_criteria())


@router.post("/scores")
def post_score(body: ScoreIn, actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(judging.submit_score(store(), actor, body.project_id, body.scores, body.comments))


@router.get("/scores")
def get_scores(project_id: Optional[str] = Query(None), actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(judging.list_scores(store(), actor, project_id))


@router.get("/results")
def get_results(actor: Optional[User] = Depends(current_actor)):
    if actor is None:
        return unauthorized()
    return respond(results.compute_results(store(), actor))
