from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict

from config import settings
from models.schemas import User, Vote
from models.store import ConflictError, Store, new_id
from rules import Action
from services.common import accepted_membership, fail, gate, ok


logger = logging.getLogger(__name__)


def _summary(store: Store, user_id: str, project_id: str) -> Dict[str, Any]:
    user_votes = [v.project_id for v in store.list_votes(user_id=user_id)]
    return {
        "user_votes": user_votes,
        "remaining_votes": max(settings.MAX_VOTES - len(user_votes), 0),
        "project_votes": len(store.list_votes(project_id=project_id)),
    }


def toggle_vote(store: Store, actor: User, project_id: str) -> Dict[str, Any]:
    """Cast a People's Champion vote, or withdraw it when one already exists."""
    denied = gate(store, actor, Action.VOTE)
    if denied:
        return denied
    project = store.get_submission_by_id(project_id)
    if project is None:
        return fail("not_found", "Project not found")
    if project.status != "submitted":
        return fail("invalid", "Only submitted projects can receive votes")
    membership = accepted_membership(store, actor.id)
    if membership is not None and membership.team_id == project.team_id:
        return fail("forbidden", "You cannot vote for your own team")

    if store.delete_vote(actor.id, project_id):
        logger.info(f"User {actor.id} withdrew vote for {project_id}")
        return ok(voted=False, **_summary(store, actor.id, project_id))

    if len(store.list_votes(user_id=actor.id)) >= settings.MAX_VOTES:
        return fail("limit", f"You have used all {settings.MAX_VOTES} votes")
    try:
        store.add_vote(Vote(id=new_id("vote"), user_id=actor.id, project_id=project_id))
    except ConflictError as e:
        return fail("conflict", str(e))
    logger.info(f"User {actor.id} voted for {project_id}")
    return ok(voted=True, **_summary(store, actor.id, project_id))


def vote_summary(store: Store, user_id: str) -> Dict[str, Any]:
    user_votes = [v.project_id for v in store.list_votes(user_id=user_id)]
    counts = Counter(v.project_id for v in store.list_votes())
    return ok(
        user_votes=user_votes,
        remaining_votes=max(settings.MAX_VOTES - len(user_votes), 0),
        max_votes=settings.MAX_VOTES,
        counts=dict(counts),
    )


__all__ = ["toggle_vote", "vote_summary"]
