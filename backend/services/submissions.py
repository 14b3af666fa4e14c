from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from models.schemas import Submission, User
from models.store import ConflictError, Store, new_id
from rules import Action
from services.common import captain_of, fail, gate, ok
from services.teams import build_team_view
from utils.clock import now_iso
from utils.text import clean_text, is_valid_url


logger = logging.getLogger(__name__)

LINK_FIELDS = ("repo_url", "demo_video_url", "live_demo_url")

# Everything but the live demo must be filled in before submitting
REQUIRED_FIELDS = {
    "project_name": "project name",
    "description": "description",
    "demo_video_url": "demo video URL",
    "repo_url": "repository URL",
}


def save_submission(
    store: Store,
    actor: User,
    team_id: str,
    data: Optional[Dict[str, Any]] = None,
    submit: bool = False,
) -> Dict[str, Any]:
    """Save the team's project as a draft, or submit it for voting and judging."""
    denied = gate(store, actor, Action.SUBMIT_PROJECT if submit else Action.SAVE_DRAFT)
    if denied:
        return denied
    team = store.get_team(team_id)
    if team is None:
        return fail("not_found", "Team not found")
    if team.is_auto_created:
        return fail("conflict", f"{team.name} cannot submit a project")
    captain = captain_of(store, team_id)
    if captain is None or captain.user_id != actor.id:
        return fail("forbidden", "Only the team captain can edit the submission")

    data = data or {}
    existing = store.get_submission(team_id)
    fields: Dict[str, Any] = existing.model_dump() if existing else {}

    for key in ("project_name", "description"):
        if key in data and data[key] is not None:
            fields[key] = clean_text(data[key], 200 if key == "project_name" else 5000)
    for key in LINK_FIELDS:
        if key in data and data[key] is not None:
            link = clean_text(data[key])
            if link and not is_valid_url(link):
                return fail("invalid", f"{key} must be an http(s) URL")
            fields[key] = link

    if submit:
        missing = [label for key, label in REQUIRED_FIELDS.items() if not fields.get(key)]
        if missing:
            return fail("invalid", f"Missing required fields: {', '.join(missing)}")
        fields["status"] = "submitted"
        fields["submitted_at"] = now_iso()
    elif fields.get("status") != "submitted":
        fields["status"] = "draft"

    fields["team_id"] = team_id
    fields.setdefault("id", new_id("proj"))
    try:
        saved = store.save_submission(Submission(**fields))
    except ConflictError as e:
        return fail("conflict", str(e))
    logger.info(f"Team {team_id} {'submitted' if submit else 'saved draft of'} project {saved.id}")
    view = build_team_view(store, team)
    return ok(submission=view.submission.model_dump())


__all__ = ["save_submission"]
