from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from models.schemas import JudgeScore, User
from models.store import Store, new_id
from rules import Action
from services.common import fail, gate, ok
from utils.text import clean_text


logger = logging.getLogger(__name__)


class Criterion(BaseModel):
    id: str
    label: str
    description: str
    min_score: int = 1
    max_score: int = 10
    weight: float = 1.0


JUDGE_CRITERIA: List[Criterion] = [
    Criterion(id="innovation", label="Innovation", description="How novel and creative is the idea?"),
    Criterion(id="technical", label="Technical Execution", description="Quality and complexity of the build"),
    Criterion(id="presentation", label="Presentation", description="How clearly was the project communicated?"),
    Criterion(id="impact", label="Impact", description="Potential value to users or the business"),
    Criterion(id="theme", label="Theme Alignment", description="How well the project fits the event theme"),
]


def weighted_total(scores: Dict[str, int]) -> float:
    return sum(scores.get(c.id, 0) * c.weight for c in JUDGE_CRITERIA)


def list_criteria() -> Dict[str, Any]:
    return ok(criteria=[c.model_dump() for c in JUDGE_CRITERIA])


def _validate(scores: Dict[str, Any]) -> Optional[str]:
    for c in JUDGE_CRITERIA:
        if c.id not in scores:
            return f"Missing score for {c.label}"
        value = scores[c.id]
        if isinstance(value, bool) or not isinstance(value, int):
            return f"{c.label} must be a whole number"
        if not c.min_score <= value <= c.max_score:
            return f"{c.label} must be between {c.min_score} and {c.max_score}"
    unknown = set(scores) - {c.id for c in JUDGE_CRITERIA}
    if unknown:
        return f"Unknown criteria: {', '.join(sorted(unknown))}"
    return None


def submit_score(
    store: Store, actor: User, project_id: str, scores: Dict[str, Any], comments: str = ""
) -> Dict[str, Any]:
    denied = gate(store, actor, Action.JUDGE)
    if denied:
        return denied
    project = store.get_submission_by_id(project_id)
    if project is None or project.status != "submitted":
        return fail("not_found", "Submitted project not found")
    error = _validate(scores or {})
    if error:
        return fail("invalid", error)

    saved = store.save_score(
        JudgeScore(
            id=new_id("score"),
            judge_id=actor.id,
            project_id=project_id,
            scores={c.id: int(scores[c.id]) for c in JUDGE_CRITERIA},
            comments=clean_text(comments, 2000),
        )
    )
    logger.info(f"Judge {actor.id} scored {project_id}: {weighted_total(saved.scores)}")
    return ok(score=saved.model_dump(), total=weighted_total(saved.scores))


def list_scores(store: Store, actor: User, project_id: Optional[str] = None) -> Dict[str, Any]:
    denied = gate(store, actor, Action.VIEW_ANALYTICS)
    if denied:
        return denied
    rows = store.list_scores(project_id=project_id)
    return ok(scores=[dict(s.model_dump(), total=weighted_total(s.scores)) for s in rows])


__all__ = ["Criterion", "JUDGE_CRITERIA", "weighted_total", "list_criteria", "submit_score", "list_scores"]
