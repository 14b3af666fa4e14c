"""Award leaderboards: People's Champion by votes, Grand Champion by judge scores."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from models.schemas import User
from models.store import Store
from rules import Action
from services.common import gate, ok
from services.judging import weighted_total


logger = logging.getLogger(__name__)


def _entries(store: Store) -> List[Dict[str, Any]]:
    entries = []
    for project in store.list_submissions(status="submitted"):
        team = store.get_team(project.team_id)
        scores = store.list_scores(project_id=project.id)
        totals = [weighted_total(s.scores) for s in scores]
        entries.append(
            {
                "project_id": project.id,
                "project_name": project.project_name,
                "team_id": project.team_id,
                "team_name": team.name if team else "",
                "votes": len(store.list_votes(project_id=project.id)),
                "judge_count": len(scores),
                "average_score": round(sum(totals) / len(totals), 2) if totals else None,
            }
        )
    return entries


def peoples_champion_board(store: Store) -> List[Dict[str, Any]]:
    return sorted(_entries(store), key=lambda e: (-e["votes"], e["team_name"].lower()))


def grand_champion_board(store: Store) -> List[Dict[str, Any]]:
    # Unscored projects sink to the bottom
    return sorted(
        _entries(store),
        key=lambda e: (
            e["average_score"] is None,
            -(e["average_score"] or 0),
            e["team_name"].lower(),
        ),
    )


def compute_results(store: Store, actor: User) -> Dict[str, Any]:
    denied = gate(store, actor, Action.VIEW_RESULTS)
    if denied:
        return denied
    by_votes = peoples_champion_board(store)
    by_score = grand_champion_board(store)
    peoples = by_votes[0] if by_votes and by_votes[0]["votes"] > 0 else None
    grand = by_score[0] if by_score and by_score[0]["average_score"] is not None else None
    logger.debug(f"Results computed for {actor.id}: {len(by_votes)} project(s)")
    return ok(
        peoples_champion=peoples,
        grand_champion=grand,
        peoples_leaderboard=by_votes,
        judges_leaderboard=by_score,
    )


__all__ = ["peoples_champion_board", "grand_champion_board", "compute_results"]
