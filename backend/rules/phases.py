from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional


class Phase(str, Enum):
    REGISTRATION = "registration"
    TEAM_FORMATION = "team_formation"
    HACKING = "hacking"
    SUBMISSION = "submission"
    VOTING = "voting"
    JUDGING = "judging"
    RESULTS = "results"


PHASES: Dict[Phase, Dict[str, object]] = {
    Phase.REGISTRATION: {
        "id": "registration",
        "label": "Registration",
        "description": "Sign up and create your profile",
        "order": 1,
    },
    Phase.TEAM_FORMATION: {
        "id": "team_formation",
        "label": "Team Formation",
        "description": "Find teammates and form your squad",
        "order": 2,
    },
    Phase.HACKING: {
        "id": "hacking",
        "label": "Hacking",
        "description": "Build your project",
        "order": 3,
    },
    Phase.SUBMISSION: {
        "id": "submission",
        "label": "Submission",
        "description": "Submit your project for judging",
        "order": 4,
    },
    Phase.VOTING: {
        "id": "voting",
        "label": "Voting",
        "description": "Vote for People's Champion",
        "order": 5,
    },
    Phase.JUDGING: {
        "id": "judging",
        "label": "Judging",
        "description": "Judges evaluate submissions",
        "order": 6,
    },
    Phase.RESULTS: {
        "id": "results",
        "label": "Results",
        "description": "Winners announced!",
        "order": 7,
    },
}

PHASE_ORDER: List[Phase] = list(Phase)

# DB enum (uppercase) <-> app value
PHASE_MAP: Dict[str, Phase] = {p.name: p for p in Phase}
REVERSE_PHASE_MAP: Dict[Phase, str] = {p: p.name for p in Phase}


def parse_phase(value) -> Phase:
    """Accept either the app form ("team_formation") or the DB enum ("TEAM_FORMATION")."""
    if isinstance(value, Phase):
        return value
    raw = str(value or "").strip()
    if raw in PHASE_MAP:
        return PHASE_MAP[raw]
    try:
        return Phase(raw.lower())
    except ValueError:
        raise ValueError(f"Unknown phase: {value!r}") from None


def phase_order(phase) -> int:
    return int(PHASES[parse_phase(phase)]["order"])  # type: ignore[arg-type]


def next_phase(phase) -> Optional[Phase]:
    idx = PHASE_ORDER.index(parse_phase(phase))
    if idx + 1 < len(PHASE_ORDER):
        return PHASE_ORDER[idx + 1]
    return None


def can_transition(current, target) -> bool:
    """Phases only move forward; skipping ahead is allowed, going back is not."""
    return phase_order(target) >= phase_order(current)


def crosses(current, target, phase) -> bool:
    """True when moving from current to target enters or passes `phase`."""
    return phase_order(current) < phase_order(phase) <= phase_order(target)


def describe(phase) -> Dict[str, object]:
    return dict(PHASES[parse_phase(phase)])


__all__ = [
    "Phase",
    "PHASES",
    "PHASE_ORDER",
    "PHASE_MAP",
    "REVERSE_PHASE_MAP",
    "parse_phase",
    "phase_order",
    "next_phase",
    "can_transition",
    "crosses",
    "describe",
]
