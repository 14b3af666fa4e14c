from __future__ import annotations

# Public facade for the phase/role rules

from .phases import (
    Phase,
    PHASES,
    PHASE_ORDER,
    PHASE_MAP,
    REVERSE_PHASE_MAP,
    parse_phase,
    phase_order,
    next_phase,
    can_transition,
    crosses,
)
from .roles import (
    Role,
    Permissions,
    ROLE_PERMISSIONS,
    ROLE_MAP,
    REVERSE_ROLE_MAP,
    COMPETITOR_ROLES,
    parse_role,
    permissions_for,
)
from .sides import Side, parse_side, side_matches
from .gate import Action, GateDecision, check, is_allowed, available_views
from .motd import MOTD_MESSAGES, get_motd


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
    "Role",
    "Permissions",
    "ROLE_PERMISSIONS",
    "ROLE_MAP",
    "REVERSE_ROLE_MAP",
    "COMPETITOR_ROLES",
    "parse_role",
    "permissions_for",
    "Side",
    "parse_side",
    "side_matches",
    "Action",
    "GateDecision",
    "check",
    "is_allowed",
    "available_views",
    "MOTD_MESSAGES",
    "get_motd",
]
