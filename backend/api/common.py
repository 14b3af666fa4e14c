from typing import Any, Dict, Optional

from fastapi import Header
from fastapi.responses import JSONResponse

from models.schemas import User
from models.store import Store, get_store
from services.users import resolve_actor


# Service failure reason -> HTTP status
STATUS_BY_REASON: Dict[str, int] = {
    "forbidden": 403,
    "phase_closed": 409,
    "not_found": 404,
    "conflict": 409,
    "capacity": 409,
    "invalid": 400,
    "limit": 409,
}


def store() -> Store:
    return get_store()


def current_actor(
    x_user_id: Optional[str] = Header(None),
    x_hackday_role: Optional[str] = Header(None),
) -> Optional[User]:
    """Acting user from X-User-Id; X-HackDay-Role only matters in dev mode."""
    return resolve_actor(get_store(), x_user_id, x_hackday_role)


def unauthorized() -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": "Unknown or missing X-User-Id", "reason": "unauthorized"})


def respond(result: Dict[str, Any]):
    if result.get("ok"):
        return result
    reason = result.get("reason", "invalid")
    return JSONResponse(
        status_code=STATUS_BY_REASON.get(reason, 400),
        content={"error": result.get("error", "Request failed"), "reason": reason},
    )
