from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from config import settings
from models.db import init_db, set_db_path


@pytest.fixture
def client(tmp_path, monkeypatch) -> TestClient:
    """TestClient over a fresh temporary SQLite database."""
    monkeypatch.setattr(settings, "DEMO_MODE", False)
    monkeypatch.setattr(settings, "DEV_MODE", False)
    set_db_path(tmp_path / "test.db")
    init_db()

    import main

    return TestClient(main.app)


def register(client: TestClient, name: str, role: str = "participant") -> str:
    r = client.post("/api/users", json={"name": name, "role": role, "skills": ["Python"]})
    assert r.status_code == 200, r.text
    return r.json()["user"]["id"]


def as_user(uid: str) -> dict:
    return {"X-User-Id": uid}


def test_event_and_registries(client: TestClient):
    r = client.get("/api/event")
    assert r.status_code == 200
    assert r.json()["event"]["phase"] == "registration"

    phases = client.get("/api/phases").json()["phases"]
    assert [p["order"] for p in phases] == [1, 2, 3, 4, 5, 6, 7]
    roles = {p["role"]: p for p in client.get("/api/roles").json()["roles"]}
    assert roles["judge"]["can_judge"] and not roles["judge"]["can_vote"]


def test_unknown_actor_is_unauthorized(client: TestClient):
    assert client.put("/api/event/phase", data={"phase": "hacking"}).status_code == 401
    r = client.post("/api/teams", json={"name": "X"}, headers=as_user("ghost"))
    assert r.status_code == 401
    assert r.json()["reason"] == "unauthorized"


def test_phase_changes_are_admin_only_and_forward(client: TestClient):
    admin = register(client, "Admin", "admin")
    ada = register(client, "Ada")

    r = client.put("/api/event/phase", data={"phase": "team_formation"}, headers=as_user(ada))
    assert r.status_code == 403 and r.json()["reason"] == "forbidden"

    r = client.put("/api/event/phase", data={"phase": "TEAM_FORMATION"}, headers=as_user(admin))
    assert r.status_code == 200
    assert r.json()["event"]["phase"] == "team_formation"

    r = client.put("/api/event/phase", data={"phase": "registration"}, headers=as_user(admin))
    assert r.status_code == 400


def test_team_flow_over_http(client: TestClient):
    admin = register(client, "Admin", "admin")
    maya = register(client, "Maya")
    ada = register(client, "Ada")

    r = client.post("/api/teams", json={"name": "Neural Nexus"}, headers=as_user(maya))
    assert r.status_code == 409 and r.json()["reason"] == "phase_closed"

    client.put("/api/event/phase", data={"phase": "team_formation"}, headers=as_user(admin))
    r = client.post(
        "/api/teams",
        json={"name": "Neural Nexus", "looking_for": ["Backend Development"]},
        headers=as_user(maya),
    )
    assert r.status_code == 200
    team = r.json()["team"]
    assert team["captain_id"] == maya and team["member_count"] == 1

    r = client.get("/api/teams")
    assert [t["name"] for t in r.json()["teams"]] == ["Neural Nexus"]

    r = client.post(f"/api/teams/{team['id']}/join-requests", json={"message": "hi"}, headers=as_user(ada))
    assert r.status_code == 200
    request_id = r.json()["request_id"]

    r = client.post(f"/api/join-requests/{request_id}/respond", json={"accept": True}, headers=as_user(ada))
    assert r.status_code == 403
    r = client.post(f"/api/join-requests/{request_id}/respond", json={"accept": True}, headers=as_user(maya))
    assert r.status_code == 200 and r.json()["team"]["member_count"] == 2

    r = client.get(f"/api/users/{ada}/status")
    assert r.json()["status"] == "member"
    assert client.get("/api/free-agents").json()["free_agents"] == []

    r = client.get("/api/teams/missing")
    assert r.status_code == 404


def test_invites_over_http(client: TestClient):
    admin = register(client, "Admin", "admin")
    maya = register(client, "Maya")
    ada = register(client, "Ada")
    client.put("/api/event/phase", data={"phase": "team_formation"}, headers=as_user(admin))
    team = client.post("/api/teams", json={"name": "Nexus"}, headers=as_user(maya)).json()["team"]

    r = client.post(f"/api/teams/{team['id']}/invites", json={"user_id": ada}, headers=as_user(maya))
    assert r.status_code == 200
    invite_id = r.json()["invite"]["id"]

    assert client.get(f"/api/users/{ada}/invites", headers=as_user(maya)).status_code == 403
    invites = client.get(f"/api/users/{ada}/invites", headers=as_user(ada)).json()["invites"]
    assert [i["id"] for i in invites] == [invite_id]

    r = client.post(f"/api/invites/{invite_id}/respond", json={"accept": False}, headers=as_user(ada))
    assert r.status_code == 200 and r.json()["invite"]["status"] == "declined"


def test_full_event_over_http(client: TestClient):
    admin = register(client, "Admin", "admin")
    maya = register(client, "Maya")
    ben = register(client, "Ben")
    judge = register(client, "Judge", "judge")

    def phase(p):
        r = client.put("/api/event/phase", data={"phase": p}, headers=as_user(admin))
        assert r.status_code == 200, r.text

    phase("team_formation")
    t1 = client.post("/api/teams", json={"name": "Alpha"}, headers=as_user(maya)).json()["team"]
    t2 = client.post("/api/teams", json={"name": "Beta"}, headers=as_user(ben)).json()["team"]

    phase("submission")
    r = client.put(
        f"/api/teams/{t1['id']}/submission",
        json={"project_name": "Alpha App", "repo_url": "ftp://nope"},
        headers=as_user(maya),
    )
    assert r.status_code == 400
    pids = []
    for uid, t in ((maya, t1), (ben, t2)):
        r = client.put(
            f"/api/teams/{t['id']}/submission",
            json={
                "project_name": f"{t['name']} App",
                "description": "Built in a day",
                "repo_url": "https://github.com/hackday/app",
                "demo_video_url": "https://videos.example.com/app",
                "submit": True,
            },
            headers=as_user(uid),
        )
        assert r.status_code == 200, r.text
        pids.append(r.json()["submission"]["project_id"])

    phase("voting")
    r = client.post("/api/votes", json={"project_id": pids[1]}, headers=as_user(maya))
    assert r.status_code == 200 and r.json()["voted"]
    r = client.post("/api/votes", json={"project_id": pids[0]}, headers=as_user(maya))
    assert r.status_code == 403
    r = client.get("/api/votes", headers=as_user(maya))
    assert r.json()["remaining_votes"] == settings.MAX_VOTES - 1

    phase("judging")
    criteria = client.get("/api/judging/criteria").json()["criteria"]
    assert [c["id"] for c in criteria] == ["innovation", "technical", "presentation", "impact", "theme"]
    scores = {c["id"]: 9 for c in criteria}
    r = client.post("/api/scores", json={"project_id": pids[0], "scores": scores}, headers=as_user(judge))
    assert r.status_code == 200 and r.json()["total"] == 45
    r = client.post("/api/scores", json={"project_id": pids[0], "scores": scores}, headers=as_user(maya))
    assert r.status_code == 403
    assert client.get("/api/scores", headers=as_user(judge)).status_code == 200
    assert client.get("/api/results", headers=as_user(maya)).status_code == 409

    phase("results")
    r = client.get("/api/results", headers=as_user(maya))
    assert r.status_code == 200
    body = r.json()
    assert body["peoples_champion"]["team_name"] == "Beta"
    assert body["grand_champion"]["team_name"] == "Alpha"


def test_notifications_over_http(client: TestClient):
    admin = register(client, "Admin", "admin")
    maya = register(client, "Maya")
    ada = register(client, "Ada")
    client.put("/api/event/phase", data={"phase": "team_formation"}, headers=as_user(admin))
    team = client.post("/api/teams", json={"name": "Nexus"}, headers=as_user(maya)).json()["team"]
    client.post(f"/api/teams/{team['id']}/join-requests", json={}, headers=as_user(ada))

    r = client.get("/api/notifications", headers=as_user(maya))
    assert r.status_code == 200 and r.json()["unread_count"] == 1
    nid = r.json()["notifications"][0]["id"]

    assert client.put(f"/api/notifications/{nid}/read", headers=as_user(ada)).status_code == 403
    assert client.put(f"/api/notifications/{nid}/read", headers=as_user(maya)).status_code == 200
    r = client.put("/api/notifications/read-all", headers=as_user(maya))
    assert r.status_code == 200 and r.json()["updated"] == 0


def test_dev_mode_role_impersonation(client: TestClient, monkeypatch):
    ada = register(client, "Ada")
    headers = {"X-User-Id": ada, "X-HackDay-Role": "admin"}

    r = client.put("/api/event/motd", data={"message": "hello"}, headers=headers)
    assert r.status_code == 403

    monkeypatch.setattr(settings, "DEV_MODE", True)
    r = client.put("/api/event/motd", data={"message": "hello"}, headers=headers)
    assert r.status_code == 200 and r.json()["event"]["motd"] == "hello"

    r = client.get("/api/event/dashboard", headers=headers)
    assert "admin" in r.json()["views"]


def test_entering_hacking_auto_assigns_over_http(client: TestClient):
    admin = register(client, "Admin", "admin")
    ada = register(client, "Ada")
    client.put("/api/event/phase", data={"phase": "team_formation"}, headers=as_user(admin))

    r = client.put(f"/api/users/{ada}/auto-assign", data={"opt_in": "true"}, headers=as_user(ada))
    assert r.status_code == 200, r.text

    r = client.put("/api/event/phase", data={"phase": "hacking"}, headers=as_user(admin))
    assert r.status_code == 200, r.text
    assert r.json()["effects"]["auto_assigned"] == [ada]

    r = client.get(f"/api/users/{ada}/status")
    assert r.json()["status"] == "observer"
    observers = client.get(f"/api/teams/{settings.OBSERVERS_TEAM_ID}").json()["team"]
    assert [m["id"] for m in observers["members"]] == [ada]

    r = client.post("/api/admin/auto-assign", headers=as_user(admin))
    assert r.status_code == 200 and r.json()["assigned"] == []
    assert client.post("/api/admin/auto-assign", headers=as_user(ada)).status_code == 403


def test_observers_name_is_reserved_over_http(client: TestClient):
    admin = register(client, "Admin", "admin")
    maya = register(client, "Maya")
    client.put("/api/event/phase", data={"phase": "team_formation"}, headers=as_user(admin))

    r = client.post("/api/teams", json={"name": "observers"}, headers=as_user(maya))
    assert r.status_code == 409 and r.json()["reason"] == "conflict"


def test_side_filters_over_http(client: TestClient):
    admin = register(client, "Admin", "admin")
    client.put("/api/event/phase", data={"phase": "team_formation"}, headers=as_user(admin))
    maya = register(client, "Maya")
    r = client.post("/api/users", json={"name": "Rob", "allegiance": "ai"})
    rob = r.json()["user"]["id"]
    assert r.json()["user"]["allegiance"] == "ai"
    client.post("/api/teams", json={"name": "Carbon", "side": "human"}, headers=as_user(maya))

    assert [t["name"] for t in client.get("/api/teams?side=human").json()["teams"]] == ["Carbon"]
    assert client.get("/api/teams?side=ai").json()["teams"] == []
    assert len(client.get("/api/teams?side=neutral").json()["teams"]) == 1
    assert client.get("/api/teams?side=robots").status_code == 400

    agents = client.get("/api/free-agents?allegiance=ai").json()["free_agents"]
    assert [a["id"] for a in agents] == [rob]
