from __future__ import annotations

from config import settings
from models.schemas import Team
from rules import Phase
from services import event, reminders, teams, users
from utils.clock import iso_in


def set_phase(store, phase: str) -> None:
    store.save_event(store.get_event().model_copy(update={"phase": Phase(phase)}))


def make_user(store, name: str, role: str = "participant", **kw):
    res = users.register_user(store, name, role=role, **kw)
    assert res["ok"], res
    return store.get_user(res["user"]["id"])


def make_team(store, captain, name: str, **kw):
    res = teams.create_team(store, captain, name, **kw)
    assert res["ok"], res
    return res["team"]


def test_neural_nexus_scenario(store):
    set_phase(store, "team_formation")
    maya = make_user(store, "Maya Chen")
    res = teams.create_team(store, maya, "Neural Nexus", looking_for=["Backend Development"])
    assert res["ok"]
    team = res["team"]
    assert team["captain_id"] == maya.id
    assert [m["id"] for m in team["members"]] == [maya.id]
    assert team["looking_for"] == ["Backend Development"]
    assert team["max_members"] == settings.MAX_TEAM_SIZE

    listed = teams.list_teams(store)["teams"]
    assert [(t["name"], t["member_count"]) for t in listed] == [("Neural Nexus", 1)]
    assert not store.get_user(maya.id).is_free_agent


def test_create_team_is_gated(store):
    maya = make_user(store, "Maya")
    judge = make_user(store, "Jules", role="judge")

    res = teams.create_team(store, maya, "Too Early")
    assert not res["ok"] and res["reason"] == "phase_closed"

    set_phase(store, "team_formation")
    res = teams.create_team(store, judge, "Judges United")
    assert not res["ok"] and res["reason"] == "forbidden"
    assert store.list_teams() == []


def test_create_team_validation(store):
    set_phase(store, "team_formation")
    a = make_user(store, "A")
    b = make_user(store, "B")
    make_team(store, a, "Byte Club")

    assert teams.create_team(store, a, "Second Team")["reason"] == "conflict"
    assert teams.create_team(store, b, "byte club")["reason"] == "conflict"
    assert teams.create_team(store, b, "   ")["reason"] == "invalid"
    assert teams.create_team(store, b, "Tiny", max_members=1)["reason"] == "invalid"
    assert teams.create_team(store, b, "Huge", max_members=settings.MAX_TEAM_SIZE + 1)["reason"] == "invalid"


def test_join_request_accept_and_decline(store):
    set_phase(store, "team_formation")
    cap = make_user(store, "Cap")
    ada = make_user(store, "Ada")
    bob = make_user(store, "Bob")
    team = make_team(store, cap, "Neural Nexus")

    res = teams.request_join(store, ada, team["id"], "I do backend")
    assert res["ok"]
    assert [r["user_id"] for r in res["team"]["join_requests"]] == [ada.id]
    assert teams.request_join(store, ada, team["id"])["reason"] == "conflict"

    # Only the captain answers
    assert teams.respond_to_request(store, bob, res["request_id"], True)["reason"] == "forbidden"

    accepted = teams.respond_to_request(store, cap, res["request_id"], True)
    assert accepted["ok"]
    assert {m["id"] for m in accepted["team"]["members"]} == {cap.id, ada.id}
    assert accepted["team"]["join_requests"] == []
    assert not store.get_user(ada.id).is_free_agent

    req = teams.request_join(store, bob, team["id"])
    declined = teams.respond_to_request(store, cap, req["request_id"], False)
    assert declined["ok"]
    assert store.get_membership(req["request_id"]) is None
    kinds = [n.kind for n in store.list_notifications(bob.id)]
    assert kinds == ["request_declined"]


def test_accept_rechecks_capacity_and_single_team(store):
    set_phase(store, "team_formation")
    cap1 = make_user(store, "Cap1")
    cap2 = make_user(store, "Cap2")
    ada = make_user(store, "Ada")
    bob = make_user(store, "Bob")
    t1 = make_team(store, cap1, "One", max_members=2)
    t2 = make_team(store, cap2, "Two")

    r_ada_1 = teams.request_join(store, ada, t1["id"])["request_id"]
    r_bob_1 = teams.request_join(store, bob, t1["id"])["request_id"]
    r_ada_2 = teams.request_join(store, ada, t2["id"])["request_id"]

    assert teams.respond_to_request(store, cap1, r_ada_1, True)["ok"]
    # Team One is now full
    res = teams.respond_to_request(store, cap1, r_bob_1, True)
    assert not res["ok"] and res["reason"] == "capacity"
    assert teams.request_join(store, bob, t1["id"])["reason"] in ("capacity", "conflict")

    # Ada's other request was withdrawn when she joined Team One
    assert store.get_membership(r_ada_2) is None
    assert teams.respond_to_request(store, cap2, r_ada_2, True)["reason"] == "not_found"

    for user in store.list_users():
        assert len(store.list_memberships(user_id=user.id, status="accepted")) <= 1
    for t in store.list_teams():
        assert len(store.list_memberships(team_id=t.id, status="accepted")) <= t.max_members


def test_invites(store):
    set_phase(store, "team_formation")
    cap = make_user(store, "Cap")
    ada = make_user(store, "Ada")
    bob = make_user(store, "Bob")
    team = make_team(store, cap, "Neural Nexus")

    assert teams.send_invite(store, ada, team["id"], bob.id)["reason"] == "forbidden"
    res = teams.send_invite(store, cap, team["id"], ada.id, "Join us")
    assert res["ok"]
    invite_id = res["invite"]["id"]
    assert teams.send_invite(store, cap, team["id"], ada.id)["reason"] == "conflict"
    assert [i["team_name"] for i in teams.list_invites_for_user(store, ada.id)["invites"]] == ["Neural Nexus"]
    assert store.list_notifications(ada.id)[0].kind == "team_invite"

    assert teams.respond_to_invite(store, bob, invite_id, True)["reason"] == "forbidden"
    accepted = teams.respond_to_invite(store, ada, invite_id, True)
    assert accepted["ok"]
    assert ada.id in [m["id"] for m in accepted["team"]["members"]]
    assert store.get_invite(invite_id).status == "accepted"
    assert teams.respond_to_invite(store, ada, invite_id, True)["reason"] == "conflict"

    # Members of a team are no longer invitable
    assert teams.send_invite(store, cap, team["id"], ada.id)["reason"] == "conflict"


def test_expired_invite_is_rejected(store):
    set_phase(store, "team_formation")
    cap = make_user(store, "Cap")
    ada = make_user(store, "Ada")
    team = make_team(store, cap, "Neural Nexus")
    invite_id = teams.send_invite(store, cap, team["id"], ada.id)["invite"]["id"]
    store.update_invite(invite_id, expires_at=iso_in(-1))

    res = teams.respond_to_invite(store, ada, invite_id, True)
    assert not res["ok"] and res["reason"] == "conflict"
    assert store.get_invite(invite_id).status == "expired"
    assert teams.list_invites_for_user(store, ada.id)["invites"] == []
    assert store.get_user(ada.id).is_free_agent


def test_leave_passes_captaincy_then_deletes_empty_team(store):
    set_phase(store, "team_formation")
    cap = make_user(store, "Cap")
    ada = make_user(store, "Ada")
    bob = make_user(store, "Bob")
    team = make_team(store, cap, "Neural Nexus")
    for u in (ada, bob):
        req = teams.request_join(store, u, team["id"])
        teams.respond_to_request(store, cap, req["request_id"], True)

    set_phase(store, "hacking")
    res = teams.leave_team(store, cap, team["id"])
    assert res["ok"] and res["team"]["captain_id"] == ada.id
    assert store.get_user(cap.id).is_free_agent

    assert teams.leave_team(store, bob, team["id"])["ok"]
    res = teams.leave_team(store, ada, team["id"])
    assert res["ok"] and res["deleted"]
    assert store.get_team(team["id"]) is None

    set_phase(store, "submission")
    assert teams.leave_team(store, ada, team["id"])["reason"] == "phase_closed"


def test_transfer_and_remove(store):
    set_phase(store, "team_formation")
    cap = make_user(store, "Cap")
    ada = make_user(store, "Ada")
    outsider = make_user(store, "Out")
    team = make_team(store, cap, "Neural Nexus")
    req = teams.request_join(store, ada, team["id"])
    teams.respond_to_request(store, cap, req["request_id"], True)

    assert teams.remove_member(store, cap, team["id"], cap.id)["reason"] == "invalid"
    assert teams.transfer_captain(store, cap, team["id"], outsider.id)["reason"] == "not_found"
    res = teams.transfer_captain(store, cap, team["id"], ada.id)
    assert res["ok"] and res["team"]["captain_id"] == ada.id
    assert teams.remove_member(store, cap, team["id"], ada.id)["reason"] == "forbidden"

    res = teams.remove_member(store, ada, team["id"], cap.id)
    assert res["ok"]
    assert [m["id"] for m in res["team"]["members"]] == [ada.id]
    assert store.get_user(cap.id).is_free_agent


def test_update_and_delete_team(store):
    set_phase(store, "team_formation")
    cap = make_user(store, "Cap")
    ada = make_user(store, "Ada")
    team = make_team(store, cap, "Neural Nexus")
    req = teams.request_join(store, ada, team["id"])
    teams.respond_to_request(store, cap, req["request_id"], True)

    res = teams.update_team(store, cap, team["id"], description="ML things", looking_for="Design, design, QA")
    assert res["ok"]
    assert res["team"]["looking_for"] == ["Design", "QA"]
    assert teams.update_team(store, ada, team["id"], name="Mine")["reason"] == "forbidden"

    assert teams.delete_team(store, cap, team["id"])["ok"]
    assert store.get_team(team["id"]) is None
    assert store.get_user(ada.id).is_free_agent and store.get_user(cap.id).is_free_agent


def test_auto_assign_is_idempotent_and_grows_capacity(store):
    set_phase(store, "team_formation")
    admin = make_user(store, "Admin", role="admin")
    agents = [make_user(store, f"Agent {i}") for i in range(settings.MAX_TEAM_SIZE + 2)]
    holdout = make_user(store, "Holdout")
    for a in agents:
        assert reminders.set_auto_assign_opt_in(store, a, True)["ok"]

    assert teams.auto_assign_free_agents(store, agents[0])["reason"] == "forbidden"

    res = teams.auto_assign_free_agents(store, admin)
    assert res["ok"]
    assert sorted(res["assigned"]) == sorted(a.id for a in agents)
    observers = store.get_team(settings.OBSERVERS_TEAM_ID)
    assert observers.name == settings.OBSERVERS_TEAM_NAME and observers.is_auto_created
    assert observers.max_members >= len(agents)
    assert res["team"]["captain_id"] is None

    again = teams.auto_assign_free_agents(store, admin)
    assert again["ok"] and again["assigned"] == []
    assert len(store.list_memberships(team_id=observers.id, status="accepted")) == len(agents)
    assert store.get_user(holdout.id).is_free_agent
    assert reminders.user_status(store, agents[0].id)["status"] == "observer"


def test_phase_change_into_hacking_runs_auto_assign(store):
    admin = make_user(store, "Admin", role="admin")
    ada = make_user(store, "Ada")
    set_phase(store, "team_formation")
    reminders.set_auto_assign_opt_in(store, ada, True)

    res = event.change_phase(store, admin, "SUBMISSION")
    assert res["ok"]
    assert res["effects"]["auto_assigned"] == [ada.id]
    rows = store.list_memberships(user_id=ada.id, status="accepted")
    assert [m.team_id for m in rows] == [settings.OBSERVERS_TEAM_ID]

    assert store.get_event().phase is Phase.SUBMISSION


def test_captaincy_passes_to_the_earliest_joiner(store):
    set_phase(store, "team_formation")
    cap = make_user(store, "Cap")
    ada = make_user(store, "Ada")
    bob = make_user(store, "Bob")
    team = make_team(store, cap, "Neural Nexus")
    # Ada asks first but Bob is let in first
    r_ada = teams.request_join(store, ada, team["id"])["request_id"]
    r_bob = teams.request_join(store, bob, team["id"])["request_id"]
    assert teams.respond_to_request(store, cap, r_bob, True)["ok"]
    assert teams.respond_to_request(store, cap, r_ada, True)["ok"]

    res = teams.leave_team(store, cap, team["id"])
    assert res["ok"] and res["team"]["captain_id"] == bob.id


def test_observers_name_is_reserved(store):
    set_phase(store, "team_formation")
    cap = make_user(store, "Cap")
    assert teams.create_team(store, cap, "  OBSERVERS ")["reason"] == "conflict"
    team = make_team(store, cap, "Neural Nexus")
    assert teams.update_team(store, cap, team["id"], name="Observers")["reason"] == "conflict"
    assert store.find_team_by_name(settings.OBSERVERS_TEAM_NAME) is None


def test_failed_auto_assign_is_reported_by_phase_change(store):
    admin = make_user(store, "Admin", role="admin")
    ada = make_user(store, "Ada")
    set_phase(store, "team_formation")
    reminders.set_auto_assign_opt_in(store, ada, True)
    # A stray row holding the reserved name blocks the Observers team
    store.add_team(Team(id="team-stray", name=settings.OBSERVERS_TEAM_NAME))

    res = event.change_phase(store, admin, "hacking")
    assert res["ok"]
    assert res["effects"]["auto_assigned"] == []
    assert res["effects"]["auto_assign_error"]
    assert store.get_event().phase is Phase.HACKING


def test_sides_and_filters(store):
    set_phase(store, "team_formation")
    cap = make_user(store, "Cap", allegiance="human")
    rob = make_user(store, "Rob", allegiance="AI")
    make_user(store, "Nell")
    assert rob.allegiance.value == "ai"
    assert users.register_user(store, "Eve", allegiance="robots")["reason"] == "invalid"

    assert teams.create_team(store, cap, "Carbon", side="martian")["reason"] == "invalid"
    team = make_team(store, cap, "Carbon", side="human")
    assert team["side"] == "human"

    assert [t["name"] for t in teams.list_teams(store, side="human")["teams"]] == ["Carbon"]
    assert teams.list_teams(store, side="ai")["teams"] == []
    assert len(teams.list_teams(store, side="neutral")["teams"]) == 1
    assert teams.list_teams(store, side="robots")["reason"] == "invalid"

    agents = teams.list_free_agents(store, allegiance="ai")["free_agents"]
    assert [a["id"] for a in agents] == [rob.id]
    assert len(teams.list_free_agents(store)["free_agents"]) == 2

    res = teams.update_team(store, cap, team["id"], side="ai")
    assert res["ok"] and res["team"]["side"] == "ai"
    res = users.update_profile(store, rob, rob.id, allegiance="neutral")
    assert res["ok"] and res["user"]["allegiance"] == "neutral"
