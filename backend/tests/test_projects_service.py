from __future__ import annotations

from config import settings
from rules import Phase
from services import judging, results, submissions, teams, users, voting


def set_phase(store, phase: str) -> None:
    store.save_event(store.get_event().model_copy(update={"phase": Phase(phase)}))


def make_user(store, name: str, role: str = "participant"):
    res = users.register_user(store, name, role=role)
    assert res["ok"], res
    return store.get_user(res["user"]["id"])


def project_data(name: str) -> dict:
    return {
        "project_name": name,
        "description": "Built in a day",
        "repo_url": "https://github.com/x/y",
        "demo_video_url": "https://videos.example.com/demo",
    }


def submitted_team(store, name: str):
    """Captain plus team with a submitted project; leaves the event in the submission phase."""
    set_phase(store, "team_formation")
    captain = make_user(store, f"{name} captain")
    team = teams.create_team(store, captain, name)["team"]
    set_phase(store, "submission")
    res = submissions.save_submission(store, captain, team["id"], project_data(f"{name} app"), submit=True)
    assert res["ok"], res
    return captain, team, res["submission"]["project_id"]


def test_draft_then_submit_keeps_project_id(store):
    set_phase(store, "team_formation")
    cap = make_user(store, "Cap")
    outsider = make_user(store, "Out")
    team = teams.create_team(store, cap, "Neural Nexus")["team"]

    assert submissions.save_submission(store, cap, team["id"], {"project_name": "x"})["reason"] == "phase_closed"

    set_phase(store, "hacking")
    draft = submissions.save_submission(store, cap, team["id"], {"description": "WIP"})
    assert draft["ok"] and draft["submission"]["status"] == "draft"
    assert submissions.save_submission(store, cap, team["id"], {}, submit=True)["reason"] == "phase_closed"
    assert submissions.save_submission(store, outsider, team["id"], {"description": "hi"})["reason"] == "forbidden"

    set_phase(store, "submission")
    assert submissions.save_submission(store, cap, team["id"], {}, submit=True)["reason"] == "invalid"
    bad = submissions.save_submission(store, cap, team["id"], {"repo_url": "javascript:alert(1)"})
    assert bad["reason"] == "invalid"

    links = {
        "repo_url": "https://github.com/nexus/app",
        "demo_video_url": "https://videos.example.com/nexus",
        "live_demo_url": "http://demo.example.com",
    }
    final = submissions.save_submission(store, cap, team["id"], dict(links, project_name="Nexus"), submit=True)
    assert final["ok"]
    sub = final["submission"]
    assert sub["project_id"] == draft["submission"]["project_id"]
    assert sub["status"] == "submitted" and sub["submitted_at"]
    assert sub["description"] == "WIP"

    # Editing after submission keeps it submitted
    again = submissions.save_submission(store, cap, team["id"], {"description": "Done"})
    assert again["submission"]["status"] == "submitted"
    assert len(store.list_submissions()) == 1


def test_only_the_captain_submits_a_complete_project(store):
    set_phase(store, "team_formation")
    cap = make_user(store, "Cap")
    ada = make_user(store, "Ada")
    team = teams.create_team(store, cap, "Neural Nexus")["team"]
    req = teams.request_join(store, ada, team["id"])
    assert teams.respond_to_request(store, cap, req["request_id"], True)["ok"]

    set_phase(store, "hacking")
    res = submissions.save_submission(store, ada, team["id"], {"description": "mine"})
    assert res["reason"] == "forbidden"

    set_phase(store, "submission")
    res = submissions.save_submission(store, ada, team["id"], {"project_name": "X"}, submit=True)
    assert res["reason"] == "forbidden"
    assert store.get_submission(team["id"]) is None

    res = submissions.save_submission(store, cap, team["id"], {"project_name": "X"}, submit=True)
    assert res["reason"] == "invalid"
    for field in ("description", "demo video URL", "repository URL"):
        assert field in res["error"]

    partial = dict(project_data("X"), demo_video_url="")
    assert submissions.save_submission(store, cap, team["id"], partial, submit=True)["reason"] == "invalid"
    res = submissions.save_submission(store, cap, team["id"], project_data("X"), submit=True)
    assert res["ok"] and res["submission"]["status"] == "submitted"


def test_toggle_vote_and_limit(store):
    projects = [submitted_team(store, f"Team {i}")[2] for i in range(settings.MAX_VOTES + 1)]
    voter = make_user(store, "Voter")
    judge = make_user(store, "Judge", role="judge")

    assert voting.toggle_vote(store, voter, projects[0])["reason"] == "phase_closed"
    set_phase(store, "voting")
    assert voting.toggle_vote(store, judge, projects[0])["reason"] == "forbidden"

    for i, pid in enumerate(projects[: settings.MAX_VOTES]):
        res = voting.toggle_vote(store, voter, pid)
        assert res["ok"] and res["voted"]
        assert res["remaining_votes"] == settings.MAX_VOTES - i - 1

    res = voting.toggle_vote(store, voter, projects[-1])
    assert not res["ok"] and res["reason"] == "limit"

    # Toggling an existing vote removes it and frees a slot
    res = voting.toggle_vote(store, voter, projects[0])
    assert res["ok"] and not res["voted"] and res["project_votes"] == 0
    assert voting.toggle_vote(store, voter, projects[-1])["ok"]

    summary = voting.vote_summary(store, voter.id)
    assert len(summary["user_votes"]) == settings.MAX_VOTES
    assert summary["remaining_votes"] == 0
    assert summary["counts"][projects[-1]] == 1


def test_cannot_vote_for_own_team_or_unsubmitted(store):
    captain, team, project_id = submitted_team(store, "Alpha")
    set_phase(store, "team_formation")
    other = make_user(store, "Other")
    draft_team = teams.create_team(store, other, "Drafty")["team"]
    set_phase(store, "hacking")
    draft = submissions.save_submission(store, other, draft_team["id"], {"project_name": "WIP"})

    set_phase(store, "voting")
    assert voting.toggle_vote(store, captain, project_id)["reason"] == "forbidden"
    assert voting.toggle_vote(store, captain, draft["submission"]["project_id"])["reason"] == "invalid"
    assert voting.toggle_vote(store, captain, "nope")["reason"] == "not_found"


def test_judge_scores_validate_and_upsert(store):
    _, _, project_id = submitted_team(store, "Alpha")
    judge = make_user(store, "Judge", role="judge")
    participant = make_user(store, "P")
    full = {c.id: 7 for c in judging.JUDGE_CRITERIA}

    assert judging.submit_score(store, judge, project_id, full)["reason"] == "phase_closed"
    set_phase(store, "judging")
    assert judging.submit_score(store, participant, project_id, full)["reason"] == "forbidden"
    assert judging.submit_score(store, judge, project_id, {"innovation": 5})["reason"] == "invalid"
    assert judging.submit_score(store, judge, project_id, dict(full, impact=11))["reason"] == "invalid"
    assert judging.submit_score(store, judge, project_id, dict(full, impact=-1))["reason"] == "invalid"
    assert judging.submit_score(store, judge, project_id, dict(full, impact=0))["reason"] == "invalid"

    res = judging.submit_score(store, judge, project_id, full, "solid")
    assert res["ok"] and res["total"] == 35
    res = judging.submit_score(store, judge, project_id, dict(full, theme=10))
    assert res["ok"] and res["total"] == 38

    listed = judging.list_scores(store, judge, project_id)
    assert [s["total"] for s in listed["scores"]] == [38]
    assert judging.list_scores(store, participant)["reason"] == "forbidden"


def test_results_leaderboards(store):
    alice, alpha, alpha_pid = submitted_team(store, "Alpha")
    bob, beta, beta_pid = submitted_team(store, "Beta")
    _, gamma, gamma_pid = submitted_team(store, "Gamma")
    carol = make_user(store, "Carol")
    j1 = make_user(store, "J1", role="judge")
    j2 = make_user(store, "J2", role="judge")
    admin = make_user(store, "Admin", role="admin")

    set_phase(store, "voting")
    for voter in (carol, alice):
        assert voting.toggle_vote(store, voter, beta_pid)["ok"]
    assert voting.toggle_vote(store, bob, alpha_pid)["ok"]

    set_phase(store, "judging")
    judging.submit_score(store, j1, alpha_pid, {c.id: 8 for c in judging.JUDGE_CRITERIA})
    judging.submit_score(store, j2, alpha_pid, {c.id: 6 for c in judging.JUDGE_CRITERIA})
    judging.submit_score(store, j1, beta_pid, {c.id: 6 for c in judging.JUDGE_CRITERIA})

    assert results.compute_results(store, carol)["reason"] == "phase_closed"
    early = results.compute_results(store, j1)
    assert early["ok"]

    set_phase(store, "results")
    res = results.compute_results(store, carol)
    assert res["ok"]
    assert res["peoples_champion"]["team_name"] == "Beta"
    assert res["grand_champion"]["team_name"] == "Alpha"
    assert res["grand_champion"]["average_score"] == 35
    assert [e["team_name"] for e in res["peoples_leaderboard"]] == ["Beta", "Alpha", "Gamma"]
    assert [e["team_name"] for e in res["judges_leaderboard"]] == ["Alpha", "Beta", "Gamma"]
    assert res["judges_leaderboard"][-1]["average_score"] is None
    assert results.compute_results(store, admin)["ok"]
