from __future__ import annotations

from typing import Dict, Optional

from .phases import Phase, parse_phase
from .roles import Role, parse_role


DEFAULT_MOTD: Dict[str, str] = {
    "title": "Welcome to HackDay!",
    "message": "Check the schedule for upcoming events and milestones.",
    "variant": "info",
}


def _m(title: str, message: str, variant: str = "info") -> Dict[str, str]:
    return {"title": title, "message": message, "variant": variant}


MOTD_MESSAGES: Dict[Phase, Dict[Role, Dict[str, str]]] = {
    Phase.REGISTRATION: {
        Role.PARTICIPANT: _m(
            "Welcome to HackDay!",
            "Registration is open! Complete your profile and add your skills so team captains can find you.",
        ),
        Role.AMBASSADOR: _m(
            "Ambassador Registration Open",
            "Registration is open. Start recruiting participants and share the event link.",
        ),
        Role.JUDGE: _m(
            "Judge Registration",
            "Thank you for volunteering to judge! Your scoring panel opens during the judging phase.",
        ),
        Role.ADMIN: _m(
            "Registration Phase Active",
            "Monitor sign-ups in the Admin Panel and plan reminders before team formation closes.",
            "warning",
        ),
    },
    Phase.TEAM_FORMATION: {
        Role.PARTICIPANT: _m(
            "Team Formation in Progress",
            "Join an existing idea, create your own team, or stay a Free Agent. Teams have 2-6 members.",
            "warning",
        ),
        Role.AMBASSADOR: _m(
            "Recruitment Time!",
            "Team formation is underway. Reach out to Free Agents and help them find a team.",
            "warning",
        ),
        Role.JUDGE: _m(
            "Teams Are Forming",
            "Participants are forming teams. Judging begins after the hacking phase.",
        ),
        Role.ADMIN: _m(
            "Team Formation Phase",
            "Check for Free Agents who still need a team before hacking starts.",
            "warning",
        ),
    },
    Phase.HACKING: {
        Role.PARTICIPANT: _m(
            "Hacking Has Begun!",
            "The clock is ticking! Build with your team and prepare your submission before the deadline.",
            "success",
        ),
        Role.AMBASSADOR: _m(
            "Hack is Live!",
            "Support your teams and help resolve any blockers they hit.",
            "success",
        ),
        Role.JUDGE: _m(
            "Hacking in Progress",
            "Teams are building their projects. Your scoring interface activates during judging.",
        ),
        Role.ADMIN: _m(
            "Hacking Phase Active",
            "The hack is live. Keep an eye on logistics and the submission deadline.",
            "success",
        ),
    },
    Phase.SUBMISSION: {
        Role.PARTICIPANT: _m(
            "Submission Window Open",
            "Submit your project with a demo video, repository link and description before the deadline.",
            "warning",
        ),
        Role.AMBASSADOR: _m(
            "Submissions Open",
            "Remind teams to submit their projects before the deadline.",
            "warning",
        ),
        Role.JUDGE: _m(
            "Submissions in Progress",
            "Once submissions close you can review and score every project.",
        ),
        Role.ADMIN: _m(
            "Submission Phase",
            "Send reminders to teams that have not submitted yet.",
            "warning",
        ),
    },
    Phase.VOTING: {
        Role.PARTICIPANT: _m(
            "Vote for People's Champion!",
            "Review the submitted projects and vote for up to 5 of them.",
        ),
        Role.AMBASSADOR: _m(
            "Voting is Open",
            "Encourage participants to vote. The People's Champion is decided by popular vote!",
        ),
        Role.JUDGE: _m(
            "Voting Underway",
            "Participants are voting. Review the submissions now so you are ready for judging.",
            "warning",
        ),
        Role.ADMIN: _m(
            "Voting Phase Active",
            "Monitor voting progress and prepare the judging panel.",
        ),
    },
    Phase.JUDGING: {
        Role.PARTICIPANT: _m(
            "Judging in Progress",
            "The judges are reviewing all submissions. Results will be announced soon!",
        ),
        Role.AMBASSADOR: _m(
            "Judges at Work",
            "The judges are evaluating submissions. Results will be announced soon!",
        ),
        Role.JUDGE: _m(
            "Complete Your Evaluations",
            "Please finish scoring all submissions. Check your Judge Scoring panel for remaining projects.",
            "warning",
        ),
        Role.ADMIN: _m(
            "Judging Phase",
            "Ensure all judges complete their evaluations and prepare the results announcement.",
            "warning",
        ),
    },
    Phase.RESULTS: {
        Role.PARTICIPANT: _m(
            "Results Are In!",
            "Congratulations to all participants! Check the Results page to see the winners.",
            "success",
        ),
        Role.AMBASSADOR: _m(
            "HackDay Complete!",
            "Check out the winners and celebrate with your teams.",
            "success",
        ),
        Role.JUDGE: _m(
            "Thank You, Judges!",
            "Thank you for evaluating the submissions. The final standings are on the Results page.",
            "success",
        ),
        Role.ADMIN: _m(
            "Event Complete",
            "Review the final results and gather feedback for next year's event.",
            "success",
        ),
    },
}


def get_motd(phase, role, announcement: Optional[str] = None) -> Dict[str, Optional[str]]:
    """Phase/role message, falling back to the participant one, then the default.

    The admin-edited event MOTD rides along as ``announcement`` when set.
    """
    try:
        messages = MOTD_MESSAGES[parse_phase(phase)]
    except ValueError:
        motd = dict(DEFAULT_MOTD)
    else:
        try:
            motd = dict(messages[parse_role(role)])
        except ValueError:
            motd = dict(messages.get(Role.PARTICIPANT, DEFAULT_MOTD))
    out: Dict[str, Optional[str]] = dict(motd)
    out["announcement"] = (announcement or "").strip() or None
    return out


__all__ = ["MOTD_MESSAGES", "DEFAULT_MOTD", "get_motd"]
