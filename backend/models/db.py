from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence
from contextlib import contextmanager

from config import settings
from models.schemas import (
    Event,
    Invite,
    JudgeScore,
    Membership,
    Notification,
    Submission,
    Team,
    User,
    Vote,
)
from models.store import ConflictError, Store
from utils.clock import now_iso


logger = logging.getLogger(__name__)

_DB_PATH: Path = Path(settings.DB_PATH)


def set_db_path(path: Path | str) -> None:
    global _DB_PATH
    _DB_PATH = Path(path)
    _DB_PATH.parent.mkdir(parents=True, exist_ok=True)


def get_db_path() -> Path:
    return _DB_PATH


def _connect(path: Optional[Path] = None) -> sqlite3.Connection:
    target = Path(path) if path else get_db_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(target, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # Enforce foreign keys (cascades from teams/projects rely on it)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def get_connection(path: Optional[Path] = None) -> Iterator[sqlite3.Connection]:
    conn = _connect(path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _ensure_schema_migrations_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            applied_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        """
    )


def _get_applied_versions(conn: sqlite3.Connection) -> set[str]:
    _ensure_schema_migrations_table(conn)
    cur = conn.execute("SELECT version FROM schema_migrations")
    return {row[0] for row in cur.fetchall()}


def _record_applied(conn: sqlite3.Connection, version: str) -> None:
    conn.execute("INSERT OR IGNORE INTO schema_migrations(version) VALUES (?)", (version,))


def _migration_files() -> Sequence[Path]:
    migrations_dir = Path(__file__).resolve().parents[1] / "migrations"
    return sorted(p for p in migrations_dir.iterdir() if p.suffix == ".sql")


def run_migrations(path: Optional[Path] = None) -> None:
    """Run pending SQL migrations found in backend/migrations/*.sql in sorted order."""
    with get_connection(path) as conn:
        applied = _get_applied_versions(conn)
        for sql_file in _migration_files():
            version = sql_file.stem
            if version in applied:
                continue
            try:
                conn.executescript(sql_file.read_text(encoding="utf-8"))
            except sqlite3.OperationalError as e:
                # Re-running an ALTER TABLE ADD COLUMN is harmless
                if "duplicate column name" not in str(e).lower():
                    raise
            _record_applied(conn, version)
            logger.info(f"Applied migration {version}")


def init_db(path: Optional[Path] = None) -> None:
    """Run migrations and seed the singleton event row. Safe to call multiple times."""
    run_migrations(path)
    with get_connection(path) as conn:
        cur = conn.execute("SELECT COUNT(*) FROM events")
        if cur.fetchone()[0] == 0:
            conn.execute(
                "INSERT INTO events(id, name, phase, start_date, end_date, motd, updated_at) VALUES(?,?,?,?,?,?,?)",
                (
                    settings.EVENT_ID,
                    settings.EVENT_NAME,
                    "registration",
                    settings.EVENT_START,
                    settings.EVENT_END,
                    "",
                    now_iso(),
                ),
            )
            logger.info(f"Seeded event {settings.EVENT_ID}")


def _where(filters: Dict[str, Any]) -> tuple[str, list[Any]]:
    clauses = []
    params: list[Any] = []
    for column, value in filters.items():
        if value is None:
            continue
        clauses.append(f"{column} = ?")
        params.append(value)
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


def _encode(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Lists/dicts go to JSON text, bools to 0/1, enums to their value."""
    out: Dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, (list, dict)):
            out[key] = json.dumps(value)
        elif isinstance(value, bool):
            out[key] = 1 if value else 0
        elif hasattr(value, "value"):
            out[key] = value.value
        else:
            out[key] = value
    return out


class SqliteStore(Store):
    """Persisted store over the module-level connection path."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path

    def _conn(self):
        return get_connection(self.path)

    def _insert(self, table: str, model) -> None:
        row = _encode(model.model_dump())
        columns = ", ".join(row)
        marks = ", ".join("?" for _ in row)
        try:
            with self._conn() as conn:
                conn.execute(f"INSERT INTO {table}({columns}) VALUES({marks})", list(row.values()))
        except sqlite3.IntegrityError as e:
            raise ConflictError(f"{table}: {e}") from e

    def _update(self, table: str, row_id: str, fields: Dict[str, Any]) -> bool:
        if not fields:
            return True
        row = _encode(fields)
        assignments = ", ".join(f"{column} = ?" for column in row)
        try:
            with self._conn() as conn:
                cur = conn.execute(
                    f"UPDATE {table} SET {assignments} WHERE id = ?", [*row.values(), row_id]
                )
                return cur.rowcount > 0
        except sqlite3.IntegrityError as e:
            raise ConflictError(f"{table}: {e}") from e

    def _fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        with self._conn() as conn:
            return conn.execute(sql, params).fetchone()

    def _fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        with self._conn() as conn:
            return list(conn.execute(sql, params).fetchall())

    # --- Event ---
    def get_event(self) -> Optional[Event]:
        row = self._fetch_one("SELECT * FROM events ORDER BY rowid ASC LIMIT 1")
        return Event.from_row(row) if row else None

    def save_event(self, event: Event) -> Event:
        event = event.model_copy(update={"updated_at": now_iso()})
        row = _encode(event.model_dump())
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO events(id, name, phase, start_date, end_date, motd, updated_at)
                VALUES(:id, :name, :phase, :start_date, :end_date, :motd, :updated_at)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name, phase=excluded.phase, start_date=excluded.start_date,
                    end_date=excluded.end_date, motd=excluded.motd, updated_at=excluded.updated_at
                """,
                row,
            )
        return event

    # --- Users ---
    def add_user(self, user: User) -> User:
        if not user.created_at:
            user = user.model_copy(update={"created_at": now_iso()})
        self._insert("users", user)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        row = self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
        return User.from_row(row) if row else None

    def list_users(self, free_agents_only: bool = False) -> List[User]:
        sql = "SELECT * FROM users"
        if free_agents_only:
            sql += " WHERE is_free_agent = 1"
        rows = self._fetch_all(sql + " ORDER BY created_at ASC, rowid ASC")
        return [User.from_row(r) for r in rows]

    def update_user(self, user_id: str, **fields) -> Optional[User]:
        if not self._update("users", user_id, fields):
            return None
        return self.get_user(user_id)

    # --- Teams ---
    def add_team(self, team: Team) -> Team:
        if not team.created_at:
            team = team.model_copy(update={"created_at": now_iso()})
        self._insert("teams", team)
        return team

    def get_team(self, team_id: str) -> Optional[Team]:
        row = self._fetch_one("SELECT * FROM teams WHERE id = ?", (team_id,))
        return Team.from_row(row) if row else None

    def find_team_by_name(self, name: str) -> Optional[Team]:
        row = self._fetch_one("SELECT * FROM teams WHERE name = ? COLLATE NOCASE", (name.strip(),))
        return Team.from_row(row) if row else None

    def list_teams(self) -> List[Team]:
        rows = self._fetch_all("SELECT * FROM teams ORDER BY created_at DESC, rowid DESC")
        return [Team.from_row(r) for r in rows]

    def update_team(self, team_id: str, **fields) -> Optional[Team]:
        if not self._update("teams", team_id, fields):
            return None
        return self.get_team(team_id)

    def delete_team(self, team_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM teams WHERE id = ?", (team_id,))
            return cur.rowcount > 0

    # --- Memberships ---
    def add_membership(self, membership: Membership) -> Membership:
        if not membership.created_at:
            membership = membership.model_copy(update={"created_at": now_iso()})
        self._insert("team_members", membership)
        return membership

    def get_membership(self, membership_id: str) -> Optional[Membership]:
        row = self._fetch_one("SELECT * FROM team_members WHERE id = ?", (membership_id,))
        return Membership.from_row(row) if row else None

    def list_memberships(
        self,
        team_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Membership]:
        where, params = _where({"team_id": team_id, "user_id": user_id, "status": status})
        rows = self._fetch_all(
            "SELECT * FROM team_members" + where + " ORDER BY created_at ASC, rowid ASC", params
        )
        return [Membership.from_row(r) for r in rows]

    def update_membership(self, membership_id: str, **fields) -> Optional[Membership]:
        if not self._update("team_members", membership_id, fields):
            return None
        return self.get_membership(membership_id)

    def delete_membership(self, membership_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM team_members WHERE id = ?", (membership_id,))
            return cur.rowcount > 0

    # --- Invites ---
    def add_invite(self, invite: Invite) -> Invite:
        if not invite.created_at:
            invite = invite.model_copy(update={"created_at": now_iso()})
        self._insert("team_invites", invite)
        return invite

    def get_invite(self, invite_id: str) -> Optional[Invite]:
        row = self._fetch_one("SELECT * FROM team_invites WHERE id = ?", (invite_id,))
        return Invite.from_row(row) if row else None

    def list_invites(
        self,
        team_id: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Invite]:
        where, params = _where({"team_id": team_id, "user_id": user_id, "status": status})
        rows = self._fetch_all(
            "SELECT * FROM team_invites" + where + " ORDER BY created_at ASC, rowid ASC", params
        )
        return [Invite.from_row(r) for r in rows]

    def update_invite(self, invite_id: str, **fields) -> Optional[Invite]:
        if not self._update("team_invites", invite_id, fields):
            return None
        return self.get_invite(invite_id)

    # --- Submissions ---
    def get_submission(self, team_id: str) -> Optional[Submission]:
        row = self._fetch_one("SELECT * FROM projects WHERE team_id = ?", (team_id,))
        return Submission.from_row(row) if row else None

    def get_submission_by_id(self, project_id: str) -> Optional[Submission]:
        row = self._fetch_one("SELECT * FROM projects WHERE id = ?", (project_id,))
        return Submission.from_row(row) if row else None

    def save_submission(self, submission: Submission) -> Submission:
        existing = self.get_submission(submission.team_id)
        submission = submission.model_copy(update={"updated_at": now_iso()})
        if existing:
            submission = submission.model_copy(update={"id": existing.id})
            fields = submission.model_dump(exclude={"id", "team_id"})
            self._update("projects", existing.id, fields)
            return submission
        self._insert("projects", submission)
        return submission

    def list_submissions(self, status: Optional[str] = None) -> List[Submission]:
        where, params = _where({"status": status})
        rows = self._fetch_all("SELECT * FROM projects" + where + " ORDER BY rowid ASC", params)
        return [Submission.from_row(r) for r in rows]

    # --- Votes ---
    def add_vote(self, vote: Vote) -> Vote:
        if not vote.created_at:
            vote = vote.model_copy(update={"created_at": now_iso()})
        self._insert("votes", vote)
        return vote

    def delete_vote(self, user_id: str, project_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(
                "DELETE FROM votes WHERE user_id = ? AND project_id = ?", (user_id, project_id)
            )
            return cur.rowcount > 0

    def list_votes(self, user_id: Optional[str] = None, project_id: Optional[str] = None) -> List[Vote]:
        where, params = _where({"user_id": user_id, "project_id": project_id})
        rows = self._fetch_all("SELECT * FROM votes" + where + " ORDER BY created_at ASC, rowid ASC", params)
        return [Vote.from_row(r) for r in rows]

    # --- Judge scores ---
    def save_score(self, score: JudgeScore) -> JudgeScore:
        now = now_iso()
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO judge_scores(id, judge_id, project_id, scores, comments, created_at, updated_at)
                VALUES(?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(judge_id, project_id) DO UPDATE SET
                    scores=excluded.scores, comments=excluded.comments, updated_at=excluded.updated_at
                """,
                (score.id, score.judge_id, score.project_id, json.dumps(score.scores), score.comments, now, now),
            )
            row = conn.execute(
                "SELECT * FROM judge_scores WHERE judge_id = ? AND project_id = ?",
                (score.judge_id, score.project_id),
            ).fetchone()
        return JudgeScore.from_row(row)

    def list_scores(self, project_id: Optional[str] = None, judge_id: Optional[str] = None) -> List[JudgeScore]:
        where, params = _where({"project_id": project_id, "judge_id": judge_id})
        rows = self._fetch_all(
            "SELECT * FROM judge_scores" + where + " ORDER BY created_at ASC, rowid ASC", params
        )
        return [JudgeScore.from_row(r) for r in rows]

    # --- Notifications ---
    def add_notification(self, notification: Notification) -> Notification:
        if not notification.created_at:
            notification = notification.model_copy(update={"created_at": now_iso()})
        self._insert("notifications", notification)
        return notification

    def get_notification(self, notification_id: str) -> Optional[Notification]:
        row = self._fetch_one("SELECT * FROM notifications WHERE id = ?", (notification_id,))
        return Notification.from_row(row) if row else None

    def list_notifications(
        self, user_id: str, limit: int = 50, kind: Optional[str] = None
    ) -> List[Notification]:
        where, params = _where({"user_id": user_id, "kind": kind})
        rows = self._fetch_all(
            "SELECT * FROM notifications" + where + " ORDER BY created_at DESC, rowid DESC LIMIT ?",
            [*params, limit],
        )
        return [Notification.from_row(r) for r in rows]

    def count_unread(self, user_id: str) -> int:
        row = self._fetch_one("SELECT COUNT(*) FROM notifications WHERE user_id = ? AND read = 0", (user_id,))
        return int(row[0]) if row else 0

    def mark_notifications_read(self, user_id: str, notification_id: Optional[str] = None) -> int:
        sql = "UPDATE notifications SET read = 1 WHERE user_id = ? AND read = 0"
        params: list[Any] = [user_id]
        if notification_id is not None:
            sql += " AND id = ?"
            params.append(notification_id)
        with self._conn() as conn:
            return conn.execute(sql, params).rowcount or 0
