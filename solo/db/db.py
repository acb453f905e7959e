#!/usr/bin/env python3
# solo/db/db.py
from __future__ import annotations
"""
SQLite persistence for the bulletin board.

One `Database` object owns one connection for the life of the process:
  - users / profiles (credentials are scrypt hashes, see solo.security)
  - posts (types: post, announce, status)
  - weekly accountability posts (one per user per week)
  - guestbook entries
  - custom commands (name always stored with the `custom_` prefix)

Default location: ~/.solo-os/solo-os.db (override with DATABASE_PATH).
"""

import datetime as _dt
import logging
import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from solo.commands.command_types import User
from solo.commands.dynamic import CustomCommandRecord, namespaced
from solo.security import hash_password, needs_rehash, verify_password

log = logging.getLogger(__name__)

POST_TYPES = ("post", "announce", "status")
MEMORY_PATH = ":memory:"

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT UNIQUE NOT NULL COLLATE NOCASE,
        password_hash TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        last_login TIMESTAMP,
        is_admin INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS profiles (
        user_id INTEGER PRIMARY KEY,
        bio TEXT NOT NULL DEFAULT '',
        contact TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT '',
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS posts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'post',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE SET NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS guestbook (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        message TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS weekly_posts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        week_number INTEGER NOT NULL,
        last_week TEXT NOT NULL,
        next_week TEXT NOT NULL,
        wins TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
        UNIQUE(user_id, week_number)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS commands (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        creator_id INTEGER,
        name TEXT UNIQUE NOT NULL,
        description TEXT NOT NULL,
        implementation TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (creator_id) REFERENCES users(id) ON DELETE SET NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_posts_type_created ON posts(type, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_weekly_user ON weekly_posts(user_id, week_number DESC)",
)


# ---------- errors ----------

class PersistenceError(Exception):
    """A storage operation failed."""


class DuplicateNameError(PersistenceError):
    """A custom command with this name is already stored."""


class DuplicateUserError(PersistenceError):
    """A user with this username already exists."""


# ---------- row types ----------

@dataclass(slots=True)
class Post:
    id: int
    user_id: int | None
    title: str
    content: str
    type: str
    created_at: str | None
    username: str | None = None


@dataclass(slots=True)
class WeeklyPost:
    id: int
    user_id: int
    week_number: int
    last_week: str
    next_week: str
    wins: str
    created_at: str | None
    username: str | None = None


@dataclass(slots=True)
class GuestbookEntry:
    id: int
    name: str
    message: str
    created_at: str | None


def current_week_number(today: _dt.date | None = None) -> int:
    """Week of the year, counting the partial week containing Jan 1 as week 1."""
    day = today or _dt.date.today()
    jan1 = _dt.date(day.year, 1, 1)
    # Sunday-based weekday of Jan 1 (0 = Sunday)
    offset = (jan1.weekday() + 1) % 7
    return (day.timetuple().tm_yday - 1 + offset) // 7 + 1


def _user_from_row(row: sqlite3.Row) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        is_admin=bool(row["is_admin"]),
        created_at=row["created_at"],
        last_login=row["last_login"],
        bio=row["bio"] or "",
        contact=row["contact"] or "",
        status=row["status"] or "",
    )


def _command_from_row(row: sqlite3.Row) -> CustomCommandRecord:
    keys = row.keys()
    return CustomCommandRecord(
        id=row["id"],
        creator_id=row["creator_id"],
        name=row["name"],
        description=row["description"],
        implementation=row["implementation"],
        created_at=row["created_at"],
        creator=row["creator"] if "creator" in keys else None,
    )


_USER_SELECT = """
    SELECT u.id, u.username, u.created_at, u.last_login, u.is_admin,
           p.bio, p.contact, p.status
    FROM users u
    LEFT JOIN profiles p ON u.id = p.user_id
"""

_COMMAND_SELECT = """
    SELECT c.id, c.creator_id, c.name, c.description, c.implementation,
           c.created_at, u.username AS creator
    FROM commands c
    LEFT JOIN users u ON u.id = c.creator_id
"""


class Database:
    """Single-connection SQLite gateway. Use as a context manager or call close()."""

    def __init__(self, path: str | Path = MEMORY_PATH) -> None:
        path = str(path)
        if path != MEMORY_PATH:
            path = str(Path(path).expanduser())
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.path = path
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys=ON;")
        if self.path != MEMORY_PATH:
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
        self.initialize()

    # ---------------- lifecycle ----------------

    def initialize(self) -> None:
        """Create tables and indexes (idempotent)."""
        with self._tx() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _tx(self):
        """Connection as a transaction context: commit on success, rollback on error."""
        return _Transaction(self)

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return list(self._conn.execute(sql, params).fetchall())

    def _query_one(self, sql: str, params: tuple[Any, ...] = ()) -> Optional[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchone()

    # ---------------- custom commands ----------------

    def get_all_custom_commands(self) -> list[CustomCommandRecord]:
        rows = self._query(_COMMAND_SELECT + " ORDER BY c.id")
        return [_command_from_row(r) for r in rows]

    def insert_custom_command(
        self,
        creator_id: int | None,
        name: str,
        description: str,
        implementation: str,
    ) -> int:
        stored = namespaced(name)
        try:
            with self._tx() as conn:
                cur = conn.execute(
                    """
                    INSERT INTO commands (creator_id, name, description, implementation)
                    VALUES (?, ?, ?, ?)
                    """,
                    (creator_id, stored, description, implementation),
                )
        except sqlite3.IntegrityError as exc:
            if "UNIQUE" in str(exc).upper():
                raise DuplicateNameError(
                    f"Command '{stored}' already exists") from exc
            raise PersistenceError(str(exc)) from exc
        log.info("Stored custom command %s", stored)
        return int(cur.lastrowid)

    def find_custom_command_by_name(self, name: str) -> Optional[CustomCommandRecord]:
        """Look up by bare (`greet`) or namespaced (`custom_greet`) name."""
        row = self._query_one(_COMMAND_SELECT + " WHERE c.name = ?", (namespaced(name),))
        return _command_from_row(row) if row else None

    def list_custom_commands(self) -> list[CustomCommandRecord]:
        rows = self._query(_COMMAND_SELECT + " ORDER BY c.name")
        return [_command_from_row(r) for r in rows]

    # ---------------- users ----------------

    def create_user(self, username: str, password: str, *, is_admin: bool = False) -> int:
        password_hash = hash_password(password)
        try:
            with self._tx() as conn:
                cur = conn.execute(
                    "INSERT INTO users (username, password_hash, is_admin) VALUES (?, ?, ?)",
                    (username, password_hash, int(is_admin)),
                )
                user_id = int(cur.lastrowid)
                conn.execute(
                    "INSERT INTO profiles (user_id, bio, contact, status) VALUES (?, '', '', '')",
                    (user_id,),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateUserError(f"User {username} already exists") from exc
        log.info("Created user %s%s", username, " (admin)" if is_admin else "")
        return user_id

    def get_user_by_username(self, username: str) -> Optional[User]:
        row = self._query_one(_USER_SELECT + " WHERE u.username = ?", (username,))
        return _user_from_row(row) if row else None

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        row = self._query_one(_USER_SELECT + " WHERE u.id = ?", (user_id,))
        return _user_from_row(row) if row else None

    def authenticate_user(self, username: str, password: str) -> Optional[User]:
        """Return the user on a correct password (and stamp last_login), else None."""
        row = self._query_one(
            "SELECT id, password_hash FROM users WHERE username = ?", (username,))
        if row is None or not verify_password(password, row["password_hash"]):
            return None
        with self._tx() as conn:
            conn.execute(
                "UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE id = ?", (row["id"],))
            if needs_rehash(row["password_hash"]):
                conn.execute(
                    "UPDATE users SET password_hash = ? WHERE id = ?",
                    (hash_password(password), row["id"]),
                )
        return self.get_user_by_id(row["id"])

    def list_users(self) -> list[User]:
        return [_user_from_row(r) for r in self._query(_USER_SELECT + " ORDER BY u.username")]

    def set_admin(self, user_id: int, is_admin: bool) -> None:
        with self._tx() as conn:
            conn.execute("UPDATE users SET is_admin = ? WHERE id = ?", (int(is_admin), user_id))

    def count_admins(self) -> int:
        row = self._query_one("SELECT COUNT(*) AS n FROM users WHERE is_admin = 1")
        return int(row["n"]) if row else 0

    def count_users(self) -> int:
        row = self._query_one("SELECT COUNT(*) AS n FROM users")
        return int(row["n"]) if row else 0

    # ---------------- profiles ----------------

    def update_profile(
        self,
        user_id: int,
        *,
        bio: str | None = None,
        contact: str | None = None,
        status: str | None = None,
    ) -> None:
        """Update only the profile fields that are given."""
        fields = {k: v for k, v in (("bio", bio), ("contact", contact), ("status", status))
                  if v is not None}
        if not fields:
            return
        assignments = ", ".join(f"{k} = ?" for k in fields)  # keys are fixed above
        with self._tx() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO profiles (user_id) VALUES (?)", (user_id,))
            conn.execute(
                f"UPDATE profiles SET {assignments} WHERE user_id = ?",
                (*fields.values(), user_id),
            )

    def update_status(self, user_id: int, status: str) -> None:
        self.update_profile(user_id, status=status)

    # ---------------- posts ----------------

    def create_post(self, user_id: int | None, title: str, content: str, type: str = "post") -> int:
        if type not in POST_TYPES:
            raise ValueError(f"Post type must be one of {POST_TYPES}, got {type!r}")
        with self._tx() as conn:
            cur = conn.execute(
                "INSERT INTO posts (user_id, title, content, type) VALUES (?, ?, ?, ?)",
                (user_id, title, content, type),
            )
        return int(cur.lastrowid)

    def get_post(self, post_id: int) -> Optional[Post]:
        row = self._query_one(
            """
            SELECT p.*, u.username FROM posts p
            LEFT JOIN users u ON u.id = p.user_id
            WHERE p.id = ?
            """,
            (post_id,),
        )
        return Post(**dict(row)) if row else None

    def list_posts(self, type: str = "post", limit: int = 10) -> list[Post]:
        rows = self._query(
            """
            SELECT p.*, u.username FROM posts p
            LEFT JOIN users u ON u.id = p.user_id
            WHERE p.type = ?
            ORDER BY p.created_at DESC, p.id DESC
            LIMIT ?
            """,
            (type, max(int(limit), 0)),
        )
        return [Post(**dict(r)) for r in rows]

    # ---------------- weekly posts ----------------

    def upsert_weekly_post(
        self,
        user_id: int,
        week_number: int,
        last_week: str,
        next_week: str,
        wins: str = "",
    ) -> int:
        """Create the user's post for `week_number`, or replace its text."""
        with self._tx() as conn:
            conn.execute(
                """
                INSERT INTO weekly_posts (user_id, week_number, last_week, next_week, wins)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user_id, week_number) DO UPDATE SET
                    last_week = excluded.last_week,
                    next_week = excluded.next_week,
                    wins = excluded.wins
                """,
                (user_id, week_number, last_week, next_week, wins or ""),
            )
            row = conn.execute(
                "SELECT id FROM weekly_posts WHERE user_id = ? AND week_number = ?",
                (user_id, week_number),
            ).fetchone()
        return int(row["id"])

    def get_weekly_post(self, user_id: int, week_number: int) -> Optional[WeeklyPost]:
        row = self._query_one(
            """
            SELECT w.*, u.username FROM weekly_posts w
            JOIN users u ON u.id = w.user_id
            WHERE w.user_id = ? AND w.week_number = ?
            """,
            (user_id, week_number),
        )
        return WeeklyPost(**dict(row)) if row else None

    def latest_weekly_posts(self) -> list[WeeklyPost]:
        """Most recent weekly post of every user, newest first."""
        rows = self._query(
            """
            SELECT w.*, u.username FROM weekly_posts w
            JOIN users u ON u.id = w.user_id
            WHERE w.id IN (SELECT MAX(id) FROM weekly_posts GROUP BY user_id)
            ORDER BY w.created_at DESC, w.id DESC
            """
        )
        return [WeeklyPost(**dict(r)) for r in rows]

    @staticmethod
    def current_week_number() -> int:
        return current_week_number()

    # ---------------- guestbook ----------------

    def add_guestbook_entry(self, name: str, message: str) -> int:
        with self._tx() as conn:
            cur = conn.execute(
                "INSERT INTO guestbook (name, message) VALUES (?, ?)", (name, message))
        return int(cur.lastrowid)

    def list_guestbook_entries(self, limit: int = 10) -> list[GuestbookEntry]:
        rows = self._query(
            "SELECT * FROM guestbook ORDER BY created_at DESC, id DESC LIMIT ?",
            (max(int(limit), 0),),
        )
        return [GuestbookEntry(**dict(r)) for r in rows]

    def guestbook_has_name(self, name: str) -> bool:
        return self._query_one("SELECT 1 FROM guestbook WHERE name = ?", (name,)) is not None

    # ---------------- stats ----------------

    def stats(self) -> dict[str, int]:
        """Row counts used by `system info`."""
        row = self._query_one(
            """
            SELECT
                (SELECT COUNT(*) FROM users) AS users,
                (SELECT COUNT(*) FROM posts WHERE type = 'post') AS posts,
                (SELECT COUNT(*) FROM posts WHERE type = 'announce') AS announcements,
                (SELECT COUNT(*) FROM posts WHERE type = 'status') AS statuses,
                (SELECT COUNT(*) FROM weekly_posts) AS weekly_posts,
                (SELECT COUNT(*) FROM guestbook) AS guestbook,
                (SELECT COUNT(*) FROM commands) AS commands
            """
        )
        return {k: int(row[k]) for k in row.keys()} if row else {}


class _Transaction:
    """Holds the gateway lock for the duration of one committed unit of work."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def __enter__(self) -> sqlite3.Connection:
        self._db._lock.acquire()
        return self._db._conn

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self._db._conn.commit()
            else:
                self._db._conn.rollback()
        finally:
            self._db._lock.release()
