from __future__ import annotations

"""Achievement progress stores.

Both stores make ``upsert_progress`` atomic per (user, achievement): the
read of the current row, the duplicate-event check and the write happen
under one lock (in memory) or one ``BEGIN IMMEDIATE`` transaction (SQLite).
An earned row is never modified again, and an event id is applied to a
given row at most once. Applied-event markers are kept only while the row
is unearned.
"""

import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Set, Tuple

from .schema import ProgressRow

ONE_SHOT_PROGRESS = 100


class AwardOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    ALREADY_EARNED = "already_earned"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class UpsertResult:
    outcome: AwardOutcome
    row: Optional[ProgressRow]
    newly_earned: bool = False


class ProgressStore(Protocol):
    def get_progress(self, user_id: str, achievement_id: str) -> Optional[ProgressRow]: ...

    def list_progress(self, user_id: str) -> Dict[str, ProgressRow]: ...

    def upsert_progress(
        self,
        user_id: str,
        achievement_id: str,
        *,
        increment: int = 0,
        target: Optional[int] = None,
        earn: bool = False,
        event_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> UpsertResult: ...


def _next_row(
    current: Optional[ProgressRow],
    user_id: str,
    achievement_id: str,
    increment: int,
    target: Optional[int],
    earn: bool,
    now: datetime,
) -> Tuple[ProgressRow, bool]:
    progress = (current.progress if current else 0) + max(int(increment), 0)
    earned = earn or (target is not None and progress >= int(target))
    if earned and target is None:
        progress = max(progress, ONE_SHOT_PROGRESS)
    row = ProgressRow(
        user_id=user_id,
        achievement_id=achievement_id,
        progress=progress,
        earned_at=now if earned else None,
        updated_at=now,
    )
    return row, earned


class InMemoryProgressStore:
    """Process-local store; one lock serialises every upsert."""

    def __init__(self) -> None:
        self._rows: Dict[Tuple[str, str], ProgressRow] = {}
        # applied event ids per unearned (user, achievement)
        self._applied: Dict[Tuple[str, str], Set[str]] = {}
        self._lock = threading.Lock()

    def get_progress(self, user_id: str, achievement_id: str) -> Optional[ProgressRow]:
        with self._lock:
            return self._rows.get((user_id, achievement_id))

    def list_progress(self, user_id: str) -> Dict[str, ProgressRow]:
        with self._lock:
            return {a: r for (u, a), r in self._rows.items() if u == user_id}

    def upsert_progress(
        self,
        user_id: str,
        achievement_id: str,
        *,
        increment: int = 0,
        target: Optional[int] = None,
        earn: bool = False,
        event_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> UpsertResult:
        now = now or datetime.now(timezone.utc)
        key = (user_id, achievement_id)
        with self._lock:
            current = self._rows.get(key)
            if current is not None and current.earned:
                return UpsertResult(AwardOutcome.ALREADY_EARNED, current)
            if event_id is not None:
                seen = self._applied.setdefault(key, set())
                if event_id in seen:
                    return UpsertResult(AwardOutcome.DUPLICATE, current)
                seen.add(event_id)
            row, earned = _next_row(current, user_id, achievement_id, increment, target, earn, now)
            self._rows[key] = row
            if earned:
                self._applied.pop(key, None)
            outcome = AwardOutcome.CREATED if current is None else AwardOutcome.UPDATED
            return UpsertResult(outcome, row, newly_earned=earned)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS user_achievements (
    user_id TEXT NOT NULL,
    achievement_id TEXT NOT NULL,
    progress INTEGER NOT NULL DEFAULT 0,
    earned_at TEXT,
    updated_at TEXT,
    PRIMARY KEY (user_id, achievement_id)
);
CREATE TABLE IF NOT EXISTS applied_events (
    user_id TEXT NOT NULL,
    achievement_id TEXT NOT NULL,
    event_id TEXT NOT NULL,
    PRIMARY KEY (user_id, achievement_id, event_id)
);
"""

UPSERT_SQL = """
INSERT INTO user_achievements (user_id, achievement_id, progress, earned_at, updated_at)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(user_id, achievement_id) DO UPDATE SET
    progress = excluded.progress,
    earned_at = excluded.earned_at,
    updated_at = excluded.updated_at
WHERE user_achievements.earned_at IS NULL
"""


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SqliteProgressStore:
    """SQLite-backed store with a unique (user_id, achievement_id) key.

    Safe across threads (shared connection behind a lock) and across
    processes (``BEGIN IMMEDIATE`` takes the database write lock before the
    row is read).
    """

    def __init__(self, db_path: str | Path = "progress.db") -> None:
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    def connect(self, enable_wal: bool = True) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self.db_path, timeout=30.0, isolation_level=None, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        if enable_wal:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA busy_timeout=30000")
        self._conn.executescript(SCHEMA_SQL)

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SqliteProgressStore":
        self.connect()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._conn

    @staticmethod
    def _row(r: sqlite3.Row) -> ProgressRow:
        return ProgressRow(
            user_id=r["user_id"],
            achievement_id=r["achievement_id"],
            progress=r["progress"],
            earned_at=_parse_ts(r["earned_at"]),
            updated_at=_parse_ts(r["updated_at"]),
        )

    def _fetch(self, user_id: str, achievement_id: str) -> Optional[ProgressRow]:
        r = self.conn.execute(
            "SELECT * FROM user_achievements WHERE user_id = ? AND achievement_id = ?",
            (user_id, achievement_id),
        ).fetchone()
        return None if r is None else self._row(r)

    def get_progress(self, user_id: str, achievement_id: str) -> Optional[ProgressRow]:
        with self._lock:
            return self._fetch(user_id, achievement_id)

    def list_progress(self, user_id: str) -> Dict[str, ProgressRow]:
        with self._lock:
            rows = self.conn.execute("SELECT * FROM user_achievements WHERE user_id = ?", (user_id,)).fetchall()
        return {r["achievement_id"]: self._row(r) for r in rows}

    def upsert_progress(
        self,
        user_id: str,
        achievement_id: str,
        *,
        increment: int = 0,
        target: Optional[int] = None,
        earn: bool = False,
        event_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> UpsertResult:
        now = now or datetime.now(timezone.utc)
        with self._lock:
            conn = self.conn
            conn.execute("BEGIN IMMEDIATE")
            try:
                current = self._fetch(user_id, achievement_id)
                if current is not None and current.earned:
                    conn.execute("COMMIT")
                    return UpsertResult(AwardOutcome.ALREADY_EARNED, current)
                if event_id is not None:
                    cur = conn.execute(
                        "INSERT OR IGNORE INTO applied_events (user_id, achievement_id, event_id) VALUES (?, ?, ?)",
                        (user_id, achievement_id, event_id),
                    )
                    if cur.rowcount == 0:
                        conn.execute("COMMIT")
                        return UpsertResult(AwardOutcome.DUPLICATE, current)
                row, earned = _next_row(current, user_id, achievement_id, increment, target, earn, now)
                cur = conn.execute(
                    UPSERT_SQL,
                    (
                        row.user_id,
                        row.achievement_id,
                        row.progress,
                        row.earned_at.isoformat() if row.earned_at else None,
                        row.updated_at.isoformat() if row.updated_at else None,
                    ),
                )
                if cur.rowcount == 0:
                    # the conditional clause lost to an earlier award
                    conn.execute("ROLLBACK")
                    return UpsertResult(AwardOutcome.ALREADY_EARNED, self._fetch(user_id, achievement_id))
                if earned:
                    conn.execute(
                        "DELETE FROM applied_events WHERE user_id = ? AND achievement_id = ?",
                        (user_id, achievement_id),
                    )
                conn.execute("COMMIT")
            except Exception:
                conn.execute("ROLLBACK")
                raise
        outcome = AwardOutcome.CREATED if current is None else AwardOutcome.UPDATED
        return UpsertResult(outcome, row, newly_earned=earned)
