"""SQLite authoritative session store for focus-rank."""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from focus_rank.challenges import ChallengeDef, ChallengeKind, ChallengeProgress
from focus_rank.errors import ConfigurationError, TransientSyncError
from focus_rank.levels import LevelEntry, default_level_config, validate_level_config
from focus_rank.sessions import Mode, Session, SyncState, validate_session

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".focus-rank" / "data.db"


class Database:
    """SQLite database manager with WAL mode.

    The only writer of session rows. Rows are keyed by (owner, client session
    id), so inserting the same session twice is a no-op.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path or DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path), timeout=5.0)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.init_db()

    def init_db(self) -> None:
        """Create tables if they do not exist."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS sessions (
                owner TEXT NOT NULL,
                id TEXT NOT NULL,
                mode TEXT NOT NULL,
                duration INTEGER NOT NULL,
                tag TEXT,
                completed_at INTEGER NOT NULL,
                PRIMARY KEY (owner, id)
            );

            CREATE INDEX IF NOT EXISTS idx_sessions_owner_time
                ON sessions (owner, completed_at);

            CREATE TABLE IF NOT EXISTS challenges (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT DEFAULT '',
                kind TEXT NOT NULL,
                target INTEGER NOT NULL,
                active BOOLEAN DEFAULT 1,
                recurring_month INTEGER,
                badge TEXT DEFAULT 'Trophy',
                created_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS challenge_progress (
                owner TEXT NOT NULL,
                challenge_id TEXT NOT NULL,
                period_key TEXT NOT NULL DEFAULT '',
                progress INTEGER DEFAULT 0,
                completed BOOLEAN DEFAULT 0,
                completed_at INTEGER,
                PRIMARY KEY (owner, challenge_id, period_key)
            );

            CREATE TABLE IF NOT EXISTS level_config (
                level INTEGER PRIMARY KEY,
                title TEXT NOT NULL,
                threshold INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS owner_cache (
                owner TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT,
                PRIMARY KEY (owner, key)
            );
        """)
        self.conn.commit()

    # --- Sessions ---

    def insert_session(self, owner: str, session: Session) -> bool:
        """Insert one session for owner. Returns False if its identity is already stored.

        Raises SessionError for malformed sessions and TransientSyncError when
        the database is busy or otherwise temporarily unavailable.
        """
        validate_session(session)
        try:
            with self.conn:
                cursor = self.conn.execute(
                    "INSERT INTO sessions (owner, id, mode, duration, tag, completed_at) "
                    "VALUES (?, ?, ?, ?, ?, ?) ON CONFLICT(owner, id) DO NOTHING",
                    (owner, session.id, session.mode.value, session.duration, session.tag, session.completed_at),
                )
        except sqlite3.OperationalError as e:
            raise TransientSyncError(f"Could not store session {session.id}: {e}") from e
        return cursor.rowcount == 1

    def get_sessions(self, owner: str, mode: Mode | None = None) -> list[Session]:
        """All stored sessions for owner, oldest first."""
        query = "SELECT * FROM sessions WHERE owner = ?"
        params: list = [owner]
        if mode is not None:
            query += " AND mode = ?"
            params.append(mode.value)
        rows = self.conn.execute(query + " ORDER BY completed_at, id", params).fetchall()
        return [
            Session(
                id=row["id"],
                mode=Mode(row["mode"]),
                duration=row["duration"],
                completed_at=row["completed_at"],
                tag=row["tag"],
                owner=row["owner"],
                sync=SyncState.SYNCED,
            )
            for row in rows
        ]

    def count_sessions(self, owner: str, mode: Mode | None = Mode.FOCUS) -> int:
        query = "SELECT COUNT(*) FROM sessions WHERE owner = ?"
        params: list = [owner]
        if mode is not None:
            query += " AND mode = ?"
            params.append(mode.value)
        return self.conn.execute(query, params).fetchone()[0]

    def list_owners(self) -> list[str]:
        rows = self.conn.execute("SELECT DISTINCT owner FROM sessions ORDER BY owner").fetchall()
        return [row["owner"] for row in rows]

    def clear_sessions(self, owner: str) -> int:
        """Delete every session for owner and invalidate all derived aggregates."""
        with self.conn:
            deleted = self.conn.execute("DELETE FROM sessions WHERE owner = ?", (owner,)).rowcount
            self.conn.execute("DELETE FROM challenge_progress WHERE owner = ?", (owner,))
            self.conn.execute("DELETE FROM owner_cache WHERE owner = ?", (owner,))
        logger.info("clear_sessions owner=%s deleted=%s", owner, deleted)
        return deleted

    # --- Challenge catalog ---

    def create_challenge(self, definition: ChallengeDef) -> None:
        """Add a challenge to the catalog. Raises ConfigurationError if the id exists."""
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT INTO challenges "
                    "(id, name, description, kind, target, active, recurring_month, badge, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        definition.id, definition.name, definition.description, definition.kind.value,
                        definition.target, definition.active, definition.recurring_month, definition.badge,
                        int(time.time() * 1000),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise ConfigurationError(f"Challenge {definition.id!r} already exists") from e

    def _row_to_challenge(self, row: sqlite3.Row) -> ChallengeDef:
        return ChallengeDef(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            kind=ChallengeKind(row["kind"]),
            target=row["target"],
            active=bool(row["active"]),
            recurring_month=row["recurring_month"],
            badge=row["badge"] or "Trophy",
        )

    def get_challenge(self, challenge_id: str) -> ChallengeDef | None:
        row = self.conn.execute(
            "SELECT * FROM challenges WHERE id = ?", (challenge_id,)
        ).fetchone()
        return self._row_to_challenge(row) if row else None

    def get_challenges(self, active_only: bool = False) -> list[ChallengeDef]:
        query = "SELECT * FROM challenges"
        if active_only:
            query += " WHERE active = 1"
        rows = self.conn.execute(query + " ORDER BY created_at, id").fetchall()
        return [self._row_to_challenge(row) for row in rows]

    def set_challenge_active(self, challenge_id: str, active: bool) -> None:
        with self.conn:
            cursor = self.conn.execute(
                "UPDATE challenges SET active = ? WHERE id = ?", (active, challenge_id)
            )
        if cursor.rowcount == 0:
            raise ConfigurationError(f"Challenge {challenge_id!r} not found")

    def toggle_challenge_active(self, challenge_id: str) -> bool:
        """Flip the active flag and return the new value."""
        existing = self.get_challenge(challenge_id)
        if existing is None:
            raise ConfigurationError(f"Challenge {challenge_id!r} not found")
        self.set_challenge_active(challenge_id, not existing.active)
        return not existing.active

    # --- Per-owner challenge progress ---

    def get_progress(self, owner: str) -> list[ChallengeProgress]:
        rows = self.conn.execute(
            "SELECT * FROM challenge_progress WHERE owner = ? ORDER BY challenge_id, period_key",
            (owner,),
        ).fetchall()
        return [
            ChallengeProgress(
                challenge_id=row["challenge_id"],
                period_key=row["period_key"],
                progress=row["progress"],
                completed=bool(row["completed"]),
                completed_at=row["completed_at"],
            )
            for row in rows
        ]

    def save_progress(self, owner: str, rows: list[ChallengeProgress]) -> None:
        """Upsert progress rows. A stored completion is never cleared and progress never lowered."""
        with self.conn:
            for p in rows:
                self.conn.execute(
                    "INSERT INTO challenge_progress "
                    "(owner, challenge_id, period_key, progress, completed, completed_at) "
                    "VALUES (?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(owner, challenge_id, period_key) DO UPDATE SET "
                    "progress = MAX(challenge_progress.progress, excluded.progress), "
                    "completed = MAX(challenge_progress.completed, excluded.completed), "
                    "completed_at = COALESCE(challenge_progress.completed_at, excluded.completed_at)",
                    (owner, p.challenge_id, p.period_key, p.progress, p.completed, p.completed_at),
                )

    # --- Level configuration ---

    def get_level_config(self) -> list[LevelEntry]:
        """Stored level table, or the built-in default when none is stored."""
        rows = self.conn.execute("SELECT * FROM level_config ORDER BY level").fetchall()
        if not rows:
            return default_level_config()
        return [LevelEntry(level=row["level"], title=row["title"], threshold=row["threshold"]) for row in rows]

    def has_level_config(self) -> bool:
        return self.conn.execute("SELECT 1 FROM level_config LIMIT 1").fetchone() is not None

    def replace_level_config(self, entries: list[LevelEntry]) -> None:
        """Validate and atomically replace the whole level table."""
        ordered = validate_level_config(entries)
        with self.conn:
            self.conn.execute("DELETE FROM level_config")
            self.conn.executemany(
                "INSERT INTO level_config (level, title, threshold) VALUES (?, ?, ?)",
                [(e.level, e.title, e.threshold) for e in ordered],
            )
        logger.info("replace_level_config levels=%s", len(ordered))

    # --- Per-owner cache ---

    def get_cache(self, owner: str, key: str) -> str | None:
        row = self.conn.execute(
            "SELECT value FROM owner_cache WHERE owner = ? AND key = ?", (owner, key)
        ).fetchone()
        return row["value"] if row else None

    def set_cache(self, owner: str, key: str, value: str | int) -> None:
        """Set a cached value (upsert)."""
        self.conn.execute(
            "INSERT INTO owner_cache (owner, key, value) VALUES (?, ?, ?) "
            "ON CONFLICT(owner, key) DO UPDATE SET value = excluded.value",
            (owner, key, str(value)),
        )
        self.conn.commit()

    def get_all_cache(self, owner: str) -> dict[str, str]:
        rows = self.conn.execute(
            "SELECT key, value FROM owner_cache WHERE owner = ?", (owner,)
        ).fetchall()
        return {row["key"]: row["value"] for row in rows}

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()
