"""Tests for the SQLite database layer."""

import sqlite3
from unittest.mock import MagicMock

import pytest

from focus_rank.challenges import ChallengeDef, ChallengeKind, ChallengeProgress
from focus_rank.db import Database
from focus_rank.errors import ConfigurationError, SessionError, TransientSyncError
from focus_rank.levels import LevelEntry, default_level_config
from focus_rank.sessions import Mode, Session, SyncState


@pytest.fixture
def db(tmp_path):
    """Create a temporary database for testing."""
    db_path = tmp_path / "test.db"
    database = Database(db_path=db_path)
    yield database
    database.close()


def _session(sid: str, completed_at: int = 1_700_000_000_000, mode: Mode = Mode.FOCUS) -> Session:
    return Session(sid, mode, 1500, completed_at, tag="work")


class TestDatabaseCreation:
    def test_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "a" / "b" / "test.db"
        database = Database(db_path=db_path)
        assert db_path.exists()
        database.close()

    def test_tables_exist(self, db):
        cursor = db.conn.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
        tables = {row["name"] for row in cursor.fetchall()}
        assert {"sessions", "challenges", "challenge_progress", "level_config", "owner_cache"} <= tables

    def test_wal_mode_enabled(self, db):
        assert db.conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"


class TestSessions:
    def test_insert_and_get(self, db):
        assert db.insert_session("alice", _session("s1")) is True
        stored = db.get_sessions("alice")
        assert len(stored) == 1
        assert stored[0].owner == "alice"
        assert stored[0].sync == SyncState.SYNCED
        assert stored[0].tag == "work"

    def test_duplicate_identity_is_noop(self, db):
        assert db.insert_session("alice", _session("s1")) is True
        assert db.insert_session("alice", _session("s1", completed_at=5)) is False
        assert db.count_sessions("alice") == 1
        assert db.get_sessions("alice")[0].completed_at == 1_700_000_000_000

    def test_same_id_different_owners(self, db):
        db.insert_session("alice", _session("s1"))
        assert db.insert_session("bob", _session("s1")) is True
        assert db.list_owners() == ["alice", "bob"]

    def test_malformed_rejected(self, db):
        with pytest.raises(SessionError):
            db.insert_session("alice", Session("s1", Mode.FOCUS, 0, 1))

    def test_operational_error_is_transient(self, db):
        real = db.conn
        db.conn = MagicMock()
        db.conn.execute.side_effect = sqlite3.OperationalError("database is locked")
        try:
            with pytest.raises(TransientSyncError):
                db.insert_session("alice", _session("s1"))
        finally:
            db.conn = real

    def test_ordered_and_filtered_by_mode(self, db):
        db.insert_session("alice", _session("late", completed_at=300))
        db.insert_session("alice", _session("early", completed_at=100))
        db.insert_session("alice", _session("rest", completed_at=200, mode=Mode.BREAK))
        assert [s.id for s in db.get_sessions("alice")] == ["early", "rest", "late"]
        assert [s.id for s in db.get_sessions("alice", mode=Mode.FOCUS)] == ["early", "late"]
        assert db.count_sessions("alice") == 2
        assert db.count_sessions("alice", mode=None) == 3

    def test_unknown_owner_empty(self, db):
        assert db.get_sessions("nobody") == []
        assert db.count_sessions("nobody") == 0

    def test_clear_cascades(self, db):
        db.insert_session("alice", _session("s1"))
        db.insert_session("bob", _session("s1"))
        db.save_progress("alice", [ChallengeProgress("x", "", 1, True, 1)])
        db.set_cache("alice", "best_daily_streak", 9)
        assert db.clear_sessions("alice") == 1
        assert db.get_sessions("alice") == []
        assert db.get_progress("alice") == []
        assert db.get_cache("alice", "best_daily_streak") is None
        assert db.count_sessions("bob") == 1


class TestChallengeCatalog:
    def test_create_and_get(self, db):
        definition = ChallengeDef("m3", "March", "desc", ChallengeKind.RECURRING_MONTHLY, 5, recurring_month=3)
        db.create_challenge(definition)
        assert db.get_challenge("m3") == definition

    def test_duplicate_id_rejected(self, db):
        definition = ChallengeDef("a", "A", "", ChallengeKind.TOTAL, 1)
        db.create_challenge(definition)
        with pytest.raises(ConfigurationError):
            db.create_challenge(definition)

    def test_missing_challenge(self, db):
        assert db.get_challenge("nope") is None

    def test_toggle(self, db):
        db.create_challenge(ChallengeDef("a", "A", "", ChallengeKind.TOTAL, 1))
        assert db.toggle_challenge_active("a") is False
        assert db.get_challenges(active_only=True) == []
        assert db.toggle_challenge_active("a") is True
        assert len(db.get_challenges(active_only=True)) == 1

    def test_toggle_missing_raises(self, db):
        with pytest.raises(ConfigurationError):
            db.toggle_challenge_active("nope")


class TestProgress:
    def test_save_and_get(self, db):
        db.save_progress("alice", [ChallengeProgress("a", "", 3, False, None)])
        assert db.get_progress("alice") == [ChallengeProgress("a", "", 3, False, None)]

    def test_upsert_never_clears_completion(self, db):
        db.save_progress("alice", [ChallengeProgress("a", "", 10, True, 111)])
        db.save_progress("alice", [ChallengeProgress("a", "", 4, False, None)])
        row = db.get_progress("alice")[0]
        assert row.completed is True
        assert row.progress == 10
        assert row.completed_at == 111

    def test_period_keys_are_separate_rows(self, db):
        db.save_progress("alice", [ChallengeProgress("m", "2025", 5, True, 1)])
        db.save_progress("alice", [ChallengeProgress("m", "2026", 1, False, None)])
        assert [p.period_key for p in db.get_progress("alice")] == ["2025", "2026"]


class TestLevelConfig:
    def test_default_when_empty(self, db):
        assert db.has_level_config() is False
        assert db.get_level_config() == default_level_config()

    def test_replace(self, db):
        db.replace_level_config([LevelEntry(2, "Silver", 5), LevelEntry(1, "Bronze", 0)])
        assert db.has_level_config() is True
        assert [e.title for e in db.get_level_config()] == ["Bronze", "Silver"]

    def test_invalid_replace_keeps_old_table(self, db):
        db.replace_level_config([LevelEntry(1, "Bronze", 0), LevelEntry(2, "Silver", 5)])
        with pytest.raises(ConfigurationError):
            db.replace_level_config([LevelEntry(1, "A", 0), LevelEntry(2, "B", 0)])
        assert [e.title for e in db.get_level_config()] == ["Bronze", "Silver"]


class TestOwnerCache:
    def test_get_missing(self, db):
        assert db.get_cache("alice", "level") is None

    def test_set_and_overwrite(self, db):
        db.set_cache("alice", "level", 3)
        db.set_cache("alice", "level", 4)
        assert db.get_cache("alice", "level") == "4"

    def test_get_all_scoped_to_owner(self, db):
        db.set_cache("alice", "a", "1")
        db.set_cache("bob", "b", "2")
        assert db.get_all_cache("alice") == {"a": "1"}
