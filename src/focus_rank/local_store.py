"""Client-local session queue for focus-rank.

Sessions are recorded here the moment a timer completes, before any owner is
known or while offline. The sync reconciler is the only thing that reads the
pending queue; derived aggregates are computed from the authoritative store.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from filelock import FileLock

from focus_rank.errors import SessionError
from focus_rank.sessions import Session, SyncState, session_from_dict

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_PATH: Path = Path.home() / ".focus-rank" / "local-sessions.json"


class LocalSessionStore:
    """JSON-file backed list of locally created sessions."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or DEFAULT_LOCAL_PATH
        self._lock = FileLock(str(self.path) + ".lock")

    def _locked(self) -> FileLock:
        """Inter-process lock held across each read-modify-write of the file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return self._lock

    def _load(self) -> list[Session]:
        """Read all records. Missing or unreadable files count as empty."""
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("local session file %s unreadable, treating as empty: %s", self.path, e)
            return []
        if not isinstance(raw, list):
            logger.warning("local session file %s has unexpected shape, treating as empty", self.path)
            return []

        sessions: list[Session] = []
        for entry in raw:
            try:
                sessions.append(session_from_dict(entry))
            except SessionError as e:
                logger.warning("skipping malformed local session: %s", e)
        return sessions

    def _save(self, sessions: list[Session]) -> None:
        """Write all records using atomic replace."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
                json.dump([s.to_dict() for s in sessions], f, indent=2)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def record(self, session: Session) -> Session:
        """Append a newly completed session as pending. Re-recording an id is a no-op."""
        with self._locked():
            sessions = self._load()
            if any(s.id == session.id for s in sessions):
                return session
            pending = session.with_sync(SyncState.PENDING)
            sessions.append(pending)
            self._save(sessions)
        return pending

    def all(self) -> list[Session]:
        return self._load()

    def pending(self) -> list[Session]:
        return [s for s in self._load() if s.sync == SyncState.PENDING]

    def mark_synced(self, session_ids: Iterable[str]) -> int:
        """Mark sessions synced by client identity. Returns how many changed."""
        ids = set(session_ids)
        if not ids:
            return 0
        with self._locked():
            sessions = self._load()
            changed = 0
            updated: list[Session] = []
            for s in sessions:
                if s.id in ids and s.sync != SyncState.SYNCED:
                    updated.append(s.with_sync(SyncState.SYNCED))
                    changed += 1
                else:
                    updated.append(s)
            if changed:
                self._save(updated)
        return changed

    def prune_synced(self) -> int:
        """Drop synced records from the local file. Returns how many were removed."""
        with self._locked():
            sessions = self._load()
            kept = [s for s in sessions if s.sync != SyncState.SYNCED]
            removed = len(sessions) - len(kept)
            if removed:
                self._save(kept)
        return removed
