"""Session records: one completed focus or break interval."""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Iterable

from focus_rank.errors import SessionError


class Mode(str, Enum):
    FOCUS = "focus"
    BREAK = "break"


class SyncState(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"


@dataclass(frozen=True)
class Session:
    id: str
    mode: Mode
    duration: int  # seconds
    completed_at: int  # epoch millis, UTC
    tag: str | None = None
    owner: str | None = None  # None while client-local
    sync: SyncState = SyncState.PENDING

    @property
    def is_focus(self) -> bool:
        return self.mode == Mode.FOCUS

    def with_owner(self, owner: str) -> Session:
        return replace(self, owner=owner)

    def with_sync(self, state: SyncState) -> Session:
        return replace(self, sync=state)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["mode"] = self.mode.value
        data["sync"] = self.sync.value
        return data


def new_session_id() -> str:
    """Client-generated identity, distinct from any server identity."""
    return uuid.uuid4().hex


def new_session(
    mode: Mode | str,
    duration: int,
    tag: str | None = None,
    completed_at: int | None = None,
) -> Session:
    """Create a pending, owner-less session the instant a timer reaches zero."""
    session = Session(
        id=new_session_id(),
        mode=Mode(mode),
        duration=duration,
        completed_at=completed_at if completed_at is not None else int(time.time() * 1000),
        tag=tag or None,
    )
    validate_session(session)
    return session


def validate_session(session: Session) -> None:
    """Raise SessionError if the session can never be stored."""
    if not session.id:
        raise SessionError("Session id must not be empty")
    if not isinstance(session.mode, Mode):
        raise SessionError(f"Unknown session mode: {session.mode!r}")
    if isinstance(session.duration, bool) or not isinstance(session.duration, int) or session.duration <= 0:
        raise SessionError(f"Session duration must be a positive number of seconds, got {session.duration!r}")
    if isinstance(session.completed_at, bool) or not isinstance(session.completed_at, int) or session.completed_at <= 0:
        raise SessionError(f"Session completion timestamp is invalid: {session.completed_at!r}")
    if session.tag is not None and not isinstance(session.tag, str):
        raise SessionError(f"Session tag must be text, got {session.tag!r}")


def session_from_dict(data: dict) -> Session:
    """Build a Session from its JSON/row shape. Raises SessionError on bad input."""
    tag = data.get("tag") or None
    if tag is not None and not isinstance(tag, str):
        raise SessionError(f"Malformed session record: tag must be text, got {tag!r}")
    try:
        return Session(
            id=str(data["id"]),
            mode=Mode(data["mode"]),
            duration=int(data["duration"]),
            completed_at=int(data["completed_at"]),
            tag=tag,
            owner=data.get("owner"),
            sync=SyncState(data.get("sync", SyncState.PENDING.value)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise SessionError(f"Malformed session record: {e}") from e


def focus_only(sessions: Iterable[Session]) -> list[Session]:
    """Break sessions are stored but excluded from every derived metric."""
    return [s for s in sessions if s.is_focus]


def chronological(sessions: Iterable[Session]) -> list[Session]:
    """Sort by completion time; id breaks ties so replays are deterministic."""
    return sorted(sessions, key=lambda s: (s.completed_at, s.id))
