"""Exactly-once reconciliation of locally created sessions into the authoritative store.

Each pending session is inserted on its own, keyed by its client-generated
identity. A duplicate identity means an earlier attempt (this device, another
device, or another tab) already landed it, so it counts as accepted. One
session failing never blocks the rest of the batch. Aggregates are refreshed
only from what the store durably accepted, never from the pending queue.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Protocol

from focus_rank.config import Settings
from focus_rank.dates import Clock
from focus_rank.db import Database
from focus_rank.errors import SessionError, TransientSyncError
from focus_rank.local_store import LocalSessionStore
from focus_rank.progress import ProfileView, refresh_profile
from focus_rank.sessions import Session, validate_session

logger = logging.getLogger(__name__)


class SessionSink(Protocol):
    """Anything that can durably and idempotently store a session for an owner."""

    def insert_session(self, owner: str, session: Session) -> bool:
        """Return True if inserted, False if the identity was already stored."""
        ...


class Outcome(str, Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"


@dataclass
class SessionOutcome:
    session_id: str
    outcome: Outcome
    attempts: int = 1
    error: str | None = None


@dataclass
class RetryPolicy:
    attempts: int = 3
    base_delay: float = 0.5  # seconds
    max_delay: float = 8.0

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number `attempt` (1-based): base * 2^(attempt-1), capped."""
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)


@dataclass
class SyncReport:
    owner: str
    outcomes: list[SessionOutcome] = field(default_factory=list)

    @property
    def accepted(self) -> list[str]:
        """Ids now present server-side, duplicates included."""
        return [o.session_id for o in self.outcomes if o.outcome != Outcome.REJECTED]

    @property
    def inserted(self) -> list[str]:
        return [o.session_id for o in self.outcomes if o.outcome == Outcome.ACCEPTED]

    @property
    def duplicates(self) -> list[str]:
        return [o.session_id for o in self.outcomes if o.outcome == Outcome.DUPLICATE]

    @property
    def rejected(self) -> list[SessionOutcome]:
        return [o for o in self.outcomes if o.outcome == Outcome.REJECTED]

    def to_dict(self) -> dict:
        return {
            "owner": self.owner,
            "accepted": len(self.accepted),
            "inserted": len(self.inserted),
            "duplicates": len(self.duplicates),
            "rejected": [{"id": o.session_id, "error": o.error} for o in self.rejected],
        }


def push_session(
    sink: SessionSink,
    owner: str,
    session: Session,
    retry: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> SessionOutcome:
    """Insert one session with bounded retry. Never raises for per-session failures."""
    stamped = session.with_owner(owner)
    try:
        validate_session(stamped)
    except SessionError as e:
        return SessionOutcome(session.id, Outcome.REJECTED, attempts=0, error=str(e))

    attempt = 0
    while True:
        attempt += 1
        try:
            inserted = sink.insert_session(owner, stamped)
        except SessionError as e:
            return SessionOutcome(session.id, Outcome.REJECTED, attempts=attempt, error=str(e))
        except TransientSyncError as e:
            if attempt >= retry.attempts:
                return SessionOutcome(session.id, Outcome.REJECTED, attempts=attempt, error=str(e))
            delay = retry.delay_for(attempt)
            logger.debug("retrying session %s in %.2fs after: %s", session.id, delay, e)
            sleep(delay)
            continue
        except Exception as e:
            # Any other sink failure is specific to this session; the rest of the batch still runs.
            logger.debug("sink failed on session %s", session.id, exc_info=True)
            return SessionOutcome(session.id, Outcome.REJECTED, attempts=attempt, error=f"{type(e).__name__}: {e}")
        outcome = Outcome.ACCEPTED if inserted else Outcome.DUPLICATE
        return SessionOutcome(session.id, outcome, attempts=attempt)


def reconcile(
    local: LocalSessionStore,
    sink: SessionSink,
    owner: str,
    retry: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> SyncReport:
    """Push every pending local session to sink for the verified owner.

    owner must come from an externally verified identity; any owner value on
    the local records is ignored. Accepted sessions are marked synced locally
    by client identity, so retrying the same batch cannot double-insert.
    Rejected sessions stay pending for the next attempt.
    """
    if not owner:
        raise ValueError("reconcile requires a verified owner identity")

    retry = retry or RetryPolicy()
    report = SyncReport(owner=owner)
    for session in local.pending():
        outcome = push_session(sink, owner, session, retry, sleep)
        if outcome.outcome == Outcome.REJECTED:
            logger.warning("session %s rejected: %s", session.id, outcome.error)
        report.outcomes.append(outcome)

    local.mark_synced(report.accepted)
    logger.info(
        "reconcile owner=%s inserted=%s duplicates=%s rejected=%s",
        owner, len(report.inserted), len(report.duplicates), len(report.rejected),
    )
    return report


def sync_and_refresh(
    local: LocalSessionStore,
    db: Database,
    owner: str,
    clock: Clock,
    settings: Settings | None = None,
    retry: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[SyncReport, ProfileView | None]:
    """Reconcile pending sessions into db, then recompute the owner's aggregate.

    The profile is recomputed only when at least one session is durably in
    the store; a sync that accepted nothing returns None for the view.
    """
    if retry is None and settings is not None:
        retry = RetryPolicy(settings.sync_attempts, settings.sync_base_delay, settings.sync_max_delay)
    report = reconcile(local, db, owner, retry=retry, sleep=sleep)
    if not report.accepted:
        return report, None
    return report, refresh_profile(db, owner, clock, settings)
