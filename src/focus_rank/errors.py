"""Exception types for focus-rank."""

from __future__ import annotations


class FocusRankError(Exception):
    """Base class for all focus-rank errors."""


class ConfigurationError(FocusRankError, ValueError):
    """Invalid challenge, level or engine configuration. Rejected at write time."""


class SessionError(FocusRankError, ValueError):
    """A session record is malformed and can never be accepted."""


class TransientSyncError(FocusRankError):
    """A store write failed for a reason that may succeed on retry."""
