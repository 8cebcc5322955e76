from __future__ import annotations


class ScanError(Exception):
    """Base class for scan session control errors."""


class ScanBusyError(ScanError):
    """A classification call for this session is still outstanding."""


class InvalidTransitionError(ScanError):
    """The requested step does not apply to the session's current phase."""


class SessionNotFoundError(ScanError, KeyError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Unknown scan session {self.session_id!r}"


__all__ = [
    "InvalidTransitionError",
    "ScanBusyError",
    "ScanError",
    "SessionNotFoundError",
]
