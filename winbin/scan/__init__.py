from __future__ import annotations

from .controller import ScanController
from .errors import (
    InvalidTransitionError,
    ScanBusyError,
    ScanError,
    SessionNotFoundError,
)
from .machine import ErrorKind, Phase, RecycledItem, ScanSession, transition
from .presenter import ScanView, present

__all__ = [
    "ErrorKind",
    "InvalidTransitionError",
    "Phase",
    "RecycledItem",
    "ScanBusyError",
    "ScanController",
    "ScanError",
    "ScanSession",
    "ScanView",
    "SessionNotFoundError",
    "present",
    "transition",
]
