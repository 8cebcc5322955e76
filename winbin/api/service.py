from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict

from ..ai.imaging import frame_from_payload
from ..ai.types import ClassificationResult, Classifier, ValidationStep
from ..ledger.storage import FileSystemLedger
from ..scan.controller import ScanController
from ..scan.errors import SessionNotFoundError
from ..scan.presenter import ScanView, present

logger = logging.getLogger(__name__)


@dataclass
class _SessionEntry:
    controller: ScanController
    last_active: datetime


@dataclass
class ScanService:
    """In-memory registry of scan sessions, one controller per session."""

    classifier: Classifier
    ledger: FileSystemLedger | None = None
    ttl_minutes: float = 30.0
    max_sessions: int = 1000
    max_image_edge: int = 0
    _sessions: Dict[str, _SessionEntry] = field(init=False, default_factory=dict)

    def create_session(self, owner: str | None = None) -> ScanController:
        self.prune_expired()
        if len(self._sessions) >= max(1, self.max_sessions):
            self._evict_oldest()
        controller = ScanController(
            classifier=self.classifier, ledger=self.ledger, owner=owner
        )
        self._sessions[controller.session_id] = _SessionEntry(
            controller=controller, last_active=_now()
        )
        logger.info(
            "Scan session created session=%s owner=%s active=%d",
            controller.session_id,
            owner,
            len(self._sessions),
        )
        return controller

    def get(self, session_id: str) -> ScanController:
        entry = self._sessions.get(session_id)
        if entry is None:
            raise SessionNotFoundError(session_id)
        entry.last_active = _now()
        return entry.controller

    async def identify(self, session_id: str, image_payload: str) -> ScanController:
        controller = self.get(session_id)
        frame = frame_from_payload(image_payload, self.max_image_edge)
        await controller.identify(frame)
        return controller

    async def confirm(self, session_id: str, image_payload: str) -> ScanController:
        controller = self.get(session_id)
        frame = frame_from_payload(image_payload, self.max_image_edge)
        await controller.confirm(frame)
        return controller

    def reset(self, session_id: str) -> ScanController:
        controller = self.get(session_id)
        controller.reset()
        return controller

    def close(self, session_id: str) -> None:
        entry = self._sessions.pop(session_id, None)
        if entry is None:
            raise SessionNotFoundError(session_id)
        logger.info("Scan session closed session=%s", session_id)

    def classify_once(self, image_payload: str, step: ValidationStep | str) -> ClassificationResult:
        frame = frame_from_payload(image_payload, self.max_image_edge)
        return self.classifier.classify(frame.data, ValidationStep.coerce(step), frame.media_type)

    def view(self, controller: ScanController) -> ScanView:
        return present(controller.session, busy=controller.busy)

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def prune_expired(self, now: datetime | None = None) -> int:
        cutoff = (now or _now()) - timedelta(minutes=max(0.0, self.ttl_minutes))
        expired = [
            session_id
            for session_id, entry in self._sessions.items()
            if entry.last_active < cutoff and not entry.controller.busy
        ]
        for session_id in expired:
            self._sessions.pop(session_id, None)
        if expired:
            logger.info("Pruned %d idle scan session(s)", len(expired))
        return len(expired)

    def _evict_oldest(self) -> None:
        idle = [
            (entry.last_active, session_id)
            for session_id, entry in self._sessions.items()
            if not entry.controller.busy
        ]
        if not idle:
            return
        _, session_id = min(idle)
        self._sessions.pop(session_id, None)
        logger.warning("Session limit reached; evicted session=%s", session_id)


def _now() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["ScanService"]
