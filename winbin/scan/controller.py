from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from ..ai.imaging import Frame
from ..ai.types import Classifier, ServiceError, ValidationStep
from .errors import InvalidTransitionError, ScanBusyError
from .machine import (
    STEP_FOR_PHASE,
    RecycledItem,
    ResetRequested,
    ScanEvent,
    ScanSession,
    StepFailed,
    StepResolved,
    transition,
)

logger = logging.getLogger(__name__)


class ItemLedger(Protocol):
    def record_item(
        self,
        label: str,
        size: float = 0.0,
        *,
        recorded_at: datetime | None = None,
        owner: str | None = None,
    ) -> object: ...


@dataclass
class ScanController:
    """Owns one scan session and serialises the classification calls made for it.

    At most one call is outstanding per session generation. ``reset`` starts a
    new generation; results that resolve for an older generation are dropped.
    """

    classifier: Classifier
    ledger: ItemLedger | None = None
    owner: str | None = None
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    _session: ScanSession = field(init=False, default_factory=ScanSession)
    _generation: int = field(init=False, default=0)
    _pending_generation: int | None = field(init=False, default=None)

    @property
    def session(self) -> ScanSession:
        return self._session

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def busy(self) -> bool:
        return self._pending_generation == self._generation

    async def identify(self, frame: Frame) -> ScanSession:
        return await self._run_step(ValidationStep.IDENTIFY, frame)

    async def confirm(self, frame: Frame) -> ScanSession:
        return await self._run_step(ValidationStep.CONFIRM, frame)

    def reset(self) -> ScanSession:
        self._generation += 1
        self._apply(ResetRequested())
        logger.info(
            "Scan session reset session=%s generation=%d", self.session_id, self._generation
        )
        return self._session

    async def _run_step(self, step: ValidationStep, frame: Frame) -> ScanSession:
        if not frame.data:
            raise ValueError("Captured frame is empty")
        if self.busy:
            raise ScanBusyError(f"A {step.value} call is already in progress")
        if STEP_FOR_PHASE.get(self._session.phase) is not step:
            raise InvalidTransitionError(
                f"Cannot {step.value} while session is {self._session.phase.value}"
            )

        generation = self._generation
        self._pending_generation = generation
        logger.info(
            "Scan step started session=%s step=%s generation=%d bytes=%d",
            self.session_id,
            step.value,
            generation,
            len(frame.data),
        )
        event: ScanEvent
        try:
            result = await asyncio.to_thread(
                self.classifier.classify, frame.data, step, frame.media_type
            )
            event = StepResolved(step=step, result=result, at=datetime.now(timezone.utc))
        except ServiceError as exc:
            logger.warning(
                "Classifier failed session=%s step=%s: %s", self.session_id, step.value, exc
            )
            event = StepFailed(step=step, detail=str(exc))
        except Exception as exc:
            logger.exception(
                "Unexpected classifier error session=%s step=%s", self.session_id, step.value
            )
            event = StepFailed(step=step, detail=str(exc))
        finally:
            if self._pending_generation == generation:
                self._pending_generation = None

        if generation != self._generation:
            logger.info(
                "Discarding stale %s result session=%s generation=%d current=%d",
                step.value,
                self.session_id,
                generation,
                self._generation,
            )
            return self._session

        recycled = self._apply(event)
        if recycled is not None:
            await asyncio.to_thread(self._record, recycled)
        return self._session

    def _apply(self, event: ScanEvent) -> RecycledItem | None:
        outcome = transition(self._session, event)
        self._session = outcome.session
        logger.debug(
            "Scan session session=%s phase=%s label=%s error=%s",
            self.session_id,
            self._session.phase.value,
            self._session.detected_label,
            self._session.error_kind.value if self._session.error_kind else None,
        )
        return outcome.recycled

    def _record(self, item: RecycledItem) -> None:
        logger.info(
            "Deposit confirmed session=%s label=%s", self.session_id, item.label
        )
        if self.ledger is None:
            return
        try:
            self.ledger.record_item(
                item.label, 0, recorded_at=item.recorded_at, owner=self.owner
            )
        except Exception:
            logger.exception(
                "Failed to record recycled item session=%s label=%s",
                self.session_id,
                item.label,
            )


__all__ = ["ItemLedger", "ScanController"]
