"""Scan session phases and the transition function that drives them.

The machine is pure: it never calls the classifier, the camera or the
ledger. Callers feed it events describing what happened and apply the
returned session, handing any emitted :class:`RecycledItem` to the ledger.

    Identifying --identify ok--> Confirming --confirm ok--> Completed
         ^                                                      |
         +----------------------- reset ------------------------+
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..ai.types import ClassificationResult, ValidationStep
from .errors import InvalidTransitionError

NOT_A_BOTTLE_MESSAGE = "This doesn't look like a plastic bottle. Please try again."
ANALYSIS_FAILED_MESSAGE = "An error occurred during analysis. Please try again."
DEPOSIT_NOT_CONFIRMED_MESSAGE = (
    "Deposit not confirmed. Please ensure the bottle goes into the bin clearly."
)
CONFIRMATION_FAILED_MESSAGE = "An error occurred during confirmation. Please try again."


class Phase(str, enum.Enum):
    IDENTIFYING = "identifying"
    CONFIRMING = "confirming"
    COMPLETED = "completed"


class ErrorKind(str, enum.Enum):
    SERVICE = "service_error"
    REJECTION = "validation_rejection"


STEP_FOR_PHASE: dict[Phase, ValidationStep] = {
    Phase.IDENTIFYING: ValidationStep.IDENTIFY,
    Phase.CONFIRMING: ValidationStep.CONFIRM,
}


@dataclass(frozen=True)
class ScanSession:
    phase: Phase = Phase.IDENTIFYING
    detected_label: Optional[str] = None
    last_error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


@dataclass(frozen=True)
class RecycledItem:
    label: str
    recorded_at: datetime


@dataclass(frozen=True)
class StepResolved:
    step: ValidationStep
    result: ClassificationResult
    at: datetime


@dataclass(frozen=True)
class StepFailed:
    step: ValidationStep
    detail: str = ""


@dataclass(frozen=True)
class ResetRequested:
    pass


ScanEvent = Union[StepResolved, StepFailed, ResetRequested]


@dataclass(frozen=True)
class Transition:
    session: ScanSession
    recycled: Optional[RecycledItem] = None


def transition(session: ScanSession, event: ScanEvent) -> Transition:
    if isinstance(event, ResetRequested):
        return Transition(ScanSession())

    expected = STEP_FOR_PHASE.get(session.phase)
    if expected is None or event.step is not expected:
        raise InvalidTransitionError(
            f"Cannot apply {event.step.value} result while {session.phase.value}"
        )

    if isinstance(event, StepFailed):
        message = (
            ANALYSIS_FAILED_MESSAGE
            if event.step is ValidationStep.IDENTIFY
            else CONFIRMATION_FAILED_MESSAGE
        )
        return Transition(_with_error(session, message, ErrorKind.SERVICE))

    result = event.result
    if event.step is ValidationStep.IDENTIFY:
        label = result.top_label
        if result.is_target_object and label:
            return Transition(ScanSession(phase=Phase.CONFIRMING, detected_label=label))
        return Transition(_with_error(session, NOT_A_BOTTLE_MESSAGE, ErrorKind.REJECTION))

    if result.is_deposit_confirmed and session.detected_label:
        item = RecycledItem(label=session.detected_label, recorded_at=event.at)
        return Transition(
            ScanSession(phase=Phase.COMPLETED, detected_label=session.detected_label),
            recycled=item,
        )
    return Transition(
        _with_error(session, DEPOSIT_NOT_CONFIRMED_MESSAGE, ErrorKind.REJECTION)
    )


def _with_error(session: ScanSession, message: str, kind: ErrorKind) -> ScanSession:
    return ScanSession(
        phase=session.phase,
        detected_label=session.detected_label,
        last_error=message,
        error_kind=kind,
    )


__all__ = [
    "ANALYSIS_FAILED_MESSAGE",
    "CONFIRMATION_FAILED_MESSAGE",
    "DEPOSIT_NOT_CONFIRMED_MESSAGE",
    "NOT_A_BOTTLE_MESSAGE",
    "ErrorKind",
    "Phase",
    "RecycledItem",
    "ResetRequested",
    "STEP_FOR_PHASE",
    "ScanEvent",
    "ScanSession",
    "StepFailed",
    "StepResolved",
    "Transition",
    "transition",
]
