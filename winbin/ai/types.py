from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Protocol


class ValidationStep(str, enum.Enum):
    IDENTIFY = "identify"
    CONFIRM = "confirm"

    @classmethod
    def coerce(cls, value: "ValidationStep | str") -> "ValidationStep":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unsupported validation step: {value!r}") from exc


class ServiceError(RuntimeError):
    """Raised when the classification service cannot produce a usable result."""


@dataclass(frozen=True)
class BottleCandidate:
    label: str


@dataclass(frozen=True)
class ClassificationResult:
    candidate_types: tuple[BottleCandidate, ...] = ()
    is_target_object: bool = False
    is_deposit_confirmed: bool = False

    @property
    def top_label(self) -> str | None:
        if not self.candidate_types:
            return None
        return self.candidate_types[0].label

    def to_dict(self) -> dict[str, object]:
        return {
            "candidateTypes": [{"label": c.label} for c in self.candidate_types],
            "isTargetObject": self.is_target_object,
            "isDepositConfirmed": self.is_deposit_confirmed,
        }


class Classifier(Protocol):
    def classify(
        self,
        image_bytes: bytes,
        step: ValidationStep,
        media_type: str = "image/jpeg",
    ) -> ClassificationResult: ...


__all__ = [
    "BottleCandidate",
    "ClassificationResult",
    "Classifier",
    "ServiceError",
    "ValidationStep",
]
