from __future__ import annotations

from dataclasses import dataclass, field

from .types import BottleCandidate, ClassificationResult, ValidationStep


@dataclass
class StaticBottleClassifier:
    """Offline stand-in that answers every step with a fixed result."""

    label: str = "Water Bottle"
    is_bottle: bool = True
    deposited: bool = True
    calls: list[ValidationStep] = field(default_factory=list)

    def classify(
        self,
        image_bytes: bytes,
        step: ValidationStep,
        media_type: str = "image/jpeg",
    ) -> ClassificationResult:
        step = ValidationStep.coerce(step)
        if not image_bytes:
            raise ValueError("image_bytes must be a non-empty encoded frame")
        self.calls.append(step)
        if step is ValidationStep.IDENTIFY:
            candidates = (BottleCandidate(label=self.label),) if self.is_bottle else ()
            return ClassificationResult(
                candidate_types=candidates,
                is_target_object=self.is_bottle,
            )
        return ClassificationResult(is_deposit_confirmed=self.deposited)


__all__ = ["StaticBottleClassifier"]
