from __future__ import annotations

from .types import (
    BottleCandidate,
    ClassificationResult,
    Classifier,
    ServiceError,
    ValidationStep,
)

__all__ = [
    "BottleCandidate",
    "ClassificationResult",
    "Classifier",
    "ServiceError",
    "ValidationStep",
    "StaticBottleClassifier",
    "GeminiBottleClassifier",
]


def __getattr__(name: str):
    if name == "StaticBottleClassifier":
        from .static import StaticBottleClassifier

        return StaticBottleClassifier
    if name == "GeminiBottleClassifier":
        from .gemini_client import GeminiBottleClassifier

        return GeminiBottleClassifier
    raise AttributeError(f"module 'winbin.ai' has no attribute {name!r}")
