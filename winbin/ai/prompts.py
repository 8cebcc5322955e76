"""Prompt templates sent to the classification service.

Prompts are configuration rather than logic: each one carries a version so
that logged classifications can be traced back to the wording that produced
them. Deployments may override either template with a JSON file shaped as::

    {
      "identify": {"version": "2024-07-a", "text": "..."},
      "confirm": {"version": "2024-07-a", "text": "..."}
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .types import ValidationStep

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_VERSION = "bottle-v1"

_IDENTIFY_TEXT = (
    "You are an AI assistant for a recycling app. Your ONLY task is to identify "
    "if the primary object in the image is a plastic bottle.\n\n"
    "- If it is a plastic bottle with a visible brand (e.g., \"Coca-Cola\", \"Pepsi\"), "
    "use the brand as the 'label' of the first entry in 'candidateTypes' and set "
    "'isTargetObject' to true.\n"
    "- If it is a generic plastic bottle (like a water bottle), set the 'label' to "
    "\"Water Bottle\" and set 'isTargetObject' to true.\n"
    "- If the object is NOT a plastic bottle (e.g., glass, can, or anything else), you "
    "MUST set 'isTargetObject' to false. Do not provide candidateTypes.\n"
    "- In this step, you MUST IGNORE whether it is in a bin or not. You MUST set "
    "'isDepositConfirmed' to false.\n\n"
    "Respond with a JSON object with fields 'candidateTypes' (list of objects with a "
    "'label' string, most likely first), 'isTargetObject' (boolean) and "
    "'isDepositConfirmed' (boolean)."
)

_CONFIRM_TEXT = (
    "You are an AI assistant for a recycling app. Your ONLY task is to verify if the "
    "image shows a hand placing a bottle into a recycling bin or a similar waste "
    "container.\n\n"
    "- The action of putting the bottle into the bin must be clear.\n"
    "- If this action is visible, you MUST set 'isDepositConfirmed' to true.\n"
    "- If the action is NOT visible (e.g., bottle is just held, on a table, or not "
    "present), you MUST set 'isDepositConfirmed' to false.\n"
    "- In this step, you MUST IGNORE the type of bottle. You MUST set "
    "'isTargetObject' to false and return an empty 'candidateTypes' list.\n\n"
    "Respond with a JSON object with fields 'candidateTypes' (list), "
    "'isTargetObject' (boolean) and 'isDepositConfirmed' (boolean)."
)


@dataclass(frozen=True)
class PromptTemplate:
    step: ValidationStep
    version: str
    text: str


DEFAULT_PROMPTS: dict[ValidationStep, PromptTemplate] = {
    ValidationStep.IDENTIFY: PromptTemplate(
        step=ValidationStep.IDENTIFY,
        version=DEFAULT_PROMPT_VERSION,
        text=_IDENTIFY_TEXT,
    ),
    ValidationStep.CONFIRM: PromptTemplate(
        step=ValidationStep.CONFIRM,
        version=DEFAULT_PROMPT_VERSION,
        text=_CONFIRM_TEXT,
    ),
}


def prompts_from_dict(
    data: Mapping[str, object],
    base: Mapping[ValidationStep, PromptTemplate] | None = None,
) -> dict[ValidationStep, PromptTemplate]:
    prompts = dict(base or DEFAULT_PROMPTS)
    for key, entry in data.items():
        try:
            step = ValidationStep.coerce(key)
        except ValueError:
            logger.warning("Ignoring prompt override for unknown step %r", key)
            continue
        if not isinstance(entry, Mapping):
            logger.warning("Ignoring malformed prompt override for step %s", step.value)
            continue
        text = entry.get("text")
        if not isinstance(text, str) or not text.strip():
            logger.warning("Prompt override for step %s has no text; keeping default", step.value)
            continue
        version = entry.get("version")
        prompts[step] = PromptTemplate(
            step=step,
            version=str(version).strip() if version else f"{DEFAULT_PROMPT_VERSION}-override",
            text=text.strip(),
        )
    return prompts


def load_prompts(path: Path | None) -> dict[ValidationStep, PromptTemplate]:
    """Return the default prompts, overridden by ``path`` when it exists."""
    if path is None:
        return dict(DEFAULT_PROMPTS)
    if not path.exists():
        logger.info("No prompt overrides found at %s; using defaults", path)
        return dict(DEFAULT_PROMPTS)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Failed to load prompt overrides from %s: %s; using defaults", path, exc)
        return dict(DEFAULT_PROMPTS)
    if not isinstance(data, dict):
        logger.warning("Prompt override file %s must contain an object; using defaults", path)
        return dict(DEFAULT_PROMPTS)
    prompts = prompts_from_dict(data)
    logger.info(
        "Loaded prompts from %s identify=%s confirm=%s",
        path,
        prompts[ValidationStep.IDENTIFY].version,
        prompts[ValidationStep.CONFIRM].version,
    )
    return prompts


__all__ = [
    "DEFAULT_PROMPTS",
    "DEFAULT_PROMPT_VERSION",
    "PromptTemplate",
    "load_prompts",
    "prompts_from_dict",
]
