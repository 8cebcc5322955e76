from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
)

from .types import BottleCandidate, ClassificationResult, ValidationStep


class _CandidatePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    label: StrictStr = Field(validation_alias=AliasChoices("label", "type"))


class _ResultPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    candidate_types: Optional[list[_CandidatePayload]] = Field(
        default=None,
        validation_alias=AliasChoices("candidateTypes", "suggestions", "candidate_types"),
    )
    is_target_object: StrictBool = Field(
        validation_alias=AliasChoices("isTargetObject", "isPlasticBottle", "is_target_object"),
    )
    is_deposit_confirmed: StrictBool = Field(
        validation_alias=AliasChoices("isDepositConfirmed", "isDeposited", "is_deposit_confirmed"),
    )


@dataclass(frozen=True)
class ParsedResult:
    result: ClassificationResult
    ok: Literal[True] = True


@dataclass(frozen=True)
class ParseFailure:
    reason: str
    raw: str = ""
    ok: Literal[False] = False


ParseOutcome = Union[ParsedResult, ParseFailure]


def parse_result(message: str) -> ParseOutcome:
    """Validate the service's JSON text against the classification result shape."""
    try:
        payload = json.loads(message)
    except (TypeError, json.JSONDecodeError) as exc:
        return ParseFailure(reason=f"response was not valid JSON: {exc}", raw=str(message))
    if not isinstance(payload, dict):
        return ParseFailure(
            reason=f"expected a JSON object, got {type(payload).__name__}", raw=message
        )
    try:
        parsed = _ResultPayload.model_validate(payload)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        )
        return ParseFailure(reason=f"response did not match result shape: {problems}", raw=message)

    candidates: tuple[BottleCandidate, ...] = ()
    if parsed.is_target_object and parsed.candidate_types:
        candidates = tuple(
            BottleCandidate(label=item.label.strip())
            for item in parsed.candidate_types
            if item.label.strip()
        )
    return ParsedResult(
        result=ClassificationResult(
            candidate_types=candidates,
            is_target_object=parsed.is_target_object,
            is_deposit_confirmed=parsed.is_deposit_confirmed,
        )
    )


def apply_step_contract(
    result: ClassificationResult, step: ValidationStep
) -> tuple[ClassificationResult, list[str]]:
    """Clear the fields a step must not assert.

    Returns the adjusted result together with the names of the fields that
    had to be overridden.
    """
    overridden: list[str] = []
    if step is ValidationStep.IDENTIFY:
        if result.is_deposit_confirmed:
            overridden.append("isDepositConfirmed")
            result = replace(result, is_deposit_confirmed=False)
        return result, overridden

    if result.is_target_object:
        overridden.append("isTargetObject")
    if result.candidate_types:
        overridden.append("candidateTypes")
    if overridden:
        result = replace(result, is_target_object=False, candidate_types=())
    return result, overridden


__all__ = [
    "ParseFailure",
    "ParseOutcome",
    "ParsedResult",
    "apply_step_contract",
    "parse_result",
]
