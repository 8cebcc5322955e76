from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests

from .prompts import DEFAULT_PROMPTS, PromptTemplate
from .types import ClassificationResult, Classifier, ServiceError, ValidationStep
from .validation import ParseFailure, apply_step_contract, parse_result

logger = logging.getLogger(__name__)

_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "candidateTypes": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {"label": {"type": "STRING"}},
                "required": ["label"],
            },
        },
        "isTargetObject": {"type": "BOOLEAN"},
        "isDepositConfirmed": {"type": "BOOLEAN"},
    },
    "required": ["isTargetObject", "isDepositConfirmed"],
}


@dataclass
class GeminiBottleClassifier(Classifier):
    """Run the identify/confirm checks against the Google Gemini multimodal API."""

    api_key: str
    model: str = "models/gemini-2.5-flash"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: float = 30.0
    prompts: Mapping[ValidationStep, PromptTemplate] = field(
        default_factory=lambda: dict(DEFAULT_PROMPTS)
    )
    enforce_step_contract: bool = True
    session: requests.Session = field(default_factory=requests.Session)

    def classify(
        self,
        image_bytes: bytes,
        step: ValidationStep,
        media_type: str = "image/jpeg",
    ) -> ClassificationResult:
        step = ValidationStep.coerce(step)
        if not image_bytes:
            raise ValueError("image_bytes must be a non-empty encoded frame")
        if not self.api_key:
            raise ServiceError("Gemini API key is required to classify captures")

        prompt = self.prompts.get(step) or DEFAULT_PROMPTS[step]
        payload = self._build_payload(image_bytes, media_type, prompt)
        url = f"{self.base_url.rstrip('/')}/{self.model}:generateContent"
        logger.info(
            "Classifying frame step=%s prompt_version=%s media_type=%s bytes=%d",
            step.value,
            prompt.version,
            media_type,
            len(image_bytes),
        )
        response_data = self._send_request(url, payload)
        message = self._extract_message_content(response_data)

        outcome = parse_result(message)
        if isinstance(outcome, ParseFailure):
            logger.warning("Rejected Gemini output step=%s: %s", step.value, outcome.reason)
            raise ServiceError(f"Gemini returned malformed output: {outcome.reason}")
        result = outcome.result

        if self.enforce_step_contract:
            result, overridden = apply_step_contract(result, step)
            if overridden:
                logger.warning(
                    "Gemini asserted fields outside step=%s; cleared %s",
                    step.value,
                    ", ".join(overridden),
                )
        logger.info(
            "Classification complete step=%s target=%s deposited=%s candidates=%d",
            step.value,
            result.is_target_object,
            result.is_deposit_confirmed,
            len(result.candidate_types),
        )
        return result

    def _send_request(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self.session.post(
                url,
                params={"key": self.api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.Timeout as exc:
            raise ServiceError("Timed out waiting for Gemini API") from exc
        except requests.RequestException as exc:
            raise ServiceError(f"Failed to reach Gemini API: {exc}") from exc
        except ValueError as exc:
            raise ServiceError("Gemini API returned a non-JSON body") from exc

    def _build_payload(
        self, image_bytes: bytes, media_type: str, prompt: PromptTemplate
    ) -> dict[str, Any]:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt.text},
                        {
                            "inline_data": {
                                "mime_type": media_type,
                                "data": encoded,
                            }
                        },
                    ],
                }
            ],
            "generationConfig": {
                "temperature": 0.0,
                "responseMimeType": "application/json",
                "responseSchema": _RESPONSE_SCHEMA,
            },
        }

    def _extract_message_content(self, data: dict[str, Any]) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
            return "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise ServiceError("Unexpected response format from Gemini API") from exc


__all__ = ["GeminiBottleClassifier"]
