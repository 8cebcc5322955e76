import base64
import json
import unittest
from unittest.mock import Mock

import requests

from winbin.ai.gemini_client import GeminiBottleClassifier
from winbin.ai.prompts import PromptTemplate
from winbin.ai.types import ServiceError, ValidationStep


def _gemini_response(payload: object) -> Mock:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    response = Mock()
    response.json.return_value = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    response.raise_for_status.return_value = None
    return response


def _classifier(response: Mock, **kwargs) -> tuple[GeminiBottleClassifier, Mock]:
    session = Mock()
    session.post.return_value = response
    return GeminiBottleClassifier(api_key="test-key", session=session, **kwargs), session


class GeminiBottleClassifierTests(unittest.TestCase):
    def test_identify_builds_payload_and_parses_candidates(self) -> None:
        classifier, session = _classifier(
            _gemini_response(
                {
                    "candidateTypes": [{"label": "Coca-Cola"}, {"label": "Soda Bottle"}],
                    "isTargetObject": True,
                    "isDepositConfirmed": False,
                }
            )
        )

        result = classifier.classify(b"binary-image", ValidationStep.IDENTIFY, "image/png")

        self.assertTrue(result.is_target_object)
        self.assertFalse(result.is_deposit_confirmed)
        self.assertEqual(result.top_label, "Coca-Cola")
        self.assertEqual(len(result.candidate_types), 2)

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        self.assertTrue(args[0].endswith("models/gemini-2.5-flash:generateContent"))
        self.assertEqual(kwargs["params"], {"key": "test-key"})
        parts = kwargs["json"]["contents"][0]["parts"]
        self.assertIn("plastic bottle", parts[0]["text"])
        self.assertIn("MUST set 'isDepositConfirmed' to false", parts[0]["text"])
        self.assertEqual(parts[1]["inline_data"]["mime_type"], "image/png")
        self.assertEqual(
            parts[1]["inline_data"]["data"], base64.b64encode(b"binary-image").decode("ascii")
        )
        config = kwargs["json"]["generationConfig"]
        self.assertEqual(config["responseMimeType"], "application/json")
        self.assertIn("isTargetObject", config["responseSchema"]["properties"])

    def test_confirm_uses_confirm_prompt(self) -> None:
        classifier, session = _classifier(
            _gemini_response({"isTargetObject": False, "isDepositConfirmed": True})
        )

        result = classifier.classify(b"image", "confirm")

        self.assertTrue(result.is_deposit_confirmed)
        self.assertEqual(result.candidate_types, ())
        prompt = session.post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
        self.assertIn("recycling bin", prompt)
        self.assertIn("IGNORE the type of bottle", prompt)

    def test_accepts_legacy_field_names(self) -> None:
        classifier, _ = _classifier(
            _gemini_response(
                {
                    "suggestions": [{"type": "Water Bottle"}],
                    "isPlasticBottle": True,
                    "isDeposited": False,
                }
            )
        )

        result = classifier.classify(b"image", ValidationStep.IDENTIFY)

        self.assertEqual(result.top_label, "Water Bottle")

    def test_step_contract_clears_deposit_during_identify(self) -> None:
        classifier, _ = _classifier(
            _gemini_response(
                {
                    "candidateTypes": [{"label": "Pepsi"}],
                    "isTargetObject": True,
                    "isDepositConfirmed": True,
                }
            )
        )

        with self.assertLogs("winbin.ai.gemini_client", level="WARNING") as logs:
            result = classifier.classify(b"image", ValidationStep.IDENTIFY)

        self.assertFalse(result.is_deposit_confirmed)
        self.assertTrue(result.is_target_object)
        self.assertTrue(any("isDepositConfirmed" in line for line in logs.output))

    def test_step_contract_can_be_disabled(self) -> None:
        classifier, _ = _classifier(
            _gemini_response(
                {
                    "candidateTypes": [{"label": "Pepsi"}],
                    "isTargetObject": True,
                    "isDepositConfirmed": True,
                }
            ),
            enforce_step_contract=False,
        )

        result = classifier.classify(b"image", ValidationStep.CONFIRM)

        self.assertTrue(result.is_target_object)
        self.assertTrue(result.is_deposit_confirmed)

    def test_custom_prompt_is_sent(self) -> None:
        prompts = {
            ValidationStep.IDENTIFY: PromptTemplate(
                step=ValidationStep.IDENTIFY, version="custom-1", text="Custom identify wording"
            )
        }
        classifier, session = _classifier(
            _gemini_response({"isTargetObject": False, "isDepositConfirmed": False}),
            prompts=prompts,
        )

        classifier.classify(b"image", ValidationStep.IDENTIFY)

        prompt = session.post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
        self.assertEqual(prompt, "Custom identify wording")

    def test_malformed_output_raises_service_error(self) -> None:
        for body in ("not json", {"isTargetObject": "yes", "isDepositConfirmed": False}, {"isTargetObject": True}):
            with self.subTest(body=body):
                classifier, _ = _classifier(_gemini_response(body))
                with self.assertRaises(ServiceError):
                    classifier.classify(b"image", ValidationStep.IDENTIFY)

    def test_unexpected_envelope_raises_service_error(self) -> None:
        response = Mock()
        response.json.return_value = {"promptFeedback": {"blockReason": "SAFETY"}}
        response.raise_for_status.return_value = None
        classifier, _ = _classifier(response)

        with self.assertRaises(ServiceError):
            classifier.classify(b"image", ValidationStep.IDENTIFY)

    def test_timeout_raises_service_error(self) -> None:
        session = Mock()
        session.post.side_effect = requests.Timeout("slow")
        classifier = GeminiBottleClassifier(api_key="test-key", session=session)

        with self.assertRaises(ServiceError) as ctx:
            classifier.classify(b"image", ValidationStep.CONFIRM)
        self.assertIn("Timed out", str(ctx.exception))

    def test_http_error_raises_service_error(self) -> None:
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        classifier, _ = _classifier(response)

        with self.assertRaises(ServiceError):
            classifier.classify(b"image", ValidationStep.IDENTIFY)

    def test_rejects_empty_image_and_unknown_step(self) -> None:
        classifier, session = _classifier(_gemini_response({}))

        with self.assertRaises(ValueError):
            classifier.classify(b"", ValidationStep.IDENTIFY)
        with self.assertRaises(ValueError):
            classifier.classify(b"image", "recycle")
        session.post.assert_not_called()

    def test_missing_api_key_raises_service_error(self) -> None:
        session = Mock()
        classifier = GeminiBottleClassifier(api_key="", session=session)

        with self.assertRaises(ServiceError):
            classifier.classify(b"image", ValidationStep.IDENTIFY)
        session.post.assert_not_called()


if __name__ == "__main__":
    unittest.main()
