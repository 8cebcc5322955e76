from __future__ import annotations

import json

from winbin.ai.prompts import DEFAULT_PROMPTS, DEFAULT_PROMPT_VERSION, load_prompts, prompts_from_dict
from winbin.ai.types import ValidationStep


def test_defaults_carry_step_instructions() -> None:
    identify = DEFAULT_PROMPTS[ValidationStep.IDENTIFY]
    confirm = DEFAULT_PROMPTS[ValidationStep.CONFIRM]

    assert identify.version == confirm.version == DEFAULT_PROMPT_VERSION
    assert "'isDepositConfirmed' to false" in identify.text
    assert "recycling bin" in confirm.text
    assert "IGNORE the type of bottle" in confirm.text


def test_overrides_replace_only_valid_entries() -> None:
    prompts = prompts_from_dict(
        {
            "confirm": {"version": "2025-01", "text": "  Is it in the bin?  "},
            "identify": {"text": "   "},
            "weigh": {"text": "How heavy?"},
        }
    )

    assert prompts[ValidationStep.CONFIRM].text == "Is it in the bin?"
    assert prompts[ValidationStep.CONFIRM].version == "2025-01"
    assert prompts[ValidationStep.IDENTIFY] == DEFAULT_PROMPTS[ValidationStep.IDENTIFY]


def test_load_prompts_falls_back_on_missing_or_broken_files(tmp_path) -> None:
    broken = tmp_path / "prompts.json"
    broken.write_text("{", encoding="utf-8")

    assert load_prompts(None) == DEFAULT_PROMPTS
    assert load_prompts(tmp_path / "absent.json") == DEFAULT_PROMPTS
    assert load_prompts(broken) == DEFAULT_PROMPTS


def test_load_prompts_reads_file(tmp_path) -> None:
    path = tmp_path / "prompts.json"
    path.write_text(json.dumps({"identify": {"text": "Bottle?"}}), encoding="utf-8")

    prompts = load_prompts(path)

    assert prompts[ValidationStep.IDENTIFY].text == "Bottle?"
    assert prompts[ValidationStep.IDENTIFY].version == f"{DEFAULT_PROMPT_VERSION}-override"
