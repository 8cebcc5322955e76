from __future__ import annotations

import json

import pytest

from winbin.api.config_loader import AppConfig, load_config


def test_defaults_without_path() -> None:
    config = load_config(None)

    assert config == AppConfig()
    assert config.classifier.backend == "gemini"
    assert config.classifier.enforce_step_contract is True
    assert config.classifier.gemini.api_key_env == "GEMINI_API_KEY"
    assert config.storage.ledger_root == "data/ledger"


def test_load_overrides_and_sanitises(tmp_path) -> None:
    path = tmp_path / "winbin.json"
    path.write_text(
        json.dumps(
            {
                "server": {"port": "9001"},
                "classifier": {
                    "backend": "STATIC",
                    "enforce_step_contract": False,
                    "max_image_edge": -5,
                    "gemini": {"timeout": 0.1, "model": "models/gemini-2.0-flash"},
                },
                "sessions": {"ttl_minutes": "bogus", "max_sessions": 5},
                "logging": {"level": "debug", "startup_log_dir": None},
            }
        ),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.server.port == 9001
    assert config.classifier.backend == "static"
    assert config.classifier.enforce_step_contract is False
    assert config.classifier.max_image_edge == 1280
    assert config.classifier.gemini.timeout == 30.0
    assert config.classifier.gemini.model == "models/gemini-2.0-flash"
    assert config.sessions.ttl_minutes == 30.0
    assert config.sessions.max_sessions == 5
    assert config.logging.level == "DEBUG"
    assert config.logging.startup_log_dir is None


def test_unknown_backend_falls_back() -> None:
    config = AppConfig.from_dict({"classifier": {"backend": "openai"}})

    assert config.classifier.backend == "gemini"


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "absent.json")


@pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
def test_invalid_content_raises(tmp_path, content: str) -> None:
    path = tmp_path / "winbin.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(path)


@pytest.mark.parametrize(
    ("value", "expected"),
    [(False, False), (True, True), ("false", True), (0, True), (None, True)],
)
def test_step_contract_flag_requires_json_boolean(value, expected: bool) -> None:
    config = AppConfig.from_dict({"classifier": {"enforce_step_contract": value}})

    assert config.classifier.enforce_step_contract is expected
