"""Application configuration.

Settings are read from a JSON file (``config/winbin.json`` by default) and
fall back to the defaults below for anything missing or invalid. Secrets are
never stored in the file; the file only names the environment variables that
hold them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_CLASSIFIER_BACKENDS = {"gemini", "static"}


@dataclass
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class GeminiSettings:
    model: str = "models/gemini-2.5-flash"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    timeout: float = 30.0
    api_key_env: str = "GEMINI_API_KEY"


@dataclass
class ClassifierSettings:
    backend: str = "gemini"
    enforce_step_contract: bool = True
    prompts_path: str | None = None
    max_image_edge: int = 1280
    gemini: GeminiSettings = field(default_factory=GeminiSettings)


@dataclass
class StorageSettings:
    ledger_root: str = "data/ledger"


@dataclass
class SessionSettings:
    ttl_minutes: float = 30.0
    max_sessions: int = 1000


@dataclass
class LoggingSettings:
    level: str = "INFO"
    startup_log_dir: str | None = "logs/startup"
    startup_window_seconds: float = 180.0


@dataclass
class AppConfig:
    server: ServerSettings = field(default_factory=ServerSettings)
    classifier: ClassifierSettings = field(default_factory=ClassifierSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    sessions: SessionSettings = field(default_factory=SessionSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppConfig":
        server = _section(data, "server")
        classifier = _section(data, "classifier")
        gemini = _section(classifier, "gemini")
        storage = _section(data, "storage")
        sessions = _section(data, "sessions")
        log_cfg = _section(data, "logging")

        defaults = cls()
        backend = str(classifier.get("backend", defaults.classifier.backend)).strip().lower()
        if backend not in _CLASSIFIER_BACKENDS:
            logger.warning("Unknown classifier backend %r; using %s", backend, defaults.classifier.backend)
            backend = defaults.classifier.backend

        return cls(
            server=ServerSettings(
                host=str(server.get("host") or defaults.server.host),
                port=_int(server.get("port"), defaults.server.port, minimum=1),
            ),
            classifier=ClassifierSettings(
                backend=backend,
                enforce_step_contract=_bool(
                    classifier.get("enforce_step_contract"),
                    defaults.classifier.enforce_step_contract,
                    "classifier.enforce_step_contract",
                ),
                prompts_path=_optional_str(classifier.get("prompts_path")),
                max_image_edge=_int(
                    classifier.get("max_image_edge"), defaults.classifier.max_image_edge, minimum=0
                ),
                gemini=GeminiSettings(
                    model=str(gemini.get("model") or defaults.classifier.gemini.model),
                    base_url=str(gemini.get("base_url") or defaults.classifier.gemini.base_url),
                    timeout=_float(gemini.get("timeout"), defaults.classifier.gemini.timeout, minimum=1.0),
                    api_key_env=str(gemini.get("api_key_env") or defaults.classifier.gemini.api_key_env),
                ),
            ),
            storage=StorageSettings(
                ledger_root=str(storage.get("ledger_root") or defaults.storage.ledger_root),
            ),
            sessions=SessionSettings(
                ttl_minutes=_float(sessions.get("ttl_minutes"), defaults.sessions.ttl_minutes, minimum=1.0),
                max_sessions=_int(sessions.get("max_sessions"), defaults.sessions.max_sessions, minimum=1),
            ),
            logging=LoggingSettings(
                level=str(log_cfg.get("level") or defaults.logging.level).upper(),
                startup_log_dir=(
                    _optional_str(log_cfg["startup_log_dir"])
                    if "startup_log_dir" in log_cfg
                    else defaults.logging.startup_log_dir
                ),
                startup_window_seconds=_float(
                    log_cfg.get("startup_window_seconds"),
                    defaults.logging.startup_window_seconds,
                    minimum=0.0,
                ),
            ),
        )


def load_config(path: str | Path | None) -> AppConfig:
    """Load configuration from ``path``; ``None`` returns the defaults.

    Raises:
        FileNotFoundError: if ``path`` is given but does not exist.
        ValueError: if the file is not a JSON object.
    """
    if path is None:
        return AppConfig()
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(config_path)
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Configuration in {config_path} must be a JSON object")
    config = AppConfig.from_dict(data)
    logger.info("Loaded configuration from %s", config_path)
    return config


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _bool(value: Any, default: bool, name: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    logger.warning("Expected a JSON boolean for %s, got %r; using %s", name, value, default)
    return default


def _int(value: Any, default: int, minimum: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= minimum else default


def _float(value: Any, default: float, minimum: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number >= minimum else default


__all__ = [
    "AppConfig",
    "ClassifierSettings",
    "GeminiSettings",
    "LoggingSettings",
    "ServerSettings",
    "SessionSettings",
    "StorageSettings",
    "load_config",
]
