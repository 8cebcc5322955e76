from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from .config_loader import AppConfig, load_config
from .logging_utils import configure_logging
from .server import create_app
from ..ai import Classifier, GeminiBottleClassifier, StaticBottleClassifier
from ..ai.prompts import load_prompts

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser with minimal CLI flags.

    Most configuration is loaded from config/winbin.json.
    CLI flags are only for quick overrides.
    """
    parser = argparse.ArgumentParser(
        description="Run the Win-Bin scan API server",
        epilog="Configuration is loaded from config/winbin.json. "
        "CLI arguments override config file settings.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/winbin.json",
        help="Path to JSON configuration file (default: config/winbin.json)",
    )
    parser.add_argument("--host", type=str, default=None, help="Override server host")
    parser.add_argument("--port", type=int, default=None, help="Override server port")
    parser.add_argument(
        "--classifier",
        choices=["gemini", "static"],
        default=None,
        help="Override classifier backend",
    )
    return parser


def build_classifier(cfg: AppConfig) -> Classifier:
    settings = cfg.classifier
    if settings.backend == "static":
        logger.warning("Using static classifier; every scan will be accepted")
        return StaticBottleClassifier()

    key = os.environ.get(settings.gemini.api_key_env)
    if not key:
        logger.error(
            "Environment variable %s must be set for the Gemini classifier",
            settings.gemini.api_key_env,
        )
        sys.exit(1)
    prompts = load_prompts(Path(settings.prompts_path) if settings.prompts_path else None)
    return GeminiBottleClassifier(
        api_key=key,
        model=settings.gemini.model,
        base_url=settings.gemini.base_url,
        timeout=settings.gemini.timeout,
        prompts=prompts,
        enforce_step_contract=settings.enforce_step_contract,
    )


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config if Path(args.config).exists() else None)
    except (OSError, ValueError) as exc:
        configure_logging()
        logger.error("Failed to load configuration: %s", exc)
        sys.exit(1)

    configure_logging(cfg.logging)
    if not Path(args.config).exists():
        logger.info(
            "Configuration file %s not found; using defaults", args.config
        )

    if args.host:
        cfg.server.host = args.host
    if args.port:
        cfg.server.port = args.port
    if args.classifier:
        cfg.classifier.backend = args.classifier

    logger.info("Server configuration: %s:%d", cfg.server.host, cfg.server.port)
    logger.info("Ledger root: %s", cfg.storage.ledger_root)
    logger.info(
        "Classifier backend: %s enforce_step_contract=%s",
        cfg.classifier.backend,
        cfg.classifier.enforce_step_contract,
    )

    app = create_app(
        Path(cfg.storage.ledger_root),
        classifier=build_classifier(cfg),
        ttl_minutes=cfg.sessions.ttl_minutes,
        max_sessions=cfg.sessions.max_sessions,
        max_image_edge=cfg.classifier.max_image_edge,
    )

    try:
        uvicorn.run(
            app,
            host=cfg.server.host,
            port=cfg.server.port,
            log_level=cfg.logging.level.lower(),
            timeout_graceful_shutdown=1,
        )
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received during shutdown")


if __name__ == "__main__":
    main()
