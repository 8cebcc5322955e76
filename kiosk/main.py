from __future__ import annotations

import argparse
import functools
import logging
import os
import sys
from pathlib import Path
from typing import Iterable, Iterator, Sequence

from dotenv import load_dotenv

from winbin.ai import Classifier, GeminiBottleClassifier, StaticBottleClassifier
from winbin.api.client import ScanApiHttpClient
from winbin.ledger.storage import FileSystemLedger
from winbin.scan.controller import ScanController

from .capture import acquire_stream
from .harness import HarnessConfig, LocalScanBackend, ScanBackend, ScanHarness


def parse_resolution(value: str | None) -> tuple[int, int] | None:
    if value is None:
        return None
    parts = value.lower().split("x")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError("resolution must be WIDTHxHEIGHT")
    width, height = parts
    try:
        return int(width), int(height)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("resolution must be numeric") from exc


def parse_backend(value: str | None) -> str | int | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the Win-Bin bottle scanner kiosk")
    parser.add_argument(
        "--camera", choices=["stub", "opencv"], default="stub", help="camera backend to use"
    )
    parser.add_argument(
        "--camera-source",
        default="0",
        help="camera source index or URL (OpenCV) or sample image path (stub)",
    )
    parser.add_argument(
        "--camera-resolution", default=None, help="force camera resolution WIDTHxHEIGHT"
    )
    parser.add_argument(
        "--camera-backend", default=None, help="preferred OpenCV backend (e.g. v4l2, dshow, 700)"
    )
    parser.add_argument(
        "--camera-warmup", type=int, default=2, help="frames to discard after opening the camera"
    )
    parser.add_argument(
        "--api", choices=["local", "http"], default="local", help="scan backend to drive"
    )
    parser.add_argument("--api-url", default="http://127.0.0.1:8000", help="Base URL of the scan API")
    parser.add_argument("--api-timeout", type=float, default=45.0, help="HTTP API timeout in seconds")
    parser.add_argument(
        "--classifier",
        choices=["static", "gemini"],
        default="static",
        help="classifier for the local backend",
    )
    parser.add_argument(
        "--ledger-root", default="data/ledger", help="ledger directory for the local backend"
    )
    parser.add_argument("--owner", default=None, help="identifier of the recycling user")
    parser.add_argument(
        "--script",
        default=None,
        help="comma separated commands to run instead of reading stdin (e.g. scan,confirm)",
    )
    parser.add_argument(
        "--save-frames-dir",
        default="",
        help="directory to store captured frames (empty to disable)",
    )
    parser.add_argument("--verbose", action="store_true", help="enable verbose kiosk output")
    return parser


def build_classifier(kind: str) -> Classifier:
    if kind == "gemini":
        key = os.environ.get("GEMINI_API_KEY")
        if not key:
            print("[kiosk] GEMINI_API_KEY must be set for the gemini classifier")
            sys.exit(1)
        return GeminiBottleClassifier(api_key=key)
    return StaticBottleClassifier()


def build_backend(args: argparse.Namespace) -> ScanBackend:
    if args.api == "http":
        client = ScanApiHttpClient(base_url=args.api_url, timeout=args.api_timeout, owner=args.owner)
        client.start()
        return client
    controller = ScanController(
        classifier=build_classifier(args.classifier),
        ledger=FileSystemLedger(root=Path(args.ledger_root)),
        owner=args.owner,
    )
    return LocalScanBackend(controller)


def read_commands(stream: Iterable[str]) -> Iterator[str]:
    print("[kiosk] Commands: scan, confirm, reset, status, quit")
    for line in stream:
        yield line.strip()


def run(argv: Sequence[str] | None = None) -> None:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s [%(name)s] %(message)s",
    )

    camera_factory = functools.partial(
        acquire_stream,
        args.camera,
        args.camera_source,
        parse_resolution(args.camera_resolution),
        parse_backend(args.camera_backend),
        args.camera_warmup,
    )
    harness = ScanHarness(
        backend=build_backend(args),
        camera_factory=camera_factory,
        config=HarnessConfig(
            save_frames_dir=Path(args.save_frames_dir) if args.save_frames_dir else None,
            verbose=args.verbose,
        ),
    )
    commands = args.script.split(",") if args.script else read_commands(sys.stdin)
    try:
        completed = harness.run(commands)
    except KeyboardInterrupt:
        print("[kiosk] Stopped by user")
        return
    print(f"[kiosk] Confirmed {completed} deposit(s)")


if __name__ == "__main__":
    run()
