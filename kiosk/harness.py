from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Protocol

from winbin.ai.imaging import Frame
from winbin.api.client import ScanApiError
from winbin.scan.controller import ScanController
from winbin.scan.errors import ScanError
from winbin.scan.presenter import CAMERA_DENIED_BANNER, present

from .capture import Camera, CameraPermissionError, camera_session, capture_still_frame


class ScanBackend(Protocol):
    def identify(self, frame: Frame) -> Dict[str, Any]: ...

    def confirm(self, frame: Frame) -> Dict[str, Any]: ...

    def reset(self) -> Dict[str, Any]: ...

    def status(self) -> Dict[str, Any]: ...

    def close(self) -> None: ...


class LocalScanBackend:
    """Run the scan controller in-process."""

    def __init__(self, controller: ScanController) -> None:
        self._controller = controller

    def identify(self, frame: Frame) -> Dict[str, Any]:
        asyncio.run(self._controller.identify(frame))
        return self.status()

    def confirm(self, frame: Frame) -> Dict[str, Any]:
        asyncio.run(self._controller.confirm(frame))
        return self.status()

    def reset(self) -> Dict[str, Any]:
        self._controller.reset()
        return self.status()

    def status(self) -> Dict[str, Any]:
        view = present(self._controller.session, busy=self._controller.busy)
        return {"session_id": self._controller.session_id, **view.to_dict()}

    def close(self) -> None:
        return None


@dataclass
class HarnessConfig:
    save_frames_dir: Path | None = None
    verbose: bool = False


class ScanHarness:
    """Coordinates camera -> scan backend for a sequence of user commands."""

    def __init__(
        self,
        backend: ScanBackend,
        camera_factory: Callable[[], Camera],
        config: HarnessConfig | None = None,
        output: Callable[[str], None] = print,
    ) -> None:
        self._backend = backend
        self._camera_factory = camera_factory
        self._config = config or HarnessConfig()
        self._out = output
        self.completed = 0

    def run(self, commands: Iterable[str]) -> int:
        """Process commands until exhausted or ``quit``; return confirmed deposits."""
        try:
            with camera_session(self._camera_factory) as camera:
                self._show(self._backend.status())
                for raw in commands:
                    command = raw.strip().lower()
                    if not command:
                        continue
                    if command in {"quit", "exit", "q"}:
                        break
                    self.handle(command, camera)
        except CameraPermissionError as exc:
            self._out(f"[kiosk] {CAMERA_DENIED_BANNER}")
            if self._config.verbose:
                self._out(f"[kiosk] Camera error: {exc}")
        finally:
            self._backend.close()
        return self.completed

    def handle(self, command: str, camera: Camera) -> Dict[str, Any] | None:
        try:
            if command in {"scan", "s"}:
                view = self._backend.identify(self._capture(camera, "identify"))
            elif command in {"confirm", "c"}:
                view = self._backend.confirm(self._capture(camera, "confirm"))
                if view.get("phase") == "completed":
                    self.completed += 1
            elif command in {"reset", "r"}:
                view = self._backend.reset()
            elif command == "status":
                view = self._backend.status()
            else:
                self._out(f"[kiosk] Unknown command {command!r}; use scan, confirm, reset, status or quit")
                return None
        except (ScanError, ScanApiError) as exc:
            self._out(f"[kiosk] {exc}")
            return None
        except RuntimeError as exc:
            self._out(f"[kiosk] Capture failed: {exc}")
            return None
        self._show(view)
        return view

    def _capture(self, camera: Camera, step: str) -> Frame:
        frame = capture_still_frame(camera)
        if self._config.verbose:
            self._out(f"[kiosk] Captured frame step={step} size={len(frame.data)} bytes")
        debug_dir = self._config.save_frames_dir
        if debug_dir:
            debug_dir.mkdir(parents=True, exist_ok=True)
            path = debug_dir / f"{int(time.time() * 1000)}_{step}.{frame.encoding}"
            path.write_bytes(frame.data)
            if self._config.verbose:
                self._out(f"[kiosk] Saved frame to {path}")
        return frame

    def _show(self, view: Dict[str, Any]) -> None:
        self._out(f"[kiosk] {view.get('instruction', '')}")
        if view.get("status"):
            self._out(f"[kiosk] {view['status']}")
        if view.get("error"):
            self._out(f"[kiosk] ! {view['error']}")


__all__ = ["HarnessConfig", "LocalScanBackend", "ScanBackend", "ScanHarness"]
