from __future__ import annotations

import contextlib
import io
import mimetypes
import pathlib
from typing import Callable, Iterator, Protocol

from PIL import Image

from winbin.ai.imaging import Frame


class CameraPermissionError(PermissionError):
    """The camera could not be opened (denied, missing or busy)."""


class Camera(Protocol):
    def capture(self) -> Frame: ...

    def release(self) -> None: ...


class StubCamera:
    """Camera stand-in that returns a sample image or a generated grey frame."""

    def __init__(self, sample_path: pathlib.Path | None = None) -> None:
        self._sample_path = sample_path
        self._released = False
        buffer = io.BytesIO()
        Image.new("RGB", (64, 48), (180, 180, 180)).save(buffer, format="JPEG")
        self._fallback_payload = buffer.getvalue()

    @property
    def released(self) -> bool:
        return self._released

    def capture(self) -> Frame:
        if self._released:
            raise RuntimeError("Camera stream has been released")
        if self._sample_path and self._sample_path.exists():
            media_type = mimetypes.guess_type(self._sample_path.name)[0] or "image/jpeg"
            return Frame(data=self._sample_path.read_bytes(), media_type=media_type)
        return Frame(data=self._fallback_payload)

    def release(self) -> None:
        self._released = True


class OpenCVCamera:
    """Capture frames from an OpenCV-compatible source (USB/RTSP)."""

    _BACKEND_ALIASES = {
        "any": "CAP_ANY",
        "auto": "CAP_ANY",
        "dshow": "CAP_DSHOW",
        "msmf": "CAP_MSMF",
        "v4l2": "CAP_V4L2",
        "avfoundation": "CAP_AVFOUNDATION",
    }

    def __init__(
        self,
        source: int | str = 0,
        *,
        resolution: tuple[int, int] | None = None,
        backend: str | int | None = None,
        warmup_frames: int = 2,
    ) -> None:
        try:
            import cv2  # type: ignore
        except ImportError as exc:  # pragma: no cover - depends on optional dep
            raise RuntimeError("opencv-python is required for OpenCVCamera") from exc

        self._cv2 = cv2
        self._cap = cv2.VideoCapture(source, self._resolve_backend(backend, cv2))
        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            raise CameraPermissionError(
                f"Unable to open camera source {source!r}; check camera permissions"
            )
        if resolution:
            width, height = resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, float(width))
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, float(height))
        for _ in range(max(0, warmup_frames)):
            ok, _ = self._cap.read()
            if not ok:
                break

    def _resolve_backend(self, backend: str | int | None, cv2_module) -> int:
        if backend is None:
            return cv2_module.CAP_ANY
        if isinstance(backend, int):
            return backend
        attr_name = self._BACKEND_ALIASES.get(backend.strip().lower())
        if attr_name is None:
            raise ValueError(f"Unknown OpenCV backend alias: {backend!r}")
        return getattr(cv2_module, attr_name, cv2_module.CAP_ANY)

    def capture(self) -> Frame:
        if self._cap is None:
            raise RuntimeError("Camera stream has been released")
        ok, image = self._cap.read()
        if not ok or image is None:
            raise RuntimeError("Failed to capture frame from camera")
        success, buffer = self._cv2.imencode(".jpg", image)
        if not success:
            raise RuntimeError("OpenCV failed to encode frame as JPEG")
        return Frame(data=buffer.tobytes(), media_type="image/jpeg")

    def release(self) -> None:
        if getattr(self, "_cap", None) is not None:
            self._cap.release()
            self._cap = None


def acquire_stream(
    kind: str = "stub",
    source: str = "0",
    resolution: tuple[int, int] | None = None,
    backend: str | int | None = None,
    warmup_frames: int = 2,
) -> Camera:
    if kind == "opencv":
        try:
            converted: int | str = int(source)
        except ValueError:
            converted = source
        return OpenCVCamera(
            source=converted,
            resolution=resolution,
            backend=backend,
            warmup_frames=warmup_frames,
        )
    if kind != "stub":
        raise ValueError(f"Unknown camera kind: {kind!r}")
    sample = pathlib.Path(source) if source and source != "0" else None
    return StubCamera(sample_path=sample if sample and sample.exists() else None)


def capture_still_frame(camera: Camera) -> Frame:
    return camera.capture()


@contextlib.contextmanager
def camera_session(factory: Callable[[], Camera]) -> Iterator[Camera]:
    """Acquire a camera for the lifetime of a scan run and always release it."""
    camera = factory()
    try:
        yield camera
    finally:
        camera.release()


__all__ = [
    "Camera",
    "CameraPermissionError",
    "OpenCVCamera",
    "StubCamera",
    "acquire_stream",
    "camera_session",
    "capture_still_frame",
]
