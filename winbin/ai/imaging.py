from __future__ import annotations

import base64
import binascii
import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

_RESAMPLE = Image.Resampling.LANCZOS

logger = logging.getLogger(__name__)


class InvalidImageError(ValueError):
    """Raised when a payload is not a decodable still image."""


@dataclass(frozen=True)
class Frame:
    """An encoded still frame and its declared media type."""

    data: bytes
    media_type: str = "image/jpeg"

    @property
    def encoding(self) -> str:
        subtype = self.media_type.split("/", 1)[-1]
        return "jpeg" if subtype in {"jpg", "jpeg"} else subtype


def decode_image_payload(value: str) -> tuple[bytes, str | None]:
    """Decode a ``data:`` URI or bare base64 string.

    Returns the raw bytes and the media type declared by the URI, if any.
    """
    if not value or not value.strip():
        raise InvalidImageError("Image payload is empty")
    text = value.strip()
    declared: str | None = None
    if text.startswith("data:"):
        header, sep, text = text.partition(",")
        if not sep or not header.endswith(";base64"):
            raise InvalidImageError("Image data URI must use base64 encoding")
        declared = header[len("data:"):].split(";", 1)[0].strip().lower() or None
    compact = "".join(text.split())
    try:
        data = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidImageError("Invalid base64 image payload") from exc
    if not data:
        raise InvalidImageError("Image payload is empty")
    return data, declared


def sniff_media_type(image_bytes: bytes) -> str:
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise InvalidImageError("Payload is not a supported image") from exc
    if not fmt:
        raise InvalidImageError("Unable to determine image format")
    return Image.MIME.get(fmt, f"image/{fmt.lower()}")


def downscale_frame(frame: Frame, max_edge: int) -> Frame:
    """Shrink frames whose longest edge exceeds ``max_edge`` and re-encode as JPEG."""
    if max_edge <= 0:
        return frame
    try:
        with Image.open(io.BytesIO(frame.data)) as img:
            width, height = img.size
            if max(width, height) <= max_edge:
                return frame
            img = img.convert("RGB")
            img.thumbnail((max_edge, max_edge), _RESAMPLE)
            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=90)
    except (UnidentifiedImageError, OSError) as exc:
        raise InvalidImageError("Payload is not a supported image") from exc
    resized = buffer.getvalue()
    logger.debug(
        "Downscaled frame from %dx%d to max edge %d bytes=%d->%d",
        width,
        height,
        max_edge,
        len(frame.data),
        len(resized),
    )
    return Frame(data=resized, media_type="image/jpeg")


def frame_from_payload(value: str, max_edge: int = 0) -> Frame:
    data, declared = decode_image_payload(value)
    media_type = sniff_media_type(data)
    if declared and declared != media_type:
        logger.debug("Declared media type %s differs from content %s", declared, media_type)
    return downscale_frame(Frame(data=data, media_type=media_type), max_edge)


def encode_data_uri(frame: Frame) -> str:
    encoded = base64.b64encode(frame.data).decode("ascii")
    return f"data:{frame.media_type};base64,{encoded}"


__all__ = [
    "Frame",
    "InvalidImageError",
    "decode_image_payload",
    "downscale_frame",
    "encode_data_uri",
    "frame_from_payload",
    "sniff_media_type",
]
