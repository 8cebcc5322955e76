from __future__ import annotations

import base64
import io

import pytest
from PIL import Image

from winbin.ai.imaging import (
    Frame,
    InvalidImageError,
    decode_image_payload,
    downscale_frame,
    encode_data_uri,
    frame_from_payload,
    sniff_media_type,
)


def _encoded(fmt: str = "JPEG", size: tuple[int, int] = (40, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


def test_decode_accepts_bare_base64_and_data_uri() -> None:
    raw = _encoded()
    encoded = base64.b64encode(raw).decode("ascii")

    assert decode_image_payload(encoded) == (raw, None)
    assert decode_image_payload(f"data:image/jpeg;base64,{encoded}") == (raw, "image/jpeg")


@pytest.mark.parametrize(
    "payload",
    ["", "   ", "data:image/jpeg,abc", "not base64!!"],
)
def test_decode_rejects_bad_payloads(payload: str) -> None:
    with pytest.raises(InvalidImageError):
        decode_image_payload(payload)


def test_sniff_uses_content_not_declaration() -> None:
    png = _encoded("PNG")
    frame = frame_from_payload("data:image/jpeg;base64," + base64.b64encode(png).decode("ascii"))

    assert sniff_media_type(png) == "image/png"
    assert frame.media_type == "image/png"
    assert frame.encoding == "png"


def test_sniff_rejects_non_images() -> None:
    with pytest.raises(InvalidImageError):
        sniff_media_type(b"plain text")


def test_downscale_keeps_small_frames_untouched() -> None:
    frame = Frame(data=_encoded(size=(40, 30)))

    assert downscale_frame(frame, 64) is frame
    assert downscale_frame(frame, 0) is frame


def test_downscale_shrinks_longest_edge() -> None:
    frame = Frame(data=_encoded("PNG", size=(400, 100)), media_type="image/png")

    resized = downscale_frame(frame, 100)

    assert resized.media_type == "image/jpeg"
    with Image.open(io.BytesIO(resized.data)) as img:
        assert img.size == (100, 25)


def test_encode_data_uri_round_trips() -> None:
    frame = Frame(data=_encoded())

    assert frame_from_payload(encode_data_uri(frame)).data == frame.data
