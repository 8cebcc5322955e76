from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from .machine import Phase, ScanSession

STEP_INSTRUCTIONS: dict[Phase, str] = {
    Phase.IDENTIFYING: "Step 1: Point your camera at a plastic bottle and click 'Scan Bottle'.",
    Phase.CONFIRMING: "Step 2: Show the bottle going into a bin and click 'Confirm Deposit'.",
    Phase.COMPLETED: "Thank you for recycling!",
}

ANALYZING_MESSAGE = "AI is analyzing the image..."
CAMERA_DENIED_BANNER = (
    "Camera Access Denied. Please allow camera access to use the scanner."
)
CAMERA_STARTING_BANNER = "Starting camera..."


@dataclass(frozen=True)
class ScanView:
    phase: str
    instruction: str
    status: Optional[str]
    detected_label: Optional[str]
    error: Optional[str]
    error_kind: Optional[str]
    busy: bool
    camera_banner: Optional[str]
    can_scan: bool
    can_confirm: bool
    can_reset: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def present(
    session: ScanSession, busy: bool = False, camera_ready: bool | None = True
) -> ScanView:
    """Build the read-only view a scanner screen renders.

    ``camera_ready`` is ``None`` while the camera is still starting and
    ``False`` when access was denied; triggers stay disabled in both cases.
    """
    if busy:
        status: Optional[str] = ANALYZING_MESSAGE
    elif session.phase is Phase.CONFIRMING:
        status = f"Detected: {session.detected_label}"
    elif session.phase is Phase.COMPLETED:
        status = "Deposit confirmed!"
    else:
        status = None

    if camera_ready is None:
        banner: Optional[str] = CAMERA_STARTING_BANNER
    elif camera_ready is False:
        banner = CAMERA_DENIED_BANNER
    else:
        banner = None

    can_trigger = not busy and camera_ready is True
    return ScanView(
        phase=session.phase.value,
        instruction=STEP_INSTRUCTIONS[session.phase],
        status=status,
        detected_label=session.detected_label,
        error=session.last_error,
        error_kind=session.error_kind.value if session.error_kind else None,
        busy=busy,
        camera_banner=banner,
        can_scan=can_trigger and session.phase is Phase.IDENTIFYING,
        can_confirm=can_trigger and session.phase is Phase.CONFIRMING,
        can_reset=not busy,
    )


__all__ = [
    "ANALYZING_MESSAGE",
    "CAMERA_DENIED_BANNER",
    "CAMERA_STARTING_BANNER",
    "STEP_INSTRUCTIONS",
    "ScanView",
    "present",
]
