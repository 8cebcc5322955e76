import unittest

from winbin.scan.machine import ErrorKind, Phase, ScanSession
from winbin.scan.presenter import (
    ANALYZING_MESSAGE,
    CAMERA_DENIED_BANNER,
    CAMERA_STARTING_BANNER,
    present,
)


class PresenterTests(unittest.TestCase):
    def test_initial_view_allows_scanning_only(self) -> None:
        view = present(ScanSession())

        self.assertEqual(view.phase, "identifying")
        self.assertTrue(view.instruction.startswith("Step 1"))
        self.assertIsNone(view.status)
        self.assertTrue(view.can_scan)
        self.assertFalse(view.can_confirm)
        self.assertTrue(view.can_reset)

    def test_confirming_view_shows_detected_label(self) -> None:
        session = ScanSession(phase=Phase.CONFIRMING, detected_label="Sprite")

        view = present(session)

        self.assertEqual(view.status, "Detected: Sprite")
        self.assertTrue(view.can_confirm)
        self.assertFalse(view.can_scan)

    def test_busy_disables_every_trigger(self) -> None:
        view = present(ScanSession(phase=Phase.CONFIRMING, detected_label="Sprite"), busy=True)

        self.assertEqual(view.status, ANALYZING_MESSAGE)
        self.assertFalse(view.can_confirm)
        self.assertFalse(view.can_scan)
        self.assertFalse(view.can_reset)

    def test_camera_state_controls_banner_and_triggers(self) -> None:
        starting = present(ScanSession(), camera_ready=None)
        denied = present(ScanSession(), camera_ready=False)

        self.assertEqual(starting.camera_banner, CAMERA_STARTING_BANNER)
        self.assertEqual(denied.camera_banner, CAMERA_DENIED_BANNER)
        self.assertFalse(starting.can_scan)
        self.assertFalse(denied.can_scan)
        self.assertTrue(denied.can_reset)

    def test_error_and_completion_fields(self) -> None:
        failed = present(
            ScanSession(last_error="boom", error_kind=ErrorKind.SERVICE)
        ).to_dict()
        done = present(ScanSession(phase=Phase.COMPLETED, detected_label="Pepsi"))

        self.assertEqual(failed["error"], "boom")
        self.assertEqual(failed["error_kind"], "service_error")
        self.assertEqual(done.status, "Deposit confirmed!")
        self.assertEqual(done.instruction, "Thank you for recycling!")
        self.assertFalse(done.can_scan)
        self.assertFalse(done.can_confirm)


if __name__ == "__main__":
    unittest.main()
