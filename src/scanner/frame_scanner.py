"""
Frame scanner: camera lifecycle plus the throttled detection loop.

State machine:

    IDLE -> ACQUIRING -> ACTIVE
    ACQUIRING -> IDLE      (acquisition failed)
    ACTIVE -> IDLE         (stop, visibility loss, too many read failures)
    any -> STOPPED         (shutdown; terminal)

The scanner does not own a timer. Whatever drives it calls
``on_frame(timestamp_ms)`` once per available frame and the scanner decides
per call whether a detection attempt is due.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from camera.base import CameraSource
from detection.probe import Capabilities
from models.frame import FrameData
from .errors import CapabilityUnsupported, PermissionDenied, ScanError

DEFAULT_SCAN_INTERVAL_MS = 200
DEFAULT_MAX_READ_FAILURES = 10

ResultCallback = Callable[[str], None]


class ScannerState(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    ACTIVE = "active"
    STOPPED = "stopped"


class FrameScanner:
    """
    Owns the camera and feeds frames to the session's detection backend.

    Example:
        scanner = FrameScanner(camera, caps, on_result=dispatcher.submit)
        scanner.start()
        while scanner.is_active:
            scanner.on_frame(time.monotonic() * 1000)
        scanner.stop()
    """

    def __init__(
        self,
        camera: CameraSource,
        capabilities: Capabilities,
        on_result: ResultCallback,
        scan_interval_ms: float = DEFAULT_SCAN_INTERVAL_MS,
        max_read_failures: int = DEFAULT_MAX_READ_FAILURES,
    ):
        self._camera = camera
        self.capabilities = capabilities
        self._on_result = on_result
        self.scan_interval_ms = scan_interval_ms
        self.max_read_failures = max_read_failures

        self._state = ScannerState.IDLE
        self._state_lock = threading.Lock()
        # Held for every camera access so a stop() never races a read()
        self._camera_lock = threading.Lock()
        self._active_event = threading.Event()

        self._last_attempt_ms: Optional[float] = None
        self._attempt_in_flight = False
        self._read_failures = 0
        self._retry_armed = False
        self._torch_enabled = False
        self.last_error: Optional[ScanError] = None
        self.latest_frame: Optional[FrameData] = None

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> ScannerState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state == ScannerState.ACTIVE

    @property
    def retry_armed(self) -> bool:
        return self._retry_armed

    @property
    def torch_enabled(self) -> bool:
        return self._torch_enabled

    def wait_until_active(self, timeout: Optional[float] = None) -> bool:
        return self._active_event.wait(timeout)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """
        Acquire the camera and begin accepting frame ticks.

        Raises:
            CapabilityUnsupported: no backend, insecure context, or after shutdown.
            PermissionDenied: camera access refused (a one-shot retry is armed).
            NoCameraFound: no camera could be opened.
        """
        with self._state_lock:
            if self._state == ScannerState.STOPPED:
                raise CapabilityUnsupported("Scanner has been shut down")
            if self._state in (ScannerState.ACTIVE, ScannerState.ACQUIRING):
                return
            if not self.capabilities.supported:
                raise CapabilityUnsupported("No QR detection backend is available")
            if not self.capabilities.secure_context:
                raise CapabilityUnsupported("Camera access requires a secure context")
            self._state = ScannerState.ACQUIRING

        try:
            with self._camera_lock:
                self._camera.open()
        except PermissionDenied as e:
            self._retry_armed = True
            self._fail_acquisition(e)
            raise
        except ScanError as e:
            self._fail_acquisition(e)
            raise

        with self._state_lock:
            if self._state != ScannerState.ACQUIRING:
                # Stopped while acquiring; give the camera back
                with self._camera_lock:
                    self._camera.close()
                return
            self._last_attempt_ms = None
            self._read_failures = 0
            self._retry_armed = False
            self.last_error = None
            self._state = ScannerState.ACTIVE
            self._active_event.set()

        logging.info(f"Scanning started (backend={self.capabilities.backend.value})")

    def _fail_acquisition(self, error: ScanError) -> None:
        with self._state_lock:
            if self._state == ScannerState.ACQUIRING:
                self._state = ScannerState.IDLE
        self.last_error = error
        logging.error(f"Camera acquisition failed ({error.code}): {error.message}")

    def stop(self) -> None:
        """Halt detection and release the camera. Idempotent."""
        with self._state_lock:
            if self._state not in (ScannerState.ACTIVE, ScannerState.ACQUIRING):
                return
            self._state = ScannerState.IDLE
            self._active_event.clear()

        with self._camera_lock:
            self._camera.close()
            self.latest_frame = None
        self._torch_enabled = False
        logging.info("Scanning stopped")

    def shutdown(self) -> None:
        """Teardown: stop and refuse further starts."""
        self.stop()
        with self._state_lock:
            self._state = ScannerState.STOPPED
            self._active_event.set()  # wake any waiting driver so it can exit
        self._retry_armed = False

    def handle_visibility_change(self, hidden: bool) -> None:
        if hidden:
            logging.info("Scanner hidden; releasing camera")
            self.stop()

    def notify_user_interaction(self) -> bool:
        """
        Consume the one-shot permission retry, if armed.

        Returns True if a retry ran and scanning is now active.
        """
        if not self._retry_armed:
            return False
        self._retry_armed = False
        try:
            self.start()
        except ScanError:
            return False
        return self.is_active

    # =========================================================================
    # FRAME LOOP
    # =========================================================================

    def on_frame(self, timestamp_ms: float) -> bool:
        """
        Handle one frame tick.

        Reads the current frame and runs a detection attempt when at least
        ``scan_interval_ms`` passed since the previous attempt. Returns True
        if an attempt ran.
        """
        if not self.is_active:
            return False

        with self._camera_lock:
            if not self.is_active:
                return False
            frame_data = self._camera.read()

        if frame_data is None:
            self._read_failures += 1
            if self._read_failures >= self.max_read_failures:
                logging.error(f"Too many consecutive frame read failures ({self._read_failures}), stopping")
                self.stop()
            return False
        self._read_failures = 0
        self.latest_frame = frame_data

        if self._attempt_in_flight:
            return False
        if self._last_attempt_ms is not None and timestamp_ms - self._last_attempt_ms < self.scan_interval_ms:
            return False

        self._last_attempt_ms = timestamp_ms
        self._attempt_in_flight = True
        try:
            value = self._detect(frame_data)
        finally:
            self._attempt_in_flight = False

        # Results from an attempt that outlived a stop() are dropped
        if value and self.is_active:
            try:
                self._on_result(value)
            except Exception as e:
                logging.warning(f"Result callback error: {e}")
        return True

    def _detect(self, frame_data: FrameData) -> Optional[str]:
        detector = self.capabilities.detector
        if detector is None:
            return None
        try:
            return detector.detect(frame_data.frame)
        except Exception as e:
            # Nothing found this frame
            logging.debug(f"Detection attempt failed: {e}")
            return None

    # =========================================================================
    # TORCH
    # =========================================================================

    def torch_supported(self) -> bool:
        if not self.is_active:
            return False
        with self._camera_lock:
            return bool(self._camera.capabilities().get("torch", False))

    def set_torch(self, enabled: bool) -> bool:
        """Apply the torch constraint. Returns False when not available; never raises."""
        if not self.torch_supported():
            return False
        try:
            with self._camera_lock:
                self._camera.apply_torch(enabled)
        except Exception as e:
            logging.warning(f"Torch not available: {e}")
            return False
        self._torch_enabled = enabled
        return True
