"""
Scan engine: the environment that drives the frame scanner.

The scanner only reacts to ``on_frame(timestamp_ms)`` calls. This engine makes
those calls from a dedicated loop, once per camera frame, while the scanner
is active, and idles while it is not.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict

import cv2

from runtime.context import ScanSession
from scanner.errors import ScanError
from scanner.frame_scanner import ScannerState


@dataclass
class EngineConfig:
    """
    Configuration for the scan engine.

    Attributes:
        autostart: Start scanning as soon as the engine runs.
        idle_wait: Seconds to wait for activation between idle checks.
        stats_log_interval: Seconds between status log messages.
        display: Show the live frame in a cv2 window ('q' quits).
    """
    autostart: bool = True
    idle_wait: float = 0.5
    stats_log_interval: float = 60.0
    display: bool = False


@dataclass
class EngineStats:
    """Runtime statistics for the engine."""
    tick_count: int = 0
    attempt_count: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)


class ScanEngine:
    """
    Frame-driven loop around a ScanSession.

    Example:
        session = build_session(config)
        engine = ScanEngine(session, EngineConfig(display=True))
        engine.run()
    """

    def __init__(self, session: ScanSession, config: EngineConfig):
        self.session = session
        self.config = config
        self.stats = EngineStats()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def run(self) -> None:
        """Run until stop() is called, the scanner shuts down, or the user quits."""
        self._running = True
        self.stats = EngineStats()
        scanner = self.session.scanner

        if self.config.autostart:
            try:
                scanner.start()
            except ScanError as e:
                logging.error(f"Scanner did not start ({e.code}): {e.message}")

        try:
            while self._running:
                if scanner.state == ScannerState.STOPPED:
                    break

                if not scanner.is_active:
                    scanner.wait_until_active(self.config.idle_wait)
                    continue

                self.stats.tick_count += 1
                if scanner.on_frame(time.monotonic() * 1000.0):
                    self.stats.attempt_count += 1

                if self.config.display and not self._handle_display():
                    break

                self._handle_periodic_tasks()
        except KeyboardInterrupt:
            logging.info("Scan engine interrupted by user")
        finally:
            self._cleanup()

    def stop(self) -> None:
        """Signal the engine to stop after the current tick."""
        self._running = False

    def _handle_display(self) -> bool:
        """Show the latest frame. Returns False if the user pressed 'q'."""
        frame_data = self.session.scanner.latest_frame
        if frame_data is not None:
            cv2.imshow("QR Scanner", frame_data.frame)
        key = cv2.waitKey(1) & 0xFF
        return key != ord('q')

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Engine stats: ticks={self.stats.tick_count}, "
                f"attempts={self.stats.attempt_count}, "
                f"records={len(self.session.store)}"
            )
            self.stats.last_stats_log_time = now

    def _cleanup(self) -> None:
        self._running = False
        self.session.scanner.stop()
        if self.config.display:
            cv2.destroyAllWindows()
        logging.info("Scan engine stopped")


def create_engine_from_config(
    config: Dict[str, Any],
    session: ScanSession,
    display: bool = False,
) -> ScanEngine:
    """Factory: build a ScanEngine from the application config dict."""
    engine_cfg = config.get("engine", {}) or {}
    return ScanEngine(
        session,
        EngineConfig(
            autostart=bool(engine_cfg.get("autostart", True)),
            idle_wait=float(engine_cfg.get("idle_wait", 0.5)),
            stats_log_interval=float(engine_cfg.get("stats_log_interval", 60.0)),
            display=display,
        ),
    )
