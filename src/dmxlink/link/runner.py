"""
Link Runner: periodic tick source for one bridge.

A dedicated thread calls ``bridge.tick()`` at the configured refresh rate,
so ticks of the same link never overlap.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

import structlog

from dmxlink.core.exceptions import EncodingError
from dmxlink.link.bridge import DmxBridge

logger = structlog.get_logger()


class LinkRunner:
    """Drives one DmxBridge from a background thread."""

    def __init__(self, bridge: DmxBridge, refresh_rate_hz: float = 40.0):
        if refresh_rate_hz <= 0:
            raise ValueError("refresh_rate_hz must be positive")
        self.bridge = bridge
        self.refresh_rate = refresh_rate_hz

        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        # Stats
        self._ticks = 0
        self._packets = 0
        self._errors = 0
        self.fatal_error: Optional[EncodingError] = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the tick thread."""
        if self._running:
            return

        logger.info("Starting link runner", link=self.bridge.name, rate_hz=self.refresh_rate)
        self._stop_event.clear()
        self._running = True
        self._thread = threading.Thread(
            target=self._tick_loop,
            name=f"DMX-{self.bridge.name}",
            daemon=True,
        )
        self._thread.start()

    def stop(self, dispose: bool = True) -> None:
        """Stop ticking and, by default, close the bridge."""
        self._running = False
        self._stop_event.set()

        if self._thread:
            self._thread.join(timeout=1.0)
            self._thread = None

        if dispose:
            self.bridge.dispose()

        logger.info(
            "Link runner stopped",
            link=self.bridge.name,
            ticks=self._ticks,
            packets=self._packets,
            errors=self._errors,
        )

    def _tick_loop(self) -> None:
        """
        Continuous tick loop.

        Runs in a dedicated thread at the configured refresh rate. Encoding
        errors stop the loop: the buffer does not fit the protocol and every
        further tick would fail the same way.
        """
        tick_time = 1.0 / self.refresh_rate

        while self._running:
            start = time.monotonic()

            try:
                if self.bridge.tick():
                    self._packets += 1
            except EncodingError as e:
                self.fatal_error = e
                self._running = False
                logger.error("DMX encoding failed, stopping link", link=self.bridge.name, error=e.message)
                break
            except Exception as e:
                self._errors += 1
                if self._errors % 100 == 1:
                    logger.error("DMX tick error", link=self.bridge.name, error=str(e))
            self._ticks += 1

            # Maintain tick rate
            elapsed = time.monotonic() - start
            sleep_time = tick_time - elapsed
            if sleep_time > 0:
                self._stop_event.wait(sleep_time)

    def get_stats(self) -> dict:
        """Get tick statistics."""
        return {
            "running": self._running,
            "ticks": self._ticks,
            "packets": self._packets,
            "errors": self._errors,
            "fatal_error": self.fatal_error.message if self.fatal_error else None,
        }
