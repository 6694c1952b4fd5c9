"""Polling loop with cooperative shutdown.

SIGTERM/SIGINT only set a stop event. The event is checked before and after
every cycle and between the short waits that make up the poll interval, so an
in-flight fetch or Slack post always completes before the process exits.
"""

from __future__ import annotations

import logging
import math
import signal
import threading
from types import FrameType

from redmine_slack_relay.relay.issue_relay import Failed, IssueRelay, Posted
from redmine_slack_relay.relay.slack.client import SlackClient

logger = logging.getLogger(__name__)


class RelayLoop:
    def __init__(
        self,
        *,
        relay: IssueRelay,
        interval_seconds: float = 60.0,
        check_seconds: float = 6.0,
        slack: SlackClient | None = None,
        announce_channel: str | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        if interval_seconds <= 0 or check_seconds <= 0:
            raise ValueError("interval_seconds and check_seconds must be positive")
        self._relay = relay
        self._interval = interval_seconds
        self._check = min(check_seconds, interval_seconds)
        self._slack = slack
        self._announce_channel = announce_channel
        self._stop = stop_event or threading.Event()
        self.cycles = 0

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def request_shutdown(self) -> None:
        """Ask the loop to exit at its next checkpoint."""

        self._stop.set()

    def install_signal_handlers(self) -> None:
        def handle_shutdown(signum: int, frame: FrameType | None) -> None:
            logger.info(
                "Received %s, shutting down after the current cycle", signal.Signals(signum).name
            )
            self.request_shutdown()

        signal.signal(signal.SIGTERM, handle_shutdown)
        signal.signal(signal.SIGINT, handle_shutdown)

    def run_once(self) -> None:
        """Run a single cycle; never raises, so one bad cycle cannot kill the loop."""

        self.cycles += 1
        try:
            result = self._relay.run_cycle()
        except Exception:
            logger.exception("Polling cycle crashed; will retry next cycle")
            return

        if isinstance(result, Failed):
            logger.warning(
                "Polling cycle failed",
                extra={"error": str(result.error), "delivered": result.delivered},
            )
        elif isinstance(result, Posted):
            logger.debug("Polling cycle done", extra={"posted": result.count})

    def wait(self) -> None:
        """Sleep one poll interval in short slices, returning early on shutdown."""

        for _ in range(math.ceil(self._interval / self._check)):
            if self._stop.wait(self._check):
                return

    def run(self) -> None:
        logger.info(
            "Relay loop started",
            extra={"interval_seconds": self._interval, "check_seconds": self._check},
        )
        self._announce("Hello!")
        try:
            while not self._stop.is_set():
                self.run_once()
                if self._stop.is_set():
                    break
                self.wait()
        finally:
            self._announce("Bye!")
            logger.info("Relay loop stopped", extra={"cycles": self.cycles})

    def _announce(self, greeting: str) -> None:
        if self._slack is None or not self._announce_channel:
            return
        try:
            text = f"{greeting} Last creation: {self._relay.current_watermark() or 'none'}"
            result = self._slack.post_text(
                channel=self._announce_channel, text=text, username="Redmine2Slack"
            )
        except Exception:
            logger.exception("Announcement failed")
            return
        if result.error is not None:
            logger.warning("Announcement failed", extra={"error": str(result.error)})
