"""Periodic publish timer owned by the host process."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .errors import PublishError
from .publisher import PublishOutcome, Publisher

logger = logging.getLogger("vaultpress.publish.scheduler")


class PublishScheduler:
    """Run ``publisher.publish()`` every ``interval_minutes``.

    A non-positive interval disables the timer. Failures are logged and the
    next tick retries from scratch.
    """

    def __init__(
        self,
        publisher: Publisher,
        interval_minutes: float,
        on_result: Optional[Callable[[Optional[PublishOutcome], Optional[Exception]], None]] = None,
    ) -> None:
        self.publisher = publisher
        self.interval_minutes = interval_minutes
        self.on_result = on_result
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def enabled(self) -> bool:
        return self.interval_minutes > 0

    @property
    def interval_seconds(self) -> float:
        return float(self.interval_minutes) * 60.0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        if self.running:
            return True
        if not self.enabled:
            logger.info("Periodic publish disabled (interval %s).", self.interval_minutes)
            return False

        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            name="vaultpress-publish",
            daemon=True,
        )
        self._thread.start()
        logger.info("Periodic publish every %s minute(s).", self.interval_minutes)
        return True

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

    def trigger(self) -> Optional[PublishOutcome]:
        """Run one publish now; errors are logged, not raised."""

        try:
            outcome = self.publisher.publish()
        except PublishError as exc:
            logger.error("Scheduled publish failed: %s", exc)
            self._notify(None, exc)
            return None
        except Exception as exc:
            logger.exception("Scheduled publish crashed: %s", exc)
            self._notify(None, exc)
            return None
        self._notify(outcome, None)
        return outcome

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.trigger()

    def _notify(self, outcome: Optional[PublishOutcome], error: Optional[Exception]) -> None:
        if self.on_result is not None:
            self.on_result(outcome, error)


__all__ = ["PublishScheduler"]
