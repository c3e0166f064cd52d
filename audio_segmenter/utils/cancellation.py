"""Cooperative cancellation for long-running detection calls."""

from __future__ import annotations

import threading
import time

from audio_segmenter.utils.errors import DetectionCancelledError


class CancellationToken:
    """Cancellation flag with an optional monotonic deadline.

    The caller holds the token and may call cancel() from another thread.
    Workers call check() between units of work.

    Args:
        timeout_seconds: Optional budget measured from construction.
        event: Optional externally owned event to observe.
    """

    def __init__(
        self,
        timeout_seconds: float | None = None,
        event: threading.Event | None = None,
    ) -> None:
        self._event = event or threading.Event()
        self._deadline: float | None = None
        if timeout_seconds is not None:
            self._deadline = time.monotonic() + timeout_seconds

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def check(self, operation: str | None = None) -> None:
        """Raise if the token was cancelled or its deadline has passed.

        Raises:
            DetectionCancelledError: On cancellation or deadline expiry.
        """
        if self.cancelled:
            raise DetectionCancelledError("Detection cancelled by caller", operation)
        if self.expired:
            raise DetectionCancelledError("Detection deadline exceeded", operation)
