"""
Lifecycle shared by per-session components.

A component is closed when its session ends. Remote calls already in flight
may still complete afterwards; their results must not touch the component.
"""

import logging

logger = logging.getLogger(__name__)


class SessionComponent:
    """Base for components owned by one user session."""

    def __init__(self):
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Tear the component down. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._on_close()

    def _on_close(self) -> None:
        """Hook for subclasses to release state on teardown."""

    def _discard_if_closed(self, operation: str) -> bool:
        """True when a completed remote result must be dropped because of teardown."""
        if self._closed:
            logger.debug(f"Discarding result of {operation} for closed {type(self).__name__}")
            return True
        return False
