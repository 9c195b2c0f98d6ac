"""
User-facing notices (toast messages).

One ``Notifier`` is owned by each user session and handed to the components
that need to surface denials or failures.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List

logger = logging.getLogger(__name__)

VARIANTS = ("default", "destructive", "success")


@dataclass
class Notice:
    """A message to show the user."""
    title: str
    description: str
    variant: str = "default"
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )

    def to_dict(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "description": self.description,
            "variant": self.variant,
            "created_at": self.created_at,
        }


class Notifier:
    """Collects notices for one session between ``start()`` and ``stop()``."""

    def __init__(self):
        self._notices: List[Notice] = []
        self._lock = Lock()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._running = True

    def stop(self) -> None:
        with self._lock:
            self._running = False
            self._notices.clear()

    def notify(self, title: str, description: str, variant: str = "default") -> None:
        if variant not in VARIANTS:
            raise ValueError(f"Unknown notice variant '{variant}'")
        if not self._running:
            logger.debug(f"Notifier stopped, dropping notice: {title}")
            return
        with self._lock:
            self._notices.append(Notice(title=title, description=description, variant=variant))

    def pending(self) -> List[Notice]:
        """Pending notices without clearing them."""
        with self._lock:
            return list(self._notices)

    def drain(self) -> List[Notice]:
        """Return pending notices and clear them."""
        with self._lock:
            notices = self._notices
            self._notices = []
        return notices
