"""
Best-effort notification delivery.

Notifications are queued on the unit of work and scheduled only after the
transaction commits. Delivery runs in the background with a time budget;
failures are logged and never reach the caller.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional

from app.core import config
from app.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    topic: str
    subject: str
    recipient: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)


class NotificationSender:
    async def send(self, notification: Notification) -> None:
        raise NotImplementedError


class LoggingNotificationSender(NotificationSender):
    """Default sender: writes the notification to the log."""

    async def send(self, notification: Notification) -> None:
        log.info(
            "Notification %s to %s: %s",
            notification.topic,
            notification.recipient or "-",
            notification.subject,
        )


class Notifier:
    """Schedules notifications on the running loop without awaiting them."""

    def __init__(self, sender: NotificationSender | None = None, timeout: float | None = None):
        self.sender = sender or LoggingNotificationSender()
        self.timeout = config.NOTIFICATION_TIMEOUT if timeout is None else timeout
        self._tasks: set[asyncio.Task] = set()

    def schedule(self, notification: Notification) -> None:
        task = asyncio.create_task(self._deliver(notification))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, notification: Notification) -> None:
        try:
            async with asyncio.timeout(self.timeout):
                await self.sender.send(notification)
        except TimeoutError:
            log.warning("Notification %s timed out after %ss", notification.topic, self.timeout)
        except Exception:
            log.exception("Notification %s failed", notification.topic)

    async def drain(self) -> None:
        """Wait for scheduled deliveries. Used on shutdown and in tests."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
