from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Literal

from ..core.logging import get_logger

logger = get_logger(name=__name__)

NotificationLevel = Literal["loading", "success", "error", "info"]


@dataclass(frozen=True, slots=True)
class Notification:
    key: str
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict[str, object]:
        return {
            "key": self.key,
            "level": self.level,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }


Subscriber = Callable[[Notification], Awaitable[None]]


class NotificationFeed:
    """Transient, per-session user notices.

    Publishing with a key that is already pending replaces that entry in
    place, so a ``loading`` notice can turn into ``success`` or ``error``.
    """

    def __init__(self) -> None:
        self._pending: dict[str, Notification] = {}
        self._subscribers: set[Subscriber] = set()

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.add(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.discard(subscriber)

    async def publish(self, level: NotificationLevel, message: str, *, key: str | None = None) -> Notification:
        notification = Notification(key=key or uuid.uuid4().hex, level=level, message=message)
        self._pending = {**self._pending, notification.key: notification}

        if self._subscribers:
            results = await asyncio.gather(
                *(self._safe_invoke(subscriber, notification) for subscriber in list(self._subscribers)),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, Exception):
                    logger.warning("notification_subscriber_error", error=str(result))
        return notification

    async def loading(self, message: str, *, key: str | None = None) -> Notification:
        return await self.publish("loading", message, key=key)

    async def success(self, message: str, *, key: str | None = None) -> Notification:
        return await self.publish("success", message, key=key)

    async def error(self, message: str, *, key: str | None = None) -> Notification:
        return await self.publish("error", message, key=key)

    async def info(self, message: str, *, key: str | None = None) -> Notification:
        return await self.publish("info", message, key=key)

    def dismiss(self, key: str) -> None:
        self._pending = {k: v for k, v in self._pending.items() if k != key}

    def pending(self) -> list[Notification]:
        return list(self._pending.values())

    def drain(self) -> list[Notification]:
        drained = list(self._pending.values())
        self._pending = {}
        return drained

    async def _safe_invoke(self, subscriber: Subscriber, notification: Notification) -> None:
        try:
            await subscriber(notification)
        except Exception as exc:  # pragma: no cover
            logger.warning("notification_subscriber_failed", subscriber=subscriber.__qualname__, error=str(exc))


async def log_notification(notification: Notification) -> None:
    logger.info("user_notification", level=notification.level, key=notification.key, message=notification.message)


__all__ = ["Notification", "NotificationFeed", "NotificationLevel", "log_notification"]
