"""Send-only message queue adapter backed by Celery."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

from celery import Celery

from .config import QueueConfig

LOGGER = logging.getLogger(__name__)

IN_MEMORY_BROKER_PREFIX = "memory://"


class QueueSendError(RuntimeError):
    """Raised when a message could not be handed to the broker."""


class MessageQueue(Protocol):
    """Anything that accepts a JSON payload with attributes and a delay."""

    def send(
        self,
        payload: Mapping[str, Any],
        attributes: Mapping[str, str],
        delay_seconds: int = 0,
    ) -> None:
        ...


class CeleryMessageQueue:
    """Publish payloads as Celery task messages on a named queue.

    Attributes travel as message headers so consumers can filter without
    decoding the body; ``delay_seconds`` becomes the task ``countdown``.
    """

    def __init__(self, app: Celery, config: QueueConfig, *, task_name: str | None = None) -> None:
        self._app = app
        self._config = config
        self._task_name = task_name or config.batch_task

    @property
    def task_name(self) -> str:
        return self._task_name

    def for_task(self, task_name: str) -> "CeleryMessageQueue":
        return CeleryMessageQueue(self._app, self._config, task_name=task_name)

    def send(
        self,
        payload: Mapping[str, Any],
        attributes: Mapping[str, str],
        delay_seconds: int = 0,
    ) -> None:
        options: dict[str, Any] = {
            "queue": self._config.queue_name,
            "headers": {str(key): str(value) for key, value in attributes.items()},
        }
        if delay_seconds > 0:
            options["countdown"] = int(delay_seconds)
        try:
            self._app.send_task(self._task_name, args=(dict(payload),), **options)
        except Exception as exc:
            raise QueueSendError(f"Failed to publish {self._task_name}: {exc}") from exc
        LOGGER.debug(
            "Published %s to queue %s (delay=%ss)",
            self._task_name,
            self._config.queue_name,
            delay_seconds,
        )

    def is_configured(self) -> bool:
        """True when messages reach a real broker; the in-memory transport loses them on exit."""

        broker = str(self._app.conf.broker_url or "")
        if not broker or broker.startswith(IN_MEMORY_BROKER_PREFIX):
            return False
        return bool(self._config.queue_name)


__all__ = ["CeleryMessageQueue", "MessageQueue", "QueueSendError"]
