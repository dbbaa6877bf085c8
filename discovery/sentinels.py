"""Two-phase ingestion sentinels emitted after dispatch."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from .queue import MessageQueue

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SentinelKind(str, Enum):
    PREPARE_INGESTION = "PREPARE_INGESTION"
    TRIGGER_INGESTION = "TRIGGER_INGESTION"


_SENTINEL_MESSAGES = {
    SentinelKind.PREPARE_INGESTION: "Preparation sentinel - all content batches have been queued",
    SentinelKind.TRIGGER_INGESTION: "Trigger sentinel - initiate knowledge base ingestion",
}


@dataclass(frozen=True, slots=True)
class Sentinel:
    kind: SentinelKind
    discovery_id: str
    total_batches: int
    total_urls: int
    emitted_at: datetime
    delay_seconds: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "discoveryId": self.discovery_id,
            "metadata": {
                "totalBatches": self.total_batches,
                "totalUrls": self.total_urls,
                "timestamp": self.emitted_at.isoformat(),
            },
            "delaySeconds": self.delay_seconds,
            "message": _SENTINEL_MESSAGES[self.kind],
        }


@dataclass(slots=True)
class TriggerOutcome:
    """What was emitted; ``error`` set means ingestion needs a manual trigger."""

    sent: list[SentinelKind] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and len(self.sent) == len(SentinelKind)


class IngestionTrigger:
    """Emit PREPARE immediately and TRIGGER after ``trigger_delay`` seconds.

    The delay gives content consumers time to drain the batch queue before the
    ingestion job starts. Failures never propagate; they are returned in the
    outcome and logged as a warning.
    """

    def __init__(
        self,
        queue: MessageQueue,
        *,
        prepare_delay: int = 0,
        trigger_delay: int = 300,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if trigger_delay < prepare_delay:
            raise ValueError("trigger_delay must not be shorter than prepare_delay")
        self._queue = queue
        self._delays = {
            SentinelKind.PREPARE_INGESTION: prepare_delay,
            SentinelKind.TRIGGER_INGESTION: trigger_delay,
        }
        self._clock = clock

    def build(self, kind: SentinelKind, discovery_id: str, total_batches: int, total_urls: int) -> Sentinel:
        return Sentinel(
            kind=kind,
            discovery_id=discovery_id,
            total_batches=total_batches,
            total_urls=total_urls,
            emitted_at=self._clock(),
            delay_seconds=self._delays[kind],
        )

    def trigger(self, discovery_id: str, total_batches: int, total_urls: int) -> TriggerOutcome:
        outcome = TriggerOutcome()
        for kind in (SentinelKind.PREPARE_INGESTION, SentinelKind.TRIGGER_INGESTION):
            sentinel = self.build(kind, discovery_id, total_batches, total_urls)
            try:
                self._queue.send(
                    sentinel.to_payload(),
                    {"messageType": kind.value},
                    sentinel.delay_seconds,
                )
            except Exception as exc:
                outcome.error = f"{kind.value}: {exc}"
                LOGGER.warning(
                    "Failed to send %s sentinel for %s (%s); knowledge base ingestion will need to be triggered manually",
                    kind.value,
                    discovery_id,
                    exc,
                )
                return outcome
            outcome.sent.append(kind)
            LOGGER.info(
                "Sent %s sentinel for %s (delay %ds)",
                kind.value,
                discovery_id,
                sentinel.delay_seconds,
            )
        return outcome


__all__ = ["IngestionTrigger", "Sentinel", "SentinelKind", "TriggerOutcome"]
