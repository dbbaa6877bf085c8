"""Priority-ordered batch dispatch with partial-failure tolerance."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Sequence

from .batching import Batch
from .queue import MessageQueue

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class DispatchResult:
    success_count: int = 0
    failure_count: int = 0
    total: int = 0
    failed_batch_ids: list[str] = field(default_factory=list)


class QueueDispatcher:
    """Send batches one at a time, high tier first.

    Sends are strictly sequential so queue order follows tier order. A failed
    send is counted and logged; the remaining batches are still attempted.
    """

    def __init__(
        self,
        queue: MessageQueue,
        *,
        send_delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._queue = queue
        self._send_delay = max(0.0, send_delay)
        self._sleep = sleep

    def dispatch(self, batches: Sequence[Batch]) -> DispatchResult:
        ordered = sorted(batches, key=lambda batch: batch.tier_rank)
        result = DispatchResult(total=len(ordered))
        LOGGER.info("Sending %d batches to queue", len(ordered))

        for position, batch in enumerate(ordered):
            if position and self._send_delay:
                self._sleep(self._send_delay)
            try:
                self._queue.send(
                    batch.to_payload(),
                    {"priority": batch.tier.value, "batchId": batch.batch_id},
                )
            except Exception as exc:
                result.failure_count += 1
                result.failed_batch_ids.append(batch.batch_id)
                LOGGER.error("Failed to queue batch %s: %s", batch.batch_id, exc)
                continue
            result.success_count += 1
            LOGGER.info(
                "Queued batch %s (%d URLs, priority: %s)",
                batch.batch_id,
                batch.url_count,
                batch.tier.value,
            )

        if result.failure_count:
            LOGGER.warning(
                "Dispatch finished with %d of %d batches failed",
                result.failure_count,
                result.total,
            )
        return result


__all__ = ["DispatchResult", "QueueDispatcher"]
