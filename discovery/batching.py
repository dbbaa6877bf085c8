"""Tiered batch partitioning."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from .classifier import ClassificationResult
from .ranking import Tier, tier_for_priority

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Batch:
    batch_id: str
    discovery_id: str
    tier: Tier
    urls: tuple[str, ...]
    created_at: datetime

    @property
    def tier_rank(self) -> int:
        return self.tier.rank

    @property
    def url_count(self) -> int:
        return len(self.urls)

    def to_payload(self) -> dict[str, Any]:
        return {
            "batchId": self.batch_id,
            "discoveryId": self.discovery_id,
            "urls": list(self.urls),
            "priority": self.tier.value,
            "priorityScore": self.tier_rank,
            "urlCount": self.url_count,
            "timestamp": self.created_at.isoformat(),
        }


def partition(
    ranked: Sequence[ClassificationResult],
    discovery_id: str,
    max_batch_size: int = 15,
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> list[Batch]:
    """Split ranked results into per-tier batches of at most ``max_batch_size`` URLs."""

    if max_batch_size < 1:
        raise ValueError("max_batch_size must be at least 1")

    by_tier: dict[Tier, list[str]] = {tier: [] for tier in Tier}
    for result in ranked:
        by_tier[tier_for_priority(result.priority)].append(result.url)

    LOGGER.info(
        "Creating batches: %s",
        {tier.value: len(urls) for tier, urls in by_tier.items()},
    )

    created_at = clock()
    batches: list[Batch] = []
    for tier in sorted(Tier, key=lambda item: item.rank):
        tier_urls = by_tier[tier]
        for index, start in enumerate(range(0, len(tier_urls), max_batch_size)):
            batches.append(
                Batch(
                    batch_id=f"{discovery_id}-{tier.value}-{index}",
                    discovery_id=discovery_id,
                    tier=tier,
                    urls=tuple(tier_urls[start : start + max_batch_size]),
                    created_at=created_at,
                )
            )
    return batches


def direct_batch(urls: Sequence[str], batch_id: str, *, clock: Callable[[], datetime] = _utcnow) -> dict[str, Any]:
    """Payload for a caller-supplied URL list queued as-is, outside any tier."""

    return {
        "batchId": batch_id,
        "urls": list(urls),
        "priority": "direct",
        "urlCount": len(urls),
        "timestamp": clock().isoformat(),
    }


__all__ = ["Batch", "direct_batch", "partition"]
