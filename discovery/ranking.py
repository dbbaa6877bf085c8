"""Priority filtering, ranking and tier assignment."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Sequence

from .classifier import ClassificationResult

LOGGER = logging.getLogger(__name__)

HIGH_TIER_MIN = 70
MEDIUM_TIER_MIN = 50


class Tier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _TIER_RANKS[self]


_TIER_RANKS = {Tier.HIGH: 1, Tier.MEDIUM: 2, Tier.LOW: 3}


def tier_for_priority(priority: int) -> Tier:
    if priority >= HIGH_TIER_MIN:
        return Tier.HIGH
    if priority >= MEDIUM_TIER_MIN:
        return Tier.MEDIUM
    return Tier.LOW


def priority_distribution(results: Iterable[ClassificationResult]) -> dict[str, int]:
    counts = {tier.value: 0 for tier in Tier}
    for result in results:
        counts[tier_for_priority(result.priority).value] += 1
    return counts


def rank(
    results: Sequence[ClassificationResult],
    min_priority: int = 50,
    cap: int = 500,
) -> list[ClassificationResult]:
    """Drop excluded and low-priority results, sort by priority, keep ``cap``.

    ``sorted`` is stable, so results with equal priority keep their input
    (discovery) order.
    """

    if cap < 0:
        raise ValueError("cap must not be negative")

    kept = [result for result in results if not result.excluded and result.priority >= min_priority]
    ranked = sorted(kept, key=lambda result: result.priority, reverse=True)[:cap]

    LOGGER.info(
        "Filtered to %d URLs (from %d total, min priority %d)",
        len(ranked),
        len(results),
        min_priority,
    )
    LOGGER.info("Priority distribution: %s", priority_distribution(ranked))
    return ranked


__all__ = [
    "HIGH_TIER_MIN",
    "MEDIUM_TIER_MIN",
    "Tier",
    "priority_distribution",
    "rank",
    "tier_for_priority",
]
