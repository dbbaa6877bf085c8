"""Write-once run summaries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Mapping, Protocol

LOGGER = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "discovery:"


class KeyValueStore(Protocol):
    def put(self, key: str, item: Mapping[str, Any], ttl_epoch_seconds: int) -> None:
        ...


@dataclass(frozen=True, slots=True)
class DiscoverySession:
    discovery_id: str
    started_at: datetime
    total_discovered: int
    total_filtered: int
    batch_count: int
    dispatch_success_count: int
    dispatch_failure_count: int
    duration_ms: int
    expires_at: datetime

    @property
    def key(self) -> str:
        return f"{SESSION_KEY_PREFIX}{self.discovery_id}"

    @classmethod
    def create(
        cls,
        *,
        discovery_id: str,
        started_at: datetime,
        total_discovered: int,
        total_filtered: int,
        batch_count: int,
        dispatch_success_count: int,
        dispatch_failure_count: int,
        duration_ms: int,
        ttl_seconds: int,
    ) -> "DiscoverySession":
        return cls(
            discovery_id=discovery_id,
            started_at=started_at,
            total_discovered=total_discovered,
            total_filtered=total_filtered,
            batch_count=batch_count,
            dispatch_success_count=dispatch_success_count,
            dispatch_failure_count=dispatch_failure_count,
            duration_ms=duration_ms,
            expires_at=started_at + timedelta(seconds=ttl_seconds),
        )

    def to_item(self) -> dict[str, Any]:
        return {
            "discoveryId": self.discovery_id,
            "status": "discovery-completed",
            "startedAt": self.started_at.isoformat(),
            "totalDiscovered": self.total_discovered,
            "totalFiltered": self.total_filtered,
            "batchCount": self.batch_count,
            "dispatchSuccessCount": self.dispatch_success_count,
            "dispatchFailureCount": self.dispatch_failure_count,
            "durationMs": self.duration_ms,
            "expiresAt": self.expires_at.isoformat(),
        }


@dataclass(slots=True)
class RecordOutcome:
    recorded: bool
    error: str | None = None


class ProgressTracker:
    """Persist one summary per run; failures are reported, never raised."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def record_session(self, session: DiscoverySession) -> RecordOutcome:
        ttl_epoch = int(session.expires_at.timestamp())
        try:
            self._store.put(session.key, session.to_item(), ttl_epoch)
        except Exception as exc:
            LOGGER.error("Error tracking discovery progress for %s: %s", session.discovery_id, exc)
            return RecordOutcome(recorded=False, error=str(exc))
        LOGGER.info("Discovery progress tracked: %s", session.discovery_id)
        return RecordOutcome(recorded=True)


__all__ = ["DiscoverySession", "KeyValueStore", "ProgressTracker", "RecordOutcome", "SESSION_KEY_PREFIX"]
