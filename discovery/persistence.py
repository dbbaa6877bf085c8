"""Key-value persistence for discovery session summaries."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session, sessionmaker

from models import Base, DiscoverySessionRecord


class SessionStoreError(RuntimeError):
    """Raised when reading or writing a session record fails."""


def _from_epoch(epoch_seconds: int) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back as naive UTC values.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DiscoverySessionStore:
    """Single-item upserts keyed by string, each with an absolute expiry."""

    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, db_url: str) -> "DiscoverySessionStore":
        engine = create_engine(db_url, pool_pre_ping=True)
        Base.metadata.create_all(engine)  # ensure the sessions table exists before writes
        return cls(sessionmaker(bind=engine))

    def put(self, key: str, item: Mapping[str, Any], ttl_epoch_seconds: int) -> None:
        expires_at = _from_epoch(ttl_epoch_seconds)
        try:
            with self._session_factory() as session:
                record = self._find(session, key)
                if record is None:
                    session.add(
                        DiscoverySessionRecord(record_key=key, payload=dict(item), expires_at=expires_at)
                    )
                else:
                    record.payload = dict(item)
                    record.expires_at = expires_at
                session.commit()
        except Exception as exc:
            raise SessionStoreError(str(exc)) from exc

    def get(self, key: str, *, now: Optional[datetime] = None) -> Optional[dict[str, Any]]:
        """Return the stored item, treating expired records as absent."""

        current = now or datetime.now(timezone.utc)
        try:
            with self._session_factory() as session:
                record = self._find(session, key)
                if record is None or _as_aware(record.expires_at) <= current:
                    return None
                return dict(record.payload)
        except Exception as exc:
            raise SessionStoreError(str(exc)) from exc

    def purge_expired(self, *, now: Optional[datetime] = None) -> int:
        current = now or datetime.now(timezone.utc)
        try:
            with self._session_factory() as session:
                result = session.execute(
                    delete(DiscoverySessionRecord).where(DiscoverySessionRecord.expires_at <= current)
                )
                session.commit()
                return int(result.rowcount or 0)
        except Exception as exc:
            raise SessionStoreError(str(exc)) from exc

    @staticmethod
    def _find(session: Session, key: str) -> Optional[DiscoverySessionRecord]:
        statement = select(DiscoverySessionRecord).where(DiscoverySessionRecord.record_key == key)
        return session.execute(statement).scalar_one_or_none()


__all__ = ["DiscoverySessionStore", "SessionStoreError"]
