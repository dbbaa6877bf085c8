"""Celery application used as the outbound message queue."""

from __future__ import annotations

from typing import Optional

from celery import Celery


def _sqla_broker_from_db(db_url: Optional[str]) -> Optional[str]:
    if not db_url:
        return None
    return db_url if db_url.startswith("sqla+") else f"sqla+{db_url}"


def create_celery_app(broker_url: Optional[str] = None, db_url: Optional[str] = None) -> Celery:
    """Instantiate the Celery app publishing discovery batches and sentinels.

    Without an explicit broker the database URL is reused through kombu's
    SQLAlchemy transport; the in-memory transport is the last resort.
    """

    if broker_url is None:
        broker_url = _sqla_broker_from_db(db_url)
    if broker_url is None:
        broker_url = "memory://"

    app = Celery("discovery", broker=broker_url)
    app.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        task_ignore_result=True,
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        worker_prefetch_multiplier=1,
        broker_connection_retry_on_startup=True,
        # A dead broker should fail one send quickly instead of stalling dispatch.
        task_publish_retry=False,
    )
    return app


__all__ = ["create_celery_app"]
