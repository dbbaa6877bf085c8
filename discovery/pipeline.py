"""Discovery run orchestration and the request/response surface."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Sequence

import httpx

from models import generate_uuid7

from .batching import direct_batch, partition
from .celery_app import create_celery_app
from .classifier import UrlClassifier
from .config import DiscoveryConfig
from .dispatch import QueueDispatcher
from .persistence import DiscoverySessionStore
from .progress import DiscoverySession, KeyValueStore, ProgressTracker
from .queue import CeleryMessageQueue, MessageQueue
from .ranking import rank
from .sentinels import IngestionTrigger
from .sitemap import SitemapParser
from .sources import SourceAggregator

LOGGER = logging.getLogger(__name__)

SERVICE_NAME = "domain-discovery"
SERVICE_VERSION = "1.0.0"

API_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_discovery_id(started_at: datetime) -> str:
    """``discovery-<epoch ms>-<8 hex>``; the suffix keeps same-millisecond runs apart."""

    return f"discovery-{int(started_at.timestamp() * 1000)}-{generate_uuid7().hex[-8:]}"


@dataclass(slots=True)
class DiscoverySummary:
    discovery_id: str
    total_discovered: int
    filtered_urls: int
    batches_created: int
    batches_queued: int
    batches_failed: int
    duration_ms: int
    ingestion_triggered: bool
    session_recorded: bool

    def to_body(self) -> dict[str, Any]:
        return {
            "discoveryId": self.discovery_id,
            "totalDiscovered": self.total_discovered,
            "filteredUrls": self.filtered_urls,
            "batchesCreated": self.batches_created,
            "batchesQueued": self.batches_queued,
            "batchesFailed": self.batches_failed,
            "durationMs": self.duration_ms,
            "ingestionTriggered": self.ingestion_triggered,
            "sessionRecorded": self.session_recorded,
        }


class DiscoveryPipeline:
    """One linear pass: aggregate, classify, rank, partition, dispatch, trigger, record.

    Exceptions from the first four stages escape to the caller. Dispatch,
    sentinel and progress failures are absorbed into the summary.
    """

    def __init__(
        self,
        config: DiscoveryConfig,
        *,
        aggregator: SourceAggregator,
        classifier: UrlClassifier,
        dispatcher: QueueDispatcher,
        trigger: IngestionTrigger,
        tracker: ProgressTracker,
        clock: Callable[[], datetime] = _utcnow,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._aggregator = aggregator
        self._classifier = classifier
        self._dispatcher = dispatcher
        self._trigger = trigger
        self._tracker = tracker
        self._clock = clock
        self._monotonic = monotonic

    def run(self) -> DiscoverySummary:
        started_at = self._clock()
        started = self._monotonic()
        discovery_id = new_discovery_id(started_at)
        LOGGER.info("Starting domain discovery %s for %s", discovery_id, self._config.target_domain)

        discovered = self._aggregator.discover()
        results = self._classifier.classify_all(item.url for item in discovered)
        ranked = rank(results, self._config.min_priority, self._config.max_discovery_urls)
        batches = partition(ranked, discovery_id, self._config.max_batch_size, clock=self._clock)

        dispatch_result = self._dispatcher.dispatch(batches)
        trigger_outcome = self._trigger.trigger(discovery_id, len(batches), len(ranked))

        duration_ms = int((self._monotonic() - started) * 1000)
        session = DiscoverySession.create(
            discovery_id=discovery_id,
            started_at=started_at,
            total_discovered=len(discovered),
            total_filtered=len(ranked),
            batch_count=len(batches),
            dispatch_success_count=dispatch_result.success_count,
            dispatch_failure_count=dispatch_result.failure_count,
            duration_ms=duration_ms,
            ttl_seconds=self._config.session_ttl_seconds,
        )
        record_outcome = self._tracker.record_session(session)

        LOGGER.info(
            "Discovery %s finished in %dms: %d discovered, %d filtered, %d/%d batches queued",
            discovery_id,
            duration_ms,
            len(discovered),
            len(ranked),
            dispatch_result.success_count,
            len(batches),
        )
        return DiscoverySummary(
            discovery_id=discovery_id,
            total_discovered=len(discovered),
            filtered_urls=len(ranked),
            batches_created=len(batches),
            batches_queued=dispatch_result.success_count,
            batches_failed=dispatch_result.failure_count,
            duration_ms=duration_ms,
            ingestion_triggered=trigger_outcome.ok,
            session_recorded=record_outcome.recorded,
        )


def _response(status_code: int, body: Mapping[str, Any]) -> dict[str, Any]:
    return {"statusCode": status_code, "body": dict(body)}


def _with_api_headers(response: dict[str, Any]) -> dict[str, Any]:
    response["headers"] = dict(API_HEADERS)
    return response


class DiscoveryService:
    """Route invocation events to discovery, health checks or direct submission."""

    def __init__(
        self,
        config: DiscoveryConfig,
        *,
        batch_queue: MessageQueue,
        sentinel_queue: MessageQueue,
        store: KeyValueStore,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._batch_queue = batch_queue
        self._sentinel_queue = sentinel_queue
        self._store = store
        self._transport = transport
        self._sleep = sleep
        self._clock = clock

    @property
    def config(self) -> DiscoveryConfig:
        return self._config

    def handle_event(self, event: Mapping[str, Any], request_id: str | None = None) -> dict[str, Any]:
        request_id = request_id or str(generate_uuid7())
        action = event.get("action")
        try:
            if action == "discover-domain":
                return self.discover(event, request_id)
            if action == "health":
                return self.health()
            urls = event.get("urls")
            if isinstance(urls, list):
                return self.submit_urls(urls, request_id)
            if event.get("httpMethod"):
                return self.handle_api_request(event, request_id)
        except Exception as exc:
            LOGGER.exception("Domain discovery request %s failed", request_id)
            return self._error(500, "Domain discovery failed", exc, request_id)

        return _response(
            400,
            {
                "error": "Invalid request",
                "message": 'Use action="discover-domain" for domain discovery or provide a URLs array',
                "requestId": request_id,
            },
        )

    def handle_api_request(self, event: Mapping[str, Any], request_id: str) -> dict[str, Any]:
        """Route an HTTP gateway event by ``httpMethod`` and ``path``."""

        method = str(event.get("httpMethod") or "").upper()
        path = str(event.get("path") or "/")

        if method == "OPTIONS":
            return _with_api_headers(_response(200, {}))
        if method == "GET" and (path == "/" or path.endswith("/health")):
            return _with_api_headers(self.health())
        if method == "POST" and "discover" in path:
            try:
                body = json.loads(event.get("body") or "{}")
                if not isinstance(body, dict):
                    raise ValueError("Request body must be a JSON object")
            except ValueError as exc:
                return _with_api_headers(self._error(400, "Invalid request", exc, request_id))
            return _with_api_headers(self.discover({**body, "action": "discover-domain"}, request_id))

        return _with_api_headers(
            _response(
                404,
                {
                    "error": "Endpoint not found",
                    "message": "Domain Discovery handles discovery requests and health checks",
                },
            )
        )

    def discover(self, event: Mapping[str, Any], request_id: str) -> dict[str, Any]:
        try:
            config = self._config.with_overrides(
                target_domain=event.get("targetDomain"),
                max_batch_size=event.get("maxUrlsPerBatch"),
                max_discovery_urls=event.get("maxDiscoveryUrls"),
                min_priority=event.get("minPriority"),
            )
        except ValueError as exc:
            return self._error(400, "Invalid discovery request", exc, request_id)

        with self._build_parser(config) as parser:
            summary = self.build_pipeline(config, parser).run()
        body = summary.to_body()
        body.update(success=True, message="Domain discovery completed successfully")
        return _response(200, body)

    def build_pipeline(self, config: DiscoveryConfig, parser: SitemapParser) -> DiscoveryPipeline:
        return DiscoveryPipeline(
            config,
            aggregator=SourceAggregator(
                parser,
                config.target_domain,
                seed_urls=config.seed_urls,
                use_robots_txt=config.use_robots_txt,
            ),
            classifier=UrlClassifier(config.target_domain),
            dispatcher=QueueDispatcher(self._batch_queue, send_delay=config.queue.send_delay, sleep=self._sleep),
            trigger=IngestionTrigger(
                self._sentinel_queue,
                prepare_delay=config.sentinels.prepare_delay,
                trigger_delay=config.sentinels.trigger_delay,
                clock=self._clock,
            ),
            tracker=ProgressTracker(self._store),
            clock=self._clock,
        )

    def health(self) -> dict[str, Any]:
        checker = getattr(self._batch_queue, "is_configured", None)
        try:
            queue_healthy = bool(checker()) if callable(checker) else True
        except Exception as exc:
            LOGGER.error("Queue health check failed: %s", exc)
            queue_healthy = False

        connectivity_healthy = False
        robots_url = f"{self._config.base_url}/robots.txt"
        client_kwargs: dict[str, object] = {
            "timeout": self._config.timeout.health_timeout,
            "headers": {"User-Agent": self._config.user_agent},
            "follow_redirects": True,
        }
        if self._transport:
            client_kwargs["transport"] = self._transport
        try:
            with httpx.Client(**client_kwargs) as client:
                client.get(robots_url).raise_for_status()
            connectivity_healthy = True
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            LOGGER.error("Connectivity health check failed for %s: %s", robots_url, exc)

        overall = queue_healthy and connectivity_healthy
        return _response(
            200 if overall else 503,
            {
                "status": "healthy" if overall else "unhealthy",
                "timestamp": self._clock().isoformat(),
                "service": SERVICE_NAME,
                "version": SERVICE_VERSION,
                "services": {"queue": queue_healthy, "connectivity": connectivity_healthy},
                "configuration": {
                    "targetDomain": self._config.target_domain,
                    "maxUrlsPerBatch": self._config.max_batch_size,
                    "maxDiscoveryUrls": self._config.max_discovery_urls,
                    "minPriority": self._config.min_priority,
                },
            },
        )

    def submit_urls(self, urls: Sequence[Any], request_id: str) -> dict[str, Any]:
        cleaned = [url.strip() for url in urls if isinstance(url, str) and url.strip()]
        if not cleaned:
            return _response(400, {"error": "Invalid request", "message": "No URLs provided", "requestId": request_id})

        batch_id = f"direct-{int(self._clock().timestamp() * 1000)}"
        payload = direct_batch(cleaned, batch_id, clock=self._clock)
        try:
            self._batch_queue.send(payload, {"priority": "direct", "batchId": batch_id})
        except Exception as exc:
            LOGGER.error("Error sending direct batch %s: %s", batch_id, exc)
            return self._error(500, "Failed to queue URLs", exc, request_id)
        LOGGER.info("Queued direct batch %s with %d URLs", batch_id, len(cleaned))
        return _response(
            200,
            {"message": "URLs sent to processing queue", "batchId": batch_id, "urlCount": len(cleaned)},
        )

    def _build_parser(self, config: DiscoveryConfig) -> SitemapParser:
        return SitemapParser(
            user_agent=config.user_agent,
            request_timeout=config.timeout.sitemap_timeout,
            max_depth=config.sitemap_max_depth,
            max_workers=config.sitemap_workers,
            transport=self._transport,
        )

    def _error(self, status_code: int, error: str, exc: Exception, request_id: str) -> dict[str, Any]:
        return _response(
            status_code,
            {
                "error": error,
                "message": str(exc) or type(exc).__name__,
                "timestamp": self._clock().isoformat(),
                "requestId": request_id,
            },
        )


def build_service(config: DiscoveryConfig) -> DiscoveryService:
    """Wire the Celery queue and SQL session store for ``config``."""

    app = create_celery_app(config.queue.broker_url, config.db_url)
    batch_queue = CeleryMessageQueue(app, config.queue)
    return DiscoveryService(
        config,
        batch_queue=batch_queue,
        sentinel_queue=batch_queue.for_task(config.queue.sentinel_task),
        store=DiscoverySessionStore.from_url(config.db_url),
    )


__all__ = [
    "API_HEADERS",
    "DiscoveryPipeline",
    "DiscoveryService",
    "DiscoverySummary",
    "build_service",
    "new_discovery_id",
]
