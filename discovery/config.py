"""Configuration shared by every stage of the discovery pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

DEFAULT_TARGET_DOMAIN = "diabetes.org"
DEFAULT_USER_AGENT = "domain-discovery/1.0"
DEFAULT_QUEUE_NAME = "scraping"
DEFAULT_DB_URL = "sqlite:///discovery.db"

_ENV_PREFIX = "DISCOVERY_"


@dataclass(slots=True)
class TimeoutConfig:
    sitemap_timeout: float = 10.0
    health_timeout: float = 5.0


@dataclass(slots=True)
class QueueConfig:
    """Where batches and sentinels are published."""

    broker_url: Optional[str] = None
    queue_name: str = DEFAULT_QUEUE_NAME
    batch_task: str = "discovery.process_batch"
    sentinel_task: str = "discovery.ingestion_sentinel"
    send_delay: float = 0.1


@dataclass(slots=True)
class SentinelConfig:
    prepare_delay: int = 0
    trigger_delay: int = 300


@dataclass(slots=True)
class DiscoveryConfig:
    target_domain: str = DEFAULT_TARGET_DOMAIN
    max_batch_size: int = 15
    max_discovery_urls: int = 500
    min_priority: int = 50
    user_agent: str = DEFAULT_USER_AGENT
    sitemap_workers: int = 3
    sitemap_max_depth: int = 5
    use_robots_txt: bool = False
    seed_urls: tuple[str, ...] | None = None
    db_url: str = DEFAULT_DB_URL
    session_ttl_days: int = 30
    timeout: TimeoutConfig = field(default_factory=TimeoutConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    sentinels: SentinelConfig = field(default_factory=SentinelConfig)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        cleaned = self.target_domain.strip().lower() if self.target_domain else ""
        if not cleaned or "/" in cleaned:
            raise ValueError(f"Invalid target domain {self.target_domain!r}")
        self.target_domain = cleaned
        if self.max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")
        if self.max_discovery_urls < 1:
            raise ValueError("max_discovery_urls must be at least 1")
        if not 0 <= self.min_priority <= 100:
            raise ValueError("min_priority must be between 0 and 100")
        if self.session_ttl_days < 1:
            raise ValueError("session_ttl_days must be at least 1")
        if self.sentinels.trigger_delay < self.sentinels.prepare_delay:
            raise ValueError("trigger delay must not be shorter than the prepare delay")

    @property
    def base_url(self) -> str:
        return f"https://{self.target_domain}"

    @property
    def session_ttl_seconds(self) -> int:
        return self.session_ttl_days * 24 * 60 * 60

    def with_overrides(
        self,
        *,
        target_domain: str | None = None,
        max_batch_size: int | None = None,
        max_discovery_urls: int | None = None,
        min_priority: int | None = None,
    ) -> "DiscoveryConfig":
        """Return a copy with per-request overrides applied and validated."""

        changes: dict[str, object] = {}
        if target_domain is not None:
            changes["target_domain"] = str(target_domain)
        if max_batch_size is not None:
            changes["max_batch_size"] = _coerce_int("maxUrlsPerBatch", max_batch_size)
        if max_discovery_urls is not None:
            changes["max_discovery_urls"] = _coerce_int("maxDiscoveryUrls", max_discovery_urls)
        if min_priority is not None:
            changes["min_priority"] = _coerce_int("minPriority", min_priority)
        if not changes:
            return self
        return replace(self, **changes)


def _coerce_int(name: str, value: object) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer (got {value!r})") from exc


def _env(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(_ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    value = _env(environ, name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer for {_ENV_PREFIX}{name}: {value!r}") from exc


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    value = _env(environ, name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid number for {_ENV_PREFIX}{name}: {value!r}") from exc


def _env_bool(environ: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = _env(environ, name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _parse_seed_urls(raw_value: str | None) -> tuple[str, ...] | None:
    if not raw_value:
        return None
    seeds: list[str] = []
    for part in raw_value.split(","):
        url = part.strip()
        if url and url not in seeds:
            seeds.append(url)
    return tuple(seeds) or None


def load_config(environ: Mapping[str, str] | None = None) -> DiscoveryConfig:
    """Build the process-wide configuration from ``DISCOVERY_*`` variables."""

    env = os.environ if environ is None else environ
    defaults = DiscoveryConfig()

    timeout = TimeoutConfig(
        sitemap_timeout=_env_float(env, "SITEMAP_TIMEOUT", defaults.timeout.sitemap_timeout),
        health_timeout=_env_float(env, "HEALTH_TIMEOUT", defaults.timeout.health_timeout),
    )
    queue = QueueConfig(
        broker_url=_env(env, "CELERY_BROKER_URL"),
        queue_name=_env(env, "QUEUE_NAME") or defaults.queue.queue_name,
        send_delay=max(0.0, _env_float(env, "SEND_DELAY", defaults.queue.send_delay)),
    )
    sentinels = SentinelConfig(
        trigger_delay=_env_int(env, "INGESTION_DELAY", defaults.sentinels.trigger_delay),
    )

    return DiscoveryConfig(
        target_domain=_env(env, "TARGET_DOMAIN") or defaults.target_domain,
        max_batch_size=_env_int(env, "MAX_URLS_PER_BATCH", defaults.max_batch_size),
        max_discovery_urls=_env_int(env, "MAX_URLS", defaults.max_discovery_urls),
        min_priority=_env_int(env, "MIN_PRIORITY", defaults.min_priority),
        user_agent=_env(env, "USER_AGENT") or defaults.user_agent,
        sitemap_workers=max(1, _env_int(env, "SITEMAP_WORKERS", defaults.sitemap_workers)),
        sitemap_max_depth=max(0, _env_int(env, "SITEMAP_MAX_DEPTH", defaults.sitemap_max_depth)),
        use_robots_txt=_env_bool(env, "USE_ROBOTS_TXT", defaults.use_robots_txt),
        seed_urls=_parse_seed_urls(_env(env, "SEED_URLS")),
        db_url=_env(env, "DATABASE_URL") or defaults.db_url,
        session_ttl_days=_env_int(env, "SESSION_TTL_DAYS", defaults.session_ttl_days),
        timeout=timeout,
        queue=queue,
        sentinels=sentinels,
    )
