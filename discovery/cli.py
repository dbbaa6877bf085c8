"""Command-line entrypoint for domain discovery."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import Any, Sequence

from .config import DiscoveryConfig, load_config
from .persistence import DiscoverySessionStore
from .pipeline import build_service

LOGGER = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Discover, rank and queue content URLs for ingestion")
    parser.add_argument("--log-level", default="INFO", help="Python logging level (default: INFO)")
    parser.add_argument("--db-url", type=str, default=None, help="SQLAlchemy URL of the session store")
    parser.add_argument("--broker-url", type=str, default=None, help="Celery broker URL for batch dispatch")
    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser("discover", help="Run one discovery pass and queue batches")
    discover.add_argument("--target-domain", type=str, default=None, help="Domain to discover (default: configured)")
    discover.add_argument("--max-urls-per-batch", type=int, default=None, help="Maximum URLs per queued batch")
    discover.add_argument("--max-discovery-urls", type=int, default=None, help="Cap on ranked URLs per run")
    discover.add_argument("--min-priority", type=int, default=None, help="Minimum priority kept after ranking")
    discover.add_argument(
        "--seed-url",
        dest="seed_urls",
        action="append",
        default=None,
        help="Seed URL replacing the built-in seed list (repeatable)",
    )
    discover.add_argument(
        "--use-robots-txt",
        action="store_true",
        help="Also read Sitemap: directives from the domain's robots.txt",
    )

    subparsers.add_parser("health", help="Check queue configuration and domain connectivity")

    submit = subparsers.add_parser("submit-urls", help="Queue the given URLs as one direct batch")
    submit.add_argument("urls", nargs="+", help="Absolute URLs to queue")

    subparsers.add_parser("purge-sessions", help="Delete expired discovery session records")
    return parser


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_config(args: argparse.Namespace) -> DiscoveryConfig:
    config = load_config()
    changes: dict[str, Any] = {}
    if args.db_url:
        changes["db_url"] = args.db_url
    if args.broker_url:
        changes["queue"] = replace(config.queue, broker_url=args.broker_url)
    if getattr(args, "seed_urls", None):
        changes["seed_urls"] = tuple(dict.fromkeys(args.seed_urls))
    if getattr(args, "use_robots_txt", False):
        changes["use_robots_txt"] = True
    return replace(config, **changes) if changes else config


def build_event(args: argparse.Namespace) -> dict[str, Any]:
    if args.command == "health":
        return {"action": "health"}
    if args.command == "submit-urls":
        return {"urls": list(args.urls)}

    event: dict[str, Any] = {"action": "discover-domain"}
    overrides = {
        "targetDomain": args.target_domain,
        "maxUrlsPerBatch": args.max_urls_per_batch,
        "maxDiscoveryUrls": args.max_discovery_urls,
        "minPriority": args.min_priority,
    }
    event.update({key: value for key, value in overrides.items() if value is not None})
    return event


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = build_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    if args.command == "purge-sessions":
        removed = DiscoverySessionStore.from_url(config.db_url).purge_expired()
        LOGGER.info("Purged %d expired discovery sessions", removed)
        json.dump({"purged": removed}, sys.stdout)
        sys.stdout.write("\n")
        return 0

    service = build_service(config)
    response = service.handle_event(build_event(args))
    json.dump(response["body"], sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0 if 200 <= response["statusCode"] < 300 else 1


__all__ = ["build_arg_parser", "build_config", "build_event", "configure_logging", "main"]


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
