"""Candidate URL discovery from sitemaps and the static seed list."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from .sitemap import SitemapParser

LOGGER = logging.getLogger(__name__)

ROOT_SITEMAP_PATHS: tuple[str, ...] = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
)

# Known high-value pages, queued even when no sitemap is reachable.
SEED_PATHS: tuple[str, ...] = (
    "/about-diabetes",
    "/about-diabetes/type-1",
    "/about-diabetes/type-2",
    "/about-diabetes/prediabetes",
    "/about-diabetes/gestational-diabetes",
    "/about-diabetes/complications",
    "/about-diabetes/diabetes-prevention",
    "/living-with-diabetes",
    "/living-with-diabetes/type-1",
    "/living-with-diabetes/type-2",
    "/living-with-diabetes/newly-diagnosed",
    "/living-with-diabetes/treatment-care",
    "/living-with-diabetes/hypoglycemia-low-blood-glucose",
    "/living-with-diabetes/pregnancy",
    "/food-nutrition",
    "/food-nutrition/understanding-carbs",
    "/food-nutrition/food-blood-sugar",
    "/food-nutrition/meal-planning",
    "/health-wellness",
    "/health-wellness/fitness",
    "/health-wellness/weight-management",
    "/health-wellness/medication-treatments",
    "/getting-sick-with-diabetes",
    "/getting-sick-with-diabetes/sick-days",
)


class UrlSource(str, Enum):
    SITEMAP = "sitemap"
    SEED = "seed"


@dataclass(frozen=True, slots=True)
class DiscoveredURL:
    url: str
    source: UrlSource


def default_seed_urls(target_domain: str) -> list[str]:
    return [f"https://{target_domain}{path}" for path in SEED_PATHS]


def root_sitemap_urls(target_domain: str) -> list[str]:
    return [f"https://{target_domain}{path}" for path in ROOT_SITEMAP_PATHS]


class SourceAggregator:
    """Merge sitemap-derived and seed URLs into one ordered, duplicate-free list.

    Sitemap URLs come first, in root and document order, followed by seeds not
    already seen. Sitemap trouble only shrinks the result; it never raises.
    """

    def __init__(
        self,
        parser: SitemapParser,
        target_domain: str,
        *,
        seed_urls: Sequence[str] | None = None,
        use_robots_txt: bool = False,
    ) -> None:
        self._parser = parser
        self._target_domain = target_domain
        self._seed_urls = list(seed_urls) if seed_urls is not None else default_seed_urls(target_domain)
        self._use_robots_txt = use_robots_txt

    def sitemap_roots(self) -> list[str]:
        roots = root_sitemap_urls(self._target_domain)
        if self._use_robots_txt:
            robots_url = f"https://{self._target_domain}/robots.txt"
            for url in self._parser.fetch_robots_sitemaps(robots_url):
                if url not in roots:
                    roots.append(url)
        return roots

    def discover(self) -> list[DiscoveredURL]:
        seen: set[str] = set()
        discovered: list[DiscoveredURL] = []

        def _add(url: str, source: UrlSource) -> bool:
            if url in seen:
                return False
            seen.add(url)
            discovered.append(DiscoveredURL(url=url, source=source))
            return True

        sitemap_count = 0
        try:
            roots = self.sitemap_roots()
            for root_url, urls in zip(roots, self._parser.parse_many(roots)):
                LOGGER.info("Found %d URLs in sitemap root %s", len(urls), root_url)
                sitemap_count += sum(1 for url in urls if _add(url, UrlSource.SITEMAP))
        except Exception:
            LOGGER.exception("Sitemap discovery failed for %s; continuing with seed URLs", self._target_domain)

        seed_count = sum(1 for url in self._seed_urls if _add(url, UrlSource.SEED))
        LOGGER.info(
            "Discovered %d unique URLs for %s (%d from sitemaps, %d new from seeds)",
            len(discovered),
            self._target_domain,
            sitemap_count,
            seed_count,
        )
        return discovered


__all__ = [
    "DiscoveredURL",
    "ROOT_SITEMAP_PATHS",
    "SEED_PATHS",
    "SourceAggregator",
    "UrlSource",
    "default_seed_urls",
    "root_sitemap_urls",
]
