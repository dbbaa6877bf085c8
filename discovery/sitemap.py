"""Recursive sitemap resolution."""

from __future__ import annotations

import gzip
import logging
import zlib
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Iterator, Sequence
from xml.etree import ElementTree as ET

import httpx

LOGGER = logging.getLogger(__name__)

_GZIP_MAGIC = b"\x1f\x8b"

# httpx.InvalidURL is not an HTTPError subclass.
_REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL)
_GZIP_ERRORS = (OSError, EOFError, zlib.error)


class SitemapFetchError(RuntimeError):
    """Raised when a sitemap document cannot be fetched or decoded."""


def _strip_tag(tag: str) -> str:
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _iter_child_locs(root: ET.Element, container: str) -> Iterator[str]:
    for node in root:
        if _strip_tag(node.tag) != container:
            continue
        for child in node:
            if _strip_tag(child.tag) == "loc" and child.text:
                loc = child.text.strip()
                if loc:
                    yield loc
                break


class SitemapParser:
    """Resolve sitemap indexes into the page URLs of their leaf sitemaps.

    A failure on any single document is logged and contributes no URLs; it
    never aborts sibling documents. ``max_depth`` bounds index nesting and
    each call keeps its own visited set so cyclic indexes terminate.
    """

    def __init__(
        self,
        *,
        user_agent: str,
        request_timeout: float = 10.0,
        max_depth: int = 5,
        max_workers: int = 1,
        client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._user_agent = user_agent
        self._request_timeout = request_timeout
        self._max_depth = max(0, max_depth)
        self._max_workers = max(1, max_workers)
        self._transport = transport
        self._client = client or self._build_client()
        self._owns_client = client is None

    def _build_client(self) -> httpx.Client:
        kwargs: dict[str, object] = {
            "timeout": self._request_timeout,
            "headers": {"User-Agent": self._user_agent},
            "follow_redirects": True,
        }
        if self._transport:
            kwargs["transport"] = self._transport
        return httpx.Client(**kwargs)

    def parse(self, root_url: str) -> list[str]:
        urls: list[str] = []
        self._walk(root_url, depth=0, visited=set(), urls=urls)
        return urls

    def parse_many(self, root_urls: Sequence[str]) -> list[list[str]]:
        """Parse independent roots concurrently, returning results in root order."""

        roots = list(root_urls)
        if self._max_workers == 1 or len(roots) <= 1:
            return [self.parse(url) for url in roots]
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(roots))) as executor:
            return list(executor.map(self.parse, roots))

    def _walk(self, sitemap_url: str, *, depth: int, visited: set[str], urls: list[str]) -> None:
        if sitemap_url in visited:
            LOGGER.debug("Skipping already visited sitemap %s", sitemap_url)
            return
        visited.add(sitemap_url)

        try:
            root = self.fetch_document(sitemap_url)
        except SitemapFetchError as exc:
            LOGGER.warning("Failed to parse sitemap %s: %s", sitemap_url, exc)
            return
        except Exception:
            LOGGER.exception("Unexpected error reading sitemap %s", sitemap_url)
            return

        tag = _strip_tag(root.tag)
        if tag == "sitemapindex":
            if depth >= self._max_depth:
                LOGGER.warning("Sitemap index %s exceeds max depth %d; skipping", sitemap_url, self._max_depth)
                return
            for child_url in _iter_child_locs(root, "sitemap"):
                self._walk(child_url, depth=depth + 1, visited=visited, urls=urls)
        elif tag == "urlset":
            found = list(_iter_child_locs(root, "url"))
            LOGGER.info("Found %d URLs in %s", len(found), sitemap_url)
            urls.extend(found)
        else:
            LOGGER.warning("Unrecognised sitemap root <%s> at %s", tag, sitemap_url)

    def fetch_document(self, url: str) -> ET.Element:
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except _REQUEST_ERRORS as exc:
            raise SitemapFetchError(str(exc)) from exc

        data = response.content
        if data[:2] == _GZIP_MAGIC:
            try:
                data = gzip.decompress(data)
            except _GZIP_ERRORS as exc:
                raise SitemapFetchError(f"Invalid gzip payload from {url}: {exc}") from exc

        try:
            return ET.fromstring(data)
        except ET.ParseError as exc:
            raise SitemapFetchError(f"Invalid XML received from {url}: {exc}") from exc

    def fetch_robots_sitemaps(self, robots_url: str) -> list[str]:
        """Return the ``Sitemap:`` directives of a robots.txt, or nothing on failure."""

        try:
            response = self._client.get(robots_url)
            response.raise_for_status()
        except _REQUEST_ERRORS as exc:
            LOGGER.warning("Failed to load robots.txt %s: %s", robots_url, exc)
            return []
        return list(_iter_robots_sitemaps(response.text.splitlines()))

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "SitemapParser":
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()


def _iter_robots_sitemaps(lines: Iterable[str]) -> Iterator[str]:
    for raw_line in lines:
        line = raw_line.split("#", 1)[0].strip()
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        if key.strip().lower() == "sitemap" and value.strip():
            yield value.strip()


__all__ = ["SitemapFetchError", "SitemapParser"]
