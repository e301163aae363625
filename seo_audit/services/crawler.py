"""HTTP crawler that produces page snapshots for an audit."""

import json
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Set, Tuple
from urllib.parse import urldefrag, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from seo_audit.core.config import settings
from seo_audit.core.exceptions import CrawlError
from seo_audit.schemas.crawl import CrawlOutput, PageSnapshot, ResourceInfo, SiteFacts

logger = logging.getLogger(__name__)

# Called after every fetched page with (pages_done, max_pages)
PageCallback = Callable[[int, int], Awaitable[None]]

SITEMAP_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap")
SKIPPED_EXTENSIONS = (
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".zip",
    ".css", ".js", ".ico", ".mp4", ".mp3", ".xml", ".txt",
)
FONT_EXTENSIONS = (".woff", ".woff2", ".ttf", ".otf", ".eot")


class Crawler(Protocol):
    """Anything that can turn a start URL into page snapshots."""

    async def crawl(
        self,
        url: str,
        max_pages: int,
        on_page: Optional[PageCallback] = None,
    ) -> CrawlOutput:
        ...

    async def close(self) -> None:
        ...


def _same_host(url: str, host: str) -> bool:
    return urlparse(url).netloc.lower() == host


def _normalize(url: str) -> str:
    url, _ = urldefrag(url)
    return url


def _is_crawlable(url: str) -> bool:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False
    return not parsed.path.lower().endswith(SKIPPED_EXTENSIONS)


def robots_disallows_all(robots_txt: str, user_agent: str = "*") -> bool:
    """Check whether robots.txt blocks the whole site for a user agent.

    Only the ``Disallow: /`` form is recognized; path-specific rules
    do not stop an audit.
    """
    agent = user_agent.lower()
    applies = False
    for raw in robots_txt.lower().splitlines():
        line = raw.split("#", 1)[0].strip()
        if line.startswith("user-agent:"):
            value = line.split(":", 1)[1].strip()
            applies = value == "*" or (value and value in agent)
        elif applies and line.startswith("disallow:"):
            if line.split(":", 1)[1].strip() == "/":
                return True
    return False


def extract_page_facts(
    html: str,
    base_url: str,
) -> Tuple[List[str], List[str], List[ResourceInfo], List[Dict], List[str]]:
    """Pull links, resources and JSON-LD out of a page.

    Args:
        html: The page body.
        base_url: URL relative references are resolved against.

    Returns:
        Tuple of (internal_links, external_links, resources, json_ld, errors).
        ``errors`` lists JSON-LD blocks that failed to parse.
    """
    soup = BeautifulSoup(html, "html.parser")
    host = urlparse(base_url).netloc.lower()

    internal: List[str] = []
    external: List[str] = []
    seen: Set[str] = set()
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith(("#", "mailto:", "tel:", "javascript:")):
            continue
        absolute = _normalize(urljoin(base_url, href))
        if absolute in seen:
            continue
        seen.add(absolute)
        (internal if _same_host(absolute, host) else external).append(absolute)

    resources: List[ResourceInfo] = []
    for img in soup.find_all("img", src=True):
        resources.append(ResourceInfo(type="image", url=urljoin(base_url, img["src"])))
    for script in soup.find_all("script", src=True):
        resources.append(ResourceInfo(type="script", url=urljoin(base_url, script["src"])))
    for link in soup.find_all("link", href=True):
        rel = " ".join(link.get("rel") or []).lower()
        href = urljoin(base_url, link["href"])
        if "stylesheet" in rel:
            resources.append(ResourceInfo(type="stylesheet", url=href))
        elif "preload" in rel and (link.get("as") == "font" or href.lower().endswith(FONT_EXTENSIONS)):
            resources.append(ResourceInfo(type="font", url=href))

    json_ld: List[Dict] = []
    errors: List[str] = []
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or "")
        except json.JSONDecodeError as e:
            errors.append(f"Invalid JSON-LD: {e.msg}")
            continue
        if isinstance(data, list):
            json_ld.extend(item for item in data if isinstance(item, dict))
        elif isinstance(data, dict):
            json_ld.append(data)

    return internal, external, resources, json_ld, errors


class HttpCrawler:
    """Same-host breadth-first crawler built on httpx.

    The start URL is always fetched first, so the first snapshot is the
    entry page. robots.txt and sitemap candidates are fetched once per
    crawl and returned as SiteFacts.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        respect_robots: Optional[bool] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the crawler.

        Args:
            timeout: Per-request timeout, defaults to CRAWL_TIMEOUT_SECONDS.
            user_agent: User-Agent header, defaults to CRAWL_USER_AGENT.
            respect_robots: Refuse to crawl sites that disallow everything.
            transport: Custom httpx transport (used by tests).
        """
        self.timeout = timeout if timeout is not None else settings.CRAWL_TIMEOUT_SECONDS
        self.user_agent = user_agent or settings.CRAWL_USER_AGENT
        self.respect_robots = (
            settings.CRAWL_RESPECT_ROBOTS if respect_robots is None else respect_robots
        )
        self._transport = transport
        self.http_client: Optional[httpx.AsyncClient] = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self.http_client is None or self.http_client.is_closed:
            self.http_client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            )
        return self.http_client

    async def close(self) -> None:
        if self.http_client is not None and not self.http_client.is_closed:
            await self.http_client.aclose()
        self.http_client = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(httpx.ConnectError),
        reraise=True,
    )
    async def _get(self, url: str) -> httpx.Response:
        client = await self._get_http_client()
        return await client.get(url)

    async def crawl(
        self,
        url: str,
        max_pages: int,
        on_page: Optional[PageCallback] = None,
    ) -> CrawlOutput:
        """Crawl a site starting at ``url``.

        Args:
            url: Start URL; becomes the entry page.
            max_pages: Maximum number of pages to fetch.
            on_page: Awaited after each page; may raise to stop the crawl.

        Returns:
            CrawlOutput with the snapshots and site facts.

        Raises:
            CrawlError: If the start URL cannot be fetched, robots.txt
                forbids crawling, or no page could be fetched.
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise CrawlError(f"Invalid URL: {url}")

        base_url = f"{parsed.scheme}://{parsed.netloc}"
        logger.info(f"[Crawler] Starting crawl of {url} (max {max_pages} pages)")

        site = await self._gather_site_facts(base_url)
        if self.respect_robots and site.robots_txt and robots_disallows_all(site.robots_txt, self.user_agent):
            raise CrawlError("Crawling is disallowed by robots.txt")

        start = _normalize(url)
        host = parsed.netloc.lower()
        queue = deque([start])
        queued: Set[str] = {start}
        pages: List[PageSnapshot] = []

        while queue and len(pages) < max_pages:
            current = queue.popleft()
            try:
                snapshot = await self._fetch_page(current)
            except httpx.HTTPError as e:
                if not pages:
                    logger.error(f"[Crawler] Failed to fetch start URL {current}: {e!r}")
                    raise CrawlError(f"Could not reach {url}") from e
                logger.warning(f"[Crawler] Skipping {current}: {e!r}")
                continue

            pages.append(snapshot)
            if on_page is not None:
                await on_page(len(pages), max_pages)

            for link in snapshot.internal_links:
                if link not in queued and _same_host(link, host) and _is_crawlable(link):
                    queued.add(link)
                    queue.append(link)

        if not pages:
            raise CrawlError(f"No pages could be crawled from {url}")

        logger.info(f"[Crawler] Crawled {len(pages)} page(s) from {base_url}")
        return CrawlOutput(pages=pages, site=site)

    async def _fetch_page(self, url: str) -> PageSnapshot:
        started = time.perf_counter()
        response = await self._get(url)
        load_time = (time.perf_counter() - started) * 1000

        html = response.text
        content_type = response.headers.get("content-type", "")
        final_url = str(response.url)
        if "html" in content_type or not content_type:
            internal, external, resources, json_ld, errors = extract_page_facts(html, final_url)
        else:
            internal, external, resources, json_ld, errors = [], [], [], [], []

        return PageSnapshot(
            url=url,
            final_url=final_url,
            status_code=response.status_code,
            headers={k.lower(): v for k, v in response.headers.items()},
            html=html,
            load_time=round(load_time, 1),
            page_size=len(response.content),
            resources=resources,
            internal_links=internal,
            external_links=external,
            json_ld=json_ld,
            console_errors=errors,
        )

    async def _gather_site_facts(self, base_url: str) -> SiteFacts:
        """Fetch robots.txt and look for an XML sitemap."""
        robots_url = urljoin(base_url, "/robots.txt")
        robots_status: Optional[int] = None
        robots_body: Optional[str] = None
        robots_error: Optional[str] = None

        try:
            response = await self._get(robots_url)
            robots_status = response.status_code
            if response.status_code == 200:
                robots_body = response.text
        except httpx.HTTPError as e:
            logger.warning(f"[Crawler] Failed to fetch robots.txt: {e!r}")
            robots_error = type(e).__name__

        candidates = [urljoin(base_url, path) for path in SITEMAP_PATHS]
        sitemap_url: Optional[str] = None
        for candidate in candidates:
            try:
                response = await self._get(candidate)
            except httpx.HTTPError as e:
                logger.debug(f"[Crawler] Sitemap candidate {candidate} failed: {e!r}")
                continue
            if response.status_code == 200 and "<?xml" in response.text:
                sitemap_url = candidate
                break

        return SiteFacts(
            robots_txt_url=robots_url,
            robots_txt_status=robots_status,
            robots_txt=robots_body,
            robots_txt_error=robots_error,
            sitemap_url=sitemap_url,
            sitemap_candidates=candidates,
        )
