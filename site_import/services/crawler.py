"""Budgeted, same-domain, breadth-first website crawler.

One fetch at a time with a politeness delay between requests. The crawl
ends when the queue empties or the page or time budget runs out; none of
those is an error, the pages collected so far are returned.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from urllib.parse import urlsplit, urlunsplit

from site_import.exceptions.custom import FetchError, UrlValidationError
from site_import.mappers.html_text import extract_links, extract_text_from_html, is_crawlable_link
from site_import.mappers.url_validator import is_same_domain, validate_website_url
from site_import.schemas.crawl import CrawlBudget, CrawlResult, PageRecord, StopReason
from site_import.services.page_fetcher import PageFetcher

logger = logging.getLogger(__name__)

# Pages likely to hold importable facts are visited first within a depth tier
LINK_PRIORITY_KEYWORDS = (
    "service", "about", "contact", "faq", "question", "pricing", "price",
    "rates", "hours", "location", "book", "appointment", "schedule",
    "reserv", "policy", "policies", "menu", "team", "staff", "treatment",
)


def normalize_crawl_url(url: str) -> str:
    """Key used for the visited set: no fragment, no ``www.``, no trailing slash."""
    parts = urlsplit(url)
    host = parts.netloc.lower().rsplit("@", 1)[-1]
    if host.startswith("www."):
        host = host[4:]
    path = parts.path.rstrip("/") if parts.path not in ("", "/") else ""
    return urlunsplit((parts.scheme.lower(), host, path, parts.query, ""))


def score_link(url: str) -> int:
    """Number of priority keywords in the URL path and query."""
    parts = urlsplit(url)
    target = f"{parts.path}?{parts.query}".lower()
    return sum(1 for keyword in LINK_PRIORITY_KEYWORDS if keyword in target)


@dataclass
class CrawlState:
    start_url: str
    queue: deque[tuple[str, int]] = field(default_factory=deque)
    visited: set[str] = field(default_factory=set)
    fetched: set[str] = field(default_factory=set)
    pages: list[PageRecord] = field(default_factory=list)
    started_at: float = field(default_factory=time.monotonic)
    fetch_count: int = 0

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def enqueue(self, url: str, depth: int) -> bool:
        key = normalize_crawl_url(url)
        if key in self.visited:
            return False
        self.visited.add(key)
        self.queue.append((url, depth))
        return True


class WebsiteCrawler:
    def __init__(self, fetcher: PageFetcher):
        self._fetcher = fetcher

    async def crawl(self, start_url: str, budget: CrawlBudget | None = None) -> CrawlResult:
        budget = budget or CrawlBudget()

        validation = validate_website_url(start_url)
        if not validation.valid:
            raise UrlValidationError(validation.error or "Invalid URL", start_url)

        state = CrawlState(start_url=validation.url)
        state.enqueue(state.start_url, 0)
        stop_reason = await self._run(state, budget)

        elapsed_ms = int(state.elapsed() * 1000)
        logger.info(
            "Crawl of %s finished: %s (%d pages, %d fetches, %dms)",
            state.start_url, stop_reason, len(state.pages), state.fetch_count, elapsed_ms,
        )
        return CrawlResult(
            start_url=state.start_url,
            pages=state.pages,
            stop_reason=stop_reason,
            elapsed_ms=elapsed_ms,
        )

    async def _run(self, state: CrawlState, budget: CrawlBudget) -> StopReason:
        while state.queue:
            if len(state.pages) >= budget.max_pages:
                return StopReason.page_budget
            if state.elapsed() >= budget.total_timeout:
                return StopReason.time_budget

            url, depth = state.queue.popleft()

            if state.fetch_count:
                await asyncio.sleep(budget.inter_request_delay)
            state.fetch_count += 1

            try:
                fetched = await self._fetcher.fetch_webpage(
                    url, timeout=budget.page_timeout, require_html=True
                )
            except FetchError as exc:
                logger.warning("Skipping %s: %s", url, exc.message)
                continue

            if not is_same_domain(state.start_url, fetched.final_url):
                logger.warning("Skipping %s: redirected off-site to %s", url, fetched.final_url)
                continue
            final_key = normalize_crawl_url(fetched.final_url)
            if final_key in state.fetched:
                logger.debug("Skipping %s: redirected to already collected %s", url, fetched.final_url)
                continue
            state.fetched.update((final_key, normalize_crawl_url(url)))
            state.visited.add(final_key)

            links = extract_links(fetched.html, fetched.final_url)
            state.pages.append(
                PageRecord(
                    url=url,
                    title=fetched.title,
                    text=extract_text_from_html(fetched.html),
                    outbound_links=links,
                    depth=depth,
                )
            )

            if depth < budget.max_depth:
                self._enqueue_links(state, links, depth + 1)

        if len(state.pages) >= budget.max_pages:
            return StopReason.page_budget
        return StopReason.queue_exhausted

    @staticmethod
    def _enqueue_links(state: CrawlState, links: list[str], depth: int) -> None:
        candidates = [
            link for link in links
            if is_same_domain(state.start_url, link) and is_crawlable_link(link)
        ]
        # sorted() is stable: ties keep document order
        candidates = sorted(candidates, key=score_link, reverse=True)

        added = sum(1 for link in candidates if state.enqueue(link, depth))
        logger.debug("Queued %d new links at depth %d", added, depth)
