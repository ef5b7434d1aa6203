"""Tests for WebsiteCrawler."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx
from httpx import Response

from site_import.exceptions.custom import UrlValidationError
from site_import.schemas.crawl import CrawlBudget, StopReason
from site_import.services.crawler import WebsiteCrawler, normalize_crawl_url, score_link
from site_import.services.page_fetcher import PageFetcher

_FAST = CrawlBudget(inter_request_delay=0)


@pytest.fixture
def crawler():
    return WebsiteCrawler(PageFetcher(httpx.AsyncClient()))


def _html(title: str, links: list[str] = (), body: str = "") -> str:
    anchors = "".join(f'<a href="{href}">link</a>' for href in links)
    return f"<html><head><title>{title}</title></head><body><p>{body}</p>{anchors}</body></html>"


def _mock_site(pages: dict[str, str], host: str = "salon.com"):
    """Serve ``pages`` (path -> html) from one host; anything else is a 404."""

    def handler(request: httpx.Request) -> Response:
        html = pages.get(request.url.path)
        if html is None:
            return Response(404)
        return Response(200, html=html, headers={"content-type": "text/html"})

    return respx.route(method="GET", host=host).mock(side_effect=handler)


def _fetched_paths(route) -> list[str]:
    return [call.request.url.path for call in route.calls]


# --- helpers ---


def test_normalize_crawl_url():
    assert normalize_crawl_url("https://www.Salon.com/about/#team") == "https://salon.com/about"
    assert normalize_crawl_url("https://salon.com/") == "https://salon.com"
    assert normalize_crawl_url("https://salon.com/?page=2") == "https://salon.com?page=2"


def test_score_link_counts_keywords():
    assert score_link("https://salon.com/gallery") == 0
    assert score_link("https://salon.com/services") == 1
    assert score_link("https://salon.com/services/pricing") == 2


# --- crawl ---


@respx.mock
async def test_crawl_is_breadth_first_and_prioritized(crawler):
    route = _mock_site({
        "/": _html("Home", ["/gallery", "/services", "/contact"], "Welcome"),
        "/gallery": _html("Gallery"),
        "/services": _html("Services", ["/services/color"]),
        "/contact": _html("Contact"),
        "/services/color": _html("Color"),
    })

    result = await crawler.crawl("https://salon.com", _FAST)

    assert _fetched_paths(route) == ["/", "/services", "/contact", "/gallery", "/services/color"]
    assert [p.depth for p in result.pages] == [0, 1, 1, 1, 2]
    assert result.pages[0].title == "Home"
    assert "Welcome" in result.pages[0].text
    assert result.stop_reason == StopReason.queue_exhausted


@respx.mock
async def test_crawl_stays_on_start_domain(crawler):
    route = _mock_site({
        "/": _html("Home", [
            "https://other.com/services",
            "https://blog.salon.com/services",
            "https://www.salon.com/about",
            "https://calendly.com/salon",
            "/menu.pdf",
        ]),
    })
    www_route = _mock_site({"/about": _html("About")}, host="www.salon.com")

    result = await crawler.crawl("https://salon.com/", _FAST)

    assert _fetched_paths(route) == ["/"]
    assert _fetched_paths(www_route) == ["/about"]
    assert [p.title for p in result.pages] == ["Home", "About"]
    assert "https://calendly.com/salon" in result.pages[0].outbound_links


@respx.mock
async def test_crawl_never_fetches_same_url_twice(crawler):
    route = _mock_site({
        "/": _html("Home", ["/about", "/about/", "/about#team", "/", "/about"]),
        "/about": _html("About", ["/", "/about"]),
    })

    result = await crawler.crawl("https://salon.com/", _FAST)

    assert _fetched_paths(route) == ["/", "/about"]
    assert len(result.pages) == 2


@pytest.mark.parametrize("links", [["/b", "/a"], ["/a", "/b"]])
@respx.mock
async def test_crawl_redirect_to_collected_page_is_skipped(crawler, links):
    def handler(request: httpx.Request) -> Response:
        path = request.url.path
        if path == "/a":
            return Response(301, headers={"location": "https://salon.com/b"})
        if path == "/b":
            return Response(200, html=_html("B"))
        return Response(200, html=_html("Home", links))

    respx.route(method="GET", host="salon.com").mock(side_effect=handler)

    result = await crawler.crawl("https://salon.com/", _FAST)

    assert [p.title for p in result.pages] == ["Home", "B"]


@respx.mock
async def test_crawl_respects_max_pages(crawler):
    pages = {"/": _html("Home", [f"/p{i}" for i in range(40)])}
    for i in range(40):
        pages[f"/p{i}"] = _html(f"P{i}", [f"/p{i}/sub{j}" for j in range(10)])
    route = _mock_site(pages)

    result = await crawler.crawl("https://salon.com/", CrawlBudget(max_pages=15, inter_request_delay=0))

    assert len(result.pages) == 15
    assert route.call_count == 15
    assert result.stop_reason == StopReason.page_budget


@respx.mock
async def test_crawl_respects_max_depth(crawler):
    route = _mock_site({
        "/": _html("Home", ["/a"]),
        "/a": _html("A", ["/a/b"]),
        "/a/b": _html("B"),
    })

    result = await crawler.crawl("https://salon.com/", CrawlBudget(max_depth=1, inter_request_delay=0))

    assert _fetched_paths(route) == ["/", "/a"]
    assert [p.depth for p in result.pages] == [0, 1]


@respx.mock
async def test_crawl_skips_failed_pages(crawler):
    def handler(request: httpx.Request) -> Response:
        path = request.url.path
        if path == "/":
            return Response(200, html=_html("Home", ["/broken", "/slow", "/file", "/ok"]),
                            headers={"content-type": "text/html"})
        if path == "/broken":
            return Response(500)
        if path == "/slow":
            raise httpx.ReadTimeout("timeout")
        if path == "/file":
            return Response(200, content=b"{}", headers={"content-type": "application/json"})
        return Response(200, html=_html("OK"), headers={"content-type": "text/html"})

    respx.route(method="GET", host="salon.com").mock(side_effect=handler)

    result = await crawler.crawl("https://salon.com/", _FAST)

    assert [p.title for p in result.pages] == ["Home", "OK"]
    assert result.stop_reason == StopReason.queue_exhausted


@respx.mock
async def test_crawl_unreachable_start_returns_empty(crawler):
    respx.get("https://salon.com/").mock(side_effect=httpx.ConnectError("refused"))

    result = await crawler.crawl("https://salon.com/", _FAST)

    assert result.pages == []
    assert result.stop_reason == StopReason.queue_exhausted


@respx.mock
async def test_crawl_skips_off_site_redirect(crawler):
    respx.get("https://salon.com/").mock(
        return_value=Response(301, headers={"location": "https://parked-domains.net/"})
    )
    respx.get("https://parked-domains.net/").mock(
        return_value=Response(200, html=_html("Parked"), headers={"content-type": "text/html"})
    )

    result = await crawler.crawl("https://salon.com/", _FAST)

    assert result.pages == []


@respx.mock
async def test_crawl_sleeps_between_requests(crawler):
    _mock_site({
        "/": _html("Home", ["/a", "/b"]),
        "/a": _html("A"),
        "/b": _html("B"),
    })

    with patch("site_import.services.crawler.asyncio.sleep", new_callable=AsyncMock) as sleep:
        await crawler.crawl("https://salon.com/", CrawlBudget(inter_request_delay=0.5))

    assert sleep.await_count == 2
    sleep.assert_awaited_with(0.5)


@respx.mock
async def test_crawl_stops_at_total_timeout(crawler):
    pages = {"/": _html("Home", [f"/p{i}" for i in range(50)])}
    pages.update({f"/p{i}": _html(f"P{i}") for i in range(50)})
    _mock_site(pages)

    budget = CrawlBudget(max_pages=50, total_timeout=0.12, inter_request_delay=0.05)
    result = await crawler.crawl("https://salon.com/", budget)

    assert result.stop_reason == StopReason.time_budget
    assert 1 <= len(result.pages) < 50


async def test_crawl_invalid_start_url_raises(crawler):
    with pytest.raises(UrlValidationError):
        await crawler.crawl("javascript:alert(1)")
