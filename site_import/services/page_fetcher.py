import logging
import re

import httpx

from site_import.exceptions.custom import FetchError
from site_import.schemas.crawl import FetchedPage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
_MAX_BODY = 2 * 1024 * 1024  # 2 MB

_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

_TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)
_META_DESCRIPTION_RE = re.compile(
    r"""<meta[^>]*name=["']description["'][^>]*content=["']([^"']*)["']""",
    re.IGNORECASE,
)
_META_DESCRIPTION_REVERSED_RE = re.compile(
    r"""<meta[^>]*content=["']([^"']*)["'][^>]*name=["']description["']""",
    re.IGNORECASE,
)


def extract_title(html: str) -> str:
    match = _TITLE_RE.search(html)
    return match.group(1).strip() if match else ""


def extract_meta_description(html: str) -> str:
    match = _META_DESCRIPTION_RE.search(html) or _META_DESCRIPTION_REVERSED_RE.search(html)
    return match.group(1).strip() if match else ""


class PageFetcher:
    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def fetch_webpage(
        self,
        url: str,
        timeout: float = DEFAULT_TIMEOUT,
        require_html: bool = False,
    ) -> FetchedPage:
        """GET one page. Raises FetchError on any failure."""
        try:
            resp = await self._client.get(
                url,
                follow_redirects=True,
                timeout=timeout,
                headers=_HEADERS,
            )
        except httpx.TimeoutException as exc:
            raise FetchError(f"Timed out after {timeout}s", url) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Request failed: {exc}", url) from exc

        if not resp.is_success:
            raise FetchError(
                f"Failed to fetch: {resp.status_code} {resp.reason_phrase}",
                url,
                status_code=resp.status_code,
            )

        content_type = resp.headers.get("content-type", "")
        if require_html and "text/html" not in content_type.lower():
            raise FetchError(
                f"Non-HTML content-type: {content_type or 'missing'}",
                url,
                status_code=resp.status_code,
            )

        if len(resp.content) > _MAX_BODY:
            raise FetchError(
                f"Page too large ({len(resp.content)} bytes)",
                url,
                status_code=resp.status_code,
            )

        html = resp.text
        logger.debug("Fetched %s (%d bytes)", url, len(resp.content))
        return FetchedPage(
            url=url,
            final_url=str(resp.url),
            status_code=resp.status_code,
            html=html,
            title=extract_title(html),
            meta_description=extract_meta_description(html),
        )
