import re
from urllib.parse import urldefrag, urljoin, urlsplit

from bs4 import BeautifulSoup

MAX_TEXT_LENGTH = 15_000
TRUNCATION_MARKER = "... [truncated]"
FOOTER_MARKER = " [FOOTER] "

# Applied in order
_BLOCK_RULES: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"<script[^>]*>[\s\S]*?</script>", re.I), ""),
    (re.compile(r"<style[^>]*>[\s\S]*?</style>", re.I), ""),
    (re.compile(r"<noscript[^>]*>[\s\S]*?</noscript>", re.I), ""),
    (re.compile(r"<header[^>]*>[\s\S]*?</header>", re.I), ""),
    (re.compile(r"<footer[^>]*>[\s\S]*?</footer>", re.I), FOOTER_MARKER),
    (re.compile(r"<nav[^>]*>[\s\S]*?</nav>", re.I), ""),
    (re.compile(r"<!--[\s\S]*?-->"), ""),
    (re.compile(r"<h[1-6][^>]*>", re.I), "\n\n### "),
    (re.compile(r"</h[1-6]>", re.I), "\n\n"),
    (re.compile(r"<li[^>]*>", re.I), "\n• "),
    (re.compile(r"</li>", re.I), ""),
    (re.compile(r"<br\s*/?>", re.I), "\n"),
    (re.compile(r"<p(?:\s[^>]*)?>", re.I), "\n\n"),
    (re.compile(r"</p>", re.I), ""),
    (re.compile(r"<[^>]+>"), " "),
)

_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)

_SPACES_RE = re.compile(r"[^\S\n]+")
_SPACE_AROUND_NEWLINE_RE = re.compile(r" *\n *")
_BLANK_LINES_RE = re.compile(r"\n{3,}")

_SKIPPED_SCHEMES = ("mailto:", "tel:", "javascript:", "sms:", "data:")

# Links to these never lead to an HTML page
_NON_HTML_EXTENSIONS = (
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".zip", ".rar",
    ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".ico", ".bmp",
    ".mp3", ".mp4", ".mov", ".avi", ".webm",
    ".css", ".js", ".json", ".xml", ".rss", ".txt",
    ".woff", ".woff2", ".ttf", ".eot",
)


def extract_text_from_html(html: str) -> str:
    """Convert raw HTML into plain text for the extraction prompt.

    Headings become ``###`` lines and list items bullets so the extractor
    keeps some of the page structure. Footers are replaced by a marker
    rather than dropped. Output is capped at MAX_TEXT_LENGTH characters
    plus TRUNCATION_MARKER.
    """
    text = html or ""
    for pattern, replacement in _BLOCK_RULES:
        text = pattern.sub(replacement, text)

    for entity, char in _ENTITIES:
        text = text.replace(entity, char)

    text = _SPACES_RE.sub(" ", text)
    text = _SPACE_AROUND_NEWLINE_RE.sub("\n", text)
    text = _BLANK_LINES_RE.sub("\n\n", text)
    text = text.strip()

    if len(text) > MAX_TEXT_LENGTH:
        text = text[:MAX_TEXT_LENGTH] + TRUNCATION_MARKER
    return text


def extract_links(html: str, base_url: str) -> list[str]:
    """Collect absolute http(s) link targets from a page, in document order."""
    soup = BeautifulSoup(html or "", "html.parser")
    seen: set[str] = set()
    links: list[str] = []

    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if not href or href.startswith("#"):
            continue
        if href.lower().startswith(_SKIPPED_SCHEMES):
            continue

        try:
            full_url, _ = urldefrag(urljoin(base_url, href))
            scheme = urlsplit(full_url).scheme
        except ValueError:
            continue
        if scheme not in ("http", "https"):
            continue
        if full_url not in seen:
            seen.add(full_url)
            links.append(full_url)

    return links


def is_crawlable_link(url: str) -> bool:
    """False for links to documents, images and static assets."""
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        return False
    return not path.endswith(_NON_HTML_EXTENSIONS)
