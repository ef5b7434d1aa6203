"""URL validation and provider classification for website imports.

Booking links must be HTTPS and may never point at a payment page: the
assistant surfaces these links to end users.
"""

import re
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel

BOOKING_LINK_CONFIDENCE = 0.95
SOCIAL_LINK_CONFIDENCE = 0.9

BOOKING_PROVIDERS: dict[str, str] = {
    "calendly.com": "Calendly",
    "acuityscheduling.com": "Acuity Scheduling",
    "acuity.com": "Acuity Scheduling",
    "booksy.com": "Booksy",
    "vagaro.com": "Vagaro",
    "squareup.com": "Square Appointments",
    "square.site": "Square Appointments",
    "opentable.com": "OpenTable",
    "resy.com": "Resy",
    "yelp.com/reservations": "Yelp Reservations",
    "zocdoc.com": "ZocDoc",
    "schedulicity.com": "Schedulicity",
    "genbook.com": "Genbook",
    "mindbodyonline.com": "Mindbody",
    "appointy.com": "Appointy",
    "setmore.com": "Setmore",
    "simplepractice.com": "SimplePractice",
    "booker.com": "Booker",
    "fresha.com": "Fresha",
    "glossgenius.com": "GlossGenius",
    "jane.app": "Jane App",
    "cliniko.com": "Cliniko",
    "hubspot.com": "HubSpot",
    "typeform.com": "Typeform",
    "jotform.com": "JotForm",
}

SOCIAL_PLATFORMS: dict[str, str] = {
    "facebook.com": "Facebook",
    "fb.com": "Facebook",
    "instagram.com": "Instagram",
    "twitter.com": "Twitter",
    "x.com": "Twitter",
    "linkedin.com": "LinkedIn",
    "youtube.com": "YouTube",
    "youtu.be": "YouTube",
    "tiktok.com": "TikTok",
    "pinterest.com": "Pinterest",
    "yelp.com": "Yelp",
    "google.com/maps": "Google Maps",
    "maps.google.com": "Google Maps",
    "tripadvisor.com": "TripAdvisor",
    "nextdoor.com": "Nextdoor",
}

BLOCKED_PROTOCOLS = ("javascript:", "data:", "file:", "vbscript:", "blob:")
PAYMENT_KEYWORDS = ("payment", "pay.", "checkout")
PAYMENT_DOMAINS = ("stripe.com", "paypal.com", "venmo.com")

_HOST_LABEL_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
_IPV4_RE = re.compile(r"^\d{1,3}(?:\.\d{1,3}){3}$")


class UrlValidationResult(BaseModel):
    valid: bool
    url: str | None = None
    error: str | None = None
    is_booking_provider: bool = False
    provider_name: str | None = None


def _invalid(error: str) -> UrlValidationResult:
    return UrlValidationResult(valid=False, error=error)


def _blocked_protocol(lower_url: str) -> str | None:
    for protocol in BLOCKED_PROTOCOLS:
        if lower_url.startswith(protocol):
            return protocol
    return None


def _ascii_host(hostname: str) -> str | None:
    """IDNA-encode and validate a hostname. Returns None when unusable."""
    try:
        host = hostname.encode("idna").decode("ascii").lower()
    except UnicodeError:
        return None
    if _IPV4_RE.match(host):
        return host if all(int(part) <= 255 for part in host.split(".")) else None
    labels = host.split(".")
    if len(labels) < 2:
        return None
    if not all(_HOST_LABEL_RE.match(label) for label in labels):
        return None
    return host


def _normalize(url: str) -> tuple[str, str] | str:
    """Parse and normalize an absolute http(s) URL.

    Returns (normalized_url, hostname) or an error message.
    """
    if any(c.isspace() for c in url):
        return "Invalid URL format"
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return "Invalid URL format"

    if parts.scheme not in ("http", "https"):
        return "Only HTTP/HTTPS URLs are allowed"
    if not parts.hostname:
        return "Invalid URL format"
    if parts.username is not None:
        return "Credentials in URLs are not allowed"

    host = _ascii_host(parts.hostname)
    if host is None:
        return "Invalid URL format"

    netloc = host if port is None else f"{host}:{port}"

    normalized = urlunsplit((parts.scheme, netloc, parts.path or "/", parts.query, parts.fragment))
    return normalized, host


def _match_table(host: str, path: str, table: dict[str, str]) -> str | None:
    """Match a host/path against a domain table by host suffix.

    Entries carrying a path (``yelp.com/reservations``) also require the
    URL path to start with it.
    """
    path = path.lower()
    for entry, name in table.items():
        domain, _, entry_path = entry.partition("/")
        if host != domain and not host.endswith("." + domain):
            continue
        if entry_path and not path.lstrip("/").startswith(entry_path):
            continue
        return name
    return None


def validate_website_url(raw: str) -> UrlValidationResult:
    """Validate a general URL (website to scan, social links, ...)."""
    if not raw or not isinstance(raw, str):
        return _invalid("URL is required")

    trimmed = raw.strip()
    if not trimmed:
        return _invalid("URL cannot be empty")

    lower = trimmed.lower()
    protocol = _blocked_protocol(lower)
    if protocol:
        return _invalid(f'Unsafe protocol "{protocol}" is not allowed')

    if not lower.startswith(("http://", "https://")):
        if "://" in lower:
            return _invalid("Only HTTP/HTTPS URLs are allowed")
        trimmed = f"https://{trimmed}"

    parsed = _normalize(trimmed)
    if isinstance(parsed, str):
        return _invalid(parsed)

    return UrlValidationResult(valid=True, url=parsed[0])


def validate_booking_url(raw: str) -> UrlValidationResult:
    """Validate a booking link: HTTPS only, no payment pages."""
    if not raw or not isinstance(raw, str):
        return _invalid("URL is required")

    trimmed = raw.strip()
    if not trimmed:
        return _invalid("URL cannot be empty")

    lower = trimmed.lower()
    protocol = _blocked_protocol(lower)
    if protocol:
        return _invalid(f'Unsafe protocol "{protocol}" is not allowed')

    if lower.startswith("http://"):
        return _invalid("Only HTTPS URLs are allowed for security")

    if not lower.startswith("https://"):
        if "://" in lower:
            return _invalid("Invalid URL protocol. Only HTTPS is allowed.")
        trimmed = f"https://{trimmed}"
        lower = trimmed.lower()

    parsed = _normalize(trimmed)
    if isinstance(parsed, str):
        return _invalid(parsed)
    normalized, host = parsed

    if any(keyword in lower for keyword in PAYMENT_KEYWORDS + PAYMENT_DOMAINS):
        return _invalid("Payment URLs are not allowed for security reasons")

    provider = _match_table(host, urlsplit(normalized).path, BOOKING_PROVIDERS)
    return UrlValidationResult(
        valid=True,
        url=normalized,
        is_booking_provider=provider is not None,
        provider_name=provider,
    )


def extract_domain(url: str) -> str | None:
    """Lowercased hostname of a URL (scheme optional), or None."""
    if not url:
        return None
    candidate = url.strip()
    if not candidate.lower().startswith(("http://", "https://")):
        candidate = f"https://{candidate}"
    try:
        hostname = urlsplit(candidate).hostname
    except ValueError:
        return None
    return hostname.lower() if hostname else None


def _strip_www(domain: str) -> str:
    return domain[4:] if domain.startswith("www.") else domain


def is_same_domain(base_url: str, target_url: str) -> bool:
    """Same site check for crawl scoping. ``www.`` is ignored, subdomains are not."""
    base = extract_domain(base_url)
    target = extract_domain(target_url)
    if not base or not target:
        return False
    return _strip_www(base) == _strip_www(target)


def detect_booking_links(
    urls: list[str], confidence: float = BOOKING_LINK_CONFIDENCE
) -> list[dict]:
    """Pick known booking-provider links out of a pool of URLs."""
    links: list[dict] = []
    for url in urls:
        result = validate_booking_url(url)
        if result.valid and result.is_booking_provider and result.provider_name:
            links.append({
                "url": result.url,
                "provider": result.provider_name,
                "confidence": confidence,
            })
    return links


def detect_social_links(
    urls: list[str], confidence: float = SOCIAL_LINK_CONFIDENCE
) -> list[dict]:
    """Pick social-platform links out of a pool of URLs."""
    links: list[dict] = []
    for url in urls:
        result = validate_website_url(url)
        if not result.valid or not result.url:
            continue
        parts = urlsplit(result.url)
        platform = _match_table(parts.hostname or "", parts.path, SOCIAL_PLATFORMS)
        if platform:
            links.append({"url": result.url, "platform": platform, "confidence": confidence})
    return links
