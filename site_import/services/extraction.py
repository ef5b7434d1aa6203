import logging
import math
from typing import Any

from pydantic import BaseModel, ValidationError

from site_import.exceptions.custom import ExtractionError
from site_import.mappers.url_validator import (
    detect_booking_links,
    detect_social_links,
    extract_domain,
)
from site_import.schemas.crawl import PageRecord
from site_import.schemas.suggestions import (
    BookingLinkSuggestion,
    ContactSuggestion,
    ExtractedBusinessData,
    ExtractedContactInfo,
    ExtractedFaq,
    ExtractedItem,
    FaqSuggestion,
    ImportSuggestionBundle,
    PolicySuggestion,
    PricingPlan,
    ServiceSuggestion,
    SocialLinkSuggestion,
    TeamMember,
    Testimonial,
)
from site_import.services.claude import ClaudeService
from site_import.services.crawler import normalize_crawl_url

logger = logging.getLogger(__name__)

EXTRACTION_FAILED_DESCRIPTION = "Failed to extract business information automatically."
MAX_CHARS_PER_PAGE = 5_000
MAX_PROMPT_CHARS = 30_000
DEFAULT_CONFIDENCE = 0.5
_MAX_TOKENS = 4000

_CONTACT_TYPES = frozenset({"phone", "email", "address", "hours"})
_EMPTY_MARKERS = frozenset({"", "null", "none", "n/a", "unknown"})

_SINGLE_PAGE_SYSTEM_PROMPT = (
    "You are a precise data extraction assistant. Extract structured business "
    "information from website content. Return only valid JSON."
)

_SINGLE_PAGE_PROMPT_TEMPLATE = """You are an expert at extracting business information from website content. Analyze the following website content and extract structured business data.

Website URL: {url}
Page Title: {title}

Website Content:
{text}

Extract and return a JSON object with the following structure (include only fields that have data):
{{
  "business_name": "The business name",
  "tagline": "Short tagline or slogan",
  "description": "Brief business description (1-2 sentences)",
  "services": [{{"name": "Service name", "description": "Brief description", "price": "Price if available"}}],
  "products": [{{"name": "Product name", "description": "Brief description", "price": "Price if available"}}],
  "faqs": [{{"question": "FAQ question", "answer": "FAQ answer"}}],
  "contact_info": {{
    "phone": "Phone number",
    "email": "Email address",
    "address": "Physical address",
    "hours": {{"Monday": "9am-5pm", "Tuesday": "9am-5pm"}}
  }},
  "social_links": {{"facebook": "url", "instagram": "url"}},
  "team_members": [{{"name": "Name", "role": "Role/Title", "bio": "Brief bio"}}],
  "testimonials": [{{"text": "Testimonial text", "author": "Author name", "rating": 5}}],
  "key_features": ["Feature 1", "Feature 2"],
  "pricing": [{{"plan": "Plan name", "price": "$X/month", "features": ["feature1", "feature2"]}}],
  "about_content": "About us content summary",
  "mission_statement": "Mission or vision statement"
}}

Be thorough but accurate. Only include information that is clearly stated on the website.
Return ONLY the JSON object, no other text."""

_MULTI_PAGE_SYSTEM_PROMPT = (
    "You extract importable business facts from several pages of one website. "
    "Every item you return must name the page it came from. "
    "Return only valid JSON, no markdown fences, no explanation."
)

_MULTI_PAGE_PROMPT_TEMPLATE = """Below is the text of {page_count} pages crawled from {base_url}. Each page starts with a "--- Page: <url> ---" line.

{pages}

Return a JSON object with exactly this structure:
{{
  "business_name": "The business name or null",
  "tagline": "Short tagline or null",
  "description": "1-2 sentence description or null",
  "services": [{{"name": "...", "description": "...", "price": "...", "source_page_url": "...", "confidence": 0.0}}],
  "faqs": [{{"question": "...", "answer": "...", "source_page_url": "...", "confidence": 0.0}}],
  "contact": [{{"type": "phone|email|address|hours", "value": "...", "source_page_url": "...", "confidence": 0.0}}],
  "policies": [{{"category": "cancellation|refund|privacy|booking|other", "value": "...", "source_page_url": "...", "confidence": 0.0}}]
}}

Rules:
- "source_page_url" must be one of the page URLs above.
- "confidence" is a number between 0 and 1: how clearly the page states the fact.
- For hours, write all days in one value, e.g. "Monday: 9am-5pm, Tuesday: 9am-5pm".
- Only include facts that are clearly stated. Use empty lists when nothing is found."""


def _text(value: Any) -> str | None:
    """Clean string or None, treating LLM placeholders like "null" as empty."""
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    if text.lower() in _EMPTY_MARKERS:
        return None
    return text


def _confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(confidence):
        return DEFAULT_CONFIDENCE
    return min(max(confidence, 0.0), 1.0)


def _build(model: type[BaseModel], **fields: Any) -> BaseModel | None:
    try:
        return model(**fields)
    except ValidationError:
        logger.debug("Dropping malformed %s: %r", model.__name__, fields)
        return None


def _dicts(value: Any) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _parse_models(value: Any, model: type[BaseModel]) -> list:
    """Validate list items one by one, dropping the malformed ones."""
    items = []
    for raw in _dicts(value):
        try:
            items.append(model.model_validate(raw))
        except ValidationError:
            logger.debug("Dropping malformed %s item: %r", model.__name__, raw)
    return items


def _hours_text(value: Any) -> str | None:
    if isinstance(value, dict):
        parts = [f"{day}: {hours}" for day, hours in value.items() if _text(hours)]
        return ", ".join(parts) or None
    return _text(value)


def parse_business_data(data: dict) -> ExtractedBusinessData:
    """Build ExtractedBusinessData from service output, skipping bad fields."""
    contact = data.get("contact_info")
    contact_info = None
    if isinstance(contact, dict):
        hours = contact.get("hours")
        contact_info = ExtractedContactInfo(
            phone=_text(contact.get("phone")),
            email=_text(contact.get("email")),
            address=_text(contact.get("address")),
            hours={
                str(day): _text(value)
                for day, value in hours.items()
                if _text(value)
            } if isinstance(hours, dict) else {},
        )

    social = data.get("social_links")
    social_links = {
        str(platform): _text(url)
        for platform, url in social.items()
        if _text(url)
    } if isinstance(social, dict) else {}

    features = data.get("key_features")
    key_features = [f for f in (_text(v) for v in features) if f] if isinstance(features, list) else []

    return ExtractedBusinessData(
        business_name=_text(data.get("business_name")),
        tagline=_text(data.get("tagline")),
        description=_text(data.get("description")),
        services=_parse_models(data.get("services"), ExtractedItem),
        products=_parse_models(data.get("products"), ExtractedItem),
        faqs=_parse_models(data.get("faqs"), ExtractedFaq),
        contact_info=contact_info,
        social_links=social_links,
        team_members=_parse_models(data.get("team_members"), TeamMember),
        testimonials=_parse_models(data.get("testimonials"), Testimonial),
        key_features=key_features,
        pricing=_parse_models(data.get("pricing"), PricingPlan),
        about_content=_text(data.get("about_content")),
        mission_statement=_text(data.get("mission_statement")),
    )


def build_multi_page_prompt(pages: list[PageRecord], base_url: str) -> str:
    """Concatenate page texts: MAX_CHARS_PER_PAGE each, MAX_PROMPT_CHARS overall."""
    sections: list[str] = []
    remaining = MAX_PROMPT_CHARS

    for page in pages:
        if remaining <= 0:
            break
        section = f"--- Page: {page.url} ---\nTitle: {page.title}\n{page.text[:MAX_CHARS_PER_PAGE]}"
        section = section[:remaining]
        sections.append(section)
        remaining -= len(section)

    return _MULTI_PAGE_PROMPT_TEMPLATE.format(
        page_count=len(sections),
        base_url=base_url,
        pages="\n\n".join(sections),
    )


def detect_link_suggestions(
    pages: list[PageRecord],
) -> tuple[list[BookingLinkSuggestion], list[SocialLinkSuggestion]]:
    """Booking and social links found in the crawled link pool.

    Each link is attributed to the first page it was seen on.
    """
    booking: dict[str, BookingLinkSuggestion] = {}
    social: dict[str, SocialLinkSuggestion] = {}

    for page in pages:
        for link in detect_booking_links(page.outbound_links):
            booking.setdefault(link["url"], BookingLinkSuggestion(
                url=link["url"],
                provider=link["provider"],
                confidence=link["confidence"],
                source_page_url=page.url,
            ))
        for link in detect_social_links(page.outbound_links):
            social.setdefault(link["url"], SocialLinkSuggestion(
                url=link["url"],
                platform=link["platform"],
                confidence=link["confidence"],
                source_page_url=page.url,
            ))

    return list(booking.values()), list(social.values())


class ExtractionService:
    def __init__(self, claude: ClaudeService | None = None):
        self._claude = claude

    async def _call(self, system_prompt: str, user_prompt: str) -> dict:
        if self._claude is None:
            raise ExtractionError("No extraction service configured")
        data = await self._claude.analyze(system_prompt, user_prompt, max_tokens=_MAX_TOKENS)
        if not data:
            raise ExtractionError("Empty or malformed response from extraction service")
        return data

    async def extract_business_data(
        self, text: str, url: str, page_title: str
    ) -> ExtractedBusinessData:
        """Extract business data from one page. Never raises."""
        prompt = _SINGLE_PAGE_PROMPT_TEMPLATE.format(url=url, title=page_title, text=text)
        try:
            data = await self._call(_SINGLE_PAGE_SYSTEM_PROMPT, prompt)
            return parse_business_data(data)
        except (ExtractionError, ValidationError) as exc:
            logger.warning("Single-page extraction failed for %s: %s", url, exc)
            return ExtractedBusinessData(
                business_name=page_title or extract_domain(url) or url,
                description=EXTRACTION_FAILED_DESCRIPTION,
            )

    async def extract_import_suggestions(
        self, pages: list[PageRecord], base_url: str
    ) -> ImportSuggestionBundle:
        """Turn crawled pages into source-attributed suggestions. Never raises.

        Booking and social links come from the link pool and survive an
        extraction failure.
        """
        booking_links, social_links = detect_link_suggestions(pages)
        bundle = ImportSuggestionBundle(
            booking_links=booking_links,
            social_links=social_links,
            pages_scanned=len(pages),
            source_urls=[page.url for page in pages],
        )
        if not pages:
            return bundle

        try:
            data = await self._call(
                _MULTI_PAGE_SYSTEM_PROMPT, build_multi_page_prompt(pages, base_url)
            )
        except ExtractionError as exc:
            logger.warning(
                "Multi-page extraction failed for %s, keeping %d link suggestions: %s",
                base_url, len(booking_links) + len(social_links), exc.message,
            )
            return bundle

        crawled = {normalize_crawl_url(page.url): page.url for page in pages}

        def source(item: dict) -> str:
            url = _text(item.get("source_page_url"))
            if url:
                try:
                    match = crawled.get(normalize_crawl_url(url))
                except ValueError:
                    match = None
                if match:
                    return match
            return base_url

        services = [
            _build(
                ServiceSuggestion,
                name=name,
                description=_text(item.get("description")),
                price=_text(item.get("price")),
                source_page_url=source(item),
                confidence=_confidence(item.get("confidence")),
            )
            for item in _dicts(data.get("services"))
            if (name := _text(item.get("name")))
        ]

        faqs = [
            _build(
                FaqSuggestion,
                question=question,
                answer=answer,
                source_page_url=source(item),
                confidence=_confidence(item.get("confidence")),
            )
            for item in _dicts(data.get("faqs"))
            if (question := _text(item.get("question"))) and (answer := _text(item.get("answer")))
        ]

        contact = []
        for item in _dicts(data.get("contact")):
            contact_type = (_text(item.get("type")) or "").lower()
            value = _hours_text(item.get("value")) if contact_type == "hours" else _text(item.get("value"))
            if contact_type not in _CONTACT_TYPES or not value:
                continue
            contact.append(_build(
                ContactSuggestion,
                type=contact_type,
                value=value,
                source_page_url=source(item),
                confidence=_confidence(item.get("confidence")),
            ))

        policies = [
            _build(
                PolicySuggestion,
                value=value,
                category=(_text(item.get("category")) or "general").lower(),
                source_page_url=source(item),
                confidence=_confidence(item.get("confidence")),
            )
            for item in _dicts(data.get("policies"))
            if (value := _text(item.get("value")))
        ]

        # Items that failed validation come back as None
        services = [s for s in services if s]
        faqs = [f for f in faqs if f]
        contact = [c for c in contact if c]
        policies = [p for p in policies if p]

        logger.info(
            "Extracted from %s: %d services, %d faqs, %d contact, %d policies",
            base_url, len(services), len(faqs), len(contact), len(policies),
        )
        return bundle.model_copy(update={
            "business_name": _text(data.get("business_name")),
            "tagline": _text(data.get("tagline")),
            "description": _text(data.get("description")),
            "services": services,
            "faqs": faqs,
            "contact": contact,
            "policies": policies,
        })
