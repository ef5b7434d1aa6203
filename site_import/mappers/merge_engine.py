"""Deduplicate website-import suggestions against curated business data.

Services and FAQs are matched by word-set (Jaccard) similarity of their
normalized forms. Contact fields are only ever filled when empty. Policies
are matched by category.
"""

import re
from datetime import datetime, timezone

from site_import.schemas.merge import (
    ContactMergeResult,
    ContactUpdates,
    DuplicateMatch,
    ExistingBusinessRecord,
    ExistingContact,
    ExistingFaq,
    ExistingPolicy,
    ExistingService,
    ItemsAdded,
    MergeResult,
    MergeSummary,
    ProvenanceRecord,
)
from site_import.schemas.suggestions import (
    ContactSuggestion,
    FaqSuggestion,
    ImportSuggestionBundle,
    PolicySuggestion,
    ServiceSuggestion,
)

SERVICE_SIMILARITY_THRESHOLD = 0.7
FAQ_SIMILARITY_THRESHOLD = 0.6

_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_FAQ_PUNCTUATION_RE = re.compile(r"[?!.]")
_QUESTION_WORD_RE = re.compile(
    r"^(what|how|when|where|why|do|does|is|are|can|will)\s+", re.IGNORECASE
)

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_DAY_PATTERNS = tuple(
    (
        day.capitalize(),
        re.compile(rf"\b{day}[:\s]+([^,;\n]+)"),
        re.compile(rf"\b{day[:3]}[:\s]+([^,;\n]+)"),
    )
    for day in _WEEKDAYS
)


def normalize_string(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", (value or "").lower().strip())


def normalize_service_name(name: str) -> str:
    """Lowercase, collapse whitespace, strip punctuation."""
    stripped = _PUNCTUATION_RE.sub("", normalize_string(name))
    return _WHITESPACE_RE.sub(" ", stripped).strip()


def normalize_faq_question(question: str) -> str:
    """Like normalize_string, minus ``?!.`` and one leading question word."""
    stripped = _FAQ_PUNCTUATION_RE.sub("", normalize_string(question))
    return _QUESTION_WORD_RE.sub("", stripped).strip()


def _word_set(value: str) -> set[str]:
    return {word for word in normalize_string(value).split(" ") if len(word) > 2}


def string_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the word sets (words longer than 2 chars)."""
    words_a = _word_set(a)
    words_b = _word_set(b)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def is_service_duplicate(
    a: str, b: str, threshold: float = SERVICE_SIMILARITY_THRESHOLD
) -> bool:
    norm_a = normalize_service_name(a)
    norm_b = normalize_service_name(b)
    if norm_a == norm_b:
        return True
    return string_similarity(norm_a, norm_b) >= threshold


def is_faq_duplicate(
    a: str, b: str, threshold: float = FAQ_SIMILARITY_THRESHOLD
) -> bool:
    norm_a = normalize_faq_question(a)
    norm_b = normalize_faq_question(b)
    if norm_a == norm_b:
        return True
    return string_similarity(norm_a, norm_b) >= threshold


def dedupe_services(
    suggestions: list[ServiceSuggestion],
    existing: list[ExistingService],
    threshold: float = SERVICE_SIMILARITY_THRESHOLD,
) -> MergeResult[ServiceSuggestion]:
    """Split service suggestions into new ones and duplicates of existing services.

    The first matching existing service wins. Suggestions that repeat one
    already accepted in this batch are dropped.
    """
    result = MergeResult[ServiceSuggestion]()

    for suggestion in suggestions:
        if not normalize_service_name(suggestion.name):
            continue

        match = next(
            (s for s in existing if is_service_duplicate(suggestion.name, s.name, threshold)),
            None,
        )
        if match is not None:
            result.duplicates.append(
                DuplicateMatch[ServiceSuggestion](item=suggestion, existing_match=match.name)
            )
            continue

        if any(is_service_duplicate(s.name, suggestion.name, threshold) for s in result.to_add):
            continue
        result.to_add.append(suggestion)

    return result


def dedupe_faqs(
    suggestions: list[FaqSuggestion],
    existing: list[ExistingFaq],
    threshold: float = FAQ_SIMILARITY_THRESHOLD,
) -> MergeResult[FaqSuggestion]:
    """Same as dedupe_services, keyed on the question text."""
    result = MergeResult[FaqSuggestion]()

    for suggestion in suggestions:
        if not normalize_faq_question(suggestion.question):
            continue

        match = next(
            (f for f in existing if is_faq_duplicate(suggestion.question, f.question, threshold)),
            None,
        )
        if match is not None:
            result.duplicates.append(
                DuplicateMatch[FaqSuggestion](item=suggestion, existing_match=match.question)
            )
            continue

        if any(is_faq_duplicate(f.question, suggestion.question, threshold) for f in result.to_add):
            continue
        result.to_add.append(suggestion)

    return result


def dedupe_policies(
    suggestions: list[PolicySuggestion],
    existing: list[ExistingPolicy],
) -> MergeResult[PolicySuggestion]:
    """One policy per category; categories already on record are never replaced."""
    result = MergeResult[PolicySuggestion]()
    existing_by_category = {normalize_string(p.category): p for p in existing}
    accepted: set[str] = set()

    for suggestion in suggestions:
        category = normalize_string(suggestion.category)
        if not category or not suggestion.value.strip():
            continue

        if category in existing_by_category:
            result.duplicates.append(
                DuplicateMatch[PolicySuggestion](
                    item=suggestion,
                    existing_match=existing_by_category[category].category,
                )
            )
            continue

        if category in accepted:
            continue
        accepted.add(category)
        result.to_add.append(suggestion)

    return result


def parse_hours_string(value: str) -> dict[str, str] | None:
    """Parse free-text opening hours into ``{"Monday": "9am-5pm", ...}``.

    Returns None when no weekday could be found.
    """
    lower = (value or "").lower()
    hours: dict[str, str] = {}

    for day, full_re, short_re in _DAY_PATTERNS:
        match = full_re.search(lower) or short_re.search(lower)
        if match:
            hours[day] = match.group(1).strip()

    return hours or None


def merge_contact_info(
    suggestions: list[ContactSuggestion],
    existing: ExistingContact,
) -> ContactMergeResult:
    """Fill missing contact fields only.

    A populated existing field is never overwritten; the suggestion is
    reported in ``skipped``. Hours are only filled when the existing record
    has none and at least one weekday parses out of the suggested text.
    """
    updates = ContactUpdates()
    filled: list[str] = []
    skipped: list[str] = []

    for suggestion in suggestions:
        value = (suggestion.value or "").strip()
        if not value:
            continue
        field = suggestion.type

        if field in filled:
            skipped.append(field)
            continue

        if field == "hours":
            if existing.hours:
                skipped.append(field)
                continue
            parsed = parse_hours_string(value)
            if parsed:
                updates.hours = parsed
                filled.append(field)
            continue

        if getattr(existing, field):
            skipped.append(field)
            continue
        setattr(updates, field, value)
        filled.append(field)

    return ContactMergeResult(updates=updates, filled=filled, skipped=skipped)


def create_provenance_record(
    suggestions: ImportSuggestionBundle,
    services: int,
    faqs: int,
    contact: list[str],
    policies: int,
    scan_date: datetime | None = None,
) -> ProvenanceRecord:
    scan_date = scan_date or datetime.now(timezone.utc)
    return ProvenanceRecord(
        scan_date=scan_date.isoformat(),
        source_urls=list(suggestions.source_urls),
        items_added=ItemsAdded(
            services=services,
            faqs=faqs,
            contact=list(contact),
            policies=policies,
            booking_links=len(suggestions.booking_links),
            social_links=len(suggestions.social_links),
        ),
    )


def process_suggestions_for_merge(
    suggestions: ImportSuggestionBundle,
    existing: ExistingBusinessRecord,
    service_threshold: float = SERVICE_SIMILARITY_THRESHOLD,
    faq_threshold: float = FAQ_SIMILARITY_THRESHOLD,
) -> MergeSummary:
    """Run every category merge for one import."""
    return MergeSummary(
        services=dedupe_services(suggestions.services, existing.services, service_threshold),
        faqs=dedupe_faqs(suggestions.faqs, existing.faqs, faq_threshold),
        contact=merge_contact_info(suggestions.contact, existing.contact),
        policies=dedupe_policies(suggestions.policies, existing.policies),
        source_urls=list(suggestions.source_urls),
    )
