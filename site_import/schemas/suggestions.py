from typing import Literal

from pydantic import BaseModel, Field

ContactType = Literal["phone", "email", "address", "hours"]


class Suggestion(BaseModel):
    source_page_url: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class ServiceSuggestion(Suggestion):
    name: str
    description: str | None = None
    price: str | None = None


class FaqSuggestion(Suggestion):
    question: str
    answer: str = ""


class ContactSuggestion(Suggestion):
    type: ContactType
    value: str


class BookingLinkSuggestion(Suggestion):
    url: str
    provider: str | None = None


class SocialLinkSuggestion(Suggestion):
    platform: str
    url: str


class PolicySuggestion(Suggestion):
    value: str
    category: str = "general"


class ImportSuggestionBundle(BaseModel):
    business_name: str | None = None
    tagline: str | None = None
    description: str | None = None
    services: list[ServiceSuggestion] = []
    faqs: list[FaqSuggestion] = []
    contact: list[ContactSuggestion] = []
    booking_links: list[BookingLinkSuggestion] = []
    social_links: list[SocialLinkSuggestion] = []
    policies: list[PolicySuggestion] = []
    pages_scanned: int = 0
    scan_duration_ms: int = 0
    source_urls: list[str] = []


# --- Single-page extraction schema ---


class ExtractedItem(BaseModel):
    model_config = {"coerce_numbers_to_str": True}

    name: str
    description: str | None = None
    price: str | None = None


class ExtractedFaq(BaseModel):
    question: str
    answer: str


class ExtractedContactInfo(BaseModel):
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    hours: dict[str, str] = {}


class TeamMember(BaseModel):
    name: str
    role: str | None = None
    bio: str | None = None


class Testimonial(BaseModel):
    text: str
    author: str | None = None
    rating: float | None = None


class PricingPlan(BaseModel):
    model_config = {"coerce_numbers_to_str": True}

    plan: str
    price: str
    features: list[str] = []


class ExtractedBusinessData(BaseModel):
    model_config = {"extra": "ignore"}

    business_name: str | None = None
    tagline: str | None = None
    description: str | None = None
    services: list[ExtractedItem] = []
    products: list[ExtractedItem] = []
    faqs: list[ExtractedFaq] = []
    contact_info: ExtractedContactInfo | None = None
    social_links: dict[str, str] = {}
    team_members: list[TeamMember] = []
    testimonials: list[Testimonial] = []
    key_features: list[str] = []
    pricing: list[PricingPlan] = []
    about_content: str | None = None
    mission_statement: str | None = None
