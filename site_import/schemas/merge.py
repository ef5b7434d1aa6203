from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

from site_import.schemas.suggestions import (
    FaqSuggestion,
    PolicySuggestion,
    ServiceSuggestion,
)

T = TypeVar("T")


class ExistingService(BaseModel):
    name: str
    description: str | None = None
    price: str | None = None
    id: str | None = None


class ExistingFaq(BaseModel):
    question: str
    answer: str = ""
    id: str | None = None


class ExistingContact(BaseModel):
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    hours: dict[str, str] = {}


class ExistingPolicy(BaseModel):
    category: str
    value: str = ""


class ExistingBusinessRecord(BaseModel):
    services: list[ExistingService] = []
    faqs: list[ExistingFaq] = []
    contact: ExistingContact = Field(default_factory=ExistingContact)
    policies: list[ExistingPolicy] = []


class DuplicateMatch(BaseModel, Generic[T]):
    item: T
    existing_match: str


class MergeResult(BaseModel, Generic[T]):
    to_add: list[T] = []
    duplicates: list[DuplicateMatch[T]] = []
    unchanged: list[T] = []


class ContactUpdates(BaseModel):
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    hours: dict[str, str] | None = None


class ContactMergeResult(BaseModel):
    updates: ContactUpdates = Field(default_factory=ContactUpdates)
    filled: list[str] = []
    skipped: list[str] = []


class MergeSummary(BaseModel):
    services: MergeResult[ServiceSuggestion]
    faqs: MergeResult[FaqSuggestion]
    contact: ContactMergeResult
    policies: MergeResult[PolicySuggestion]
    source_urls: list[str] = []


class ItemsAdded(BaseModel):
    services: int = 0
    faqs: int = 0
    contact: list[str] = []
    policies: int = 0
    booking_links: int = 0
    social_links: int = 0


class ProvenanceRecord(BaseModel):
    source: Literal["websiteScan"] = "websiteScan"
    scan_date: str  # ISO-8601, UTC
    source_urls: list[str] = []
    items_added: ItemsAdded = Field(default_factory=ItemsAdded)

