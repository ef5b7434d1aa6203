from enum import StrEnum

from pydantic import BaseModel, Field


class CrawlBudget(BaseModel):
    max_pages: int = Field(default=15, ge=1)
    max_depth: int = Field(default=2, ge=0)
    page_timeout: float = Field(default=15.0, gt=0)  # seconds
    total_timeout: float = Field(default=120.0, gt=0)  # seconds
    inter_request_delay: float = Field(default=0.5, ge=0)  # seconds


class FetchedPage(BaseModel):
    url: str
    final_url: str  # after redirects
    status_code: int
    html: str
    title: str = ""
    meta_description: str = ""


class PageRecord(BaseModel):
    url: str
    title: str = ""
    text: str = ""
    outbound_links: list[str] = []
    depth: int = 0


class StopReason(StrEnum):
    queue_exhausted = "queue_exhausted"
    page_budget = "page_budget"
    time_budget = "time_budget"


class CrawlResult(BaseModel):
    start_url: str
    pages: list[PageRecord] = []
    stop_reason: StopReason
    elapsed_ms: int = 0
