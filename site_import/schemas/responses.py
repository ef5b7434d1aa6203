from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from site_import.schemas.crawl import StopReason
from site_import.schemas.merge import MergeSummary, ProvenanceRecord
from site_import.schemas.suggestions import ExtractedBusinessData, ImportSuggestionBundle


class ScrapeResult(BaseModel):
    success: bool
    status: Literal["completed", "failed"]
    url: str
    error: str | None = None
    page_title: str | None = None
    meta_description: str | None = None
    extracted_data: ExtractedBusinessData | None = None
    processing_time_ms: int = 0
    pages_scraped: int = 0


class ImportScanResult(BaseModel):
    status: Literal["completed", "failed"]
    url: str
    message: str | None = None
    stop_reason: StopReason | None = None
    suggestions: ImportSuggestionBundle | None = None


class MergeResponse(BaseModel):
    summary: MergeSummary
    provenance: ProvenanceRecord


class JobSubmittedResponse(BaseModel):
    job_id: str
    status: str
    message: str


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    created_at: datetime
    finished_at: datetime | None = None
    url: str | None = None
    result: ImportScanResult | None = None
    error: str | None = None
