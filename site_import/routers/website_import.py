import asyncio
import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from site_import.dependencies import JobStoreDep, WebsiteImportDep
from site_import.exceptions.custom import UrlValidationError
from site_import.jobs import JobStore
from site_import.mappers.url_validator import validate_website_url
from site_import.schemas.crawl import CrawlBudget
from site_import.schemas.merge import ExistingBusinessRecord
from site_import.schemas.responses import (
    ImportScanResult,
    JobStatusResponse,
    JobSubmittedResponse,
    MergeResponse,
    ScrapeResult,
)
from site_import.schemas.suggestions import ImportSuggestionBundle
from site_import.services.website_import import WebsiteImportService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import")


class ScanRequest(BaseModel):
    url: str
    budget: CrawlBudget | None = None


class ScrapeRequest(BaseModel):
    url: str


class MergeRequest(BaseModel):
    suggestions: ImportSuggestionBundle
    existing: ExistingBusinessRecord = Field(default_factory=ExistingBusinessRecord)


def _validated_url(url: str) -> str:
    validation = validate_website_url(url)
    if not validation.valid:
        raise UrlValidationError(validation.error or "Invalid URL", url)
    return validation.url


async def _run_scan(
    job_id: str,
    service: WebsiteImportService,
    store: JobStore,
    url: str,
    budget: CrawlBudget | None,
) -> None:
    store.mark_running(job_id)
    try:
        result = await service.scan(url, budget)
    except Exception as exc:
        logger.exception("Scan job %s failed", job_id)
        store.mark_failed(job_id, str(exc))
        return

    if result.status == "completed":
        store.mark_completed(job_id, result)
    else:
        store.mark_failed(job_id, result.message or "Scan failed", result)


@router.post("/scan", response_model=JobSubmittedResponse, status_code=202)
async def submit_scan(
    request: ScanRequest,
    service: WebsiteImportDep,
    store: JobStoreDep,
) -> JobSubmittedResponse:
    url = _validated_url(request.url)

    existing = store.has_active_job(url)
    if existing:
        return JSONResponse(content={
            "job_id": existing.job_id,
            "status": "already_running",
            "message": "A scan for this website is already running",
        })

    job = store.create_job(url=url)
    asyncio.create_task(_run_scan(job.job_id, service, store, url, request.budget))
    return JobSubmittedResponse(
        job_id=job.job_id,
        status=job.status,
        message="Website scan submitted",
    )


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str, store: JobStoreDep) -> JobStatusResponse:
    job = store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusResponse(**job.model_dump())


@router.post("/scan/sync", response_model=ImportScanResult)
async def scan_sync(request: ScanRequest, service: WebsiteImportDep) -> ImportScanResult:
    return await service.scan(request.url, request.budget)


@router.post("/scrape", response_model=ScrapeResult)
async def scrape_page(request: ScrapeRequest, service: WebsiteImportDep) -> ScrapeResult:
    return await service.scrape(request.url)


@router.post("/merge", response_model=MergeResponse)
async def merge_suggestions(request: MergeRequest, service: WebsiteImportDep) -> MergeResponse:
    return service.merge(request.suggestions, request.existing)
