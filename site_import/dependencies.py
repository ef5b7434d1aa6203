from typing import Annotated

from fastapi import Depends, Request

from site_import.jobs import JobStore
from site_import.services.website_import import WebsiteImportService


def get_website_import_service(request: Request) -> WebsiteImportService:
    return request.app.state.website_import_service


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


WebsiteImportDep = Annotated[WebsiteImportService, Depends(get_website_import_service)]
JobStoreDep = Annotated[JobStore, Depends(get_job_store)]
