import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from .custom import UrlValidationError

logger = logging.getLogger(__name__)


async def url_validation_error_handler(_request: Request, exc: UrlValidationError) -> JSONResponse:
    logger.warning("Rejected URL %r: %s", exc.url, exc.message)
    return JSONResponse(
        status_code=422,
        content={"detail": f"Invalid URL: {exc.message}"},
    )
