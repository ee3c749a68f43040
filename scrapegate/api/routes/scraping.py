import logging

from fastapi import APIRouter, Depends

from scrapegate.core.config import settings
from scrapegate.core.errors import AppError, ScrapingAppError
from scrapegate.core.rate_limit import AdmissionGuard
from scrapegate.schemas.scraping import (
    ErrorResponse,
    ExportRequest,
    ExportResponse,
    ScrapingStatusResponse,
    StartScrapingRequest,
    StartScrapingResponse,
)
from scrapegate.services.scraping_service import ScrapingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/data-scraping", tags=["Data Scraping"])

_scraping_service = ScrapingService(latency_seconds=settings.app.simulated_latency_seconds)

# Policies are validated here, at import time.
status_guard = AdmissionGuard(
    "data-scraping.status",
    max_requests=settings.app.scraping_status_max_requests,
    window_millis=settings.app.rate_limit_window_millis,
)
start_guard = AdmissionGuard(
    "data-scraping.start",
    max_requests=settings.app.scraping_start_max_requests,
    window_millis=settings.app.rate_limit_window_millis,
)
export_guard = AdmissionGuard(
    "data-scraping.export",
    max_requests=settings.app.scraping_export_max_requests,
    window_millis=settings.app.rate_limit_window_millis,
)

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request body."},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded."},
    500: {"model": ErrorResponse, "description": "Unexpected server error."},
}


def get_scraping_service() -> ScrapingService:
    return _scraping_service


@router.get(
    "",
    response_model=ScrapingStatusResponse,
    responses=_ERROR_RESPONSES,
    dependencies=[Depends(status_guard)],
)
async def get_scraping_status(
    service: ScrapingService = Depends(get_scraping_service),
) -> ScrapingStatusResponse:
    """List scraping sources, current jobs and aggregate counters."""
    try:
        return await service.get_status()
    except AppError:
        raise
    except Exception as exc:
        logger.exception("scraping.status_failed")
        raise ScrapingAppError(
            code="scraping_status_failed",
            message="Internal server error",
        ) from exc


@router.post(
    "/start",
    response_model=StartScrapingResponse,
    responses=_ERROR_RESPONSES,
    dependencies=[Depends(start_guard)],
)
async def start_scraping_job(
    body: StartScrapingRequest,
    service: ScrapingService = Depends(get_scraping_service),
) -> StartScrapingResponse:
    """Start a scraping job for one source.

    Returns:
        StartScrapingResponse: Job handle with expected data points.

    Raises:
        ValidationAppError: 400 when ``source_id`` is missing.
        ScrapingAppError: 500 on unexpected failures.
    """
    try:
        job = await service.start_job(body.source_id)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("scraping.start_failed")
        raise ScrapingAppError(
            code="scraping_start_failed",
            message="Failed to start scraping job",
        ) from exc
    return StartScrapingResponse(data=job)


@router.post(
    "/export",
    response_model=ExportResponse,
    responses=_ERROR_RESPONSES,
    dependencies=[Depends(export_guard)],
)
async def export_scraped_data(
    body: ExportRequest,
    service: ScrapingService = Depends(get_scraping_service),
) -> ExportResponse:
    """Generate a downloadable export of all scraped records.

    Raises:
        ValidationAppError: 400 when ``format`` is missing.
        ScrapingAppError: 500 on unexpected failures.
    """
    try:
        result = await service.export(body.format)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("scraping.export_failed")
        raise ScrapingAppError(
            code="scraping_export_failed",
            message="Export generation failed",
        ) from exc
    return ExportResponse(data=result)
