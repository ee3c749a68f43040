"""Pydantic schemas for the data-scraping control panel API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SourceStatus = Literal["active", "running", "paused"]
JobStatus = Literal["running", "queued", "completed", "started"]


class CamelModel(BaseModel):
    """Wire models use camelCase keys, the dashboard frontend's convention.

    Snake_case field names are still accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartScrapingRequest(CamelModel):
    """Body of POST /v1/data-scraping/start."""

    source_id: str | int | None = Field(
        default=None,
        description="Identifier of the scraping source to start (e.g. '1' for TechCrunch).",
    )


class ExportRequest(CamelModel):
    """Body of POST /v1/data-scraping/export."""

    format: str | None = Field(
        default=None,
        description="Export format: 'csv', 'json' or 'excel'.",
    )


class ScrapingSource(CamelModel):
    id: str
    name: str
    url: str
    type: str
    status: SourceStatus
    last_scrape: datetime
    data_points: int
    success_rate: int
    cost_saving: int = Field(..., description="Annual saving versus the paid alternative, in USD.")
    description: str


class ScrapingJob(CamelModel):
    id: str
    source: str
    status: JobStatus
    progress: int = Field(..., ge=0, le=100)
    items_found: int
    start_time: datetime
    estimated_completion: datetime | None = None


class ScrapingSummary(CamelModel):
    companies: int
    funding_rounds: int
    news_articles: int
    conferences: int
    total_value: int
    last_update: datetime
    data_quality: float
    cost_savings_annual: int


class ScrapingStatusData(CamelModel):
    sources: List[ScrapingSource]
    jobs: List[ScrapingJob]
    summary: ScrapingSummary


class ScrapingStatusMetadata(CamelModel):
    last_updated: datetime
    total_sources: int
    active_jobs: int
    cost_savings: int


class ScrapingStatusResponse(CamelModel):
    """Response of GET /v1/data-scraping."""

    success: bool = True
    data: ScrapingStatusData
    metadata: ScrapingStatusMetadata


class StartedJob(CamelModel):
    job_id: str
    source_id: str
    status: JobStatus = "started"
    estimated_duration: str
    expected_data_points: int
    started_at: datetime


class StartScrapingResponse(CamelModel):
    """Response of POST /v1/data-scraping/start."""

    success: bool = True
    data: StartedJob


class ExportResult(CamelModel):
    export_id: str
    format: str
    download_url: str
    expires_at: datetime
    file_size: str
    record_count: int
    generated_at: datetime


class ExportResponse(CamelModel):
    """Response of POST /v1/data-scraping/export."""

    success: bool = True
    data: ExportResult


class ErrorResponse(BaseModel):
    """Error envelope shared by all failing responses."""

    success: bool = False
    error: str
    code: str
    request_id: str | None = None
