"""Simulated data-scraping backend.

The control panel shows scraping sources, running jobs and export downloads.
No real scraping happens here: the service returns a fixed catalogue with
jittered counters and fabricates job/export handles, after an optional
artificial delay that mimics the cost of the real work. That cost is why the
routes in front of it are admission controlled.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from scrapegate.core.errors import ValidationAppError
from scrapegate.schemas.scraping import (
    ExportResult,
    ScrapingJob,
    ScrapingSource,
    ScrapingStatusData,
    ScrapingStatusMetadata,
    ScrapingStatusResponse,
    ScrapingSummary,
    StartedJob,
)
from scrapegate.utils.text_sanitizer import sanitize_text

logger = logging.getLogger(__name__)

EXPORT_TTL = timedelta(hours=24)
EXPORT_RECORD_COUNT = 15_847
DEFAULT_EXPECTED_DATA_POINTS = 25
ESTIMATED_JOB_DURATION = "15-30 minutes"

EXPECTED_DATA_POINTS: dict[str, int] = {
    "1": 50,  # TechCrunch
    "2": 30,  # VentureBeat
    "3": 100,  # Company websites
    "4": 20,  # Conferences
    "5": 80,  # LinkedIn
    "6": 15,  # Patents
}

EXPORT_FILE_SIZES: dict[str, str] = {
    "excel": "5.7 MB",
    "csv": "2.1 MB",
    "json": "3.4 MB",
}
DEFAULT_EXPORT_FILE_SIZE = "1.0 MB"


@dataclass(frozen=True)
class _SourceTemplate:
    id: str
    name: str
    url: str
    type: str
    status: str
    last_scrape_ago: timedelta
    base_data_points: int
    data_points_jitter: int
    base_success_rate: int
    success_rate_jitter: int
    cost_saving: int
    description: str


_SOURCES: tuple[_SourceTemplate, ...] = (
    _SourceTemplate(
        "1", "TechCrunch Funding News", "https://techcrunch.com/category/startups/",
        "funding", "active", timedelta(minutes=30), 2847, 100, 94, 5, 14_400,
        "Scrapes funding announcements from TechCrunch startup section",
    ),
    _SourceTemplate(
        "2", "VentureBeat Security News", "https://venturebeat.com/security/",
        "news", "active", timedelta(minutes=15), 1923, 50, 89, 8, 6_000,
        "Monitors cybersecurity news and company updates",
    ),
    _SourceTemplate(
        "3", "Company Website Monitor", "Various company sites",
        "company", "running", timedelta(minutes=45), 5621, 200, 87, 6, 18_000,
        "Tracks company press releases, team updates, and product launches",
    ),
    _SourceTemplate(
        "4", "Conference & Event Tracker", "Multiple conference sites",
        "conference", "paused", timedelta(hours=18), 892, 30, 92, 4, 3_600,
        "Monitors cybersecurity conferences, speaking opportunities, and events",
    ),
    _SourceTemplate(
        "5", "LinkedIn Company Updates", "LinkedIn company pages",
        "social", "active", timedelta(hours=2), 3456, 150, 76, 10, 9_600,
        "Tracks executive moves, company updates, and hiring announcements",
    ),
    _SourceTemplate(
        "6", "Patent Database Monitor", "USPTO and patent databases",
        "company", "active", timedelta(hours=6), 1234, 80, 91, 5, 7_200,
        "Monitors new patent filings and IP developments in cybersecurity",
    ),
)


def expected_data_points(source_id: str) -> int:
    return EXPECTED_DATA_POINTS.get(source_id, DEFAULT_EXPECTED_DATA_POINTS)


def export_file_size(export_format: str) -> str:
    return EXPORT_FILE_SIZES.get(export_format, DEFAULT_EXPORT_FILE_SIZE)


def calculate_cost_savings(sources: list[ScrapingSource]) -> int:
    """Total annual savings of all sources versus paid subscriptions."""
    return sum(source.cost_saving for source in sources)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScrapingService:
    """Simulated scraping status, job start and export generation.

    Attributes:
        latency_seconds: Artificial delay applied before each operation.
    """

    def __init__(
        self,
        *,
        latency_seconds: float = 0.0,
        rng: random.Random | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        if latency_seconds < 0:
            raise ValueError("latency_seconds must be >= 0")
        self.latency_seconds = latency_seconds
        self._rng = rng or random.Random()
        self._now = now

    async def _simulate_work(self, factor: float = 1.0) -> None:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds * factor)

    def _jitter(self, spread: int) -> int:
        return self._rng.randrange(spread) if spread > 0 else 0

    async def get_status(self) -> ScrapingStatusResponse:
        """Return every source, the current jobs and a summary block."""
        await self._simulate_work(0.6)
        now = self._now()

        sources = [
            ScrapingSource(
                id=tpl.id,
                name=tpl.name,
                url=tpl.url,
                type=tpl.type,
                status=tpl.status,
                last_scrape=now - tpl.last_scrape_ago,
                data_points=tpl.base_data_points + self._jitter(tpl.data_points_jitter),
                success_rate=tpl.base_success_rate + self._jitter(tpl.success_rate_jitter),
                cost_saving=tpl.cost_saving,
                description=tpl.description,
            )
            for tpl in _SOURCES
        ]

        jobs = [
            ScrapingJob(
                id="1",
                source="TechCrunch Funding News",
                status="running",
                progress=67 + self._jitter(20),
                items_found=23 + self._jitter(10),
                start_time=now - timedelta(minutes=37),
                estimated_completion=now + timedelta(minutes=8),
            ),
            ScrapingJob(
                id="2",
                source="LinkedIn Company Updates",
                status="queued",
                progress=0,
                items_found=0,
                start_time=now + timedelta(minutes=5),
            ),
            ScrapingJob(
                id="3",
                source="Company Website Monitor",
                status="completed",
                progress=100,
                items_found=156,
                start_time=now - timedelta(hours=2),
            ),
        ]

        summary = ScrapingSummary(
            companies=3247 + self._jitter(100),
            funding_rounds=1856 + self._jitter(50),
            news_articles=4923 + self._jitter(200),
            conferences=234 + self._jitter(20),
            total_value=7_800_000_000 + self._jitter(500_000_000),
            last_update=now,
            data_quality=94.2,
            cost_savings_annual=calculate_cost_savings(sources),
        )

        return ScrapingStatusResponse(
            data=ScrapingStatusData(sources=sources, jobs=jobs, summary=summary),
            metadata=ScrapingStatusMetadata(
                last_updated=now,
                total_sources=len(sources),
                active_jobs=sum(1 for job in jobs if job.status == "running"),
                cost_savings=calculate_cost_savings(sources),
            ),
        )

    async def start_job(self, source_id: str | int | None) -> StartedJob:
        """Start a (simulated) scraping job for ``source_id``.

        Raises:
            ValidationAppError: If source_id is missing or blank.
        """
        cleaned = sanitize_text(str(source_id)) if source_id is not None else ""
        if not cleaned:
            raise ValidationAppError(
                code="source_id_required",
                message="Source ID is required",
                details={"field": "source_id"},
            )

        await self._simulate_work()

        job_id = f"job_{time.time_ns() // 1_000_000}"
        logger.info(
            "scraping.job_started",
            extra={"job_id": job_id, "source_id": cleaned},
        )
        return StartedJob(
            job_id=job_id,
            source_id=cleaned,
            estimated_duration=ESTIMATED_JOB_DURATION,
            expected_data_points=expected_data_points(cleaned),
            started_at=self._now(),
        )

    async def export(self, export_format: str | None) -> ExportResult:
        """Generate a (simulated) export of all scraped records.

        Raises:
            ValidationAppError: If export_format is missing or blank.
        """
        cleaned = sanitize_text(export_format)
        if not cleaned:
            raise ValidationAppError(
                code="format_required",
                message="Format is required",
                details={"field": "format"},
            )

        await self._simulate_work(1.5)

        now = self._now()
        export_id = f"scraped_data_{time.time_ns() // 1_000_000}"
        logger.info(
            "scraping.export_generated",
            extra={"export_id": export_id, "format": cleaned},
        )
        return ExportResult(
            export_id=export_id,
            format=cleaned,
            download_url=f"/api/downloads/{export_id}.{cleaned}",
            expires_at=now + EXPORT_TTL,
            file_size=export_file_size(cleaned),
            record_count=EXPORT_RECORD_COUNT,
            generated_at=now,
        )
