from __future__ import annotations

from scrapegate.api.routes.health import router as health_router
from scrapegate.api.routes.scraping import router as scraping_router

__all__ = ["health_router", "scraping_router"]
