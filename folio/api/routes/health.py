"""Health check endpoint for the Folio API.

Reports liveness, version and whether the AI responder and SMTP are
configured (presence only, no outbound calls).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends

from folio.api.dependencies import Services, get_services
from folio.config import APP_VERSION

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(services: Services = Depends(get_services)) -> dict[str, Any]:
    settings = services.settings
    return {
        "status": "healthy",
        "service": "Folio API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {
            "ready": settings.llm_configured,
            "gemini_api_key": bool(settings.gemini_api_key),
            "google_cloud_project": bool(settings.google_cloud_project),
        },
        "smtp": {"ready": settings.smtp_configured},
        "queue": {
            "pending": services.queue.pending,
            "busy": services.queue.busy,
            "scheduled_retries": services.queue.scheduled_retries,
        },
    }
