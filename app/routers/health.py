"""
Health check endpoint.
"""
from fastapi import APIRouter
from datetime import datetime
import logging

from app.config import settings
from app.models.schemas import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check():
    """
    Health check endpoint to verify system status.

    Reports whether a Gemini API key is configured and the model fallback
    order. Does not call the provider, so it is safe to poll.

    Returns:
        HealthCheckResponse with status of the Gemini configuration
    """
    gemini_status = "configured" if settings.GEMINI_API_KEY else "missing"
    if gemini_status == "missing":
        logger.warning("Health check: GEMINI_API_KEY is not set")

    overall_status = "healthy" if gemini_status == "configured" else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        gemini=gemini_status,
        models=settings.get_model_order(),
        timestamp=datetime.utcnow()
    )
