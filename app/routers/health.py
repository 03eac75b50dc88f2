"""
Health check endpoint.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from app.config import APP_VERSION, smtp_enabled
from app.models import HealthResponse
from app.services import otp

router = APIRouter(prefix="/api", tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Health check",
)
async def get_health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=APP_VERSION,
        email_service="smtp" if smtp_enabled() else "console",
        pending_otps=len(otp.otp_manager),
        timestamp=datetime.now(timezone.utc),
    )
