from fastapi import APIRouter

from pidea.settings import settings
from pidea.models.health.responses import HealthResponse
from utils import utc_now

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        timestamp=utc_now(),
    )
