"""Health check API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from offline_policy.config import settings
from offline_policy.dependencies import get_offline_queue
from offline_policy.schemas.response import HealthCheckResponse
from offline_policy.services.offline import OfflinePolicyQueue

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check endpoint",
    description="Check if the service is running and whether the policy store is reachable",
    operation_id="get_service_health_status",
)
async def health_check(
    queue: Annotated[OfflinePolicyQueue, Depends(get_offline_queue)],
) -> HealthCheckResponse:
    """Health check endpoint.

    The service stays healthy while offline; it only reports ``degraded``
    so clients know new policies are being queued.
    """
    return HealthCheckResponse(
        status="healthy" if queue.is_online else "degraded",
        version=settings.app_version,
        service=settings.app_name,
        online=queue.is_online,
    )
