"""Connectivity endpoints.

Clients report their own online/offline transitions here, in addition to
the background probe.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from offline_policy.dependencies import get_offline_queue
from offline_policy.schemas.offline_policy import ConnectivityUpdate, QueueStatus
from offline_policy.services.offline import OfflinePolicyQueue
from offline_policy.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=QueueStatus,
    summary="Report connectivity",
    description="Flip the online signal; going online triggers one sync pass",
    operation_id="report_connectivity",
)
async def report_connectivity(
    update: ConnectivityUpdate,
    queue: Annotated[OfflinePolicyQueue, Depends(get_offline_queue)],
) -> QueueStatus:
    """Report a connectivity transition.

    Going online awaits the resulting sync pass before responding, so the
    returned status already reflects which entries were accepted. A pass
    already running is not duplicated; the call then returns immediately.
    """
    LOGGER.info("Connectivity reported by client", extra={"online": update.online})
    await queue.connectivity.set_online(update.online)
    return queue.get_status()
