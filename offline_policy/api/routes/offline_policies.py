"""Offline policy entry endpoints.

These expose the offline queue operations to UI clients: create an entry,
list the queue, trigger a sync pass, delete one entry and clear synced ones.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from offline_policy.dependencies import get_current_user, get_offline_queue
from offline_policy.schemas.auth import CurrentUser
from offline_policy.schemas.offline_policy import (
    ClearSyncedResponse,
    OfflinePolicyCreate,
    OfflinePolicyEntry,
    OfflinePolicyListResponse,
    QueueStatus,
    SyncReport,
)
from offline_policy.services.offline import OfflinePolicyQueue
from offline_policy.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=OfflinePolicyListResponse,
    summary="List offline policies",
    description="Get every queued entry, synced or not, with queue status",
    operation_id="list_offline_policies",
)
async def list_offline_policies(
    queue: Annotated[OfflinePolicyQueue, Depends(get_offline_queue)],
) -> OfflinePolicyListResponse:
    return OfflinePolicyListResponse(
        status=queue.get_status(),
        policies=queue.offline_policies,
    )


@router.get(
    "/status",
    response_model=QueueStatus,
    summary="Queue status",
    description="Connectivity, pending sync count and whether a sync pass is running",
    operation_id="get_offline_queue_status",
)
async def get_queue_status(
    queue: Annotated[OfflinePolicyQueue, Depends(get_offline_queue)],
) -> QueueStatus:
    return queue.get_status()


@router.post(
    "",
    response_model=OfflinePolicyEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Create policy",
    description="Create a policy entry; it is submitted immediately when online and queued otherwise",
    operation_id="create_offline_policy",
)
async def create_offline_policy(
    policy_data: OfflinePolicyCreate,
    queue: Annotated[OfflinePolicyQueue, Depends(get_offline_queue)],
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user)],
) -> OfflinePolicyEntry:
    """Create a policy entry.

    Always succeeds once the payload validates. Whether the policy reached
    the server is reported by ``synced`` and ``sync_error`` on the entry.
    """
    return await queue.create_offline_policy(policy_data, current_user)


@router.post(
    "/sync",
    response_model=SyncReport,
    summary="Sync now",
    description="Submit every unsynced entry in queue order",
    operation_id="sync_offline_policies",
)
async def sync_offline_policies(
    queue: Annotated[OfflinePolicyQueue, Depends(get_offline_queue)],
) -> SyncReport:
    return await queue.sync_offline_policies()


@router.delete(
    "/synced",
    response_model=ClearSyncedResponse,
    summary="Clear synced policies",
    description="Drop every synced entry from the local queue",
    operation_id="clear_synced_offline_policies",
)
async def clear_synced_policies(
    queue: Annotated[OfflinePolicyQueue, Depends(get_offline_queue)],
) -> ClearSyncedResponse:
    removed = queue.clear_synced_policies()
    return ClearSyncedResponse(removed=removed, remaining=len(queue.offline_policies))


@router.delete(
    "/{temp_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete policy",
    description="Remove one entry from the local queue by its temporary ID",
    operation_id="delete_offline_policy",
)
async def delete_offline_policy(
    temp_id: str,
    queue: Annotated[OfflinePolicyQueue, Depends(get_offline_queue)],
) -> None:
    if not queue.delete_offline_policy(temp_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Offline policy {temp_id} not found",
        )
