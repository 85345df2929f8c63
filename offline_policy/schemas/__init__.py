"""Pydantic schemas for the offline policy service."""

from offline_policy.schemas.auth import CurrentUser
from offline_policy.schemas.offline_policy import (
    Actor,
    ActorType,
    AgentActor,
    ClearSyncedResponse,
    ConnectivityUpdate,
    EmployeeActor,
    OfflinePolicyCreate,
    OfflinePolicyEntry,
    OfflinePolicyListResponse,
    PolicyStatus,
    PolicySubmission,
    QueueStatus,
    RemotePolicyRecord,
    SubmissionResult,
    SyncOutcome,
    SyncReport,
)

__all__ = [
    "Actor",
    "ActorType",
    "AgentActor",
    "ClearSyncedResponse",
    "ConnectivityUpdate",
    "CurrentUser",
    "EmployeeActor",
    "OfflinePolicyCreate",
    "OfflinePolicyEntry",
    "OfflinePolicyListResponse",
    "PolicyStatus",
    "PolicySubmission",
    "QueueStatus",
    "RemotePolicyRecord",
    "SubmissionResult",
    "SyncOutcome",
    "SyncReport",
]
