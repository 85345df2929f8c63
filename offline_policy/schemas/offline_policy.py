"""Schemas for offline policy entries and their synchronization.

An ``OfflinePolicyEntry`` is what the local queue stores. A
``PolicySubmission`` is the row shape sent to the remote policy store, and
``SubmissionResult`` / ``SyncReport`` describe the outcome of sending it.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field


class PolicyStatus(str, Enum):
    """Local synchronization state of an entry (not the business workflow state)."""

    DRAFT = "Draft"
    PENDING_SYNC = "Pending Sync"
    UNDERWRITING = "Underwriting"


class ActorType(str, Enum):
    """Kind of actor that created an entry."""

    EMPLOYEE = "Employee"
    AGENT = "Agent"


class EmployeeActor(BaseModel):
    """Entry created by an employee."""

    type: Literal["Employee"] = "Employee"
    id: str = Field(default="", description="Internal employees.id, empty when unresolved")

    def remote_columns(self) -> dict:
        return {"employee_id": self.id or None, "agent_id": None}


class AgentActor(BaseModel):
    """Entry created by an agent."""

    type: Literal["Agent"] = "Agent"
    id: str = Field(default="", description="Internal agents.id, empty when unresolved")

    def remote_columns(self) -> dict:
        return {"employee_id": None, "agent_id": self.id or None}


Actor = Annotated[Union[EmployeeActor, AgentActor], Field(discriminator="type")]


class OfflinePolicyCreate(BaseModel):
    """User-supplied fields for a new policy entry."""

    policy_number: Optional[str] = Field(None, description="Real policy number, if already known")
    customer_name: str = Field(default="", description="Customer full name")
    phone_number: str = Field(default="", description="Customer phone number")
    product_id: Optional[str] = Field(None, description="Product identifier")
    premium_amount: float = Field(default=0, ge=0, description="Premium amount")
    line_of_business: str = Field(default="", description="Line of business, e.g. Motor, Health")


class OfflinePolicyEntry(BaseModel):
    """One policy-creation record tracked by the offline queue."""

    id: str = Field(default="", description="Server-assigned ID, empty until synced")
    temp_id: str = Field(..., description="Locally generated identifier, stable for the entry's lifetime")
    policy_number: str = Field(..., description="Real policy number or the temp_id placeholder")
    customer_name: str = ""
    phone_number: str = ""
    product_id: str = ""
    premium_amount: float = 0
    policy_status: PolicyStatus = PolicyStatus.PENDING_SYNC
    line_of_business: str = ""
    created_at: datetime
    created_by: Actor = Field(default_factory=EmployeeActor)
    synced: bool = False
    sync_error: Optional[str] = None

    @computed_field
    @property
    def created_by_type(self) -> ActorType:
        return ActorType(self.created_by.type)

    @computed_field
    @property
    def created_by_id(self) -> str:
        return self.created_by.id

    def to_storage(self) -> dict:
        """Serialize for the local durable store (``sync_error`` omitted when absent)."""
        return self.model_dump(mode="json", exclude_none=True)


class PolicySubmission(BaseModel):
    """Row sent to the remote policy store."""

    policy_number: Optional[str] = None
    product_id: Optional[str] = None
    customer_name: str
    premium_amount: float
    policy_status: str = PolicyStatus.UNDERWRITING.value
    line_of_business: str
    created_by_type: ActorType
    employee_id: Optional[str] = None
    agent_id: Optional[str] = None
    insurer_id: Optional[str] = None
    policy_start_date: date
    policy_end_date: date

    @classmethod
    def from_entry(
        cls,
        entry: OfflinePolicyEntry,
        policy_number: Optional[str],
        start_date: date,
        term_days: int,
    ) -> "PolicySubmission":
        return cls(
            policy_number=policy_number,
            product_id=entry.product_id or None,
            customer_name=entry.customer_name,
            premium_amount=entry.premium_amount,
            line_of_business=entry.line_of_business,
            created_by_type=entry.created_by_type,
            policy_start_date=start_date,
            policy_end_date=start_date + timedelta(days=term_days),
            **entry.created_by.remote_columns(),
        )


class RemotePolicyRecord(BaseModel):
    """Row returned by the remote policy store after an insert."""

    id: str
    policy_number: Optional[str] = None


class SubmissionResult(BaseModel):
    """Outcome of one submission attempt. Never raised, always returned."""

    success: bool
    id: Optional[str] = None
    policy_number: Optional[str] = None
    error: Optional[str] = None


class SyncOutcome(BaseModel):
    """Per-entry outcome inside a sync pass."""

    temp_id: str
    success: bool
    id: Optional[str] = None
    policy_number: Optional[str] = None
    error: Optional[str] = None


class SyncReport(BaseModel):
    """Summary of one sync pass."""

    skipped: Optional[Literal["offline", "in_progress"]] = Field(
        None, description="Set when the pass did not run"
    )
    attempted: int = 0
    synced: int = 0
    failed: int = 0
    results: List[SyncOutcome] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class QueueStatus(BaseModel):
    """State the UI reads to render connectivity and pending work."""

    is_online: bool
    sync_in_progress: bool
    pending_sync_count: int
    total_count: int
    last_sync_at: Optional[datetime] = None


class OfflinePolicyListResponse(BaseModel):
    """Queue contents plus status."""

    status: QueueStatus
    policies: List[OfflinePolicyEntry]


class ClearSyncedResponse(BaseModel):
    """Result of the clear-synced sweep."""

    removed: int
    remaining: int


class ConnectivityUpdate(BaseModel):
    """Connectivity transition reported by a client."""

    online: bool
