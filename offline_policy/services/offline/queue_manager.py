"""Offline policy queue.

Policies entered while the remote policy store may be unreachable are kept
in a local queue, persisted as one JSON array under a single key of the
local durable store. Each entry gets a temporary ID up front; once the
remote store accepts it the entry adopts the server ID and policy number.

Lifecycle:
    queue = OfflinePolicyQueue(store, remote, resolver, tracker)
    await queue.init()        # load persisted queue, subscribe, sync if online
    await queue.create_offline_policy(data, user)
    await queue.sync_offline_policies()
    await queue.teardown()    # unsubscribe from connectivity events

All work runs on one event loop. Awaiting a remote insert is the only
suspension point, and ``_sync_in_progress`` keeps sync passes from
overlapping.
"""

import json
from datetime import datetime, timezone
from typing import List, Optional, Set

from pydantic import ValidationError as PydanticValidationError

from offline_policy.core.exceptions import PersistenceError
from offline_policy.schemas.auth import CurrentUser
from offline_policy.schemas.offline_policy import (
    Actor,
    EmployeeActor,
    OfflinePolicyCreate,
    OfflinePolicyEntry,
    PolicyStatus,
    PolicySubmission,
    QueueStatus,
    SubmissionResult,
    SyncOutcome,
    SyncReport,
)
from offline_policy.services.offline.actor_resolver import ActorResolver
from offline_policy.services.offline.connectivity import ConnectivityEvent, ConnectivityTracker
from offline_policy.services.offline.local_store import LocalStore
from offline_policy.services.offline.remote_store import RemotePolicyStore
from offline_policy.services.offline.temp_policy_number import (
    generate_temp_policy_number,
    is_temp_policy_number,
)
from offline_policy.utils.logging import get_logger

LOGGER = get_logger(__name__)

OFFLINE_POLICIES_KEY = "offline_policies"


class OfflinePolicyQueue:
    """Local queue of policy entries awaiting acceptance by the remote store.

    Attributes:
        store: Local durable key-value store
        remote: Remote policy store
        actor_resolver: Resolves the current user to an employee/agent
        connectivity: Online/offline signal
        storage_key: Key the queue is persisted under
        policy_term_days: Policy length used to compute the end date
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemotePolicyStore,
        actor_resolver: ActorResolver,
        connectivity: ConnectivityTracker,
        storage_key: str = OFFLINE_POLICIES_KEY,
        policy_term_days: int = 365,
    ):
        self.store = store
        self.remote = remote
        self.actor_resolver = actor_resolver
        self.connectivity = connectivity
        self.storage_key = storage_key
        self.policy_term_days = policy_term_days

        self._entries: List[OfflinePolicyEntry] = []
        self._in_flight: Set[str] = set()
        self._sync_in_progress = False
        self._subscribed = False
        self._last_sync_at: Optional[datetime] = None

    @property
    def is_online(self) -> bool:
        return self.connectivity.is_online

    @property
    def offline_policies(self) -> List[OfflinePolicyEntry]:
        return list(self._entries)

    @property
    def pending_sync_count(self) -> int:
        return sum(1 for entry in self._entries if not entry.synced)

    @property
    def sync_in_progress(self) -> bool:
        return self._sync_in_progress

    async def init(self) -> None:
        """Load the persisted queue, subscribe to connectivity and sync if already online."""
        self.load_offline_policies()

        if not self._subscribed:
            self.connectivity.subscribe(ConnectivityEvent.ONLINE, self._handle_online)
            self.connectivity.subscribe(ConnectivityEvent.OFFLINE, self._handle_offline)
            self._subscribed = True

        LOGGER.info(
            "Offline policy queue initialized",
            extra={
                "is_online": self.is_online,
                "total_count": len(self._entries),
                "pending_sync_count": self.pending_sync_count,
            }
        )

        if self.is_online:
            await self.sync_offline_policies()

    async def teardown(self) -> None:
        """Unsubscribe from connectivity events."""
        if not self._subscribed:
            return
        self.connectivity.unsubscribe(ConnectivityEvent.ONLINE, self._handle_online)
        self.connectivity.unsubscribe(ConnectivityEvent.OFFLINE, self._handle_offline)
        self._subscribed = False
        LOGGER.info("Offline policy queue torn down")

    async def _handle_online(self) -> None:
        LOGGER.info("Connectivity restored, syncing offline policies")
        await self.sync_offline_policies()

    async def _handle_offline(self) -> None:
        LOGGER.info(
            "Connectivity lost, new policies will be queued",
            extra={"pending_sync_count": self.pending_sync_count}
        )

    def load_offline_policies(self) -> None:
        """Replace the in-memory queue with the persisted one.

        Unreadable storage leaves the queue empty; individual malformed
        records are skipped.
        """
        try:
            raw = self.store.get(self.storage_key)
        except (PersistenceError, OSError) as e:
            LOGGER.error(
                "Error loading offline policies",
                exc_info=True,
                extra={"error": str(e)}
            )
            self._entries = []
            return

        if not raw:
            self._entries = []
            return

        try:
            records = json.loads(raw)
        except json.JSONDecodeError as e:
            LOGGER.error("Stored offline policies are not valid JSON", extra={"error": str(e)})
            self._entries = []
            return

        if not isinstance(records, list):
            LOGGER.error("Stored offline policies are not a JSON array")
            self._entries = []
            return

        entries: List[OfflinePolicyEntry] = []
        for index, record in enumerate(records):
            try:
                entries.append(OfflinePolicyEntry.model_validate(record))
            except PydanticValidationError as e:
                LOGGER.error(
                    "Skipping malformed offline policy",
                    extra={"index": index, "error": str(e)}
                )
        self._entries = entries

    def _save_offline_policies(self, entries: List[OfflinePolicyEntry]) -> None:
        # In-memory state is authoritative even when the write fails
        self._entries = entries
        payload = json.dumps([entry.to_storage() for entry in entries])
        try:
            self.store.set(self.storage_key, payload)
        except (PersistenceError, OSError) as e:
            LOGGER.error(
                "Error saving offline policies",
                exc_info=True,
                extra={"error": str(e), "total_count": len(entries)}
            )

    def _new_temp_id(self) -> str:
        taken = {entry.temp_id for entry in self._entries}
        temp_id = generate_temp_policy_number()
        while temp_id in taken:
            temp_id = generate_temp_policy_number()
        return temp_id

    async def _resolve_actor(self, user: Optional[CurrentUser]) -> Actor:
        try:
            return await self.actor_resolver.resolve(user)
        except Exception as e:
            LOGGER.error(
                "Actor resolution raised, continuing with an unresolved employee",
                exc_info=True,
                extra={"error": str(e)}
            )
            return EmployeeActor()

    @staticmethod
    def _mark_synced(entry: OfflinePolicyEntry, result: SubmissionResult) -> None:
        entry.synced = True
        entry.id = result.id
        if result.policy_number:
            entry.policy_number = result.policy_number
        entry.policy_status = PolicyStatus.UNDERWRITING
        entry.sync_error = None

    async def create_offline_policy(
        self,
        policy_data: OfflinePolicyCreate,
        user: Optional[CurrentUser] = None,
    ) -> OfflinePolicyEntry:
        """Create a queued policy entry, submitting it immediately when online.

        Submission failures are recorded on the entry rather than raised.

        Args:
            policy_data: User-supplied policy fields
            user: Current user, used to attribute the entry

        Returns:
            OfflinePolicyEntry: The new entry, synced or queued
        """
        actor = await self._resolve_actor(user)
        online = self.is_online
        temp_id = self._new_temp_id()

        entry = OfflinePolicyEntry(
            temp_id=temp_id,
            policy_number=policy_data.policy_number or temp_id,
            customer_name=policy_data.customer_name,
            phone_number=policy_data.phone_number,
            product_id=policy_data.product_id or "",
            premium_amount=policy_data.premium_amount,
            policy_status=PolicyStatus.UNDERWRITING if online else PolicyStatus.PENDING_SYNC,
            line_of_business=policy_data.line_of_business,
            created_at=datetime.now(timezone.utc),
            created_by=actor,
        )

        if online:
            result = await self.sync_single_policy(entry)
            if result.success:
                self._mark_synced(entry, result)
            else:
                entry.sync_error = result.error

        self._save_offline_policies([*self._entries, entry])

        LOGGER.info(
            "Offline policy created",
            extra={
                "temp_id": entry.temp_id,
                "synced": entry.synced,
                "created_by_type": entry.created_by_type.value,
                "has_actor_id": bool(entry.created_by_id),
            }
        )
        return entry

    async def sync_single_policy(self, entry: OfflinePolicyEntry) -> SubmissionResult:
        """Submit one entry to the remote store.

        Already synced entries are not resubmitted. Temporary policy numbers
        are sent as None so the remote store assigns a real one.

        Args:
            entry: Entry to submit

        Returns:
            SubmissionResult: Success with server ID, or failure with a message
        """
        if entry.synced:
            return SubmissionResult(success=True, id=entry.id, policy_number=entry.policy_number)

        if entry.temp_id in self._in_flight:
            return SubmissionResult(success=False, error="Submission already in progress")

        policy_number = None if is_temp_policy_number(entry.policy_number) else entry.policy_number

        self._in_flight.add(entry.temp_id)
        try:
            submission = PolicySubmission.from_entry(
                entry,
                policy_number=policy_number,
                start_date=datetime.now(timezone.utc).date(),
                term_days=self.policy_term_days,
            )
            record = await self.remote.insert_policy(submission)
        except Exception as e:
            LOGGER.error(
                "Error syncing policy",
                extra={"temp_id": entry.temp_id, "error": str(e)}
            )
            return SubmissionResult(success=False, error=str(e) or type(e).__name__)
        finally:
            self._in_flight.discard(entry.temp_id)

        if not record.id:
            LOGGER.error("Remote store returned no policy id", extra={"temp_id": entry.temp_id})
            return SubmissionResult(success=False, error="Remote store returned no policy id")

        return SubmissionResult(success=True, id=record.id, policy_number=record.policy_number)

    async def sync_offline_policies(self) -> SyncReport:
        """Submit every unsynced entry, in queue order, one at a time.

        Runs only when online and when no other pass is running. A failed
        entry keeps its place and is retried by the next pass. Entries deleted
        while the pass is running are not submitted.

        Returns:
            SyncReport: Per-entry outcomes, or the reason the pass was skipped
        """
        if not self.is_online:
            LOGGER.debug("Skipping sync pass, offline")
            return SyncReport(skipped="offline")

        if self._sync_in_progress:
            LOGGER.debug("Skipping sync pass, another pass is running")
            return SyncReport(skipped="in_progress")

        self._sync_in_progress = True
        report = SyncReport(started_at=datetime.now(timezone.utc))

        try:
            unsynced = [entry for entry in self._entries if not entry.synced]

            for entry in unsynced:
                # Deleted while an earlier submission was awaited
                if not any(current is entry for current in self._entries):
                    LOGGER.info("Skipping deleted offline policy", extra={"temp_id": entry.temp_id})
                    continue

                result = await self.sync_single_policy(entry)

                if result.success:
                    self._mark_synced(entry, result)
                    report.synced += 1
                else:
                    entry.sync_error = result.error
                    report.failed += 1

                report.results.append(
                    SyncOutcome(
                        temp_id=entry.temp_id,
                        success=result.success,
                        id=result.id,
                        policy_number=entry.policy_number if result.success else None,
                        error=result.error,
                    )
                )

            self._save_offline_policies(list(self._entries))
        finally:
            self._sync_in_progress = False

        report.attempted = len(report.results)
        report.finished_at = datetime.now(timezone.utc)
        self._last_sync_at = report.finished_at

        LOGGER.info(
            "Sync pass finished",
            extra={
                "attempted": report.attempted,
                "synced": report.synced,
                "failed": report.failed,
                "pending_sync_count": self.pending_sync_count,
            }
        )
        return report

    def delete_offline_policy(self, temp_id: str) -> bool:
        """Remove the entry with ``temp_id``.

        Returns:
            bool: True if an entry was removed
        """
        remaining = [entry for entry in self._entries if entry.temp_id != temp_id]
        removed = len(remaining) != len(self._entries)
        self._save_offline_policies(remaining)

        if removed:
            LOGGER.info("Offline policy deleted", extra={"temp_id": temp_id})
        return removed

    def clear_synced_policies(self) -> int:
        """Drop every synced entry, keeping unsynced ones.

        Returns:
            int: Number of entries removed
        """
        unsynced = [entry for entry in self._entries if not entry.synced]
        removed = len(self._entries) - len(unsynced)
        self._save_offline_policies(unsynced)

        LOGGER.info("Synced offline policies cleared", extra={"removed": removed})
        return removed

    def get_status(self) -> QueueStatus:
        return QueueStatus(
            is_online=self.is_online,
            sync_in_progress=self._sync_in_progress,
            pending_sync_count=self.pending_sync_count,
            total_count=len(self._entries),
            last_sync_at=self._last_sync_at,
        )
