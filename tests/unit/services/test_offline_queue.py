"""Tests for the offline policy queue."""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from conftest import make_entry, seed_store, stored_records
from offline_policy.core.exceptions import PersistenceError, SubmissionError
from offline_policy.schemas.auth import CurrentUser
from offline_policy.schemas.offline_policy import (
    AgentActor,
    EmployeeActor,
    OfflinePolicyCreate,
    PolicyStatus,
    RemotePolicyRecord,
)
from offline_policy.services.offline import OFFLINE_POLICIES_KEY, ConnectivityEvent, is_temp_policy_number

TEMP_A = "TEMP-20261001093000-00000A"
TEMP_B = "TEMP-20261001093001-00000B"
TEMP_C = "TEMP-20261001093002-00000C"


def _policy(name: str, **kwargs) -> OfflinePolicyCreate:
    return OfflinePolicyCreate(
        customer_name=name,
        phone_number="9876543210",
        premium_amount=12500,
        line_of_business="Motor",
        **kwargs,
    )


def _submitted_names(mock_remote: AsyncMock) -> list:
    return [call.args[0].customer_name for call in mock_remote.insert_policy.await_args_list]


class TestCreateOfflinePolicy:
    """Entry creation."""

    @pytest.mark.asyncio
    async def test_offline_create_is_queued(self, make_queue, mock_remote, memory_store):
        """Test that an offline entry is persisted unsynced with a temporary policy number."""
        queue = make_queue()
        await queue.init()

        entry = await queue.create_offline_policy(_policy("Asha Rao"), CurrentUser(id="user-1"))

        assert entry.synced is False
        assert entry.id == ""
        assert entry.policy_status == PolicyStatus.PENDING_SYNC
        assert entry.policy_number == entry.temp_id
        assert is_temp_policy_number(entry.temp_id)
        assert entry.sync_error is None
        mock_remote.insert_policy.assert_not_awaited()

        assert queue.pending_sync_count == 1
        assert stored_records(memory_store) == [entry.to_storage()]

    @pytest.mark.asyncio
    async def test_online_create_syncs_immediately(self, make_queue, mock_remote, tracker):
        """Test that an online entry is submitted and adopts the server id and number."""
        await tracker.set_online(True)
        queue = make_queue()
        await queue.init()

        entry = await queue.create_offline_policy(_policy("Asha Rao"))

        assert entry.synced is True
        assert entry.id == "policy-1"
        assert entry.policy_number == "POL-2026-00001"
        assert entry.policy_status == PolicyStatus.UNDERWRITING
        assert queue.pending_sync_count == 0

        submission = mock_remote.insert_policy.await_args.args[0]
        assert submission.policy_number is None
        assert submission.policy_status == "Underwriting"
        assert submission.employee_id == "emp-1"
        assert submission.agent_id is None
        assert (submission.policy_end_date - submission.policy_start_date).days == 365

    @pytest.mark.asyncio
    async def test_user_supplied_policy_number_is_submitted_as_is(self, make_queue, mock_remote, tracker):
        """Test that a real policy number is not replaced by a temporary one."""
        await tracker.set_online(True)
        queue = make_queue()
        await queue.init()

        entry = await queue.create_offline_policy(_policy("Asha Rao", policy_number="POL-2024-00012"))

        submission = mock_remote.insert_policy.await_args.args[0]
        assert submission.policy_number == "POL-2024-00012"
        assert entry.policy_number == "POL-2024-00012"
        assert entry.temp_id != "POL-2024-00012"

    @pytest.mark.asyncio
    async def test_online_create_absorbs_submission_failure(self, make_queue, mock_remote, tracker, memory_store):
        """Test that a rejected submission leaves the entry queued instead of raising."""
        mock_remote.insert_policy.side_effect = SubmissionError("duplicate key value violates unique constraint")
        await tracker.set_online(True)
        queue = make_queue()
        await queue.init()

        entry = await queue.create_offline_policy(_policy("Asha Rao"))

        assert entry.synced is False
        assert entry.id == ""
        assert entry.policy_status == PolicyStatus.UNDERWRITING
        assert "duplicate key" in entry.sync_error
        assert stored_records(memory_store) == [entry.to_storage()]

    @pytest.mark.asyncio
    async def test_temp_id_collision_is_regenerated(self, make_queue, memory_store):
        """Test that a new entry never reuses a temp_id already in the queue."""
        fresh = "TEMP-20261001093005-00000F"
        seed_store(memory_store, [make_entry(TEMP_A)])
        queue = make_queue()
        await queue.init()

        with patch(
            "offline_policy.services.offline.queue_manager.generate_temp_policy_number",
            side_effect=[TEMP_A, fresh],
        ) as mock_generate:
            entry = await queue.create_offline_policy(_policy("Asha Rao"))

        assert entry.temp_id == fresh
        assert entry.policy_number == fresh
        assert mock_generate.call_count == 2
        assert [record["temp_id"] for record in stored_records(memory_store)] == [TEMP_A, fresh]

    @pytest.mark.asyncio
    async def test_creator_fields_are_flattened(self, make_queue, memory_store):
        """Test that created_by_type and created_by_id are serialized and reload cleanly."""
        queue = make_queue()
        await queue.init()

        entry = await queue.create_offline_policy(_policy("Asha Rao"))

        record = stored_records(memory_store)[0]
        assert record["created_by_type"] == "Employee"
        assert record["created_by_id"] == "emp-1"
        assert record["created_by"] == {"type": "Employee", "id": "emp-1"}

        queue.load_offline_policies()
        assert queue.offline_policies == [entry]

    @pytest.mark.asyncio
    async def test_create_proceeds_on_actor_lookup_miss(self, make_queue, mock_resolver):
        """Test that an unresolved actor yields an entry with an empty creator id."""
        mock_resolver.resolve.return_value = EmployeeActor()
        queue = make_queue()
        await queue.init()

        entry = await queue.create_offline_policy(_policy("Asha Rao"), CurrentUser(id="user-9"))

        assert entry.created_by_id == ""
        assert entry.created_by_type.value == "Employee"
        assert entry.temp_id
        assert queue.offline_policies == [entry]

    @pytest.mark.asyncio
    async def test_create_proceeds_when_resolver_raises(self, make_queue, mock_resolver):
        """Test that a resolver error does not block creation."""
        mock_resolver.resolve.side_effect = RuntimeError("connection refused")
        queue = make_queue()
        await queue.init()

        entry = await queue.create_offline_policy(_policy("Asha Rao"))

        assert entry.created_by_id == ""

    @pytest.mark.asyncio
    async def test_agent_actor_maps_to_agent_column(self, make_queue, mock_remote, mock_resolver, tracker):
        """Test that agent-created entries are submitted with agent_id only."""
        mock_resolver.resolve.return_value = AgentActor(id="agent-7")
        await tracker.set_online(True)
        queue = make_queue()
        await queue.init()

        entry = await queue.create_offline_policy(_policy("Asha Rao"), CurrentUser(id="user-2", role="Agent"))

        submission = mock_remote.insert_policy.await_args.args[0]
        assert submission.created_by_type.value == "Agent"
        assert submission.agent_id == "agent-7"
        assert submission.employee_id is None
        assert entry.created_by_type.value == "Agent"

    @pytest.mark.asyncio
    async def test_persistence_failure_keeps_in_memory_entry(self, make_queue):
        """Test that a failing local store write is logged, not raised."""
        broken_store = MagicMock()
        broken_store.get.return_value = None
        broken_store.set.side_effect = PersistenceError("quota exceeded")
        queue = make_queue(store=broken_store)
        await queue.init()

        entry = await queue.create_offline_policy(_policy("Asha Rao"))

        assert queue.offline_policies == [entry]
        assert queue.pending_sync_count == 1


class TestSyncSinglePolicy:
    """Single-entry submission."""

    @pytest.mark.asyncio
    async def test_failure_is_returned_not_raised(self, make_queue, mock_remote):
        """Test that any remote exception becomes a failure result."""
        mock_remote.insert_policy.side_effect = ConnectionError("network unreachable")
        queue = make_queue()

        result = await queue.sync_single_policy(make_entry(TEMP_A))

        assert result.success is False
        assert result.error == "network unreachable"

    @pytest.mark.asyncio
    async def test_success_without_id_is_a_failure(self, make_queue, mock_remote):
        """Test that an entry is never marked synced without a server id."""
        mock_remote.insert_policy.side_effect = None
        mock_remote.insert_policy.return_value = RemotePolicyRecord(id="", policy_number="POL-2026-00001")
        queue = make_queue()

        result = await queue.sync_single_policy(make_entry(TEMP_A))

        assert result.success is False
        assert result.error

    @pytest.mark.asyncio
    async def test_synced_entry_is_not_resubmitted(self, make_queue, mock_remote):
        """Test that calling submission for a synced entry does not hit the remote store."""
        queue = make_queue()
        entry = make_entry(TEMP_A, synced=True)

        result = await queue.sync_single_policy(entry)

        assert result.success is True
        assert result.id == entry.id
        mock_remote.insert_policy.assert_not_awaited()


class TestSyncOfflinePolicies:
    """Bulk resynchronization."""

    @pytest.mark.asyncio
    async def test_skipped_while_offline(self, make_queue, mock_remote, memory_store):
        """Test that a pass does nothing while offline."""
        seed_store(memory_store, [make_entry(TEMP_A)])
        queue = make_queue()
        await queue.init()

        report = await queue.sync_offline_policies()

        assert report.skipped == "offline"
        mock_remote.insert_policy.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sync_is_idempotent(self, make_queue, mock_remote, tracker, memory_store):
        """Test that synced entries are never resubmitted or changed by later passes."""
        seed_store(memory_store, [make_entry(TEMP_A, "A"), make_entry(TEMP_B, "B")])
        queue = make_queue()
        await queue.init()
        await tracker.set_online(True)

        first = {entry.temp_id: (entry.id, entry.policy_number) for entry in queue.offline_policies}
        assert mock_remote.insert_policy.await_count == 2

        report = await queue.sync_offline_policies()
        await queue.sync_offline_policies()

        assert report.attempted == 0
        assert mock_remote.insert_policy.await_count == 2
        assert {entry.temp_id: (entry.id, entry.policy_number) for entry in queue.offline_policies} == first

    @pytest.mark.asyncio
    async def test_entries_are_submitted_in_queue_order(self, make_queue, mock_remote, tracker, memory_store):
        """Test that a pass submits A before B before C."""
        seed_store(memory_store, [make_entry(TEMP_A, "A"), make_entry(TEMP_B, "B"), make_entry(TEMP_C, "C")])
        queue = make_queue()
        await queue.init()

        await tracker.set_online(True)

        assert _submitted_names(mock_remote) == ["A", "B", "C"]
        assert all(entry.synced for entry in queue.offline_policies)

    @pytest.mark.asyncio
    async def test_partial_failure_is_isolated(self, make_queue, mock_remote, tracker, memory_store):
        """Test that one failing entry does not stop the pass and is retried alone."""
        accept = mock_remote.insert_policy.side_effect

        async def reject_b(submission):
            if submission.customer_name == "B":
                raise SubmissionError("null value in column \"customer_name\"")
            return await accept(submission)

        mock_remote.insert_policy.side_effect = reject_b
        seed_store(memory_store, [make_entry(TEMP_A, "A"), make_entry(TEMP_B, "B"), make_entry(TEMP_C, "C")])
        queue = make_queue()
        await queue.init()
        await tracker.set_online(True)

        a, b, c = queue.offline_policies
        assert a.synced is True and c.synced is True
        assert b.synced is False
        assert b.sync_error
        assert b.id == ""
        assert b.policy_number == TEMP_B
        assert stored_records(memory_store)[1]["sync_error"] == b.sync_error

        mock_remote.insert_policy.reset_mock()
        mock_remote.insert_policy.side_effect = accept

        report = await queue.sync_offline_policies()

        assert _submitted_names(mock_remote) == ["B"]
        assert report.synced == 1
        assert b.synced is True
        assert b.sync_error is None
        assert "sync_error" not in stored_records(memory_store)[1]

    @pytest.mark.asyncio
    async def test_entry_deleted_mid_pass_is_not_submitted(self, make_queue, mock_remote, tracker, memory_store):
        """Test that deleting an entry during a pass keeps it off the remote store."""
        started = asyncio.Event()
        release = asyncio.Event()
        accept = mock_remote.insert_policy.side_effect

        async def slow_first(submission):
            if submission.customer_name == "A":
                started.set()
                await release.wait()
            return await accept(submission)

        mock_remote.insert_policy.side_effect = slow_first
        queue = make_queue()
        await queue.init()
        await tracker.set_online(True)
        seed_store(memory_store, [make_entry(TEMP_A, "A"), make_entry(TEMP_B, "B")])
        queue.load_offline_policies()

        first_pass = asyncio.create_task(queue.sync_offline_policies())
        await started.wait()

        assert queue.delete_offline_policy(TEMP_B) is True

        release.set()
        report = await first_pass

        assert _submitted_names(mock_remote) == ["A"]
        assert [outcome.temp_id for outcome in report.results] == [TEMP_A]
        assert [record["temp_id"] for record in stored_records(memory_store)] == [TEMP_A]
        assert stored_records(memory_store)[0]["synced"] is True

    @pytest.mark.asyncio
    async def test_concurrent_pass_is_a_no_op(self, make_queue, mock_remote, tracker, memory_store):
        """Test that a second pass started mid-pass submits nothing."""
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_insert(submission):
            started.set()
            await release.wait()
            return RemotePolicyRecord(id="policy-1", policy_number="POL-2026-00001")

        mock_remote.insert_policy.side_effect = slow_insert
        queue = make_queue()
        await queue.init()
        await tracker.set_online(True)
        seed_store(memory_store, [make_entry(TEMP_A, "A")])
        queue.load_offline_policies()

        first_pass = asyncio.create_task(queue.sync_offline_policies())
        await started.wait()

        assert queue.sync_in_progress is True
        second = await queue.sync_offline_policies()

        release.set()
        first = await first_pass

        assert second.skipped == "in_progress"
        assert first.synced == 1
        assert mock_remote.insert_policy.await_count == 1
        assert queue.sync_in_progress is False

    @pytest.mark.asyncio
    async def test_entry_created_mid_pass_waits_for_next_pass(self, make_queue, mock_remote, tracker, memory_store):
        """Test that the pass works on the snapshot taken when it started."""
        started = asyncio.Event()
        release = asyncio.Event()
        accept = mock_remote.insert_policy.side_effect
        rejected = set()

        async def slow_first(submission):
            if submission.customer_name == "A":
                started.set()
                await release.wait()
            if submission.customer_name == "Late" and "Late" not in rejected:
                rejected.add("Late")
                raise SubmissionError("connection reset by peer")
            return await accept(submission)

        mock_remote.insert_policy.side_effect = slow_first
        queue = make_queue()
        await queue.init()
        await tracker.set_online(True)
        seed_store(memory_store, [make_entry(TEMP_A, "A")])
        queue.load_offline_policies()

        first_pass = asyncio.create_task(queue.sync_offline_policies())
        await started.wait()

        late = await queue.create_offline_policy(_policy("Late"))
        assert late.synced is False

        release.set()
        report = await first_pass

        assert [outcome.temp_id for outcome in report.results] == [TEMP_A]
        assert late.synced is False
        assert [record["temp_id"] for record in stored_records(memory_store)] == [TEMP_A, late.temp_id]

        await queue.sync_offline_policies()
        assert late.synced is True


class TestQueueMaintenance:
    """Deletion and clear-synced sweep."""

    @pytest.mark.asyncio
    async def test_clear_synced_keeps_unsynced(self, make_queue, memory_store):
        """Test that the sweep leaves exactly the unsynced entries."""
        a, b, c = make_entry(TEMP_A, "A"), make_entry(TEMP_B, "B", synced=True), make_entry(TEMP_C, "C")
        seed_store(memory_store, [a, b, c])
        queue = make_queue()
        await queue.init()

        removed = queue.clear_synced_policies()

        assert removed == 1
        assert stored_records(memory_store) == [a.to_storage(), c.to_storage()]
        assert [entry.temp_id for entry in queue.offline_policies] == [TEMP_A, TEMP_C]

    @pytest.mark.asyncio
    async def test_delete_removes_only_matching_entry(self, make_queue, memory_store):
        """Test that delete by temp_id leaves every other entry untouched."""
        a, b, c = make_entry(TEMP_A, "A"), make_entry(TEMP_B, "B", synced=True), make_entry(TEMP_C, "C")
        seed_store(memory_store, [a, b, c])
        queue = make_queue()
        await queue.init()

        assert queue.delete_offline_policy(TEMP_A) is True

        assert stored_records(memory_store) == [b.to_storage(), c.to_storage()]

    @pytest.mark.asyncio
    async def test_delete_unknown_temp_id(self, make_queue, memory_store):
        """Test that deleting an unknown temp_id changes nothing."""
        a = make_entry(TEMP_A, "A")
        seed_store(memory_store, [a])
        queue = make_queue()
        await queue.init()

        assert queue.delete_offline_policy("TEMP-20991231235959-FFFFFF") is False
        assert stored_records(memory_store) == [a.to_storage()]


class TestLoadOfflinePolicies:
    """Loading the persisted queue."""

    @pytest.mark.asyncio
    async def test_invalid_json_starts_empty(self, make_queue, memory_store):
        """Test that unparseable storage yields an empty queue."""
        memory_store.set(OFFLINE_POLICIES_KEY, "{not json")
        queue = make_queue()

        await queue.init()

        assert queue.offline_policies == []

    @pytest.mark.asyncio
    async def test_malformed_record_is_skipped(self, make_queue, memory_store):
        """Test that one bad record does not discard the rest of the queue."""
        a = make_entry(TEMP_A, "A")
        memory_store.set(OFFLINE_POLICIES_KEY, f'[{{"customer_name": "no temp id"}}, {a.model_dump_json()}]')
        queue = make_queue()

        await queue.init()

        assert [entry.temp_id for entry in queue.offline_policies] == [TEMP_A]

    @pytest.mark.asyncio
    async def test_status_reflects_queue(self, make_queue, memory_store):
        """Test the status the UI reads."""
        seed_store(memory_store, [make_entry(TEMP_A), make_entry(TEMP_B, synced=True)])
        queue = make_queue()
        await queue.init()

        status = queue.get_status()

        assert status.is_online is False
        assert status.pending_sync_count == 1
        assert status.total_count == 2
        assert status.sync_in_progress is False
        assert status.last_sync_at is None


class TestQueueLifecycle:
    """Connectivity subscription and init/teardown."""

    @pytest.mark.asyncio
    async def test_init_subscribes_once(self, make_queue, tracker):
        """Test that repeated init does not register duplicate listeners."""
        queue = make_queue()

        await queue.init()
        await queue.init()

        assert tracker.listener_count(ConnectivityEvent.ONLINE) == 1
        assert tracker.listener_count(ConnectivityEvent.OFFLINE) == 1

        await queue.teardown()

        assert tracker.listener_count(ConnectivityEvent.ONLINE) == 0
        assert tracker.listener_count(ConnectivityEvent.OFFLINE) == 0

    @pytest.mark.asyncio
    async def test_torn_down_queue_ignores_reconnect(self, make_queue, mock_remote, tracker, memory_store):
        """Test that no pass runs after teardown."""
        seed_store(memory_store, [make_entry(TEMP_A)])
        queue = make_queue()
        await queue.init()
        await queue.teardown()

        await tracker.set_online(True)

        mock_remote.insert_policy.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_going_offline_has_no_side_effects(self, make_queue, mock_remote, tracker, memory_store):
        """Test that losing connectivity neither submits nor rewrites the queue."""
        await tracker.set_online(True)
        queue = make_queue()
        await queue.init()
        seed_store(memory_store, [make_entry(TEMP_A)])

        await tracker.set_online(False)

        mock_remote.insert_policy.assert_not_awaited()
        assert queue.offline_policies == []
        assert stored_records(memory_store) == [make_entry(TEMP_A).to_storage()]

    @pytest.mark.asyncio
    async def test_init_while_online_syncs_backlog(self, make_queue, mock_remote, tracker, memory_store):
        """Test that entries persisted by an earlier session are synced on startup."""
        seed_store(memory_store, [make_entry(TEMP_A, "A"), make_entry(TEMP_B, "B")])
        await tracker.set_online(True)
        queue = make_queue()

        await queue.init()

        assert _submitted_names(mock_remote) == ["A", "B"]
        assert queue.pending_sync_count == 0
        assert all(record["synced"] for record in stored_records(memory_store))
        assert queue.get_status().last_sync_at is not None
