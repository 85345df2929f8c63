"""Pytest configuration and shared fixtures."""

import itertools
import json
from datetime import datetime, timezone
from typing import Callable, Iterator, List

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock

from offline_policy.main import app
from offline_policy.schemas.offline_policy import (
    EmployeeActor,
    OfflinePolicyEntry,
    PolicyStatus,
    PolicySubmission,
    RemotePolicyRecord,
)
from offline_policy.services.offline import (
    OFFLINE_POLICIES_KEY,
    ActorResolver,
    ConnectivityTracker,
    MemoryStore,
    OfflinePolicyQueue,
    RemotePolicyStore,
)


@pytest.fixture
def memory_store() -> MemoryStore:
    """Empty in-memory local store.

    Returns:
        MemoryStore: Store instance
    """
    return MemoryStore()


@pytest.fixture
def tracker() -> ConnectivityTracker:
    """Connectivity tracker that starts offline.

    Returns:
        ConnectivityTracker: Tracker instance
    """
    return ConnectivityTracker(initial_online=False)


@pytest.fixture
def mock_remote() -> AsyncMock:
    """Remote policy store that accepts every submission.

    Assigns sequential IDs and a ``POL-2026-NNNNN`` number when the
    submission carries none.

    Returns:
        AsyncMock: Mocked remote store
    """
    counter = itertools.count(1)

    async def insert_policy(submission: PolicySubmission) -> RemotePolicyRecord:
        n = next(counter)
        return RemotePolicyRecord(
            id=f"policy-{n}",
            policy_number=submission.policy_number or f"POL-2026-{n:05d}",
        )

    remote = AsyncMock(spec=RemotePolicyStore)
    remote.insert_policy.side_effect = insert_policy
    return remote


@pytest.fixture
def mock_resolver() -> AsyncMock:
    """Actor resolver returning a resolved employee.

    Returns:
        AsyncMock: Mocked resolver
    """
    resolver = AsyncMock(spec=ActorResolver)
    resolver.resolve.return_value = EmployeeActor(id="emp-1")
    return resolver


@pytest.fixture
def make_queue(
    memory_store: MemoryStore,
    mock_remote: AsyncMock,
    mock_resolver: AsyncMock,
    tracker: ConnectivityTracker,
) -> Callable[..., OfflinePolicyQueue]:
    """Factory for queues wired to the shared fixtures.

    Returns:
        Callable: Builds an OfflinePolicyQueue, overrides passed as kwargs
    """
    def _make(**overrides) -> OfflinePolicyQueue:
        kwargs = {
            "store": memory_store,
            "remote": mock_remote,
            "actor_resolver": mock_resolver,
            "connectivity": tracker,
        }
        kwargs.update(overrides)
        return OfflinePolicyQueue(**kwargs)

    return _make


def make_entry(temp_id: str, customer_name: str = "Asha Rao", synced: bool = False) -> OfflinePolicyEntry:
    """Build a queue entry as it would look after creation (and optionally sync)."""
    return OfflinePolicyEntry(
        id=f"server-{temp_id}" if synced else "",
        temp_id=temp_id,
        policy_number=f"POL-2026-{temp_id[-6:]}" if synced else temp_id,
        customer_name=customer_name,
        phone_number="9876543210",
        product_id="",
        premium_amount=12500.0,
        policy_status=PolicyStatus.UNDERWRITING if synced else PolicyStatus.PENDING_SYNC,
        line_of_business="Motor",
        created_at=datetime(2026, 10, 1, 9, 30, tzinfo=timezone.utc),
        created_by=EmployeeActor(id="emp-1"),
        synced=synced,
    )


def seed_store(store: MemoryStore, entries: List[OfflinePolicyEntry]) -> None:
    """Persist entries the way the queue does."""
    store.set(OFFLINE_POLICIES_KEY, json.dumps([entry.to_storage() for entry in entries]))


def stored_records(store: MemoryStore) -> list:
    """Parsed JSON currently persisted under the queue key."""
    return json.loads(store.get(OFFLINE_POLICIES_KEY))


@pytest.fixture
def test_client() -> Iterator[TestClient]:
    """FastAPI test client with dependency overrides cleared afterwards.

    The lifespan is not run; tests override ``get_offline_queue``.

    Yields:
        TestClient: Test client
    """
    yield TestClient(app)
    app.dependency_overrides.clear()
