"""Offline policy entry and synchronization.

Policies created while the policy database may be unreachable are queued
locally and pushed to ``policies_new`` when connectivity returns.

Usage:
    from offline_policy.services.offline import OfflinePolicyQueue

    queue = OfflinePolicyQueue(store, remote, resolver, tracker)
    await queue.init()

    entry = await queue.create_offline_policy(OfflinePolicyCreate(...), user)
    report = await queue.sync_offline_policies()
"""

from offline_policy.services.offline.actor_resolver import ActorResolver, SqlAlchemyActorResolver
from offline_policy.services.offline.connectivity import (
    ConnectivityEvent,
    ConnectivityMonitor,
    ConnectivityProbe,
    ConnectivityTracker,
    DatabaseConnectivityProbe,
    HttpConnectivityProbe,
)
from offline_policy.services.offline.local_store import JsonFileStore, LocalStore, MemoryStore
from offline_policy.services.offline.queue_manager import OFFLINE_POLICIES_KEY, OfflinePolicyQueue
from offline_policy.services.offline.remote_store import RemotePolicyStore, SqlAlchemyPolicyStore
from offline_policy.services.offline.temp_policy_number import (
    generate_temp_policy_number,
    is_temp_policy_number,
)

__all__ = [
    # Queue
    "OFFLINE_POLICIES_KEY",
    "OfflinePolicyQueue",
    # Temporary identifiers
    "generate_temp_policy_number",
    "is_temp_policy_number",
    # Connectivity
    "ConnectivityEvent",
    "ConnectivityMonitor",
    "ConnectivityProbe",
    "ConnectivityTracker",
    "DatabaseConnectivityProbe",
    "HttpConnectivityProbe",
    # Storage
    "JsonFileStore",
    "LocalStore",
    "MemoryStore",
    # Remote collaborators
    "ActorResolver",
    "RemotePolicyStore",
    "SqlAlchemyActorResolver",
    "SqlAlchemyPolicyStore",
]
