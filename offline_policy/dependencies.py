"""Centralized dependency wiring for the FastAPI application.

Factories here build the offline queue's collaborators from settings, and
the FastAPI dependencies hand the running queue to the endpoints.
"""

from typing import Annotated, Optional

from fastapi import Header, HTTPException, Request, status

from offline_policy.config import ConnectivitySettings, OfflineQueueSettings
from offline_policy.core.exceptions import ConfigurationError
from offline_policy.database.client import DatabaseClient
from offline_policy.schemas.auth import CurrentUser
from offline_policy.services.offline import (
    ConnectivityProbe,
    DatabaseConnectivityProbe,
    HttpConnectivityProbe,
    JsonFileStore,
    LocalStore,
    MemoryStore,
    OfflinePolicyQueue,
)


def build_local_store(offline_settings: OfflineQueueSettings) -> LocalStore:
    """Build the local durable store selected by settings.

    Args:
        offline_settings: Offline queue settings

    Returns:
        LocalStore: File-backed or in-memory store
    """
    if offline_settings.storage_backend == "memory":
        return MemoryStore()
    return JsonFileStore(offline_settings.storage_path)


def build_connectivity_probe(
    connectivity_settings: ConnectivitySettings,
    client: DatabaseClient,
) -> ConnectivityProbe:
    """Build the connectivity probe selected by settings.

    Args:
        connectivity_settings: Connectivity settings
        client: Database client used by the database probe

    Returns:
        ConnectivityProbe: Configured probe

    Raises:
        ConfigurationError: If the http probe has no URL
    """
    if connectivity_settings.probe == "http":
        if not connectivity_settings.check_url:
            raise ConfigurationError("CONNECTIVITY_CHECK_URL must be set for the http probe")
        return HttpConnectivityProbe(
            connectivity_settings.check_url,
            timeout=connectivity_settings.check_timeout_seconds,
        )
    return DatabaseConnectivityProbe(client)


def get_offline_queue(request: Request) -> OfflinePolicyQueue:
    """Get the queue created during application startup.

    Raises:
        HTTPException: If the queue is not initialized yet
    """
    queue = getattr(request.app.state, "offline_queue", None)
    if queue is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Offline policy queue is not initialized",
        )
    return queue


def get_current_user(
    x_user_id: Annotated[Optional[str], Header()] = None,
    x_user_role: Annotated[str, Header()] = "Employee",
    x_user_email: Annotated[Optional[str], Header()] = None,
) -> Optional[CurrentUser]:
    """Read the acting user forwarded by the client.

    Returns:
        CurrentUser or None when no user ID header is present
    """
    if not x_user_id:
        return None
    return CurrentUser(id=x_user_id, role=x_user_role, email=x_user_email)
