"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from offline_policy.api.main import api_router
from offline_policy.config import settings
from offline_policy.database.base import async_session_maker
from offline_policy.database.client import close_database, db_client, init_database
from offline_policy.dependencies import build_connectivity_probe, build_local_store
from offline_policy.services.offline import (
    ConnectivityMonitor,
    ConnectivityTracker,
    OfflinePolicyQueue,
    SqlAlchemyActorResolver,
    SqlAlchemyPolicyStore,
)
from offline_policy.utils.logging import get_logger

LOGGER = get_logger(__name__, level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the offline queue and its connectivity monitor on startup and
    tears both down on shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )

    try:
        await init_database(auto_migrate=settings.db.auto_migrate)
    except Exception as e:
        # Offline startup is expected; entries queue until the database is back
        LOGGER.error(
            "Failed to initialize database, starting offline",
            extra={"error": str(e)}
        )

    probe = build_connectivity_probe(settings.connectivity, db_client)
    tracker = ConnectivityTracker(initial_online=await probe.check())
    monitor = ConnectivityMonitor(
        tracker,
        probe,
        interval_seconds=settings.connectivity.check_interval_seconds,
    )

    queue = OfflinePolicyQueue(
        store=build_local_store(settings.offline),
        remote=SqlAlchemyPolicyStore(async_session_maker),
        actor_resolver=SqlAlchemyActorResolver(async_session_maker),
        connectivity=tracker,
        storage_key=settings.offline.storage_key,
        policy_term_days=settings.offline.policy_term_days,
    )
    await queue.init()
    monitor.start()

    app.state.offline_queue = queue

    yield

    LOGGER.info("Shutting down application")

    await monitor.stop()
    await queue.teardown()
    app.state.offline_queue = None

    try:
        await close_database()
    except Exception as e:
        LOGGER.error(
            "Error closing database",
            exc_info=True,
            extra={"error": str(e)}
        )


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Offline-capable policy entry and synchronization for the insurance CRM",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.api_v1_prefix)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "offline_policy.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
