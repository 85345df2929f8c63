"""Connectivity signal for the offline queue.

``ConnectivityTracker`` holds the online flag and notifies listeners on the
offline->online and online->offline transitions only. Probes decide whether
the remote policy store is reachable, and ``ConnectivityMonitor`` polls a
probe in the background and feeds the tracker.
"""

import asyncio
import contextlib
from abc import ABC, abstractmethod
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional

import httpx

from offline_policy.database.client import DatabaseClient
from offline_policy.utils.logging import get_logger

LOGGER = get_logger(__name__)

Listener = Callable[[], Awaitable[None]]


class ConnectivityEvent(str, Enum):
    """Connectivity transitions listeners can subscribe to."""

    ONLINE = "online"
    OFFLINE = "offline"


class ConnectivityTracker:
    """Single boolean online signal with transition listeners."""

    def __init__(self, initial_online: bool = False):
        """Initialize tracker.

        Args:
            initial_online: Connectivity state at construction time
        """
        self._online = initial_online
        self._listeners: Dict[ConnectivityEvent, List[Listener]] = {
            ConnectivityEvent.ONLINE: [],
            ConnectivityEvent.OFFLINE: [],
        }

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(self, event: ConnectivityEvent, listener: Listener) -> None:
        self._listeners[ConnectivityEvent(event)].append(listener)

    def unsubscribe(self, event: ConnectivityEvent, listener: Listener) -> None:
        listeners = self._listeners[ConnectivityEvent(event)]
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: ConnectivityEvent) -> int:
        return len(self._listeners[ConnectivityEvent(event)])

    async def set_online(self, online: bool) -> None:
        """Update the signal, awaiting the listeners of the transition if it changed.

        Args:
            online: New connectivity state
        """
        if online == self._online:
            return

        self._online = online
        event = ConnectivityEvent.ONLINE if online else ConnectivityEvent.OFFLINE
        LOGGER.info(
            "Connectivity changed",
            extra={"event": event.value, "listeners": len(self._listeners[event])}
        )

        for listener in list(self._listeners[event]):
            await listener()


class ConnectivityProbe(ABC):
    """Checks whether the remote policy store is reachable."""

    @abstractmethod
    async def check(self) -> bool:
        """Return True when the remote side is reachable."""
        pass


class DatabaseConnectivityProbe(ConnectivityProbe):
    """Reachability of the policy database itself."""

    def __init__(self, client: DatabaseClient):
        self.client = client

    async def check(self) -> bool:
        health = await self.client.health_check()
        return health.get("status") == "healthy"


class HttpConnectivityProbe(ConnectivityProbe):
    """Reachability of an HTTP health endpoint in front of the policy store."""

    def __init__(self, url: str, timeout: float = 5.0):
        """Initialize probe.

        Args:
            url: Health endpoint to GET
            timeout: Request timeout in seconds
        """
        self.url = url
        self.timeout = timeout

    async def check(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.url)
            return response.status_code < 400
        except httpx.HTTPError as e:
            LOGGER.debug(
                "Connectivity check failed",
                extra={"url": self.url, "error": str(e)}
            )
            return False


class ConnectivityMonitor:
    """Polls a probe on an interval and forwards the result to a tracker."""

    def __init__(
        self,
        tracker: ConnectivityTracker,
        probe: ConnectivityProbe,
        interval_seconds: float = 15.0,
    ):
        self.tracker = tracker
        self.probe = probe
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def check_now(self) -> bool:
        """Probe once and update the tracker.

        Returns:
            bool: Probe result
        """
        online = await self.probe.check()
        await self.tracker.set_online(online)
        return online

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        LOGGER.info(
            "Connectivity monitor started",
            extra={"probe": type(self.probe).__name__, "interval_seconds": self.interval_seconds}
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        LOGGER.info("Connectivity monitor stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.check_now()
            except Exception as e:
                LOGGER.error(
                    "Connectivity check raised",
                    exc_info=True,
                    extra={"error": str(e)}
                )
