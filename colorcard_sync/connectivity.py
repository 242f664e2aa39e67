"""
Connectivity monitoring.

Monitors push reachability transitions to a single observer. Each monitor
owns a delivery task that drains an event queue in order, awaiting the
observer for every event, so transitions are never reordered and the
observer never sees the same state twice in a row.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

ConnectivityObserver = Callable[[bool], Awaitable[None]]
ReachabilityProbe = Callable[[], Awaitable[bool]]

DEFAULT_PROBE_HOST = "login.microsoftonline.com"


class ConnectivityMonitor(ABC):
    """Base class for push-based reachability monitors.

    Subclasses report raw observations through ``_publish``; duplicate
    consecutive states are dropped here.
    """

    def __init__(self) -> None:
        self._observer: ConnectivityObserver | None = None
        self._events: asyncio.Queue[bool] = asyncio.Queue()
        self._last_published: bool | None = None
        self._delivery_task: asyncio.Task[None] | None = None
        self._monitor_task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def is_reachable(self) -> bool | None:
        """Last published state (None before the first observation)."""
        return self._last_published

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self, observer: ConnectivityObserver) -> None:
        """Start monitoring and deliver transitions to observer.

        Raises:
            RuntimeError: If the monitor already has an observer
        """
        if self._observer is not None:
            raise RuntimeError("Connectivity monitor already has an observer")

        self._observer = observer
        self._running = True
        self._delivery_task = asyncio.create_task(self._delivery_loop())
        self._monitor_task = asyncio.create_task(self._run())
        logger.info(f"Connectivity monitor started: {type(self).__name__}")

    async def stop(self) -> None:
        """Stop monitoring. Undelivered events are dropped."""
        self._running = False

        for task in (self._monitor_task, self._delivery_task):
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        self._monitor_task = None
        self._delivery_task = None
        self._observer = None
        self._events = asyncio.Queue()
        self._last_published = None
        logger.info("Connectivity monitor stopped")

    def _publish(self, reachable: bool) -> None:
        """Queue a state for delivery unless it repeats the last one."""
        if reachable == self._last_published:
            return
        self._last_published = reachable
        self._events.put_nowait(reachable)
        logger.info(f"Reachability changed: {'online' if reachable else 'offline'}")

    async def wait_delivered(self) -> None:
        """Wait until every published state has been handled by the observer."""
        await self._events.join()

    async def _delivery_loop(self) -> None:
        while True:
            reachable = await self._events.get()
            try:
                if self._observer is not None:
                    await self._observer(reachable)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Connectivity observer failed")
            finally:
                self._events.task_done()

    @abstractmethod
    async def _run(self) -> None:
        """Produce observations for the monitor's lifetime."""


class ManualConnectivityMonitor(ConnectivityMonitor):
    """Monitor driven by the host.

    Embedders that already receive native reachability notifications
    forward them with ``set_reachable``. Tests use it to script
    transitions.
    """

    def __init__(self, initial: bool | None = None) -> None:
        super().__init__()
        self._initial = initial

    async def start(self, observer: ConnectivityObserver) -> None:
        """Start delivering, queueing the initial state before returning.

        The initial state is skipped if the host already reported one.
        """
        await super().start(observer)
        if self._initial is not None and self._last_published is None:
            self._publish(self._initial)

    def set_reachable(self, reachable: bool) -> None:
        self._publish(reachable)

    async def _run(self) -> None:
        return None


def dns_probe(host: str = DEFAULT_PROBE_HOST, timeout: float = 5.0) -> ReachabilityProbe:
    """Build a probe that treats successful DNS resolution of host as online."""

    async def probe() -> bool:
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                loop.getaddrinfo(host, 443, type=socket.SOCK_STREAM),
                timeout=timeout,
            )
            return True
        except (OSError, TimeoutError):
            return False

    return probe


class ProbeConnectivityMonitor(ConnectivityMonitor):
    """Monitor that runs a reachability probe on its own task.

    The first probe runs immediately so the initial state is delivered
    promptly after start.
    """

    def __init__(
        self,
        probe: ReachabilityProbe | None = None,
        interval: float = 5.0,
    ) -> None:
        super().__init__()
        self.probe = probe or dns_probe()
        self.interval = interval

    async def _run(self) -> None:
        while self._running:
            try:
                reachable = await self.probe()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Reachability probe failed: {e}")
                reachable = False
            self._publish(reachable)
            await asyncio.sleep(self.interval)
