"""Recurring website checks, one background task per monitor identifier."""

import asyncio
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from core.capabilities import AutomationDriver, PageAnalysis
from core.errors import MonitorAlreadyExists, MonitorNotFound, describe_error
from utils import log, config


class MonitorEvent(BaseModel):
    """One observation of a monitored URL."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    monitor_id: str
    timestamp: str
    url: str
    status: Literal["up", "down"]
    data: Optional[Dict[str, Any]] = None
    metrics: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class MonitorHandle:
    """
    Caller-facing side of an active monitor.

    Events are pushed onto ``events`` (bounded; the oldest event is dropped
    when a consumer falls behind) and the most recent ones are kept in
    ``history`` for polling consumers.
    """

    def __init__(self, monitor_id: str, url: str, interval: float, queue_size: int, history_size: int):
        self.monitor_id = monitor_id
        self.url = url
        self.interval = interval
        self.events: "asyncio.Queue[MonitorEvent]" = asyncio.Queue(maxsize=queue_size)
        self.history: Deque[MonitorEvent] = deque(maxlen=history_size)
        self.started_at = datetime.now().isoformat()
        self.checks = 0
        self.skipped_ticks = 0
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def publish(self, event: MonitorEvent):
        self.checks += 1
        self.history.append(event)
        if self.events.full():
            self.events.get_nowait()
        self.events.put_nowait(event)

    async def next_event(self, timeout: Optional[float] = None) -> MonitorEvent:
        """Wait for the next event pushed by this monitor."""
        if timeout is None:
            return await self.events.get()
        return await asyncio.wait_for(self.events.get(), timeout=timeout)

    def last_event(self) -> Optional[MonitorEvent]:
        return self.history[-1] if self.history else None

    def summary(self) -> Dict[str, Any]:
        last = self.last_event()
        return {
            "monitorId": self.monitor_id,
            "url": self.url,
            "interval": self.interval,
            "startedAt": self.started_at,
            "checks": self.checks,
            "skippedTicks": self.skipped_ticks,
            "lastStatus": last.status if last else None,
        }


class MonitorSupervisor:
    """Owns the monitor registry; the only component that starts or stops monitors."""

    def __init__(
        self,
        driver: AutomationDriver,
        analyzer: PageAnalysis,
        lock: Optional[asyncio.Lock] = None,
        queue_size: Optional[int] = None,
        history_size: Optional[int] = None
    ):
        self.driver = driver
        self.analyzer = analyzer
        self.lock = lock or asyncio.Lock()
        self.queue_size = queue_size or config.monitor_queue_size
        self.history_size = history_size or config.monitor_history_size
        self.monitors: Dict[str, MonitorHandle] = {}

    async def start(self, monitor_id: str, url: str, interval: Optional[float] = None) -> MonitorHandle:
        """
        Start monitoring a URL.

        Runs one check before returning, then checks again every
        ``interval`` seconds until stopped.

        Args:
            monitor_id: Caller-chosen unique identifier
            url: URL to check
            interval: Seconds between checks

        Returns:
            Handle carrying the monitor's event queue
        """
        interval = config.monitor_interval if interval is None else interval
        if interval <= 0:
            raise ValueError(f"Monitor interval must be positive, got {interval}")

        # Check and insert with no await in between
        if monitor_id in self.monitors:
            raise MonitorAlreadyExists(monitor_id)
        handle = MonitorHandle(monitor_id, url, interval, self.queue_size, self.history_size)
        self.monitors[monitor_id] = handle

        log.info(f"Starting website monitoring: {monitor_id} -> {url} every {interval}s")
        await self.check(handle, initial=True)

        if not handle.stopped:
            handle._task = asyncio.create_task(self._schedule(handle), name=f"monitor:{monitor_id}")
        return handle

    async def stop(self, monitor_id: str):
        """
        Stop a monitor and remove it from the registry.

        Returns once any in-flight check has finished.
        """
        handle = self.monitors.pop(monitor_id, None)
        if handle is None:
            raise MonitorNotFound(monitor_id)

        handle._stop.set()
        if handle._task is not None:
            await handle._task
        log.info(f"Stopped monitoring: {monitor_id} ({handle.url})")

    async def shutdown(self):
        """Stop every active monitor."""
        for monitor_id in list(self.monitors.keys()):
            await self.stop(monitor_id)

    def get(self, monitor_id: str) -> MonitorHandle:
        if monitor_id not in self.monitors:
            raise MonitorNotFound(monitor_id)
        return self.monitors[monitor_id]

    def ids(self) -> List[str]:
        return list(self.monitors.keys())

    async def check(self, handle: MonitorHandle, initial: bool = False) -> Optional[MonitorEvent]:
        """
        Run one check and publish its event; failures become ``down`` events.

        A scheduled check that was still waiting for the session when the
        monitor was stopped is dropped and returns None.
        """
        async with self.lock:
            if handle.stopped and not initial:
                log.debug(f"Monitor {handle.monitor_id}: stopped while waiting, check dropped")
                return None
            timestamp = datetime.now().isoformat()
            try:
                await self.driver.navigate(handle.url)
                data = await self.driver.extract_page_data()
                metrics = await self.analyzer.get_performance_metrics()
                event = MonitorEvent(
                    monitor_id=handle.monitor_id,
                    timestamp=timestamp,
                    url=handle.url,
                    status="up",
                    data=data,
                    metrics=metrics
                )
            except Exception as e:
                reason = describe_error(e)
                log.warning(f"Monitor {handle.monitor_id}: {handle.url} is down ({reason})")
                event = MonitorEvent(
                    monitor_id=handle.monitor_id,
                    timestamp=timestamp,
                    url=handle.url,
                    status="down",
                    error=reason
                )

        log.debug(f"Monitor {handle.monitor_id}: {event.status}")
        handle.publish(event)
        return event

    async def _schedule(self, handle: MonitorHandle):
        """Fixed-rate loop; ticks that land while a check is running are skipped."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + handle.interval

        while not handle.stopped:
            delay = next_tick - loop.time()
            if delay > 0:
                try:
                    await asyncio.wait_for(handle._stop.wait(), timeout=delay)
                    break
                except asyncio.TimeoutError:
                    pass

            if await self.check(handle) is None:
                break

            next_tick += handle.interval
            now = loop.time()
            if now >= next_tick:
                missed = int((now - next_tick) // handle.interval) + 1
                handle.skipped_ticks += missed
                next_tick += missed * handle.interval
                log.warning(f"Monitor {handle.monitor_id}: check overran its interval, skipped {missed} tick(s)")
