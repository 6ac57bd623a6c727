"""Outbound contract between the simulation and transport adapters.

The scheduler calls :meth:`BroadcastPort.on_location_update` once per
tracker per tick, synchronously. Implementations must return quickly and
must not raise; :class:`FanoutBroadcaster` is the in-process
implementation transport adapters subscribe to.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from typing import Protocol

from fleetsim.models.location import LocationData
from fleetsim.models.state import InitialState
from fleetsim.state.events import BroadcastMessage

_logger = logging.getLogger(__name__)

LocationListener = Callable[[LocationData], None]


class BroadcastPort(Protocol):
    """Sink for location changes."""

    def on_location_update(self, location: LocationData) -> None:
        ...


class NullBroadcaster:
    """Drops every update."""

    def on_location_update(self, location: LocationData) -> None:
        return None


class Subscription:
    """A subscriber's bounded mailbox.

    When the mailbox is full the oldest message is discarded to make room,
    so a subscriber that stops reading only loses its own backlog.
    """

    def __init__(self, subscription_id: int, maxsize: int) -> None:
        self.id = subscription_id
        self.queue: asyncio.Queue[BroadcastMessage] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self.closed = False

    def deliver(self, message: BroadcastMessage) -> None:
        if self.closed:
            return
        while True:
            try:
                self.queue.put_nowait(message)
                return
            except asyncio.QueueFull:
                try:
                    self.queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
                self.dropped += 1

    async def get(self, timeout: float | None = None) -> BroadcastMessage:
        """Wait for the next message (``TimeoutError`` after *timeout* seconds)."""
        return await asyncio.wait_for(self.queue.get(), timeout)

    def drain(self) -> list[BroadcastMessage]:
        """Return every queued message without waiting."""
        messages: list[BroadcastMessage] = []
        while True:
            try:
                messages.append(self.queue.get_nowait())
            except asyncio.QueueEmpty:
                return messages


class _ListenerWorker:
    """Runs one listener in a worker thread, one update at a time, in order.

    Updates wait in a bounded mailbox that drops the oldest entry when full,
    so a slow or blocking listener only delays itself.
    """

    def __init__(self, listener: LocationListener, maxsize: int, slow_threshold: float) -> None:
        self.listener = listener
        self.queue: asyncio.Queue[LocationData] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self._slow_threshold = slow_threshold
        self._task: asyncio.Task[None] | None = None

    def deliver(self, location: LocationData) -> None:
        while True:
            try:
                self.queue.put_nowait(location)
                break
            except asyncio.QueueFull:
                try:
                    self.queue.get_nowait()
                    self.queue.task_done()
                except asyncio.QueueEmpty:
                    pass
                self.dropped += 1
        self._ensure_started()

    def _ensure_started(self) -> None:
        if self._task is not None and not self._task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Picked up by the next delivery or flush made from inside a loop.
            return
        self._task = loop.create_task(self._run(), name="fleetsim-listener")

    async def _run(self) -> None:
        while True:
            location = await self.queue.get()
            loop = asyncio.get_running_loop()
            started = time.monotonic()
            try:
                await loop.run_in_executor(None, self.listener, location)
            except Exception:
                _logger.warning("Location listener %r failed", self.listener, exc_info=True)
            else:
                elapsed = time.monotonic() - started
                if elapsed > self._slow_threshold:
                    _logger.warning("Location listener %r took %.3fs", self.listener, elapsed)
            finally:
                self.queue.task_done()

    async def join(self) -> None:
        self._ensure_started()
        await self.queue.join()

    def cancel(self) -> asyncio.Task[None] | None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
        return task


class FanoutBroadcaster:
    """Delivers each update to every live subscription and listener.

    Neither kind of subscriber can hold up the caller. Subscriptions receive
    messages through a bounded queue. Listeners are plain callables run in a
    worker thread behind their own bounded queue; a listener that raises is
    logged and keeps receiving, and one that takes longer than
    *slow_listener_threshold* seconds per update is reported.
    """

    def __init__(self, *, default_maxsize: int = 256, slow_listener_threshold: float = 0.05) -> None:
        self._default_maxsize = default_maxsize
        self._slow_listener_threshold = slow_listener_threshold
        self._subscriptions: dict[int, Subscription] = {}
        self._listeners: list[_ListenerWorker] = []
        self._next_id = 1

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, maxsize: int | None = None) -> Subscription:
        subscription = Subscription(self._next_id, maxsize or self._default_maxsize)
        self._next_id += 1
        self._subscriptions[subscription.id] = subscription
        _logger.debug("Subscriber %d joined", subscription.id)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.closed = True
        if self._subscriptions.pop(subscription.id, None) is not None:
            _logger.debug("Subscriber %d left (dropped=%d)", subscription.id, subscription.dropped)

    def add_listener(self, listener: LocationListener, maxsize: int | None = None) -> Callable[[], None]:
        """Register *listener*; returns a callable that removes it."""
        worker = _ListenerWorker(listener, maxsize or self._default_maxsize, self._slow_listener_threshold)
        self._listeners.append(worker)

        def _remove() -> None:
            if worker in self._listeners:
                self._listeners.remove(worker)
                worker.cancel()

        return _remove

    def send_initial_state(self, subscription: Subscription, state: InitialState) -> None:
        """Queue a snapshot for one subscriber (on join or on explicit re-request)."""
        subscription.deliver(BroadcastMessage.initial_state(state))

    def on_location_update(self, location: LocationData) -> None:
        message = BroadcastMessage.location_update(location)
        for subscription in list(self._subscriptions.values()):
            subscription.deliver(message)
        for worker in list(self._listeners):
            worker.deliver(location)

    async def flush(self) -> None:
        """Wait until every listener has handled all updates queued so far."""
        for worker in list(self._listeners):
            await worker.join()

    async def aclose(self) -> None:
        """Stop all listener workers; queued updates are discarded."""
        workers, self._listeners = self._listeners, []
        tasks: list[asyncio.Task[None]] = []
        for worker in workers:
            task = worker.cancel()
            if task is not None:
                tasks.append(task)
        await asyncio.gather(*tasks, return_exceptions=True)


class MultiBroadcaster:
    """Forwards updates to several ports; a failing port does not affect the others."""

    def __init__(self, ports: Iterable[BroadcastPort]) -> None:
        self._ports = list(ports)

    def on_location_update(self, location: LocationData) -> None:
        for port in self._ports:
            try:
                port.on_location_update(location)
            except Exception:
                _logger.warning("Broadcast port %r failed", port, exc_info=True)
