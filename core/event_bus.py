"""Publish/subscribe bus relaying host hooks to the mook registry.

Hosts translate their own hook system into :class:`HookTopic` publications.
Subscribers may be plain callables or coroutine functions; coroutine results
are scheduled on the running loop and can be awaited with :meth:`EventBus.drain`.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Callable, Dict, Mapping, MutableMapping, Optional, Sequence, Set

from core.events.topics import HookTopic
from utils.logger import get_logger

__all__ = ["EventBus", "Subscriber", "Topic", "TopicCounter"]

logger = get_logger(__name__)

Topic = str | HookTopic
Subscriber = Callable[..., Any]


class TopicCounter:
    """Count publications of one topic until enough have been observed.

    Use as a context manager so the subscription is always released::

        with bus.counter(HookTopic.ROLL_COMPLETED) as rolls:
            ...
            await rolls.wait_for(2, timeout=30)
    """

    def __init__(self, bus: "EventBus", topic: Topic, predicate: Optional[Callable[..., bool]] = None) -> None:
        self._bus = bus
        self._topic = topic
        self._predicate = predicate
        self._changed = asyncio.Event()
        self.count = 0

    def __enter__(self) -> "TopicCounter":
        self._bus.subscribe(self._topic, self._on_publish)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._bus.unsubscribe(self._topic, self._on_publish)

    def _on_publish(self, **payload: Any) -> None:
        if self._predicate is not None and not self._predicate(**payload):
            return
        self.count += 1
        self._changed.set()

    async def wait_for(self, expected: int, timeout: Optional[float] = None) -> bool:
        """Wait until ``expected`` publications were seen; ``False`` on timeout."""

        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self.count < expected:
            self._changed.clear()
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                return False
            try:
                await asyncio.wait_for(self._changed.wait(), remaining)
            except asyncio.TimeoutError:
                return self.count >= expected
        return True


class EventBus:
    """Simple in-memory event dispatcher.

    The bus accepts :class:`~core.events.topics.HookTopic` members or plain
    strings.  Payloads can be supplied either as a mapping argument
    (``publish(topic, payload)``) or as keyword arguments
    (``publish(topic, foo=1)``); both forms may be combined, with keyword values
    taking precedence.
    """

    def __init__(self) -> None:
        self._subscribers: MutableMapping[str, list[Subscriber]] = defaultdict(list)
        self._pending: Set[asyncio.Future] = set()

    @staticmethod
    def _normalise_topic(topic: Topic) -> str:
        return topic.value if isinstance(topic, HookTopic) else str(topic)

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------
    def subscribe(self, topic: Topic, callback: Subscriber) -> None:
        """Register ``callback`` for ``topic`` events."""

        key = self._normalise_topic(topic)
        if callback not in self._subscribers[key]:
            self._subscribers[key].append(callback)

    def unsubscribe(self, topic: Topic, callback: Subscriber) -> None:
        """Remove a previously registered subscription if present."""

        key = self._normalise_topic(topic)
        callbacks = self._subscribers.get(key)
        if not callbacks or callback not in callbacks:
            return

        callbacks.remove(callback)
        if not callbacks:
            del self._subscribers[key]

    def counter(self, topic: Topic, predicate: Optional[Callable[..., bool]] = None) -> TopicCounter:
        """Return a :class:`TopicCounter` bound to ``topic``."""

        return TopicCounter(self, topic, predicate)

    # ------------------------------------------------------------------
    # Publishing helpers
    # ------------------------------------------------------------------
    def publish(
        self,
        topic: Topic,
        payload: Mapping[str, Any] | None = None,
        /,
        **kwargs: Any,
    ) -> None:
        """Publish ``topic`` with the provided payload.

        Coroutines returned by subscribers are scheduled as tasks; publishing
        a topic with async subscribers therefore requires a running loop.
        """

        key = self._normalise_topic(topic)
        merged_payload: Dict[str, Any] = dict(payload or {})
        if kwargs:
            merged_payload.update(kwargs)

        for callback in list(self._subscribers.get(key, ())):
            result = callback(**merged_payload)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Await every task scheduled by async subscribers so far."""

        while self._pending:
            pending = list(self._pending)
            results = await asyncio.gather(*pending, return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException):
                    logger.error("Async subscriber failed: %r", result)

    # ------------------------------------------------------------------
    # Introspection helpers (mostly for tests/debug)
    # ------------------------------------------------------------------
    def clear(self) -> None:
        """Remove all subscriptions from the bus."""

        self._subscribers.clear()

    def get_subscribers(self, topic: Topic) -> Sequence[Subscriber]:
        """Return all subscribers registered for ``topic``."""

        key = self._normalise_topic(topic)
        return tuple(self._subscribers.get(key, ()))
