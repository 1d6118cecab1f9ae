"""Topic -> handler mapping used by the consumer."""

import logging
import threading
from typing import Any, Awaitable, Callable, Union

from meupaozin.messaging.models import ConsumedMessage

logger = logging.getLogger(__name__)

Handler = Callable[[ConsumedMessage], Union[Awaitable[Any], Any]]


class TopicHandlerRegistry:
    """One handler per topic. Registering a topic again replaces the previous handler.

    The consumer subscribes to `topics()` when it starts, so handlers must be
    registered before `EventConsumer.start()`. Later registrations are picked
    up by `lookup` but do not change the subscription.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}
        self._lock = threading.Lock()

    def register(self, topic: str, handler: Handler) -> None:
        if not isinstance(topic, str) or not topic.strip():
            raise ValueError("topic must be a non-empty string")
        if not callable(handler):
            raise ValueError(f"handler for {topic} is not callable")
        with self._lock:
            previous = self._handlers.get(topic)
            self._handlers[topic] = handler
        if previous is not None and previous is not handler:
            logger.info(
                "Handler for %s replaced: %s -> %s",
                topic,
                getattr(previous, "__qualname__", repr(previous)),
                getattr(handler, "__qualname__", repr(handler)),
            )
        else:
            logger.debug("Handler registered for %s", topic)

    def unregister(self, topic: str) -> bool:
        with self._lock:
            return self._handlers.pop(topic, None) is not None

    def lookup(self, topic: str) -> Handler | None:
        with self._lock:
            return self._handlers.get(topic)

    def topics(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._handlers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)

    def __contains__(self, topic: object) -> bool:
        with self._lock:
            return topic in self._handlers
