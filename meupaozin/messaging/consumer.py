"""Receive loop: pull messages for registered topics and dispatch each to its handler.

A malformed message, an unknown topic or a failing handler affects only that
message. The loop keeps going until `stop()`; it reconnects through the
connection manager after transport errors.
"""

import asyncio
import inspect
import json
import logging
from typing import Any, Iterable, Mapping

from meupaozin.correlation import correlation_id_var
from meupaozin.messaging.connection import BrokerConnectionManager
from meupaozin.messaging.models import ClientRole, ConsumedMessage, ConsumerState, DispatchOutcome
from meupaozin.messaging.registry import TopicHandlerRegistry

logger = logging.getLogger(__name__)


class PoisonMessageError(ValueError):
    """Message bytes that do not decode to a JSON object."""


def decode_value(value: bytes | str | None) -> dict[str, Any]:
    if value is None:
        raise PoisonMessageError("empty message value")
    try:
        text = value.decode("utf-8") if isinstance(value, (bytes, bytearray)) else value
        payload = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise PoisonMessageError(str(e)) from e
    if not isinstance(payload, dict):
        raise PoisonMessageError(f"expected JSON object, got {type(payload).__name__}")
    return payload


def _text(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return str(value)


def decode_headers(headers: Mapping[str, Any] | Iterable[tuple[str, Any]] | None) -> dict[str, str]:
    if not headers:
        return {}
    items = headers.items() if isinstance(headers, Mapping) else headers
    return {str(k): _text(v) or "" for k, v in items}


class EventConsumer:
    """Consumer loop running as an asyncio task.

    States: stopped -> starting -> running -> stopping -> stopped.
    """

    def __init__(
        self,
        connections: BrokerConnectionManager,
        registry: TopicHandlerRegistry,
        poll_timeout_ms: int = 1000,
        max_records: int = 50,
        reconnect_interval: float = 5.0,
    ) -> None:
        self._connections = connections
        self._registry = registry
        self._poll_timeout_ms = poll_timeout_ms
        self._max_records = max_records
        self._reconnect_interval = reconnect_interval
        self._state = ConsumerState.STOPPED
        self._task: asyncio.Task[None] | None = None
        self._stop_requested: asyncio.Event | None = None
        self._running: asyncio.Event | None = None
        self._subscribed: frozenset[str] = frozenset()
        self._stats = {"dispatched": 0, "poison": 0, "unhandled": 0, "failed": 0}

    @property
    def state(self) -> ConsumerState:
        return self._state

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    @property
    def subscribed_topics(self) -> frozenset[str]:
        return self._subscribed

    def _set_state(self, state: ConsumerState) -> None:
        if state is not self._state:
            logger.info("EventConsumer: %s -> %s", self._state.value, state.value)
            self._state = state

    async def start(self) -> None:
        """Spawn the receive task. Returns immediately; see wait_until_running."""
        if self._state is not ConsumerState.STOPPED:
            logger.warning("EventConsumer.start ignored in state %s", self._state.value)
            return
        self._set_state(ConsumerState.STARTING)
        self._stop_requested = asyncio.Event()
        self._running = asyncio.Event()
        self._task = asyncio.create_task(self._receive_loop(), name="event-consumer")

    async def wait_until_running(self, timeout: float | None = None) -> bool:
        if self._running is None:
            return False
        try:
            await asyncio.wait_for(self._running.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def stop(self) -> None:
        """Let the in-flight message finish, end the loop, disconnect the consumer role."""
        if self._state in (ConsumerState.STOPPED, ConsumerState.STOPPING):
            return
        self._set_state(ConsumerState.STOPPING)
        if self._stop_requested is not None:
            self._stop_requested.set()
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.exception("EventConsumer loop ended with error: %s", e)
            self._task = None
        await self._connections.disconnect(ClientRole.CONSUMER)
        self._subscribed = frozenset()
        self._set_state(ConsumerState.STOPPED)

    def _should_stop(self) -> bool:
        return self._stop_requested is None or self._stop_requested.is_set()

    async def _idle(self, seconds: float) -> None:
        """Sleep, waking early when stop is requested."""
        if self._stop_requested is None:
            return
        try:
            await asyncio.wait_for(self._stop_requested.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def _mark_running(self) -> None:
        if self._state is ConsumerState.STARTING:
            self._set_state(ConsumerState.RUNNING)
        if self._running is not None:
            self._running.set()

    async def _ensure_subscribed(self) -> Any | None:
        client = self._connections.client(ClientRole.CONSUMER)
        if client is not None and self._subscribed:
            return client
        if client is None:
            if not await self._connections.connect(ClientRole.CONSUMER):
                return None
            client = self._connections.client(ClientRole.CONSUMER)
            if client is None:
                return None
        topics = self._registry.topics()
        if not topics:
            return client
        try:
            client.subscribe(topics=sorted(topics))
        except Exception as e:
            logger.error("EventConsumer subscribe failed: %s", e)
            await self._connections.report_failure(ClientRole.CONSUMER, e)
            return None
        self._subscribed = topics
        logger.info("EventConsumer subscribed to %d topic(s): %s", len(topics), ", ".join(sorted(topics)))
        return client

    async def _receive_loop(self) -> None:
        while not self._should_stop():
            client = await self._ensure_subscribed()
            if client is None:
                logger.warning(
                    "EventConsumer: broker unavailable, retrying in %.1fs", self._reconnect_interval
                )
                await self._idle(self._reconnect_interval)
                continue
            self._mark_running()
            if not self._subscribed:
                logger.warning("EventConsumer: no handlers registered; nothing to consume")
                await self._idle(self._reconnect_interval)
                continue
            try:
                batches = await client.getmany(
                    timeout_ms=self._poll_timeout_ms, max_records=self._max_records
                )
            except Exception as e:
                logger.error("EventConsumer fetch failed: %s", e)
                await self._connections.report_failure(ClientRole.CONSUMER, e)
                self._subscribed = frozenset()
                await self._idle(self._reconnect_interval)
                continue
            await self._process_batches(client, batches)

    async def _process_batches(self, client: Any, batches: Mapping[Any, list[Any]]) -> None:
        items = list(batches.items())
        for index, (tp, records) in enumerate(items):
            for record in records:
                if self._should_stop():
                    # rewind every fetched partition so unprocessed records are not committed
                    client.seek(tp, record.offset)
                    for later_tp, later_records in items[index + 1 :]:
                        if later_records:
                            client.seek(later_tp, later_records[0].offset)
                    return
                try:
                    await self.dispatch(
                        record.topic,
                        record.value,
                        key=record.key,
                        headers=record.headers,
                        partition=record.partition,
                        offset=record.offset,
                    )
                except Exception as e:
                    logger.exception(
                        "Unexpected error on %s (partition=%s offset=%s): %s",
                        record.topic,
                        record.partition,
                        record.offset,
                        e,
                    )

    async def dispatch(
        self,
        topic: str,
        value: bytes | str | None,
        key: bytes | str | None = None,
        headers: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
        partition: int | None = None,
        offset: int | None = None,
    ) -> DispatchOutcome:
        """Decode one message and run its handler. Never raises for message or handler errors."""
        try:
            payload = decode_value(value)
        except PoisonMessageError as e:
            self._stats["poison"] += 1
            logger.warning(
                "Skipping malformed message on %s (partition=%s offset=%s): %s",
                topic,
                partition,
                offset,
                e,
            )
            return DispatchOutcome.POISON

        handler = self._registry.lookup(topic)
        if handler is None:
            self._stats["unhandled"] += 1
            logger.debug("No handler for topic %s; message skipped", topic)
            return DispatchOutcome.UNHANDLED_TOPIC

        message = ConsumedMessage(
            topic=topic,
            payload=payload,
            key=_text(key),
            headers=decode_headers(headers),
            partition=partition,
            offset=offset,
        )
        token = correlation_id_var.set(message.headers.get("x-correlation-id") or "-")
        try:
            result = handler(message)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._stats["failed"] += 1
            logger.exception("Handler for %s failed (offset=%s): %s", topic, offset, e)
            return DispatchOutcome.HANDLER_FAILED
        finally:
            correlation_id_var.reset(token)
        self._stats["dispatched"] += 1
        return DispatchOutcome.DISPATCHED
