"""Tests for EventConsumer: dispatch isolation, receive loop, state machine."""

import asyncio
import json
import logging

import pytest

from meupaozin.correlation import correlation_id_var
from meupaozin.messaging import (
    ClientRole,
    ConsumedMessage,
    ConsumerState,
    DispatchOutcome,
    EventConsumer,
    TopicHandlerRegistry,
)


@pytest.fixture
def registry() -> TopicHandlerRegistry:
    return TopicHandlerRegistry()


@pytest.fixture
async def consumer(connections, registry: TopicHandlerRegistry) -> EventConsumer:
    c = EventConsumer(connections, registry, poll_timeout_ms=20, max_records=10, reconnect_interval=0.05)
    yield c
    await c.stop()


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class TestDispatch:
    """Per-message handling without the receive loop."""

    @pytest.mark.asyncio
    async def test_dispatch_to_async_handler(self, consumer: EventConsumer, registry) -> None:
        received: list[ConsumedMessage] = []

        async def handler(message: ConsumedMessage) -> None:
            received.append(message)

        registry.register("pedidos.created", handler)
        outcome = await consumer.dispatch(
            "pedidos.created",
            b'{"eventType": "PEDIDO_CREATED", "pedidoId": 5}',
            key=b"pedido-5",
            headers=[("event-type", b"PEDIDO_CREATED")],
            partition=0,
            offset=42,
        )
        assert outcome is DispatchOutcome.DISPATCHED
        message = received[0]
        assert message.payload["pedidoId"] == 5
        assert message.key == "pedido-5"
        assert message.headers == {"event-type": "PEDIDO_CREATED"}
        assert message.event_type == "PEDIDO_CREATED"
        assert message.offset == 42

    @pytest.mark.asyncio
    async def test_dispatch_to_sync_handler(self, consumer: EventConsumer, registry) -> None:
        seen = []
        registry.register("t", lambda m: seen.append(m.payload))
        assert await consumer.dispatch("t", '{"a": 1}') is DispatchOutcome.DISPATCHED
        assert seen == [{"a": 1}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [b"{not json", b"\xff\xfe", b"[1, 2]", b'"text"', None])
    async def test_poison_message_is_skipped(self, consumer: EventConsumer, registry, value, caplog) -> None:
        called = []
        registry.register("t", lambda m: called.append(m))
        assert await consumer.dispatch("t", value) is DispatchOutcome.POISON
        assert called == []
        assert consumer.stats["poison"] == 1
        assert "malformed" in caplog.text

    @pytest.mark.asyncio
    async def test_deeply_nested_value_is_poison(self, consumer: EventConsumer, registry) -> None:
        called = []
        registry.register("t", lambda m: called.append(m))
        deep = b"[" * 200000 + b"]" * 200000
        assert await consumer.dispatch("t", deep) is DispatchOutcome.POISON
        assert called == []
        assert consumer.stats["poison"] == 1

    @pytest.mark.asyncio
    async def test_unknown_topic_is_skipped(self, consumer: EventConsumer) -> None:
        assert await consumer.dispatch("nobody.listens", b"{}") is DispatchOutcome.UNHANDLED_TOPIC
        assert consumer.stats["unhandled"] == 1

    @pytest.mark.asyncio
    async def test_handler_failure_is_isolated(self, consumer: EventConsumer, registry, caplog) -> None:
        async def boom(message: ConsumedMessage) -> None:
            raise RuntimeError("handler exploded")

        delivered = []
        registry.register("bad", boom)
        registry.register("good", lambda m: delivered.append(m.payload))

        with caplog.at_level(logging.ERROR):
            assert await consumer.dispatch("bad", b"{}") is DispatchOutcome.HANDLER_FAILED
        assert await consumer.dispatch("good", b'{"ok": true}') is DispatchOutcome.DISPATCHED
        assert delivered == [{"ok": True}]
        assert consumer.stats["failed"] == 1
        assert "handler exploded" in caplog.text

    @pytest.mark.asyncio
    async def test_replacement_handler_only(self, consumer: EventConsumer, registry) -> None:
        calls = []
        registry.register("t", lambda m: calls.append("h1"))
        registry.register("t", lambda m: calls.append("h2"))
        await consumer.dispatch("t", b"{}")
        assert calls == ["h2"]

    @pytest.mark.asyncio
    async def test_correlation_id_from_headers_during_handler(self, consumer: EventConsumer, registry) -> None:
        seen = []
        registry.register("t", lambda m: seen.append(correlation_id_var.get()))
        await consumer.dispatch("t", b"{}", headers=[("x-correlation-id", b"abc")])
        assert seen == ["abc"]
        assert correlation_id_var.get() == "-"


class TestReceiveLoop:
    """start / stop and the background task."""

    @pytest.mark.asyncio
    async def test_start_subscribes_to_registered_topics(
        self, consumer: EventConsumer, registry, broker
    ) -> None:
        registry.register("a.topic", lambda m: None)
        registry.register("b.topic", lambda m: None)
        assert consumer.state is ConsumerState.STOPPED
        await consumer.start()
        assert await consumer.wait_until_running(timeout=2.0)
        assert consumer.state is ConsumerState.RUNNING
        assert broker.consumers[0].subscription == ["a.topic", "b.topic"]
        assert consumer.subscribed_topics == frozenset({"a.topic", "b.topic"})

    @pytest.mark.asyncio
    async def test_poison_then_valid_message(self, consumer: EventConsumer, registry, broker) -> None:
        received = []
        registry.register("t1", lambda m: received.append(("t1", m.payload)))
        registry.register("t2", lambda m: received.append(("t2", m.payload)))
        broker.deliver("t1", b"{{{ not json")
        broker.deliver("t2", {"n": 2})

        await consumer.start()
        await _wait_for(lambda: received)
        assert received == [("t2", {"n": 2})]
        assert consumer.stats["poison"] == 1

    @pytest.mark.asyncio
    async def test_deeply_nested_message_does_not_end_loop(
        self, consumer: EventConsumer, registry, broker
    ) -> None:
        received = []
        registry.register("t1", lambda m: received.append(("t1", m.payload)))
        registry.register("t2", lambda m: received.append(("t2", m.payload)))
        broker.deliver("t1", b"[" * 200000 + b"]" * 200000)
        broker.deliver("t2", {"n": 2})

        await consumer.start()
        await _wait_for(lambda: received)
        assert received == [("t2", {"n": 2})]
        assert consumer.state is ConsumerState.RUNNING

    @pytest.mark.asyncio
    async def test_unexpected_dispatch_error_does_not_end_loop(
        self, consumer: EventConsumer, registry, broker, monkeypatch, caplog
    ) -> None:
        received = []
        registry.register("t", lambda m: received.append(m.payload))
        original = consumer.dispatch

        async def flaky_dispatch(topic, value, **kwargs):
            if kwargs.get("offset") == 0:
                raise RuntimeError("decoder blew up")
            return await original(topic, value, **kwargs)

        monkeypatch.setattr(consumer, "dispatch", flaky_dispatch)
        broker.deliver("t", {"n": 1})
        broker.deliver("t", {"n": 2})

        with caplog.at_level(logging.ERROR):
            await consumer.start()
            await _wait_for(lambda: received)
        assert received == [{"n": 2}]
        assert "decoder blew up" in caplog.text

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_other_topic(
        self, consumer: EventConsumer, registry, broker
    ) -> None:
        received = []

        def always_fails(message: ConsumedMessage) -> None:
            raise ValueError("nope")

        registry.register("t", always_fails)
        registry.register("t-prime", lambda m: received.append(m.payload))
        broker.deliver("t", {"n": 1})
        broker.deliver("t-prime", {"n": 2})

        await consumer.start()
        await _wait_for(lambda: received)
        assert received == [{"n": 2}]
        assert consumer.stats == {"dispatched": 1, "poison": 0, "unhandled": 0, "failed": 1}

    @pytest.mark.asyncio
    async def test_stop_finishes_in_flight_message(self, consumer: EventConsumer, registry, broker, connections) -> None:
        started = asyncio.Event()
        finished = []

        async def slow(message: ConsumedMessage) -> None:
            started.set()
            await asyncio.sleep(0.1)
            finished.append(message.payload["n"])

        registry.register("slow", slow)
        broker.deliver("slow", {"n": 1})
        broker.deliver("slow", {"n": 2})

        await consumer.start()
        await asyncio.wait_for(started.wait(), timeout=2.0)
        await consumer.stop()

        assert finished == [1]
        assert consumer.state is ConsumerState.STOPPED
        assert not connections.is_connected(ClientRole.CONSUMER)
        # second record rewound so its offset is not committed as consumed
        tp, offset = broker.consumers[0].seeks[0]
        assert offset == 1

    @pytest.mark.asyncio
    async def test_stop_rewinds_every_fetched_partition(
        self, consumer: EventConsumer, registry, broker
    ) -> None:
        started = asyncio.Event()
        finished = []

        async def slow(message: ConsumedMessage) -> None:
            started.set()
            await asyncio.sleep(0.1)
            finished.append(message.payload["n"])

        registry.register("a", slow)
        registry.register("b", slow)
        broker.deliver("a", {"n": 1})
        broker.deliver("a", {"n": 2})
        broker.deliver("b", {"n": 3})

        await consumer.start()
        await asyncio.wait_for(started.wait(), timeout=2.0)
        await consumer.stop()

        assert finished == [1]
        seeks = {tp.topic: offset for tp, offset in broker.consumers[0].seeks}
        assert seeks == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_broker_down_keeps_retrying(self, consumer: EventConsumer, registry, broker) -> None:
        received = []
        registry.register("t", lambda m: received.append(m.payload))
        broker.down = True
        await consumer.start()
        assert not await consumer.wait_until_running(timeout=0.1)
        assert consumer.state is ConsumerState.STARTING

        broker.down = False
        broker.deliver("t", {"late": True})
        assert await consumer.wait_until_running(timeout=2.0)
        await _wait_for(lambda: received)
        assert received == [{"late": True}]

    @pytest.mark.asyncio
    async def test_fetch_error_reconnects(self, consumer: EventConsumer, registry, broker) -> None:
        received = []
        registry.register("t", lambda m: received.append(m.payload))
        await consumer.start()
        assert await consumer.wait_until_running(timeout=2.0)

        broker.fetch_error = ConnectionResetError("lost")
        broker.deliver("t", {"after": "reconnect"})
        await _wait_for(lambda: received)
        assert received == [{"after": "reconnect"}]
        assert len(broker.consumers) == 2
        assert broker.consumers[1].subscription == ["t"]

    @pytest.mark.asyncio
    async def test_start_twice_is_ignored(self, consumer: EventConsumer, registry) -> None:
        registry.register("t", lambda m: None)
        await consumer.start()
        await consumer.start()
        assert await consumer.wait_until_running(timeout=2.0)

    @pytest.mark.asyncio
    async def test_stop_when_stopped_is_noop(self, consumer: EventConsumer) -> None:
        await consumer.stop()
        assert consumer.state is ConsumerState.STOPPED

    @pytest.mark.asyncio
    async def test_idle_before_start_returns_immediately(self, consumer: EventConsumer) -> None:
        await asyncio.wait_for(consumer._idle(30.0), timeout=1.0)

    @pytest.mark.asyncio
    async def test_message_headers_round_trip_json(self, consumer: EventConsumer, registry, broker) -> None:
        received = []
        registry.register("t", lambda m: received.append(m))
        broker.deliver("t", json.dumps({"x": 1}).encode(), key=b"k-1", headers=[("h", b"v")])
        await consumer.start()
        await _wait_for(lambda: received)
        assert received[0].key == "k-1"
        assert received[0].headers == {"h": "v"}
