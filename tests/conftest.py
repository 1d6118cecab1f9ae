"""Shared fixtures: in-process stand-ins for the aiokafka producer and consumer."""

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from meupaozin.messaging import (
    BrokerConnectionManager,
    EventProducer,
    FallbackJournal,
    RetryPolicy,
)
from meupaozin.settings import reload_settings
from meupaozin.store import Database


class BrokerDown(ConnectionError):
    pass


@dataclass
class SentRecord:
    topic: str
    value: bytes
    key: bytes | None
    headers: list[tuple[str, bytes]]

    @property
    def payload(self) -> dict[str, Any]:
        return json.loads(self.value.decode("utf-8"))

    @property
    def header_map(self) -> dict[str, str]:
        return {k: v.decode("utf-8") for k, v in self.headers}


@dataclass
class RecordMetadata:
    topic: str
    partition: int
    offset: int


@dataclass
class ConsumerRecord:
    topic: str
    partition: int
    offset: int
    key: bytes | None
    value: bytes | None
    headers: list[tuple[str, bytes]] = field(default_factory=list)


@dataclass(frozen=True)
class TopicPartition:
    topic: str
    partition: int


class FakeProducer:
    def __init__(self, broker: "FakeBroker") -> None:
        self._broker = broker
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        if self._broker.down:
            raise BrokerDown("broker unreachable")
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def send_and_wait(self, topic, value=None, key=None, headers=None):
        if self._broker.send_delay:
            await asyncio.sleep(self._broker.send_delay)
        if self._broker.send_error is not None:
            raise self._broker.send_error
        self._broker.sent.append(SentRecord(topic, value, key, list(headers or [])))
        return RecordMetadata(topic, 0, len(self._broker.sent) - 1)


class FakeConsumer:
    def __init__(self, broker: "FakeBroker") -> None:
        self._broker = broker
        self.subscription: list[str] = []
        self.seeks: list[tuple[TopicPartition, int]] = []
        self.stopped = False

    async def start(self) -> None:
        if self._broker.down:
            raise BrokerDown("broker unreachable")

    async def stop(self) -> None:
        self.stopped = True

    def subscribe(self, topics) -> None:
        self.subscription = list(topics)

    def seek(self, tp, offset) -> None:
        self.seeks.append((tp, offset))

    async def getmany(self, timeout_ms=0, max_records=None):
        if self._broker.fetch_error is not None:
            error, self._broker.fetch_error = self._broker.fetch_error, None
            raise error
        if not self._broker.inbox:
            await asyncio.sleep(min(timeout_ms, 20) / 1000)
            return {}
        batch: dict[TopicPartition, list[ConsumerRecord]] = {}
        while self._broker.inbox and (max_records is None or sum(map(len, batch.values())) < max_records):
            record = self._broker.inbox.pop(0)
            batch.setdefault(TopicPartition(record.topic, record.partition), []).append(record)
        return batch


class FakeBroker:
    """Records what producers send and feeds queued records to consumers."""

    def __init__(self) -> None:
        self.down = False
        self.send_error: BaseException | None = None
        self.send_delay = 0.0
        self.fetch_error: BaseException | None = None
        self.sent: list[SentRecord] = []
        self.inbox: list[ConsumerRecord] = []
        self.producers: list[FakeProducer] = []
        self.consumers: list[FakeConsumer] = []
        self._offset = 0

    def make_producer(self) -> FakeProducer:
        producer = FakeProducer(self)
        self.producers.append(producer)
        return producer

    def make_consumer(self) -> FakeConsumer:
        consumer = FakeConsumer(self)
        self.consumers.append(consumer)
        return consumer

    def deliver(self, topic: str, value: bytes | dict | None, key: bytes | None = None, headers=None) -> None:
        if isinstance(value, dict):
            value = json.dumps(value).encode("utf-8")
        self.inbox.append(ConsumerRecord(topic, 0, self._offset, key, value, list(headers or [])))
        self._offset += 1

    def topics_sent(self) -> list[str]:
        return [r.topic for r in self.sent]


async def _no_sleep(_delay: float) -> None:
    return None


@pytest.fixture(autouse=True)
def _fresh_settings():
    reload_settings()
    yield
    reload_settings()


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def connections(broker: FakeBroker) -> BrokerConnectionManager:
    return BrokerConnectionManager(
        bootstrap_servers=["fake:9092"],
        client_id="test",
        group_id="test-group",
        retry=RetryPolicy(max_attempts=2, initial_backoff=0.0, max_backoff=0.0),
        producer_factory=broker.make_producer,
        consumer_factory=broker.make_consumer,
        sleep=_no_sleep,
    )


@pytest.fixture
async def journal(tmp_path: Path) -> FallbackJournal:
    j = FallbackJournal(tmp_path / "undelivered.db")
    yield j
    await j.close()


@pytest.fixture
def producer(connections: BrokerConnectionManager, journal: FallbackJournal) -> EventProducer:
    return EventProducer(connections, fallback=journal, publish_timeout=0.5)


@pytest.fixture
async def db(tmp_path: Path) -> Database:
    database = Database(tmp_path / "store.db")
    await database.ensure_conn()
    yield database
    await database.close()
