"""Event, publish result and lifecycle state types for the messaging layer."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

__all__ = [
    "ClientRole",
    "ConnectionState",
    "ConsumedMessage",
    "ConsumerState",
    "DispatchOutcome",
    "Event",
    "PublishErrorKind",
    "PublishResult",
    "PublishStatus",
]


class ClientRole(str, Enum):
    PRODUCER = "producer"
    CONSUMER = "consumer"


class ConnectionState(str, Enum):
    """disconnected -> connecting -> connected; connected -> disconnected on transport error.
    connecting -> degraded when the retry budget is exhausted."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DEGRADED = "degraded"


class ConsumerState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


class PublishStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    ERROR = "error"


class PublishErrorKind(str, Enum):
    VALIDATION = "validation"
    SERIALIZATION = "serialization"
    TRANSPORT = "transport"
    TIMEOUT = "timeout"


class DispatchOutcome(str, Enum):
    DISPATCHED = "dispatched"
    POISON = "poison"
    UNHANDLED_TOPIC = "unhandled_topic"
    HANDLER_FAILED = "handler_failed"


def _freeze(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class Event:
    """Immutable unit of publication. Payload and headers are copied on construction."""

    topic: str
    payload: Mapping[str, Any]
    key: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", _freeze(self.payload))
        object.__setattr__(self, "headers", _freeze(self.headers))

    @property
    def event_type(self) -> str | None:
        value = self.payload.get("eventType")
        return value if isinstance(value, str) else None


@dataclass(frozen=True)
class PublishResult:
    """Outcome of EventProducer.publish. Never raised; callers log or ignore it."""

    status: PublishStatus
    topic: str
    partition: int | None = None
    offset: int | None = None
    error_kind: PublishErrorKind | None = None
    error: str | None = None
    fallback_id: int | None = None

    @property
    def ok(self) -> bool:
        return self.status is PublishStatus.OK

    @property
    def degraded(self) -> bool:
        return self.status is PublishStatus.DEGRADED

    @classmethod
    def acked(cls, topic: str, partition: int | None = None, offset: int | None = None) -> "PublishResult":
        return cls(PublishStatus.OK, topic, partition=partition, offset=offset)

    @classmethod
    def degraded_result(cls, topic: str, fallback_id: int | None = None) -> "PublishResult":
        return cls(PublishStatus.DEGRADED, topic, fallback_id=fallback_id)

    @classmethod
    def failed(
        cls,
        topic: str,
        kind: PublishErrorKind,
        error: str,
        fallback_id: int | None = None,
    ) -> "PublishResult":
        return cls(PublishStatus.ERROR, topic, error_kind=kind, error=error, fallback_id=fallback_id)


@dataclass(frozen=True)
class ConsumedMessage:
    """Deserialized message handed to a topic handler."""

    topic: str
    payload: dict[str, Any]
    key: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    partition: int | None = None
    offset: int | None = None

    @property
    def event_type(self) -> str | None:
        value = self.payload.get("eventType")
        return value if isinstance(value, str) else None
