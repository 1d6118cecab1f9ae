"""Kafka event boundary: connection manager, producer, handler registry and consumer."""

from meupaozin.messaging.connection import BrokerConnectionManager, RetryPolicy
from meupaozin.messaging.consumer import EventConsumer
from meupaozin.messaging.fallback import FallbackJournal
from meupaozin.messaging.models import (
    ClientRole,
    ConnectionState,
    ConsumedMessage,
    ConsumerState,
    DispatchOutcome,
    Event,
    PublishErrorKind,
    PublishResult,
    PublishStatus,
)
from meupaozin.messaging.producer import EventProducer
from meupaozin.messaging.registry import TopicHandlerRegistry
from meupaozin.messaging.topics import EventTypes, Topics

__all__ = [
    "BrokerConnectionManager",
    "ClientRole",
    "ConnectionState",
    "ConsumedMessage",
    "ConsumerState",
    "DispatchOutcome",
    "Event",
    "EventConsumer",
    "EventProducer",
    "EventTypes",
    "FallbackJournal",
    "PublishErrorKind",
    "PublishResult",
    "PublishStatus",
    "RetryPolicy",
    "Topics",
    "TopicHandlerRegistry",
]
