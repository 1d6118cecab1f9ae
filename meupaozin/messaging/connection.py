"""Broker connection lifecycle for the producer and consumer roles.

The manager is the only owner of connection state. Producer and consumer ask
it for a client handle and report transport failures back to it; they never
keep their own socket state.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer

from meupaozin.messaging.models import ClientRole, ConnectionState

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], Any]


@dataclass(frozen=True)
class RetryPolicy:
    """Capped exponential backoff with a bounded number of attempts."""

    max_attempts: int = 8
    initial_backoff: float = 0.1
    max_backoff: float = 5.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_backoff < 0 or self.max_backoff < 0:
            raise ValueError("backoff values must be >= 0")

    def delays(self) -> Iterator[float]:
        """Sleep before attempt 2..max_attempts."""
        delay = self.initial_backoff
        for _ in range(self.max_attempts - 1):
            yield min(delay, self.max_backoff)
            delay *= self.multiplier

    @classmethod
    def from_settings(cls, cfg: dict[str, Any]) -> "RetryPolicy":
        return cls(
            max_attempts=int(cfg.get("max_attempts", 8)),
            initial_backoff=float(cfg.get("initial_backoff", 0.1)),
            max_backoff=float(cfg.get("max_backoff", 5.0)),
            multiplier=float(cfg.get("multiplier", 2.0)),
        )


class BrokerConnectionManager:
    """Connect, reconnect and disconnect the producer and consumer clients.

    `connect(role)` retries with `RetryPolicy`; when attempts are exhausted the
    role goes to DEGRADED instead of raising. `disconnect(role)` never raises.
    """

    def __init__(
        self,
        bootstrap_servers: list[str],
        client_id: str,
        group_id: str,
        retry: RetryPolicy | None = None,
        auto_offset_reset: str = "latest",
        request_timeout_ms: int = 30000,
        producer_factory: ClientFactory | None = None,
        consumer_factory: ClientFactory | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if not bootstrap_servers:
            raise ValueError("bootstrap_servers must not be empty")
        self._bootstrap_servers = list(bootstrap_servers)
        self._client_id = client_id
        self._group_id = group_id
        self._retry = retry or RetryPolicy()
        self._auto_offset_reset = auto_offset_reset
        self._request_timeout_ms = request_timeout_ms
        self._factories: dict[ClientRole, ClientFactory] = {
            ClientRole.PRODUCER: producer_factory or self._default_producer,
            ClientRole.CONSUMER: consumer_factory or self._default_consumer,
        }
        self._sleep = sleep
        self._states: dict[ClientRole, ConnectionState] = {
            role: ConnectionState.DISCONNECTED for role in ClientRole
        }
        self._clients: dict[ClientRole, Any] = {}
        self._locks: dict[ClientRole, asyncio.Lock] = {}

    @property
    def bootstrap_servers(self) -> list[str]:
        return list(self._bootstrap_servers)

    def _default_producer(self) -> AIOKafkaProducer:
        return AIOKafkaProducer(
            bootstrap_servers=self._bootstrap_servers,
            client_id=self._client_id,
            request_timeout_ms=self._request_timeout_ms,
            retry_backoff_ms=100,
        )

    def _default_consumer(self) -> AIOKafkaConsumer:
        return AIOKafkaConsumer(
            bootstrap_servers=self._bootstrap_servers,
            client_id=f"{self._client_id}-consumer",
            group_id=self._group_id,
            auto_offset_reset=self._auto_offset_reset,
            enable_auto_commit=True,
            request_timeout_ms=self._request_timeout_ms,
        )

    def _lock(self, role: ClientRole) -> asyncio.Lock:
        # created lazily so the manager can be built outside a running loop
        lock = self._locks.get(role)
        if lock is None:
            lock = self._locks[role] = asyncio.Lock()
        return lock

    def _set_state(self, role: ClientRole, state: ConnectionState) -> None:
        previous = self._states[role]
        if previous is state:
            return
        self._states[role] = state
        if state is ConnectionState.CONNECTED:
            logger.info("Kafka %s: %s -> %s", role.value, previous.value, state.value)
        elif state in (ConnectionState.DEGRADED, ConnectionState.DISCONNECTED):
            logger.warning("Kafka %s: %s -> %s", role.value, previous.value, state.value)
        else:
            logger.debug("Kafka %s: %s -> %s", role.value, previous.value, state.value)

    def state(self, role: ClientRole) -> ConnectionState:
        return self._states[role]

    def is_connected(self, role: ClientRole) -> bool:
        return self._states[role] is ConnectionState.CONNECTED

    def client(self, role: ClientRole) -> Any | None:
        """Live client handle for the role, or None unless connected."""
        if not self.is_connected(role):
            return None
        return self._clients.get(role)

    async def connect(self, role: ClientRole) -> bool:
        """Start a client for the role with bounded retry. Returns True when connected."""
        async with self._lock(role):
            if self.is_connected(role):
                return True
            self._set_state(role, ConnectionState.CONNECTING)
            delays = self._retry.delays()
            attempt = 0
            while True:
                attempt += 1
                client = None
                try:
                    client = self._factories[role]()
                    await client.start()
                except Exception as e:
                    logger.warning(
                        "Kafka %s connect attempt %d/%d to %s failed: %s",
                        role.value,
                        attempt,
                        self._retry.max_attempts,
                        ",".join(self._bootstrap_servers),
                        e,
                    )
                    if client is not None:
                        await self._stop_quietly(role, client)
                    delay = next(delays, None)
                    if delay is None:
                        self._set_state(role, ConnectionState.DEGRADED)
                        logger.error(
                            "Kafka %s unavailable after %d attempts; running degraded",
                            role.value,
                            attempt,
                        )
                        return False
                    await self._sleep(delay)
                    continue
                self._clients[role] = client
                self._set_state(role, ConnectionState.CONNECTED)
                return True

    async def report_failure(self, role: ClientRole, error: BaseException | str) -> None:
        """Transport error seen by the owner of the role: connected -> disconnected."""
        async with self._lock(role):
            if not self.is_connected(role):
                return
            logger.warning("Kafka %s transport error: %s", role.value, error)
            client = self._clients.pop(role, None)
            self._set_state(role, ConnectionState.DISCONNECTED)
        if client is not None:
            await self._stop_quietly(role, client)

    async def disconnect(self, role: ClientRole) -> None:
        """Best-effort graceful close. Never raises."""
        try:
            async with self._lock(role):
                client = self._clients.pop(role, None)
                self._set_state(role, ConnectionState.DISCONNECTED)
        except Exception as e:
            logger.error("Kafka %s disconnect bookkeeping failed: %s", role.value, e)
            return
        if client is not None:
            await self._stop_quietly(role, client)
            logger.info("Kafka %s disconnected", role.value)

    async def close(self) -> None:
        """Disconnect both roles; consumer first so offsets commit before the producer goes."""
        await self.disconnect(ClientRole.CONSUMER)
        await self.disconnect(ClientRole.PRODUCER)

    async def _stop_quietly(self, role: ClientRole, client: Any) -> None:
        try:
            await client.stop()
        except Exception as e:
            logger.error("Kafka %s close failed: %s", role.value, e)
