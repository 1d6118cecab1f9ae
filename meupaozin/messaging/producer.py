"""Event producer: typed domain events -> JSON messages on named topics.

`publish` never raises for broker or payload problems. It returns a
`PublishResult` so the calling service decides whether to log or alert; the
store mutation that triggered the event has already committed.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from meupaozin.correlation import get_correlation_id
from meupaozin.domain.models import Cliente, Pedido, StatusPedido, TipoPao
from meupaozin.messaging.connection import BrokerConnectionManager
from meupaozin.messaging.fallback import FallbackJournal
from meupaozin.messaging.models import ClientRole, Event, PublishErrorKind, PublishResult
from meupaozin.messaging.topics import EventTypes, Topics

logger = logging.getLogger(__name__)

HeaderProvider = Callable[[], Mapping[str, str]]


def iso_timestamp(moment: datetime | None = None) -> str:
    """UTC ISO-8601 with millisecond precision and Z suffix."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _iso(value: datetime | None) -> str | None:
    return iso_timestamp(value) if value is not None else None


def _correlation_headers() -> dict[str, str]:
    cid = get_correlation_id()
    return {"x-correlation-id": cid} if cid else {}


def encode_payload(payload: Mapping[str, Any]) -> bytes:
    """Strict JSON: raises TypeError/ValueError for values JSON cannot represent."""
    return json.dumps(dict(payload), ensure_ascii=False, allow_nan=False).encode("utf-8")


def encode_headers(headers: Mapping[str, str]) -> list[tuple[str, bytes]]:
    """Kafka header list. Raises TypeError for a non-string name or value."""
    encoded = []
    for name, value in headers.items():
        if not isinstance(name, str) or not isinstance(value, str):
            raise TypeError(f"header {name!r} must be a string, got {type(value).__name__}")
        encoded.append((name, value.encode("utf-8")))
    return encoded


def encode_key(key: str | None) -> bytes | None:
    if key is None or key == "":
        return None
    if not isinstance(key, str):
        raise TypeError(f"key must be a string, got {type(key).__name__}")
    return key.encode("utf-8")


class EventProducer:
    """Publish events through the producer connection, spooling to the fallback journal when degraded."""

    def __init__(
        self,
        connections: BrokerConnectionManager,
        fallback: FallbackJournal | None = None,
        publish_timeout: float = 5.0,
        header_provider: HeaderProvider | None = _correlation_headers,
        replay_batch_size: int = 50,
    ) -> None:
        self._connections = connections
        self._fallback = fallback
        self._publish_timeout = publish_timeout
        self._header_provider = header_provider
        self._replay_batch_size = replay_batch_size
        self._watchdog_task: asyncio.Task[None] | None = None
        self._stopped = True

    @property
    def connected(self) -> bool:
        return self._connections.is_connected(ClientRole.PRODUCER)

    async def start(self, reconnect_interval: float = 30.0) -> None:
        """Connect (degraded allowed), replay the spool, then keep reconnecting in the background."""
        self._stopped = False
        if await self._connections.connect(ClientRole.PRODUCER):
            await self.replay_fallback()
        self._watchdog_task = asyncio.create_task(
            self._watchdog_loop(reconnect_interval), name="producer-watchdog"
        )

    async def stop(self) -> None:
        self._stopped = True
        if self._watchdog_task:
            self._watchdog_task.cancel()
            try:
                await self._watchdog_task
            except asyncio.CancelledError:
                pass
            self._watchdog_task = None

    async def _watchdog_loop(self, interval: float) -> None:
        """Reconnect a lost or degraded producer and drain the spool once connected."""
        while not self._stopped:
            try:
                await asyncio.sleep(interval)
            except asyncio.CancelledError:
                break
            if self._stopped:
                break
            try:
                if not self.connected and not await self._connections.connect(ClientRole.PRODUCER):
                    continue
                if self._fallback is not None and await self._fallback.count_pending():
                    await self.replay_fallback()
            except Exception as e:
                logger.exception("Producer watchdog failed: %s", e)

    def _headers(self, event: Event) -> dict[str, str]:
        headers = {"content-type": "application/json"}
        if event.event_type:
            headers["event-type"] = event.event_type
        if self._header_provider is not None:
            headers.update(self._header_provider())
        headers.update(event.headers)
        return headers

    async def publish(self, event: Event) -> PublishResult:
        """Serialize and send one event. Returns ok, degraded or error; never raises."""
        if not isinstance(event.topic, str) or not event.topic.strip():
            logger.error("Refusing to publish event without topic: %r", event)
            return PublishResult.failed(
                str(event.topic), PublishErrorKind.VALIDATION, "topic must be a non-empty string"
            )

        wire_payload = dict(event.payload)
        wire_payload["timestamp"] = iso_timestamp()
        try:
            value = encode_payload(wire_payload)
        except (TypeError, ValueError) as e:
            logger.error("Event for %s is not serializable: %s", event.topic, e)
            return PublishResult.failed(event.topic, PublishErrorKind.SERIALIZATION, str(e))

        try:
            headers = self._headers(event)
            wire_headers = encode_headers(headers)
            wire_key = encode_key(event.key)
        except TypeError as e:
            logger.error("Event for %s has invalid key or headers: %s", event.topic, e)
            return PublishResult.failed(event.topic, PublishErrorKind.SERIALIZATION, str(e))
        spool_event = Event(event.topic, event.payload, event.key, headers)

        client = self._connections.client(ClientRole.PRODUCER)
        if client is None:
            fallback_id = await self._spool(spool_event, wire_payload, "broker unavailable")
            return PublishResult.degraded_result(event.topic, fallback_id)

        try:
            metadata = await asyncio.wait_for(
                client.send_and_wait(
                    event.topic,
                    value=value,
                    key=wire_key,
                    headers=wire_headers,
                ),
                timeout=self._publish_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Publish to %s timed out after %.1fs", event.topic, self._publish_timeout
            )
            fallback_id = await self._spool(spool_event, wire_payload, "ack timeout")
            return PublishResult.failed(
                event.topic, PublishErrorKind.TIMEOUT, "ack timeout", fallback_id
            )
        except Exception as e:
            logger.error("Publish to %s failed: %s", event.topic, e)
            await self._connections.report_failure(ClientRole.PRODUCER, e)
            fallback_id = await self._spool(spool_event, wire_payload, f"transport: {e}")
            return PublishResult.failed(event.topic, PublishErrorKind.TRANSPORT, str(e), fallback_id)

        logger.debug("Published %s key=%s", event.topic, event.key)
        return PublishResult.acked(
            event.topic,
            partition=getattr(metadata, "partition", None),
            offset=getattr(metadata, "offset", None),
        )

    async def _spool(self, event: Event, wire_payload: dict[str, Any], reason: str) -> int | None:
        """Write to the fallback journal; without one (or if it fails) the log is the sink."""
        if self._fallback is not None:
            try:
                fallback_id = await self._fallback.append(event, wire_payload, reason)
                logger.warning(
                    "Spooled %s (key=%s) to fallback journal #%d: %s",
                    event.topic,
                    event.key,
                    fallback_id,
                    reason,
                )
                return fallback_id
            except Exception as e:
                logger.error("Fallback journal write failed: %s", e)
        logger.warning(
            "Undelivered event topic=%s key=%s reason=%s payload=%s",
            event.topic,
            event.key,
            reason,
            json.dumps(wire_payload, ensure_ascii=False, default=str),
        )
        return None

    async def replay_fallback(self, limit: int | None = None) -> int:
        """Re-send spooled events oldest first. Stops at the first failure. Returns delivered count."""
        if self._fallback is None:
            return 0
        client = self._connections.client(ClientRole.PRODUCER)
        if client is None:
            return 0
        pending = await self._fallback.fetch_pending(limit or self._replay_batch_size)
        delivered = 0
        for spooled in pending:
            try:
                value = encode_payload(spooled.payload)
                wire_key = encode_key(spooled.key)
                wire_headers = encode_headers(spooled.headers)
            except (TypeError, ValueError) as e:
                logger.error("Spooled event #%d cannot be encoded, skipped: %s", spooled.id, e)
                await self._fallback.mark_attempt_failed(spooled.id)
                continue
            try:
                await asyncio.wait_for(
                    client.send_and_wait(
                        spooled.topic,
                        value=value,
                        key=wire_key,
                        headers=wire_headers,
                    ),
                    timeout=self._publish_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning("Replay of spooled event #%d timed out", spooled.id)
                await self._fallback.mark_attempt_failed(spooled.id)
                break
            except Exception as e:
                logger.error("Replay of spooled event #%d failed: %s", spooled.id, e)
                await self._fallback.mark_attempt_failed(spooled.id)
                await self._connections.report_failure(ClientRole.PRODUCER, e)
                break
            await self._fallback.mark_delivered(spooled.id)
            delivered += 1
        if delivered:
            logger.info("Replayed %d spooled event(s)", delivered)
        return delivered

    # Typed domain events

    async def pedido_created(self, pedido: Pedido) -> PublishResult:
        return await self.publish(
            Event(
                Topics.PEDIDO_CREATED,
                {
                    "eventType": EventTypes.PEDIDO_CREATED,
                    **self._pedido_fields(pedido),
                    "observacoes": pedido.observacoes,
                    "dataPedido": _iso(pedido.data_pedido),
                },
                key=f"pedido-{pedido.id}",
            )
        )

    async def pedido_updated(
        self, pedido: Pedido, previous_status: StatusPedido | None = None
    ) -> PublishResult:
        return await self.publish(
            Event(
                Topics.PEDIDO_UPDATED,
                {
                    "eventType": EventTypes.PEDIDO_UPDATED,
                    **self._pedido_fields(pedido),
                    "observacoes": pedido.observacoes,
                    "previousStatus": previous_status.value if previous_status else None,
                    "dataAtualizacao": _iso(pedido.data_atualizacao),
                },
                key=f"pedido-{pedido.id}",
            )
        )

    async def pedido_status_changed(
        self, pedido: Pedido, previous_status: StatusPedido
    ) -> PublishResult:
        return await self.publish(
            Event(
                Topics.PEDIDO_STATUS_CHANGED,
                {
                    "eventType": EventTypes.PEDIDO_STATUS_CHANGED,
                    "pedidoId": pedido.id,
                    "clienteId": pedido.cliente_id,
                    "status": pedido.status.value,
                    "previousStatus": previous_status.value,
                    "newStatus": pedido.status.value,
                    "dataAtualizacao": _iso(pedido.data_atualizacao),
                },
                key=f"pedido-{pedido.id}",
            )
        )

    async def pedido_cancelled(
        self, pedido: Pedido, previous_status: StatusPedido | None = None
    ) -> PublishResult:
        return await self.publish(
            Event(
                Topics.PEDIDO_CANCELLED,
                {
                    "eventType": EventTypes.PEDIDO_CANCELLED,
                    **self._pedido_fields(pedido),
                    "previousStatus": previous_status.value if previous_status else None,
                },
                key=f"pedido-{pedido.id}",
            )
        )

    async def cliente_created(self, cliente: Cliente) -> PublishResult:
        return await self.publish(
            Event(
                Topics.CLIENTE_CREATED,
                {
                    "eventType": EventTypes.CLIENTE_CREATED,
                    **self._cliente_fields(cliente),
                    "dataCriacao": _iso(cliente.data_criacao),
                },
                key=f"cliente-{cliente.id}",
            )
        )

    async def cliente_updated(self, cliente: Cliente, previous: Cliente | None = None) -> PublishResult:
        return await self.publish(
            Event(
                Topics.CLIENTE_UPDATED,
                {
                    "eventType": EventTypes.CLIENTE_UPDATED,
                    **self._cliente_fields(cliente),
                    "previousData": self._cliente_fields(previous) if previous else None,
                    "dataAtualizacao": _iso(cliente.data_atualizacao),
                },
                key=f"cliente-{cliente.id}",
            )
        )

    async def cliente_deleted(self, cliente: Cliente) -> PublishResult:
        return await self.publish(
            Event(
                Topics.CLIENTE_DELETED,
                {
                    "eventType": EventTypes.CLIENTE_DELETED,
                    "clienteId": cliente.id,
                    "previousData": self._cliente_fields(cliente),
                },
                key=f"cliente-{cliente.id}",
            )
        )

    async def tipo_pao_created(self, tipo_pao: TipoPao) -> PublishResult:
        return await self.publish(
            Event(
                Topics.TIPO_PAO_CREATED,
                {
                    "eventType": EventTypes.TIPO_PAO_CREATED,
                    **self._tipo_pao_fields(tipo_pao),
                    "dataCriacao": _iso(tipo_pao.data_criacao),
                },
                key=f"tipo-pao-{tipo_pao.id}",
            )
        )

    async def tipo_pao_updated(self, tipo_pao: TipoPao, previous: TipoPao | None = None) -> PublishResult:
        return await self.publish(
            Event(
                Topics.TIPO_PAO_UPDATED,
                {
                    "eventType": EventTypes.TIPO_PAO_UPDATED,
                    **self._tipo_pao_fields(tipo_pao),
                    "previousData": self._tipo_pao_fields(previous) if previous else None,
                    "dataAtualizacao": _iso(tipo_pao.data_atualizacao),
                },
                key=f"tipo-pao-{tipo_pao.id}",
            )
        )

    async def tipo_pao_deleted(self, tipo_pao: TipoPao) -> PublishResult:
        return await self.publish(
            Event(
                Topics.TIPO_PAO_DELETED,
                {
                    "eventType": EventTypes.TIPO_PAO_DELETED,
                    "tipoPaoId": tipo_pao.id,
                    "previousData": self._tipo_pao_fields(tipo_pao),
                },
                key=f"tipo-pao-{tipo_pao.id}",
            )
        )

    async def analytics_event(self, data: Mapping[str, Any]) -> PublishResult:
        return await self.publish(Event(Topics.ANALYTICS, data, key=f"analytics-{_epoch_ms()}"))

    async def notification_event(self, data: Mapping[str, Any]) -> PublishResult:
        return await self.publish(Event(Topics.NOTIFICATIONS, data, key=f"notification-{_epoch_ms()}"))

    async def audit_event(self, data: Mapping[str, Any]) -> PublishResult:
        return await self.publish(Event(Topics.AUDIT, data, key=f"audit-{_epoch_ms()}"))

    @staticmethod
    def _pedido_fields(pedido: Pedido) -> dict[str, Any]:
        return {
            "pedidoId": pedido.id,
            "clienteId": pedido.cliente_id,
            "tipoPaoId": pedido.tipo_pao_id,
            "quantidade": pedido.quantidade,
            "precoTotal": pedido.preco_total,
            "status": pedido.status.value,
        }

    @staticmethod
    def _cliente_fields(cliente: Cliente) -> dict[str, Any]:
        return {
            "clienteId": cliente.id,
            "nome": cliente.nome,
            "email": cliente.email,
            "telefone": cliente.telefone,
            "endereco": cliente.endereco,
        }

    @staticmethod
    def _tipo_pao_fields(tipo_pao: TipoPao) -> dict[str, Any]:
        return {
            "tipoPaoId": tipo_pao.id,
            "nome": tipo_pao.nome,
            "descricao": tipo_pao.descricao,
            "precoBase": tipo_pao.preco_base,
            "ativo": tipo_pao.ativo,
        }


def _epoch_ms() -> int:
    return int(time.time() * 1000)
