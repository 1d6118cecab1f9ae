"""Process-scoped components, built from settings and torn down explicitly."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from meupaozin.messaging import (
    BrokerConnectionManager,
    ClientRole,
    EventConsumer,
    EventProducer,
    FallbackJournal,
    RetryPolicy,
    TopicHandlerRegistry,
)
from meupaozin.messaging.handlers import register_default_handlers
from meupaozin.services import ClientesService, PedidosService, TiposPaoService
from meupaozin.settings import get_setting
from meupaozin.store import ClienteRepository, Database, PedidoRepository, TipoPaoRepository

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@dataclass
class AppContainer:
    settings: dict[str, Any]
    db: Database
    clientes_repo: ClienteRepository
    tipos_pao_repo: TipoPaoRepository
    pedidos_repo: PedidoRepository
    connections: BrokerConnectionManager
    fallback: FallbackJournal
    producer: EventProducer
    registry: TopicHandlerRegistry
    consumer: EventConsumer
    clientes: ClientesService
    tipos_pao: TiposPaoService
    pedidos: PedidosService
    consume: bool = True

    async def startup(self) -> None:
        """Open the store, start the producer (degraded allowed), start the consumer."""
        await self.db.ensure_conn()
        await self.producer.start(
            reconnect_interval=float(
                get_setting(self.settings, "messaging.producer.reconnect_interval", 30.0)
            )
        )
        if self.consume:
            await self.consumer.start()
        logger.info(
            "MeuPaoZin started (producer %s, %d handler(s))",
            self.connections.state(ClientRole.PRODUCER).value,
            len(self.registry),
        )

    async def shutdown(self) -> None:
        await self.consumer.stop()
        await self.producer.stop()
        await self.connections.close()
        await self.fallback.close()
        await self.db.close()
        logger.info("MeuPaoZin stopped")


def _resolve(project_root: Path, raw: str) -> Path:
    path = Path(raw)
    return path if path.is_absolute() else project_root / path


def build_container(
    settings: dict[str, Any],
    project_root: Path = PROJECT_ROOT,
    connections: BrokerConnectionManager | None = None,
    consume: bool = True,
) -> AppContainer:
    """Wire every component with explicit constructor arguments taken from settings."""
    kafka = settings.get("kafka", {})
    messaging = settings.get("messaging", {})
    consumer_cfg = messaging.get("consumer", {})
    fallback_cfg = messaging.get("fallback", {})

    db = Database(
        _resolve(project_root, get_setting(settings, "database.path", "data/meupaozin.db")),
        busy_timeout=int(get_setting(settings, "database.busy_timeout", 5000)),
    )
    clientes_repo = ClienteRepository(db)
    tipos_pao_repo = TipoPaoRepository(db)
    pedidos_repo = PedidoRepository(db)

    if connections is None:
        connections = BrokerConnectionManager(
            bootstrap_servers=kafka.get("bootstrap_servers", ["localhost:9092"]),
            client_id=kafka.get("client_id", "meupaozin-api"),
            group_id=kafka.get("group_id", "meupaozin-consumer-group"),
            retry=RetryPolicy.from_settings(messaging.get("retry", {})),
            auto_offset_reset=kafka.get("auto_offset_reset", "latest"),
            request_timeout_ms=int(kafka.get("request_timeout_ms", 30000)),
        )
    fallback = FallbackJournal(
        _resolve(project_root, fallback_cfg.get("db_path", "data/undelivered_events.db")),
        busy_timeout=int(fallback_cfg.get("busy_timeout", 5000)),
    )
    producer = EventProducer(
        connections,
        fallback=fallback,
        publish_timeout=float(messaging.get("publish_timeout", 5.0)),
        replay_batch_size=int(fallback_cfg.get("replay_batch_size", 50)),
    )

    registry = TopicHandlerRegistry()
    register_default_handlers(registry)
    consumer = EventConsumer(
        connections,
        registry,
        poll_timeout_ms=int(consumer_cfg.get("poll_timeout_ms", 1000)),
        max_records=int(consumer_cfg.get("max_records", 50)),
        reconnect_interval=float(consumer_cfg.get("reconnect_interval", 5.0)),
    )

    return AppContainer(
        settings=settings,
        db=db,
        clientes_repo=clientes_repo,
        tipos_pao_repo=tipos_pao_repo,
        pedidos_repo=pedidos_repo,
        connections=connections,
        fallback=fallback,
        producer=producer,
        registry=registry,
        consumer=consumer,
        clientes=ClientesService(clientes_repo, pedidos_repo, producer),
        tipos_pao=TiposPaoService(tipos_pao_repo, pedidos_repo, producer),
        pedidos=PedidosService(pedidos_repo, clientes_repo, tipos_pao_repo, producer),
        consume=consume,
    )
