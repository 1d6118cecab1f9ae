"""Pedidos: order lifecycle, price computation and the pedidos.* events."""

import logging

from meupaozin.domain.errors import DomainError, NotFoundError
from meupaozin.domain.models import (
    CreatePedidoDto,
    Pedido,
    StatusPedido,
    TipoPao,
    UpdatePedidoDto,
)
from meupaozin.messaging.producer import EventProducer
from meupaozin.messaging.topics import EventTypes
from meupaozin.services.events import emit
from meupaozin.store.repositories import ClienteRepository, PedidoRepository, TipoPaoRepository

logger = logging.getLogger(__name__)

RECENT_DEFAULT = 10
RECENT_MAX = 100


def preco_total(tipo_pao: TipoPao, quantidade: int) -> float:
    return round(tipo_pao.preco_base * quantidade, 2)


class PedidosService:
    def __init__(
        self,
        pedidos: PedidoRepository,
        clientes: ClienteRepository,
        tipos_pao: TipoPaoRepository,
        producer: EventProducer,
    ) -> None:
        self._pedidos = pedidos
        self._clientes = clientes
        self._tipos_pao = tipos_pao
        self._producer = producer

    async def _require_cliente(self, cliente_id: int) -> None:
        if await self._clientes.find_by_id(cliente_id) is None:
            raise NotFoundError(f"Cliente com ID {cliente_id} não encontrado")

    async def _require_active_tipo_pao(self, tipo_pao_id: int) -> TipoPao:
        tipo_pao = await self._tipos_pao.find_by_id(tipo_pao_id)
        if tipo_pao is None or not tipo_pao.ativo:
            raise NotFoundError(f"Tipo de pão com ID {tipo_pao_id} não encontrado ou inativo")
        return tipo_pao

    async def create(self, dto: CreatePedidoDto) -> Pedido:
        await self._require_cliente(dto.cliente_id)
        tipo_pao = await self._require_active_tipo_pao(dto.tipo_pao_id)

        pedido = await self._pedidos.save(
            Pedido(
                cliente_id=dto.cliente_id,
                tipo_pao_id=dto.tipo_pao_id,
                quantidade=dto.quantidade,
                preco_total=preco_total(tipo_pao, dto.quantidade),
                status=dto.status or StatusPedido.REALIZADO,
                observacoes=dto.observacoes,
            )
        )
        logger.info(
            "Pedido %s criado: cliente=%s tipo_pao=%s total=%.2f",
            pedido.id,
            pedido.cliente_id,
            pedido.tipo_pao_id,
            pedido.preco_total,
        )
        await emit(self._producer.pedido_created(pedido), logger, "pedido_created")
        return pedido

    async def find_all(self) -> list[Pedido]:
        return await self._pedidos.find_all()

    async def find_one(self, pedido_id: int) -> Pedido:
        pedido = await self._pedidos.find_by_id(pedido_id)
        if pedido is None:
            raise NotFoundError(f"Pedido com ID {pedido_id} não encontrado")
        return pedido

    async def find_by_status(self, status: StatusPedido) -> list[Pedido]:
        return await self._pedidos.find_by_status(status)

    async def recent(self, limit: int = RECENT_DEFAULT) -> list[Pedido]:
        if not 1 <= limit <= RECENT_MAX:
            raise DomainError(f"limit deve estar entre 1 e {RECENT_MAX}")
        return await self._pedidos.find_recent(limit)

    async def find_by_cliente(self, cliente_id: int) -> list[Pedido]:
        return await self._pedidos.find_by_cliente(cliente_id)

    async def find_by_tipo_pao(self, tipo_pao_id: int) -> list[Pedido]:
        return await self._pedidos.find_by_tipo_pao(tipo_pao_id)

    async def update(self, pedido_id: int, dto: UpdatePedidoDto) -> Pedido:
        """Apply changes, then publish updated, status-changed and cancelled as they apply."""
        previous = await self.find_one(pedido_id)
        changes = dto.model_dump(exclude_unset=True)
        for required in ("cliente_id", "tipo_pao_id", "quantidade", "status"):
            if changes.get(required, 0) is None:
                del changes[required]

        if "cliente_id" in changes:
            await self._require_cliente(changes["cliente_id"])
        tipo_pao = None
        if "tipo_pao_id" in changes:
            tipo_pao = await self._require_active_tipo_pao(changes["tipo_pao_id"])
        if "quantidade" in changes or "tipo_pao_id" in changes:
            if tipo_pao is None:
                tipo_pao = await self._tipos_pao.find_by_id(previous.tipo_pao_id)
            if tipo_pao is not None:
                changes["preco_total"] = preco_total(
                    tipo_pao, changes.get("quantidade", previous.quantidade)
                )

        pedido = await self._pedidos.save(previous.model_copy(update=changes))
        logger.info("Pedido %s atualizado: %s", pedido.id, sorted(changes))

        previous_status = previous.status
        await emit(self._producer.pedido_updated(pedido, previous_status), logger, "pedido_updated")
        if pedido.status is not previous_status:
            await emit(
                self._producer.pedido_status_changed(pedido, previous_status),
                logger,
                "pedido_status_changed",
            )
            if pedido.status is StatusPedido.CANCELADO:
                await emit(
                    self._producer.pedido_cancelled(pedido, previous_status),
                    logger,
                    "pedido_cancelled",
                )
        return pedido

    async def remove(self, pedido_id: int) -> None:
        pedido = await self.find_one(pedido_id)
        await self._pedidos.remove(pedido_id)
        logger.info("Pedido %s removido", pedido_id)
        await emit(
            self._producer.audit_event(
                {
                    "eventType": EventTypes.PEDIDO_DELETED,
                    "pedidoId": pedido.id,
                    "clienteId": pedido.cliente_id,
                    "tipoPaoId": pedido.tipo_pao_id,
                    "quantidade": pedido.quantidade,
                    "precoTotal": pedido.preco_total,
                    "status": pedido.status.value,
                }
            ),
            logger,
            "pedido_deleted audit",
        )

    @staticmethod
    def status_values() -> list[str]:
        return [status.value for status in StatusPedido]
