"""Tipos de pão (catalog)."""

import logging

from meupaozin.domain.errors import ConflictError, NotFoundError
from meupaozin.domain.models import CreateTipoPaoDto, TipoPao, UpdateTipoPaoDto
from meupaozin.messaging.producer import EventProducer
from meupaozin.services.events import emit
from meupaozin.store.repositories import PedidoRepository, TipoPaoRepository

logger = logging.getLogger(__name__)


class TiposPaoService:
    def __init__(
        self,
        tipos_pao: TipoPaoRepository,
        pedidos: PedidoRepository,
        producer: EventProducer,
    ) -> None:
        self._tipos_pao = tipos_pao
        self._pedidos = pedidos
        self._producer = producer

    async def _ensure_nome_free(self, nome: str) -> None:
        if await self._tipos_pao.find_by_nome(nome) is not None:
            raise ConflictError("Já existe um tipo de pão com este nome")

    async def create(self, dto: CreateTipoPaoDto) -> TipoPao:
        await self._ensure_nome_free(dto.nome)
        tipo_pao = await self._tipos_pao.save(TipoPao(**dto.model_dump()))
        logger.info("Tipo de pão %s criado: %s", tipo_pao.id, tipo_pao.nome)
        await emit(self._producer.tipo_pao_created(tipo_pao), logger, "tipo_pao_created")
        return tipo_pao

    async def find_all(self) -> list[TipoPao]:
        return await self._tipos_pao.find_all()

    async def find_active(self) -> list[TipoPao]:
        return await self._tipos_pao.find_active()

    async def find_by_id(self, tipo_pao_id: int) -> TipoPao:
        tipo_pao = await self._tipos_pao.find_by_id(tipo_pao_id)
        if tipo_pao is None:
            raise NotFoundError(f"Tipo de pão com ID {tipo_pao_id} não encontrado")
        return tipo_pao

    async def find_by_nome(self, nome: str) -> TipoPao:
        tipo_pao = await self._tipos_pao.find_by_nome(nome)
        if tipo_pao is None:
            raise NotFoundError(f"Tipo de pão com nome {nome} não encontrado")
        return tipo_pao

    async def update(self, tipo_pao_id: int, dto: UpdateTipoPaoDto) -> TipoPao:
        previous = await self.find_by_id(tipo_pao_id)
        changes = dto.model_dump(exclude_unset=True, exclude_none=True)
        new_nome = changes.get("nome")
        if new_nome and new_nome.lower() != previous.nome.lower():
            await self._ensure_nome_free(new_nome)
        tipo_pao = await self._tipos_pao.save(previous.model_copy(update=changes))
        logger.info("Tipo de pão %s atualizado: %s", tipo_pao.id, sorted(changes))
        await emit(self._producer.tipo_pao_updated(tipo_pao, previous), logger, "tipo_pao_updated")
        return tipo_pao

    async def toggle_active(self, tipo_pao_id: int) -> TipoPao:
        previous = await self.find_by_id(tipo_pao_id)
        tipo_pao = await self._tipos_pao.save(previous.model_copy(update={"ativo": not previous.ativo}))
        logger.info("Tipo de pão %s ativo=%s", tipo_pao.id, tipo_pao.ativo)
        await emit(self._producer.tipo_pao_updated(tipo_pao, previous), logger, "tipo_pao_updated")
        return tipo_pao

    async def remove(self, tipo_pao_id: int) -> None:
        """Rejected with ConflictError while pedidos reference the tipo de pão."""
        tipo_pao = await self.find_by_id(tipo_pao_id)
        pedidos_count = await self._pedidos.count_by_tipo_pao(tipo_pao_id)
        if pedidos_count:
            raise ConflictError(
                f"Tipo de pão {tipo_pao.nome} possui {pedidos_count} pedido(s) associado(s)"
            )
        await self._tipos_pao.remove(tipo_pao_id)
        logger.info("Tipo de pão %s removido", tipo_pao_id)
        await emit(self._producer.tipo_pao_deleted(tipo_pao), logger, "tipo_pao_deleted")

    async def stats(self) -> dict[str, int]:
        return await self._tipos_pao.stats()
