"""Clientes: CRUD with clientes.* and analytics events after each committed mutation."""

import logging

from meupaozin.domain.errors import ConflictError, NotFoundError
from meupaozin.domain.models import Cliente, CreateClienteDto, UpdateClienteDto
from meupaozin.messaging.producer import EventProducer
from meupaozin.messaging.topics import EventTypes
from meupaozin.services.events import emit
from meupaozin.store.repositories import ClienteRepository, PedidoRepository

logger = logging.getLogger(__name__)


class ClientesService:
    def __init__(
        self,
        clientes: ClienteRepository,
        pedidos: PedidoRepository,
        producer: EventProducer,
    ) -> None:
        self._clientes = clientes
        self._pedidos = pedidos
        self._producer = producer

    async def create(self, dto: CreateClienteDto) -> Cliente:
        if await self._clientes.find_by_email(dto.email) is not None:
            raise ConflictError("Já existe um cliente com este email")
        cliente = await self._clientes.save(Cliente(**dto.model_dump()))
        logger.info("Cliente %s criado", cliente.id)

        await emit(self._producer.cliente_created(cliente), logger, "cliente_created")
        await emit(
            self._producer.analytics_event(
                {
                    "eventType": EventTypes.CLIENTE_CREATED_ANALYTICS,
                    "clienteId": cliente.id,
                    "nome": cliente.nome,
                    "email": cliente.email,
                }
            ),
            logger,
            "cliente_created analytics",
        )
        return cliente

    async def find_all(self) -> list[Cliente]:
        return await self._clientes.find_all()

    async def find_active(self) -> list[Cliente]:
        return await self._clientes.find_all_by_nome()

    async def find_one(self, cliente_id: int) -> Cliente:
        cliente = await self._clientes.find_by_id(cliente_id)
        if cliente is None:
            raise NotFoundError(f"Cliente com ID {cliente_id} não encontrado")
        return cliente

    async def find_by_email(self, email: str) -> Cliente:
        cliente = await self._clientes.find_by_email(email)
        if cliente is None:
            raise NotFoundError(f"Cliente com email {email} não encontrado")
        return cliente

    async def update(self, cliente_id: int, dto: UpdateClienteDto) -> Cliente:
        previous = await self.find_one(cliente_id)
        changes = dto.model_dump(exclude_unset=True)
        # nome and email are required columns; null means "leave as is"
        for required in ("nome", "email"):
            if changes.get(required, "") is None:
                del changes[required]
        new_email = changes.get("email")
        if new_email and new_email != previous.email:
            if await self._clientes.find_by_email(new_email) is not None:
                raise ConflictError("Já existe um cliente com este email")

        cliente = await self._clientes.save(previous.model_copy(update=changes))
        logger.info("Cliente %s atualizado: %s", cliente.id, sorted(changes))

        await emit(self._producer.cliente_updated(cliente, previous), logger, "cliente_updated")
        await emit(
            self._producer.analytics_event(
                {
                    "eventType": EventTypes.CLIENTE_UPDATED_ANALYTICS,
                    "clienteId": cliente.id,
                    "nome": cliente.nome,
                    "email": cliente.email,
                    "changes": changes,
                }
            ),
            logger,
            "cliente_updated analytics",
        )
        return cliente

    async def remove(self, cliente_id: int) -> None:
        """Delete the cliente; its pedidos go with it."""
        cliente = await self.find_one(cliente_id)
        pedidos_count = await self._pedidos.count_by_cliente(cliente_id)
        await self._clientes.remove(cliente_id)
        logger.info("Cliente %s removido (%d pedidos)", cliente_id, pedidos_count)

        await emit(self._producer.cliente_deleted(cliente), logger, "cliente_deleted")
        await emit(
            self._producer.analytics_event(
                {
                    "eventType": EventTypes.CLIENTE_DELETED_ANALYTICS,
                    "clienteId": cliente.id,
                    "nome": cliente.nome,
                    "email": cliente.email,
                    "pedidosCount": pedidos_count,
                }
            ),
            logger,
            "cliente_deleted analytics",
        )
