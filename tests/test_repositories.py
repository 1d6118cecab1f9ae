"""Tests for the SQLite repositories."""

import pytest

from meupaozin.domain.errors import NotFoundError
from meupaozin.domain.models import Cliente, Pedido, TipoPao
from meupaozin.store import ClienteRepository, PedidoRepository, TipoPaoRepository


class TestSaveAfterConcurrentDelete:
    """An update whose row vanished before the write reports not found."""

    @pytest.mark.asyncio
    async def test_cliente(self, db) -> None:
        repo = ClienteRepository(db)
        cliente = await repo.save(Cliente(nome="Ana", email="ana@x.com"))
        assert await repo.remove(cliente.id) is True
        with pytest.raises(NotFoundError):
            await repo.save(cliente.model_copy(update={"nome": "Ana Costa"}))

    @pytest.mark.asyncio
    async def test_tipo_pao(self, db) -> None:
        repo = TipoPaoRepository(db)
        tipo_pao = await repo.save(TipoPao(nome="Baguette", preco_base=4.0))
        await repo.remove(tipo_pao.id)
        with pytest.raises(NotFoundError):
            await repo.save(tipo_pao.model_copy(update={"ativo": False}))

    @pytest.mark.asyncio
    async def test_pedido(self, db) -> None:
        cliente = await ClienteRepository(db).save(Cliente(nome="Ana", email="ana@x.com"))
        tipo_pao = await TipoPaoRepository(db).save(TipoPao(nome="Baguette", preco_base=4.0))
        repo = PedidoRepository(db)
        pedido = await repo.save(
            Pedido(cliente_id=cliente.id, tipo_pao_id=tipo_pao.id, quantidade=1, preco_total=4.0)
        )
        await repo.remove(pedido.id)
        with pytest.raises(NotFoundError):
            await repo.save(pedido.model_copy(update={"quantidade": 2}))
