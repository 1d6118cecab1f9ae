"""Repositories: find_by_id / save / remove per entity plus the queries the API needs."""

import sqlite3
from typing import Any

import aiosqlite

from meupaozin.domain.errors import ConflictError, NotFoundError
from meupaozin.domain.models import Cliente, Pedido, StatusPedido, TipoPao, utcnow
from meupaozin.store.db import Database


def _now() -> str:
    return utcnow().isoformat()


class _Repository:
    _table = ""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def _fetch_all(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        conn = await self._db.ensure_conn()
        cursor = await conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def _fetch_one(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        conn = await self._db.ensure_conn()
        cursor = await conn.execute(sql, params)
        row = await cursor.fetchone()
        return dict(row) if row is not None else None

    async def _write(self, sql: str, params: tuple) -> aiosqlite.Cursor:
        conn = await self._db.ensure_conn()
        try:
            cursor = await conn.execute(sql, params)
            await conn.commit()
        except sqlite3.IntegrityError as e:
            await conn.rollback()
            raise ConflictError(f"Violação de integridade em {self._table}: {e}") from e
        return cursor

    async def _count(self, where: str = "", params: tuple = ()) -> int:
        row = await self._fetch_one(f"SELECT COUNT(*) AS n FROM {self._table} {where}", params)
        return int(row["n"]) if row else 0

    async def remove(self, entity_id: int) -> bool:
        cursor = await self._write(f"DELETE FROM {self._table} WHERE id = ?", (entity_id,))
        return cursor.rowcount > 0


class ClienteRepository(_Repository):
    _table = "clientes"

    async def find_by_id(self, cliente_id: int) -> Cliente | None:
        row = await self._fetch_one("SELECT * FROM clientes WHERE id = ?", (cliente_id,))
        return Cliente(**row) if row else None

    async def find_by_email(self, email: str) -> Cliente | None:
        row = await self._fetch_one("SELECT * FROM clientes WHERE email = ?", (email.strip().lower(),))
        return Cliente(**row) if row else None

    async def find_all(self) -> list[Cliente]:
        rows = await self._fetch_all("SELECT * FROM clientes ORDER BY data_criacao DESC, id DESC")
        return [Cliente(**row) for row in rows]

    async def find_all_by_nome(self) -> list[Cliente]:
        rows = await self._fetch_all("SELECT * FROM clientes ORDER BY nome, id")
        return [Cliente(**row) for row in rows]

    async def save(self, cliente: Cliente) -> Cliente:
        now = _now()
        if cliente.id is None:
            cursor = await self._write(
                """
                INSERT INTO clientes (nome, email, telefone, endereco, data_criacao, data_atualizacao)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (cliente.nome, cliente.email, cliente.telefone, cliente.endereco, now, now),
            )
            cliente_id = cursor.lastrowid
        else:
            await self._write(
                """
                UPDATE clientes SET nome = ?, email = ?, telefone = ?, endereco = ?, data_atualizacao = ?
                WHERE id = ?
                """,
                (cliente.nome, cliente.email, cliente.telefone, cliente.endereco, now, cliente.id),
            )
            cliente_id = cliente.id
        saved = await self.find_by_id(cliente_id)
        if saved is None:
            raise NotFoundError(f"Cliente com ID {cliente_id} não encontrado")
        return saved


class TipoPaoRepository(_Repository):
    _table = "tipos_pao"

    async def find_by_id(self, tipo_pao_id: int) -> TipoPao | None:
        row = await self._fetch_one("SELECT * FROM tipos_pao WHERE id = ?", (tipo_pao_id,))
        return TipoPao(**row) if row else None

    async def find_by_nome(self, nome: str) -> TipoPao | None:
        row = await self._fetch_one(
            "SELECT * FROM tipos_pao WHERE nome = ? COLLATE NOCASE", (nome.strip(),)
        )
        return TipoPao(**row) if row else None

    async def find_all(self) -> list[TipoPao]:
        rows = await self._fetch_all("SELECT * FROM tipos_pao ORDER BY data_criacao DESC, id DESC")
        return [TipoPao(**row) for row in rows]

    async def find_active(self) -> list[TipoPao]:
        rows = await self._fetch_all(
            "SELECT * FROM tipos_pao WHERE ativo = 1 ORDER BY data_criacao DESC, id DESC"
        )
        return [TipoPao(**row) for row in rows]

    async def stats(self) -> dict[str, int]:
        total = await self._count()
        ativos = await self._count("WHERE ativo = 1")
        return {"total": total, "ativos": ativos, "inativos": total - ativos}

    async def save(self, tipo_pao: TipoPao) -> TipoPao:
        now = _now()
        if tipo_pao.id is None:
            cursor = await self._write(
                """
                INSERT INTO tipos_pao (nome, descricao, preco_base, ativo, data_criacao, data_atualizacao)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (tipo_pao.nome, tipo_pao.descricao, tipo_pao.preco_base, int(tipo_pao.ativo), now, now),
            )
            tipo_pao_id = cursor.lastrowid
        else:
            await self._write(
                """
                UPDATE tipos_pao SET nome = ?, descricao = ?, preco_base = ?, ativo = ?, data_atualizacao = ?
                WHERE id = ?
                """,
                (
                    tipo_pao.nome,
                    tipo_pao.descricao,
                    tipo_pao.preco_base,
                    int(tipo_pao.ativo),
                    now,
                    tipo_pao.id,
                ),
            )
            tipo_pao_id = tipo_pao.id
        saved = await self.find_by_id(tipo_pao_id)
        if saved is None:
            raise NotFoundError(f"Tipo de pão com ID {tipo_pao_id} não encontrado")
        return saved


class PedidoRepository(_Repository):
    _table = "pedidos"

    _ORDER = "ORDER BY data_pedido DESC, id DESC"

    async def find_by_id(self, pedido_id: int) -> Pedido | None:
        row = await self._fetch_one("SELECT * FROM pedidos WHERE id = ?", (pedido_id,))
        return Pedido(**row) if row else None

    async def find_all(self) -> list[Pedido]:
        rows = await self._fetch_all(f"SELECT * FROM pedidos {self._ORDER}")
        return [Pedido(**row) for row in rows]

    async def find_by_status(self, status: StatusPedido) -> list[Pedido]:
        rows = await self._fetch_all(
            f"SELECT * FROM pedidos WHERE status = ? {self._ORDER}", (status.value,)
        )
        return [Pedido(**row) for row in rows]

    async def find_recent(self, limit: int = 10) -> list[Pedido]:
        rows = await self._fetch_all(f"SELECT * FROM pedidos {self._ORDER} LIMIT ?", (limit,))
        return [Pedido(**row) for row in rows]

    async def find_by_cliente(self, cliente_id: int) -> list[Pedido]:
        rows = await self._fetch_all(
            f"SELECT * FROM pedidos WHERE cliente_id = ? {self._ORDER}", (cliente_id,)
        )
        return [Pedido(**row) for row in rows]

    async def find_by_tipo_pao(self, tipo_pao_id: int) -> list[Pedido]:
        rows = await self._fetch_all(
            f"SELECT * FROM pedidos WHERE tipo_pao_id = ? {self._ORDER}", (tipo_pao_id,)
        )
        return [Pedido(**row) for row in rows]

    async def count_by_cliente(self, cliente_id: int) -> int:
        return await self._count("WHERE cliente_id = ?", (cliente_id,))

    async def count_by_tipo_pao(self, tipo_pao_id: int) -> int:
        return await self._count("WHERE tipo_pao_id = ?", (tipo_pao_id,))

    async def save(self, pedido: Pedido) -> Pedido:
        now = _now()
        if pedido.id is None:
            cursor = await self._write(
                """
                INSERT INTO pedidos (cliente_id, tipo_pao_id, quantidade, preco_total, status,
                                     observacoes, data_pedido, data_atualizacao)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    pedido.cliente_id,
                    pedido.tipo_pao_id,
                    pedido.quantidade,
                    pedido.preco_total,
                    pedido.status.value,
                    pedido.observacoes,
                    now,
                    now,
                ),
            )
            pedido_id = cursor.lastrowid
        else:
            await self._write(
                """
                UPDATE pedidos SET cliente_id = ?, tipo_pao_id = ?, quantidade = ?, preco_total = ?,
                                   status = ?, observacoes = ?, data_atualizacao = ?
                WHERE id = ?
                """,
                (
                    pedido.cliente_id,
                    pedido.tipo_pao_id,
                    pedido.quantidade,
                    pedido.preco_total,
                    pedido.status.value,
                    pedido.observacoes,
                    now,
                    pedido.id,
                ),
            )
            pedido_id = pedido.id
        saved = await self.find_by_id(pedido_id)
        if saved is None:
            raise NotFoundError(f"Pedido com ID {pedido_id} não encontrado")
        return saved
