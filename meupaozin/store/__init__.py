"""SQLite persistence for the bakery entities."""

from meupaozin.store.db import Database
from meupaozin.store.repositories import ClienteRepository, PedidoRepository, TipoPaoRepository

__all__ = ["ClienteRepository", "Database", "PedidoRepository", "TipoPaoRepository"]
