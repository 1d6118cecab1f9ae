"""SQLite store for clientes, tipos de pão and pedidos."""

import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

_BUSY_TIMEOUT_MS = 5000

_SCHEMA = """
CREATE TABLE IF NOT EXISTS clientes (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    nome              TEXT    NOT NULL,
    email             TEXT    NOT NULL UNIQUE,
    telefone          TEXT,
    endereco          TEXT,
    data_criacao      TEXT    NOT NULL,
    data_atualizacao  TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS tipos_pao (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    nome              TEXT    NOT NULL UNIQUE,
    descricao         TEXT,
    preco_base        REAL    NOT NULL CHECK (preco_base >= 0),
    ativo             INTEGER NOT NULL DEFAULT 1,
    data_criacao      TEXT    NOT NULL,
    data_atualizacao  TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS pedidos (
    id                INTEGER PRIMARY KEY AUTOINCREMENT,
    cliente_id        INTEGER NOT NULL REFERENCES clientes(id) ON DELETE CASCADE,
    tipo_pao_id       INTEGER NOT NULL REFERENCES tipos_pao(id) ON DELETE RESTRICT,
    quantidade        INTEGER NOT NULL CHECK (quantidade >= 1),
    preco_total       REAL    NOT NULL CHECK (preco_total >= 0),
    status            TEXT    NOT NULL DEFAULT 'REALIZADO',
    observacoes       TEXT,
    data_pedido       TEXT    NOT NULL,
    data_atualizacao  TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_pedidos_cliente ON pedidos(cliente_id);
CREATE INDEX IF NOT EXISTS idx_pedidos_tipo_pao ON pedidos(tipo_pao_id);
CREATE INDEX IF NOT EXISTS idx_pedidos_status_data ON pedidos(status, data_pedido);
"""


class Database:
    """SQLite connection for the store. One connection per instance."""

    def __init__(self, db_path: Path, busy_timeout: int = _BUSY_TIMEOUT_MS) -> None:
        self._db_path = db_path
        self._busy_timeout = busy_timeout
        self._conn: aiosqlite.Connection | None = None

    @property
    def path(self) -> Path:
        return self._db_path

    async def ensure_conn(self) -> aiosqlite.Connection:
        """Open connection and ensure schema. Idempotent."""
        if self._conn is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(str(self._db_path))
            self._conn.row_factory = aiosqlite.Row
            await self._conn.execute("PRAGMA journal_mode=WAL")
            await self._conn.execute("PRAGMA synchronous=NORMAL")
            await self._conn.execute("PRAGMA foreign_keys=ON")
            await self._conn.execute(f"PRAGMA busy_timeout={self._busy_timeout}")
            await self._conn.executescript(_SCHEMA)
            await self._conn.commit()
            logger.debug("store: schema ensured at %s", self._db_path)
        return self._conn

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None
