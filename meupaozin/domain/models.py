"""Entities (Cliente, TipoPao, Pedido) and the request models that create or change them."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator, AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_money(value: Any) -> Any:
    """Accept 3.5, "3.50", "3,50", "R$ 1.234,56". Other types pass through for pydantic to check."""
    if not isinstance(value, str):
        return value
    cleaned = re.sub(r"[^\d,.\-]", "", value)
    if "," in cleaned:
        # Brazilian format: dot groups thousands, comma is the decimal separator
        cleaned = cleaned.replace(".", "").replace(",", ".")
    try:
        return float(cleaned)
    except ValueError:
        raise ValueError("Valor monetário inválido") from None


def _check_email(value: str | None) -> str | None:
    if value is None:
        return value
    value = value.strip().lower()
    if not _EMAIL_RE.match(value):
        raise ValueError("Email deve ser válido")
    return value


Email = Annotated[str, Field(max_length=100), AfterValidator(_check_email)]
Money = Annotated[float, BeforeValidator(parse_money), Field(ge=0)]


class StatusPedido(str, Enum):
    CANCELADO = "CANCELADO"
    REALIZADO = "REALIZADO"
    ACEITO = "ACEITO"
    EM_PREPARO = "EM_PREPARO"
    SAIU_PARA_ENTREGA = "SAIU_PARA_ENTREGA"
    FINALIZADO = "FINALIZADO"


class Cliente(BaseModel):
    id: int | None = None
    nome: str
    email: str
    telefone: str | None = None
    endereco: str | None = None
    data_criacao: datetime | None = None
    data_atualizacao: datetime | None = None


class TipoPao(BaseModel):
    id: int | None = None
    nome: str
    descricao: str | None = None
    preco_base: float
    ativo: bool = True
    data_criacao: datetime | None = None
    data_atualizacao: datetime | None = None


class Pedido(BaseModel):
    id: int | None = None
    cliente_id: int
    tipo_pao_id: int
    quantidade: int
    preco_total: float
    status: StatusPedido = StatusPedido.REALIZADO
    observacoes: str | None = None
    data_pedido: datetime | None = None
    data_atualizacao: datetime | None = None


class CreateClienteDto(BaseModel):
    nome: str = Field(min_length=2, max_length=100)
    email: Email
    telefone: str | None = Field(default=None, min_length=10, max_length=20)
    endereco: str | None = None


class UpdateClienteDto(BaseModel):
    nome: str | None = Field(default=None, min_length=2, max_length=100)
    email: Email | None = None
    telefone: str | None = Field(default=None, min_length=10, max_length=20)
    endereco: str | None = None


class CreateTipoPaoDto(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nome: str = Field(min_length=2, max_length=50)
    descricao: str | None = None
    preco_base: Money = Field(validation_alias=AliasChoices("preco_base", "precoBase"))
    ativo: bool = True


class UpdateTipoPaoDto(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nome: str | None = Field(default=None, min_length=2, max_length=50)
    descricao: str | None = None
    preco_base: Money | None = Field(
        default=None, validation_alias=AliasChoices("preco_base", "precoBase")
    )
    ativo: bool | None = None


class CreatePedidoDto(BaseModel):
    cliente_id: int = Field(ge=1)
    tipo_pao_id: int = Field(ge=1)
    quantidade: int = Field(ge=1)
    status: StatusPedido | None = None
    observacoes: str | None = Field(default=None, max_length=500)


class UpdatePedidoDto(BaseModel):
    cliente_id: int | None = Field(default=None, ge=1)
    tipo_pao_id: int | None = Field(default=None, ge=1)
    quantidade: int | None = Field(default=None, ge=1)
    status: StatusPedido | None = None
    observacoes: str | None = Field(default=None, max_length=500)
