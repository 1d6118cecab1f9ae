"""Domain services: store mutation first, then the matching producer calls."""

from meupaozin.services.clientes import ClientesService
from meupaozin.services.pedidos import PedidosService
from meupaozin.services.tipos_pao import TiposPaoService

__all__ = ["ClientesService", "PedidosService", "TiposPaoService"]
