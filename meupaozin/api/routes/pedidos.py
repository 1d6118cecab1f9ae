from fastapi import APIRouter, Depends, Query, Response, status

from meupaozin.api.deps import get_container
from meupaozin.container import AppContainer
from meupaozin.domain.models import CreatePedidoDto, Pedido, StatusPedido, UpdatePedidoDto
from meupaozin.services.pedidos import RECENT_DEFAULT, RECENT_MAX

router = APIRouter(prefix="/pedidos", tags=["pedidos"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Pedido)
async def create_pedido(dto: CreatePedidoDto, c: AppContainer = Depends(get_container)) -> Pedido:
    return await c.pedidos.create(dto)


@router.get("", response_model=list[Pedido])
async def list_pedidos(c: AppContainer = Depends(get_container)) -> list[Pedido]:
    return await c.pedidos.find_all()


@router.get("/status")
async def list_status_values(c: AppContainer = Depends(get_container)) -> list[str]:
    return c.pedidos.status_values()


@router.get("/recentes", response_model=list[Pedido])
async def list_recent_pedidos(
    limit: int = Query(RECENT_DEFAULT, ge=1, le=RECENT_MAX),
    c: AppContainer = Depends(get_container),
) -> list[Pedido]:
    return await c.pedidos.recent(limit)


@router.get("/status/{status_pedido}", response_model=list[Pedido])
async def list_pedidos_by_status(
    status_pedido: StatusPedido, c: AppContainer = Depends(get_container)
) -> list[Pedido]:
    return await c.pedidos.find_by_status(status_pedido)


@router.get("/cliente/{cliente_id}", response_model=list[Pedido])
async def list_pedidos_by_cliente(cliente_id: int, c: AppContainer = Depends(get_container)) -> list[Pedido]:
    return await c.pedidos.find_by_cliente(cliente_id)


@router.get("/tipo-pao/{tipo_pao_id}", response_model=list[Pedido])
async def list_pedidos_by_tipo_pao(tipo_pao_id: int, c: AppContainer = Depends(get_container)) -> list[Pedido]:
    return await c.pedidos.find_by_tipo_pao(tipo_pao_id)


@router.get("/{pedido_id}", response_model=Pedido)
async def get_pedido(pedido_id: int, c: AppContainer = Depends(get_container)) -> Pedido:
    return await c.pedidos.find_one(pedido_id)


@router.patch("/{pedido_id}", response_model=Pedido)
async def update_pedido(
    pedido_id: int, dto: UpdatePedidoDto, c: AppContainer = Depends(get_container)
) -> Pedido:
    return await c.pedidos.update(pedido_id, dto)


@router.delete("/{pedido_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pedido(pedido_id: int, c: AppContainer = Depends(get_container)) -> Response:
    await c.pedidos.remove(pedido_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
