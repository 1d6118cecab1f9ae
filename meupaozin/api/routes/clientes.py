from fastapi import APIRouter, Depends, Response, status

from meupaozin.api.deps import get_container
from meupaozin.container import AppContainer
from meupaozin.domain.models import Cliente, CreateClienteDto, UpdateClienteDto

router = APIRouter(prefix="/clientes", tags=["clientes"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Cliente)
async def create_cliente(dto: CreateClienteDto, c: AppContainer = Depends(get_container)) -> Cliente:
    return await c.clientes.create(dto)


@router.get("", response_model=list[Cliente])
async def list_clientes(c: AppContainer = Depends(get_container)) -> list[Cliente]:
    return await c.clientes.find_all()


@router.get("/ativos", response_model=list[Cliente])
async def list_clientes_ativos(c: AppContainer = Depends(get_container)) -> list[Cliente]:
    return await c.clientes.find_active()


@router.get("/email/{email}", response_model=Cliente)
async def get_cliente_by_email(email: str, c: AppContainer = Depends(get_container)) -> Cliente:
    return await c.clientes.find_by_email(email)


@router.get("/{cliente_id}", response_model=Cliente)
async def get_cliente(cliente_id: int, c: AppContainer = Depends(get_container)) -> Cliente:
    return await c.clientes.find_one(cliente_id)


@router.patch("/{cliente_id}", response_model=Cliente)
async def update_cliente(
    cliente_id: int, dto: UpdateClienteDto, c: AppContainer = Depends(get_container)
) -> Cliente:
    return await c.clientes.update(cliente_id, dto)


@router.delete("/{cliente_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_cliente(cliente_id: int, c: AppContainer = Depends(get_container)) -> Response:
    await c.clientes.remove(cliente_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
