from fastapi import APIRouter, Depends, Response, status

from meupaozin.api.deps import get_container
from meupaozin.container import AppContainer
from meupaozin.domain.models import CreateTipoPaoDto, TipoPao, UpdateTipoPaoDto

router = APIRouter(prefix="/tipos-pao", tags=["tipos-pao"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=TipoPao)
async def create_tipo_pao(dto: CreateTipoPaoDto, c: AppContainer = Depends(get_container)) -> TipoPao:
    return await c.tipos_pao.create(dto)


@router.get("", response_model=list[TipoPao])
async def list_tipos_pao(c: AppContainer = Depends(get_container)) -> list[TipoPao]:
    return await c.tipos_pao.find_all()


@router.get("/ativos", response_model=list[TipoPao])
async def list_tipos_pao_ativos(c: AppContainer = Depends(get_container)) -> list[TipoPao]:
    return await c.tipos_pao.find_active()


@router.get("/stats")
async def tipos_pao_stats(c: AppContainer = Depends(get_container)) -> dict[str, int]:
    return await c.tipos_pao.stats()


@router.get("/nome/{nome}", response_model=TipoPao)
async def get_tipo_pao_by_nome(nome: str, c: AppContainer = Depends(get_container)) -> TipoPao:
    return await c.tipos_pao.find_by_nome(nome)


@router.get("/{tipo_pao_id}", response_model=TipoPao)
async def get_tipo_pao(tipo_pao_id: int, c: AppContainer = Depends(get_container)) -> TipoPao:
    return await c.tipos_pao.find_by_id(tipo_pao_id)


@router.patch("/{tipo_pao_id}/toggle", response_model=TipoPao)
async def toggle_tipo_pao(tipo_pao_id: int, c: AppContainer = Depends(get_container)) -> TipoPao:
    return await c.tipos_pao.toggle_active(tipo_pao_id)


@router.patch("/{tipo_pao_id}", response_model=TipoPao)
async def update_tipo_pao(
    tipo_pao_id: int, dto: UpdateTipoPaoDto, c: AppContainer = Depends(get_container)
) -> TipoPao:
    return await c.tipos_pao.update(tipo_pao_id, dto)


@router.delete("/{tipo_pao_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tipo_pao(tipo_pao_id: int, c: AppContainer = Depends(get_container)) -> Response:
    await c.tipos_pao.remove(tipo_pao_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
