"""Coletas: montadora → pátio."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otd import collect_service
from otd.database import get_db
from otd.deps import get_current_user, require_field, require_operator
from otd.errors import NotFoundError
from otd.models import Collect, CollectStatus
from otd.schemas import CollectCreate, CollectResponse, CollectUpdate

router = APIRouter(prefix="/collects", tags=["Coletas"])


@router.post("", response_model=CollectResponse, status_code=201, dependencies=[Depends(require_operator)])
async def create_collect(data: CollectCreate, db: AsyncSession = Depends(get_db)):
    collect = await collect_service.create_collect(db, data)
    await db.commit()
    await db.refresh(collect)
    return collect


@router.get("", response_model=list[CollectResponse], dependencies=[Depends(get_current_user)])
async def list_collects(
    status: CollectStatus | None = Query(None),
    driver_id: int | None = Query(None),
    yard_id: int | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    q = select(Collect).offset(skip).limit(limit).order_by(Collect.id.desc())
    if status is not None:
        q = q.where(Collect.status == status)
    if driver_id is not None:
        q = q.where(Collect.driver_id == driver_id)
    if yard_id is not None:
        q = q.where(Collect.yard_id == yard_id)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.get("/by-chassi/{chassi}", response_model=list[CollectResponse], dependencies=[Depends(get_current_user)])
async def list_collects_by_chassi(chassi: str, db: AsyncSession = Depends(get_db)):
    q = select(Collect).where(Collect.vehicle_chassi == chassi.strip().upper()).order_by(Collect.id.desc())
    result = await db.execute(q)
    return list(result.scalars().all())


@router.get("/{collect_id}", response_model=CollectResponse, dependencies=[Depends(get_current_user)])
async def get_collect(collect_id: int, db: AsyncSession = Depends(get_db)):
    collect = await db.get(Collect, collect_id)
    if collect is None:
        raise NotFoundError("Coleta não encontrada.")
    return collect


@router.patch("/{collect_id}", response_model=CollectResponse, dependencies=[Depends(require_field)])
async def update_collect(collect_id: int, data: CollectUpdate, db: AsyncSession = Depends(get_db)):
    """
    Atualiza dados da coleta e/ou registra check-in (`checkin`) e check-out (`checkout`).
    O check-out finaliza a coleta e coloca o veículo em estoque.
    """
    collect = await collect_service.update_collect(db, collect_id, data)
    await db.commit()
    return collect


@router.post("/{collect_id}/cancel", response_model=CollectResponse, dependencies=[Depends(require_operator)])
async def cancel_collect(collect_id: int, db: AsyncSession = Depends(get_db)):
    collect = await collect_service.cancel_collect(db, collect_id)
    await db.commit()
    return collect
