"""CRUD de pátios."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from otd.database import commit_or_conflict, get_db
from otd.deps import get_current_user, require_operator
from otd.errors import ConflictError, NotFoundError
from otd.models import Vehicle, VehicleStatus, Yard
from otd.schemas import YardCreate, YardResponse, YardUpdate

router = APIRouter(prefix="/yards", tags=["Pátios"])


async def _get_yard(db: AsyncSession, yard_id: int) -> Yard:
    yard = await db.get(Yard, yard_id)
    if yard is None:
        raise NotFoundError("Pátio não encontrado.")
    return yard


@router.post("", response_model=YardResponse, status_code=201, dependencies=[Depends(require_operator)])
async def create_yard(data: YardCreate, db: AsyncSession = Depends(get_db)):
    yard = Yard(**data.model_dump())
    db.add(yard)
    await db.commit()
    await db.refresh(yard)
    return yard


@router.get("", response_model=list[YardResponse], dependencies=[Depends(get_current_user)])
async def list_yards(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    q = select(Yard).offset(skip).limit(limit).order_by(Yard.name)
    if active_only:
        q = q.where(Yard.is_active == True)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.get("/{yard_id}", response_model=YardResponse, dependencies=[Depends(get_current_user)])
async def get_yard(yard_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_yard(db, yard_id)


@router.patch("/{yard_id}", response_model=YardResponse, dependencies=[Depends(require_operator)])
async def update_yard(yard_id: int, data: YardUpdate, db: AsyncSession = Depends(get_db)):
    yard = await _get_yard(db, yard_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(yard, key, value)
    await db.commit()
    return yard


@router.delete("/{yard_id}", status_code=204, dependencies=[Depends(require_operator)])
async def delete_yard(yard_id: int, db: AsyncSession = Depends(get_db)):
    yard = await _get_yard(db, yard_id)
    q = select(func.count()).select_from(Vehicle).where(
        Vehicle.yard_id == yard_id, Vehicle.status == VehicleStatus.EM_ESTOQUE
    )
    if await db.scalar(q):
        raise ConflictError("Pátio possui veículos em estoque.")
    await db.delete(yard)
    await commit_or_conflict(db, "Pátio vinculado a coletas ou transportes; desative-o em vez de excluir.")
    return None
