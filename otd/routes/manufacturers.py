"""CRUD de montadoras."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otd.database import commit_or_conflict, get_db
from otd.deps import get_current_user, require_operator
from otd.errors import NotFoundError
from otd.models import Manufacturer
from otd.schemas import ManufacturerCreate, ManufacturerResponse, ManufacturerUpdate

router = APIRouter(prefix="/manufacturers", tags=["Montadoras"])


async def _get_manufacturer(db: AsyncSession, manufacturer_id: int) -> Manufacturer:
    manufacturer = await db.get(Manufacturer, manufacturer_id)
    if manufacturer is None:
        raise NotFoundError("Montadora não encontrada.")
    return manufacturer


@router.post("", response_model=ManufacturerResponse, status_code=201, dependencies=[Depends(require_operator)])
async def create_manufacturer(data: ManufacturerCreate, db: AsyncSession = Depends(get_db)):
    manufacturer = Manufacturer(**data.model_dump())
    db.add(manufacturer)
    await db.commit()
    await db.refresh(manufacturer)
    return manufacturer


@router.get("", response_model=list[ManufacturerResponse], dependencies=[Depends(get_current_user)])
async def list_manufacturers(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    q = select(Manufacturer).offset(skip).limit(limit).order_by(Manufacturer.name)
    if active_only:
        q = q.where(Manufacturer.is_active == True)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.get("/{manufacturer_id}", response_model=ManufacturerResponse, dependencies=[Depends(get_current_user)])
async def get_manufacturer(manufacturer_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_manufacturer(db, manufacturer_id)


@router.patch("/{manufacturer_id}", response_model=ManufacturerResponse, dependencies=[Depends(require_operator)])
async def update_manufacturer(manufacturer_id: int, data: ManufacturerUpdate, db: AsyncSession = Depends(get_db)):
    manufacturer = await _get_manufacturer(db, manufacturer_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(manufacturer, key, value)
    await db.commit()
    return manufacturer


@router.delete("/{manufacturer_id}", status_code=204, dependencies=[Depends(require_operator)])
async def delete_manufacturer(manufacturer_id: int, db: AsyncSession = Depends(get_db)):
    manufacturer = await _get_manufacturer(db, manufacturer_id)
    await db.delete(manufacturer)
    await commit_or_conflict(db, "Montadora vinculada a coletas; desative-a em vez de excluir.")
    return None
