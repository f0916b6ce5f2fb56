"""CRUD de motoristas."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otd.database import commit_or_conflict, get_db
from otd.deps import get_current_user, require_operator
from otd.errors import ConflictError, NotFoundError
from otd.models import Driver, DriverModality
from otd.schemas import DriverCreate, DriverResponse, DriverUpdate

router = APIRouter(prefix="/drivers", tags=["Motoristas"])


def _only_digits(value: str) -> str:
    return "".join(c for c in value if c.isdigit())


async def _get_driver(db: AsyncSession, driver_id: int) -> Driver:
    driver = await db.get(Driver, driver_id)
    if driver is None:
        raise NotFoundError("Motorista não encontrado.")
    return driver


@router.post("", response_model=DriverResponse, status_code=201, dependencies=[Depends(require_operator)])
async def create_driver(data: DriverCreate, db: AsyncSession = Depends(get_db)):
    cpf = _only_digits(data.cpf)
    q = select(Driver).where(Driver.cpf == cpf)
    if (await db.execute(q)).scalar_one_or_none():
        raise ConflictError("CPF já cadastrado.")
    driver = Driver(**data.model_dump(exclude={"cpf"}), cpf=cpf)
    db.add(driver)
    await commit_or_conflict(db, "CPF já cadastrado.")
    await db.refresh(driver)
    return driver


@router.get("", response_model=list[DriverResponse], dependencies=[Depends(get_current_user)])
async def list_drivers(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    active_only: bool = Query(False, description="Se True, lista só motoristas ativos"),
    modality: DriverModality | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    q = select(Driver).offset(skip).limit(limit).order_by(Driver.name)
    if active_only:
        q = q.where(Driver.is_active == True)
    if modality is not None:
        q = q.where(Driver.modality == modality)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.get("/{driver_id}", response_model=DriverResponse, dependencies=[Depends(get_current_user)])
async def get_driver(driver_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_driver(db, driver_id)


@router.patch("/{driver_id}", response_model=DriverResponse, dependencies=[Depends(require_operator)])
async def update_driver(driver_id: int, data: DriverUpdate, db: AsyncSession = Depends(get_db)):
    driver = await _get_driver(db, driver_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(driver, key, value)
    await db.commit()
    return driver


@router.delete("/{driver_id}", status_code=204, dependencies=[Depends(require_operator)])
async def delete_driver(driver_id: int, db: AsyncSession = Depends(get_db)):
    driver = await _get_driver(db, driver_id)
    await db.delete(driver)
    await commit_or_conflict(db, "Motorista vinculado a registros; desative-o em vez de excluir.")
    return None
