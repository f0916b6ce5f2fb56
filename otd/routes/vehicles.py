"""Veículos (estoque). O status só muda pelas operações de coleta, transporte e portaria."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from otd.database import get_db
from otd.deps import get_current_user, require_operator
from otd.errors import ConflictError, NotFoundError, ValidationError
from otd.models import Client, Collect, Manufacturer, Transport, Vehicle, VehicleStatus, Yard
from otd.schemas import VehicleCreate, VehicleResponse, VehicleUpdate

router = APIRouter(prefix="/vehicles", tags=["Veículos"])


async def _get_vehicle(db: AsyncSession, chassi: str) -> Vehicle:
    q = select(Vehicle).where(Vehicle.chassi == chassi.strip().upper())
    vehicle = (await db.execute(q)).scalar_one_or_none()
    if vehicle is None:
        raise NotFoundError("Veículo não encontrado.")
    return vehicle


async def _check_refs(db: AsyncSession, fields: dict):
    refs = (
        ("client_id", Client, "Cliente não encontrado."),
        ("yard_id", Yard, "Pátio não encontrado."),
        ("manufacturer_id", Manufacturer, "Montadora não encontrada."),
    )
    for key, model, message in refs:
        if fields.get(key) is not None and await db.get(model, fields[key]) is None:
            raise ValidationError(message)


@router.post("", response_model=VehicleResponse, status_code=201, dependencies=[Depends(require_operator)])
async def create_vehicle(data: VehicleCreate, db: AsyncSession = Depends(get_db)):
    q = select(Vehicle).where(Vehicle.chassi == data.chassi)
    if (await db.execute(q)).scalar_one_or_none():
        raise ConflictError("Chassi já cadastrado.")
    fields = data.model_dump()
    await _check_refs(db, fields)
    vehicle = Vehicle(**fields, status=VehicleStatus.PRE_ESTOQUE)
    db.add(vehicle)
    await db.commit()
    await db.refresh(vehicle)
    return vehicle


@router.get("", response_model=list[VehicleResponse], dependencies=[Depends(get_current_user)])
async def list_vehicles(
    status: VehicleStatus | None = Query(None),
    yard_id: int | None = Query(None),
    client_id: int | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    q = select(Vehicle).offset(skip).limit(limit).order_by(Vehicle.id.desc())
    if status is not None:
        q = q.where(Vehicle.status == status)
    if yard_id is not None:
        q = q.where(Vehicle.yard_id == yard_id)
    if client_id is not None:
        q = q.where(Vehicle.client_id == client_id)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.get("/{chassi}", response_model=VehicleResponse, dependencies=[Depends(get_current_user)])
async def get_vehicle(chassi: str, db: AsyncSession = Depends(get_db)):
    return await _get_vehicle(db, chassi)


@router.patch("/{chassi}", response_model=VehicleResponse, dependencies=[Depends(require_operator)])
async def update_vehicle(chassi: str, data: VehicleUpdate, db: AsyncSession = Depends(get_db)):
    vehicle = await _get_vehicle(db, chassi)
    fields = data.model_dump(exclude_unset=True)
    await _check_refs(db, fields)
    for key, value in fields.items():
        setattr(vehicle, key, value)
    await db.commit()
    await db.refresh(vehicle)
    return vehicle


@router.delete("/{chassi}", status_code=204, dependencies=[Depends(require_operator)])
async def delete_vehicle(chassi: str, db: AsyncSession = Depends(get_db)):
    """Exclui o veículo e suas coletas. Veículos com transporte não podem ser excluídos."""
    vehicle = await _get_vehicle(db, chassi)
    q = select(Transport.id).where(Transport.vehicle_chassi == vehicle.chassi).limit(1)
    if (await db.execute(q)).first() is not None:
        raise ConflictError("Veículo possui transportes registrados.")
    await db.execute(delete(Collect).where(Collect.vehicle_chassi == vehicle.chassi))
    await db.delete(vehicle)
    await db.commit()
    return None
