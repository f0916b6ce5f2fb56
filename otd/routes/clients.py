"""CRUD de clientes e dos seus locais de entrega."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otd.database import commit_or_conflict, get_db
from otd.deps import get_current_user, require_operator
from otd.errors import NotFoundError
from otd.models import Client, DeliveryLocation
from otd.schemas import (
    ClientCreate, ClientResponse, ClientUpdate,
    DeliveryLocationCreate, DeliveryLocationResponse, DeliveryLocationUpdate,
)

router = APIRouter(prefix="/clients", tags=["Clientes"])
locations_router = APIRouter(prefix="/delivery-locations", tags=["Clientes"])


async def _get_client(db: AsyncSession, client_id: int) -> Client:
    client = await db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Cliente não encontrado.")
    return client


async def _get_location(db: AsyncSession, location_id: int) -> DeliveryLocation:
    location = await db.get(DeliveryLocation, location_id)
    if location is None:
        raise NotFoundError("Local de entrega não encontrado.")
    return location


@router.post("", response_model=ClientResponse, status_code=201, dependencies=[Depends(require_operator)])
async def create_client(data: ClientCreate, db: AsyncSession = Depends(get_db)):
    client = Client(**data.model_dump())
    db.add(client)
    await db.commit()
    await db.refresh(client)
    return client


@router.get("", response_model=list[ClientResponse], dependencies=[Depends(get_current_user)])
async def list_clients(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    q = select(Client).offset(skip).limit(limit).order_by(Client.name)
    if active_only:
        q = q.where(Client.is_active == True)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.get("/{client_id}", response_model=ClientResponse, dependencies=[Depends(get_current_user)])
async def get_client(client_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_client(db, client_id)


@router.patch("/{client_id}", response_model=ClientResponse, dependencies=[Depends(require_operator)])
async def update_client(client_id: int, data: ClientUpdate, db: AsyncSession = Depends(get_db)):
    client = await _get_client(db, client_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(client, key, value)
    await db.commit()
    await db.refresh(client)
    return client


@router.delete("/{client_id}", status_code=204, dependencies=[Depends(require_operator)])
async def delete_client(client_id: int, db: AsyncSession = Depends(get_db)):
    client = await _get_client(db, client_id)
    await db.delete(client)
    await commit_or_conflict(db, "Cliente vinculado a transportes; desative-o em vez de excluir.")
    return None


# --- Locais de entrega ---
@router.get(
    "/{client_id}/locations",
    response_model=list[DeliveryLocationResponse],
    dependencies=[Depends(get_current_user)],
)
async def list_locations(
    client_id: int,
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    await _get_client(db, client_id)
    q = select(DeliveryLocation).where(DeliveryLocation.client_id == client_id).order_by(DeliveryLocation.name)
    if active_only:
        q = q.where(DeliveryLocation.is_active == True)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.post(
    "/{client_id}/locations",
    response_model=DeliveryLocationResponse,
    status_code=201,
    dependencies=[Depends(require_operator)],
)
async def create_location(client_id: int, data: DeliveryLocationCreate, db: AsyncSession = Depends(get_db)):
    await _get_client(db, client_id)
    location = DeliveryLocation(client_id=client_id, **data.model_dump())
    db.add(location)
    await db.commit()
    await db.refresh(location)
    return location


@locations_router.get("/{location_id}", response_model=DeliveryLocationResponse, dependencies=[Depends(get_current_user)])
async def get_location(location_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_location(db, location_id)


@locations_router.patch("/{location_id}", response_model=DeliveryLocationResponse, dependencies=[Depends(require_operator)])
async def update_location(location_id: int, data: DeliveryLocationUpdate, db: AsyncSession = Depends(get_db)):
    location = await _get_location(db, location_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(location, key, value)
    await db.commit()
    return location


@locations_router.delete("/{location_id}", status_code=204, dependencies=[Depends(require_operator)])
async def delete_location(location_id: int, db: AsyncSession = Depends(get_db)):
    location = await _get_location(db, location_id)
    await db.delete(location)
    await commit_or_conflict(db, "Local de entrega vinculado a transportes; desative-o em vez de excluir.")
    return None
