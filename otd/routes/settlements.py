"""Prestação de contas de despesas do motorista."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from otd import settlement_service
from otd.database import get_db
from otd.deps import get_current_user, require_field, require_operator
from otd.errors import ConflictError
from otd.models import SettlementStatus
from otd.schemas import (
    SettlementCreate, SettlementItemCreate, SettlementItemUpdate, SettlementResponse, SettlementReturnRequest,
)

router = APIRouter(prefix="/expense-settlements", tags=["Prestação de contas"])


@router.post("", response_model=SettlementResponse, status_code=201, dependencies=[Depends(require_field)])
async def create_settlement(data: SettlementCreate, db: AsyncSession = Depends(get_db)):
    settlement = await settlement_service.create_settlement(db, data)
    await db.commit()
    return settlement


@router.get("", response_model=list[SettlementResponse], dependencies=[Depends(get_current_user)])
async def list_settlements(
    status: SettlementStatus | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await settlement_service.list_settlements(db, status)


@router.get("/{settlement_id}", response_model=SettlementResponse, dependencies=[Depends(get_current_user)])
async def get_settlement(settlement_id: int, db: AsyncSession = Depends(get_db)):
    return await settlement_service.get_settlement(db, settlement_id)


@router.delete("/{settlement_id}", status_code=204, dependencies=[Depends(require_operator)])
async def delete_settlement(settlement_id: int, db: AsyncSession = Depends(get_db)):
    settlement = await settlement_service.get_settlement(db, settlement_id, for_update=True)
    if settlement.status != SettlementStatus.PENDENTE:
        raise ConflictError("Somente prestações pendentes podem ser excluídas.")
    await db.delete(settlement)
    await db.commit()
    return None


@router.post(
    "/{settlement_id}/items",
    response_model=SettlementResponse,
    status_code=201,
    dependencies=[Depends(require_field)],
)
async def add_item(settlement_id: int, data: SettlementItemCreate, db: AsyncSession = Depends(get_db)):
    settlement = await settlement_service.add_item(db, settlement_id, data)
    await db.commit()
    return settlement


@router.patch("/items/{item_id}", response_model=SettlementResponse, dependencies=[Depends(require_field)])
async def update_item(item_id: int, data: SettlementItemUpdate, db: AsyncSession = Depends(get_db)):
    settlement = await settlement_service.update_item(db, item_id, data)
    await db.commit()
    return settlement


@router.delete("/items/{item_id}", response_model=SettlementResponse, dependencies=[Depends(require_field)])
async def delete_item(item_id: int, db: AsyncSession = Depends(get_db)):
    settlement = await settlement_service.delete_item(db, item_id)
    await db.commit()
    return settlement


@router.post("/{settlement_id}/submit", response_model=SettlementResponse, dependencies=[Depends(require_field)])
async def submit(settlement_id: int, db: AsyncSession = Depends(get_db)):
    settlement = await settlement_service.submit(db, settlement_id)
    await db.commit()
    return settlement


@router.post("/{settlement_id}/return", response_model=SettlementResponse, dependencies=[Depends(require_operator)])
async def return_to_driver(settlement_id: int, data: SettlementReturnRequest, db: AsyncSession = Depends(get_db)):
    settlement = await settlement_service.return_to_driver(db, settlement_id, data.return_reason)
    await db.commit()
    return settlement


@router.post("/{settlement_id}/approve", response_model=SettlementResponse, dependencies=[Depends(require_operator)])
async def approve(settlement_id: int, db: AsyncSession = Depends(get_db)):
    settlement = await settlement_service.approve(db, settlement_id)
    await db.commit()
    return settlement
