"""
Prestação de contas do motorista por transporte.

pendente | devolvido --envio--> enviado
enviado --devolução (com motivo)--> devolvido
enviado --aprovação--> aprovado

Itens só podem ser alterados enquanto a prestação está pendente ou devolvida.
"""
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .errors import ConflictError, NotFoundError, ValidationError
from .models import (
    Driver, ExpenseSettlement, ExpenseSettlementItem, SettlementStatus, Transport, utcnow,
)
from .schemas import SettlementCreate, SettlementItemCreate, SettlementItemUpdate

logger = logging.getLogger(__name__)

EDITABLE = (SettlementStatus.PENDENTE, SettlementStatus.DEVOLVIDO)


async def get_settlement(db: AsyncSession, settlement_id: int, for_update: bool = False) -> ExpenseSettlement:
    q = (
        select(ExpenseSettlement)
        .where(ExpenseSettlement.id == settlement_id)
        .options(selectinload(ExpenseSettlement.items))
    )
    if for_update:
        q = q.with_for_update()
    settlement = (await db.execute(q)).scalar_one_or_none()
    if settlement is None:
        raise NotFoundError("Prestação de contas não encontrada.")
    return settlement


async def list_settlements(db: AsyncSession, status: SettlementStatus | None = None) -> list[ExpenseSettlement]:
    q = (
        select(ExpenseSettlement)
        .options(selectinload(ExpenseSettlement.items))
        .order_by(ExpenseSettlement.created_at.desc(), ExpenseSettlement.id.desc())
    )
    if status is not None:
        q = q.where(ExpenseSettlement.status == status)
    return list((await db.execute(q)).scalars().all())


async def create_settlement(db: AsyncSession, data: SettlementCreate) -> ExpenseSettlement:
    transport = await db.get(Transport, data.transport_id)
    if transport is None:
        raise ValidationError("Transporte não encontrado.")
    driver_id = data.driver_id or transport.driver_id
    if driver_id is None:
        raise ValidationError("Transporte sem motorista atribuído.")
    if await db.get(Driver, driver_id) is None:
        raise ValidationError("Motorista não encontrado.")
    q = select(ExpenseSettlement.id).where(ExpenseSettlement.transport_id == transport.id)
    if (await db.execute(q)).first() is not None:
        raise ConflictError("Já existe prestação de contas para este transporte.")

    settlement = ExpenseSettlement(
        transport_id=transport.id,
        driver_id=driver_id,
        status=SettlementStatus.PENDENTE,
        total_amount=Decimal("0.00"),
        items=[],
    )
    db.add(settlement)
    await db.flush()
    logger.info("Prestação de contas %s criada para o transporte %s", settlement.id, transport.request_number)
    return settlement


def _recompute_total(settlement: ExpenseSettlement):
    settlement.total_amount = sum((Decimal(i.amount) for i in settlement.items), Decimal("0.00"))


def _require_editable(settlement: ExpenseSettlement):
    if settlement.status not in EDITABLE:
        raise ConflictError("Prestação de contas não pode ser alterada neste status.")


async def add_item(db: AsyncSession, settlement_id: int, data: SettlementItemCreate) -> ExpenseSettlement:
    settlement = await get_settlement(db, settlement_id, for_update=True)
    _require_editable(settlement)
    settlement.items.append(ExpenseSettlementItem(**data.model_dump()))
    _recompute_total(settlement)
    await db.flush()
    return settlement


async def _get_item(db: AsyncSession, item_id: int) -> ExpenseSettlementItem:
    item = await db.get(ExpenseSettlementItem, item_id)
    if item is None:
        raise NotFoundError("Item da prestação de contas não encontrado.")
    return item


async def update_item(db: AsyncSession, item_id: int, data: SettlementItemUpdate) -> ExpenseSettlement:
    item = await _get_item(db, item_id)
    settlement = await get_settlement(db, item.settlement_id, for_update=True)
    _require_editable(settlement)
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is None and key in ("expense_type", "amount"):
            continue
        setattr(item, key, value)
    _recompute_total(settlement)
    await db.flush()
    return settlement


async def delete_item(db: AsyncSession, item_id: int) -> ExpenseSettlement:
    item = await _get_item(db, item_id)
    settlement = await get_settlement(db, item.settlement_id, for_update=True)
    _require_editable(settlement)
    settlement.items.remove(item)
    _recompute_total(settlement)
    await db.flush()
    return settlement


async def submit(db: AsyncSession, settlement_id: int) -> ExpenseSettlement:
    settlement = await get_settlement(db, settlement_id, for_update=True)
    _require_editable(settlement)
    if not settlement.items:
        raise ValidationError("Inclua ao menos uma despesa antes de enviar.")
    settlement.status = SettlementStatus.ENVIADO
    settlement.submitted_at = utcnow()
    settlement.return_reason = None
    await db.flush()
    logger.info("Prestação de contas %s enviada para análise", settlement.id)
    return settlement


async def return_to_driver(db: AsyncSession, settlement_id: int, reason: str) -> ExpenseSettlement:
    settlement = await get_settlement(db, settlement_id, for_update=True)
    if settlement.status != SettlementStatus.ENVIADO:
        raise ConflictError("Somente prestações enviadas podem ser devolvidas.")
    settlement.status = SettlementStatus.DEVOLVIDO
    settlement.return_reason = reason
    settlement.reviewed_at = utcnow()
    await db.flush()
    logger.info("Prestação de contas %s devolvida ao motorista", settlement.id)
    return settlement


async def approve(db: AsyncSession, settlement_id: int) -> ExpenseSettlement:
    settlement = await get_settlement(db, settlement_id, for_update=True)
    if settlement.status != SettlementStatus.ENVIADO:
        raise ConflictError("Somente prestações enviadas podem ser aprovadas.")
    now = utcnow()
    settlement.status = SettlementStatus.APROVADO
    settlement.reviewed_at = now
    settlement.approved_at = now
    await db.flush()
    logger.info("Prestação de contas %s aprovada", settlement.id)
    return settlement
