"""
Ciclo de vida da coleta (montadora → pátio).

em_transito --check-out / entrada autorizada--> finalizada
em_transito --cancelamento--> cancelado

O check-out (ou a autorização de entrada na portaria) coloca o veículo em estoque
no pátio de destino. Cada operação lê as linhas envolvidas com FOR UPDATE, valida
e só então altera, dentro da transação da requisição.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .errors import ConflictError, NotFoundError, ValidationError
from .models import (
    Collect, CollectStatus, Driver, Manufacturer, User, Vehicle, VehicleStatus, Yard, utcnow,
)
from .schemas import CheckEvent, CollectCreate, CollectUpdate

logger = logging.getLogger(__name__)


async def get_collect_for_update(db: AsyncSession, collect_id: int) -> Collect:
    q = select(Collect).where(Collect.id == collect_id).with_for_update()
    collect = (await db.execute(q)).scalar_one_or_none()
    if collect is None:
        raise NotFoundError("Coleta não encontrada.")
    return collect


async def get_vehicle_for_update(db: AsyncSession, chassi: str) -> Optional[Vehicle]:
    q = select(Vehicle).where(Vehicle.chassi == chassi).with_for_update()
    return (await db.execute(q)).scalar_one_or_none()


async def _require(db: AsyncSession, model, entity_id: Optional[int], message: str):
    if entity_id is None:
        return None
    obj = await db.get(model, entity_id)
    if obj is None:
        raise ValidationError(message)
    return obj


async def create_collect(db: AsyncSession, data: CollectCreate) -> Collect:
    """
    Cria a coleta (em_transito). Chassi desconhecido gera o veículo em pre_estoque.
    Veículo já cadastrado só pode ser coletado em pre_estoque e sem outra coleta aberta.
    """
    await _require(db, Manufacturer, data.manufacturer_id, "Montadora não encontrada.")
    await _require(db, Yard, data.yard_id, "Pátio de destino não encontrado.")
    await _require(db, Driver, data.driver_id, "Motorista não encontrado.")

    collect_date = data.collect_date or utcnow()
    vehicle = await get_vehicle_for_update(db, data.vehicle_chassi)
    if vehicle is not None:
        if vehicle.status != VehicleStatus.PRE_ESTOQUE:
            raise ValidationError(f"Veículo não pode ser coletado (status atual: {vehicle.status.value}).")
        q = select(Collect.id).where(
            Collect.vehicle_chassi == vehicle.chassi,
            Collect.status == CollectStatus.EM_TRANSITO,
        )
        if (await db.execute(q.limit(1))).first() is not None:
            raise ValidationError("Veículo já possui coleta em trânsito.")
    else:
        vehicle = Vehicle(
            chassi=data.vehicle_chassi,
            status=VehicleStatus.PRE_ESTOQUE,
            manufacturer_id=data.manufacturer_id,
            collect_date_time=collect_date,
        )
        db.add(vehicle)
        logger.info("Veículo %s criado em pre_estoque pela coleta", data.vehicle_chassi)

    collect = Collect(
        vehicle_chassi=data.vehicle_chassi,
        manufacturer_id=data.manufacturer_id,
        yard_id=data.yard_id,
        driver_id=data.driver_id,
        collect_date=collect_date,
        notes=data.notes,
        status=CollectStatus.EM_TRANSITO,
    )
    db.add(collect)
    await db.flush()
    return collect


async def update_collect(db: AsyncSession, collect_id: int, data: CollectUpdate) -> Collect:
    """
    Aplica, nesta ordem: campos simples, check-in e check-out.
    Assim uma única requisição pode registrar check-in e check-out juntos.
    """
    collect = await get_collect_for_update(db, collect_id)
    fields = data.model_dump(exclude_unset=True, exclude={"checkin", "checkout"})
    if fields:
        if collect.status != CollectStatus.EM_TRANSITO:
            raise ConflictError("Coleta já encerrada não pode ser alterada.")
        if "driver_id" in fields:
            await _require(db, Driver, fields["driver_id"], "Motorista não encontrado.")
        for key, value in fields.items():
            setattr(collect, key, value)
    if data.checkin is not None:
        await record_checkin(db, collect_id, data.checkin, collect=collect)
    if data.checkout is not None:
        await record_checkout(db, collect_id, data.checkout, collect=collect)
    await db.flush()
    return collect


def _apply_event(collect: Collect, prefix: str, event: CheckEvent):
    setattr(collect, f"{prefix}_date_time", event.date_time or utcnow())
    setattr(collect, f"{prefix}_latitude", event.latitude)
    setattr(collect, f"{prefix}_longitude", event.longitude)
    setattr(collect, f"{prefix}_photos", list(event.photos))
    setattr(collect, f"{prefix}_notes", event.notes)


async def record_checkin(
    db: AsyncSession, collect_id: int, event: CheckEvent, collect: Optional[Collect] = None
) -> Collect:
    """Registra a retirada na montadora. Não altera status."""
    if collect is None:
        collect = await get_collect_for_update(db, collect_id)
    if collect.status != CollectStatus.EM_TRANSITO:
        raise ConflictError("Check-in só é permitido em coleta em trânsito.")
    _apply_event(collect, "checkin", event)
    await db.flush()
    logger.info("Check-in registrado na coleta %s", collect.id)
    return collect


async def record_checkout(
    db: AsyncSession,
    collect_id: int,
    event: CheckEvent,
    collect: Optional[Collect] = None,
    approved_by: Optional[User] = None,
) -> Collect:
    """Finaliza a coleta e coloca o veículo em estoque no pátio de destino."""
    if collect is None:
        collect = await get_collect_for_update(db, collect_id)
    if collect.status == CollectStatus.FINALIZADA:
        raise ConflictError("Coleta já finalizada.")
    if collect.status == CollectStatus.CANCELADO:
        raise ConflictError("Coleta cancelada.")
    if collect.checkin_date_time is None:
        raise ConflictError("Check-out exige check-in registrado.")
    vehicle = await get_vehicle_for_update(db, collect.vehicle_chassi)
    if vehicle is None:
        raise NotFoundError("Veículo da coleta não encontrado.")
    if vehicle.status != VehicleStatus.PRE_ESTOQUE:
        raise ConflictError(f"Veículo não pode entrar em estoque (status atual: {vehicle.status.value}).")

    _apply_event(collect, "checkout", event)
    if approved_by is not None:
        collect.checkout_approved_by_id = approved_by.id
    collect.status = CollectStatus.FINALIZADA

    vehicle.status = VehicleStatus.EM_ESTOQUE
    vehicle.yard_id = collect.yard_id
    vehicle.yard_entry_date_time = collect.checkout_date_time
    await db.flush()
    logger.info("Coleta %s finalizada; veículo %s em estoque no pátio %s", collect.id, vehicle.chassi, collect.yard_id)
    return collect


async def authorize_entry(db: AsyncSession, collect_id: int, user: User) -> Collect:
    """
    Portaria: autoriza a entrada do veículo no pátio. Equivale ao check-out com
    horário do servidor. Sem check-in do motorista, a portaria registra os dois.
    """
    collect = await get_collect_for_update(db, collect_id)
    if collect.status == CollectStatus.EM_TRANSITO and collect.checkin_date_time is None:
        _apply_event(collect, "checkin", CheckEvent(notes="Registrado pela portaria"))
    collect = await record_checkout(db, collect_id, CheckEvent(), collect=collect, approved_by=user)
    logger.info("Entrada autorizada pela portaria (coleta %s, usuário %s)", collect.id, user.username)
    return collect


async def cancel_collect(db: AsyncSession, collect_id: int) -> Collect:
    collect = await get_collect_for_update(db, collect_id)
    if collect.status != CollectStatus.EM_TRANSITO:
        raise ConflictError("Somente coletas em trânsito podem ser canceladas.")
    collect.status = CollectStatus.CANCELADO
    await db.flush()
    logger.info("Coleta %s cancelada", collect.id)
    return collect
