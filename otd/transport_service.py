"""
Ciclo de vida do transporte (pátio → cliente) e linha do tempo de checkpoints.

pendente --pronto para saída--> aguardando_saida
pendente | aguardando_saida --saída autorizada (portaria)--> em_transito
em_transito --entrega--> entregue
pendente | aguardando_saida | em_transito --cancelamento--> cancelado

entregue e cancelado são terminais.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .errors import ConflictError, NotFoundError, ValidationError
from .models import (
    Checkpoint, CheckpointStatus, Client, DeliveryLocation, Driver, RequestCounter, Transport,
    TransportCheckpoint, TransportStatus, User, VehicleStatus, Yard, utcnow,
)
from .schemas import CheckEvent, TransportCreate, TransportUpdate
from .collect_service import get_vehicle_for_update

logger = logging.getLogger(__name__)

COUNTER_ID = RequestCounter.COUNTER_ID
AWAITING_EXIT = (TransportStatus.PENDENTE, TransportStatus.AGUARDANDO_SAIDA)
TERMINAL = (TransportStatus.ENTREGUE, TransportStatus.CANCELADO)


@dataclass
class Progress:
    """Progresso da linha do tempo: saída do pátio + checkpoints + entrega."""
    completed: int
    total: int
    percentage: int


def compute_progress(
    checkpoint_statuses: Iterable[CheckpointStatus],
    has_checkin: bool,
    has_checkout: bool,
) -> Progress:
    statuses = list(checkpoint_statuses)
    total = len(statuses) + 2
    completed = sum(1 for s in statuses if s == CheckpointStatus.CONCLUIDO)
    if has_checkin:
        completed += 1
    if has_checkout:
        completed += 1
    completed = min(completed, total)
    percentage = int((Decimal(completed) * 100 / Decimal(total)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return Progress(completed=completed, total=total, percentage=percentage)


async def get_transport_for_update(db: AsyncSession, transport_id: int) -> Transport:
    q = select(Transport).where(Transport.id == transport_id).with_for_update()
    transport = (await db.execute(q)).scalar_one_or_none()
    if transport is None:
        raise NotFoundError("Transporte não encontrado.")
    return transport


async def next_request_number(db: AsyncSession) -> str:
    """Incrementa o contador atomicamente e formata OTD00001. A linha é criada em init_db."""
    q = (
        update(RequestCounter)
        .where(RequestCounter.id == COUNTER_ID)
        .values(last_number=RequestCounter.last_number + 1)
        .returning(RequestCounter.last_number)
    )
    number = (await db.execute(q)).scalar_one()
    return f"{get_settings().request_number_prefix}{number:05d}"


async def create_transport(db: AsyncSession, data: TransportCreate, user: Optional[User] = None) -> Transport:
    """Cria transporte pendente para veículo em estoque."""
    vehicle = await get_vehicle_for_update(db, data.vehicle_chassi)
    if vehicle is None:
        raise ValidationError("Veículo não encontrado.")
    if vehicle.status != VehicleStatus.EM_ESTOQUE:
        raise ValidationError(f"Veículo não está em estoque (status atual: {vehicle.status.value}).")
    if await db.get(Client, data.client_id) is None:
        raise ValidationError("Cliente não encontrado.")
    if await db.get(Yard, data.origin_yard_id) is None:
        raise ValidationError("Pátio de origem não encontrado.")
    location = await db.get(DeliveryLocation, data.delivery_location_id)
    if location is None:
        raise ValidationError("Local de entrega não encontrado.")
    if location.client_id != data.client_id:
        raise ValidationError("Local de entrega não pertence ao cliente.")
    if data.driver_id is not None and await db.get(Driver, data.driver_id) is None:
        raise ValidationError("Motorista não encontrado.")

    now = utcnow()
    transport = Transport(
        request_number=await next_request_number(db),
        vehicle_chassi=data.vehicle_chassi,
        client_id=data.client_id,
        origin_yard_id=data.origin_yard_id,
        delivery_location_id=data.delivery_location_id,
        driver_id=data.driver_id,
        delivery_date=data.delivery_date,
        notes=data.notes,
        status=TransportStatus.PENDENTE,
        created_by_user_id=user.id if user else None,
        driver_assigned_by_user_id=user.id if (user and data.driver_id) else None,
        driver_assigned_at=now if data.driver_id else None,
    )
    if vehicle.client_id is None:
        vehicle.client_id = data.client_id
    db.add(transport)
    await db.flush()
    logger.info("Transporte %s criado para o veículo %s", transport.request_number, vehicle.chassi)
    return transport


async def update_transport(
    db: AsyncSession, transport_id: int, data: TransportUpdate, user: Optional[User] = None
) -> Transport:
    transport = await get_transport_for_update(db, transport_id)
    if transport.status in TERMINAL:
        raise ConflictError("Transporte encerrado não pode ser alterado.")
    fields = data.model_dump(exclude_unset=True)
    if fields.get("driver_id") is not None:
        if await db.get(Driver, fields["driver_id"]) is None:
            raise ValidationError("Motorista não encontrado.")
        if transport.driver_id is None:
            transport.driver_assigned_by_user_id = user.id if user else None
            transport.driver_assigned_at = utcnow()
    for key, value in fields.items():
        setattr(transport, key, value)
    await db.flush()
    return transport


async def assign_checkpoints(db: AsyncSession, transport_id: int, checkpoint_ids: list[int]) -> list[TransportCheckpoint]:
    """Substitui todos os checkpoints do transporte; a ordem da lista define order_index."""
    transport = await get_transport_for_update(db, transport_id)
    if len(set(checkpoint_ids)) != len(checkpoint_ids):
        raise ValidationError("Checkpoint repetido na lista.")
    if checkpoint_ids:
        q = select(Checkpoint.id).where(Checkpoint.id.in_(checkpoint_ids))
        found = set((await db.execute(q)).scalars().all())
        missing = [c for c in checkpoint_ids if c not in found]
        if missing:
            raise ValidationError(f"Checkpoint não encontrado: {missing[0]}.")

    await db.execute(delete(TransportCheckpoint).where(TransportCheckpoint.transport_id == transport.id))
    rows = [
        TransportCheckpoint(
            transport_id=transport.id,
            checkpoint_id=checkpoint_id,
            order_index=index,
            status=CheckpointStatus.PENDENTE,
            reached_at=None,
        )
        for index, checkpoint_id in enumerate(checkpoint_ids)
    ]
    db.add_all(rows)
    await db.flush()
    logger.info("Transporte %s: %d checkpoints atribuídos", transport.request_number, len(rows))
    return rows


async def mark_checkpoint_reached(db: AsyncSession, transport_checkpoint_id: int, finalized: bool) -> TransportCheckpoint:
    """
    Marca chegada (alcancado) ou conclusão (concluido) do checkpoint.
    A ordem não é imposta: sinais de GPS podem chegar fora de ordem.
    """
    q = select(TransportCheckpoint).where(TransportCheckpoint.id == transport_checkpoint_id).with_for_update()
    row = (await db.execute(q)).scalar_one_or_none()
    if row is None:
        raise NotFoundError("Checkpoint do transporte não encontrado.")
    row.status = CheckpointStatus.CONCLUIDO if finalized else CheckpointStatus.ALCANCADO
    row.reached_at = utcnow()
    await db.flush()
    return row


async def mark_ready_for_dispatch(db: AsyncSession, transport_id: int) -> Transport:
    """Motorista apresentou-se no pátio: aguardando liberação da portaria."""
    transport = await get_transport_for_update(db, transport_id)
    if transport.status != TransportStatus.PENDENTE:
        raise ConflictError("Transporte não está pendente.")
    transport.status = TransportStatus.AGUARDANDO_SAIDA
    await db.flush()
    return transport


async def authorize_exit(db: AsyncSession, transport_id: int) -> Transport:
    """Portaria: libera a saída do pátio. Veículo passa a em_transito."""
    transport = await get_transport_for_update(db, transport_id)
    if transport.status not in AWAITING_EXIT:
        raise ConflictError("Transporte não está aguardando liberação de saída.")
    vehicle = await get_vehicle_for_update(db, transport.vehicle_chassi)
    if vehicle is None or vehicle.status != VehicleStatus.EM_ESTOQUE:
        raise ConflictError("Veículo não está em estoque.")

    now = utcnow()
    transport.status = TransportStatus.EM_TRANSITO
    transport.checkin_date_time = now
    vehicle.status = VehicleStatus.EM_TRANSITO
    vehicle.dispatch_date_time = now
    await db.flush()
    logger.info("Saída autorizada: transporte %s, veículo %s em trânsito", transport.request_number, vehicle.chassi)
    return transport


async def record_delivery(db: AsyncSession, transport_id: int, event: CheckEvent) -> Transport:
    """Entrega ao cliente: transporte e veículo passam a entregue."""
    transport = await get_transport_for_update(db, transport_id)
    if transport.status != TransportStatus.EM_TRANSITO:
        raise ConflictError("Transporte não está em trânsito.")
    vehicle = await get_vehicle_for_update(db, transport.vehicle_chassi)

    transport.checkout_date_time = event.date_time or utcnow()
    transport.checkout_latitude = event.latitude
    transport.checkout_longitude = event.longitude
    transport.checkout_photos = list(event.photos)
    transport.checkout_notes = event.notes
    transport.status = TransportStatus.ENTREGUE
    if vehicle is not None:
        vehicle.status = VehicleStatus.ENTREGUE
        vehicle.delivery_date_time = transport.checkout_date_time
        vehicle.yard_id = None
    await db.flush()
    logger.info("Transporte %s entregue", transport.request_number)
    return transport


async def cancel_transport(db: AsyncSession, transport_id: int) -> Transport:
    """
    Cancela transporte não encerrado. Se o veículo já havia saído do pátio,
    volta a em_estoque no pátio de origem com nova data de entrada.
    """
    transport = await get_transport_for_update(db, transport_id)
    if transport.status in TERMINAL:
        raise ConflictError("Transporte já encerrado.")
    now = utcnow()
    if transport.status == TransportStatus.EM_TRANSITO:
        vehicle = await get_vehicle_for_update(db, transport.vehicle_chassi)
        if vehicle is not None and vehicle.status == VehicleStatus.EM_TRANSITO:
            vehicle.status = VehicleStatus.EM_ESTOQUE
            vehicle.yard_id = transport.origin_yard_id
            vehicle.yard_entry_date_time = now
    transport.status = TransportStatus.CANCELADO
    transport.cancelled_at = now
    await db.flush()
    logger.info("Transporte %s cancelado", transport.request_number)
    return transport


async def clear_exit(db: AsyncSession, transport_id: int) -> Transport:
    """
    Desfaz a saída do pátio (check-in do transporte). Exige que a entrega já tenha
    sido desfeita. Transporte volta a pendente e o veículo a em_estoque, mantendo a
    data de entrada original no pátio.
    """
    transport = await get_transport_for_update(db, transport_id)
    if transport.checkout_date_time is not None:
        raise ConflictError("Desfaça o check-out antes de desfazer o check-in.")
    if transport.status != TransportStatus.EM_TRANSITO or transport.checkin_date_time is None:
        raise ConflictError("Transporte não possui saída registrada.")
    vehicle = await get_vehicle_for_update(db, transport.vehicle_chassi)
    if vehicle is None or vehicle.status != VehicleStatus.EM_TRANSITO:
        raise ConflictError("Veículo não está em trânsito.")

    for field in ("date_time", "latitude", "longitude", "photos", "notes"):
        setattr(transport, f"checkin_{field}", None)
    transport.status = TransportStatus.PENDENTE
    vehicle.status = VehicleStatus.EM_ESTOQUE
    vehicle.yard_id = transport.origin_yard_id
    vehicle.dispatch_date_time = None
    await db.flush()
    logger.info("Check-in do transporte %s desfeito; veículo %s de volta ao estoque", transport.request_number, vehicle.chassi)
    return transport


async def clear_delivery(db: AsyncSession, transport_id: int) -> Transport:
    """Desfaz a entrega (check-out do transporte): transporte e veículo voltam a em_transito."""
    transport = await get_transport_for_update(db, transport_id)
    if transport.status != TransportStatus.ENTREGUE or transport.checkout_date_time is None:
        raise ConflictError("Transporte não possui entrega registrada.")
    vehicle = await get_vehicle_for_update(db, transport.vehicle_chassi)
    if vehicle is None or vehicle.status != VehicleStatus.ENTREGUE:
        raise ConflictError("Veículo não está entregue.")

    for field in ("date_time", "latitude", "longitude", "photos", "notes"):
        setattr(transport, f"checkout_{field}", None)
    transport.status = TransportStatus.EM_TRANSITO
    vehicle.status = VehicleStatus.EM_TRANSITO
    vehicle.yard_id = transport.origin_yard_id
    vehicle.delivery_date_time = None
    await db.flush()
    logger.info("Check-out do transporte %s desfeito", transport.request_number)
    return transport


async def load_timeline(db: AsyncSession, transport_id: int):
    """Transporte + checkpoints ordenados (com dados do catálogo) + progresso."""
    transport = await db.get(Transport, transport_id)
    if transport is None:
        raise NotFoundError("Transporte não encontrado.")
    q = (
        select(TransportCheckpoint, Checkpoint)
        .join(Checkpoint, Checkpoint.id == TransportCheckpoint.checkpoint_id)
        .where(TransportCheckpoint.transport_id == transport_id)
        .order_by(TransportCheckpoint.order_index)
    )
    rows = (await db.execute(q)).all()
    progress = compute_progress(
        (tc.status for tc, _ in rows),
        transport.checkin_date_time is not None,
        transport.checkout_date_time is not None,
    )
    return transport, rows, progress
