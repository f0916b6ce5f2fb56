"""
Notificações de viagem para motoristas.

O operador convida todos os motoristas ativos para uma saída (pátio, local de
entrega, data); cada motorista aceita ou recusa o convite uma única vez.
"""
import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .errors import ConflictError, NotFoundError, ValidationError
from .models import DeliveryLocation, Driver, DriverNotification, NotificationStatus, Yard, utcnow
from .schemas import NotifyDriversRequest

logger = logging.getLogger(__name__)


async def list_notifications(
    db: AsyncSession, yard_id: int, delivery_location_id: int, departure_date: date
) -> list[DriverNotification]:
    q = (
        select(DriverNotification)
        .options(selectinload(DriverNotification.driver))
        .where(
            DriverNotification.yard_id == yard_id,
            DriverNotification.delivery_location_id == delivery_location_id,
            DriverNotification.departure_date == departure_date,
        )
        .order_by(DriverNotification.created_at.desc(), DriverNotification.id.desc())
    )
    return list((await db.execute(q)).scalars().all())


async def notify_active_drivers(db: AsyncSession, data: NotifyDriversRequest) -> list[DriverNotification]:
    """Cria um convite pendente por motorista ativo. Quem já foi convidado para a mesma saída é ignorado."""
    if await db.get(Yard, data.yard_id) is None:
        raise ValidationError("Pátio não encontrado.")
    if await db.get(DeliveryLocation, data.delivery_location_id) is None:
        raise ValidationError("Local de entrega não encontrado.")

    already = select(DriverNotification.driver_id).where(
        DriverNotification.yard_id == data.yard_id,
        DriverNotification.delivery_location_id == data.delivery_location_id,
        DriverNotification.departure_date == data.departure_date,
    )
    q = (
        select(Driver)
        .where(Driver.is_active == True, Driver.id.not_in(already))
        .order_by(Driver.name)
    )
    drivers = (await db.execute(q)).scalars().all()
    notifications = [
        DriverNotification(
            yard_id=data.yard_id,
            delivery_location_id=data.delivery_location_id,
            departure_date=data.departure_date,
            driver_id=driver.id,
            driver=driver,
            status=NotificationStatus.PENDENTE,
        )
        for driver in drivers
    ]
    db.add_all(notifications)
    await db.flush()
    logger.info(
        "%d motoristas notificados (pátio %s, local %s, %s)",
        len(notifications), data.yard_id, data.delivery_location_id, data.departure_date,
    )
    return notifications


async def respond(db: AsyncSession, notification_id: int, accepted: bool) -> DriverNotification:
    q = (
        select(DriverNotification)
        .options(selectinload(DriverNotification.driver))
        .where(DriverNotification.id == notification_id)
        .with_for_update()
    )
    notification = (await db.execute(q)).scalar_one_or_none()
    if notification is None:
        raise NotFoundError("Notificação não encontrada.")
    if notification.status != NotificationStatus.PENDENTE:
        raise ConflictError("Notificação já respondida.")
    notification.status = NotificationStatus.ACEITO if accepted else NotificationStatus.RECUSADO
    notification.responded_at = utcnow()
    await db.flush()
    return notification
