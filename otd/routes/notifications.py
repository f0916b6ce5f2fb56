"""Notificações de viagem para motoristas."""
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from otd import notification_service
from otd.database import get_db
from otd.deps import get_current_user, require_field, require_operator
from otd.schemas import DriverNotificationResponse, NotifyDriversRequest

router = APIRouter(prefix="/driver-notifications", tags=["Notificações"])


@router.get("", response_model=list[DriverNotificationResponse], dependencies=[Depends(get_current_user)])
async def list_notifications(
    yard_id: int = Query(...),
    delivery_location_id: int = Query(...),
    departure_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    return await notification_service.list_notifications(db, yard_id, delivery_location_id, departure_date)


@router.post(
    "/notify",
    response_model=list[DriverNotificationResponse],
    status_code=201,
    dependencies=[Depends(require_operator)],
)
async def notify_drivers(data: NotifyDriversRequest, db: AsyncSession = Depends(get_db)):
    """Convida todos os motoristas ativos para a saída informada."""
    notifications = await notification_service.notify_active_drivers(db, data)
    await db.commit()
    return notifications


@router.post("/{notification_id}/accept", response_model=DriverNotificationResponse, dependencies=[Depends(require_field)])
async def accept(notification_id: int, db: AsyncSession = Depends(get_db)):
    notification = await notification_service.respond(db, notification_id, accepted=True)
    await db.commit()
    return notification


@router.post("/{notification_id}/decline", response_model=DriverNotificationResponse, dependencies=[Depends(require_field)])
async def decline(notification_id: int, db: AsyncSession = Depends(get_db)):
    notification = await notification_service.respond(db, notification_id, accepted=False)
    await db.commit()
    return notification
