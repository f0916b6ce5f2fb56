"""Contadores do painel operacional."""
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Collect, CollectStatus, Driver, Transport, TransportStatus, Vehicle, VehicleStatus


@dataclass
class DashboardStats:
    total_transports: int
    collects_in_transit: int
    vehicles_in_stock: int
    active_drivers: int
    transports_by_status: dict[str, int] = field(default_factory=dict)


async def dashboard_stats(db: AsyncSession) -> DashboardStats:
    by_status = {s.value: 0 for s in TransportStatus}
    q = select(Transport.status, func.count()).group_by(Transport.status)
    for status, count in (await db.execute(q)).all():
        by_status[status.value] = count

    collects_in_transit = await db.scalar(
        select(func.count()).select_from(Collect).where(Collect.status == CollectStatus.EM_TRANSITO)
    )
    vehicles_in_stock = await db.scalar(
        select(func.count()).select_from(Vehicle).where(Vehicle.status == VehicleStatus.EM_ESTOQUE)
    )
    active_drivers = await db.scalar(
        select(func.count()).select_from(Driver).where(Driver.is_active == True)
    )
    return DashboardStats(
        total_transports=sum(by_status.values()),
        collects_in_transit=collects_in_transit or 0,
        vehicles_in_stock=vehicles_in_stock or 0,
        active_drivers=active_drivers or 0,
        transports_by_status=by_status,
    )
