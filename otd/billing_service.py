"""
Faturamento de pátio: diárias dos veículos em estoque, agrupadas por cliente.

dias em estoque = teto((agora - entrada no pátio) / 1 dia)
custo = dias × diária do cliente (0 sem diária ou sem cliente)
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Client, Vehicle, VehicleStatus, Yard, utcnow

CENTS = Decimal("0.01")
NO_CLIENT_NAME = "Sem cliente"
NO_YARD_NAME = "Sem pátio"


@dataclass
class StockEntry:
    """Linha de entrada do cálculo: veículo em estoque já com cliente e pátio resolvidos."""
    chassi: str
    client_id: Optional[int]
    client_name: Optional[str]
    daily_cost: Optional[Decimal]
    yard_id: Optional[int]
    yard_name: Optional[str]
    entry_date: Optional[datetime]


@dataclass
class VehicleBilling:
    chassi: str
    client_id: Optional[int]
    client_name: str
    yard_id: Optional[int]
    yard_name: str
    entry_date: Optional[datetime]
    days_in_stock: int
    daily_cost: Decimal
    total_cost: Decimal


@dataclass
class ClientGroup:
    client_id: Optional[int]
    client_name: str
    daily_cost: Decimal
    vehicles: list[VehicleBilling] = field(default_factory=list)
    total_days: int = 0
    total_cost: Decimal = Decimal("0.00")


@dataclass
class BillingSummary:
    total_vehicles: int
    total_days: int
    grand_total: Decimal


@dataclass
class YardBillingReport:
    client_groups: list[ClientGroup]
    summary: BillingSummary


def days_in_stock(entry_date: Optional[datetime], now: datetime) -> int:
    if entry_date is None or entry_date >= now:
        return 0
    return math.ceil((now - entry_date) / timedelta(days=1))


def aggregate_billing(entries: Iterable[StockEntry], now: datetime) -> YardBillingReport:
    groups: dict[Optional[int], ClientGroup] = {}
    for entry in entries:
        rate = (entry.daily_cost or Decimal("0")).quantize(CENTS)
        days = days_in_stock(entry.entry_date, now)
        line = VehicleBilling(
            chassi=entry.chassi,
            client_id=entry.client_id,
            client_name=entry.client_name or NO_CLIENT_NAME,
            yard_id=entry.yard_id,
            yard_name=entry.yard_name or NO_YARD_NAME,
            entry_date=entry.entry_date,
            days_in_stock=days,
            daily_cost=rate,
            total_cost=(rate * days).quantize(CENTS),
        )
        group = groups.get(entry.client_id)
        if group is None:
            group = groups[entry.client_id] = ClientGroup(
                client_id=entry.client_id,
                client_name=line.client_name,
                daily_cost=rate,
            )
        group.vehicles.append(line)
        group.total_days += days
        group.total_cost += line.total_cost

    ordered = sorted(groups.values(), key=lambda g: (g.client_id is None, g.client_name.lower()))
    for group in ordered:
        group.vehicles.sort(key=lambda v: v.days_in_stock, reverse=True)
    summary = BillingSummary(
        total_vehicles=sum(len(g.vehicles) for g in ordered),
        total_days=sum(g.total_days for g in ordered),
        grand_total=sum((g.total_cost for g in ordered), Decimal("0.00")),
    )
    return YardBillingReport(client_groups=ordered, summary=summary)


async def compute_yard_billing(db: AsyncSession, now: Optional[datetime] = None) -> YardBillingReport:
    """Recalcula o relatório completo a cada chamada (sem persistência)."""
    q = (
        select(
            Vehicle.chassi,
            Vehicle.client_id,
            Client.name,
            Client.daily_cost,
            Vehicle.yard_id,
            Yard.name,
            Vehicle.yard_entry_date_time,
        )
        .outerjoin(Client, Client.id == Vehicle.client_id)
        .outerjoin(Yard, Yard.id == Vehicle.yard_id)
        .where(Vehicle.status == VehicleStatus.EM_ESTOQUE)
    )
    rows = (await db.execute(q)).all()
    entries = [StockEntry(*row) for row in rows]
    return aggregate_billing(entries, now or utcnow())
