"""Relatório de faturamento de pátio e painel."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from otd.billing_service import compute_yard_billing
from otd.dashboard_service import dashboard_stats
from otd.database import get_db
from otd.deps import get_current_user
from otd.schemas import DashboardStatsResponse, YardBillingResponse

router = APIRouter(tags=["Relatórios"], dependencies=[Depends(get_current_user)])


@router.get("/reports/yard-billing", response_model=YardBillingResponse)
async def yard_billing(db: AsyncSession = Depends(get_db)):
    """Diárias dos veículos em estoque agora, agrupadas por cliente."""
    report = await compute_yard_billing(db)
    return YardBillingResponse.model_validate(report)


@router.get("/dashboard/stats", response_model=DashboardStatsResponse)
async def stats(db: AsyncSession = Depends(get_db)):
    return DashboardStatsResponse.model_validate(await dashboard_stats(db))
