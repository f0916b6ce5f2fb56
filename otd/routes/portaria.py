"""Portaria: filas de entrada/saída do pátio e autorizações."""
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otd import collect_service, transport_service
from otd.database import get_db
from otd.deps import get_current_user, require_gatehouse
from otd.models import Collect, CollectStatus, Transport, User
from otd.schemas import CollectResponse, TransportResponse

router = APIRouter(prefix="/portaria", tags=["Portaria"])


@router.get("/entries", response_model=list[CollectResponse], dependencies=[Depends(get_current_user)])
async def pending_entries(db: AsyncSession = Depends(get_db)):
    """Coletas em trânsito aguardando entrada no pátio."""
    q = select(Collect).where(Collect.status == CollectStatus.EM_TRANSITO).order_by(Collect.collect_date, Collect.id)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.get("/exits", response_model=list[TransportResponse], dependencies=[Depends(get_current_user)])
async def pending_exits(db: AsyncSession = Depends(get_db)):
    """Transportes aguardando liberação de saída do pátio."""
    q = (
        select(Transport)
        .where(Transport.status.in_(transport_service.AWAITING_EXIT))
        .order_by(Transport.delivery_date, Transport.id)
    )
    result = await db.execute(q)
    return list(result.scalars().all())


@router.post("/authorize/{collect_id}", response_model=CollectResponse)
async def authorize_entry(
    collect_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_gatehouse),
):
    collect = await collect_service.authorize_entry(db, collect_id, user)
    await db.commit()
    return collect


@router.post("/authorize-exit/{transport_id}", response_model=TransportResponse, dependencies=[Depends(require_gatehouse)])
async def authorize_exit(transport_id: int, db: AsyncSession = Depends(get_db)):
    transport = await transport_service.authorize_exit(db, transport_id)
    await db.commit()
    return transport
