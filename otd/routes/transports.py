"""Transportes: pátio → cliente, com linha do tempo de checkpoints."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otd import transport_service
from otd.database import get_db
from otd.deps import get_current_user, require_admin, require_field, require_operator
from otd.errors import NotFoundError
from otd.models import Transport, TransportStatus, User
from otd.schemas import (
    AssignCheckpointsRequest, CheckEvent, CheckpointReachedRequest, ProgressResponse,
    TransportCheckpointResponse, TransportCreate, TransportResponse, TransportTimelineResponse,
    TransportUpdate,
)

router = APIRouter(prefix="/transports", tags=["Transportes"])
checkpoint_router = APIRouter(prefix="/transport-checkpoints", tags=["Transportes"])


async def _timeline(db: AsyncSession, transport_id: int) -> TransportTimelineResponse:
    transport, rows, progress = await transport_service.load_timeline(db, transport_id)
    return TransportTimelineResponse(
        transport=TransportResponse.model_validate(transport),
        checkpoints=[
            TransportCheckpointResponse(
                id=tc.id,
                transport_id=tc.transport_id,
                checkpoint_id=tc.checkpoint_id,
                order_index=tc.order_index,
                status=tc.status,
                reached_at=tc.reached_at,
                name=cp.name,
                address=cp.address,
                latitude=cp.latitude,
                longitude=cp.longitude,
            )
            for tc, cp in rows
        ],
        progress=ProgressResponse.model_validate(progress),
    )


@router.post("", response_model=TransportResponse, status_code=201)
async def create_transport(
    data: TransportCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_operator),
):
    transport = await transport_service.create_transport(db, data, user)
    await db.commit()
    await db.refresh(transport)
    return transport


@router.get("", response_model=list[TransportResponse], dependencies=[Depends(get_current_user)])
async def list_transports(
    status: TransportStatus | None = Query(None),
    driver_id: int | None = Query(None),
    client_id: int | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    q = select(Transport).offset(skip).limit(limit).order_by(Transport.id.desc())
    if status is not None:
        q = q.where(Transport.status == status)
    if driver_id is not None:
        q = q.where(Transport.driver_id == driver_id)
    if client_id is not None:
        q = q.where(Transport.client_id == client_id)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.get("/{transport_id}", response_model=TransportResponse, dependencies=[Depends(get_current_user)])
async def get_transport(transport_id: int, db: AsyncSession = Depends(get_db)):
    transport = await db.get(Transport, transport_id)
    if transport is None:
        raise NotFoundError("Transporte não encontrado.")
    return transport


@router.patch("/{transport_id}", response_model=TransportResponse)
async def update_transport(
    transport_id: int,
    data: TransportUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_operator),
):
    transport = await transport_service.update_transport(db, transport_id, data, user)
    await db.commit()
    return transport


@router.post(
    "/{transport_id}/checkpoints",
    response_model=TransportTimelineResponse,
    dependencies=[Depends(require_operator)],
)
async def assign_checkpoints(transport_id: int, data: AssignCheckpointsRequest, db: AsyncSession = Depends(get_db)):
    """Substitui os checkpoints do transporte pela lista informada, na ordem recebida."""
    await transport_service.assign_checkpoints(db, transport_id, data.checkpoint_ids)
    timeline = await _timeline(db, transport_id)
    await db.commit()
    return timeline


@router.get(
    "/{transport_id}/timeline",
    response_model=TransportTimelineResponse,
    dependencies=[Depends(get_current_user)],
)
async def get_timeline(transport_id: int, db: AsyncSession = Depends(get_db)):
    return await _timeline(db, transport_id)


@router.post("/{transport_id}/ready", response_model=TransportResponse, dependencies=[Depends(require_field)])
async def mark_ready(transport_id: int, db: AsyncSession = Depends(get_db)):
    transport = await transport_service.mark_ready_for_dispatch(db, transport_id)
    await db.commit()
    return transport


@router.post("/{transport_id}/delivery", response_model=TransportResponse, dependencies=[Depends(require_field)])
async def record_delivery(transport_id: int, event: CheckEvent, db: AsyncSession = Depends(get_db)):
    transport = await transport_service.record_delivery(db, transport_id, event)
    await db.commit()
    return transport


@router.post("/{transport_id}/cancel", response_model=TransportResponse, dependencies=[Depends(require_operator)])
async def cancel_transport(transport_id: int, db: AsyncSession = Depends(get_db)):
    transport = await transport_service.cancel_transport(db, transport_id)
    await db.commit()
    return transport


@router.delete("/{transport_id}/checkin", response_model=TransportResponse, dependencies=[Depends(require_admin)])
async def clear_checkin(transport_id: int, db: AsyncSession = Depends(get_db)):
    """Desfaz a saída do pátio (somente admin)."""
    transport = await transport_service.clear_exit(db, transport_id)
    await db.commit()
    return transport


@router.delete("/{transport_id}/checkout", response_model=TransportResponse, dependencies=[Depends(require_admin)])
async def clear_checkout(transport_id: int, db: AsyncSession = Depends(get_db)):
    """Desfaz a entrega (somente admin)."""
    transport = await transport_service.clear_delivery(db, transport_id)
    await db.commit()
    return transport


@checkpoint_router.patch(
    "/{transport_checkpoint_id}",
    response_model=TransportCheckpointResponse,
    dependencies=[Depends(require_field)],
)
async def mark_checkpoint(
    transport_checkpoint_id: int,
    data: CheckpointReachedRequest,
    db: AsyncSession = Depends(get_db),
):
    """`finalized=false` marca chegada (alcancado); `true` marca conclusão (concluido)."""
    row = await transport_service.mark_checkpoint_reached(db, transport_checkpoint_id, data.finalized)
    await db.commit()
    return row
