"""Catálogo de checkpoints (pontos de passagem reutilizáveis)."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otd.database import commit_or_conflict, get_db
from otd.deps import get_current_user, require_operator
from otd.errors import NotFoundError
from otd.models import Checkpoint
from otd.schemas import CheckpointCreate, CheckpointResponse, CheckpointUpdate

router = APIRouter(prefix="/checkpoints", tags=["Checkpoints"])


async def _get_checkpoint(db: AsyncSession, checkpoint_id: int) -> Checkpoint:
    checkpoint = await db.get(Checkpoint, checkpoint_id)
    if checkpoint is None:
        raise NotFoundError("Checkpoint não encontrado.")
    return checkpoint


@router.post("", response_model=CheckpointResponse, status_code=201, dependencies=[Depends(require_operator)])
async def create_checkpoint(data: CheckpointCreate, db: AsyncSession = Depends(get_db)):
    checkpoint = Checkpoint(**data.model_dump())
    db.add(checkpoint)
    await db.commit()
    await db.refresh(checkpoint)
    return checkpoint


@router.get("", response_model=list[CheckpointResponse], dependencies=[Depends(get_current_user)])
async def list_checkpoints(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    q = select(Checkpoint).offset(skip).limit(limit).order_by(Checkpoint.name)
    if active_only:
        q = q.where(Checkpoint.is_active == True)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.get("/{checkpoint_id}", response_model=CheckpointResponse, dependencies=[Depends(get_current_user)])
async def get_checkpoint(checkpoint_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_checkpoint(db, checkpoint_id)


@router.patch("/{checkpoint_id}", response_model=CheckpointResponse, dependencies=[Depends(require_operator)])
async def update_checkpoint(checkpoint_id: int, data: CheckpointUpdate, db: AsyncSession = Depends(get_db)):
    checkpoint = await _get_checkpoint(db, checkpoint_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(checkpoint, key, value)
    await db.commit()
    return checkpoint


@router.delete("/{checkpoint_id}", status_code=204, dependencies=[Depends(require_operator)])
async def delete_checkpoint(checkpoint_id: int, db: AsyncSession = Depends(get_db)):
    checkpoint = await _get_checkpoint(db, checkpoint_id)
    await db.delete(checkpoint)
    await commit_or_conflict(db, "Checkpoint em uso por transportes; desative-o em vez de excluir.")
    return None
