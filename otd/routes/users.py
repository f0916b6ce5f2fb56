"""Administração de usuários (somente admin)."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otd.database import commit_or_conflict, get_db
from otd.deps import require_admin
from otd.errors import ConflictError, NotFoundError
from otd.models import User, UserRole
from otd.routes.auth import create_user
from otd.schemas import UserCreate, UserResponse, UserUpdate
from otd.security import hash_password

router = APIRouter(prefix="/users", tags=["Usuários"], dependencies=[Depends(require_admin)])


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("Usuário não encontrado.")
    return user


@router.get("", response_model=list[UserResponse])
async def list_users(
    role: UserRole | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    q = select(User).offset(skip).limit(limit).order_by(User.id)
    if role is not None:
        q = q.where(User.role == role)
    result = await db.execute(q)
    return list(result.scalars().all())


@router.post("", response_model=UserResponse, status_code=201)
async def add_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    user = await create_user(db, data)
    await commit_or_conflict(db, "Usuário ou e-mail já cadastrado.")
    await db.refresh(user)
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return await _get_user(db, user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(user_id: int, data: UserUpdate, db: AsyncSession = Depends(get_db)):
    """Troca de senha ou desativação revogam os refresh tokens do usuário."""
    user = await _get_user(db, user_id)
    fields = data.model_dump(exclude_unset=True)
    password = fields.pop("password", None)
    if password:
        user.password_hash = hash_password(password)
        user.refresh_token_version += 1
    if fields.get("is_active") is False:
        user.refresh_token_version += 1
    for key in ("role", "is_active"):
        # colunas obrigatórias: null é ignorado
        if key in fields and fields[key] is None:
            del fields[key]
    for key, value in fields.items():
        setattr(user, key, value)
    await commit_or_conflict(db, "E-mail já cadastrado.")
    return user


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current: User = Depends(require_admin),
):
    user = await _get_user(db, user_id)
    if user.id == current.id:
        raise ConflictError("Não é possível excluir o próprio usuário.")
    await db.delete(user)
    await commit_or_conflict(db, "Usuário vinculado a registros; desative-o em vez de excluir.")
    return None
