"""Login, renovação de tokens, logout e cadastro de usuários."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from otd.database import commit_or_conflict, get_db
from otd.deps import get_current_user, require_admin
from otd.errors import AuthError, ConflictError
from otd.models import User, utcnow
from otd.schemas import (
    LoginRequest, LoginResponse, MessageResponse, RefreshRequest, TokenPair, UserCreate, UserResponse,
)
from otd.security import (
    REFRESH, create_access_token, create_refresh_token, decode_token, hash_password, verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Autenticação"])


def _token_pair(user: User) -> TokenPair:
    args = (user.id, user.username, user.role.value, user.refresh_token_version)
    return TokenPair(access_token=create_access_token(*args), refresh_token=create_refresh_token(*args))


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    username = data.username.strip().lower()
    cond = User.username == username
    if data.email:
        cond = or_(cond, User.email == data.email)
    if (await db.execute(select(User.id).where(cond))).first() is not None:
        raise ConflictError("Usuário ou e-mail já cadastrado.")
    user = User(
        username=username,
        password_hash=hash_password(data.password),
        email=data.email,
        first_name=data.first_name,
        last_name=data.last_name,
        role=data.role,
    )
    db.add(user)
    return user


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    q = select(User).where(User.username == data.username.strip().lower())
    user = (await db.execute(q)).scalar_one_or_none()
    if user is None or not verify_password(data.password, user.password_hash):
        raise AuthError("Usuário ou senha inválidos")
    if not user.is_active:
        raise AuthError("Usuário inativo")
    user.last_login = utcnow()
    pair = _token_pair(user)
    await db.commit()
    logger.info("Login de %s (%s)", user.username, user.role.value)
    return LoginResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/refresh", response_model=TokenPair)
async def refresh(data: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """
    Troca o refresh token por um novo par. Cada refresh token vale uma única vez:
    a versão do usuário é incrementada e tokens anteriores deixam de ser aceitos.
    """
    payload = decode_token(data.refresh_token, REFRESH)
    q = select(User).where(User.id == int(payload["sub"])).with_for_update()
    user = (await db.execute(q)).scalar_one_or_none()
    if user is None or not user.is_active:
        raise AuthError("Usuário não encontrado ou inativo")
    if payload.get("ver") != user.refresh_token_version:
        raise AuthError("Refresh token revogado")
    user.refresh_token_version += 1
    pair = _token_pair(user)
    await db.commit()
    return pair


@router.post("/logout", response_model=MessageResponse)
async def logout(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    user.refresh_token_version += 1
    await db.commit()
    logger.info("Logout de %s", user.username)
    return MessageResponse(message="Logout realizado com sucesso")


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return user


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
):
    user = await create_user(db, data)
    await commit_or_conflict(db, "Usuário ou e-mail já cadastrado.")
    await db.refresh(user)
    logger.info("Usuário %s criado com perfil %s", user.username, user.role.value)
    return user
