"""Sessão e inicialização do banco de dados."""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from .config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    # SQLite (testes/desenvolvimento): uma conexão por sessão, sem reaproveitar entre event loops
    poolclass=NullPool if settings.database_url.startswith("sqlite") else None,
)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def commit_or_conflict(db: AsyncSession, message: str):
    """Commit traduzindo violação de unicidade/FK em ConflictError."""
    from .errors import ConflictError

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(message)


async def init_db():
    from . import models  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with AsyncSessionLocal() as session:
        await create_default_admin(session)
        await create_request_counter(session)
        await session.commit()


async def create_default_admin(session: AsyncSession):
    """Cria o usuário administrador padrão quando ainda não existe."""
    from .models import User, UserRole
    from .security import hash_password

    username = settings.default_admin_username.lower()
    q = select(User).where(User.username == username)
    if (await session.execute(q)).scalar_one_or_none() is not None:
        return
    session.add(
        User(
            username=username,
            password_hash=hash_password(settings.default_admin_password),
            email=settings.default_admin_email,
            first_name="Administrador",
            last_name="Sistema",
            role=UserRole.ADMIN,
        )
    )
    logger.info("Usuário administrador padrão criado: %s", username)


async def create_request_counter(session: AsyncSession):
    """Garante a linha do contador de solicitações; o incremento depende dela."""
    from .models import RequestCounter

    if await session.get(RequestCounter, RequestCounter.COUNTER_ID) is None:
        session.add(RequestCounter(id=RequestCounter.COUNTER_ID, last_number=0))
        logger.info("Contador de solicitações criado")
