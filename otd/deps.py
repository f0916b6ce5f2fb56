"""Dependências de autenticação e perfil de acesso."""
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from otd.database import get_db
from otd.errors import AuthError, ForbiddenError
from otd.models import User, UserRole
from otd.security import ACCESS, decode_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthError("Token não fornecido")
    payload = decode_token(credentials.credentials, ACCESS)
    user = await db.get(User, int(payload["sub"]))
    if user is None or not user.is_active:
        raise AuthError("Usuário não encontrado ou inativo")
    if payload.get("ver") != user.refresh_token_version:
        raise AuthError("Token revogado")
    return user


def require_roles(*roles: UserRole):
    """Restringe a rota aos perfis informados (admin sempre incluso)."""
    allowed = set(roles) | {UserRole.ADMIN}

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise ForbiddenError("Acesso negado para o perfil " + user.role.value)
        return user

    return dependency


# Perfis por tipo de operação
require_admin = require_roles()
require_operator = require_roles(UserRole.OPERADOR)
require_gatehouse = require_roles(UserRole.OPERADOR, UserRole.PORTARIA)
require_field = require_roles(UserRole.OPERADOR, UserRole.MOTORISTA)
