"""
Senhas (bcrypt via passlib) e tokens JWT (python-jose).
Access token curto (15 min) e refresh token longo (7 dias), com segredos distintos.
Os dois tokens carregam a versão do usuário; ela muda a cada refresh/logout (rotação)
e tokens de versão anterior deixam de valer.
"""
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import get_settings
from .errors import AuthError

ACCESS = "access"
REFRESH = "refresh"


@lru_cache
def get_pwd_context() -> CryptContext:
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=get_settings().bcrypt_rounds,
    )


def hash_password(password: str) -> str:
    return get_pwd_context().hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return get_pwd_context().verify(plain_password, hashed_password)


def _encode(data: dict, token_type: str, expires_delta: timedelta, secret: str) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({"type": token_type, "iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, username: str, role: str, version: int) -> str:
    settings = get_settings()
    return _encode(
        {"sub": str(user_id), "username": username, "role": role, "ver": version},
        ACCESS,
        timedelta(minutes=settings.access_token_expire_minutes),
        settings.jwt_access_secret,
    )


def create_refresh_token(user_id: int, username: str, role: str, version: int) -> str:
    settings = get_settings()
    return _encode(
        {"sub": str(user_id), "username": username, "role": role, "ver": version},
        REFRESH,
        timedelta(days=settings.refresh_token_expire_days),
        settings.jwt_refresh_secret,
    )


def decode_token(token: str, token_type: str) -> dict:
    """Valida assinatura, expiração e tipo. Levanta AuthError se inválido."""
    settings = get_settings()
    secret = settings.jwt_access_secret if token_type == ACCESS else settings.jwt_refresh_secret
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        if token_type == REFRESH:
            raise AuthError("Refresh token inválido ou expirado")
        raise AuthError("Token inválido ou expirado")
    if payload.get("type") != token_type or payload.get("sub") is None:
        raise AuthError("Token inválido ou expirado")
    return payload
