"""Erros de domínio e sua tradução para respostas HTTP `{"message": ...}`."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base dos erros de domínio. Cada subclasse define o status HTTP."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Entrada inválida ou referência a entidade inexistente."""

    status_code = 400


class AuthError(AppError):
    """Token ausente, inválido, expirado ou revogado; credenciais inválidas."""

    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """Transição de estado inválida (ex.: finalizar coleta já finalizada)."""

    status_code = 409


async def app_error_handler(request: Request, exc: AppError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    if isinstance(exc, AuthError):
        logger.warning("Falha de autenticação em %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message}, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Dados inválidos"))
    return JSONResponse(
        status_code=400,
        content={"message": message, "errors": [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors
        ]},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("ERR %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": "Erro interno do servidor"})


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
