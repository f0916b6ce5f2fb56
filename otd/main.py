"""
OTD Entregas - Logística de veículos.
Coleta na montadora, estoque em pátio, transporte ao cliente, portaria e faturamento de pátio.
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from otd.config import get_settings
from otd.database import init_db
from otd.errors import register_error_handlers
from otd.routes import (
    auth_router,
    users_router,
    drivers_router,
    manufacturers_router,
    yards_router,
    clients_router,
    locations_router,
    checkpoints_router,
    vehicles_router,
    collects_router,
    transports_router,
    transport_checkpoints_router,
    portaria_router,
    reports_router,
    settlements_router,
    notifications_router,
)

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("otd")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("%s iniciado", settings.app_name)
    yield


app = FastAPI(
    title=settings.app_name,
    description="API de logística de veículos: coletas, estoque em pátio, transportes, portaria e faturamento.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    logger.info("REQ %s %s", request.method, request.url.path)
    response = await call_next(request)
    dur = time.time() - start
    logger.info("RES %s %s %s dur=%.3fs", response.status_code, request.method, request.url.path, dur)
    return response


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(drivers_router)
app.include_router(manufacturers_router)
app.include_router(yards_router)
app.include_router(clients_router)
app.include_router(locations_router)
app.include_router(checkpoints_router)
app.include_router(vehicles_router)
app.include_router(collects_router)
app.include_router(transports_router)
app.include_router(transport_checkpoints_router)
app.include_router(portaria_router)
app.include_router(reports_router)
app.include_router(settlements_router)
app.include_router(notifications_router)


@app.get("/")
async def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health")
async def health():
    return {"status": "ok"}
