"""
Configuração compartilhada para testes pytest.
Banco SQLite (aiosqlite) em arquivo temporário; tabelas recriadas a cada teste.
"""
import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# Configurar variáveis de ambiente antes de importar a aplicação
_tmpdir = tempfile.mkdtemp(prefix="otd-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_tmpdir, 'test.db')}"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_ACCESS_SECRET"] = "test-access-secret"
os.environ["JWT_REFRESH_SECRET"] = "test-refresh-secret"
os.environ["DEFAULT_ADMIN_PASSWORD"] = "admin123"
os.environ["LOG_LEVEL"] = "WARNING"

from fastapi.testclient import TestClient  # noqa: E402

from otd.database import Base, engine  # noqa: E402
from otd.main import app  # noqa: E402

_counter = {"chassi": 0, "cpf": 0}


def utc_naive(**delta) -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(**delta)


def next_chassi() -> str:
    _counter["chassi"] += 1
    return f"9BWZZZ377VT{_counter['chassi']:06d}"


async def _drop_all():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def client():
    """Cliente HTTP; o lifespan cria as tabelas e o admin padrão."""
    with TestClient(app) as c:
        yield c
    asyncio.run(_drop_all())


def login(client, username: str, password: str) -> dict:
    response = client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    return bearer(login(client, "admin", "admin123")["accessToken"])


@pytest.fixture
def make_user(client, admin_headers):
    """Cria usuário com o perfil informado e devolve os headers de autenticação."""

    def _make(role: str, username: str | None = None) -> dict:
        username = username or f"{role}_user"
        response = client.post(
            "/auth/register",
            json={"username": username, "password": "senha123", "role": role},
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return bearer(login(client, username, "senha123")["accessToken"])

    return _make


@pytest.fixture
def master_data(client, admin_headers):
    """Montadora, pátio, cliente (diária 100,00), local de entrega e motorista."""
    h = admin_headers
    manufacturer = client.post("/manufacturers", json={"name": "Volkswagen Anchieta"}, headers=h).json()
    yard = client.post("/yards", json={"name": "Pátio Guarulhos", "city": "Guarulhos", "state": "SP"}, headers=h).json()
    cli = client.post("/clients", json={"name": "Concessionária Alfa", "dailyCost": "100.00"}, headers=h).json()
    location = client.post(
        f"/clients/{cli['id']}/locations",
        json={"name": "Loja Centro", "address": "Av. Paulista, 1000", "city": "São Paulo", "state": "SP"},
        headers=h,
    ).json()
    _counter["cpf"] += 1
    driver = client.post(
        "/drivers",
        json={
            "name": "João da Silva",
            "cpf": f"{_counter['cpf']:011d}",
            "phone": "11999990000",
            "modality": "pj",
            "cnhType": "E",
        },
        headers=h,
    ).json()
    return {
        "manufacturer_id": manufacturer["id"],
        "yard_id": yard["id"],
        "client_id": cli["id"],
        "location_id": location["id"],
        "driver_id": driver["id"],
    }


@pytest.fixture
def new_collect(client, admin_headers, master_data):
    """Cria coleta em trânsito para um chassi novo."""

    def _create(chassi: str | None = None) -> dict:
        response = client.post(
            "/collects",
            json={
                "vehicleChassi": chassi or next_chassi(),
                "manufacturerId": master_data["manufacturer_id"],
                "yardId": master_data["yard_id"],
                "driverId": master_data["driver_id"],
            },
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def stocked_vehicle(client, admin_headers, new_collect):
    """Veículo em estoque: coleta com check-in e check-out. Devolve o chassi."""

    def _stock(entry_date: datetime | None = None) -> str:
        collect = new_collect()
        checkout = {"latitude": -23.45, "longitude": -46.53}
        if entry_date is not None:
            checkout["dateTime"] = entry_date.isoformat()
        response = client.patch(
            f"/collects/{collect['id']}",
            json={"checkin": {"notes": "Retirado na montadora"}, "checkout": checkout},
            headers=admin_headers,
        )
        assert response.status_code == 200, response.text
        return collect["vehicleChassi"]

    return _stock


@pytest.fixture
def new_transport(client, admin_headers, master_data, stocked_vehicle):
    """Transporte pendente para um veículo em estoque."""

    def _create(chassi: str | None = None) -> dict:
        response = client.post(
            "/transports",
            json={
                "vehicleChassi": chassi or stocked_vehicle(),
                "clientId": master_data["client_id"],
                "originYardId": master_data["yard_id"],
                "deliveryLocationId": master_data["location_id"],
                "driverId": master_data["driver_id"],
            },
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create
