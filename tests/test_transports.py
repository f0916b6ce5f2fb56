"""
Testes do ciclo de vida do transporte e da linha do tempo de checkpoints.
"""
import asyncio

from conftest import next_chassi
from otd.database import AsyncSessionLocal, init_db
from otd.models import RequestCounter


def _vehicle_status(client, headers, chassi):
    return client.get(f"/vehicles/{chassi}", headers=headers).json()["status"]


def _checkpoints(client, headers, names):
    ids = []
    for name in names:
        response = client.post("/checkpoints", json={"name": name}, headers=headers)
        assert response.status_code == 201, response.text
        ids.append(response.json()["id"])
    return ids


class TestCreateTransport:
    def test_request_numbers_are_sequential(self, client, admin_headers, new_transport):
        first = new_transport()
        second = new_transport()
        assert first["requestNumber"] == "OTD00001"
        assert second["requestNumber"] == "OTD00002"
        assert first["status"] == "pendente"
        assert first["driverAssignedAt"] is not None

    def test_vehicle_not_in_stock(self, client, admin_headers, master_data, new_collect):
        collect = new_collect()
        response = client.post(
            "/transports",
            json={
                "vehicleChassi": collect["vehicleChassi"],
                "clientId": master_data["client_id"],
                "originYardId": master_data["yard_id"],
                "deliveryLocationId": master_data["location_id"],
            },
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert "não está em estoque" in response.json()["message"]

    def test_unknown_vehicle(self, client, admin_headers, master_data):
        response = client.post(
            "/transports",
            json={
                "vehicleChassi": next_chassi(),
                "clientId": master_data["client_id"],
                "originYardId": master_data["yard_id"],
                "deliveryLocationId": master_data["location_id"],
            },
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_location_of_another_client(self, client, admin_headers, master_data, stocked_vehicle):
        other = client.post("/clients", json={"name": "Cliente Beta"}, headers=admin_headers).json()
        response = client.post(
            "/transports",
            json={
                "vehicleChassi": stocked_vehicle(),
                "clientId": other["id"],
                "originYardId": master_data["yard_id"],
                "deliveryLocationId": master_data["location_id"],
            },
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Local de entrega não pertence ao cliente."

    def test_vehicle_takes_transport_client(self, client, admin_headers, master_data, stocked_vehicle):
        chassi = stocked_vehicle()
        response = client.post(
            "/transports",
            json={
                "vehicleChassi": chassi,
                "clientId": master_data["client_id"],
                "originYardId": master_data["yard_id"],
                "deliveryLocationId": master_data["location_id"],
            },
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert response.json()["driverId"] is None
        vehicle = client.get(f"/vehicles/{chassi}", headers=admin_headers).json()
        assert vehicle["clientId"] == master_data["client_id"]


class TestCheckpoints:
    def test_reassign_replaces_rows(self, client, admin_headers, new_transport):
        transport = new_transport()
        a, b, c = _checkpoints(client, admin_headers, ["Registro", "Curitiba", "Joinville"])
        url = f"/transports/{transport['id']}/checkpoints"

        response = client.post(url, json={"checkpointIds": [a, b, c]}, headers=admin_headers)
        assert response.status_code == 200
        assert [cp["checkpointId"] for cp in response.json()["checkpoints"]] == [a, b, c]

        response = client.post(url, json={"checkpointIds": [c, a]}, headers=admin_headers)
        rows = response.json()["checkpoints"]
        assert len(rows) == 2
        assert [(r["orderIndex"], r["checkpointId"]) for r in rows] == [(0, c), (1, a)]
        assert rows[0]["name"] == "Joinville"
        assert all(r["status"] == "pendente" for r in rows)

    def test_duplicate_checkpoint_rejected(self, client, admin_headers, new_transport):
        transport = new_transport()
        (a,) = _checkpoints(client, admin_headers, ["Registro"])
        response = client.post(
            f"/transports/{transport['id']}/checkpoints",
            json={"checkpointIds": [a, a]},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_unknown_checkpoint_rejected(self, client, admin_headers, new_transport):
        transport = new_transport()
        response = client.post(
            f"/transports/{transport['id']}/checkpoints",
            json={"checkpointIds": [404]},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_timeline_progress(self, client, admin_headers, new_transport):
        transport = new_transport()
        a, b = _checkpoints(client, admin_headers, ["Registro", "Curitiba"])
        rows = client.post(
            f"/transports/{transport['id']}/checkpoints",
            json={"checkpointIds": [a, b]},
            headers=admin_headers,
        ).json()["checkpoints"]

        timeline = client.get(f"/transports/{transport['id']}/timeline", headers=admin_headers).json()
        assert timeline["progress"] == {"completed": 0, "total": 4, "percentage": 0}

        client.post(f"/portaria/authorize-exit/{transport['id']}", headers=admin_headers)
        response = client.patch(
            f"/transport-checkpoints/{rows[1]['id']}",
            json={"finalized": True},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "concluido"

        timeline = client.get(f"/transports/{transport['id']}/timeline", headers=admin_headers).json()
        assert timeline["progress"] == {"completed": 2, "total": 4, "percentage": 50}

    def test_checkpoint_reached_without_finalizing(self, client, admin_headers, new_transport):
        transport = new_transport()
        (a,) = _checkpoints(client, admin_headers, ["Registro"])
        rows = client.post(
            f"/transports/{transport['id']}/checkpoints",
            json={"checkpointIds": [a]},
            headers=admin_headers,
        ).json()["checkpoints"]
        response = client.patch(f"/transport-checkpoints/{rows[0]['id']}", json={}, headers=admin_headers)
        assert response.json()["status"] == "alcancado"
        assert response.json()["reachedAt"] is not None

    def test_unknown_transport_checkpoint(self, client, admin_headers):
        response = client.patch("/transport-checkpoints/999", json={"finalized": True}, headers=admin_headers)
        assert response.status_code == 404


class TestLifecycle:
    def test_full_round_trip(self, client, admin_headers, master_data, new_collect):
        collect = new_collect()
        chassi = collect["vehicleChassi"]
        statuses = [_vehicle_status(client, admin_headers, chassi)]

        client.patch(f"/collects/{collect['id']}", json={"checkin": {}, "checkout": {}}, headers=admin_headers)
        statuses.append(_vehicle_status(client, admin_headers, chassi))

        transport = client.post(
            "/transports",
            json={
                "vehicleChassi": chassi,
                "clientId": master_data["client_id"],
                "originYardId": master_data["yard_id"],
                "deliveryLocationId": master_data["location_id"],
                "driverId": master_data["driver_id"],
            },
            headers=admin_headers,
        ).json()
        ready = client.post(f"/transports/{transport['id']}/ready", headers=admin_headers)
        assert ready.json()["status"] == "aguardando_saida"

        dispatched = client.post(f"/portaria/authorize-exit/{transport['id']}", headers=admin_headers)
        assert dispatched.status_code == 200
        assert dispatched.json()["status"] == "em_transito"
        assert dispatched.json()["checkinDateTime"] is not None
        statuses.append(_vehicle_status(client, admin_headers, chassi))

        delivered = client.post(
            f"/transports/{transport['id']}/delivery",
            json={"latitude": -23.56, "longitude": -46.65, "notes": "Recebido por Carlos"},
            headers=admin_headers,
        )
        assert delivered.status_code == 200
        assert delivered.json()["status"] == "entregue"
        statuses.append(_vehicle_status(client, admin_headers, chassi))

        assert statuses == ["pre_estoque", "em_estoque", "em_transito", "entregue"]
        vehicle = client.get(f"/vehicles/{chassi}", headers=admin_headers).json()
        assert vehicle["yardId"] is None
        assert vehicle["deliveryDateTime"] is not None

        timeline = client.get(f"/transports/{transport['id']}/timeline", headers=admin_headers).json()
        assert timeline["progress"]["percentage"] == 100

    def test_authorize_exit_twice_does_not_touch_vehicle(self, client, admin_headers, new_transport):
        transport = new_transport()
        chassi = transport["vehicleChassi"]
        assert client.post(f"/portaria/authorize-exit/{transport['id']}", headers=admin_headers).status_code == 200
        before = client.get(f"/vehicles/{chassi}", headers=admin_headers).json()

        response = client.post(f"/portaria/authorize-exit/{transport['id']}", headers=admin_headers)
        assert response.status_code == 409
        after = client.get(f"/vehicles/{chassi}", headers=admin_headers).json()
        assert after == before

    def test_authorize_exit_of_cancelled_transport(self, client, admin_headers, new_transport):
        transport = new_transport()
        client.post(f"/transports/{transport['id']}/cancel", headers=admin_headers)
        response = client.post(f"/portaria/authorize-exit/{transport['id']}", headers=admin_headers)
        assert response.status_code == 409
        assert _vehicle_status(client, admin_headers, transport["vehicleChassi"]) == "em_estoque"

    def test_delivery_requires_transit(self, client, admin_headers, new_transport):
        transport = new_transport()
        response = client.post(f"/transports/{transport['id']}/delivery", json={}, headers=admin_headers)
        assert response.status_code == 409

    def test_cancel_in_transit_returns_vehicle_to_yard(self, client, admin_headers, master_data, new_transport):
        transport = new_transport()
        client.post(f"/portaria/authorize-exit/{transport['id']}", headers=admin_headers)
        response = client.post(f"/transports/{transport['id']}/cancel", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["cancelledAt"] is not None
        vehicle = client.get(f"/vehicles/{transport['vehicleChassi']}", headers=admin_headers).json()
        assert vehicle["status"] == "em_estoque"
        assert vehicle["yardId"] == master_data["yard_id"]

    def test_terminal_transport_cannot_be_updated(self, client, admin_headers, new_transport):
        transport = new_transport()
        client.post(f"/transports/{transport['id']}/cancel", headers=admin_headers)
        response = client.patch(f"/transports/{transport['id']}", json={"notes": "x"}, headers=admin_headers)
        assert response.status_code == 409
        assert client.post(f"/transports/{transport['id']}/cancel", headers=admin_headers).status_code == 409

    def test_assign_driver_later(self, client, admin_headers, master_data, stocked_vehicle):
        transport = client.post(
            "/transports",
            json={
                "vehicleChassi": stocked_vehicle(),
                "clientId": master_data["client_id"],
                "originYardId": master_data["yard_id"],
                "deliveryLocationId": master_data["location_id"],
            },
            headers=admin_headers,
        ).json()
        assert transport["driverAssignedAt"] is None
        response = client.patch(
            f"/transports/{transport['id']}",
            json={"driverId": master_data["driver_id"], "deliveryDate": "2026-12-01"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["driverId"] == master_data["driver_id"]
        assert data["driverAssignedAt"] is not None
        assert data["driverAssignedByUserId"] is not None
        assert data["deliveryDate"] == "2026-12-01"

    def test_status_filter(self, client, admin_headers, new_transport):
        first = new_transport()
        new_transport()
        client.post(f"/transports/{first['id']}/cancel", headers=admin_headers)
        cancelled = client.get("/transports", params={"status": "cancelado"}, headers=admin_headers).json()
        assert [t["id"] for t in cancelled] == [first["id"]]


async def _counter_value():
    async with AsyncSessionLocal() as db:
        counter = await db.get(RequestCounter, RequestCounter.COUNTER_ID)
        return None if counter is None else counter.last_number


class TestRequestCounter:
    def test_counter_created_at_startup(self, client):
        assert asyncio.run(_counter_value()) == 0

    def test_restart_keeps_counter(self, client, new_transport):
        assert new_transport()["requestNumber"] == "OTD00001"
        asyncio.run(init_db())
        assert asyncio.run(_counter_value()) == 1
        assert new_transport()["requestNumber"] == "OTD00002"


class TestAdminUndo:
    """Desfazer check-in (saída do pátio) e check-out (entrega) do transporte."""

    def _dispatch(self, client, headers, transport):
        response = client.post(f"/portaria/authorize-exit/{transport['id']}", headers=headers)
        assert response.status_code == 200, response.text

    def _deliver(self, client, headers, transport):
        response = client.post(f"/transports/{transport['id']}/delivery", json={"notes": "ok"}, headers=headers)
        assert response.status_code == 200, response.text

    def test_clear_checkin_returns_vehicle_to_stock(self, client, admin_headers, master_data, new_transport):
        transport = new_transport()
        chassi = transport["vehicleChassi"]
        entry = client.get(f"/vehicles/{chassi}", headers=admin_headers).json()["yardEntryDateTime"]
        self._dispatch(client, admin_headers, transport)

        response = client.delete(f"/transports/{transport['id']}/checkin", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "pendente"
        assert response.json()["checkinDateTime"] is None

        vehicle = client.get(f"/vehicles/{chassi}", headers=admin_headers).json()
        assert vehicle["status"] == "em_estoque"
        assert vehicle["yardId"] == master_data["yard_id"]
        assert vehicle["dispatchDateTime"] is None
        assert vehicle["yardEntryDateTime"] == entry

        # pode sair de novo
        self._dispatch(client, admin_headers, transport)

    def test_clear_checkout_returns_to_transit(self, client, admin_headers, master_data, new_transport):
        transport = new_transport()
        self._dispatch(client, admin_headers, transport)
        self._deliver(client, admin_headers, transport)

        response = client.delete(f"/transports/{transport['id']}/checkout", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "em_transito"
        assert response.json()["checkoutDateTime"] is None
        assert response.json()["checkinDateTime"] is not None

        vehicle = client.get(f"/vehicles/{transport['vehicleChassi']}", headers=admin_headers).json()
        assert vehicle["status"] == "em_transito"
        assert vehicle["deliveryDateTime"] is None
        assert vehicle["yardId"] == master_data["yard_id"]

        timeline = client.get(f"/transports/{transport['id']}/timeline", headers=admin_headers).json()
        assert timeline["progress"]["completed"] == 1

    def test_checkout_must_be_cleared_first(self, client, admin_headers, new_transport):
        transport = new_transport()
        self._dispatch(client, admin_headers, transport)
        self._deliver(client, admin_headers, transport)

        response = client.delete(f"/transports/{transport['id']}/checkin", headers=admin_headers)
        assert response.status_code == 409
        assert _vehicle_status(client, admin_headers, transport["vehicleChassi"]) == "entregue"

    def test_nothing_to_clear(self, client, admin_headers, new_transport):
        transport = new_transport()
        assert client.delete(f"/transports/{transport['id']}/checkin", headers=admin_headers).status_code == 409
        assert client.delete(f"/transports/{transport['id']}/checkout", headers=admin_headers).status_code == 409
        assert client.delete("/transports/9999/checkin", headers=admin_headers).status_code == 404

    def test_admin_only(self, client, admin_headers, make_user, new_transport):
        operator = make_user("operador")
        transport = new_transport()
        self._dispatch(client, admin_headers, transport)
        assert client.delete(f"/transports/{transport['id']}/checkin", headers=operator).status_code == 403
