"""
Testes dos cadastros: motoristas, clientes e locais, pátios, checkpoints e veículos.
"""
from conftest import next_chassi


class TestDrivers:
    payload = {
        "name": "Pedro Souza",
        "cpf": "123.456.789-01",
        "phone": "11988887777",
        "modality": "clt",
        "cnhType": "D",
        "state": "SP",
    }

    def test_create_normalizes_cpf(self, client, admin_headers):
        response = client.post("/drivers", json=self.payload, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["cpf"] == "12345678901"
        assert response.json()["isActive"] is True

    def test_duplicate_cpf(self, client, admin_headers):
        client.post("/drivers", json=self.payload, headers=admin_headers)
        response = client.post("/drivers", json=self.payload, headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["message"] == "CPF já cadastrado."

    def test_invalid_modality(self, client, admin_headers):
        response = client.post("/drivers", json={**self.payload, "modality": "freela"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["errors"]

    def test_update_and_filter(self, client, admin_headers):
        driver = client.post("/drivers", json=self.payload, headers=admin_headers).json()
        response = client.patch(f"/drivers/{driver['id']}", json={"isActive": False, "isApto": True}, headers=admin_headers)
        assert response.json()["isApto"] is True
        active = client.get("/drivers", params={"active_only": True}, headers=admin_headers).json()
        assert driver["id"] not in [d["id"] for d in active]

    def test_delete(self, client, admin_headers):
        driver = client.post("/drivers", json=self.payload, headers=admin_headers).json()
        assert client.delete(f"/drivers/{driver['id']}", headers=admin_headers).status_code == 204
        assert client.get(f"/drivers/{driver['id']}", headers=admin_headers).status_code == 404


class TestClients:
    def test_daily_cost_and_locations(self, client, admin_headers):
        cli = client.post("/clients", json={"name": "Revenda Sul", "dailyCost": "45.50"}, headers=admin_headers).json()
        assert cli["dailyCost"] == 45.5

        location = client.post(
            f"/clients/{cli['id']}/locations",
            json={"name": "Filial Porto Alegre", "address": "Av. Ipiranga, 500", "city": "Porto Alegre", "state": "RS"},
            headers=admin_headers,
        )
        assert location.status_code == 201
        location_id = location.json()["id"]
        assert location.json()["clientId"] == cli["id"]

        listed = client.get(f"/clients/{cli['id']}/locations", headers=admin_headers).json()
        assert [loc["id"] for loc in listed] == [location_id]

        updated = client.patch(
            f"/delivery-locations/{location_id}",
            json={"responsibleName": "Ana"},
            headers=admin_headers,
        ).json()
        assert updated["responsibleName"] == "Ana"

        assert client.delete(f"/delivery-locations/{location_id}", headers=admin_headers).status_code == 204
        assert client.get(f"/clients/{cli['id']}/locations", headers=admin_headers).json() == []

    def test_negative_daily_cost(self, client, admin_headers):
        response = client.post("/clients", json={"name": "Revenda", "dailyCost": "-1"}, headers=admin_headers)
        assert response.status_code == 400

    def test_locations_of_unknown_client(self, client, admin_headers):
        assert client.get("/clients/999/locations", headers=admin_headers).status_code == 404

    def test_snake_case_input_accepted(self, client, admin_headers):
        response = client.post("/clients", json={"name": "Revenda Norte", "daily_cost": "10.00"}, headers=admin_headers)
        assert response.json()["dailyCost"] == 10.0


class TestYardsAndCheckpoints:
    def test_yard_crud(self, client, admin_headers):
        yard = client.post("/yards", json={"name": "Pátio Campinas", "maxVehicles": 300}, headers=admin_headers).json()
        assert yard["maxVehicles"] == 300
        updated = client.patch(f"/yards/{yard['id']}", json={"city": "Campinas"}, headers=admin_headers).json()
        assert updated["city"] == "Campinas"
        assert client.delete(f"/yards/{yard['id']}", headers=admin_headers).status_code == 204

    def test_yard_with_stock_cannot_be_deleted(self, client, admin_headers, master_data, stocked_vehicle):
        stocked_vehicle()
        response = client.delete(f"/yards/{master_data['yard_id']}", headers=admin_headers)
        assert response.status_code == 409

    def test_checkpoint_crud(self, client, admin_headers):
        cp = client.post(
            "/checkpoints",
            json={"name": "Posto Graal", "latitude": -22.9, "longitude": -47.1},
            headers=admin_headers,
        ).json()
        assert cp["isActive"] is True
        assert client.get(f"/checkpoints/{cp['id']}", headers=admin_headers).json()["name"] == "Posto Graal"
        assert client.delete(f"/checkpoints/{cp['id']}", headers=admin_headers).status_code == 204


class TestVehicles:
    def test_create_and_get_by_chassi(self, client, admin_headers):
        chassi = next_chassi()
        response = client.post("/vehicles", json={"chassi": chassi.lower(), "color": "Prata"}, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["status"] == "pre_estoque"
        assert client.get(f"/vehicles/{chassi}", headers=admin_headers).json()["color"] == "Prata"

    def test_duplicate_chassi(self, client, admin_headers):
        chassi = next_chassi()
        client.post("/vehicles", json={"chassi": chassi}, headers=admin_headers)
        assert client.post("/vehicles", json={"chassi": chassi}, headers=admin_headers).status_code == 409

    def test_unknown_reference(self, client, admin_headers):
        response = client.post("/vehicles", json={"chassi": next_chassi(), "yardId": 999}, headers=admin_headers)
        assert response.status_code == 400

    def test_status_not_editable(self, client, admin_headers, stocked_vehicle):
        chassi = stocked_vehicle()
        response = client.patch(
            f"/vehicles/{chassi}",
            json={"status": "entregue", "notes": "Risco na porta"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "em_estoque"
        assert response.json()["notes"] == "Risco na porta"

    def test_list_by_status(self, client, admin_headers, stocked_vehicle, new_collect):
        chassi = stocked_vehicle()
        new_collect()
        listed = client.get("/vehicles", params={"status": "em_estoque"}, headers=admin_headers).json()
        assert [v["chassi"] for v in listed] == [chassi]

    def test_vehicle_with_transport_cannot_be_deleted(self, client, admin_headers, new_transport):
        transport = new_transport()
        response = client.delete(f"/vehicles/{transport['vehicleChassi']}", headers=admin_headers)
        assert response.status_code == 409

    def test_delete_removes_collects(self, client, admin_headers, new_collect):
        collect = new_collect()
        assert client.delete(f"/vehicles/{collect['vehicleChassi']}", headers=admin_headers).status_code == 204
        assert client.get(f"/collects/{collect['id']}", headers=admin_headers).status_code == 404

    def test_not_found(self, client, admin_headers):
        response = client.get(f"/vehicles/{next_chassi()}", headers=admin_headers)
        assert response.status_code == 404
        assert response.json() == {"message": "Veículo não encontrado."}
