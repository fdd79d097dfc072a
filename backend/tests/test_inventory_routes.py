# Overview: Pytest coverage for the inventory HTTP endpoints.

from conftest import days_ago
from salonpos.time_utils import to_utc_z


def post_record(client, item, **body):
    payload = {"item_id": item.id}
    payload.update(body)
    return client.post("/api/inventory", json=payload)


class TestCreateRecord:
    def test_purchase_returns_record_and_item(self, client, db_session, product):
        resp = post_record(client, product, type="Purchase", quantity=100, unit_cost="8.00")

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["record"]["type"] == "Purchase"
        assert data["record"]["total_cost"] == "800.00"
        assert data["item"]["stock"] == 100
        assert data["item"]["average_cost"] == "8.0000"

    def test_usage_without_unit_cost(self, client, db_session, product):
        post_record(client, product, type="Purchase", quantity=10, unit_cost="2.00")

        resp = post_record(client, product, type="Usage", quantity=4)

        assert resp.status_code == 201
        assert resp.get_json()["record"]["cogs_total"] == "8.00"
        assert resp.get_json()["item"]["stock"] == 6

    def test_missing_fields(self, client, db_session, product):
        resp = client.post("/api/inventory", json={"item_id": product.id, "type": "Purchase"})

        assert resp.status_code == 400
        assert "quantity" in resp.get_json()["error"]

    def test_unknown_field_rejected(self, client, db_session, product):
        resp = post_record(client, product, type="Purchase", quantity=1, unit_cost="1", total_cost="5")
        assert resp.status_code == 400

    def test_bad_type(self, client, db_session, product):
        resp = post_record(client, product, type="Theft", quantity=1, unit_cost="1")
        assert resp.status_code == 400

    def test_service_item_conflict(self, client, db_session, haircut):
        resp = post_record(client, haircut, type="Purchase", quantity=1, unit_cost="1")
        assert resp.status_code == 409

    def test_unknown_item(self, client, db_session):
        resp = client.post(
            "/api/inventory",
            json={"item_id": 999999, "type": "Purchase", "quantity": 1, "unit_cost": "1"},
        )
        assert resp.status_code == 404

    def test_oversized_unit_cost(self, client, db_session, product):
        resp = post_record(client, product, type="Purchase", quantity=1, unit_cost="1e30")

        assert resp.status_code == 400
        assert "unit_cost" in resp.get_json()["error"]

    def test_oversized_quantity(self, client, db_session, product):
        resp = post_record(client, product, type="Purchase", quantity=10**20, unit_cost="1")

        assert resp.status_code == 400
        assert "quantity" in resp.get_json()["error"]

    def test_oversized_item_id(self, client, db_session):
        resp = client.post(
            "/api/inventory",
            json={"item_id": 10**20, "type": "Purchase", "quantity": 1, "unit_cost": "1"},
        )
        assert resp.status_code == 400

    def test_update_with_oversized_quantity(self, client, db_session, product):
        record_id = post_record(
            client, product, type="Purchase", quantity=2, unit_cost="1"
        ).get_json()["record"]["id"]

        resp = client.put(f"/api/inventory/{record_id}", json={"quantity": 10**20})

        assert resp.status_code == 400
        assert client.get(f"/api/items/{product.id}").get_json()["item"]["stock"] == 2


class TestEditAndDelete:
    def test_update_reconciles_item(self, client, db_session, product):
        first = post_record(
            client, product, type="Purchase", quantity=10, unit_cost="4", occurred_at=to_utc_z(days_ago(2))
        ).get_json()["record"]
        post_record(client, product, type="Purchase", quantity=10, unit_cost="8", occurred_at=to_utc_z(days_ago(1)))

        resp = client.put(f"/api/inventory/{first['id']}", json={"unit_cost": "6"})

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["record"]["total_cost"] == "60.00"
        assert data["item"]["stock"] == 20
        assert data["item"]["average_cost"] == "7.0000"

    def test_delete_returns_reconciled_item(self, client, db_session, product):
        created = post_record(client, product, type="Purchase", quantity=3, unit_cost="2").get_json()
        post_record(client, product, type="Usage", quantity=1)

        resp = client.delete(f"/api/inventory/{created['record']['id']}")

        assert resp.status_code == 200
        # Only a Usage is left: floors at zero, no cost basis
        assert resp.get_json()["item"]["stock"] == 0
        assert resp.get_json()["item"]["average_cost"] == "0.0000"

    def test_missing_record(self, client, db_session):
        assert client.get("/api/inventory/999999").status_code == 404
        assert client.put("/api/inventory/999999", json={"quantity": 2}).status_code == 404
        assert client.delete("/api/inventory/999999").status_code == 404


class TestReads:
    def test_list_filters_by_item_and_type(self, client, db_session, product):
        post_record(client, product, type="Purchase", quantity=5, unit_cost="1")
        post_record(client, product, type="Usage", quantity=2)

        resp = client.get(f"/api/inventory?item_id={product.id}&type=Usage")

        assert resp.status_code == 200
        records = resp.get_json()["records"]
        assert [r["type"] for r in records] == ["Usage"]

    def test_list_rejects_bad_type(self, client, db_session):
        assert client.get("/api/inventory?type=Nope").status_code == 400

    def test_summary_and_cogs(self, client, db_session, product):
        post_record(client, product, type="Purchase", quantity=4, unit_cost="2.50")

        summary = client.get(f"/api/inventory/items/{product.id}/summary").get_json()
        assert summary["stock"] == 4
        assert summary["inventory_value"] == "10.00"

        cogs = client.get(f"/api/inventory/items/{product.id}/cogs?quantity=2").get_json()
        assert cogs["unit_cost"] == "2.5000"
        assert cogs["total_cost"] == "5.00"

    def test_cogs_requires_quantity(self, client, db_session, product):
        assert client.get(f"/api/inventory/items/{product.id}/cogs").status_code == 400

    def test_reconcile_endpoint(self, client, db_session, product):
        post_record(client, product, type="Purchase", quantity=7, unit_cost="3")

        resp = client.post(f"/api/inventory/items/{product.id}/reconcile")

        assert resp.status_code == 200
        assert resp.get_json()["ledger"] == {"stock": 7, "average_cost": "3.0000"}

    def test_reconcile_service_conflict(self, client, db_session, haircut):
        assert client.post(f"/api/inventory/items/{haircut.id}/reconcile").status_code == 409
