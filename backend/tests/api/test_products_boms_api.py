"""
Tests for product and BOM endpoints, plus service health.
"""
import pytest


@pytest.mark.api
def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestProducts:
    """Tests for /api/v1/products"""

    @pytest.mark.api
    def test_create_with_opening_stock(self, client, admin_headers):
        response = client.post(
            "/api/v1/products",
            json={"name": "Glue", "type": "raw_material", "min_stock_level": 5, "opening_stock": 3},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["stock_on_hand"] == 3
        assert data["is_low_stock"] is True

        ledger = client.get(f"/api/v1/stock-ledger?product_id={data['id']}", headers=admin_headers).json()
        assert [(e["movement_type"], e["quantity_in"]) for e in ledger] == [("manual_adjustment", 3)]

    @pytest.mark.api
    def test_duplicate_name_conflicts(self, client, chair_setup, admin_headers):
        response = client.post("/api/v1/products", json={"name": "Legs"}, headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error"] == "DUPLICATE_ERROR"

    @pytest.mark.api
    def test_negative_minimum_rejected(self, client, admin_headers):
        response = client.post(
            "/api/v1/products",
            json={"name": "Nails", "min_stock_level": -1},
            headers=admin_headers,
        )

        assert response.status_code == 400

    @pytest.mark.api
    def test_list_filters(self, client, chair_setup, operator_headers):
        finished = client.get("/api/v1/products?type=finished_good", headers=operator_headers)
        assert [p["name"] for p in finished.json()] == ["Chair"]

        low = client.get("/api/v1/products?low_stock=true", headers=operator_headers)
        assert low.json() == []

    @pytest.mark.api
    def test_update_minimum(self, client, chair_setup, admin_headers):
        response = client.patch(
            f"/api/v1/products/{chair_setup['seat'].id}",
            json={"min_stock_level": 50},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["min_stock_level"] == 50
        assert response.json()["is_low_stock"] is True
        assert response.json()["name"] == "Seat"

    @pytest.mark.api
    def test_delete_referenced_product_conflicts(self, client, chair_setup, admin_headers):
        response = client.delete(f"/api/v1/products/{chair_setup['legs'].id}", headers=admin_headers)

        assert response.status_code == 409

    @pytest.mark.api
    def test_delete_unused_product(self, client, admin_headers):
        created = client.post("/api/v1/products", json={"name": "Spare"}, headers=admin_headers).json()

        response = client.delete(f"/api/v1/products/{created['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert client.get(f"/api/v1/products/{created['id']}", headers=admin_headers).status_code == 404


class TestBoms:
    """Tests for /api/v1/boms"""

    @pytest.mark.api
    def test_create_and_read(self, client, chair_setup, admin_headers):
        response = client.post(
            "/api/v1/boms",
            json={
                "product_id": chair_setup["chair"].id,
                "name": "Chair v2",
                "version": "2.0",
                "lines": [
                    {"component_product_id": chair_setup["legs"].id, "quantity": 3},
                    {"component_product_id": chair_setup["seat"].id, "quantity": 1},
                ],
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        bom = response.json()
        assert bom["line_count"] == 2
        assert [line["component_name"] for line in bom["lines"]] == ["Legs", "Seat"]

        fetched = client.get(f"/api/v1/boms/{bom['id']}", headers=admin_headers)
        assert fetched.json()["version"] == "2.0"

    @pytest.mark.api
    def test_empty_bom_rejected(self, client, chair_setup, admin_headers):
        response = client.post(
            "/api/v1/boms",
            json={"product_id": chair_setup["chair"].id, "name": "Empty", "lines": []},
            headers=admin_headers,
        )

        assert response.status_code == 400

    @pytest.mark.api
    def test_self_referencing_bom_rejected(self, client, chair_setup, admin_headers):
        response = client.post(
            "/api/v1/boms",
            json={
                "product_id": chair_setup["chair"].id,
                "name": "Loop",
                "lines": [{"component_product_id": chair_setup["chair"].id, "quantity": 1}],
            },
            headers=admin_headers,
        )

        assert response.status_code == 409

    @pytest.mark.api
    def test_list_by_product(self, client, chair_setup, operator_headers):
        response = client.get(
            f"/api/v1/boms?product_id={chair_setup['chair'].id}&active=true",
            headers=operator_headers,
        )

        assert [b["id"] for b in response.json()] == [chair_setup["bom"].id]

    @pytest.mark.api
    def test_delete_bom_in_use_conflicts(self, client, db_session, chair_setup, admin_headers):
        client.post(
            "/api/v1/manufacturing-orders",
            json={"product_id": chair_setup["chair"].id, "quantity": 1},
            headers=admin_headers,
        )

        response = client.delete(f"/api/v1/boms/{chair_setup['bom'].id}", headers=admin_headers)

        assert response.status_code == 409
