"""
End-to-end shop floor flow through the HTTP API.

Catalog setup, order creation, operator completion, ledger and dashboard
all checked against one another.
"""
import pytest


@pytest.mark.integration
def test_chair_order_from_catalog_to_dashboard(client, admin_headers, operator_headers, operator_user):
    # Catalog
    legs = client.post(
        "/api/v1/products",
        json={"name": "Legs", "min_stock_level": 10, "opening_stock": 100},
        headers=admin_headers,
    ).json()
    seat = client.post(
        "/api/v1/products",
        json={"name": "Seat", "min_stock_level": 15, "opening_stock": 20},
        headers=admin_headers,
    ).json()
    chair = client.post(
        "/api/v1/products",
        json={"name": "Chair", "type": "finished_good"},
        headers=admin_headers,
    ).json()
    bom = client.post(
        "/api/v1/boms",
        json={
            "product_id": chair["id"],
            "name": "Chair",
            "lines": [
                {"component_product_id": legs["id"], "quantity": 4},
                {"component_product_id": seat["id"], "quantity": 1},
            ],
        },
        headers=admin_headers,
    )
    assert bom.status_code == 201

    # Order
    created = client.post(
        "/api/v1/manufacturing-orders",
        json={"product_id": chair["id"], "quantity": 10, "assignee_id": operator_user.id},
        headers=admin_headers,
    )
    assert created.status_code == 201
    mo_id = created.json()["mo_id"]

    # Operator works through the queue
    mine = client.get("/api/v1/work-orders/mine", headers=operator_headers).json()
    assert len(mine) == 2
    first, second = mine
    assert client.patch(f"/api/v1/work-orders/{first['id']}/start", headers=operator_headers).status_code == 200
    assert client.patch(f"/api/v1/work-orders/{first['id']}/complete", headers=operator_headers).status_code == 200
    assert client.patch(f"/api/v1/work-orders/{second['id']}/complete", headers=operator_headers).status_code == 200
    assert client.patch(f"/api/v1/work-orders/{second['id']}/complete", headers=operator_headers).status_code == 409

    # Order completed and finished goods booked
    order = client.get(f"/api/v1/manufacturing-orders/{mo_id}", headers=admin_headers).json()
    assert order["status"] == "completed"
    assert order["completed_at"] is not None

    stock = {
        p["name"]: p["stock_on_hand"]
        for p in client.get("/api/v1/products", headers=admin_headers).json()
    }
    assert stock == {"Chair": 10, "Legs": 60, "Seat": 10}

    chair_ledger = client.get(f"/api/v1/stock-ledger?product_id={chair['id']}", headers=admin_headers).json()
    assert [(e["movement_type"], e["reference_id"]) for e in chair_ledger] == [("production", f"MO-{mo_id}")]

    verify = client.get("/api/v1/stock-ledger/verify", headers=admin_headers).json()
    assert verify == {"products_checked": 3, "consistent": True, "inconsistencies": []}

    # Dashboard
    dashboard = client.get("/api/v1/dashboard/analytics", headers=admin_headers).json()
    assert dashboard["kpis"]["completed_this_month"] == 1
    assert dashboard["kpis"]["pending_wos"] == 0
    assert dashboard["kpis"]["low_stock_items"] == 1
    assert [a["name"] for a in dashboard["stock_alerts"]] == ["Seat"]

    analytics = client.get(f"/api/v1/operators/{operator_user.id}/analytics", headers=operator_headers).json()
    assert analytics["completed"] == 2
