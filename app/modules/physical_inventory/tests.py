"""
Tests para el módulo de Inventario Físico

Cubren:
- Creación con la foto del stock de la bodega
- Registro de conteos y cálculo de diferencias
- Completar y aprobar (ajustes ADJUSTMENT sobre el stock)
- Anulación y transiciones de estado inválidas
"""

import pytest
from uuid import uuid4


# ===== HELPERS =====

def _product(client, name, sku):
    response = client.post("/products/", json={"name": name, "sku": sku, "product_type": "RAW", "cost": 10})
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _adjust(client, warehouse_id, product_id, quantity):
    response = client.post("/movements/adjustment", json={
        "warehouse_id": warehouse_id,
        "product_id": product_id,
        "quantity": quantity,
        "reason": "Inventario inicial",
    })
    assert response.status_code == 201, response.text


def _stock(client, warehouse_id, product_id):
    levels = client.get("/stock/", params={"warehouse_id": warehouse_id, "product_id": product_id}).json()
    return levels[0]["quantity"]


def _count(client, count, product_id, quantity):
    item = next(i for i in count["items"] if i["product_id"] == product_id)
    return client.put(f"/physical-inventories/{count['id']}/items/{item['id']}", json={"counted_quantity": quantity})


@pytest.fixture
def storeroom(client):
    response = client.post("/warehouses/", json={"name": "Cocina"})
    assert response.status_code == 201, response.text
    warehouse = response.json()["id"]
    flour = _product(client, "Harina", "HAR-01")
    sugar = _product(client, "Azúcar", "AZU-01")
    salt = _product(client, "Sal", "SAL-01")
    _adjust(client, warehouse, flour, 10)
    _adjust(client, warehouse, sugar, 5)
    return {"warehouse": warehouse, "flour": flour, "sugar": sugar, "salt": salt}


@pytest.fixture
def physical_count(client, storeroom):
    response = client.post(
        "/physical-inventories/",
        json={"warehouse_id": storeroom["warehouse"], "notes": "Cierre de mes"},
        headers={"X-User-ID": "jefe-cocina"}
    )
    assert response.status_code == 201, response.text
    return response.json()


# ===== CREACIÓN Y CONTEO =====

class TestPhysicalInventoryCount:
    """Tests de creación y registro de conteos"""

    def test_create_takes_stock_snapshot(self, physical_count, storeroom):
        assert physical_count["number"] == "INV-000001"
        assert physical_count["status"] == "PENDING"
        assert physical_count["created_by_id"] == "jefe-cocina"
        # ordenados por nombre; la sal sin existencias no entra
        assert [(i["product_name"], i["system_quantity"]) for i in physical_count["items"]] == [
            ("Azúcar", 5), ("Harina", 10)
        ]
        assert all(i["counted_quantity"] is None for i in physical_count["items"])

    def test_first_count_starts_counting(self, client, physical_count, storeroom):
        response = _count(client, physical_count, storeroom["flour"], 8)

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["status"] == "COUNTING"
        assert data["started_at"] is not None
        flour = next(i for i in data["items"] if i["product_id"] == storeroom["flour"])
        assert flour["counted_quantity"] == 8
        assert flour["difference"] == -2

    def test_negative_count_rejected(self, client, physical_count, storeroom):
        assert _count(client, physical_count, storeroom["flour"], -1).status_code == 422

    def test_unknown_item(self, client, physical_count):
        response = client.put(
            f"/physical-inventories/{physical_count['id']}/items/{uuid4()}",
            json={"counted_quantity": 1}
        )
        assert response.status_code == 404

    def test_list_summarizes_differences(self, client, physical_count, storeroom):
        _count(client, physical_count, storeroom["flour"], 8)
        _count(client, physical_count, storeroom["sugar"], 5)

        listed = client.get("/physical-inventories/", params={"status": "COUNTING"}).json()

        assert listed["total"] == 1
        summary = listed["items"][0]
        assert summary["items_count"] == 2
        assert summary["differences_count"] == 1
        assert summary["has_negative_differences"] is True
        assert summary["has_positive_differences"] is False

    def test_unknown_warehouse_rejected(self, client):
        response = client.post("/physical-inventories/", json={"warehouse_id": str(uuid4())})
        assert response.status_code == 400


# ===== COMPLETAR Y APROBAR =====

class TestPhysicalInventoryApproval:
    """Tests de cierre y aprobación con ajustes de stock"""

    def test_approve_applies_adjustments(self, client, physical_count, storeroom):
        _count(client, physical_count, storeroom["flour"], 8)
        _count(client, physical_count, storeroom["sugar"], 7)

        completed = client.post(f"/physical-inventories/{physical_count['id']}/complete")
        assert completed.json()["status"] == "COMPLETED"
        # completar no toca el stock
        assert _stock(client, storeroom["warehouse"], storeroom["flour"]) == 10

        response = client.post(
            f"/physical-inventories/{physical_count['id']}/approve",
            headers={"X-User-ID": "administrador"}
        )

        assert response.status_code == 200, response.text
        assert response.json()["status"] == "APPROVED"
        assert response.json()["approved_by_id"] == "administrador"
        assert _stock(client, storeroom["warehouse"], storeroom["flour"]) == 8
        assert _stock(client, storeroom["warehouse"], storeroom["sugar"]) == 7

        movements = client.get("/movements/", params={"reference": "INV-000001"}).json()
        assert sorted(m["quantity"] for m in movements) == [-2, 2]
        assert {m["movement_type"] for m in movements} == {"ADJUSTMENT"}
        assert {m["reason"] for m in movements} == {"Aprobación de inventario físico INV-000001"}
        assert {m["created_by_id"] for m in movements} == {"administrador"}

    def test_uncounted_items_are_not_adjusted(self, client, physical_count, storeroom):
        _count(client, physical_count, storeroom["flour"], 12)
        client.post(f"/physical-inventories/{physical_count['id']}/complete")
        client.post(f"/physical-inventories/{physical_count['id']}/approve")

        assert _stock(client, storeroom["warehouse"], storeroom["flour"]) == 12
        assert _stock(client, storeroom["warehouse"], storeroom["sugar"]) == 5
        assert len(client.get("/movements/", params={"reference": "INV-000001"}).json()) == 1

    def test_approve_requires_completed(self, client, physical_count, storeroom):
        _count(client, physical_count, storeroom["flour"], 8)

        response = client.post(f"/physical-inventories/{physical_count['id']}/approve")

        assert response.status_code == 400
        assert _stock(client, storeroom["warehouse"], storeroom["flour"]) == 10

    def test_completed_count_is_closed(self, client, physical_count, storeroom):
        client.post(f"/physical-inventories/{physical_count['id']}/complete")

        assert _count(client, physical_count, storeroom["flour"], 8).status_code == 400
        assert client.post(f"/physical-inventories/{physical_count['id']}/complete").status_code == 400

    def test_approved_count_cannot_be_approved_again(self, client, physical_count, storeroom):
        _count(client, physical_count, storeroom["flour"], 8)
        client.post(f"/physical-inventories/{physical_count['id']}/complete")
        client.post(f"/physical-inventories/{physical_count['id']}/approve")

        assert client.post(f"/physical-inventories/{physical_count['id']}/approve").status_code == 400
        assert client.post(f"/physical-inventories/{physical_count['id']}/cancel").status_code == 400
        assert _stock(client, storeroom["warehouse"], storeroom["flour"]) == 8


# ===== ANULACIÓN Y CONSULTA =====

class TestPhysicalInventoryCancel:
    """Tests de anulación y aislamiento por empresa"""

    def test_cancel_blocks_further_changes(self, client, physical_count, storeroom):
        response = client.post(f"/physical-inventories/{physical_count['id']}/cancel")

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        assert _count(client, physical_count, storeroom["flour"], 8).status_code == 400
        assert client.post(f"/physical-inventories/{physical_count['id']}/approve").status_code == 400

    def test_numbers_are_sequential(self, client, physical_count, storeroom):
        second = client.post("/physical-inventories/", json={"warehouse_id": storeroom["warehouse"]})
        assert second.json()["number"] == "INV-000002"

    def test_not_found_and_tenant_isolation(self, client, physical_count):
        assert client.get(f"/physical-inventories/{uuid4()}").status_code == 404

        other = client.get(
            f"/physical-inventories/{physical_count['id']}",
            headers={"X-Company-ID": str(uuid4())}
        )
        assert other.status_code == 404
