"""
Tests para el módulo de Compras

Cubren:
- Costo promedio ponderado al recibir mercancía
- Recepciones: movimientos IN, stock, consecutivos y estado de la orden
- Órdenes de compra: creación, anulación
"""

import pytest
from uuid import uuid4

from app.modules.inventory.service import InventoryService
from app.modules.products.models import Product
from app.modules.warehouses.models import Warehouse


# ===== HELPERS =====

def _product(client, name, sku, cost=None):
    response = client.post("/products/", json={"name": name, "sku": sku, "product_type": "RAW", "cost": cost})
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _warehouse(client, name):
    response = client.post("/warehouses/", json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _receive(client, warehouse_id, lines, purchase_order_id=None):
    return client.post("/goods-receipts/", json={
        "warehouse_id": warehouse_id,
        "purchase_order_id": purchase_order_id,
        "items": [
            {"product_id": product_id, "quantity": quantity, "unit_cost": unit_cost}
            for product_id, quantity, unit_cost in lines
        ],
    })


@pytest.fixture
def stock_setup(db_session, tenant_id):
    warehouse = Warehouse(tenant_id=tenant_id, name="Bodega central")
    product = Product(tenant_id=tenant_id, name="Aceite", sku="ACE-01")
    db_session.add_all([warehouse, product])
    db_session.commit()
    return InventoryService(db_session), warehouse, product


# ===== COSTO PROMEDIO PONDERADO =====

class TestWeightedAverageCost:
    """Tests para InventoryService.update_product_cost"""

    def test_first_receipt_takes_received_cost(self, db_session, tenant_id, stock_setup):
        service, warehouse, product = stock_setup

        new_cost = service.update_product_cost(tenant_id, product.id, 10, 1200)

        assert new_cost == 1200

    def test_average_with_existing_stock(self, db_session, tenant_id, stock_setup):
        service, warehouse, product = stock_setup
        product.cost = 1000
        service.update_stock_level(tenant_id, warehouse.id, product.id, 10)

        new_cost = service.update_product_cost(tenant_id, product.id, 30, 2000)

        # (1000*10 + 2000*30) / 40
        assert new_cost == pytest.approx(1750)

    def test_missing_old_cost_counts_as_zero(self, db_session, tenant_id, stock_setup):
        service, warehouse, product = stock_setup
        service.update_stock_level(tenant_id, warehouse.id, product.id, 10)

        new_cost = service.update_product_cost(tenant_id, product.id, 10, 100)

        assert new_cost == pytest.approx(50)

    def test_stock_across_warehouses_is_used(self, db_session, tenant_id, stock_setup):
        service, warehouse, product = stock_setup
        other = Warehouse(tenant_id=tenant_id, name="Bodega norte")
        db_session.add(other)
        db_session.flush()
        product.cost = 100
        service.update_stock_level(tenant_id, warehouse.id, product.id, 5)
        service.update_stock_level(tenant_id, other.id, product.id, 5)

        new_cost = service.update_product_cost(tenant_id, product.id, 10, 300)

        assert new_cost == pytest.approx(200)

    def test_zero_resulting_stock_keeps_cost(self, db_session, tenant_id, stock_setup):
        service, warehouse, product = stock_setup
        product.cost = 700
        service.update_stock_level(tenant_id, warehouse.id, product.id, 4)

        new_cost = service.update_product_cost(tenant_id, product.id, -4, 999)

        assert new_cost == 700

    def test_negative_stock_takes_received_cost(self, db_session, tenant_id, stock_setup):
        service, warehouse, product = stock_setup
        product.cost = 700
        service.update_stock_level(tenant_id, warehouse.id, product.id, -3)

        new_cost = service.update_product_cost(tenant_id, product.id, 5, 800)

        assert new_cost == 800


# ===== RECEPCIONES =====

class TestGoodsReceipts:
    """Tests de recepción de mercancía"""

    def test_receipt_updates_stock_cost_and_movements(self, client):
        warehouse = _warehouse(client, "Bodega central")
        oil = _product(client, "Aceite", "ACE-01", cost=1000)
        client.post("/movements/adjustment", json={
            "warehouse_id": warehouse, "product_id": oil, "quantity": 10, "reason": "Inventario inicial"
        })

        response = _receive(client, warehouse, [(oil, 30, 2000)])

        assert response.status_code == 201, response.text
        receipt = response.json()
        assert receipt["number"] == "GR-000001"
        assert receipt["total_quantity"] == 30
        assert receipt["total_cost"] == 60000

        assert client.get(f"/products/{oil}").json()["cost"] == pytest.approx(1750)
        levels = client.get("/stock/", params={"warehouse_id": warehouse, "product_id": oil}).json()
        assert levels[0]["quantity"] == 40

        movements = client.get("/movements/", params={"reference": "GR-000001"}).json()
        assert len(movements) == 1
        assert movements[0]["movement_type"] == "IN"
        assert movements[0]["quantity"] == 30
        assert movements[0]["reason"] == "Recepción de compra - GR-000001"

    def test_same_product_twice_in_one_receipt(self, client):
        warehouse = _warehouse(client, "Bodega central")
        rice = _product(client, "Arroz", "ARR-01")

        response = _receive(client, warehouse, [(rice, 10, 100), (rice, 10, 300)])

        assert response.status_code == 201, response.text
        assert client.get(f"/products/{rice}").json()["cost"] == pytest.approx(200)
        levels = client.get("/stock/", params={"product_id": rice}).json()
        assert levels[0]["quantity"] == 20

    def test_receipt_numbers_are_sequential(self, client):
        warehouse = _warehouse(client, "Bodega central")
        salt = _product(client, "Sal", "SAL-01")

        first = _receive(client, warehouse, [(salt, 1, 10)]).json()
        second = _receive(client, warehouse, [(salt, 1, 10)]).json()

        assert [first["number"], second["number"]] == ["GR-000001", "GR-000002"]
        listed = client.get("/goods-receipts/").json()
        assert listed["total"] == 2

    def test_failed_line_rolls_back_whole_receipt(self, client):
        warehouse = _warehouse(client, "Bodega central")
        salt = _product(client, "Sal", "SAL-01", cost=5)

        response = _receive(client, warehouse, [(salt, 4, 10), (str(uuid4()), 1, 10)])

        assert response.status_code == 404
        assert client.get("/stock/", params={"product_id": salt}).json() == []
        assert client.get(f"/products/{salt}").json()["cost"] == 5
        assert client.get("/goods-receipts/").json()["total"] == 0

    def test_warehouse_required_without_order(self, client):
        salt = _product(client, "Sal", "SAL-01")
        response = _receive(client, None, [(salt, 1, 10)])
        assert response.status_code == 400


# ===== ÓRDENES DE COMPRA =====

@pytest.fixture
def purchase_order(client):
    warehouse = _warehouse(client, "Bodega central")
    flour = _product(client, "Harina", "HAR-01")
    response = client.post("/purchase-orders/", json={
        "supplier_name": "Molinos del Valle",
        "warehouse_id": warehouse,
        "status": "SENT",
        "items": [{"product_id": flour, "quantity": 50, "unit_cost": 3}],
    })
    assert response.status_code == 201, response.text
    return {"order": response.json(), "warehouse": warehouse, "flour": flour}


class TestPurchaseOrders:
    """Tests de órdenes de compra y su relación con recepciones"""

    def test_create_purchase_order(self, purchase_order):
        order = purchase_order["order"]
        assert order["number"] == "PO-000001"
        assert order["status"] == "SENT"
        assert len(order["items"]) == 1

    def test_partial_then_full_receipt(self, client, purchase_order):
        order = purchase_order["order"]
        item_id = order["items"][0]["id"]

        partial = client.post("/goods-receipts/", json={
            "purchase_order_id": order["id"],
            "items": [{"product_id": purchase_order["flour"], "purchase_order_item_id": item_id,
                       "quantity": 20, "unit_cost": 3}],
        })
        assert partial.status_code == 201, partial.text
        assert partial.json()["purchase_order_status"] == "SENT"
        assert partial.json()["warehouse_id"] == purchase_order["warehouse"]

        full = client.post("/goods-receipts/", json={
            "purchase_order_id": order["id"],
            "items": [{"product_id": purchase_order["flour"], "quantity": 30, "unit_cost": 3}],
        })
        assert full.json()["purchase_order_status"] == "RECEIVED"
        assert client.get(f"/purchase-orders/{order['id']}").json()["status"] == "RECEIVED"

    def test_received_order_rejects_more_receipts(self, client, purchase_order):
        order = purchase_order["order"]
        client.post("/goods-receipts/", json={
            "purchase_order_id": order["id"],
            "items": [{"product_id": purchase_order["flour"], "quantity": 50, "unit_cost": 3}],
        })

        response = client.post("/goods-receipts/", json={
            "purchase_order_id": order["id"],
            "items": [{"product_id": purchase_order["flour"], "quantity": 1, "unit_cost": 3}],
        })
        assert response.status_code == 400

    def test_foreign_order_item_rejected(self, client, purchase_order):
        response = client.post("/goods-receipts/", json={
            "purchase_order_id": purchase_order["order"]["id"],
            "items": [{"product_id": purchase_order["flour"], "purchase_order_item_id": str(uuid4()),
                       "quantity": 1, "unit_cost": 3}],
        })
        assert response.status_code == 400

    def test_cancel_order(self, client, purchase_order):
        order_id = purchase_order["order"]["id"]
        response = client.post(f"/purchase-orders/{order_id}/cancel")

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

        receipt = client.post("/goods-receipts/", json={
            "purchase_order_id": order_id,
            "items": [{"product_id": purchase_order["flour"], "quantity": 1, "unit_cost": 3}],
        })
        assert receipt.status_code == 400

    def test_cannot_cancel_order_with_receipts(self, client, purchase_order):
        order_id = purchase_order["order"]["id"]
        client.post("/goods-receipts/", json={
            "purchase_order_id": order_id,
            "items": [{"product_id": purchase_order["flour"], "quantity": 5, "unit_cost": 3}],
        })

        assert client.post(f"/purchase-orders/{order_id}/cancel").status_code == 400
