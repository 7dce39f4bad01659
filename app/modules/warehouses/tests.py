"""
Tests para el módulo de Bodegas
"""

from uuid import uuid4


class TestWarehouses:
    """CRUD de bodegas con nombre único por empresa"""

    def test_create_and_get(self, client):
        response = client.post("/warehouses/", json={"name": "Cocina caliente", "is_main": True})

        assert response.status_code == 201
        warehouse = response.json()
        assert warehouse["is_main"] is True
        assert warehouse["is_active"] is True
        assert client.get(f"/warehouses/{warehouse['id']}").json()["name"] == "Cocina caliente"

    def test_duplicate_name_rejected(self, client):
        client.post("/warehouses/", json={"name": "Cuarto frío"})
        response = client.post("/warehouses/", json={"name": "Cuarto frío"})
        assert response.status_code == 400

    def test_list(self, client):
        for name in ("Barra", "Almacén"):
            client.post("/warehouses/", json={"name": name})

        data = client.get("/warehouses/").json()
        assert data["total"] == 2
        assert [w["name"] for w in data["warehouses"]] == ["Almacén", "Barra"]

    def test_unknown_warehouse(self, client):
        assert client.get(f"/warehouses/{uuid4()}").status_code == 404

    def test_inactive_warehouse_rejects_movements(self, client):
        warehouse = client.post("/warehouses/", json={"name": "Bodega vieja"}).json()["id"]
        product = client.post("/products/", json={"name": "Sal", "sku": "SAL-01"}).json()["id"]

        response = client.patch(f"/warehouses/{warehouse}", json={"is_active": False})
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        adjustment = client.post("/movements/adjustment", json={
            "warehouse_id": warehouse, "product_id": product, "quantity": 5, "reason": "Inventario inicial"
        })
        assert adjustment.status_code == 400
        assert "inactiva" in adjustment.json()["detail"]
