"""
Tests para el módulo de Productos

- Creación con SKU único por empresa
- Listado paginado y filtros
- Edición manual de costo y protección de productos con receta
"""

from uuid import uuid4


def _create(client, **overrides):
    payload = {"name": "Tomate chonto", "sku": "TOM-01", "product_type": "RAW", "cost": 2500}
    payload.update(overrides)
    return client.post("/products/", json=payload)


class TestProductCreation:
    """Tests de creación de productos"""

    def test_create_product(self, client):
        response = _create(client)

        assert response.status_code == 201
        data = response.json()
        assert data["sku"] == "TOM-01"
        assert data["product_type"] == "RAW"
        assert data["cost"] == 2500
        assert data["has_recipe"] is False

    def test_cost_is_optional(self, client):
        response = _create(client, cost=None)
        assert response.status_code == 201
        assert response.json()["cost"] is None

    def test_duplicate_sku_rejected(self, client):
        _create(client)
        response = _create(client, name="Otro tomate")

        assert response.status_code == 400
        assert "TOM-01" in response.json()["detail"]

    def test_same_sku_in_other_company(self, client):
        _create(client)
        response = client.post(
            "/products/",
            json={"name": "Tomate", "sku": "TOM-01"},
            headers={"X-Company-ID": str(uuid4())}
        )
        assert response.status_code == 201

    def test_invalid_product_type(self, client):
        assert _create(client, product_type="SERVICE").status_code == 422


class TestProductQueries:
    """Tests de consulta de productos"""

    def test_list_with_filters(self, client):
        _create(client, name="Tomate", sku="TOM-01")
        _create(client, name="Cebolla", sku="CEB-01")
        _create(client, name="Salsa", sku="SAL-01", product_type="PREPARED", enable_recipe_consumption=True)

        raw = client.get("/products/", params={"product_type": "RAW"}).json()
        assert raw["total"] == 2
        assert [p["name"] for p in raw["data"]] == ["Cebolla", "Tomate"]

        search = client.get("/products/", params={"search": "sal"}).json()
        assert [p["sku"] for p in search["data"]] == ["SAL-01"]

    def test_pagination(self, client):
        for i in range(3):
            _create(client, name=f"Insumo {i}", sku=f"INS-{i}")

        page = client.get("/products/", params={"limit": 2, "offset": 0}).json()
        assert page["total"] == 3
        assert page["hasNext"] is True
        assert page["hasPrev"] is False

    def test_get_unknown_product(self, client):
        assert client.get(f"/products/{uuid4()}").status_code == 404


class TestProductUpdate:
    """Tests de actualización de productos"""

    def test_manual_cost_edit(self, client):
        product_id = _create(client).json()["id"]

        response = client.patch(f"/products/{product_id}", json={"cost": 3000})

        assert response.status_code == 200
        assert response.json()["cost"] == 3000

    def test_recipe_product_must_stay_prepared(self, client):
        ingredient = _create(client).json()["id"]
        sauce = _create(client, name="Salsa", sku="SAL-01", product_type="PREPARED",
                        enable_recipe_consumption=True).json()["id"]
        client.put(f"/recipes/{sauce}", json={"yield": 1, "items": [{"ingredient_id": ingredient, "quantity": 2}]})

        assert client.get(f"/products/{sauce}").json()["has_recipe"] is True
        response = client.patch(f"/products/{sauce}", json={"product_type": "RETAIL"})
        assert response.status_code == 400

        response = client.patch(f"/products/{sauce}", json={"enable_recipe_consumption": False})
        assert response.status_code == 400

    def test_duplicate_sku_on_update(self, client):
        _create(client)
        other = _create(client, name="Cebolla", sku="CEB-01").json()["id"]

        assert client.patch(f"/products/{other}", json={"sku": "TOM-01"}).status_code == 400
