"""
Tests para el módulo de Inventario

Cubren:
- Ajustes manuales y control de stock negativo
- Traslados entre bodegas
- Descuento por venta (productos con y sin receta)
- Configuración de mínimos/máximos y alertas de stock bajo
- Consulta de movimientos
"""

import pytest
from uuid import uuid4

from app.modules.inventory.service import InventoryService


# ===== HELPERS =====

def _product(client, name, sku, product_type="RAW", cost=None, **extra):
    payload = {"name": name, "sku": sku, "product_type": product_type, "cost": cost, **extra}
    response = client.post("/products/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _warehouse(client, name):
    response = client.post("/warehouses/", json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _adjust(client, warehouse_id, product_id, quantity, reason="Inventario inicial", **extra):
    return client.post("/movements/adjustment", json={
        "warehouse_id": warehouse_id,
        "product_id": product_id,
        "quantity": quantity,
        "reason": reason,
        **extra,
    })


def _stock(client, warehouse_id, product_id):
    levels = client.get("/stock/", params={"warehouse_id": warehouse_id, "product_id": product_id}).json()
    return levels[0]["quantity"] if levels else None


@pytest.fixture
def kitchen(client):
    return {
        "main": _warehouse(client, "Cocina"),
        "store": _warehouse(client, "Almacén"),
        "flour": _product(client, "Harina", "HAR-01", cost=3),
    }


# ===== AJUSTES =====

class TestAdjustments:
    """Tests para ajustes manuales de inventario"""

    def test_positive_adjustment_creates_stock(self, client, kitchen):
        response = client.post("/movements/adjustment", json={
            "warehouse_id": kitchen["main"],
            "product_id": kitchen["flour"],
            "quantity": 25,
            "reason": "Conteo físico",
        }, headers={"X-User-ID": "bodeguero-1"})

        assert response.status_code == 201, response.text
        movement = response.json()
        assert movement["movement_type"] == "ADJUSTMENT"
        assert movement["quantity"] == 25
        assert movement["created_by_id"] == "bodeguero-1"
        assert movement["reference"].startswith("ADJ-")
        assert _stock(client, kitchen["main"], kitchen["flour"]) == 25

    def test_negative_adjustment(self, client, kitchen):
        _adjust(client, kitchen["main"], kitchen["flour"], 10)
        response = _adjust(client, kitchen["main"], kitchen["flour"], -4, reason="Merma")

        assert response.status_code == 201
        assert response.json()["quantity"] == -4
        assert _stock(client, kitchen["main"], kitchen["flour"]) == 6

    def test_negative_adjustment_cannot_leave_negative_stock(self, client, kitchen):
        _adjust(client, kitchen["main"], kitchen["flour"], 2)
        response = _adjust(client, kitchen["main"], kitchen["flour"], -5, reason="Merma")

        assert response.status_code == 400
        assert _stock(client, kitchen["main"], kitchen["flour"]) == 2

    def test_sell_in_negative_product_may_go_below_zero(self, client, kitchen):
        ice = _product(client, "Hielo", "HIE-01", cost=1, sell_in_negative=True)
        response = _adjust(client, kitchen["main"], ice, -3, reason="Consumo")

        assert response.status_code == 201
        assert _stock(client, kitchen["main"], ice) == -3

    def test_zero_adjustment_rejected(self, client, kitchen):
        assert _adjust(client, kitchen["main"], kitchen["flour"], 0).status_code == 422

    def test_unknown_warehouse_rejected(self, client, kitchen):
        assert _adjust(client, str(uuid4()), kitchen["flour"], 1).status_code == 400


# ===== TRASLADOS =====

class TestTransfers:
    """Tests para traslados entre bodegas"""

    def test_transfer_moves_stock(self, client, kitchen):
        _adjust(client, kitchen["store"], kitchen["flour"], 50)

        response = client.post("/movements/transfer", json={
            "product_id": kitchen["flour"],
            "from_warehouse_id": kitchen["store"],
            "to_warehouse_id": kitchen["main"],
            "quantity": 20,
        })

        assert response.status_code == 201, response.text
        legs = response.json()
        assert [leg["quantity"] for leg in legs] == [-20, 20]
        assert {leg["movement_type"] for leg in legs} == {"TRANSFER"}
        assert legs[0]["reference"] == legs[1]["reference"]
        assert _stock(client, kitchen["store"], kitchen["flour"]) == 30
        assert _stock(client, kitchen["main"], kitchen["flour"]) == 20

    def test_transfer_same_warehouse_rejected(self, client, kitchen):
        response = client.post("/movements/transfer", json={
            "product_id": kitchen["flour"],
            "from_warehouse_id": kitchen["main"],
            "to_warehouse_id": kitchen["main"],
            "quantity": 1,
        })
        assert response.status_code == 400

    def test_transfer_insufficient_stock(self, client, kitchen):
        _adjust(client, kitchen["store"], kitchen["flour"], 5)
        response = client.post("/movements/transfer", json={
            "product_id": kitchen["flour"],
            "from_warehouse_id": kitchen["store"],
            "to_warehouse_id": kitchen["main"],
            "quantity": 6,
        })

        assert response.status_code == 400
        assert _stock(client, kitchen["main"], kitchen["flour"]) is None


# ===== DESCUENTO POR VENTA =====

@pytest.fixture
def bakery(client, kitchen):
    """Pan (rinde 4) hecho con harina y levadura"""
    yeast = _product(client, "Levadura", "LEV-01", cost=10)
    bread = _product(client, "Pan artesanal", "PAN-ART", "PREPARED", enable_recipe_consumption=True)
    response = client.put(f"/recipes/{bread}", json={
        "yield": 4,
        "items": [
            {"ingredient_id": kitchen["flour"], "quantity": 2},
            {"ingredient_id": yeast, "quantity": 0.5},
        ],
    })
    assert response.status_code == 200, response.text
    return {**kitchen, "yeast": yeast, "bread": bread}


class TestSaleConsumption:
    """Tests para el descuento de inventario por ventas"""

    def test_recipe_product_deducts_ingredients(self, client, bakery):
        _adjust(client, bakery["main"], bakery["flour"], 10)
        _adjust(client, bakery["main"], bakery["yeast"], 2)

        response = client.post("/movements/sale-consumption", json={
            "warehouse_id": bakery["main"],
            "product_id": bakery["bread"],
            "quantity": 8,
            "reference": "FV-1001",
        })

        assert response.status_code == 201, response.text
        data = response.json()
        consumed = {c["ingredient_id"]: c["quantity"] for c in data["consumed"]}
        assert consumed == {bakery["flour"]: pytest.approx(4), bakery["yeast"]: pytest.approx(1)}
        assert {m["reason"] for m in data["movements"]} == {"Venta - Pan artesanal"}
        assert all(m["movement_type"] == "OUT" and m["quantity"] < 0 for m in data["movements"])
        assert _stock(client, bakery["main"], bakery["flour"]) == pytest.approx(6)
        assert _stock(client, bakery["main"], bakery["yeast"]) == pytest.approx(1)

    def test_insufficient_ingredient_rolls_back(self, client, bakery):
        _adjust(client, bakery["main"], bakery["flour"], 10)

        response = client.post("/movements/sale-consumption", json={
            "warehouse_id": bakery["main"],
            "product_id": bakery["bread"],
            "quantity": 4,
        })

        assert response.status_code == 400
        assert _stock(client, bakery["main"], bakery["flour"]) == 10
        assert client.get("/movements/", params={"movement_type": "OUT"}).json() == []

    def test_sub_recipe_used_in_two_branches_is_deducted_twice(self, client, kitchen):
        salt = _product(client, "Sal", "SAL-01", cost=1)
        sauce = _product(client, "Salsa", "SAL-PRE", "PREPARED", enable_recipe_consumption=True)
        dressing = _product(client, "Aderezo", "ADE-PRE", "PREPARED", enable_recipe_consumption=True)
        burger = _product(client, "Hamburguesa", "HAM-01", "PREPARED", enable_recipe_consumption=True)
        for product_id, items in (
            (sauce, [(salt, 1)]),
            (dressing, [(sauce, 2)]),
            (burger, [(sauce, 1), (dressing, 1)]),
        ):
            response = client.put(f"/recipes/{product_id}", json={
                "yield": 1,
                "items": [{"ingredient_id": i, "quantity": q} for i, q in items],
            })
            assert response.status_code == 200, response.text
        _adjust(client, kitchen["main"], salt, 10)

        response = client.post("/movements/sale-consumption", json={
            "warehouse_id": kitchen["main"],
            "product_id": burger,
            "quantity": 2,
        })

        assert response.status_code == 201, response.text
        assert response.json()["consumed"] == [{"ingredient_id": salt, "quantity": 6}]
        assert _stock(client, kitchen["main"], salt) == 4

    def test_plain_product_deducts_itself(self, client, kitchen):
        soda = _product(client, "Gaseosa", "GAS-01", "RETAIL", cost=1500)
        _adjust(client, kitchen["main"], soda, 12)

        response = client.post("/movements/sale-consumption", json={
            "warehouse_id": kitchen["main"],
            "product_id": soda,
            "quantity": 3,
        })

        assert response.status_code == 201
        assert response.json()["consumed"] == [{"ingredient_id": soda, "quantity": 3}]
        assert _stock(client, kitchen["main"], soda) == 9


# ===== NIVELES DE STOCK =====

class TestStockLevels:
    """Tests de configuración y consulta de existencias"""

    def test_settings_and_low_stock(self, client, kitchen):
        _adjust(client, kitchen["main"], kitchen["flour"], 4)

        response = client.put("/stock/settings", json={
            "warehouse_id": kitchen["main"],
            "product_id": kitchen["flour"],
            "min_stock": 5,
            "max_stock": 40,
        })
        assert response.status_code == 200, response.text
        assert response.json()["is_low_stock"] is True

        low = client.get("/stock/low-stock").json()
        assert [level["product_id"] for level in low] == [kitchen["flour"]]

    def test_settings_max_below_min_rejected(self, client, kitchen):
        response = client.put("/stock/settings", json={
            "warehouse_id": kitchen["main"],
            "product_id": kitchen["flour"],
            "min_stock": 10,
            "max_stock": 5,
        })
        assert response.status_code == 422

    def test_bulk_stock_check(self, client, kitchen):
        sugar = _product(client, "Azúcar", "AZU-01", cost=4)
        _adjust(client, kitchen["main"], kitchen["flour"], 3)

        response = client.post("/stock/check", json={
            "warehouse_id": kitchen["main"],
            "items": [
                {"product_id": kitchen["flour"], "quantity": 2},
                {"product_id": sugar, "quantity": 1},
            ],
        })

        assert response.status_code == 200
        results = {r["product_id"]: r for r in response.json()["items"]}
        assert results[kitchen["flour"]]["sufficient"] is True
        assert results[sugar]["sufficient"] is False
        assert results[sugar]["available"] == 0

    def test_check_stock_without_row_is_false(self, db_session, tenant_id):
        service = InventoryService(db_session)
        assert service.check_stock(tenant_id, uuid4(), uuid4(), 1) is False


# ===== SUGERENCIAS DE REABASTECIMIENTO =====

def _settings(client, warehouse_id, product_id, min_stock, max_stock=None):
    response = client.put("/stock/settings", json={
        "warehouse_id": warehouse_id,
        "product_id": product_id,
        "min_stock": min_stock,
        "max_stock": max_stock,
    })
    assert response.status_code == 200, response.text


class TestReorderSuggestions:
    """Tests para sugerencias de reabastecimiento según mínimos y máximos"""

    @pytest.fixture
    def pantry(self, client, kitchen):
        sugar = _product(client, "Azúcar", "AZU-01", cost=4)
        salt = _product(client, "Sal", "SAL-01", cost=1)
        oil = _product(client, "Aceite", "ACE-01", cost=8)
        for product_id, quantity in ((kitchen["flour"], 4), (sugar, 3), (salt, 15), (oil, 6)):
            _adjust(client, kitchen["main"], product_id, quantity)
        _settings(client, kitchen["main"], kitchen["flour"], 5, 40)
        _settings(client, kitchen["main"], sugar, 10)
        _settings(client, kitchen["main"], salt, 2, 20)
        _settings(client, kitchen["main"], oil, 0, 10)
        return {**kitchen, "sugar": sugar, "salt": salt, "oil": oil}

    def test_suggestions_sorted_by_quantity(self, client, pantry):
        response = client.get("/stock/reorder-suggestions")

        assert response.status_code == 200, response.text
        suggestions = response.json()
        assert [s["product_id"] for s in suggestions] == [pantry["flour"], pantry["sugar"], pantry["oil"]]
        assert [s["suggested_quantity"] for s in suggestions] == [36, 7, 4]
        assert [s["target_stock"] for s in suggestions] == [40, 10, 10]
        assert suggestions[0]["warehouse_name"] == "Cocina"

    def test_stock_above_minimum_is_not_suggested(self, client, pantry):
        suggestions = client.get("/stock/reorder-suggestions").json()
        assert pantry["salt"] not in {s["product_id"] for s in suggestions}

    def test_search_and_warehouse_filter(self, client, pantry):
        by_sku = client.get("/stock/reorder-suggestions", params={"q": "azu-01"}).json()
        assert [s["product_id"] for s in by_sku] == [pantry["sugar"]]

        other_warehouse = client.get("/stock/reorder-suggestions", params={"warehouse_id": pantry["store"]}).json()
        assert other_warehouse == []

    def test_levels_without_settings_are_ignored(self, client, kitchen):
        _adjust(client, kitchen["main"], kitchen["flour"], 1)
        assert client.get("/stock/reorder-suggestions").json() == []


# ===== MOVIMIENTOS =====

class TestMovements:
    """Tests de consulta del log de movimientos"""

    def test_filter_by_type_and_reference(self, client, kitchen):
        _adjust(client, kitchen["main"], kitchen["flour"], 10, reference="CONTEO-1")
        _adjust(client, kitchen["main"], kitchen["flour"], -1, reason="Merma", reference="MERMA-1")

        by_reference = client.get("/movements/", params={"reference": "MERMA-1"}).json()
        assert len(by_reference) == 1
        assert by_reference[0]["quantity"] == -1
        assert by_reference[0]["warehouse_name"] == "Cocina"

        adjustments = client.get("/movements/", params={"movement_type": "ADJUSTMENT"}).json()
        assert len(adjustments) == 2

    def test_movements_are_tenant_scoped(self, client, kitchen):
        _adjust(client, kitchen["main"], kitchen["flour"], 10)

        other = client.get("/movements/", headers={"X-Company-ID": str(uuid4())})
        assert other.status_code == 200
        assert other.json() == []

    def test_missing_company_header(self, client):
        response = client.get("/movements/", headers={"X-Company-ID": ""})
        assert response.status_code == 400
