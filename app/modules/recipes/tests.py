"""
Tests para el módulo de Recetas

Cubren:
- Costeo de recetas anidadas (calculador puro con catálogo en memoria)
- Resolución de ingredientes hoja con agregación y ciclos
- Administración de recetas vía API (validaciones, reemplazo de ítems)
- Recalculo de costo y stock virtual
"""

import pytest
from uuid import uuid4, UUID
from typing import Dict, List, Optional, Tuple
from fastapi import HTTPException

from app.modules.products.models import Product, ProductType
from app.modules.recipes.calculator import (
    RecipeCostCalculator,
    ProductNotFoundError,
    CircularDependencyError,
    InvalidRecipeError,
)
from app.modules.recipes.schemas import ProductNode, RecipeNode, RecipeItemNode
from app.modules.recipes.models import Recipe, RecipeItem
from app.modules.recipes.service import RecipeService


class InMemoryCatalog:
    """Loader de productos en memoria para probar el calculador sin base de datos"""

    def __init__(self):
        self.products: Dict[UUID, dict] = {}
        self.recipes: Dict[UUID, Tuple[float, List[Tuple[UUID, float]]]] = {}

    def add(self, name: str, product_type: ProductType = ProductType.RAW,
            cost: Optional[float] = None, enable_recipe_consumption: bool = False) -> UUID:
        product_id = uuid4()
        self.products[product_id] = {
            "name": name,
            "product_type": product_type,
            "cost": cost,
            "enable_recipe_consumption": enable_recipe_consumption,
        }
        return product_id

    def prepared(self, name: str, cost: Optional[float] = None) -> UUID:
        return self.add(name, ProductType.PREPARED, cost, enable_recipe_consumption=True)

    def set_recipe(self, product_id: UUID, yield_quantity: float, items: List[Tuple[UUID, float]]):
        self.recipes[product_id] = (yield_quantity, items)

    def load(self, product_id: UUID) -> Optional[ProductNode]:
        data = self.products.get(product_id)
        if data is None:
            return None
        recipe = None
        if product_id in self.recipes:
            yield_quantity, items = self.recipes[product_id]
            recipe = RecipeNode(
                id=uuid4(),
                yield_quantity=yield_quantity,
                items=[self._item(ingredient_id, quantity) for ingredient_id, quantity in items],
            )
        return ProductNode(id=product_id, recipe=recipe, **data)

    def _item(self, ingredient_id: UUID, quantity: float) -> RecipeItemNode:
        ingredient = self.products[ingredient_id]
        return RecipeItemNode(
            ingredient_id=ingredient_id,
            ingredient_name=ingredient["name"],
            ingredient_type=ingredient["product_type"],
            ingredient_cost=ingredient["cost"],
            ingredient_enable_recipe_consumption=ingredient["enable_recipe_consumption"],
            quantity=quantity,
        )

    def calculator(self, strict_cycles: bool = False) -> RecipeCostCalculator:
        return RecipeCostCalculator(self.load, strict_cycles=strict_cycles)


# ===== FIXTURES =====

@pytest.fixture
def burger_catalog():
    """Hamburguesa (rinde 10) con pan, carne y salsa anidada (rinde 100, costo 10000)"""
    catalog = InMemoryCatalog()
    ids = {
        "bun": catalog.add("Pan", cost=500),
        "patty": catalog.add("Carne", cost=2000),
        "tomato": catalog.add("Tomate", cost=100),
        "oil": catalog.add("Aceite", cost=200),
        "sauce": catalog.prepared("Salsa de la casa"),
        "burger": catalog.prepared("Hamburguesa"),
    }
    catalog.set_recipe(ids["sauce"], 100, [(ids["tomato"], 80), (ids["oil"], 10)])
    catalog.set_recipe(ids["burger"], 10, [(ids["bun"], 1), (ids["patty"], 1), (ids["sauce"], 0.05)])
    return catalog, ids


# ===== TESTS DE COSTEO =====

class TestCalculateRecipeCost:
    """Tests para calculate_recipe_cost"""

    def test_burger_with_nested_sauce(self, burger_catalog):
        catalog, ids = burger_catalog
        result = catalog.calculator().calculate_recipe_cost(ids["burger"])

        assert result.errors == []
        assert result.has_missing_costs is False
        assert result.calculated_cost == pytest.approx(250.5)

        sauce_line = next(line for line in result.breakdown if line.ingredient_id == ids["sauce"])
        assert sauce_line.is_nested is True
        assert sauce_line.unit_cost == pytest.approx(100)
        assert sauce_line.total_cost == pytest.approx(5)

    def test_cost_times_yield_equals_ingredient_total(self, burger_catalog):
        catalog, ids = burger_catalog
        result = catalog.calculator().calculate_recipe_cost(ids["burger"])

        assert result.calculated_cost * 10 == pytest.approx(sum(line.total_cost for line in result.breakdown))

    def test_product_without_recipe_returns_its_cost(self, burger_catalog):
        catalog, ids = burger_catalog
        result = catalog.calculator().calculate_recipe_cost(ids["patty"])

        assert result.calculated_cost == 2000
        assert result.breakdown == []
        assert result.errors == []

    def test_non_prepared_product_ignores_recipe(self):
        catalog = InMemoryCatalog()
        flour = catalog.add("Harina", cost=10)
        bread = catalog.add("Pan empacado", ProductType.RETAIL, cost=1200)
        catalog.set_recipe(bread, 1, [(flour, 3)])

        result = catalog.calculator().calculate_recipe_cost(bread)

        assert result.calculated_cost == 1200
        assert result.breakdown == []

    def test_product_without_cost_flags_missing(self):
        catalog = InMemoryCatalog()
        salt = catalog.add("Sal")

        result = catalog.calculator().calculate_recipe_cost(salt)

        assert result.calculated_cost is None
        assert result.has_missing_costs is True

    def test_missing_ingredient_cost(self):
        catalog = InMemoryCatalog()
        cheese = catalog.add("Queso")
        bread = catalog.add("Pan", cost=300)
        sandwich = catalog.prepared("Sándwich")
        catalog.set_recipe(sandwich, 1, [(bread, 2), (cheese, 1)])

        result = catalog.calculator().calculate_recipe_cost(sandwich)

        assert result.calculated_cost is None
        assert result.has_missing_costs is True
        assert "Missing cost for ingredient: Queso" in result.errors
        cheese_line = next(line for line in result.breakdown if line.ingredient_id == cheese)
        assert cheese_line.unit_cost is None
        assert cheese_line.total_cost == 0

    def test_missing_cost_in_nested_recipe_propagates(self):
        catalog = InMemoryCatalog()
        basil = catalog.add("Albahaca")
        pesto = catalog.prepared("Pesto")
        pasta = catalog.prepared("Pasta al pesto")
        catalog.set_recipe(pesto, 1, [(basil, 1)])
        catalog.set_recipe(pasta, 1, [(pesto, 1)])

        result = catalog.calculator().calculate_recipe_cost(pasta)

        assert result.calculated_cost is None
        assert result.has_missing_costs is True
        assert result.errors == ["Missing cost for ingredient: Albahaca"]

    def test_invalid_yield(self):
        catalog = InMemoryCatalog()
        water = catalog.add("Agua", cost=1)
        ice = catalog.prepared("Hielo")
        catalog.set_recipe(ice, 0, [(water, 1)])

        result = catalog.calculator().calculate_recipe_cost(ice)

        assert result.calculated_cost is None
        assert "Recipe yield must be greater than 0" in result.errors

    def test_unknown_product(self):
        result = InMemoryCatalog().calculator().calculate_recipe_cost(uuid4())

        assert result.calculated_cost is None
        assert result.errors == ["Product not found"]

    def test_cycle_terminates_with_error(self):
        catalog = InMemoryCatalog()
        a = catalog.prepared("Masa A")
        b = catalog.prepared("Masa B")
        catalog.set_recipe(a, 1, [(b, 1)])
        catalog.set_recipe(b, 1, [(a, 1)])

        result = catalog.calculator().calculate_recipe_cost(a)

        assert result.calculated_cost is None
        assert "Circular dependency detected: Masa A" in result.errors

    def test_shared_sub_recipe_is_not_a_cycle(self):
        """Dos ramas que usan la misma sub-receta se costean ambas"""
        catalog = InMemoryCatalog()
        sugar = catalog.add("Azúcar", cost=4)
        syrup = catalog.prepared("Almíbar")
        cream = catalog.prepared("Crema")
        cake = catalog.prepared("Torta")
        catalog.set_recipe(syrup, 1, [(sugar, 1)])
        catalog.set_recipe(cream, 1, [(syrup, 2)])
        catalog.set_recipe(cake, 1, [(syrup, 1), (cream, 1)])

        result = catalog.calculator().calculate_recipe_cost(cake)

        assert result.errors == []
        assert result.calculated_cost == pytest.approx(4 + 8)

    def test_unexpected_error_is_captured(self):
        def broken_loader(product_id):
            raise RuntimeError("db down")

        result = RecipeCostCalculator(broken_loader).calculate_recipe_cost(uuid4())

        assert result.calculated_cost is None
        assert result.errors == ["Error calculating recipe cost: db down"]


# ===== TESTS DE RESOLUCIÓN DE INGREDIENTES =====

class TestResolveAllIngredients:
    """Tests para resolve_all_ingredients"""

    def test_burger_leaves(self, burger_catalog):
        catalog, ids = burger_catalog
        result = {r.ingredient_id: r.quantity for r in catalog.calculator().resolve_all_ingredients(ids["burger"], 100)}

        assert set(result) == {ids["bun"], ids["patty"], ids["tomato"], ids["oil"]}
        assert result[ids["bun"]] == pytest.approx(10)
        assert result[ids["patty"]] == pytest.approx(10)
        # 100 hamburguesas -> 0.5 de salsa -> 0.005 lotes de salsa
        assert result[ids["tomato"]] == pytest.approx(0.4)
        assert result[ids["oil"]] == pytest.approx(0.05)

    def test_same_leaf_in_two_branches_is_merged(self):
        catalog = InMemoryCatalog()
        salt = catalog.add("Sal", cost=1)
        rice = catalog.add("Arroz", cost=3)
        stock = catalog.prepared("Caldo")
        dish = catalog.prepared("Arroz con caldo")
        catalog.set_recipe(stock, 1, [(salt, 2)])
        catalog.set_recipe(dish, 1, [(salt, 1), (rice, 4), (stock, 1)])

        result = catalog.calculator().resolve_all_ingredients(dish, 2)

        salt_entries = [r for r in result if r.ingredient_id == salt]
        assert len(salt_entries) == 1
        assert salt_entries[0].quantity == pytest.approx(6)

    def test_product_without_recipe_is_its_own_leaf(self, burger_catalog):
        catalog, ids = burger_catalog
        result = catalog.calculator().resolve_all_ingredients(ids["bun"], 3)

        assert [(r.ingredient_id, r.quantity) for r in result] == [(ids["bun"], 3)]

    def test_disabled_nested_recipe_is_a_leaf(self):
        catalog = InMemoryCatalog()
        flour = catalog.add("Harina", cost=2)
        dough = catalog.add("Masa", ProductType.PREPARED, cost=50, enable_recipe_consumption=False)
        pizza = catalog.prepared("Pizza")
        catalog.set_recipe(dough, 1, [(flour, 5)])
        catalog.set_recipe(pizza, 1, [(dough, 1)])

        result = catalog.calculator().resolve_all_ingredients(pizza, 2)

        assert [(r.ingredient_id, r.quantity) for r in result] == [(dough, 2)]

    def test_cycle_is_skipped_by_default(self, caplog):
        catalog = InMemoryCatalog()
        salt = catalog.add("Sal", cost=1)
        a = catalog.prepared("Base A")
        b = catalog.prepared("Base B")
        catalog.set_recipe(a, 1, [(b, 1), (salt, 1)])
        catalog.set_recipe(b, 1, [(a, 1)])

        with caplog.at_level("WARNING"):
            result = catalog.calculator().resolve_all_ingredients(a, 1)

        assert [(r.ingredient_id, r.quantity) for r in result] == [(salt, 1)]
        assert "Circular dependency" in caplog.text

    def test_cycle_raises_in_strict_mode(self):
        catalog = InMemoryCatalog()
        a = catalog.prepared("Base A")
        b = catalog.prepared("Base B")
        catalog.set_recipe(a, 1, [(b, 1)])
        catalog.set_recipe(b, 1, [(a, 1)])

        with pytest.raises(CircularDependencyError, match="Circular dependency detected: Base A"):
            catalog.calculator(strict_cycles=True).resolve_all_ingredients(a, 1)

    def test_shared_prepared_leaf_is_summed(self):
        catalog = InMemoryCatalog()
        sauce = catalog.prepared("Salsa")
        dressing = catalog.prepared("Aderezo")
        burger = catalog.prepared("Hamburguesa")
        catalog.set_recipe(dressing, 1, [(sauce, 2)])
        catalog.set_recipe(burger, 1, [(sauce, 1), (dressing, 1)])

        result = catalog.calculator().resolve_all_ingredients(burger, 1)

        assert [(r.ingredient_id, r.quantity) for r in result] == [(sauce, pytest.approx(3))]

    @pytest.mark.parametrize("strict_cycles", [False, True])
    def test_shared_sub_recipe_is_expanded_in_every_branch(self, strict_cycles, caplog):
        catalog = InMemoryCatalog()
        salt = catalog.add("Sal", cost=1)
        sauce = catalog.prepared("Salsa")
        dressing = catalog.prepared("Aderezo")
        burger = catalog.prepared("Hamburguesa")
        catalog.set_recipe(sauce, 1, [(salt, 1)])
        catalog.set_recipe(dressing, 1, [(sauce, 2)])
        catalog.set_recipe(burger, 1, [(sauce, 1), (dressing, 1)])

        with caplog.at_level("WARNING"):
            result = catalog.calculator(strict_cycles=strict_cycles).resolve_all_ingredients(burger, 1)

        assert [(r.ingredient_id, r.quantity) for r in result] == [(salt, pytest.approx(3))]
        assert "Circular dependency" not in caplog.text

    def test_unknown_product_raises(self):
        with pytest.raises(ProductNotFoundError):
            InMemoryCatalog().calculator().resolve_all_ingredients(uuid4(), 1)

    def test_invalid_yield_raises(self):
        catalog = InMemoryCatalog()
        water = catalog.add("Agua", cost=1)
        ice = catalog.prepared("Hielo")
        catalog.set_recipe(ice, 0, [(water, 1)])

        with pytest.raises(InvalidRecipeError):
            catalog.calculator().resolve_all_ingredients(ice, 1)

    def test_base_quantity_must_be_positive(self, burger_catalog):
        catalog, ids = burger_catalog
        with pytest.raises(ValueError):
            catalog.calculator().resolve_all_ingredients(ids["burger"], 0)

    def test_depends_on(self, burger_catalog):
        catalog, ids = burger_catalog
        calculator = catalog.calculator()

        assert calculator.depends_on(ids["burger"], ids["tomato"]) is True
        assert calculator.depends_on(ids["sauce"], ids["burger"]) is False


# ===== TESTS DE API =====

def _create_product(client, name, sku, product_type="RAW", cost=None, enable_recipe_consumption=False):
    response = client.post("/products/", json={
        "name": name,
        "sku": sku,
        "product_type": product_type,
        "cost": cost,
        "enable_recipe_consumption": enable_recipe_consumption,
    })
    assert response.status_code == 201, response.text
    return response.json()["id"]


def _create_warehouse(client, name="Cocina principal"):
    response = client.post("/warehouses/", json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.fixture
def api_burger(client):
    ids = {
        "bun": _create_product(client, "Pan", "PAN-01", cost=500),
        "patty": _create_product(client, "Carne", "CAR-01", cost=2000),
        "tomato": _create_product(client, "Tomate", "TOM-01", cost=100),
        "oil": _create_product(client, "Aceite", "ACE-01", cost=200),
        "sauce": _create_product(client, "Salsa", "SAL-01", "PREPARED", enable_recipe_consumption=True),
        "burger": _create_product(client, "Hamburguesa", "HAM-01", "PREPARED", enable_recipe_consumption=True),
    }
    response = client.put(f"/recipes/{ids['sauce']}", json={
        "yield": 100,
        "items": [
            {"ingredient_id": ids["tomato"], "quantity": 80},
            {"ingredient_id": ids["oil"], "quantity": 10},
        ],
    })
    assert response.status_code == 200, response.text
    response = client.put(f"/recipes/{ids['burger']}", json={
        "yield": 10,
        "items": [
            {"ingredient_id": ids["bun"], "quantity": 1},
            {"ingredient_id": ids["patty"], "quantity": 1},
            {"ingredient_id": ids["sauce"], "quantity": 0.05},
        ],
    })
    assert response.status_code == 200, response.text
    return ids


class TestRecipeAPI:
    """Tests de endpoints de recetas"""

    def test_upsert_and_get_recipe(self, client, api_burger):
        response = client.get(f"/recipes/{api_burger['burger']}")

        assert response.status_code == 200
        data = response.json()
        assert data["yield"] == 10
        assert {item["ingredient_id"] for item in data["items"]} == {
            api_burger["bun"], api_burger["patty"], api_burger["sauce"]
        }

    def test_upsert_replaces_items(self, client, api_burger):
        response = client.put(f"/recipes/{api_burger['burger']}", json={
            "yield": 1,
            "items": [{"ingredient_id": api_burger["patty"], "quantity": 2}],
        })

        assert response.status_code == 200
        data = response.json()
        assert data["yield"] == 1
        assert len(data["items"]) == 1
        assert data["items"][0]["quantity"] == 2

    def test_cost_endpoint(self, client, api_burger):
        response = client.get(f"/recipes/{api_burger['burger']}/cost")

        assert response.status_code == 200
        data = response.json()
        assert data["calculated_cost"] == pytest.approx(250.5)
        assert data["errors"] == []

    def test_refresh_cost_updates_product(self, client, api_burger):
        response = client.post(f"/recipes/{api_burger['burger']}/refresh-cost")

        assert response.status_code == 200
        assert response.json()["updated"] is True
        product = client.get(f"/products/{api_burger['burger']}").json()
        assert product["cost"] == pytest.approx(250.5)

    def test_ingredients_endpoint(self, client, api_burger):
        response = client.get(f"/recipes/{api_burger['burger']}/ingredients", params={"quantity": 100})

        assert response.status_code == 200
        quantities = {i["ingredient_id"]: i["quantity"] for i in response.json()["ingredients"]}
        assert quantities[api_burger["bun"]] == pytest.approx(10)
        assert quantities[api_burger["tomato"]] == pytest.approx(0.4)

    def test_ingredients_unknown_product(self, client):
        response = client.get(f"/recipes/{uuid4()}/ingredients")
        assert response.status_code == 404

    def test_recipe_requires_prepared_product(self, client):
        raw = _create_product(client, "Harina", "HAR-01", cost=5)
        salt = _create_product(client, "Sal", "SAL-99", cost=1)

        response = client.put(f"/recipes/{raw}", json={
            "yield": 1, "items": [{"ingredient_id": salt, "quantity": 1}]
        })
        assert response.status_code == 400

    def test_self_ingredient_rejected(self, client, api_burger):
        response = client.put(f"/recipes/{api_burger['burger']}", json={
            "yield": 1, "items": [{"ingredient_id": api_burger["burger"], "quantity": 1}]
        })
        assert response.status_code == 400

    def test_cycle_rejected_on_save(self, client, api_burger):
        response = client.put(f"/recipes/{api_burger['sauce']}", json={
            "yield": 1, "items": [{"ingredient_id": api_burger["burger"], "quantity": 1}]
        })

        assert response.status_code == 400
        assert "Circular dependency" in response.json()["detail"]
        # la receta original queda intacta
        assert client.get(f"/recipes/{api_burger['sauce']}").json()["yield"] == 100

    def test_invalid_yield_rejected(self, client, api_burger):
        response = client.put(f"/recipes/{api_burger['burger']}", json={"yield": 0, "items": []})
        assert response.status_code == 422

    def test_duplicate_ingredient_rejected(self, client, api_burger):
        response = client.put(f"/recipes/{api_burger['burger']}", json={
            "yield": 1,
            "items": [
                {"ingredient_id": api_burger["bun"], "quantity": 1},
                {"ingredient_id": api_burger["bun"], "quantity": 2},
            ],
        })
        assert response.status_code == 422

    def test_delete_recipe(self, client, api_burger):
        assert client.delete(f"/recipes/{api_burger['burger']}").status_code == 204
        assert client.get(f"/recipes/{api_burger['burger']}").status_code == 404

    def test_inactive_recipe_is_ignored_for_cost(self, client):
        salt = _create_product(client, "Sal", "SAL-02", cost=1)
        brine = _create_product(client, "Salmuera", "SMR-01", "PREPARED", cost=7, enable_recipe_consumption=True)
        client.put(f"/recipes/{brine}", json={
            "yield": 1, "is_active": False, "items": [{"ingredient_id": salt, "quantity": 3}]
        })

        data = client.get(f"/recipes/{brine}/cost").json()
        assert data["calculated_cost"] == 7
        assert data["breakdown"] == []

    def test_virtual_stock(self, client, api_burger):
        warehouse = _create_warehouse(client)
        for product_id, quantity in ((api_burger["bun"], 3), (api_burger["patty"], 5), (api_burger["sauce"], 1)):
            response = client.post("/movements/adjustment", json={
                "warehouse_id": warehouse,
                "product_id": product_id,
                "quantity": quantity,
                "reason": "Inventario inicial",
            })
            assert response.status_code == 201, response.text

        response = client.get(f"/recipes/{api_burger['burger']}/virtual-stock")

        assert response.status_code == 200
        # pan: 3 / (1/10) = 30; carne: 5 / (1/10) = 50; salsa: 1 / (0.05/10) = 200
        assert response.json() == [{"warehouse_id": warehouse, "quantity": 30}]

    def test_virtual_stock_ignores_inactive_recipe(self, client, api_burger):
        _create_warehouse(client)
        response = client.put(f"/recipes/{api_burger['sauce']}", json={
            "yield": 100,
            "is_active": False,
            "items": [{"ingredient_id": api_burger["tomato"], "quantity": 80}],
        })
        assert response.status_code == 200, response.text

        response = client.get(f"/recipes/{api_burger['sauce']}/virtual-stock")

        assert response.status_code == 400

    def test_tenant_isolation(self, client, api_burger):
        other = client.get(
            f"/recipes/{api_burger['burger']}",
            headers={"X-Company-ID": str(uuid4())}
        )
        assert other.status_code == 404


class TestRecipeServiceCycles:
    """Ciclos heredados en base de datos (no creables por la API)"""

    @pytest.fixture
    def legacy_cycle(self, db_session, tenant_id):
        first = Product(tenant_id=tenant_id, name="Fondo A", sku="FON-A",
                        product_type=ProductType.PREPARED, enable_recipe_consumption=True)
        second = Product(tenant_id=tenant_id, name="Fondo B", sku="FON-B",
                         product_type=ProductType.PREPARED, enable_recipe_consumption=True)
        db_session.add_all([first, second])
        db_session.flush()
        for output, ingredient in ((first, second), (second, first)):
            recipe = Recipe(tenant_id=tenant_id, product_id=output.id, yield_quantity=1)
            recipe.items.append(RecipeItem(tenant_id=tenant_id, ingredient_id=ingredient.id, quantity=1))
            db_session.add(recipe)
        db_session.commit()
        return first

    def test_strict_mode_maps_cycle_to_conflict(self, db_session, tenant_id, legacy_cycle):
        service = RecipeService(db_session, strict_cycles=True)

        with pytest.raises(HTTPException) as exc_info:
            service.resolve_all_ingredients(tenant_id, legacy_cycle.id, 1)

        assert exc_info.value.status_code == 409
        assert "Circular dependency detected: Fondo A" in exc_info.value.detail

    def test_default_mode_skips_cycle(self, db_session, tenant_id, legacy_cycle):
        assert RecipeService(db_session).resolve_all_ingredients(tenant_id, legacy_cycle.id, 1) == []
