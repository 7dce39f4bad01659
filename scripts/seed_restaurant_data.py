"""
Seed script: Populate a demo restaurant tenant with recipes and stock.

What it creates:
- Warehouses (2): Cocina and Bodega Principal.
- Raw ingredients with initial cost.
- A nested preparation (Salsa de la Casa) used by other recipes.
- Menu items (PREPARED) with recipes: hamburguesa, perro caliente, papas.
- Drinks (RETAIL) without recipe.
- A purchase order + goods receipt that loads initial stock (movimientos IN
  y costo promedio ponderado).
- Recipe costs refreshed into Product.cost.

Run inside the API container to use 'postgres' host and project PYTHONPATH:
    docker compose exec api python scripts/seed_restaurant_data.py \
        --tenant-id 5b1f1c1e-0000-4000-8000-000000000001

Note: This is intended for development environments only.
"""

# Add project root (/code) to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
from uuid import UUID, uuid4

from app.database.database import SessionLocal, Base, engine
from app.modules.products.models import Product, ProductType
from app.modules.warehouses.models import Warehouse
import app.modules.recipes.models  # noqa: F401
import app.modules.inventory.models  # noqa: F401
from app.modules.recipes.service import RecipeService
from app.modules.recipes.schemas import RecipeUpsert, RecipeItemIn
from app.modules.purchases.models import PurchaseOrderStatus
from app.modules.purchases.service import PurchaseOrderService, GoodsReceiptService
from app.modules.purchases.schemas import (
    PurchaseOrderCreate, PurchaseOrderItemCreate, GoodsReceiptCreate, GoodsReceiptItemCreate
)


INGREDIENTS = [
    # (nombre, sku, costo, cantidad inicial)
    ("Carne de Res Molida", "ING-CARNE", 15000, 20),
    ("Pechuga de Pollo", "ING-POLLO", 12000, 15),
    ("Pan Hamburguesa", "ING-PANHAM", 800, 200),
    ("Pan Perro Caliente", "ING-PANPER", 700, 150),
    ("Salchicha Americana", "ING-SALCH", 1500, 150),
    ("Queso Cheddar", "ING-QUESO", 40000, 5),
    ("Papa Criolla", "ING-PAPA", 3000, 50),
    ("Aceite Vegetal", "ING-ACEITE", 8000, 10),
    ("Salsa Tomate", "ING-TOMATE", 10000, 8),
    ("Mayonesa", "ING-MAYO", 12000, 8),
]

# Preparación intermedia: rinde 1 kg
HOUSE_SAUCE = ("Salsa de la Casa", "PRE-SALSA", 1, [("Salsa Tomate", 0.6), ("Mayonesa", 0.4)])

MENU = [
    # (nombre, sku, precio, rendimiento, ítems)
    ("Hamburguesa Clásica", "MENU-HAM", 25000, 1, [
        ("Carne de Res Molida", 0.150),
        ("Pan Hamburguesa", 1),
        ("Queso Cheddar", 0.020),
        ("Salsa de la Casa", 0.020),
    ]),
    ("Perro Caliente Especial", "MENU-PERRO", 18000, 1, [
        ("Salchicha Americana", 1),
        ("Pan Perro Caliente", 1),
        ("Queso Cheddar", 0.015),
        ("Papa Criolla", 0.020),
        ("Salsa de la Casa", 0.015),
    ]),
    ("Papas a la Francesa", "MENU-PAPAS", 8000, 1, [
        ("Papa Criolla", 0.200),
        ("Aceite Vegetal", 0.010),
    ]),
]

DRINKS = [
    ("Gaseosa 400ml", "BEB-GAS", 4000, 1800, 48),
    ("Agua 600ml", "BEB-AGUA", 3000, 1000, 48),
]


def get_or_create_warehouse(db, tenant_id, name, is_main=False):
    warehouse = db.query(Warehouse).filter(Warehouse.tenant_id == tenant_id, Warehouse.name == name).first()
    if warehouse:
        return warehouse
    warehouse = Warehouse(tenant_id=tenant_id, name=name, is_main=is_main, is_active=True)
    db.add(warehouse)
    db.commit()
    db.refresh(warehouse)
    return warehouse


def get_or_create_product(db, tenant_id, name, sku, product_type, price=0, cost=None, recipe=False):
    product = db.query(Product).filter(Product.tenant_id == tenant_id, Product.sku == sku).first()
    if product:
        return product
    product = Product(
        tenant_id=tenant_id,
        name=name,
        sku=sku,
        product_type=product_type,
        price_sale=price,
        cost=cost,
        enable_recipe_consumption=recipe,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def create_recipe(db, tenant_id, product, yield_quantity, items, product_map):
    data = RecipeUpsert(
        yield_quantity=yield_quantity,
        items=[RecipeItemIn(ingredient_id=product_map[name].id, quantity=qty) for name, qty in items],
    )
    RecipeService(db).upsert_recipe(tenant_id, product.id, data)


def load_initial_stock(db, tenant_id, warehouse, lines):
    """Orden de compra + recepción completa: stock inicial con costo."""
    order = PurchaseOrderService(db).create_purchase_order(tenant_id, PurchaseOrderCreate(
        supplier_name="Distribuidora Demo",
        warehouse_id=warehouse.id,
        status=PurchaseOrderStatus.SENT,
        items=[PurchaseOrderItemCreate(product_id=p.id, quantity=qty, unit_cost=cost) for p, qty, cost in lines],
    ))
    receipt = GoodsReceiptService(db).create_receipt(tenant_id, GoodsReceiptCreate(
        purchase_order_id=order.id,
        notes="Inventario inicial (seed)",
        items=[
            GoodsReceiptItemCreate(
                product_id=item.product_id,
                purchase_order_item_id=item.id,
                quantity=item.quantity,
                unit_cost=item.unit_cost,
            )
            for item in order.items
        ],
    ))
    return order, receipt


def main():
    parser = argparse.ArgumentParser(description="Seed restaurant demo data")
    parser.add_argument("--tenant-id", type=UUID, default=None, help="Empresa destino (por defecto, una nueva)")
    parser.add_argument("--create-tables", action="store_true", help="Crear tablas antes de sembrar")
    args = parser.parse_args()

    tenant_id = args.tenant_id or uuid4()
    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        print("Creating warehouses...")
        main_warehouse = get_or_create_warehouse(db, tenant_id, "Bodega Principal", is_main=True)
        get_or_create_warehouse(db, tenant_id, "Cocina")

        print("Creating ingredients...")
        product_map = {}
        for name, sku, _, _ in INGREDIENTS:
            product_map[name] = get_or_create_product(db, tenant_id, name, sku, ProductType.RAW)

        print("Creating house sauce + menu recipes...")
        sauce_name, sauce_sku, sauce_yield, sauce_items = HOUSE_SAUCE
        sauce = get_or_create_product(db, tenant_id, sauce_name, sauce_sku, ProductType.PREPARED, recipe=True)
        product_map[sauce_name] = sauce
        create_recipe(db, tenant_id, sauce, sauce_yield, sauce_items, product_map)

        menu_products = []
        for name, sku, price, yield_quantity, items in MENU:
            product = get_or_create_product(db, tenant_id, name, sku, ProductType.PREPARED, price=price, recipe=True)
            create_recipe(db, tenant_id, product, yield_quantity, items, product_map)
            menu_products.append(product)

        print("Creating drinks...")
        drinks = [
            (get_or_create_product(db, tenant_id, name, sku, ProductType.RETAIL, price=price), qty, cost)
            for name, sku, price, cost, qty in DRINKS
        ]

        print("Receiving initial stock...")
        lines = [(product_map[name], qty, cost) for name, _, cost, qty in INGREDIENTS] + drinks
        order, receipt = load_initial_stock(db, tenant_id, main_warehouse, lines)
        print(f"  {order.number} -> {receipt.number} ({len(receipt.items)} líneas, total {receipt.total_cost:,.0f})")

        print("Refreshing recipe costs...")
        recipes = RecipeService(db)
        for product in [sauce] + menu_products:
            result = recipes.refresh_product_cost(tenant_id, product.id)
            print(f"  {product.name}: {result.calculated_cost} {result.errors or ''}")

        print("\nSeed completed.")
        print("Headers for API requests:")
        print(f"  X-Company-ID: {tenant_id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
