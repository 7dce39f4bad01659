from fastapi import APIRouter, Depends, Query, status
from typing import List
from uuid import UUID
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.dependencies.companyDependencies import TenantId
from app.modules.recipes.service import RecipeService
from app.modules.recipes.schemas import (
    RecipeUpsert,
    RecipeOut,
    RecipeCostResult,
    RecipeCostRefreshOut,
    IngredientResolutionOut,
    VirtualStockOut,
)

recipes_router = APIRouter(prefix="/recipes", tags=["Recipes"])


@recipes_router.get("/{product_id}", response_model=RecipeOut)
def get_recipe(product_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    return RecipeService(db).get_recipe(tenant_id, product_id)


@recipes_router.put("/{product_id}", response_model=RecipeOut)
def upsert_recipe(
    product_id: UUID,
    data: RecipeUpsert,
    tenant_id: TenantId,
    db: Session = Depends(get_db),
):
    """
    Crear o reemplazar la receta de un producto preparado.

    Los ítems enviados reemplazan por completo a los existentes.
    """
    return RecipeService(db).upsert_recipe(tenant_id, product_id, data)


@recipes_router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recipe(product_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    RecipeService(db).delete_recipe(tenant_id, product_id)


@recipes_router.get("/{product_id}/cost", response_model=RecipeCostResult)
def get_recipe_cost(product_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    """Costo unitario calculado con desglose por ingrediente. Los errores van en el cuerpo."""
    return RecipeService(db).calculate_recipe_cost(tenant_id, product_id)


@recipes_router.post("/{product_id}/refresh-cost", response_model=RecipeCostRefreshOut)
def refresh_recipe_cost(product_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    return RecipeService(db).refresh_product_cost(tenant_id, product_id)


@recipes_router.get("/{product_id}/ingredients", response_model=IngredientResolutionOut)
def resolve_ingredients(
    product_id: UUID,
    tenant_id: TenantId,
    quantity: float = Query(1, gt=0, description="Cantidad del producto a producir"),
    db: Session = Depends(get_db),
):
    ingredients = RecipeService(db).resolve_all_ingredients(tenant_id, product_id, quantity)
    return IngredientResolutionOut(product_id=product_id, base_quantity=quantity, ingredients=ingredients)


@recipes_router.get("/{product_id}/virtual-stock", response_model=List[VirtualStockOut])
def get_virtual_stock(product_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    return RecipeService(db).get_virtual_stock(tenant_id, product_id)
