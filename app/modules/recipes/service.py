import math
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import and_
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.modules.products.models import Product
from app.modules.recipes.models import Recipe, RecipeItem
from app.modules.inventory.models import StockLevel
from app.modules.warehouses.models import Warehouse
from app.modules.recipes.calculator import (
    RecipeCostCalculator,
    ProductNotFoundError,
    CircularDependencyError,
    InvalidRecipeError,
)
from app.modules.recipes.schemas import (
    ProductNode,
    RecipeNode,
    RecipeItemNode,
    IngredientRequirement,
    RecipeCostResult,
    RecipeCostRefreshOut,
    RecipeUpsert,
    RecipeOut,
    RecipeItemOut,
    VirtualStockOut,
)

logger = logging.getLogger(__name__)


class RecipeService:
    """Servicio para recetas, costos de producción y stock virtual"""

    def __init__(self, db: Session, strict_cycles: Optional[bool] = None):
        self.db = db
        self.strict_cycles = settings.RECIPE_STRICT_CYCLES if strict_cycles is None else strict_cycles

    # ===== CARGA DE DATOS =====

    def load_product_node(self, tenant_id: UUID, product_id: UUID) -> Optional[ProductNode]:
        """Producto + receta + ítems + ingrediente (y la receta del ingrediente)."""
        product = self.db.query(Product).options(
            selectinload(Product.recipe)
            .selectinload(Recipe.items)
            .selectinload(RecipeItem.ingredient)
            .selectinload(Product.recipe)
        ).filter(
            and_(Product.tenant_id == tenant_id, Product.id == product_id)
        ).first()

        if not product:
            return None

        recipe_node = None
        recipe = product.recipe
        if recipe is not None and recipe.is_active:
            recipe_node = RecipeNode(
                id=recipe.id,
                yield_quantity=recipe.yield_quantity,
                items=[
                    RecipeItemNode(
                        ingredient_id=item.ingredient_id,
                        ingredient_name=item.ingredient.name,
                        ingredient_type=item.ingredient.product_type,
                        ingredient_cost=item.ingredient.cost,
                        ingredient_enable_recipe_consumption=bool(item.ingredient.enable_recipe_consumption),
                        quantity=item.quantity,
                    )
                    for item in recipe.items
                ],
            )

        return ProductNode(
            id=product.id,
            name=product.name,
            product_type=product.product_type,
            cost=product.cost,
            enable_recipe_consumption=bool(product.enable_recipe_consumption),
            recipe=recipe_node,
        )

    def calculator(self, tenant_id: UUID, strict_cycles: Optional[bool] = None) -> RecipeCostCalculator:
        return RecipeCostCalculator(
            lambda product_id: self.load_product_node(tenant_id, product_id),
            strict_cycles=self.strict_cycles if strict_cycles is None else strict_cycles,
        )

    # ===== CÁLCULOS =====

    def resolve_all_ingredients(
        self,
        tenant_id: UUID,
        product_id: UUID,
        base_quantity: float
    ) -> List[IngredientRequirement]:
        """Ingredientes hoja y cantidades totales para producir `base_quantity`."""
        try:
            return self.calculator(tenant_id).resolve_all_ingredients(product_id, base_quantity)
        except ProductNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        except CircularDependencyError as e:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
        except (InvalidRecipeError, ValueError) as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    def calculate_recipe_cost(self, tenant_id: UUID, product_id: UUID) -> RecipeCostResult:
        return self.calculator(tenant_id).calculate_recipe_cost(product_id)

    def refresh_product_cost(self, tenant_id: UUID, product_id: UUID) -> RecipeCostRefreshOut:
        """Guarda el costo calculado por receta en Product.cost cuando se pudo calcular."""
        product = self._require_product(tenant_id, product_id)
        previous_cost = product.cost
        result = self.calculate_recipe_cost(tenant_id, product_id)

        updated = False
        if result.calculated_cost is not None and result.calculated_cost != previous_cost:
            product.cost = result.calculated_cost
            self.db.commit()
            updated = True
            logger.info(f"Costo de '{product.name}' actualizado por receta: {previous_cost} -> {result.calculated_cost}")
        elif result.errors:
            logger.warning(f"No se pudo recalcular el costo de '{product.name}': {result.errors}")

        return RecipeCostRefreshOut(
            **result.model_dump(),
            product_id=product_id,
            previous_cost=previous_cost,
            updated=updated,
        )

    def get_virtual_stock(self, tenant_id: UUID, product_id: UUID) -> List[VirtualStockOut]:
        """
        Unidades producibles por bodega activa según las existencias de los
        ingredientes directos de la receta.
        """
        product = self._require_product(tenant_id, product_id)
        recipe = product.recipe
        if recipe is None or not recipe.is_active or not product.enable_recipe_consumption:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"El producto '{product.name}' no tiene receta con consumo habilitado"
            )

        warehouses = self.db.query(Warehouse).filter(
            and_(Warehouse.tenant_id == tenant_id, Warehouse.is_active == True)
        ).order_by(Warehouse.name.asc()).all()

        ingredient_ids = [item.ingredient_id for item in recipe.items]
        levels = self.db.query(StockLevel).filter(
            and_(
                StockLevel.tenant_id == tenant_id,
                StockLevel.product_id.in_(ingredient_ids),
                StockLevel.variant_id.is_(None)
            )
        ).all() if ingredient_ids else []
        stock_by_key = {(level.warehouse_id, level.product_id): level.quantity for level in levels}

        results = []
        for warehouse in warehouses:
            producible = []
            for item in recipe.items:
                if item.quantity <= 0 or recipe.yield_quantity <= 0:
                    producible.append(0)
                    continue
                # available / (quantity / yield)
                available = stock_by_key.get((warehouse.id, item.ingredient_id), 0)
                producible.append(max(0, math.floor(available * recipe.yield_quantity / item.quantity)))
            results.append(VirtualStockOut(
                warehouse_id=warehouse.id,
                quantity=min(producible) if producible else 0
            ))
        return results

    # ===== ADMINISTRACIÓN =====

    def get_recipe(self, tenant_id: UUID, product_id: UUID) -> RecipeOut:
        recipe = self.db.query(Recipe).options(
            selectinload(Recipe.items).selectinload(RecipeItem.ingredient)
        ).filter(
            and_(Recipe.tenant_id == tenant_id, Recipe.product_id == product_id)
        ).first()
        if not recipe:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receta no encontrada")
        return self._recipe_to_output(recipe)

    def upsert_recipe(self, tenant_id: UUID, product_id: UUID, data: RecipeUpsert) -> RecipeOut:
        """Crea o reemplaza la receta de un producto (ítems incluidos) en una sola transacción."""
        try:
            product = self._require_product(tenant_id, product_id)
            if not product.can_own_recipe:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Solo productos PREPARED con consumo por receta habilitado pueden tener receta"
                )

            for item in data.items:
                if item.ingredient_id == product_id:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail="Un producto no puede ser ingrediente de su propia receta"
                    )
                ingredient = self.db.query(Product).filter(
                    and_(Product.tenant_id == tenant_id, Product.id == item.ingredient_id)
                ).first()
                if not ingredient:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Ingrediente {item.ingredient_id} no existe o no pertenece a esta empresa"
                    )

            recipe = product.recipe
            if recipe is None:
                recipe = Recipe(tenant_id=tenant_id, product_id=product_id)
                self.db.add(recipe)
            recipe.yield_quantity = data.yield_quantity
            recipe.is_active = data.is_active
            self.db.flush()

            self.db.query(RecipeItem).filter(RecipeItem.recipe_id == recipe.id).delete(synchronize_session=False)
            for item in data.items:
                self.db.add(RecipeItem(
                    tenant_id=tenant_id,
                    recipe_id=recipe.id,
                    ingredient_id=item.ingredient_id,
                    quantity=item.quantity,
                ))
            self.db.flush()
            self.db.expire_all()

            calculator = self.calculator(tenant_id)
            for item in data.items:
                if calculator.depends_on(item.ingredient_id, product_id):
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Circular dependency detected: {product.name}"
                    )

            self.db.commit()
            logger.info(f"Receta guardada para '{product.name}' ({len(data.items)} ítems, rendimiento {data.yield_quantity})")
            return self.get_recipe(tenant_id, product_id)
        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error guardando receta: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error guardando receta: {str(e)}"
            )

    def delete_recipe(self, tenant_id: UUID, product_id: UUID) -> None:
        recipe = self.db.query(Recipe).filter(
            and_(Recipe.tenant_id == tenant_id, Recipe.product_id == product_id)
        ).first()
        if not recipe:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receta no encontrada")
        self.db.delete(recipe)
        self.db.commit()

    # ===== HELPERS =====

    def _require_product(self, tenant_id: UUID, product_id: UUID) -> Product:
        product = self.db.query(Product).filter(
            and_(Product.tenant_id == tenant_id, Product.id == product_id)
        ).first()
        if not product:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Producto no encontrado")
        return product

    def _recipe_to_output(self, recipe: Recipe) -> RecipeOut:
        return RecipeOut(
            id=recipe.id,
            product_id=recipe.product_id,
            yield_quantity=recipe.yield_quantity,
            is_active=bool(recipe.is_active),
            items=[
                RecipeItemOut(
                    id=item.id,
                    ingredient_id=item.ingredient_id,
                    ingredient_name=item.ingredient.name if item.ingredient else None,
                    ingredient_type=item.ingredient.product_type if item.ingredient else None,
                    quantity=item.quantity,
                )
                for item in recipe.items
            ],
            created_at=recipe.created_at,
            updated_at=recipe.updated_at,
        )
