"""
Cálculo de costos y consumo de ingredientes para productos con receta.

El calculador trabaja sobre snapshots (`ProductNode`) entregados por un
loader; no toca la sesión de base de datos directamente, así que puede
usarse desde servicios, scripts o tests con datos en memoria.
"""

import logging
from typing import Callable, Dict, FrozenSet, List, Optional
from uuid import UUID

from app.modules.products.models import ProductType
from app.modules.recipes.schemas import (
    CostBreakdownItem,
    IngredientRequirement,
    ProductNode,
    RecipeCostResult,
)

logger = logging.getLogger(__name__)

ProductLoader = Callable[[UUID], Optional[ProductNode]]

PRODUCT_NOT_FOUND = "Product not found"
INVALID_YIELD = "Recipe yield must be greater than 0"


class RecipeError(Exception):
    """Error base del cálculo de recetas"""


class ProductNotFoundError(RecipeError):
    def __init__(self, product_id: UUID):
        self.product_id = product_id
        super().__init__(f"{PRODUCT_NOT_FOUND}: {product_id}")


class CircularDependencyError(RecipeError):
    def __init__(self, product_id: UUID, name: Optional[str] = None):
        self.product_id = product_id
        super().__init__(f"Circular dependency detected: {name or product_id}")


class InvalidRecipeError(RecipeError):
    pass


class RecipeCostCalculator:
    """Resuelve ingredientes y costos de recetas anidadas."""

    def __init__(self, load_product: ProductLoader, strict_cycles: bool = False):
        self.load_product = load_product
        self.strict_cycles = strict_cycles

    def resolve_all_ingredients(self, product_id: UUID, base_quantity: float) -> List[IngredientRequirement]:
        """
        Expande la receta de un producto hasta sus ingredientes hoja.

        Args:
            product_id: Producto a producir/vender
            base_quantity: Cantidad solicitada del producto

        Returns:
            Lista de ingredientes hoja con la cantidad total requerida,
            un único registro por ingrediente.

        Raises:
            ProductNotFoundError: si algún producto del árbol no existe
            InvalidRecipeError: si una receta tiene rendimiento <= 0
            CircularDependencyError: solo con `strict_cycles`
        """
        if base_quantity <= 0:
            raise ValueError("base_quantity must be greater than 0")

        totals: Dict[UUID, float] = {}
        # (producto, cantidad, nombre, ancestros en la rama actual)
        stack = [(product_id, float(base_quantity), None, frozenset())]

        while stack:
            current_id, current_qty, current_name, path = stack.pop()

            if current_id in path:
                if self.strict_cycles:
                    raise CircularDependencyError(current_id, current_name)
                logger.warning(f"[Recipes] Circular dependency detected for product {current_name or current_id}")
                continue

            product = self.load_product(current_id)
            if product is None:
                raise ProductNotFoundError(current_id)

            if not product.enable_recipe_consumption or product.recipe is None:
                _accumulate(totals, current_id, current_qty)
                continue

            recipe = product.recipe
            if recipe.yield_quantity <= 0:
                raise InvalidRecipeError(f"{INVALID_YIELD}: {product.name}")
            scale = current_qty / recipe.yield_quantity
            branch_path = path | {current_id}

            for item in recipe.items:
                if item.is_nested_recipe:
                    stack.append((item.ingredient_id, item.quantity * scale, item.ingredient_name, branch_path))
                else:
                    _accumulate(totals, item.ingredient_id, item.quantity * scale)

        return [
            IngredientRequirement(ingredient_id=ingredient_id, quantity=quantity)
            for ingredient_id, quantity in totals.items()
        ]

    def depends_on(self, product_id: UUID, target_id: UUID) -> bool:
        """True si `target_id` aparece en el árbol de recetas de `product_id` (o es él mismo)."""
        stack = [product_id]
        seen = set()
        while stack:
            current_id = stack.pop()
            if current_id == target_id:
                return True
            if current_id in seen:
                continue
            seen.add(current_id)
            product = self.load_product(current_id)
            if product is None or product.recipe is None:
                continue
            stack.extend(item.ingredient_id for item in product.recipe.items)
        return False

    def calculate_recipe_cost(self, product_id: UUID) -> RecipeCostResult:
        """Costo unitario de un producto según su receta. Nunca lanza excepciones."""
        try:
            return self._calculate(product_id, frozenset())
        except Exception as e:
            logger.error(f"Error calculating recipe cost for {product_id}: {e}")
            return RecipeCostResult(errors=[f"Error calculating recipe cost: {e}"])

    def _calculate(self, product_id: UUID, visited: FrozenSet[UUID]) -> RecipeCostResult:
        product = self.load_product(product_id)
        if product is None:
            return RecipeCostResult(errors=[PRODUCT_NOT_FOUND])

        if product_id in visited:
            return RecipeCostResult(errors=[f"Circular dependency detected: {product.name}"])

        if product.recipe is None or product.product_type != ProductType.PREPARED:
            return RecipeCostResult(
                calculated_cost=product.cost,
                has_missing_costs=product.cost is None,
            )

        recipe = product.recipe
        if recipe.yield_quantity <= 0:
            return RecipeCostResult(errors=[INVALID_YIELD])

        branch_visited = visited | {product_id}
        result = RecipeCostResult()
        total_ingredient_cost = 0.0

        for item in recipe.items:
            nested_errors: List[str] = []
            if item.is_nested_recipe:
                nested = self._calculate(item.ingredient_id, branch_visited)
                unit_cost = nested.calculated_cost
                nested_errors = nested.errors
                result.has_missing_costs = result.has_missing_costs or nested.has_missing_costs
            else:
                unit_cost = item.ingredient_cost

            for error in nested_errors:
                if error not in result.errors:
                    result.errors.append(error)

            if unit_cost is None:
                if not nested_errors:
                    result.has_missing_costs = True
                    result.errors.append(f"Missing cost for ingredient: {item.ingredient_name}")
                line_cost = 0.0
            else:
                line_cost = unit_cost * item.quantity
                total_ingredient_cost += line_cost

            result.breakdown.append(CostBreakdownItem(
                ingredient_id=item.ingredient_id,
                ingredient_name=item.ingredient_name,
                quantity=item.quantity,
                unit_cost=unit_cost,
                total_cost=line_cost,
                is_nested=item.is_nested_recipe,
            ))

        if not result.has_missing_costs and not result.errors:
            result.calculated_cost = total_ingredient_cost / recipe.yield_quantity

        return result


def _accumulate(totals: Dict[UUID, float], ingredient_id: UUID, quantity: float) -> None:
    totals[ingredient_id] = totals.get(ingredient_id, 0.0) + quantity
