from pydantic import BaseModel, ConfigDict, Field, field_validator
from uuid import UUID
from typing import List, Optional
from datetime import datetime

from app.modules.products.models import ProductType


# ===== SNAPSHOTS PARA EL CÁLCULO =====
# Vista inmutable de un producto y su receta, independiente del ORM.

class RecipeItemNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    ingredient_id: UUID
    ingredient_name: str
    ingredient_type: ProductType
    ingredient_cost: Optional[float] = None
    ingredient_enable_recipe_consumption: bool = False
    quantity: float

    @property
    def is_nested_recipe(self) -> bool:
        return (
            self.ingredient_type == ProductType.PREPARED
            and self.ingredient_enable_recipe_consumption
        )


class RecipeNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    yield_quantity: float
    items: List[RecipeItemNode] = Field(default_factory=list)


class ProductNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    product_type: ProductType
    cost: Optional[float] = None
    enable_recipe_consumption: bool = False
    recipe: Optional[RecipeNode] = None


# ===== RESULTADOS =====

class IngredientRequirement(BaseModel):
    ingredient_id: UUID
    quantity: float


class IngredientResolutionOut(BaseModel):
    product_id: UUID
    base_quantity: float
    ingredients: List[IngredientRequirement]


class CostBreakdownItem(BaseModel):
    ingredient_id: UUID
    ingredient_name: str
    quantity: float
    unit_cost: Optional[float] = None
    total_cost: float = 0
    is_nested: bool = False


class RecipeCostResult(BaseModel):
    calculated_cost: Optional[float] = None
    breakdown: List[CostBreakdownItem] = Field(default_factory=list)
    has_missing_costs: bool = False
    errors: List[str] = Field(default_factory=list)


class RecipeCostRefreshOut(RecipeCostResult):
    product_id: UUID
    previous_cost: Optional[float] = None
    updated: bool = False


class VirtualStockOut(BaseModel):
    warehouse_id: UUID
    quantity: int


# ===== ADMINISTRACIÓN DE RECETAS =====

class RecipeItemIn(BaseModel):
    ingredient_id: UUID
    quantity: float = Field(..., gt=0, description="Cantidad consumida por lote")


class RecipeUpsert(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    yield_quantity: float = Field(..., gt=0, alias="yield", description="Unidades producidas por lote")
    is_active: bool = True
    items: List[RecipeItemIn] = Field(default_factory=list)

    @field_validator("items")
    @classmethod
    def unique_ingredients(cls, items):
        ids = [item.ingredient_id for item in items]
        if len(ids) != len(set(ids)):
            raise ValueError("Un ingrediente no puede repetirse en la misma receta")
        return items


class RecipeItemOut(BaseModel):
    id: UUID
    ingredient_id: UUID
    ingredient_name: Optional[str] = None
    ingredient_type: Optional[ProductType] = None
    quantity: float

    model_config = ConfigDict(from_attributes=True)


class RecipeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    product_id: UUID
    yield_quantity: float = Field(..., serialization_alias="yield")
    is_active: bool
    items: List[RecipeItemOut]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
