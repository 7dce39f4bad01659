from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from enum import Enum

from app.modules.recipes.schemas import IngredientRequirement

class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER = "TRANSFER"

# Stock schemas
class StockLevelOut(BaseModel):
    id: UUID
    warehouse_id: UUID
    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: float
    min_stock: float
    max_stock: Optional[float] = None
    product_name: Optional[str] = None
    product_sku: Optional[str] = None
    warehouse_name: Optional[str] = None
    is_low_stock: bool = False

    class Config:
        from_attributes = True

class StockLevelSettingsUpdate(BaseModel):
    warehouse_id: UUID
    product_id: UUID
    variant_id: Optional[UUID] = None
    min_stock: float = Field(0, ge=0, description="Cantidad mínima para alertas")
    max_stock: Optional[float] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_range(self):
        if self.max_stock is not None and self.max_stock < self.min_stock:
            raise ValueError("max_stock debe ser mayor o igual a min_stock")
        return self

class StockCheckItem(BaseModel):
    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: float = Field(1, gt=0)

class StockCheckRequest(BaseModel):
    warehouse_id: UUID
    items: List[StockCheckItem] = Field(..., min_length=1, max_length=50)

class StockCheckResult(BaseModel):
    product_id: UUID
    variant_id: Optional[UUID] = None
    required: float
    available: float
    sufficient: bool

class StockCheckResponse(BaseModel):
    warehouse_id: UUID
    items: List[StockCheckResult]

# Movement schemas
class StockMovementOut(BaseModel):
    id: UUID
    warehouse_id: UUID
    product_id: UUID
    variant_id: Optional[UUID] = None
    movement_type: str
    quantity: float
    reason: Optional[str] = None
    reference: Optional[str] = None
    created_by_id: str
    created_at: Optional[datetime] = None
    tenant_id: UUID

    # Joined data
    product_name: Optional[str] = None
    product_sku: Optional[str] = None
    warehouse_name: Optional[str] = None

    class Config:
        from_attributes = True

class AdjustmentCreate(BaseModel):
    warehouse_id: UUID
    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: float = Field(..., description="Cantidad (positiva entra, negativa sale)")
    reason: str = Field(..., min_length=1, max_length=255)
    reference: Optional[str] = Field(None, max_length=100)

    @model_validator(mode="after")
    def non_zero(self):
        if self.quantity == 0:
            raise ValueError("La cantidad del ajuste no puede ser cero")
        return self

class TransferCreate(BaseModel):
    product_id: UUID
    variant_id: Optional[UUID] = None
    from_warehouse_id: UUID
    to_warehouse_id: UUID
    quantity: float = Field(..., gt=0, description="Quantity to transfer")
    reason: Optional[str] = Field(None, max_length=255)
    reference: Optional[str] = Field(None, max_length=100)

class SaleConsumptionCreate(BaseModel):
    warehouse_id: UUID
    product_id: UUID
    quantity: float = Field(..., gt=0, description="Unidades vendidas")
    reference: Optional[str] = Field(None, max_length=100, description="Factura / ticket")

class SaleConsumptionOut(BaseModel):
    product_id: UUID
    quantity: float
    consumed: List[IngredientRequirement]
    movements: List[StockMovementOut]

# Reorder schemas
class ReorderSuggestionOut(BaseModel):
    stock_level_id: UUID
    warehouse_id: UUID
    warehouse_name: Optional[str] = None
    product_id: UUID
    product_name: Optional[str] = None
    product_sku: Optional[str] = None
    quantity: float
    min_stock: float
    max_stock: float
    target_stock: float = Field(..., description="max_stock si está configurado, si no min_stock")
    suggested_quantity: float
