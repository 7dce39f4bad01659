from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from typing import Optional, List
from datetime import datetime

from app.modules.products.models import ProductType


# Schema base para paginación estándar
class PaginatedResponse(BaseModel):
    """Respuesta paginada estándar para todas las listas"""
    total: int
    page: int
    limit: int
    hasNext: bool
    hasPrev: bool


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    sku: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=255)
    bar_code: Optional[str] = Field(None, max_length=50)
    product_type: ProductType = ProductType.RETAIL
    price_sale: float = Field(0, ge=0)
    cost: Optional[float] = Field(None, ge=0, description="Costo unitario; vacío si aún no se conoce")
    enable_recipe_consumption: bool = False
    sell_in_negative: bool = False


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=255)
    bar_code: Optional[str] = Field(None, max_length=50)
    product_type: Optional[ProductType] = None
    price_sale: Optional[float] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    enable_recipe_consumption: Optional[bool] = None
    sell_in_negative: Optional[bool] = None
    is_active: Optional[bool] = None


class ProductOut(BaseModel):
    id: UUID
    name: str
    sku: str
    description: Optional[str] = None
    bar_code: Optional[str] = None
    product_type: ProductType
    price_sale: float
    cost: Optional[float] = None
    enable_recipe_consumption: bool
    sell_in_negative: bool
    is_active: bool
    has_recipe: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PaginatedProductResponse(PaginatedResponse):
    data: List[ProductOut]
