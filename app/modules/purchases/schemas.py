"""
Esquemas Pydantic para compras

- Órdenes de compra con ítems
- Recepciones de mercancía (entradas a bodega con costo unitario)
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.modules.purchases.models import PurchaseOrderStatus


# ===== PURCHASE ORDER SCHEMAS =====

class PurchaseOrderItemCreate(BaseModel):
    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: float = Field(..., gt=0)
    unit_cost: float = Field(0, ge=0)


class PurchaseOrderCreate(BaseModel):
    supplier_name: Optional[str] = Field(None, max_length=150)
    warehouse_id: UUID
    status: PurchaseOrderStatus = PurchaseOrderStatus.DRAFT
    notes: Optional[str] = None
    items: List[PurchaseOrderItemCreate] = Field(..., min_length=1)


class PurchaseOrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    variant_id: Optional[UUID] = None
    quantity: float
    unit_cost: float


class PurchaseOrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    number: str
    supplier_name: Optional[str] = None
    warehouse_id: UUID
    status: PurchaseOrderStatus
    notes: Optional[str] = None
    items: List[PurchaseOrderItemOut]
    created_at: Optional[datetime] = None


class PurchaseOrderList(BaseModel):
    items: List[PurchaseOrderOut]
    total: int
    limit: int
    offset: int


# ===== GOODS RECEIPT SCHEMAS =====

class GoodsReceiptItemCreate(BaseModel):
    product_id: UUID
    variant_id: Optional[UUID] = None
    purchase_order_item_id: Optional[UUID] = None
    quantity: float = Field(..., gt=0, description="Cantidad recibida")
    unit_cost: float = Field(..., ge=0, description="Costo unitario de compra")


class GoodsReceiptCreate(BaseModel):
    purchase_order_id: Optional[UUID] = None
    warehouse_id: Optional[UUID] = Field(None, description="Por defecto, la bodega de la orden de compra")
    notes: Optional[str] = None
    items: List[GoodsReceiptItemCreate] = Field(..., min_length=1)


class GoodsReceiptItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    variant_id: Optional[UUID] = None
    purchase_order_item_id: Optional[UUID] = None
    quantity: float
    unit_cost: float
    line_total: float = 0


class GoodsReceiptOut(BaseModel):
    id: UUID
    number: str
    purchase_order_id: Optional[UUID] = None
    purchase_order_status: Optional[PurchaseOrderStatus] = None
    warehouse_id: UUID
    notes: Optional[str] = None
    created_by_id: str
    items: List[GoodsReceiptItemOut]
    total_quantity: float
    total_cost: float
    created_at: Optional[datetime] = None


class GoodsReceiptList(BaseModel):
    items: List[GoodsReceiptOut]
    total: int
    limit: int
    offset: int
