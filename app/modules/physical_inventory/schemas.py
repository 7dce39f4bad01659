from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from app.modules.physical_inventory.models import PhysicalInventoryStatus


class PhysicalInventoryCreate(BaseModel):
    warehouse_id: UUID
    notes: Optional[str] = None


class PhysicalInventoryItemCount(BaseModel):
    counted_quantity: float = Field(..., ge=0, description="Cantidad contada en bodega")
    notes: Optional[str] = Field(None, max_length=255)


class PhysicalInventoryItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    variant_id: Optional[UUID] = None
    product_name: Optional[str] = None
    product_sku: Optional[str] = None
    system_quantity: float
    counted_quantity: Optional[float] = None
    difference: Optional[float] = None
    notes: Optional[str] = None


class PhysicalInventoryOut(BaseModel):
    id: UUID
    number: str
    warehouse_id: UUID
    warehouse_name: Optional[str] = None
    status: PhysicalInventoryStatus
    notes: Optional[str] = None
    created_by_id: str
    approved_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    items: List[PhysicalInventoryItemOut]


class PhysicalInventorySummary(BaseModel):
    id: UUID
    number: str
    warehouse_id: UUID
    warehouse_name: Optional[str] = None
    status: PhysicalInventoryStatus
    created_at: Optional[datetime] = None
    items_count: int
    has_differences: bool
    differences_count: int
    has_positive_differences: bool
    has_negative_differences: bool


class PhysicalInventoryList(BaseModel):
    items: List[PhysicalInventorySummary]
    total: int
    limit: int
    offset: int
