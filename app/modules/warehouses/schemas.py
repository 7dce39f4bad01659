from pydantic import BaseModel, Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime

class WarehouseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Name of the warehouse")
    address: Optional[str] = Field(None, max_length=255, description="Address of the warehouse")
    is_main: bool = Field(default=False, description="If this is the main warehouse")
    is_active: bool = Field(default=True, description="Indicates if the warehouse is active")

class WarehouseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, max_length=255)
    is_main: Optional[bool] = None
    is_active: Optional[bool] = None

class WarehouseOut(BaseModel):
    id: UUID = Field(..., description="Unique identifier of the warehouse")
    name: str
    address: Optional[str] = None
    is_main: bool = False
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class WarehouseList(BaseModel):
    warehouses: List[WarehouseOut]
    total: int
    limit: int
    offset: int
