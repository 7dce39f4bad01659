from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.dependencies.companyDependencies import TenantId, UserId
from app.core.config import settings
from app.modules.physical_inventory.models import PhysicalInventoryStatus
from app.modules.physical_inventory.service import PhysicalInventoryService
from app.modules.physical_inventory.schemas import (
    PhysicalInventoryCreate, PhysicalInventoryItemCount, PhysicalInventoryOut, PhysicalInventoryList
)

physical_inventory_router = APIRouter(prefix="/physical-inventories", tags=["Physical Inventory"])


@physical_inventory_router.post("/", response_model=PhysicalInventoryOut, status_code=status.HTTP_201_CREATED)
def create_physical_inventory(
    data: PhysicalInventoryCreate,
    tenant_id: TenantId,
    user_id: UserId,
    db: Session = Depends(get_db)
):
    """Iniciar un conteo físico con la foto actual del stock de la bodega."""
    return PhysicalInventoryService(db).create_physical_inventory(tenant_id, data, user_id)


@physical_inventory_router.get("/", response_model=PhysicalInventoryList)
def list_physical_inventories(
    tenant_id: TenantId,
    warehouse_id: Optional[UUID] = Query(None),
    status_filter: Optional[PhysicalInventoryStatus] = Query(None, alias="status"),
    q: Optional[str] = Query(None, description="Buscar por número o notas"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    return PhysicalInventoryService(db).get_physical_inventories(
        tenant_id, warehouse_id, status_filter, q, limit, offset
    )


@physical_inventory_router.get("/{physical_inventory_id}", response_model=PhysicalInventoryOut)
def get_physical_inventory(physical_inventory_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    return PhysicalInventoryService(db).get_physical_inventory_by_id(tenant_id, physical_inventory_id)


@physical_inventory_router.put("/{physical_inventory_id}/items/{item_id}", response_model=PhysicalInventoryOut)
def count_item(
    physical_inventory_id: UUID,
    item_id: UUID,
    data: PhysicalInventoryItemCount,
    tenant_id: TenantId,
    db: Session = Depends(get_db)
):
    return PhysicalInventoryService(db).count_item(tenant_id, physical_inventory_id, item_id, data)


@physical_inventory_router.post("/{physical_inventory_id}/complete", response_model=PhysicalInventoryOut)
def complete_physical_inventory(physical_inventory_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    return PhysicalInventoryService(db).complete_physical_inventory(tenant_id, physical_inventory_id)


@physical_inventory_router.post("/{physical_inventory_id}/approve", response_model=PhysicalInventoryOut)
def approve_physical_inventory(
    physical_inventory_id: UUID,
    tenant_id: TenantId,
    user_id: UserId,
    db: Session = Depends(get_db)
):
    """Aplicar las diferencias del conteo como ajustes de inventario."""
    return PhysicalInventoryService(db).approve_physical_inventory(tenant_id, physical_inventory_id, user_id)


@physical_inventory_router.post("/{physical_inventory_id}/cancel", response_model=PhysicalInventoryOut)
def cancel_physical_inventory(physical_inventory_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    return PhysicalInventoryService(db).cancel_physical_inventory(tenant_id, physical_inventory_id)
