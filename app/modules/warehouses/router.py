from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from uuid import UUID

from app.database.database import get_db
from app.dependencies.companyDependencies import TenantId
from app.modules.warehouses import service
from app.modules.warehouses.schemas import WarehouseCreate, WarehouseUpdate, WarehouseOut, WarehouseList

warehouse_router = APIRouter(prefix="/warehouses", tags=["Warehouses"])

@warehouse_router.post("/", response_model=WarehouseOut, status_code=status.HTTP_201_CREATED)
def create_warehouse(
    warehouse: WarehouseCreate,
    tenant_id: TenantId,
    db: Session = Depends(get_db),
):
    """Crear nueva bodega."""
    return service.create_warehouse(warehouse, db, tenant_id)

@warehouse_router.get("/", response_model=WarehouseList)
def get_all_warehouses(
    tenant_id: TenantId,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return service.get_all_warehouses(db, tenant_id, limit, offset)

@warehouse_router.get("/{warehouse_id}", response_model=WarehouseOut)
def get_warehouse_by_id(warehouse_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    return service.get_warehouse_by_id(warehouse_id, db, tenant_id)

@warehouse_router.patch("/{warehouse_id}", response_model=WarehouseOut)
def update_warehouse(
    warehouse_id: UUID,
    warehouse_update: WarehouseUpdate,
    tenant_id: TenantId,
    db: Session = Depends(get_db),
):
    return service.update_warehouse(warehouse_id, warehouse_update, db, tenant_id)
