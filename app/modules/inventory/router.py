from fastapi import APIRouter, Depends, status, Query
from typing import List, Optional
from uuid import UUID
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.dependencies.companyDependencies import TenantId, UserId
from app.core.config import settings
from app.modules.inventory.service import InventoryService
from app.modules.inventory.schemas import (
    StockLevelOut, StockLevelSettingsUpdate, StockCheckRequest, StockCheckResponse,
    StockMovementOut, AdjustmentCreate, TransferCreate,
    SaleConsumptionCreate, SaleConsumptionOut, MovementType, ReorderSuggestionOut
)

stock_router = APIRouter(prefix="/stock", tags=["Stock Management"])
movements_router = APIRouter(prefix="/movements", tags=["Inventory Movements"])


@stock_router.get("/", response_model=List[StockLevelOut])
def list_stock_levels(
    tenant_id: TenantId,
    warehouse_id: Optional[UUID] = Query(None),
    product_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db)
):
    """Existencias por bodega/producto."""
    return InventoryService(db).get_stock_levels(tenant_id, warehouse_id, product_id)


@stock_router.get("/low-stock", response_model=List[StockLevelOut])
def list_low_stock(
    tenant_id: TenantId,
    warehouse_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db)
):
    """Productos en o por debajo de su stock mínimo."""
    return InventoryService(db).get_stock_levels(tenant_id, warehouse_id, low_stock_only=True)


@stock_router.get("/reorder-suggestions", response_model=List[ReorderSuggestionOut])
def list_reorder_suggestions(
    tenant_id: TenantId,
    warehouse_id: Optional[UUID] = Query(None),
    q: Optional[str] = Query(None, description="Buscar por producto, SKU o bodega"),
    db: Session = Depends(get_db)
):
    """Cantidades sugeridas para volver al stock objetivo (máximo o mínimo)."""
    return InventoryService(db).get_reorder_suggestions(tenant_id, warehouse_id, q)


@stock_router.put("/settings", response_model=StockLevelOut)
def update_stock_settings(
    data: StockLevelSettingsUpdate,
    tenant_id: TenantId,
    db: Session = Depends(get_db)
):
    return InventoryService(db).update_stock_settings(tenant_id, data)


@stock_router.post("/check", response_model=StockCheckResponse)
def check_stock(
    data: StockCheckRequest,
    tenant_id: TenantId,
    db: Session = Depends(get_db)
):
    """Verificar disponibilidad de varios productos en una bodega."""
    return InventoryService(db).check_stock_bulk(tenant_id, data)


@movements_router.get("/", response_model=List[StockMovementOut])
def list_movements(
    tenant_id: TenantId,
    product_id: Optional[UUID] = Query(None),
    warehouse_id: Optional[UUID] = Query(None),
    movement_type: Optional[MovementType] = Query(None),
    reference: Optional[str] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    return InventoryService(db).get_movements(
        tenant_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
        movement_type=movement_type,
        reference=reference,
        limit=limit,
        offset=offset
    )


@movements_router.post("/adjustment", response_model=StockMovementOut, status_code=status.HTTP_201_CREATED)
def create_adjustment(
    data: AdjustmentCreate,
    tenant_id: TenantId,
    user_id: UserId,
    db: Session = Depends(get_db)
):
    """Ajuste manual de inventario (positivo entra, negativo sale)."""
    return InventoryService(db).create_adjustment(tenant_id, data, user_id)


@movements_router.post("/transfer", response_model=List[StockMovementOut], status_code=status.HTTP_201_CREATED)
def transfer_stock(
    data: TransferCreate,
    tenant_id: TenantId,
    user_id: UserId,
    db: Session = Depends(get_db)
):
    """Transfer stock between warehouses (creates OUT and IN legs)."""
    return InventoryService(db).transfer_stock(tenant_id, data, user_id)


@movements_router.post("/sale-consumption", response_model=SaleConsumptionOut, status_code=status.HTTP_201_CREATED)
def consume_for_sale(
    data: SaleConsumptionCreate,
    tenant_id: TenantId,
    user_id: UserId,
    db: Session = Depends(get_db)
):
    """
    Descontar inventario por una venta.

    Productos con receta descuentan sus ingredientes hoja; el resto se
    descuenta a sí mismo.
    """
    return InventoryService(db).consume_for_sale(tenant_id, data, user_id)
