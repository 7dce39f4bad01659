"""
Routers FastAPI para compras

- Órdenes de compra: creación, listado, consulta, anulación
- Recepciones de mercancía: entrada a bodega con costo promedio ponderado
"""

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.dependencies.companyDependencies import TenantId, UserId
from app.core.config import settings
from app.modules.purchases.models import PurchaseOrderStatus
from app.modules.purchases.service import PurchaseOrderService, GoodsReceiptService
from app.modules.purchases.schemas import (
    PurchaseOrderCreate, PurchaseOrderOut, PurchaseOrderList,
    GoodsReceiptCreate, GoodsReceiptOut, GoodsReceiptList
)

purchase_orders_router = APIRouter(prefix="/purchase-orders", tags=["Purchase Orders"])
goods_receipts_router = APIRouter(prefix="/goods-receipts", tags=["Goods Receipts"])


# ===== PURCHASE ORDERS ENDPOINTS =====

@purchase_orders_router.post("/", response_model=PurchaseOrderOut, status_code=status.HTTP_201_CREATED)
def create_purchase_order(
    data: PurchaseOrderCreate,
    tenant_id: TenantId,
    db: Session = Depends(get_db)
):
    return PurchaseOrderService(db).create_purchase_order(tenant_id, data)


@purchase_orders_router.get("/", response_model=PurchaseOrderList)
def list_purchase_orders(
    tenant_id: TenantId,
    status_filter: Optional[PurchaseOrderStatus] = Query(None, alias="status"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    return PurchaseOrderService(db).get_purchase_orders(tenant_id, limit, offset, status_filter)


@purchase_orders_router.get("/{po_id}", response_model=PurchaseOrderOut)
def get_purchase_order(po_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    return PurchaseOrderService(db).get_purchase_order_by_id(tenant_id, po_id)


@purchase_orders_router.post("/{po_id}/cancel", response_model=PurchaseOrderOut)
def cancel_purchase_order(po_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    """Anular una orden de compra sin recepciones."""
    return PurchaseOrderService(db).cancel_purchase_order(tenant_id, po_id)


# ===== GOODS RECEIPTS ENDPOINTS =====

@goods_receipts_router.post("/", response_model=GoodsReceiptOut, status_code=status.HTTP_201_CREATED)
def create_goods_receipt(
    data: GoodsReceiptCreate,
    tenant_id: TenantId,
    user_id: UserId,
    db: Session = Depends(get_db)
):
    """
    Registrar recepción de mercancía.

    Genera movimientos IN, actualiza el costo promedio ponderado de cada
    producto y suma las cantidades al stock de la bodega.
    """
    return GoodsReceiptService(db).create_receipt(tenant_id, data, user_id)


@goods_receipts_router.get("/", response_model=GoodsReceiptList)
def list_goods_receipts(
    tenant_id: TenantId,
    purchase_order_id: Optional[UUID] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    return GoodsReceiptService(db).get_receipts(tenant_id, purchase_order_id, limit, offset)


@goods_receipts_router.get("/{receipt_id}", response_model=GoodsReceiptOut)
def get_goods_receipt(receipt_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    return GoodsReceiptService(db).get_receipt_by_id(tenant_id, receipt_id)
