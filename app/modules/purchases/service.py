"""
Servicios de compras: órdenes de compra y recepción de mercancía.

La recepción es el punto donde entra inventario con costo: por cada línea
se registra un movimiento IN, se recalcula el costo promedio ponderado del
producto y luego se incrementa el stock de la bodega. Todo en una sola
transacción.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import and_, func
from sqlalchemy.orm import Session, selectinload

from app.common.numbering import next_document_number
from app.modules.products.service import require_product
from app.modules.warehouses.service import require_active_warehouse
from app.modules.inventory.service import InventoryService
from app.modules.inventory.schemas import MovementType
from app.modules.purchases.models import (
    PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus, GoodsReceipt, GoodsReceiptItem
)
from app.modules.purchases.schemas import (
    PurchaseOrderCreate, PurchaseOrderOut, PurchaseOrderList,
    GoodsReceiptCreate, GoodsReceiptOut, GoodsReceiptItemOut, GoodsReceiptList
)

logger = logging.getLogger(__name__)


class PurchaseOrderService:
    """Servicio para gestión de órdenes de compra"""

    def __init__(self, db: Session):
        self.db = db

    def create_purchase_order(self, tenant_id: UUID, data: PurchaseOrderCreate) -> PurchaseOrderOut:
        """Crear nueva orden de compra"""
        try:
            require_active_warehouse(data.warehouse_id, self.db, tenant_id)

            purchase_order = PurchaseOrder(
                tenant_id=tenant_id,
                number=next_document_number(self.db, PurchaseOrder, tenant_id, "PO"),
                supplier_name=data.supplier_name,
                warehouse_id=data.warehouse_id,
                status=data.status,
                notes=data.notes
            )
            self.db.add(purchase_order)
            self.db.flush()

            for item_data in data.items:
                require_product(self.db, tenant_id, item_data.product_id)
                self.db.add(PurchaseOrderItem(
                    tenant_id=tenant_id,
                    purchase_order_id=purchase_order.id,
                    product_id=item_data.product_id,
                    variant_id=item_data.variant_id,
                    quantity=item_data.quantity,
                    unit_cost=item_data.unit_cost
                ))

            self.db.commit()
            self.db.refresh(purchase_order)
            logger.info(f"Orden de compra {purchase_order.number} creada ({len(data.items)} ítems)")
            return PurchaseOrderOut.model_validate(purchase_order)

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creando orden de compra: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creando orden de compra: {str(e)}"
            )

    def get_purchase_orders(
        self,
        tenant_id: UUID,
        limit: int = 50,
        offset: int = 0,
        status_filter: Optional[PurchaseOrderStatus] = None
    ) -> PurchaseOrderList:
        query = self.db.query(PurchaseOrder).options(
            selectinload(PurchaseOrder.items)
        ).filter(PurchaseOrder.tenant_id == tenant_id)
        if status_filter:
            query = query.filter(PurchaseOrder.status == status_filter)

        total = query.count()
        orders = query.order_by(PurchaseOrder.number.desc()).offset(offset).limit(limit).all()
        return PurchaseOrderList(
            items=[PurchaseOrderOut.model_validate(order) for order in orders],
            total=total,
            limit=limit,
            offset=offset
        )

    def require_purchase_order(self, tenant_id: UUID, po_id: UUID) -> PurchaseOrder:
        po = self.db.query(PurchaseOrder).options(
            selectinload(PurchaseOrder.items)
        ).filter(
            and_(PurchaseOrder.id == po_id, PurchaseOrder.tenant_id == tenant_id)
        ).first()
        if not po:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Orden de compra no encontrada"
            )
        return po

    def get_purchase_order_by_id(self, tenant_id: UUID, po_id: UUID) -> PurchaseOrderOut:
        return PurchaseOrderOut.model_validate(self.require_purchase_order(tenant_id, po_id))

    def cancel_purchase_order(self, tenant_id: UUID, po_id: UUID) -> PurchaseOrderOut:
        po = self.require_purchase_order(tenant_id, po_id)
        if po.status == PurchaseOrderStatus.RECEIVED or po.goods_receipts:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No se puede anular una orden de compra con recepciones"
            )
        po.status = PurchaseOrderStatus.CANCELLED
        self.db.commit()
        self.db.refresh(po)
        logger.info(f"Orden de compra {po.number} anulada")
        return PurchaseOrderOut.model_validate(po)


class GoodsReceiptService:
    """Recepción de mercancía con actualización de stock y costo promedio"""

    def __init__(self, db: Session):
        self.db = db
        self.inventory = InventoryService(db)

    def create_receipt(self, tenant_id: UUID, data: GoodsReceiptCreate, user_id: str = "SYSTEM") -> GoodsReceiptOut:
        """
        Registrar una recepción de mercancía.

        Por cada línea, en este orden:
            1. movimiento IN con la referencia de la recepción
            2. costo promedio ponderado (con el stock ANTES de la entrada)
            3. incremento del stock en la bodega

        Si la recepción referencia una orden de compra, la orden queda
        RECEIVED cuando lo recibido cubre lo pedido, o SENT si falta.
        Cualquier error revierte la recepción completa.
        """
        try:
            purchase_order = None
            if data.purchase_order_id:
                purchase_order = PurchaseOrderService(self.db).require_purchase_order(tenant_id, data.purchase_order_id)
                if purchase_order.status in (PurchaseOrderStatus.CANCELLED, PurchaseOrderStatus.RECEIVED):
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"La orden de compra {purchase_order.number} no admite recepciones (estado {purchase_order.status.value})"
                    )

            warehouse_id = data.warehouse_id or (purchase_order.warehouse_id if purchase_order else None)
            if warehouse_id is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Debe indicar la bodega de la recepción"
                )
            require_active_warehouse(warehouse_id, self.db, tenant_id)

            po_item_ids = {item.id for item in purchase_order.items} if purchase_order else set()

            receipt = GoodsReceipt(
                tenant_id=tenant_id,
                number=next_document_number(self.db, GoodsReceipt, tenant_id, "GR"),
                purchase_order_id=purchase_order.id if purchase_order else None,
                warehouse_id=warehouse_id,
                notes=data.notes,
                created_by_id=user_id
            )
            self.db.add(receipt)
            self.db.flush()

            reason = f"Recepción de compra - {receipt.number}"
            for line in data.items:
                product = require_product(self.db, tenant_id, line.product_id)
                if line.purchase_order_item_id and line.purchase_order_item_id not in po_item_ids:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"El ítem {line.purchase_order_item_id} no pertenece a la orden de compra"
                    )

                self.db.add(GoodsReceiptItem(
                    tenant_id=tenant_id,
                    goods_receipt_id=receipt.id,
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    purchase_order_item_id=line.purchase_order_item_id,
                    quantity=line.quantity,
                    unit_cost=line.unit_cost
                ))

                self.inventory.record_movement(
                    tenant_id, warehouse_id, line.product_id, line.quantity, MovementType.IN,
                    variant_id=line.variant_id,
                    reason=reason,
                    reference=receipt.number,
                    created_by_id=user_id
                )
                self.inventory.update_product_cost(tenant_id, line.product_id, line.quantity, line.unit_cost)
                self.inventory.update_stock_level(
                    tenant_id, warehouse_id, line.product_id, line.quantity,
                    variant_id=line.variant_id
                )
                logger.debug(f"[GR] {receipt.number}: {product.sku} +{line.quantity} @ {line.unit_cost}")

            if purchase_order:
                self._update_purchase_order_status(purchase_order)

            self.db.commit()
            logger.info(f"Recepción {receipt.number} registrada ({len(data.items)} líneas)")
            return self.get_receipt_by_id(tenant_id, receipt.id)

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error registrando recepción de mercancía: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error registrando recepción de mercancía: {str(e)}"
            )

    def _update_purchase_order_status(self, purchase_order: PurchaseOrder) -> None:
        self.db.flush()
        received = self.db.query(func.coalesce(func.sum(GoodsReceiptItem.quantity), 0.0)).join(
            GoodsReceipt, GoodsReceipt.id == GoodsReceiptItem.goods_receipt_id
        ).filter(GoodsReceipt.purchase_order_id == purchase_order.id).scalar() or 0
        ordered = sum(item.quantity for item in purchase_order.items)

        previous = purchase_order.status
        purchase_order.status = PurchaseOrderStatus.RECEIVED if received >= ordered else PurchaseOrderStatus.SENT
        if previous != purchase_order.status:
            logger.info(f"Orden de compra {purchase_order.number}: {previous.value} -> {purchase_order.status.value}")

    def get_receipt_by_id(self, tenant_id: UUID, receipt_id: UUID) -> GoodsReceiptOut:
        receipt = self.db.query(GoodsReceipt).options(
            selectinload(GoodsReceipt.items),
            selectinload(GoodsReceipt.purchase_order)
        ).filter(
            and_(GoodsReceipt.id == receipt_id, GoodsReceipt.tenant_id == tenant_id)
        ).first()
        if not receipt:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Recepción no encontrada"
            )
        return self._receipt_to_output(receipt)

    def get_receipts(
        self,
        tenant_id: UUID,
        purchase_order_id: Optional[UUID] = None,
        limit: int = 50,
        offset: int = 0
    ) -> GoodsReceiptList:
        query = self.db.query(GoodsReceipt).options(
            selectinload(GoodsReceipt.items),
            selectinload(GoodsReceipt.purchase_order)
        ).filter(GoodsReceipt.tenant_id == tenant_id)
        if purchase_order_id:
            query = query.filter(GoodsReceipt.purchase_order_id == purchase_order_id)

        total = query.count()
        receipts = query.order_by(GoodsReceipt.number.desc()).offset(offset).limit(limit).all()
        return GoodsReceiptList(
            items=[self._receipt_to_output(receipt) for receipt in receipts],
            total=total,
            limit=limit,
            offset=offset
        )

    def _receipt_to_output(self, receipt: GoodsReceipt) -> GoodsReceiptOut:
        items: List[GoodsReceiptItemOut] = [
            GoodsReceiptItemOut(
                id=item.id,
                product_id=item.product_id,
                variant_id=item.variant_id,
                purchase_order_item_id=item.purchase_order_item_id,
                quantity=item.quantity,
                unit_cost=item.unit_cost,
                line_total=item.quantity * item.unit_cost
            )
            for item in receipt.items
        ]
        return GoodsReceiptOut(
            id=receipt.id,
            number=receipt.number,
            purchase_order_id=receipt.purchase_order_id,
            purchase_order_status=receipt.purchase_order.status if receipt.purchase_order else None,
            warehouse_id=receipt.warehouse_id,
            notes=receipt.notes,
            created_by_id=receipt.created_by_id,
            items=items,
            total_quantity=sum(item.quantity for item in items),
            total_cost=sum(item.line_total for item in items),
            created_at=receipt.created_at
        )
