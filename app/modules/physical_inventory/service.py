"""
Servicio de inventario físico.

El conteo toma una foto del stock del sistema al crearse; los ítems se
cuentan uno a uno y al completar se fijan las diferencias. La aprobación
aplica cada diferencia como movimiento ADJUSTMENT en una sola transacción.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, selectinload

from app.common.numbering import next_document_number
from app.modules.warehouses.service import require_active_warehouse
from app.modules.inventory.models import StockLevel
from app.modules.inventory.schemas import MovementType
from app.modules.inventory.service import InventoryService
from app.modules.physical_inventory.models import (
    PhysicalInventory, PhysicalInventoryItem, PhysicalInventoryStatus
)
from app.modules.physical_inventory.schemas import (
    PhysicalInventoryCreate, PhysicalInventoryItemCount, PhysicalInventoryItemOut,
    PhysicalInventoryOut, PhysicalInventorySummary, PhysicalInventoryList
)

logger = logging.getLogger(__name__)

OPEN_STATUSES = (PhysicalInventoryStatus.PENDING, PhysicalInventoryStatus.COUNTING)


class PhysicalInventoryService:
    """Conteos físicos por bodega con aprobación de ajustes"""

    def __init__(self, db: Session):
        self.db = db
        self.inventory = InventoryService(db)

    def create_physical_inventory(self, tenant_id: UUID, data: PhysicalInventoryCreate, user_id: str) -> PhysicalInventoryOut:
        """Crear un conteo con los productos que tienen existencias en la bodega."""
        warehouse = require_active_warehouse(data.warehouse_id, self.db, tenant_id)

        try:
            levels = self.db.query(StockLevel).filter(
                and_(
                    StockLevel.tenant_id == tenant_id,
                    StockLevel.warehouse_id == warehouse.id,
                    StockLevel.quantity > 0
                )
            ).all()

            physical_inventory = PhysicalInventory(
                tenant_id=tenant_id,
                number=next_document_number(self.db, PhysicalInventory, tenant_id, "INV"),
                warehouse_id=warehouse.id,
                status=PhysicalInventoryStatus.PENDING,
                notes=data.notes,
                created_by_id=user_id
            )
            self.db.add(physical_inventory)
            self.db.flush()

            for level in levels:
                self.db.add(PhysicalInventoryItem(
                    tenant_id=tenant_id,
                    physical_inventory_id=physical_inventory.id,
                    product_id=level.product_id,
                    variant_id=level.variant_id,
                    system_quantity=level.quantity
                ))

            self.db.commit()
            logger.info(f"Inventario físico {physical_inventory.number} creado en '{warehouse.name}' ({len(levels)} ítems)")
            return self.get_physical_inventory_by_id(tenant_id, physical_inventory.id)
        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creando inventario físico: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error al crear inventario físico: {str(e)}"
            )

    def get_physical_inventories(
        self,
        tenant_id: UUID,
        warehouse_id: Optional[UUID] = None,
        status_filter: Optional[PhysicalInventoryStatus] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> PhysicalInventoryList:
        query = self.db.query(PhysicalInventory).options(
            selectinload(PhysicalInventory.items),
            selectinload(PhysicalInventory.warehouse)
        ).filter(PhysicalInventory.tenant_id == tenant_id)

        if warehouse_id:
            query = query.filter(PhysicalInventory.warehouse_id == warehouse_id)
        if status_filter:
            query = query.filter(PhysicalInventory.status == status_filter)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                PhysicalInventory.number.ilike(pattern),
                PhysicalInventory.notes.ilike(pattern)
            ))

        total = query.count()
        inventories = query.order_by(PhysicalInventory.number.desc()).offset(offset).limit(limit).all()
        return PhysicalInventoryList(
            items=[self._to_summary(inventory) for inventory in inventories],
            total=total,
            limit=limit,
            offset=offset
        )

    def get_physical_inventory_by_id(self, tenant_id: UUID, physical_inventory_id: UUID) -> PhysicalInventoryOut:
        return self._to_output(self._require(tenant_id, physical_inventory_id))

    def count_item(
        self,
        tenant_id: UUID,
        physical_inventory_id: UUID,
        item_id: UUID,
        data: PhysicalInventoryItemCount
    ) -> PhysicalInventoryOut:
        """Registrar la cantidad contada de un ítem. El primer conteo pasa el inventario a COUNTING."""
        physical_inventory = self._require(tenant_id, physical_inventory_id)
        self._require_status(physical_inventory, OPEN_STATUSES, "registrar conteos")

        item = next((i for i in physical_inventory.items if i.id == item_id), None)
        if item is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Ítem no encontrado en el inventario físico"
            )

        item.counted_quantity = data.counted_quantity
        item.difference = data.counted_quantity - item.system_quantity
        if data.notes is not None:
            item.notes = data.notes

        if physical_inventory.status == PhysicalInventoryStatus.PENDING:
            physical_inventory.status = PhysicalInventoryStatus.COUNTING
            physical_inventory.started_at = _now()

        self.db.commit()
        return self.get_physical_inventory_by_id(tenant_id, physical_inventory_id)

    def complete_physical_inventory(self, tenant_id: UUID, physical_inventory_id: UUID) -> PhysicalInventoryOut:
        """Cerrar el conteo. No modifica el stock: eso ocurre al aprobar."""
        physical_inventory = self._require(tenant_id, physical_inventory_id)
        self._require_status(physical_inventory, OPEN_STATUSES, "completar")

        for item in physical_inventory.items:
            if item.counted_quantity is not None:
                item.difference = item.counted_quantity - item.system_quantity

        physical_inventory.status = PhysicalInventoryStatus.COMPLETED
        physical_inventory.completed_at = _now()
        self.db.commit()
        logger.info(f"Inventario físico {physical_inventory.number} completado")
        return self.get_physical_inventory_by_id(tenant_id, physical_inventory_id)

    def approve_physical_inventory(self, tenant_id: UUID, physical_inventory_id: UUID, user_id: str) -> PhysicalInventoryOut:
        """
        Aprobar un conteo COMPLETED.

        Cada ítem contado con diferencia distinta de cero genera un
        movimiento ADJUSTMENT (positivo o negativo) y actualiza el stock.
        """
        physical_inventory = self._require(tenant_id, physical_inventory_id)
        self._require_status(physical_inventory, (PhysicalInventoryStatus.COMPLETED,), "aprobar")

        try:
            reason = f"Aprobación de inventario físico {physical_inventory.number}"
            adjusted = 0
            for item in physical_inventory.items:
                if not item.difference:
                    continue
                self.inventory.update_stock_level(
                    tenant_id, physical_inventory.warehouse_id, item.product_id, item.difference,
                    variant_id=item.variant_id,
                    movement_type=MovementType.ADJUSTMENT,
                    reason=reason,
                    reference=physical_inventory.number,
                    created_by_id=user_id
                )
                adjusted += 1

            physical_inventory.status = PhysicalInventoryStatus.APPROVED
            physical_inventory.approved_at = _now()
            physical_inventory.approved_by_id = user_id
            self.db.commit()
            logger.info(f"Inventario físico {physical_inventory.number} aprobado: {adjusted} ajustes aplicados")
            return self.get_physical_inventory_by_id(tenant_id, physical_inventory_id)
        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error aprobando inventario físico {physical_inventory_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error al aprobar inventario físico: {str(e)}"
            )

    def cancel_physical_inventory(self, tenant_id: UUID, physical_inventory_id: UUID) -> PhysicalInventoryOut:
        physical_inventory = self._require(tenant_id, physical_inventory_id)
        self._require_status(
            physical_inventory,
            OPEN_STATUSES + (PhysicalInventoryStatus.COMPLETED,),
            "anular"
        )
        physical_inventory.status = PhysicalInventoryStatus.CANCELLED
        self.db.commit()
        return self.get_physical_inventory_by_id(tenant_id, physical_inventory_id)

    # ===== HELPERS =====

    def _require(self, tenant_id: UUID, physical_inventory_id: UUID) -> PhysicalInventory:
        physical_inventory = self.db.query(PhysicalInventory).options(
            selectinload(PhysicalInventory.items).selectinload(PhysicalInventoryItem.product),
            selectinload(PhysicalInventory.warehouse)
        ).filter(
            and_(PhysicalInventory.id == physical_inventory_id, PhysicalInventory.tenant_id == tenant_id)
        ).first()
        if not physical_inventory:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Inventario físico no encontrado"
            )
        return physical_inventory

    def _require_status(self, physical_inventory: PhysicalInventory, allowed, action: str) -> None:
        if physical_inventory.status not in allowed:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"No se puede {action} el inventario {physical_inventory.number} en estado {physical_inventory.status.value}"
            )

    def _to_output(self, physical_inventory: PhysicalInventory) -> PhysicalInventoryOut:
        items = sorted(
            physical_inventory.items,
            key=lambda item: item.product.name if item.product else ""
        )
        return PhysicalInventoryOut(
            id=physical_inventory.id,
            number=physical_inventory.number,
            warehouse_id=physical_inventory.warehouse_id,
            warehouse_name=physical_inventory.warehouse.name if physical_inventory.warehouse else None,
            status=physical_inventory.status,
            notes=physical_inventory.notes,
            created_by_id=physical_inventory.created_by_id,
            approved_by_id=physical_inventory.approved_by_id,
            created_at=physical_inventory.created_at,
            started_at=physical_inventory.started_at,
            completed_at=physical_inventory.completed_at,
            approved_at=physical_inventory.approved_at,
            items=[
                PhysicalInventoryItemOut(
                    id=item.id,
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    product_name=item.product.name if item.product else None,
                    product_sku=item.product.sku if item.product else None,
                    system_quantity=item.system_quantity,
                    counted_quantity=item.counted_quantity,
                    difference=item.difference,
                    notes=item.notes
                )
                for item in items
            ]
        )

    def _to_summary(self, physical_inventory: PhysicalInventory) -> PhysicalInventorySummary:
        differences = [
            item.difference for item in physical_inventory.items
            if item.counted_quantity is not None and item.difference
        ]
        return PhysicalInventorySummary(
            id=physical_inventory.id,
            number=physical_inventory.number,
            warehouse_id=physical_inventory.warehouse_id,
            warehouse_name=physical_inventory.warehouse.name if physical_inventory.warehouse else None,
            status=physical_inventory.status,
            created_at=physical_inventory.created_at,
            items_count=len(physical_inventory.items),
            has_differences=bool(differences),
            differences_count=len(differences),
            has_positive_differences=any(d > 0 for d in differences),
            has_negative_differences=any(d < 0 for d in differences)
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)
