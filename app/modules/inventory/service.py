from typing import List, Optional
from uuid import UUID
from datetime import datetime, timezone
import logging

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import and_, or_, func
from fastapi import HTTPException, status

from app.core.config import settings
from app.modules.products.models import Product
from app.modules.inventory.models import StockLevel, StockMovement
from app.modules.warehouses.service import require_active_warehouse
from app.modules.recipes.schemas import IngredientRequirement
from app.modules.recipes.service import RecipeService
from app.modules.inventory.schemas import (
    StockLevelOut, StockLevelSettingsUpdate, StockCheckRequest, StockCheckResponse,
    StockCheckResult, StockMovementOut, AdjustmentCreate, TransferCreate,
    SaleConsumptionCreate, SaleConsumptionOut, MovementType, ReorderSuggestionOut
)

logger = logging.getLogger(__name__)


class InventoryService:
    """Service for inventory management operations."""

    def __init__(self, db: Session):
        self.db = db

    # ===== STOCK LEVELS =====

    def get_stock_levels(
        self,
        tenant_id: UUID,
        warehouse_id: Optional[UUID] = None,
        product_id: Optional[UUID] = None,
        low_stock_only: bool = False
    ) -> List[StockLevelOut]:
        """Get stock levels filtered by warehouse and/or product."""
        query = self.db.query(StockLevel).options(
            selectinload(StockLevel.product),
            selectinload(StockLevel.warehouse)
        ).filter(StockLevel.tenant_id == tenant_id)

        if warehouse_id:
            query = query.filter(StockLevel.warehouse_id == warehouse_id)
        if product_id:
            query = query.filter(StockLevel.product_id == product_id)
        if low_stock_only:
            query = query.filter(StockLevel.quantity <= StockLevel.min_stock)

        return [self._stock_to_output(stock) for stock in query.all()]

    def get_reorder_suggestions(
        self,
        tenant_id: UUID,
        warehouse_id: Optional[UUID] = None,
        search: Optional[str] = None
    ) -> List[ReorderSuggestionOut]:
        """
        Sugerencias de reabastecimiento a partir de min/max configurados.

        Objetivo = max_stock si es > 0, si no min_stock. Con mínimo
        configurado se sugiere cuando el stock está en o por debajo del
        mínimo; sin mínimo, cuando falta para llegar al máximo. Ordenadas por
        cantidad sugerida, de mayor a menor.
        """
        query = self.db.query(StockLevel).options(
            selectinload(StockLevel.product),
            selectinload(StockLevel.warehouse)
        ).filter(
            and_(
                StockLevel.tenant_id == tenant_id,
                or_(StockLevel.min_stock > 0, StockLevel.max_stock > 0)
            )
        )
        if warehouse_id:
            query = query.filter(StockLevel.warehouse_id == warehouse_id)

        needle = search.strip().lower() if search else ""
        suggestions = []
        for stock in query.all():
            if stock.product is None or not stock.product.is_active:
                continue

            min_stock = stock.min_stock or 0
            max_stock = stock.max_stock or 0
            quantity = stock.quantity or 0
            target = max_stock if max_stock > 0 else min_stock
            suggested = max(0.0, target - quantity)
            needs_reorder = quantity <= min_stock if min_stock > 0 else suggested > 0
            if not needs_reorder or suggested <= 0:
                continue

            warehouse_name = stock.warehouse.name if stock.warehouse else ""
            if needle and needle not in f"{stock.product.name} {stock.product.sku} {warehouse_name}".lower():
                continue

            suggestions.append(ReorderSuggestionOut(
                stock_level_id=stock.id,
                warehouse_id=stock.warehouse_id,
                warehouse_name=warehouse_name,
                product_id=stock.product_id,
                product_name=stock.product.name,
                product_sku=stock.product.sku,
                quantity=quantity,
                min_stock=min_stock,
                max_stock=max_stock,
                target_stock=target,
                suggested_quantity=suggested
            ))

        suggestions.sort(key=lambda s: s.suggested_quantity, reverse=True)
        return suggestions

    def get_product_on_hand(self, tenant_id: UUID, product_id: UUID) -> float:
        """Existencias totales de un producto sumando todas las bodegas."""
        total = self.db.query(func.coalesce(func.sum(StockLevel.quantity), 0.0)).filter(
            and_(StockLevel.tenant_id == tenant_id, StockLevel.product_id == product_id)
        ).scalar()
        return float(total or 0)

    def update_stock_settings(self, tenant_id: UUID, data: StockLevelSettingsUpdate) -> StockLevelOut:
        """Configure min/max stock for a (warehouse, product, variant)."""
        require_active_warehouse(data.warehouse_id, self.db, tenant_id)
        self._require_product(tenant_id, data.product_id)

        stock = self._find_stock_level(tenant_id, data.warehouse_id, data.product_id, data.variant_id)
        if not stock:
            stock = StockLevel(
                tenant_id=tenant_id,
                warehouse_id=data.warehouse_id,
                product_id=data.product_id,
                variant_id=data.variant_id,
                quantity=0
            )
            self.db.add(stock)

        stock.min_stock = data.min_stock
        stock.max_stock = data.max_stock
        self.db.commit()
        self.db.refresh(stock)
        return self._stock_to_output(stock)

    def update_stock_level(
        self,
        tenant_id: UUID,
        warehouse_id: UUID,
        product_id: UUID,
        quantity_change: float,
        variant_id: Optional[UUID] = None,
        movement_type: Optional[MovementType] = None,
        reason: Optional[str] = None,
        reference: Optional[str] = None,
        created_by_id: str = "SYSTEM"
    ) -> StockLevel:
        """
        Create or update the stock level and, when a movement type is given,
        append the matching movement. Does not commit: the caller owns the
        transaction.
        """
        stock = self._find_stock_level(tenant_id, warehouse_id, product_id, variant_id)

        if stock:
            logger.debug(f"[Stock] {product_id}@{warehouse_id}: {stock.quantity} + {quantity_change}")
            stock.quantity = (stock.quantity or 0) + quantity_change
        else:
            logger.debug(f"[Stock] Creating stock level {product_id}@{warehouse_id} with {quantity_change}")
            stock = StockLevel(
                tenant_id=tenant_id,
                warehouse_id=warehouse_id,
                product_id=product_id,
                variant_id=variant_id,
                quantity=quantity_change,
                min_stock=0
            )
            self.db.add(stock)

        if movement_type:
            self.record_movement(
                tenant_id, warehouse_id, product_id, quantity_change, movement_type,
                variant_id=variant_id,
                reason=reason,
                reference=reference,
                created_by_id=created_by_id
            )

        self.db.flush()
        return stock

    def update_product_cost(
        self,
        tenant_id: UUID,
        product_id: UUID,
        received_qty: float,
        received_cost: float
    ) -> Optional[float]:
        """
        Recalcula el costo promedio ponderado de un producto.

        newCost = (oldCost * oldStock + receivedCost * receivedQty) / (oldStock + receivedQty)

        Debe llamarse ANTES de sumar la cantidad recibida al stock. oldStock
        son las existencias totales del producto en todas las bodegas. No
        hace commit.
        """
        product = self._require_product(tenant_id, product_id)

        old_stock = self.get_product_on_hand(tenant_id, product_id)
        old_cost = product.cost if product.cost is not None else 0.0

        if old_stock <= 0 and received_qty > 0:
            # Primera entrada (o stock negativo): el costo recibido manda
            product.cost = received_cost
        elif old_stock + received_qty == 0:
            return product.cost
        else:
            numerator = old_cost * old_stock + received_cost * received_qty
            denominator = old_stock + received_qty
            product.cost = numerator / denominator

        logger.debug(f"[Cost] {product.sku}: {old_cost} -> {product.cost} (stock {old_stock} + {received_qty} @ {received_cost})")
        self.db.flush()
        return product.cost

    def check_stock(
        self,
        tenant_id: UUID,
        warehouse_id: UUID,
        product_id: UUID,
        required_qty: float,
        variant_id: Optional[UUID] = None
    ) -> bool:
        """True si hay existencias suficientes. Sin registro de stock no hay disponibilidad."""
        stock = self._find_stock_level(tenant_id, warehouse_id, product_id, variant_id)
        if not stock:
            return False
        return stock.quantity >= required_qty

    def check_stock_bulk(self, tenant_id: UUID, data: StockCheckRequest) -> StockCheckResponse:
        results = []
        for item in data.items:
            stock = self._find_stock_level(tenant_id, data.warehouse_id, item.product_id, item.variant_id)
            available = float(stock.quantity) if stock else 0.0
            results.append(StockCheckResult(
                product_id=item.product_id,
                variant_id=item.variant_id,
                required=item.quantity,
                available=available,
                sufficient=stock is not None and available >= item.quantity
            ))
        return StockCheckResponse(warehouse_id=data.warehouse_id, items=results)

    # ===== MOVEMENTS =====

    def create_adjustment(self, tenant_id: UUID, data: AdjustmentCreate, user_id: str) -> StockMovementOut:
        """Manual stock adjustment (positive enters, negative leaves)."""
        try:
            warehouse = require_active_warehouse(data.warehouse_id, self.db, tenant_id)
            product = self._require_active_product(tenant_id, data.product_id)

            if data.quantity < 0:
                self._ensure_available(tenant_id, warehouse, product, data.variant_id, -data.quantity)

            reference = data.reference or f"ADJ-{_timestamp()}"
            movement = self.record_movement(
                tenant_id, data.warehouse_id, data.product_id, data.quantity, MovementType.ADJUSTMENT,
                variant_id=data.variant_id,
                reason=data.reason,
                reference=reference,
                created_by_id=user_id
            )
            self.update_stock_level(
                tenant_id, data.warehouse_id, data.product_id, data.quantity,
                variant_id=data.variant_id
            )
            self.db.commit()
            logger.info(f"Ajuste de inventario {reference}: {product.sku} {data.quantity:+} en '{warehouse.name}'")
            return self._movement_to_output(movement)
        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creando ajuste de inventario: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creando ajuste de inventario: {str(e)}"
            )

    def transfer_stock(self, tenant_id: UUID, data: TransferCreate, user_id: str) -> List[StockMovementOut]:
        """Transfer stock between warehouses (OUT leg + IN leg, same reference)."""
        if data.from_warehouse_id == data.to_warehouse_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No se puede transferir a la misma bodega"
            )

        try:
            from_warehouse = require_active_warehouse(data.from_warehouse_id, self.db, tenant_id)
            to_warehouse = require_active_warehouse(data.to_warehouse_id, self.db, tenant_id)
            product = self._require_active_product(tenant_id, data.product_id)

            if not self.check_stock(tenant_id, data.from_warehouse_id, data.product_id, data.quantity, data.variant_id):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Stock insuficiente para '{product.name}' en '{from_warehouse.name}'"
                )

            reference = data.reference or f"TRF-{_timestamp()}"
            movements = [
                self.record_movement(
                    tenant_id, data.from_warehouse_id, data.product_id, -data.quantity, MovementType.TRANSFER,
                    variant_id=data.variant_id,
                    reason=data.reason or f"Traslado a {to_warehouse.name}",
                    reference=reference,
                    created_by_id=user_id
                ),
                self.record_movement(
                    tenant_id, data.to_warehouse_id, data.product_id, data.quantity, MovementType.TRANSFER,
                    variant_id=data.variant_id,
                    reason=data.reason or f"Traslado desde {from_warehouse.name}",
                    reference=reference,
                    created_by_id=user_id
                ),
            ]
            self.update_stock_level(tenant_id, data.from_warehouse_id, data.product_id, -data.quantity, variant_id=data.variant_id)
            self.update_stock_level(tenant_id, data.to_warehouse_id, data.product_id, data.quantity, variant_id=data.variant_id)
            self.db.commit()
            logger.info(f"Traslado {reference}: {product.sku} x{data.quantity} '{from_warehouse.name}' -> '{to_warehouse.name}'")
            return [self._movement_to_output(movement) for movement in movements]
        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error en traslado de inventario: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error en traslado de inventario: {str(e)}"
            )

    def consume_for_sale(self, tenant_id: UUID, data: SaleConsumptionCreate, user_id: str) -> SaleConsumptionOut:
        """
        Descuenta inventario por una venta.

        Productos con receta (consumo habilitado) descuentan sus ingredientes
        hoja; el resto se descuenta a sí mismo.
        """
        try:
            warehouse = require_active_warehouse(data.warehouse_id, self.db, tenant_id)
            product = self._require_active_product(tenant_id, data.product_id)

            if product.enable_recipe_consumption and product.recipe is not None:
                requirements = RecipeService(self.db).resolve_all_ingredients(tenant_id, product.id, data.quantity)
            else:
                requirements = [IngredientRequirement(ingredient_id=product.id, quantity=data.quantity)]

            reference = data.reference or f"SALE-{_timestamp()}"
            reason = f"Venta - {product.name}"
            movements = []
            for requirement in requirements:
                ingredient = self._require_product(tenant_id, requirement.ingredient_id)
                self._ensure_available(tenant_id, warehouse, ingredient, None, requirement.quantity)
                movements.append(self.record_movement(
                    tenant_id, data.warehouse_id, ingredient.id, -requirement.quantity, MovementType.OUT,
                    reason=reason,
                    reference=reference,
                    created_by_id=user_id
                ))
                self.update_stock_level(tenant_id, data.warehouse_id, ingredient.id, -requirement.quantity)

            self.db.commit()
            logger.info(f"Consumo por venta {reference}: {product.sku} x{data.quantity} -> {len(requirements)} ítems")
            return SaleConsumptionOut(
                product_id=product.id,
                quantity=data.quantity,
                consumed=requirements,
                movements=[self._movement_to_output(movement) for movement in movements]
            )
        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error descontando inventario por venta: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error descontando inventario por venta: {str(e)}"
            )

    def get_movements(
        self,
        tenant_id: UUID,
        product_id: Optional[UUID] = None,
        warehouse_id: Optional[UUID] = None,
        movement_type: Optional[MovementType] = None,
        reference: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[StockMovementOut]:
        """Get stock movements with filters."""
        query = self.db.query(StockMovement).options(
            selectinload(StockMovement.product),
            selectinload(StockMovement.warehouse)
        ).filter(StockMovement.tenant_id == tenant_id)

        if product_id:
            query = query.filter(StockMovement.product_id == product_id)
        if warehouse_id:
            query = query.filter(StockMovement.warehouse_id == warehouse_id)
        if movement_type:
            query = query.filter(StockMovement.movement_type == movement_type.value)
        if reference:
            query = query.filter(StockMovement.reference == reference)

        movements = query.order_by(StockMovement.created_at.desc()).offset(offset).limit(limit).all()
        return [self._movement_to_output(movement) for movement in movements]

    # ===== HELPERS =====

    def _find_stock_level(
        self,
        tenant_id: UUID,
        warehouse_id: UUID,
        product_id: UUID,
        variant_id: Optional[UUID]
    ) -> Optional[StockLevel]:
        query = self.db.query(StockLevel).filter(
            and_(
                StockLevel.tenant_id == tenant_id,
                StockLevel.warehouse_id == warehouse_id,
                StockLevel.product_id == product_id
            )
        )
        if variant_id:
            query = query.filter(StockLevel.variant_id == variant_id)
        else:
            query = query.filter(StockLevel.variant_id.is_(None))
        return query.first()

    def _require_product(self, tenant_id: UUID, product_id: UUID) -> Product:
        product = self.db.query(Product).filter(
            and_(Product.tenant_id == tenant_id, Product.id == product_id)
        ).first()
        if not product:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El producto especificado no existe o no pertenece a esta empresa"
            )
        return product

    def _require_active_product(self, tenant_id: UUID, product_id: UUID) -> Product:
        product = self._require_product(tenant_id, product_id)
        if not product.is_active:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"El producto '{product.name}' está inactivo y no se pueden realizar movimientos"
            )
        return product

    def _ensure_available(self, tenant_id: UUID, warehouse, product: Product, variant_id: Optional[UUID], quantity: float):
        """Rechaza salidas que dejarían stock negativo, salvo que el producto lo permita."""
        if settings.ALLOW_NEGATIVE_STOCK or product.sell_in_negative:
            return
        stock = self._find_stock_level(tenant_id, warehouse.id, product.id, variant_id)
        current = stock.quantity if stock else 0
        if current - quantity < 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Stock insuficiente para '{product.name}' en '{warehouse.name}'. Disponible: {current}, Solicitado: {quantity}"
            )

    def record_movement(
        self,
        tenant_id: UUID,
        warehouse_id: UUID,
        product_id: UUID,
        quantity: float,
        movement_type: MovementType,
        variant_id: Optional[UUID] = None,
        reason: Optional[str] = None,
        reference: Optional[str] = None,
        created_by_id: str = "SYSTEM"
    ) -> StockMovement:
        """Append a movement to the log (signed quantity). Does not commit."""
        movement = StockMovement(
            tenant_id=tenant_id,
            warehouse_id=warehouse_id,
            product_id=product_id,
            variant_id=variant_id,
            movement_type=movement_type.value,
            quantity=quantity,
            reason=reason,
            reference=reference,
            created_by_id=created_by_id
        )
        self.db.add(movement)
        return movement

    def _stock_to_output(self, stock: StockLevel) -> StockLevelOut:
        return StockLevelOut(
            id=stock.id,
            warehouse_id=stock.warehouse_id,
            product_id=stock.product_id,
            variant_id=stock.variant_id,
            quantity=stock.quantity,
            min_stock=stock.min_stock or 0,
            max_stock=stock.max_stock,
            product_name=stock.product.name if stock.product else None,
            product_sku=stock.product.sku if stock.product else None,
            warehouse_name=stock.warehouse.name if stock.warehouse else None,
            is_low_stock=stock.quantity <= (stock.min_stock or 0)
        )

    def _movement_to_output(self, movement: StockMovement) -> StockMovementOut:
        """Convert movement model to output schema."""
        return StockMovementOut(
            id=movement.id,
            warehouse_id=movement.warehouse_id,
            product_id=movement.product_id,
            variant_id=movement.variant_id,
            movement_type=movement.movement_type,
            quantity=movement.quantity,
            reason=movement.reason,
            reference=movement.reference,
            created_by_id=movement.created_by_id,
            created_at=movement.created_at,
            tenant_id=movement.tenant_id,
            product_name=movement.product.name if movement.product else None,
            product_sku=movement.product.sku if movement.product else None,
            warehouse_name=movement.warehouse.name if movement.warehouse else None
        )


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S%f")
