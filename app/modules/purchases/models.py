"""
Modelos SQLAlchemy para compras y recepción de mercancía

- Órdenes de compra (PurchaseOrders)
- Recepciones de mercancía (GoodsReceipts)

Integración con inventario:
- Cada línea recibida → movimiento IN + stock + costo promedio ponderado
"""

from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Float, Enum, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


class PurchaseOrderStatus(str, enum.Enum):
    """Estados de órdenes de compra"""
    DRAFT = "DRAFT"           # Borrador
    SENT = "SENT"             # Enviada / recibida parcialmente
    RECEIVED = "RECEIVED"     # Recibida completamente
    CANCELLED = "CANCELLED"   # Anulada


class PurchaseOrder(Base, TenantMixin, TimestampMixin):
    __tablename__ = "purchase_orders"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    number = Column(String(50), nullable=False)
    supplier_name = Column(String(150), nullable=True)
    warehouse_id = Column(Uuid(as_uuid=True), ForeignKey("warehouses.id"), nullable=False)
    status = Column(Enum(PurchaseOrderStatus), nullable=False, default=PurchaseOrderStatus.DRAFT)
    notes = Column(Text, nullable=True)

    # Relationships
    warehouse = relationship("Warehouse")
    items = relationship("PurchaseOrderItem", back_populates="purchase_order", cascade="all, delete-orphan")
    goods_receipts = relationship("GoodsReceipt", back_populates="purchase_order")

    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_purchase_order_tenant_number"),
    )


class PurchaseOrderItem(Base, TenantMixin, TimestampMixin):
    __tablename__ = "purchase_order_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    purchase_order_id = Column(Uuid(as_uuid=True), ForeignKey("purchase_orders.id"), nullable=False)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False)
    variant_id = Column(Uuid(as_uuid=True), ForeignKey("product_variants.id"), nullable=True)
    quantity = Column(Float, nullable=False)
    unit_cost = Column(Float, nullable=False, default=0)

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="items")
    product = relationship("Product")


class GoodsReceipt(Base, TenantMixin, TimestampMixin):
    __tablename__ = "goods_receipts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    number = Column(String(50), nullable=False)  # GR-000001
    purchase_order_id = Column(Uuid(as_uuid=True), ForeignKey("purchase_orders.id"), nullable=True)
    warehouse_id = Column(Uuid(as_uuid=True), ForeignKey("warehouses.id"), nullable=False)
    notes = Column(Text, nullable=True)
    created_by_id = Column(String(100), nullable=False, default="SYSTEM")

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="goods_receipts")
    warehouse = relationship("Warehouse")
    items = relationship("GoodsReceiptItem", back_populates="goods_receipt", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_goods_receipt_tenant_number"),
    )


class GoodsReceiptItem(Base, TenantMixin, TimestampMixin):
    __tablename__ = "goods_receipt_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    goods_receipt_id = Column(Uuid(as_uuid=True), ForeignKey("goods_receipts.id"), nullable=False)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False)
    variant_id = Column(Uuid(as_uuid=True), ForeignKey("product_variants.id"), nullable=True)
    purchase_order_item_id = Column(Uuid(as_uuid=True), ForeignKey("purchase_order_items.id"), nullable=True)
    quantity = Column(Float, nullable=False)
    unit_cost = Column(Float, nullable=False)

    # Relationships
    goods_receipt = relationship("GoodsReceipt", back_populates="items")
    product = relationship("Product")
