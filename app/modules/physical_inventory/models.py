"""
Modelos SQLAlchemy para inventario físico (conteos de bodega)

Flujo: PENDING → COUNTING → COMPLETED → APPROVED (o CANCELLED).
Solo la aprobación toca el stock: cada diferencia genera un movimiento
ADJUSTMENT con el número del conteo como referencia.
"""

from app.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Float, Enum, Text, DateTime, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


class PhysicalInventoryStatus(str, enum.Enum):
    PENDING = "PENDING"       # Creado con la foto del stock del sistema
    COUNTING = "COUNTING"     # Hay al menos un ítem contado
    COMPLETED = "COMPLETED"   # Conteo cerrado, diferencias calculadas
    APPROVED = "APPROVED"     # Ajustes aplicados al stock
    CANCELLED = "CANCELLED"


class PhysicalInventory(Base, TenantMixin, TimestampMixin):
    __tablename__ = "physical_inventories"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    number = Column(String(50), nullable=False)  # INV-000001
    warehouse_id = Column(Uuid(as_uuid=True), ForeignKey("warehouses.id"), nullable=False)
    status = Column(Enum(PhysicalInventoryStatus), nullable=False, default=PhysicalInventoryStatus.PENDING)
    notes = Column(Text, nullable=True)
    created_by_id = Column(String(100), nullable=False, default="SYSTEM")
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by_id = Column(String(100), nullable=True)

    # Relationships
    warehouse = relationship("Warehouse")
    items = relationship("PhysicalInventoryItem", back_populates="physical_inventory", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_physical_inventory_tenant_number"),
    )


class PhysicalInventoryItem(Base, TenantMixin, TimestampMixin):
    __tablename__ = "physical_inventory_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    physical_inventory_id = Column(Uuid(as_uuid=True), ForeignKey("physical_inventories.id"), nullable=False)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False)
    variant_id = Column(Uuid(as_uuid=True), ForeignKey("product_variants.id"), nullable=True)
    system_quantity = Column(Float, nullable=False)
    counted_quantity = Column(Float, nullable=True)
    difference = Column(Float, nullable=True)  # contado - sistema
    notes = Column(String(255), nullable=True)

    # Relationships
    physical_inventory = relationship("PhysicalInventory", back_populates="items")
    product = relationship("Product")
