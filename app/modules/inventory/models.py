from app.database.database import Base
from sqlalchemy import Column, String, DateTime, ForeignKey, Float, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin


class StockLevel(Base, TenantMixin, TimestampMixin):
    __tablename__ = "stock_levels"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    quantity = Column(Float, nullable=False, default=0)
    min_stock = Column(Float, nullable=False, default=0)  # Cantidad mínima para alertas
    max_stock = Column(Float, nullable=True)

    warehouse_id = Column(Uuid(as_uuid=True), ForeignKey("warehouses.id"), nullable=False)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False)
    variant_id = Column(Uuid(as_uuid=True), ForeignKey("product_variants.id"), nullable=True)

    # Relationships
    warehouse = relationship("Warehouse", back_populates="stock_levels")
    product = relationship("Product", back_populates="stock_levels")
    variant = relationship("ProductVariant")

    __table_args__ = (
        UniqueConstraint("tenant_id", "warehouse_id", "product_id", "variant_id", name="uq_stock_level_tenant_wh_product_variant"),
    )


class StockMovement(Base, TenantMixin):
    """Registro inmutable de entradas/salidas. Nunca se actualiza ni se borra."""
    __tablename__ = "stock_movements"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    warehouse_id = Column(Uuid(as_uuid=True), ForeignKey("warehouses.id"), nullable=False)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False)
    variant_id = Column(Uuid(as_uuid=True), ForeignKey("product_variants.id"), nullable=True)

    movement_type = Column(String(20), nullable=False)  # IN, OUT, ADJUSTMENT, TRANSFER
    quantity = Column(Float, nullable=False)  # Con signo: positiva entra, negativa sale
    reason = Column(String(255), nullable=True)
    reference = Column(String(100), nullable=True)  # GR-000001, venta, ajuste...
    created_by_id = Column(String(100), nullable=False, default="SYSTEM")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    product = relationship("Product", back_populates="movements")
    warehouse = relationship("Warehouse")
    variant = relationship("ProductVariant")
