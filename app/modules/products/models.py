from app.database.database import Base
from sqlalchemy import Column, String, Boolean, ForeignKey, Float, UniqueConstraint, Numeric, Enum, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


class ProductType(str, enum.Enum):
    RETAIL = "RETAIL"      # Producto de reventa
    RAW = "RAW"            # Materia prima / insumo
    PREPARED = "PREPARED"  # Elaborado a partir de una receta
    SELLABLE = "SELLABLE"  # Vendible sin control de receta


class Product(Base, TenantMixin, TimestampMixin):
    __tablename__ = "products"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False)
    sku = Column(String(50), nullable=False)
    description = Column(String(255), nullable=True)
    bar_code = Column(String(50), nullable=True)
    product_type = Column(Enum(ProductType), nullable=False, default=ProductType.RETAIL)
    price_sale = Column(Numeric(15, 2), nullable=False, default=0)  # Precio de venta
    cost = Column(Float, nullable=True)  # Costo unitario (manual, receta o promedio ponderado)
    enable_recipe_consumption = Column(Boolean, default=False, nullable=False)
    sell_in_negative = Column(Boolean, default=False)  # Permitir venta sin stock
    is_active = Column(Boolean, default=True)

    # Relationships
    recipe = relationship(
        "Recipe",
        back_populates="product",
        uselist=False,
        cascade="all, delete-orphan",
        foreign_keys="Recipe.product_id",
    )
    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")
    stock_levels = relationship("StockLevel", back_populates="product")
    movements = relationship("StockMovement", back_populates="product")

    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_product_tenant_sku"),
    )

    @property
    def can_own_recipe(self) -> bool:
        return self.product_type == ProductType.PREPARED and bool(self.enable_recipe_consumption)


class ProductVariant(Base, TenantMixin, TimestampMixin):
    __tablename__ = "product_variants"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False)
    color = Column(String(50), nullable=True)
    size = Column(String(50), nullable=True)
    sku = Column(String(50), nullable=False)
    is_active = Column(Boolean, default=True)

    # Relationships
    product = relationship("Product", back_populates="variants")

    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_variant_tenant_sku"),
    )
