from app.database.database import Base
from sqlalchemy import Column, Boolean, ForeignKey, Float, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin


class Recipe(Base, TenantMixin, TimestampMixin):
    """Receta de un producto PREPARED: `yield` unidades de salida por lote."""
    __tablename__ = "recipes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False, unique=True)
    yield_quantity = Column("yield", Float, nullable=False, default=1)
    is_active = Column(Boolean, default=True)

    # Relationships
    product = relationship("Product", back_populates="recipe", foreign_keys=[product_id])
    items = relationship("RecipeItem", back_populates="recipe", cascade="all, delete-orphan")


class RecipeItem(Base, TenantMixin, TimestampMixin):
    __tablename__ = "recipe_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    recipe_id = Column(Uuid(as_uuid=True), ForeignKey("recipes.id"), nullable=False)
    ingredient_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False)
    quantity = Column(Float, nullable=False)  # Cantidad consumida por lote

    # Relationships
    recipe = relationship("Recipe", back_populates="items")
    ingredient = relationship("Product", foreign_keys=[ingredient_id])

    __table_args__ = (
        UniqueConstraint("recipe_id", "ingredient_id", name="uq_recipe_item_recipe_ingredient"),
    )
