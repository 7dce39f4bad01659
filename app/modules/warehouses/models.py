from app.database.database import Base
from sqlalchemy import Column, String, Boolean, UniqueConstraint, Uuid
from uuid import uuid4
from sqlalchemy.orm import relationship
from app.common.mixins import TenantMixin, TimestampMixin

class Warehouse(Base, TenantMixin, TimestampMixin):
    __tablename__ = "warehouses"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False)
    address = Column(String(255), nullable=True)
    is_main = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)

    # Relationships - using strings to avoid circular imports
    stock_levels = relationship("StockLevel", back_populates="warehouse")

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_warehouse_tenant_name"),
    )
