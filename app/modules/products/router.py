from fastapi import APIRouter, status, Depends, Query
from uuid import UUID
from typing import Optional
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.dependencies.companyDependencies import TenantId
from app.core.config import settings
from app.modules.products import service
from app.modules.products.models import ProductType
from app.modules.products.schemas import (
    ProductCreate,
    ProductUpdate,
    ProductOut,
    PaginatedProductResponse,
)

product_router = APIRouter(prefix="/products", tags=["Products"])


@product_router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    tenant_id: TenantId,
    db: Session = Depends(get_db),
):
    """Create a new product."""
    return service.create_product(db, data, tenant_id)


@product_router.get("/", response_model=PaginatedProductResponse)
def list_products(
    tenant_id: TenantId,
    search: Optional[str] = Query(None, description="Buscar por nombre o SKU"),
    product_type: Optional[ProductType] = Query(None),
    is_active: Optional[bool] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return service.get_all_products(
        db, tenant_id,
        search=search,
        product_type=product_type,
        is_active=is_active,
        limit=limit,
        offset=offset,
    )


@product_router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: UUID, tenant_id: TenantId, db: Session = Depends(get_db)):
    return service.get_product_by_id(db, tenant_id, product_id)


@product_router.patch("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: UUID,
    data: ProductUpdate,
    tenant_id: TenantId,
    db: Session = Depends(get_db),
):
    """Update a product; `cost` here is a manual cost edit."""
    return service.update_product(db, tenant_id, product_id, data)
