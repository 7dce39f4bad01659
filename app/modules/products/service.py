from sqlalchemy.orm import Session, selectinload
from sqlalchemy import or_
from fastapi import HTTPException, status
from uuid import UUID
from typing import Optional
import logging

from .models import Product, ProductType
from .schemas import ProductCreate, ProductUpdate, ProductOut

logger = logging.getLogger(__name__)


def product_to_response(product: Product) -> ProductOut:
    """Convierte un modelo Product al schema de respuesta"""
    return ProductOut(
        id=product.id,
        name=product.name,
        sku=product.sku,
        description=product.description,
        bar_code=product.bar_code,
        product_type=product.product_type,
        price_sale=float(product.price_sale) if product.price_sale is not None else 0.0,
        cost=product.cost,
        enable_recipe_consumption=bool(product.enable_recipe_consumption),
        sell_in_negative=bool(product.sell_in_negative),
        is_active=bool(product.is_active),
        has_recipe=product.recipe is not None,
        created_at=product.created_at,
    )


def require_product(db: Session, tenant_id: UUID, product_id: UUID) -> Product:
    """Obtiene un producto del tenant o responde 404"""
    product = db.query(Product).filter(Product.id == product_id, Product.tenant_id == tenant_id).first()
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Producto no encontrado")
    return product


def create_product(db: Session, data: ProductCreate, tenant_id: UUID) -> ProductOut:
    """Crea un producto simple"""
    existing_product = db.query(Product).filter(
        Product.sku == data.sku,
        Product.tenant_id == tenant_id
    ).first()
    if existing_product:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Ya existe un producto con el SKU '{data.sku}' en esta empresa"
        )

    product = Product(**data.model_dump(), tenant_id=tenant_id)
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info(f"Producto creado {product.sku} ({product.product_type.value}) tenant={tenant_id}")
    return product_to_response(product)


def get_all_products(
    db: Session,
    tenant_id: UUID,
    search: Optional[str] = None,
    product_type: Optional[ProductType] = None,
    is_active: Optional[bool] = None,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    """Lista paginada de productos"""
    query = db.query(Product).options(selectinload(Product.recipe)).filter(Product.tenant_id == tenant_id)

    if search:
        query = query.filter(
            or_(
                Product.name.ilike(f"%{search}%"),
                Product.sku.ilike(f"%{search}%"),
            )
        )
    if product_type:
        query = query.filter(Product.product_type == product_type)
    if is_active is not None:
        query = query.filter(Product.is_active == is_active)

    total = query.count()
    products = query.order_by(Product.name.asc()).offset(offset).limit(limit).all()

    page = (offset // limit) + 1 if limit > 0 else 1
    return {
        "data": [product_to_response(product) for product in products],
        "total": total,
        "page": page,
        "limit": limit,
        "hasNext": (offset + limit) < total,
        "hasPrev": page > 1,
    }


def get_product_by_id(db: Session, tenant_id: UUID, product_id: UUID) -> ProductOut:
    return product_to_response(require_product(db, tenant_id, product_id))


def update_product(db: Session, tenant_id: UUID, product_id: UUID, data: ProductUpdate) -> ProductOut:
    """Actualiza un producto (incluye la edición manual del costo)"""
    product = require_product(db, tenant_id, product_id)
    changes = data.model_dump(exclude_unset=True)

    if "sku" in changes and changes["sku"] != product.sku:
        duplicate = db.query(Product).filter(
            Product.sku == changes["sku"],
            Product.tenant_id == tenant_id,
            Product.id != product_id
        ).first()
        if duplicate:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Ya existe un producto con el SKU '{changes['sku']}' en esta empresa"
            )

    # Solo PREPARED con consumo por receta puede tener receta
    new_type = changes.get("product_type", product.product_type)
    new_enabled = changes.get("enable_recipe_consumption", product.enable_recipe_consumption)
    if product.recipe is not None and (new_type != ProductType.PREPARED or not new_enabled):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El producto tiene receta: debe seguir siendo PREPARED con consumo por receta habilitado"
        )

    for key, value in changes.items():
        setattr(product, key, value)

    db.commit()
    db.refresh(product)
    return product_to_response(product)
