from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from uuid import UUID
from app.modules.warehouses.models import Warehouse
from app.modules.warehouses.schemas import WarehouseCreate, WarehouseUpdate


def create_warehouse(warehouse: WarehouseCreate, db: Session, tenant_id: UUID):
    existing = db.query(Warehouse).filter(Warehouse.tenant_id == tenant_id, Warehouse.name == warehouse.name).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Ya existe una bodega con el nombre '{warehouse.name}' en esta empresa"
        )

    new_warehouse = Warehouse(**warehouse.model_dump(), tenant_id=tenant_id)
    db.add(new_warehouse)
    db.commit()
    db.refresh(new_warehouse)
    return new_warehouse


def get_all_warehouses(db: Session, tenant_id: UUID, limit: int = 100, offset: int = 0):
    query = db.query(Warehouse).filter(Warehouse.tenant_id == tenant_id)
    warehouses = query.order_by(Warehouse.name.asc()).offset(offset).limit(limit).all()
    total = query.count()
    return {"warehouses": warehouses, "total": total, "limit": limit, "offset": offset}


def get_warehouse_by_id(warehouse_id: UUID, db: Session, tenant_id: UUID):
    warehouse = db.query(Warehouse).filter(Warehouse.id == warehouse_id, Warehouse.tenant_id == tenant_id).first()
    if not warehouse:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Warehouse not found"
        )
    return warehouse


def require_active_warehouse(warehouse_id: UUID, db: Session, tenant_id: UUID):
    """Valida que la bodega exista en el tenant y esté activa (400 si no)."""
    warehouse = db.query(Warehouse).filter(Warehouse.id == warehouse_id, Warehouse.tenant_id == tenant_id).first()
    if not warehouse:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="La bodega especificada no existe o no pertenece a esta empresa"
        )
    if not warehouse.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"La bodega '{warehouse.name}' está inactiva y no se pueden realizar movimientos"
        )
    return warehouse


def update_warehouse(warehouse_id: UUID, warehouse_update: WarehouseUpdate, db: Session, tenant_id: UUID):
    warehouse = get_warehouse_by_id(warehouse_id, db, tenant_id)
    changes = warehouse_update.model_dump(exclude_unset=True)

    if "name" in changes and changes["name"] != warehouse.name:
        duplicate = db.query(Warehouse).filter(
            Warehouse.tenant_id == tenant_id,
            Warehouse.name == changes["name"],
            Warehouse.id != warehouse_id
        ).first()
        if duplicate:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Ya existe una bodega con el nombre '{changes['name']}' en esta empresa"
            )

    for key, value in changes.items():
        setattr(warehouse, key, value)

    db.commit()
    db.refresh(warehouse)
    return warehouse
