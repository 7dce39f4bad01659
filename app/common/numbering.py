"""
Consecutivos de documentos por empresa (PO-000001, GR-000001, INV-000001).
"""
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session


def next_document_number(db: Session, model, tenant_id: UUID, prefix: str) -> str:
    count = db.query(func.count(model.id)).filter(model.tenant_id == tenant_id).scalar() or 0
    return f"{prefix}-{count + 1:06d}"
