from typing import Annotated
from fastapi import Depends, Request, HTTPException, status
from uuid import UUID

from app.common.middleware import SYSTEM_USER


def get_tenant_id(request: Request) -> UUID:
    """Empresa de la petición, resuelta por TenantMiddleware"""
    tenant_id = getattr(request.state, "tenant_id", None)
    if tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Tenant context not found. Ensure X-Company-ID header is provided."
        )
    return tenant_id


def get_user_id(request: Request) -> str:
    """Usuario que origina el cambio (X-User-ID); SYSTEM si no viene."""
    return getattr(request.state, "user_id", SYSTEM_USER)


TenantId = Annotated[UUID, Depends(get_tenant_id)]
UserId = Annotated[str, Depends(get_user_id)]
