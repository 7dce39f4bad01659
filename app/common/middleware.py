"""
Middleware for handling multi-tenancy
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from uuid import UUID
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

SYSTEM_USER = "SYSTEM"


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Resuelve la empresa (X-Company-ID) y el usuario que origina la
    operación (X-User-ID) y los deja en request.state.

    Todas las tablas de negocio filtran por tenant_id; sin empresa válida
    no se atiende la petición.
    """

    # Paths that don't require tenant context
    EXEMPT_PREFIXES = ("/docs", "/redoc", "/openapi.json", "/health")
    EXEMPT_EXACT = ("/",)

    def _is_exempt(self, path: str) -> bool:
        if path in self.EXEMPT_EXACT:
            return True
        return path.startswith(self.EXEMPT_PREFIXES)

    async def dispatch(self, request: Request, call_next):
        # OPTIONS: CORS preflight
        if self._is_exempt(request.url.path) or request.method == "OPTIONS":
            return await call_next(request)

        tenant_header = request.headers.get("X-Company-ID")
        if not tenant_header:
            return JSONResponse(
                content={"detail": "Missing X-Company-ID header"},
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        try:
            tenant_id = UUID(tenant_header)
        except ValueError:
            return JSONResponse(
                content={"detail": "Invalid X-Company-ID format. Must be a valid UUID"},
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        request.state.tenant_id = tenant_id
        request.state.user_id = (request.headers.get("X-User-ID") or SYSTEM_USER).strip()[:100] or SYSTEM_USER
        logger.debug(f"{request.method} {request.url.path} tenant={tenant_id} user={request.state.user_id}")

        response = await call_next(request)
        response.headers["X-Tenant-ID"] = str(tenant_id)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Cabeceras de seguridad; HSTS solo en producción (detrás de HTTPS)."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.update(self.HEADERS)
        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response
