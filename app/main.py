from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from app.database.database import engine, Base

# Import middleware
from app.common.middleware import TenantMiddleware, SecurityHeadersMiddleware

# Import routers
from app.modules.products.router import product_router
from app.modules.warehouses.router import warehouse_router
from app.modules.recipes.router import recipes_router
from app.modules.inventory.router import stock_router, movements_router
from app.modules.purchases.router import purchase_orders_router, goods_receipts_router
from app.modules.physical_inventory.router import physical_inventory_router

# Import models for table creation
import app.modules.products.models
import app.modules.warehouses.models
import app.modules.recipes.models
import app.modules.inventory.models
import app.modules.purchases.models
import app.modules.physical_inventory.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Cocina360 API",
    description="Costeo de recetas e inventario multi-empresa (bodegas, movimientos, recepciones)",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(TenantMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(product_router)
app.include_router(warehouse_router)
app.include_router(recipes_router)
app.include_router(stock_router, tags=["Inventory"])
app.include_router(movements_router, tags=["Inventory"])
app.include_router(purchase_orders_router)
app.include_router(goods_receipts_router)
app.include_router(physical_inventory_router)

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=engine)


@app.get("/")
async def read_root():
    return {
        "message": "Cocina360 API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("Cocina360 API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Strict recipe cycles: {settings.RECIPE_STRICT_CYCLES}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Cocina360 API shutting down...")
