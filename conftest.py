"""
Fixtures compartidas para los tests.

La base de datos es SQLite en memoria (un solo engine con StaticPool),
recreada para cada test. Las variables de entorno deben quedar definidas
antes de importar la aplicación.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from uuid import uuid4
from fastapi.testclient import TestClient

from app.main import app
from app.database.database import Base, engine, SessionLocal


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def tenant_id():
    return uuid4()


@pytest.fixture
def client(tenant_id):
    """TestClient con el header de empresa ya configurado"""
    with TestClient(app, headers={"X-Company-ID": str(tenant_id)}) as test_client:
        yield test_client
