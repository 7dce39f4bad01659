"""
Tests del middleware multi-empresa y cabeceras de seguridad
"""

from fastapi.testclient import TestClient

from app.main import app


class TestTenantMiddleware:

    def test_health_is_exempt(self):
        response = TestClient(app).get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_company_header(self):
        response = TestClient(app).get("/products/")
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing X-Company-ID header"

    def test_invalid_company_header(self):
        response = TestClient(app).get("/products/", headers={"X-Company-ID": "no-es-un-uuid"})
        assert response.status_code == 400
        assert "UUID" in response.json()["detail"]

    def test_tenant_echoed_in_response(self, client, tenant_id):
        response = client.get("/products/")
        assert response.status_code == 200
        assert response.headers["X-Tenant-ID"] == str(tenant_id)

    def test_security_headers(self, client):
        response = client.get("/warehouses/")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "Strict-Transport-Security" not in response.headers
