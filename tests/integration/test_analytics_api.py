# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the admin analytics API endpoints.

The real application, services and middleware are used. Redis and the
platform database are replaced with the in-memory fakes from conftest
through dependency overrides.
"""

import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.dependencies import get_cache_store, get_data_source
from src.api.middleware import RequestContextMiddleware

BASE = "/api/v1/admin/analytics"


@pytest.fixture
def app(store, data_source) -> FastAPI:
    """Create the application wired to the in-memory fakes."""
    app = create_app()
    app.dependency_overrides[get_cache_store] = lambda: store
    app.dependency_overrides[get_data_source] = lambda: data_source
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client."""
    return TestClient(app)


class TestAnalyticsAPIRouting:
    """Tests for analytics API routing."""

    def test_routes_registered(self, app: FastAPI) -> None:
        routes = [route.path for route in app.routes]

        for path in ("dashboard", "users", "courses", "revenue", "realtime", "export"):
            assert f"{BASE}/{path}" in routes
        assert f"{BASE}/download/{{export_id}}" in routes


class TestReportEndpoints:
    """Tests for the report endpoints."""

    def test_dashboard_envelope(self, client: TestClient, data_source) -> None:
        data_source.results["total_users"] = 42

        response = client.get(f"{BASE}/dashboard", params={"period": "7d"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Dashboard analytics retrieved successfully"
        assert body["data"]["summary"]["totalUsers"] == 42
        assert body["data"]["period"] == "7d"
        assert body["meta"]["cached"] is False
        assert body["meta"]["requestId"] == response.headers["X-Request-ID"]
        assert isinstance(body["meta"]["executionTime"], int)

    def test_second_request_is_cached(self, client: TestClient, data_source) -> None:
        client.get(f"{BASE}/users", params={"period": "90d", "groupBy": "week"})
        data_source.calls.clear()

        response = client.get(f"{BASE}/users", params={"period": "90d", "groupBy": "week"})

        body = response.json()
        assert body["meta"]["cached"] is True
        assert body["data"]["groupBy"] == "week"
        assert data_source.calls == []

    def test_refresh_bypasses_cache(self, client: TestClient, data_source) -> None:
        client.get(f"{BASE}/courses")
        data_source.calls.clear()

        response = client.get(f"{BASE}/courses", params={"refresh": "true"})

        assert response.json()["meta"]["cached"] is False
        assert data_source.calls

    def test_revenue_currency(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/revenue", params={"currency": "usd"})

        assert response.json()["data"]["currency"] == "USD"

    def test_realtime(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/realtime")

        body = response.json()
        assert body["message"] == "Real-time statistics retrieved successfully"
        assert body["data"]["period"] == "live"
        assert set(body["data"]) >= {"live", "today", "systemHealth", "recentActivity", "alerts"}

    def test_request_id_is_echoed(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/realtime", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert response.json()["meta"]["requestId"] == "req-123"

    def test_invalid_query_parameter(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/dashboard", params={"refresh": "maybe"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "VALIDATION_ERROR"
        assert "requestId" in body["meta"]

    def test_query_failure_is_a_500(self, client: TestClient, data_source, store) -> None:
        data_source.failures["total_users"] = RuntimeError("connection refused")

        response = client.get(f"{BASE}/dashboard")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "INTERNAL_SERVER_ERROR"
        assert body["message"] == "Internal server error"
        assert body["meta"]["requestId"] == response.headers["X-Request-ID"]
        assert store.writes == []


class TestExportEndpoints:
    """Tests for export and download."""

    def test_export_then_download_csv(
        self, client: TestClient, data_source
    ) -> None:
        data_source.results["export_courses"] = [
            {"id": "c1", "title": "Intro, Part 1", "category.name": "Data"},
        ]

        response = client.post(
            f"{BASE}/export",
            json={"type": "courses", "period": "90d", "format": "csv", "categoryId": "cat-1"},
            headers={"X-User-Id": "admin-9"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["recordCount"] == 1
        assert data["generatedBy"] == "admin-9"
        assert data["filters"] == {"categoryId": "cat-1", "instructorId": None}
        assert data["downloadUrl"] == f"{BASE}/download/{data['exportId']}?format=csv"

        download = client.get(data["downloadUrl"])

        assert download.status_code == 200
        assert download.headers["content-type"].startswith("text/csv")
        assert download.headers["content-disposition"] == (
            f'attachment; filename="educademy_analytics_courses_90d_{data["exportId"]}.csv"'
        )
        assert download.headers["cache-control"] == "no-cache"
        assert download.text == 'id,title,category.name\nc1,"Intro, Part 1",Data'

    def test_download_as_json(self, client: TestClient) -> None:
        export_id = client.post(f"{BASE}/export", json={}).json()["data"]["exportId"]

        download = client.get(f"{BASE}/download/{export_id}", params={"format": "json"})

        body = download.json()
        assert body["exportInfo"]["type"] == "dashboard"
        assert body["exportInfo"]["recordCount"] == 5
        assert len(body["data"]) == 5

    @pytest.mark.parametrize("period", [None, "bogus"])
    def test_export_period_falls_back_to_30d(self, client: TestClient, period) -> None:
        response = client.post(f"{BASE}/export", json={"type": "dashboard", "period": period})

        assert response.status_code == 200
        assert response.json()["data"]["period"] == "30d"

    def test_invalid_export_type(self, client: TestClient, data_source) -> None:
        response = client.post(f"{BASE}/export", json={"type": "payroll"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_EXPORT_TYPE"
        assert data_source.calls == []

    def test_invalid_export_format(self, client: TestClient) -> None:
        response = client.post(f"{BASE}/export", json={"type": "users", "format": "xml"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_FORMAT"

    def test_unknown_export(self, client: TestClient) -> None:
        response = client.get(f"{BASE}/download/analytics_missing")

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "EXPORT_NOT_FOUND"
        assert body["message"] == "Export not found or expired"

    def test_expired_export(self, client: TestClient, clock) -> None:
        export_id = client.post(f"{BASE}/export", json={}).json()["data"]["exportId"]
        clock.advance(hours=1)

        response = client.get(f"{BASE}/download/{export_id}")

        assert response.status_code == 404


class TestRequestContextMiddleware:
    """Tests for the blanket timeout and unhandled errors."""

    @pytest.fixture
    def slow_app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(RequestContextMiddleware, timeout_seconds=0.05)

        @app.get("/slow")
        async def slow() -> dict:
            await asyncio.sleep(1)
            return {}

        @app.get("/broken")
        async def broken() -> dict:
            raise KeyError("missing")

        return app

    def test_timeout(self, slow_app: FastAPI) -> None:
        response = TestClient(slow_app).get("/slow")

        assert response.status_code == 504
        assert response.json()["code"] == "REQUEST_TIMEOUT"
        assert response.headers["X-Request-ID"]

    def test_unhandled_error(self, slow_app: FastAPI) -> None:
        response = TestClient(slow_app).get("/broken")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "INTERNAL_SERVER_ERROR"
