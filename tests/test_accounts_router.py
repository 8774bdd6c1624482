"""Tests for the account mapping API endpoints.

Tests cover:
- POST /api/account-map
- GET /api/account-map/plan
- GET /api/account-map/status
- Root and health endpoints
"""

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.account_mapping_service import get_account_mapping_service
from app.services.query_planner import MAX_PLANNED_QUERIES
from tests.fakes import FakeSearcher, make_service


@pytest.fixture
def api_client(sample_search_results):
    """Test client with the account mapping service wired to in-memory adapters."""
    service = make_service(FakeSearcher(sample_search_results))
    app.dependency_overrides[get_account_mapping_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestRootEndpoints:
    """Test root and health endpoints."""

    def test_root(self, client):
        """Test API metadata."""
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "Account Mapping API"

    def test_health(self, client):
        """Test health check."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestCreateAccountMap:
    """Test POST /api/account-map."""

    def test_returns_account_map(self, api_client):
        """Test a run returns the account map shape."""
        response = api_client.post("/api/account-map", json={"company_name": "Acme", "verify": False})

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"company_snapshot", "org_tree", "role_analysis", "gaps", "citations"}
        assert [m["name"] for m in data["org_tree"]] == ["Jane Doe", "John Smith", "Maria Garcia"]
        assert data["org_tree"][0]["level"] == "C-Suite"
        assert data["role_analysis"][0]["role"] == "economic_buyer"
        assert len(data["citations"]) == 3

    def test_blank_company_name(self, api_client):
        """Test whitespace-only names are rejected."""
        response = api_client.post("/api/account-map", json={"company_name": "   "})
        assert response.status_code == 400
        assert response.json()["detail"] == "Company name cannot be empty"

    def test_empty_company_name(self, api_client):
        """Test empty names fail validation."""
        response = api_client.post("/api/account-map", json={"company_name": ""})
        assert response.status_code == 422

    def test_missing_company_name(self, api_client):
        """Test the company name is required."""
        response = api_client.post("/api/account-map", json={})
        assert response.status_code == 422

    def test_nothing_found_is_still_200(self):
        """Test an empty discovery run is a successful response with gaps."""
        service = make_service()
        app.dependency_overrides[get_account_mapping_service] = lambda: service
        try:
            response = TestClient(app).post("/api/account-map", json={"company_name": "Acme"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        data = response.json()
        assert data["org_tree"] == []
        assert data["citations"] == []
        assert data["gaps"]


class TestAccountMapPlan:
    """Test GET /api/account-map/plan."""

    def test_plan(self, api_client):
        """Test the planned battery is returned."""
        response = api_client.get("/api/account-map/plan", params={"company_name": "Acme"})

        assert response.status_code == 200
        plan = response.json()
        assert len(plan) == MAX_PLANNED_QUERIES
        assert plan[0]["target_sources"] == ["linkedin.com"]
        assert plan[-1]["channel"] == "site_fetch"
        assert plan[-1]["kind"] == "page_fetch"

    def test_plan_with_domain(self, api_client):
        """Test the supplied domain is used for site fetches."""
        response = api_client.get(
            "/api/account-map/plan",
            params={"company_name": "Acme", "company_domain": "acme.io"},
        )
        assert response.json()[-1]["query"].startswith("https://acme.io/")

    def test_plan_requires_company(self, api_client):
        """Test the company name query parameter is required."""
        assert api_client.get("/api/account-map/plan").status_code == 422

    def test_plan_blank_company(self, api_client):
        """Test whitespace-only names are rejected."""
        response = api_client.get("/api/account-map/plan", params={"company_name": "  "})
        assert response.status_code == 400


class TestAccountMapStatus:
    """Test GET /api/account-map/status."""

    def test_status(self, client):
        """Test adapter status fields are reported."""
        response = client.get("/api/account-map/status")

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"search_configured", "search_provider", "llm_extraction"}
        assert data["search_provider"] in {"tavily", "serpapi", "none"}
