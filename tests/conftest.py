"""Pytest fixtures for Account Mapping service tests.

This module provides shared fixtures for testing the FastAPI application,
including the test client and in-memory search and fetch adapters.
"""

import pytest
from fastapi.testclient import TestClient

from app.main import app
from tests.fakes import FakeFetcher, FakeSearcher


@pytest.fixture
def client():
    """Create a test client for the FastAPI application.

    Returns:
        TestClient: A test client instance for making requests to the API.
    """
    return TestClient(app)


@pytest.fixture
def fake_searcher():
    """Searcher that returns nothing for every query."""
    return FakeSearcher()


@pytest.fixture
def fake_fetcher():
    """Fetcher that returns empty text for every URL."""
    return FakeFetcher()


@pytest.fixture
def sample_search_results():
    """LinkedIn-style results for a small Acme leadership team.

    Returns:
        dict: Query substring to result list.
    """
    return {
        '"Chief Executive Officer"': [
            {
                "title": "Jane Doe - Chief Executive Officer - Acme | LinkedIn",
                "content": "Jane Doe leads Acme.",
                "url": "https://www.linkedin.com/in/janedoe",
            }
        ],
        '"Chief Technology Officer"': [
            {
                "title": "John Smith - CTO - Acme | LinkedIn",
                "content": "Engineering leadership at Acme.",
                "url": "https://www.linkedin.com/in/johnsmith",
            }
        ],
        '"VP Engineering"': [
            {
                "title": "Maria Garcia - VP Engineering - Acme | LinkedIn",
                "content": "Maria Garcia runs platform engineering.",
                "url": "https://www.linkedin.com/in/mariagarcia",
            }
        ],
    }
