"""Tests for the document listing endpoint."""

import pytest
from fastapi.testclient import TestClient

from seekpage.db.memory import MemoryStore
from seekpage.errors.problem_details import StoreError
from seekpage.main import create_app
from seekpage.routes.documents import get_document_store

URL = "/v1/collections/notes/documents"


class FailingStore(MemoryStore):
    """Memory store whose queries always fail."""

    async def find(self, query):
        raise StoreError("Database error: connection reset")


@pytest.fixture
def app(counter_store):
    """App whose documents route reads the counter store."""
    app = create_app()
    app.dependency_overrides[get_document_store] = lambda: counter_store
    return app


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


def _counters(response):
    return [doc["counter"] for doc in response.json()["results"]]


class TestListDocuments:
    """Test GET /v1/collections/{collection}/documents."""

    def test_first_page(self, client):
        """Test the default order and page metadata."""
        response = client.get(URL, params={"limit": 3})

        assert response.status_code == 200
        data = response.json()
        assert _counters(response) == [8, 7, 6]
        assert data["has_next"] is True
        assert data["has_previous"] is False
        assert data["total_count"] is None

    def test_follow_cursors(self, client):
        """Test paging forward and back with returned cursors."""
        first = client.get(URL, params={"limit": 3}).json()
        second = client.get(URL, params={"limit": 3, "next": first["next"]})
        back = client.get(URL, params={"limit": 3, "previous": second.json()["previous"]})

        assert _counters(second) == [5, 4, 3]
        assert _counters(back) == [8, 7, 6]
        assert back.json()["has_previous"] is False

    def test_link_header(self, client):
        """Test that the Link header carries cursors and keeps other parameters."""
        response = client.get(URL, params={"limit": 3, "sort": "-counter"})

        link = response.headers["link"]
        assert 'rel="next"' in link
        assert "limit=3" in link
        assert "sort=-counter" in link
        assert 'rel="prev"' not in link

    def test_sort_parameter(self, client):
        """Test ascending sort by a field."""
        response = client.get(URL, params={"limit": 2, "sort": "counter"})

        assert _counters(response) == [1, 2]

    def test_fields_parameter(self, client):
        """Test that only requested fields are returned."""
        response = client.get(URL, params={"limit": 2, "fields": "title"})

        assert response.json()["results"] == [{"title": "Note 8"}, {"title": "Note 7"}]

    def test_get_total(self, client):
        """Test that the total count is included on request."""
        response = client.get(URL, params={"limit": 2, "get_total": "true"})

        assert response.json()["total_count"] == 8

    def test_invalid_cursor(self, client):
        """Test that a corrupt cursor is a problem response."""
        response = client.get(URL, params={"next": "%%%"})

        assert response.status_code == 400
        assert response.headers["content-type"] == "application/problem+json"
        assert response.json()["type"] == "urn:seekpage:problem:invalid-cursor"

    def test_invalid_sort(self, client):
        """Test that a repeated sort field is rejected."""
        response = client.get(URL, params={"sort": "counter,counter"})

        assert response.status_code == 400
        assert "Invalid sort parameter" in response.json()["detail"]

    def test_store_failure(self, app):
        """Test that store failures surface as 503."""
        app.dependency_overrides[get_document_store] = lambda: FailingStore()

        response = TestClient(app).get(URL)

        assert response.status_code == 503
        assert response.json()["type"] == "urn:seekpage:problem:store-error"
