# backend/tests/routers/test_bonds_api.py
"""
Tests for bond catalog search, including its fixed-window gate.
"""

from fintrack.config import settings


class TestBondSearch:

    def test_search(self, client):
        response = client.get("/bonds/search", params={"q": "SGB"})

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "SGB"
        assert data["count"] == 4

    def test_empty_query_lists_catalog(self, client):
        data = client.get("/bonds/search").json()

        assert data["count"] == 21

    def test_invalid_query_is_400(self, client):
        response = client.get("/bonds/search", params={"q": "sgb;drop"})

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "q"}


class TestSearchGate:
    """The gate allows RATE_LIMIT_MAX_REQUESTS searches per window per client."""

    def test_limit_then_429(self, client):
        for _ in range(settings.rate_limit_max_requests):
            assert client.get("/bonds/search", params={"q": "nhai"}).status_code == 200

        response = client.get("/bonds/search", params={"q": "nhai"})

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.json()["error"] == "RateLimitError"

    def test_other_routes_are_not_gated(self, client):
        for _ in range(settings.rate_limit_max_requests + 1):
            client.get("/bonds/search")

        assert client.get("/dashboard/").status_code == 200
