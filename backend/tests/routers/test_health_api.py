# backend/tests/routers/test_health_api.py
"""
Tests for the root and health endpoints.
"""

from fintrack import main


class TestRoot:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["message"].startswith("Welcome to")
        assert response.json()["docs"] == "/docs"


class TestHealthCheck:
    """Tests for GET /health."""

    def test_healthy_before_any_load(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["checks"]["state"] == {"status": "healthy", "loading": False, "failed_tables": []}

    def test_failed_tables_degrade(self, client, store, state):
        """A table that failed to load is reported but does not cause a 503."""
        store.fail("goals", "select")
        store.fail("bonds", "select")
        state.load_all()

        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["checks"]["state"]["failed_tables"] == ["bonds", "goals"]

    def test_database_down_is_503(self, client, monkeypatch):
        monkeypatch.setattr(main, "check_database_health", lambda: {"status": "unhealthy", "error": "refused"})

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["checks"]["database"]["error"] == "refused"

    def test_liveness(self, client):
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}


class TestErrorFormat:
    """Request validation errors use the standard error body."""

    def test_bad_path_parameter(self, client):
        response = client.get("/accounts/abc")

        assert response.status_code == 422
        assert response.json()["details"][0]["field"] == "path.account_id"
