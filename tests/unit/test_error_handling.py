"""Unit tests for the envelope, exception handlers, middleware and service routes."""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from timberledger import __version__
from timberledger.api.errors import DUPLICATE_RECORD_MESSAGE, GENERIC_ERROR_MESSAGE
from timberledger.exceptions import NotFoundError, PersistenceError
from timberledger.main import app


@pytest.fixture
def production():
    """Render errors as in production mode."""
    with patch("timberledger.api.errors.get_settings") as mock_settings:
        mock_settings.return_value = MagicMock(is_production=True)
        yield


@pytest.fixture
def lenient_client(client):
    """Client that returns 500 responses instead of re-raising server errors."""
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


def _fail_species_listing(exc):
    return patch(
        "timberledger.api.wood_species.WoodSpeciesRepository",
        **{"return_value.find_all": AsyncMock(side_effect=exc)},
    )


class TestServiceRoutes:
    def test_welcome(self, client):
        response = client.get("/")

        assert response.status_code == 200
        body = response.json()
        assert body == {
            "success": True,
            "message": "Welcome to the Timber Ledger API",
            "data": {"version": __version__},
            "timestamp": body["timestamp"],
        }

    def test_health_ok(self, client):
        with patch("timberledger.api.routes.db_health_check", new_callable=AsyncMock) as check:
            check.return_value = True

            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["data"]["database"] == "healthy"

    def test_health_degraded(self, client):
        with patch("timberledger.api.routes.db_health_check", new_callable=AsyncMock) as check:
            check.return_value = False

            response = client.get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["success"] is False
        assert body["data"]["status"] == "degraded"


class TestUnknownRoutes:
    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["message"] == "Route GET /api/nothing-here not found"

    def test_wrong_method(self, client):
        response = client.patch("/api/wood-species/")

        assert response.status_code == 405
        assert response.json()["success"] is False


class TestDevelopmentErrors:
    def test_domain_error_carries_detail(self, client):
        with patch("timberledger.api.wood_lots.WoodLotRepository") as MockRepository:
            MockRepository.return_value.get_wood_lot_details = AsyncMock(
                side_effect=NotFoundError("Wood lot missing")
            )

            response = client.get(f"/api/wood-lots/{uuid4()}")

        body = response.json()
        assert body["error"] == {"type": "NotFoundError", "detail": "Wood lot missing"}
        assert isinstance(body["stack"], list)

    def test_unhandled_error_is_500_with_stack(self, lenient_client):
        with _fail_species_listing(RuntimeError("boom")):
            response = lenient_client.get("/api/wood-species/")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["message"] == GENERIC_ERROR_MESSAGE
        assert body["error"]["type"] == "RuntimeError"
        assert body["error"]["detail"] == "boom"
        assert body["stack"]

    def test_unique_violation_is_409_with_detail(self, client):
        with _fail_species_listing(
            PersistenceError("duplicate key", unique_violation=True)
        ):
            response = client.get("/api/wood-species/")

        assert response.status_code == 409
        body = response.json()
        assert body["message"] == DUPLICATE_RECORD_MESSAGE
        assert body["error"]["detail"] == "duplicate key"


class TestProductionErrors:
    def test_unhandled_error_hides_detail(self, lenient_client, production):
        with _fail_species_listing(RuntimeError("connection string leaked")):
            response = lenient_client.get("/api/wood-species/")

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == GENERIC_ERROR_MESSAGE
        assert "error" not in body
        assert "stack" not in body
        assert "leaked" not in response.text

    def test_persistence_error_is_generic(self, client, production):
        with _fail_species_listing(PersistenceError("Failed to query wood_species")):
            response = client.get("/api/wood-species/")

        assert response.status_code == 500
        assert response.json()["message"] == GENERIC_ERROR_MESSAGE

    def test_unique_violation_is_409(self, client, production):
        with _fail_species_listing(
            PersistenceError("duplicate key", unique_violation=True)
        ):
            response = client.get("/api/wood-species/")

        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "message": DUPLICATE_RECORD_MESSAGE,
            "timestamp": response.json()["timestamp"],
        }

    def test_client_errors_keep_message(self, client, production):
        response = client.get("/api/users/profile")

        assert response.status_code == 401
        assert response.json()["message"] == "Authentication required. Please log in."
        assert "error" not in response.json()


class TestCorrelationId:
    def test_incoming_id_is_echoed(self, client):
        response = client.get("/", headers={"X-Correlation-Id": "corr-42"})

        assert response.headers["X-Correlation-Id"] == "corr-42"

    def test_id_generated_when_absent(self, client):
        response = client.get("/")

        assert response.headers["X-Correlation-Id"]

    def test_error_responses_carry_id(self, client):
        response = client.get("/api/nothing-here", headers={"X-Correlation-Id": "corr-43"})

        assert response.headers["X-Correlation-Id"] == "corr-43"
