"""
Tests for the error envelope, configuration lookups and session verification
"""
import pytest
from jose import jwt

from conftest import CLERK_SESSION_SECRET
from elevora.auth import ClerkSessionVerifier
from elevora.config import config
from elevora.exceptions import AuthenticationMissing, ConfigurationMissing, ErrorResponse
from elevora.logging_config import request_id_var


class TestErrorResponse:
    """Test error body format"""

    def test_basic_envelope(self):
        body = ErrorResponse.create("Workspace not found", "NOT_FOUND", 404, request_id="req-1")

        assert body == {"error": "Workspace not found", "code": "NOT_FOUND", "status_code": 404, "request_id": "req-1"}

    def test_details_do_not_override_envelope(self):
        body = ErrorResponse.create(
            "generation limit reached (10/10)",
            "FORBIDDEN",
            403,
            request_id="req-1",
            details={"currentUsage": 10, "limit": 10, "error": "ignored"},
        )

        assert body["error"] == "generation limit reached (10/10)"
        assert body["currentUsage"] == 10
        assert body["limit"] == 10

    def test_request_id_from_context(self):
        token = request_id_var.set("req-ctx")
        try:
            assert ErrorResponse.create("x", "BAD_REQUEST", 400)["request_id"] == "req-ctx"
        finally:
            request_id_var.reset(token)

    def test_no_request_id_outside_requests(self):
        assert "request_id" not in ErrorResponse.create("x", "BAD_REQUEST", 400)

    def test_request_id_header_echoed(self, client):
        response = client.get("/api/billing/ws/usage/generation", headers={"X-Request-ID": "req-abc"})

        assert response.status_code == 401
        assert response.headers["X-Request-ID"] == "req-abc"
        assert response.json()["request_id"] == "req-abc"
        assert response.json()["code"] == "AUTH_ERROR"


class TestConfig:
    """Test configuration lookups"""

    def test_price_id_from_environment(self, monkeypatch):
        monkeypatch.setenv("STRIPE_PRICE_ID_SOLO_YEARLY", "price_solo_yearly")

        assert config.get_price_id("solo", "yearly") == "price_solo_yearly"

    def test_missing_price_id_names_key(self, monkeypatch):
        monkeypatch.delenv("STRIPE_PRICE_ID_GROWTH_MONTHLY", raising=False)

        with pytest.raises(ConfigurationMissing) as exc_info:
            config.get_price_id("growth", "monthly")

        assert exc_info.value.key == "STRIPE_PRICE_ID_GROWTH_MONTHLY"
        assert "STRIPE_PRICE_ID_GROWTH_MONTHLY" in exc_info.value.message
        assert exc_info.value.status_code == 500

    def test_require_missing_secret(self, monkeypatch):
        monkeypatch.setattr(config, "STRIPE_SECRET_KEY", None)

        with pytest.raises(ConfigurationMissing, match="STRIPE_SECRET_KEY"):
            config.require("STRIPE_SECRET_KEY")

    def test_environment_flags(self):
        assert config.ENV == "test"
        assert config.is_dev is False
        assert config.is_prod is False


class TestClerkSessionVerifier:
    """Test session token verification"""

    @pytest.fixture
    def verifier(self):
        return ClerkSessionVerifier(CLERK_SESSION_SECRET, algorithms=["HS256"])

    def test_subject_returned(self, verifier):
        token = jwt.encode({"sub": "user_abc"}, CLERK_SESSION_SECRET, algorithm="HS256")

        assert verifier.verify(token) == "user_abc"

    def test_wrong_key(self, verifier):
        token = jwt.encode({"sub": "user_abc"}, "some-other-key", algorithm="HS256")

        with pytest.raises(AuthenticationMissing):
            verifier.verify(token)

    def test_expired_token(self, verifier):
        token = jwt.encode({"sub": "user_abc", "exp": 1000}, CLERK_SESSION_SECRET, algorithm="HS256")

        with pytest.raises(AuthenticationMissing):
            verifier.verify(token)

    def test_missing_subject(self, verifier):
        token = jwt.encode({"sid": "sess_1"}, CLERK_SESSION_SECRET, algorithm="HS256")

        with pytest.raises(AuthenticationMissing, match="no subject"):
            verifier.verify(token)
