"""
Tests for Clerk identity webhooks
"""
import base64
import hashlib
import hmac
import json
import time

import pytest
from unittest.mock import Mock

from conftest import CLERK_WEBHOOK_SECRET, svix_headers
from elevora.db.models import User
from elevora.exceptions import MalformedEvent, UpstreamFailure, VerificationFailed
from elevora.services.identity_webhooks import IdentityReconciler, SvixWebhookVerifier, primary_email


def user_event(event_type, user_id="user_abc", email="ada@example.com"):
    data = {"id": user_id, "object": "user"}
    if event_type != "user.deleted":
        data["primary_email_address_id"] = "idn_1"
        data["email_addresses"] = [
            {"id": "idn_0", "email_address": "old@example.com"},
            {"id": "idn_1", "email_address": email},
        ]
    else:
        data["deleted"] = True
    return {"type": event_type, "object": "event", "data": data}


class TestSvixWebhookVerifier:
    """Test signature verification"""

    @pytest.fixture
    def verifier(self):
        return SvixWebhookVerifier(CLERK_WEBHOOK_SECRET)

    def test_valid_signature(self, verifier):
        payload = json.dumps(user_event("user.created")).encode()
        headers = svix_headers(payload, msg_id="msg_1")

        event = verifier.verify(payload, "msg_1", headers["svix-timestamp"], headers["svix-signature"])

        assert event["type"] == "user.created"

    def test_any_listed_signature_may_match(self, verifier):
        payload = b'{"type": "user.created", "data": {"id": "u"}}'
        headers = svix_headers(payload, msg_id="msg_1")
        rotated = f"v1,bm90LXRoZS1yaWdodC1zaWduYXR1cmU= {headers['svix-signature']}"

        assert verifier.verify(payload, "msg_1", headers["svix-timestamp"], rotated)["data"]["id"] == "u"

    def test_tampered_body_rejected(self, verifier):
        payload = b'{"type": "user.created", "data": {"id": "u"}}'
        headers = svix_headers(payload, msg_id="msg_1")

        with pytest.raises(VerificationFailed, match="No matching signature"):
            verifier.verify(payload.replace(b'"u"', b'"x"'), "msg_1", headers["svix-timestamp"], headers["svix-signature"])

    def test_wrong_secret_rejected(self, verifier):
        payload = b'{"type": "user.created", "data": {"id": "u"}}'
        headers = svix_headers(payload, msg_id="msg_1", secret="whsec_b3RoZXItc2VjcmV0LWtleQ==")

        with pytest.raises(VerificationFailed):
            verifier.verify(payload, "msg_1", headers["svix-timestamp"], headers["svix-signature"])

    def test_stale_timestamp_rejected(self, verifier):
        payload = b"{}"
        sent_at = int(time.time()) - 600
        headers = svix_headers(payload, msg_id="msg_1", timestamp=sent_at)

        with pytest.raises(VerificationFailed, match="too old"):
            verifier.verify(payload, "msg_1", headers["svix-timestamp"], headers["svix-signature"])

    def test_future_timestamp_rejected(self, verifier):
        payload = b"{}"
        sent_at = int(time.time()) + 600
        headers = svix_headers(payload, msg_id="msg_1", timestamp=sent_at)

        with pytest.raises(VerificationFailed, match="too new"):
            verifier.verify(payload, "msg_1", headers["svix-timestamp"], headers["svix-signature"])

    def test_non_numeric_timestamp_rejected(self, verifier):
        with pytest.raises(VerificationFailed, match="Invalid signature headers"):
            verifier.verify(b"{}", "msg_1", "yesterday", "v1,abc")

    def test_secret_with_non_alphabet_chars_used_as_raw_bytes(self):
        payload = b"{}"
        expected = base64.b64encode(
            hmac.new(b"abcd-efgh", b"msg_1.1700000000." + payload, hashlib.sha256).digest()
        ).decode()

        assert SvixWebhookVerifier("whsec_abcd-efgh").sign("msg_1", "1700000000", payload) == expected


class TestPrimaryEmail:
    """Test email selection"""

    def test_primary_address_wins(self):
        assert primary_email(user_event("user.created")["data"]) == "ada@example.com"

    def test_falls_back_to_first_address(self):
        data = {"email_addresses": [{"id": "a", "email_address": "first@example.com"}]}
        assert primary_email(data) == "first@example.com"

    def test_no_addresses(self):
        assert primary_email({"id": "u"}) == ""


class TestIdentityReconciler:
    """Test user mirroring"""

    @pytest.fixture
    def reconciler(self, repos):
        return IdentityReconciler(repos.users)

    def test_user_created(self, reconciler, repos):
        assert reconciler.handle_event(user_event("user.created")) == "created"

        user = repos.users.get_by_clerk_id("user_abc")
        assert user.email == "ada@example.com"

    def test_duplicate_user_created_is_noop(self, reconciler, db_session):
        event = user_event("user.created")

        assert reconciler.handle_event(event) == "created"
        assert reconciler.handle_event(event) == "duplicate"

        assert db_session.query(User).filter(User.clerk_id == "user_abc").count() == 1

    def test_user_updated(self, reconciler, repos):
        reconciler.handle_event(user_event("user.created"))

        assert reconciler.handle_event(user_event("user.updated", email="new@example.com")) == "updated"
        assert repos.users.get_by_clerk_id("user_abc").email == "new@example.com"

    def test_user_updated_before_created(self, reconciler, db_session):
        assert reconciler.handle_event(user_event("user.updated")) == "missing"
        assert db_session.query(User).count() == 0

    def test_user_deleted(self, reconciler, repos):
        reconciler.handle_event(user_event("user.created"))

        assert reconciler.handle_event(user_event("user.deleted")) == "deleted"
        assert repos.users.get_by_clerk_id("user_abc") is None

    def test_user_deleted_twice(self, reconciler):
        reconciler.handle_event(user_event("user.created"))
        reconciler.handle_event(user_event("user.deleted"))

        assert reconciler.handle_event(user_event("user.deleted")) == "missing"

    def test_deleted_without_id_rejected_without_mutation(self):
        users = Mock()
        event = {"type": "user.deleted", "data": {"deleted": True}}

        with pytest.raises(MalformedEvent):
            IdentityReconciler(users).handle_event(event)

        assert users.mock_calls == []

    def test_missing_type_or_data(self, reconciler):
        with pytest.raises(MalformedEvent):
            reconciler.handle_event({"data": {"id": "u"}})
        with pytest.raises(MalformedEvent):
            reconciler.handle_event({"type": "user.created"})

    def test_other_event_types_ignored(self, reconciler):
        assert reconciler.handle_event({"type": "session.created", "data": {"id": "sess_1"}}) == "ignored"

    def test_email_addresses_must_be_objects(self):
        users = Mock()
        event = {"type": "user.updated", "data": {"id": "user_abc", "email_addresses": ["x@example.com"]}}

        with pytest.raises(MalformedEvent):
            IdentityReconciler(users).handle_event(event)
        users.update_email_by_clerk_id.assert_not_called()

    def test_persistence_failure(self):
        users = Mock()
        users.get_by_clerk_id.return_value = None
        users.create.side_effect = RuntimeError("database is locked")

        with pytest.raises(UpstreamFailure):
            IdentityReconciler(users).handle_event(user_event("user.created"))


class TestClerkWebhookRoute:
    """Test POST /api/webhooks/clerk"""

    def post(self, client, event, headers=None):
        payload = json.dumps(event).encode()
        return client.post(
            "/api/webhooks/clerk",
            content=payload,
            headers=headers if headers is not None else svix_headers(payload),
        )

    def test_user_created(self, client, repos):
        response = self.post(client, user_event("user.created"))

        assert response.status_code == 200
        assert response.json() == {"status": "success"}
        assert repos.users.get_by_clerk_id("user_abc") is not None

    def test_redelivery_answers_200_without_duplicate(self, client, db_session):
        assert self.post(client, user_event("user.created")).status_code == 200
        assert self.post(client, user_event("user.created")).status_code == 200

        assert db_session.query(User).count() == 1

    def test_missing_headers(self, client):
        response = self.post(client, user_event("user.created"), headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing svix headers"

    def test_bad_signature(self, client, db_session):
        payload = json.dumps(user_event("user.created")).encode()
        headers = svix_headers(payload)
        headers["svix-signature"] = "v1,aW52YWxpZA=="

        response = client.post("/api/webhooks/clerk", content=payload, headers=headers)

        assert response.status_code == 400
        assert response.json()["code"] == "VERIFICATION_FAILED"
        assert db_session.query(User).count() == 0

    def test_deleted_without_id(self, client, repos, owner, db_session):
        response = self.post(client, {"type": "user.deleted", "data": {"deleted": True}})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing user id"
        assert db_session.query(User).count() == 1

    @pytest.mark.parametrize("addresses", [["x@example.com"], "x@example.com", [{"id": "a"}, "b"]])
    def test_malformed_email_addresses(self, client, db_session, addresses):
        event = {"type": "user.created", "data": {"id": "user_abc", "email_addresses": addresses}}

        response = self.post(client, event)

        assert response.status_code == 400
        assert response.json()["error"] == "Malformed email_addresses"
        assert db_session.query(User).count() == 0
