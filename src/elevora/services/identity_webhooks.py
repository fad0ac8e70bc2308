"""
Identity webhooks - Svix signature verification and the Clerk user reconciler
"""
import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

from ..db.repositories import UserRepository
from ..exceptions import MalformedEvent, UpstreamFailure, VerificationFailed

logger = logging.getLogger(__name__)


USER_CREATED = "user.created"
USER_UPDATED = "user.updated"
USER_DELETED = "user.deleted"


class SvixWebhookVerifier:
    """
    Verifies Svix-signed deliveries (used by Clerk)

    The signature is base64(HMAC-SHA256(secret, "{id}.{timestamp}.{body}")).
    The header may carry several space-separated "v1,<signature>" entries
    during secret rotation; any match is accepted.
    """

    SECRET_PREFIX = "whsec_"
    TOLERANCE_SECONDS = 5 * 60

    def __init__(self, secret: str):
        if secret.startswith(self.SECRET_PREFIX):
            secret = secret[len(self.SECRET_PREFIX):]
        try:
            self._key = base64.b64decode(secret, validate=True)
        except ValueError:
            # Not base64: use the raw secret bytes
            self._key = secret.encode()

    def sign(self, msg_id: str, timestamp: str, payload: bytes) -> str:
        """Compute the v1 signature for a delivery"""
        to_sign = f"{msg_id}.{timestamp}.".encode() + payload
        digest = hmac.new(self._key, to_sign, hashlib.sha256).digest()
        return base64.b64encode(digest).decode()

    def verify(
        self,
        payload: bytes,
        msg_id: str,
        timestamp: str,
        signature_header: str,
        now: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Verify a delivery and return the parsed event

        Raises:
            VerificationFailed: bad timestamp, no matching signature or a
                body that is not a JSON object
        """
        try:
            sent_at = int(timestamp)
        except (TypeError, ValueError):
            raise VerificationFailed("Invalid signature headers")

        current = int(now if now is not None else time.time())
        if sent_at < current - self.TOLERANCE_SECONDS:
            raise VerificationFailed("Message timestamp too old")
        if sent_at > current + self.TOLERANCE_SECONDS:
            raise VerificationFailed("Message timestamp too new")

        expected = self.sign(msg_id, timestamp, payload)
        for entry in signature_header.split():
            version, _, candidate = entry.partition(",")
            if version != "v1":
                continue
            if hmac.compare_digest(expected, candidate):
                break
        else:
            raise VerificationFailed("No matching signature found")

        try:
            event = json.loads(payload)
        except ValueError:
            raise VerificationFailed("Payload is not valid JSON")
        if not isinstance(event, dict):
            raise VerificationFailed("Payload is not a JSON object")
        return event


def primary_email(data: Dict[str, Any]) -> str:
    """Primary email address of a Clerk user payload, or the first one, or empty"""
    addresses = data.get("email_addresses") or []
    primary_id = data.get("primary_email_address_id")

    for address in addresses:
        if primary_id and address.get("id") == primary_id:
            return address.get("email_address") or ""
    if addresses:
        return addresses[0].get("email_address") or ""
    return ""


class IdentityReconciler:
    """Mirrors Clerk user lifecycle events into the users table"""

    def __init__(self, users: UserRepository):
        self.users = users

    def handle_event(self, event: Dict[str, Any]) -> str:
        """
        Apply one event

        Returns:
            A short outcome label (created, duplicate, updated, missing,
            deleted, ignored) for logging and tests

        Raises:
            MalformedEvent: when the payload lacks type/data or a user id
            UpstreamFailure: when persistence fails
        """
        event_type = event.get("type")
        data = event.get("data")
        if not event_type or not isinstance(data, dict):
            raise MalformedEvent("Malformed webhook payload")

        if event_type not in (USER_CREATED, USER_UPDATED, USER_DELETED):
            logger.info(f"Ignoring identity event type: {event_type}")
            return "ignored"

        clerk_id = data.get("id")
        if not clerk_id:
            raise MalformedEvent("Missing user id")
        if event_type != USER_DELETED:
            addresses = data.get("email_addresses")
            if addresses is not None and (
                not isinstance(addresses, list) or not all(isinstance(a, dict) for a in addresses)
            ):
                raise MalformedEvent("Malformed email_addresses")

        try:
            if event_type == USER_CREATED:
                return self._user_created(clerk_id, primary_email(data))
            if event_type == USER_UPDATED:
                return self._user_updated(clerk_id, primary_email(data))
            return self._user_deleted(clerk_id)
        except Exception as e:
            logger.error(f"Error handling {event_type} for {clerk_id}: {e}", exc_info=True)
            raise UpstreamFailure(f"Error processing {event_type}")

    def _user_created(self, clerk_id: str, email: str) -> str:
        if self.users.get_by_clerk_id(clerk_id):
            logger.info(f"Duplicate user.created delivery for {clerk_id}, skipping")
            return "duplicate"
        try:
            self.users.create(clerk_id, email)
        except IntegrityError:
            # A concurrent delivery inserted the row first
            logger.info(f"User {clerk_id} inserted concurrently, treating as duplicate")
            return "duplicate"
        logger.info(f"Created user {clerk_id}")
        return "created"

    def _user_updated(self, clerk_id: str, email: str) -> str:
        if not self.users.update_email_by_clerk_id(clerk_id, email):
            logger.warning(f"user.updated for unknown user {clerk_id} (out-of-order delivery?)")
            return "missing"
        logger.info(f"Updated user {clerk_id}")
        return "updated"

    def _user_deleted(self, clerk_id: str) -> str:
        if not self.users.delete_by_clerk_id(clerk_id):
            logger.info(f"user.deleted for unknown user {clerk_id}, nothing to delete")
            return "missing"
        logger.info(f"Deleted user {clerk_id}")
        return "deleted"
