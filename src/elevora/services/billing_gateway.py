"""
Billing Gateway - payment provider interface
Stripe is the only provider; the abstract base lets tests substitute fakes
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
import json
import logging

import stripe

from ..exceptions import VerificationFailed

logger = logging.getLogger(__name__)


class BillingGateway(ABC):
    """Abstract base class for payment providers"""

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Verify a webhook delivery and return the event as a plain dict"""
        pass

    @abstractmethod
    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Fetch a subscription as a plain dict"""
        pass

    @abstractmethod
    def create_customer(self, email: str, metadata: Optional[Dict] = None) -> str:
        """Create a customer and return its id"""
        pass

    @abstractmethod
    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict] = None,
    ) -> str:
        """Create a subscription checkout session and return its URL"""
        pass

    @abstractmethod
    def create_portal_session(self, customer_id: str, return_url: str) -> str:
        """Create a billing portal session and return its URL"""
        pass


def _to_plain(obj: Any) -> Dict[str, Any]:
    """StripeObject -> nested plain dict (str() renders the object as JSON)"""
    if isinstance(obj, dict) and not isinstance(obj, stripe.StripeObject):
        return obj
    return json.loads(str(obj))


class StripeGateway(BillingGateway):
    """Stripe payment gateway"""

    def __init__(self, api_key: str, webhook_secret: str):
        """
        Initialize Stripe gateway

        The API key is passed on every call instead of being set on the
        stripe module, so gateways built per request share no state.

        Args:
            api_key: Stripe secret API key (test or live)
            webhook_secret: Stripe webhook signing secret
        """
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify the stripe-signature header against the raw body

        Raises:
            VerificationFailed: on a bad signature or an unparseable body
        """
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise VerificationFailed(f"Webhook Error: {e}")
        except ValueError as e:
            raise VerificationFailed(f"Webhook Error: Invalid payload ({e})")

        # The verified body is the event; parse it ourselves to get plain dicts
        return json.loads(payload)

    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        try:
            subscription = stripe.Subscription.retrieve(subscription_id, api_key=self.api_key)
        except Exception as e:
            logger.error(f"Stripe subscription retrieval failed for {subscription_id}: {e}")
            raise
        return _to_plain(subscription)

    def create_customer(self, email: str, metadata: Optional[Dict] = None) -> str:
        try:
            customer = stripe.Customer.create(
                email=email,
                metadata=metadata or {},
                api_key=self.api_key,
            )
        except Exception as e:
            logger.error(f"Stripe customer creation failed: {e}")
            raise
        return customer.id

    def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Optional[Dict] = None,
    ) -> str:
        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=success_url,
                cancel_url=cancel_url,
                metadata=metadata or {},
                api_key=self.api_key,
            )
        except Exception as e:
            logger.error(f"Stripe checkout session creation failed: {e}")
            raise
        return session.url

    def create_portal_session(self, customer_id: str, return_url: str) -> str:
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
                api_key=self.api_key,
            )
        except Exception as e:
            logger.error(f"Stripe portal session creation failed: {e}")
            raise
        return session.url


def get_billing_gateway(config) -> BillingGateway:
    """
    Build the Stripe gateway from config

    Raises:
        ConfigurationMissing: when the API key or webhook secret is not set
    """
    api_key = config.require("STRIPE_SECRET_KEY")
    webhook_secret = config.require("STRIPE_WEBHOOK_SECRET")
    return StripeGateway(api_key, webhook_secret)
