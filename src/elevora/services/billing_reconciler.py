"""
Billing Reconciler - mirrors Stripe lifecycle events into billing_customers

Missing local mappings are logged and dropped: a non-2xx answer makes
Stripe redeliver, and redelivering cannot create the missing mapping.
Anything else that goes wrong propagates so the route answers 500 and
Stripe retries.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from ..db.models.billing import BillingPlan, BillingStatus
from ..db.repositories import BillingCustomerRepository
from .billing_gateway import BillingGateway
from .plan_limits import PLAN_LIMITS

logger = logging.getLogger(__name__)


CHECKOUT_COMPLETED = "checkout.session.completed"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"
INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


def epoch_to_datetime(value: Optional[int]) -> Optional[datetime]:
    """Epoch seconds -> naive UTC datetime, None stays None"""
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)


def _first_item(subscription: Dict[str, Any]) -> Dict[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def derive_plan(subscription: Dict[str, Any]) -> str:
    """Plan from the first item's price metadata, free when absent or unknown"""
    price = _first_item(subscription).get("price") or {}
    plan = (price.get("metadata") or {}).get("plan")
    if plan in PLAN_LIMITS:
        return plan
    if plan:
        logger.warning(f"Unknown plan '{plan}' in price metadata for subscription {subscription.get('id')}, using free")
    return BillingPlan.FREE.value


def derive_period_end(subscription: Dict[str, Any]) -> Optional[datetime]:
    # Newer API versions carry the period on the subscription item
    value = subscription.get("current_period_end") or _first_item(subscription).get("current_period_end")
    return epoch_to_datetime(value)


def _customer_id(obj: Dict[str, Any]) -> Optional[str]:
    customer = obj.get("customer")
    if isinstance(customer, dict):
        return customer.get("id")
    return customer


def _invoice_subscription_id(invoice: Dict[str, Any]) -> Optional[str]:
    subscription = invoice.get("subscription")
    if not subscription:
        # Newer API versions nest it under parent.subscription_details
        details = (invoice.get("parent") or {}).get("subscription_details") or {}
        subscription = details.get("subscription")
    if isinstance(subscription, dict):
        return subscription.get("id")
    return subscription


class BillingReconciler:
    """Applies one Stripe event at a time; every branch is idempotent"""

    def __init__(self, billing_customers: BillingCustomerRepository, gateway: BillingGateway):
        self.billing_customers = billing_customers
        self.gateway = gateway

    def handle_event(self, event: Dict[str, Any]) -> bool:
        """
        Dispatch on event type

        Returns:
            True when local state was written, False when the event was
            dropped or is a type we do not track
        """
        event_type = event.get("type", "")
        obj = (event.get("data") or {}).get("object") or {}

        if event_type == CHECKOUT_COMPLETED:
            return self._checkout_completed(obj)
        if event_type in (SUBSCRIPTION_UPDATED, SUBSCRIPTION_DELETED):
            return self._subscription_changed(event_type, obj)
        if event_type == INVOICE_PAYMENT_SUCCEEDED:
            return self._invoice_paid(obj)
        if event_type == INVOICE_PAYMENT_FAILED:
            return self._invoice_failed(obj)

        logger.info(f"Unhandled event type: {event_type}")
        return False

    def _checkout_completed(self, session: Dict[str, Any]) -> bool:
        workspace_id = (session.get("metadata") or {}).get("workspace_id")
        if not workspace_id:
            logger.error(f"No workspace_id in session metadata for checkout session {session.get('id')}")
            return False

        subscription_id = session.get("subscription")
        if isinstance(subscription_id, dict):
            subscription_id = subscription_id.get("id")
        if not subscription_id:
            logger.warning(f"Checkout session {session.get('id')} has no subscription, ignoring")
            return False

        subscription = self.gateway.retrieve_subscription(subscription_id)

        self.billing_customers.upsert(
            workspace_id=workspace_id,
            stripe_customer_id=_customer_id(session),
            plan=derive_plan(subscription),
            status=subscription.get("status") or BillingStatus.PENDING.value,
            current_period_end=derive_period_end(subscription),
        )
        logger.info(f"Checkout completed for workspace {workspace_id} (subscription {subscription_id})")
        return True

    def _subscription_changed(self, event_type: str, subscription: Dict[str, Any]) -> bool:
        customer_id = _customer_id(subscription)
        billing_customer = self.billing_customers.get_by_stripe_customer(customer_id) if customer_id else None

        if billing_customer is None:
            logger.error(f"Billing customer not found for customer: {customer_id}")
            return False

        workspace_id = billing_customer.workspace_id

        if event_type == SUBSCRIPTION_DELETED:
            # Immediate downgrade, no grace period
            self.billing_customers.update_by_workspace(
                workspace_id,
                plan=BillingPlan.FREE.value,
                status=BillingStatus.CANCELED.value,
                current_period_end=None,
            )
            logger.info(f"Subscription deleted, workspace {workspace_id} downgraded to free")
            return True

        plan = derive_plan(subscription)
        self.billing_customers.update_by_workspace(
            workspace_id,
            plan=plan,
            status=subscription.get("status") or BillingStatus.INACTIVE.value,
            current_period_end=derive_period_end(subscription),
        )
        logger.info(f"Subscription updated for workspace {workspace_id}: plan={plan} status={subscription.get('status')}")
        return True

    def _invoice_paid(self, invoice: Dict[str, Any]) -> bool:
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id:
            # One-off invoices do not affect subscription state
            return False

        customer_id = _customer_id(invoice)
        if not customer_id:
            logger.error(f"No customer on invoice {invoice.get('id')}, ignoring")
            return False

        subscription = self.gateway.retrieve_subscription(subscription_id)

        updated = self.billing_customers.update_by_stripe_customer(
            customer_id,
            status=subscription.get("status") or BillingStatus.ACTIVE.value,
            current_period_end=derive_period_end(subscription),
        )
        if not updated:
            logger.error(f"Billing customer not found for customer: {customer_id}")
        return updated

    def _invoice_failed(self, invoice: Dict[str, Any]) -> bool:
        customer_id = _customer_id(invoice)
        if not customer_id:
            logger.error(f"No customer on invoice {invoice.get('id')}, ignoring")
            return False

        updated = self.billing_customers.update_by_stripe_customer(
            customer_id,
            status=BillingStatus.PAST_DUE.value,
        )
        if not updated:
            logger.error(f"Billing customer not found for customer: {customer_id}")
        return updated
