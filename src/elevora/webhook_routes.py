"""
Webhook routes - identity (Clerk via Svix) and billing (Stripe) events

Both endpoints verify the raw body before any handler logic runs.
Non-2xx answers make the provider redeliver.
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status
import logging

from .db.repositories import Repositories
from .dependencies import get_repositories, get_stripe_gateway, get_svix_verifier
from .exceptions import ElevoraError
from .services.billing_gateway import BillingGateway
from .services.billing_reconciler import BillingReconciler
from .services.identity_webhooks import IdentityReconciler, SvixWebhookVerifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/clerk")
async def clerk_webhook(
    request: Request,
    verifier: SvixWebhookVerifier = Depends(get_svix_verifier),
    repos: Repositories = Depends(get_repositories),
):
    """
    Clerk user lifecycle webhook

    400 on missing headers, bad signature or malformed payload;
    500 when persistence fails.
    """
    svix_id = request.headers.get("svix-id")
    svix_timestamp = request.headers.get("svix-timestamp")
    svix_signature = request.headers.get("svix-signature")

    if not svix_id or not svix_timestamp or not svix_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing svix headers",
        )

    body = await request.body()
    event = verifier.verify(body, svix_id, svix_timestamp, svix_signature)

    outcome = IdentityReconciler(repos.users).handle_event(event)
    logger.info(f"Clerk webhook {svix_id} ({event.get('type')}): {outcome}")

    return {"status": "success"}


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    gateway: BillingGateway = Depends(get_stripe_gateway),
    repos: Repositories = Depends(get_repositories),
):
    """
    Stripe billing webhook

    Recognized and ignored event types both answer {received: true};
    unexpected failures answer 500 so Stripe retries.
    """
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing stripe-signature header",
        )

    body = await request.body()
    event = gateway.construct_event(body, signature)

    try:
        BillingReconciler(repos.billing_customers, gateway).handle_event(event)
    except ElevoraError:
        raise
    except Exception as e:
        logger.error(f"Stripe webhook {event.get('id')} ({event.get('type')}) failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook handler failed",
        )

    return {"received": True}
