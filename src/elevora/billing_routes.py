"""
Billing API routes - Stripe checkout, customer portal and entitlement reads
"""
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from typing import Optional
import logging

from .auth import require_clerk_user_id
from .config import config, PAID_PLANS, BILLING_PERIODS
from .db.repositories import Repositories
from .dependencies import get_entitlement_service, get_repositories, get_stripe_gateway, get_workspace_service
from .exceptions import ElevoraError
from .middleware.billing_guard import require_workspace_access
from .services.billing_gateway import BillingGateway
from .services.entitlement_service import EntitlementService
from .services.workspace_service import WorkspaceAccess, WorkspaceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["billing"])


class CheckoutRequest(BaseModel):
    """Request to start a subscription checkout"""
    plan: Optional[str] = Field(None, description="Plan name: solo, pro or growth")
    billingPeriod: Optional[str] = Field(None, description="Billing period: monthly or yearly")


@router.post("/checkout")
async def create_checkout(
    request: CheckoutRequest,
    clerk_user_id: str = Depends(require_clerk_user_id),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    repos: Repositories = Depends(get_repositories),
    gateway: BillingGateway = Depends(get_stripe_gateway),
):
    """
    Create a Stripe checkout session for the caller's workspace

    The subscription only becomes active when checkout.session.completed
    arrives on the billing webhook.
    """
    if not request.plan or not request.billingPeriod:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing plan or billingPeriod",
        )

    plan = request.plan.lower()
    billing_period = request.billingPeriod.lower()
    if plan not in PAID_PLANS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid plan: {request.plan}. Must be one of: {', '.join(PAID_PLANS)}",
        )
    if billing_period not in BILLING_PERIODS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid billingPeriod: {request.billingPeriod}. Must be one of: {', '.join(BILLING_PERIODS)}",
        )

    user = workspaces.get_user(clerk_user_id)
    workspace = workspaces.get_owned_workspace(user)

    # Fail before touching Stripe when the price is not configured
    price_id = config.get_price_id(plan, billing_period)

    try:
        billing_customer = repos.billing_customers.get_by_workspace(workspace.id)

        if billing_customer and billing_customer.stripe_customer_id:
            customer_id = billing_customer.stripe_customer_id
        else:
            customer_id = gateway.create_customer(
                email=user.email,
                metadata={
                    "clerk_user_id": clerk_user_id,
                    "user_id": user.id,
                    "workspace_id": workspace.id,
                },
            )
            repos.billing_customers.create_pending(workspace.id, customer_id, plan)
            logger.info(f"Created Stripe customer {customer_id} for workspace {workspace.id}")

        url = gateway.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=f"{config.APP_URL}/dashboard?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{config.APP_URL}/pricing",
            metadata={
                "workspace_id": workspace.id,
                "user_id": user.id,
                "clerk_user_id": clerk_user_id,
            },
        )
    except ElevoraError:
        raise
    except Exception as e:
        logger.error(f"Checkout session creation failed for workspace {workspace.id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session",
        )

    return {"url": url}


@router.post("/create-portal-session")
async def create_portal_session(
    clerk_user_id: str = Depends(require_clerk_user_id),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    repos: Repositories = Depends(get_repositories),
    gateway: BillingGateway = Depends(get_stripe_gateway),
):
    """Create a Stripe customer portal session for the caller's workspace"""
    user = workspaces.get_user(clerk_user_id)
    workspace = workspaces.get_owned_workspace(user)

    billing_customer = repos.billing_customers.get_by_workspace(workspace.id)
    if not billing_customer or not billing_customer.stripe_customer_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active subscription found",
        )

    try:
        url = gateway.create_portal_session(
            customer_id=billing_customer.stripe_customer_id,
            return_url=f"{config.APP_URL}/settings",
        )
    except Exception as e:
        logger.error(f"Portal session creation failed for workspace {workspace.id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create portal session",
        )

    return {"url": url}


@router.get("/billing/{workspace_id}/features/{feature}")
async def get_feature_access(
    workspace_id: str,
    feature: str,
    access: WorkspaceAccess = Depends(require_workspace_access),
    entitlements: EntitlementService = Depends(get_entitlement_service),
):
    """Plan check result for one feature of a workspace"""
    return entitlements.check_plan_feature(workspace_id, feature).to_dict()


@router.get("/billing/{workspace_id}/usage/{action}")
async def get_usage(
    workspace_id: str,
    action: str,
    access: WorkspaceAccess = Depends(require_workspace_access),
    entitlements: EntitlementService = Depends(get_entitlement_service),
):
    """Usage check result for one metered action of a workspace"""
    return entitlements.check_usage_limit(workspace_id, action).to_dict()
