"""
FastAPI dependencies shared by the routers
"""
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from .auth import get_current_clerk_user_id
from .config import config
from .db.engine import get_db
from .db.repositories import Repositories, build_repositories
from .services.billing_gateway import BillingGateway, get_billing_gateway
from .services.entitlement_service import EntitlementService
from .services.identity_webhooks import SvixWebhookVerifier
from .services.workspace_service import WorkspaceService


def get_repositories(db: Session = Depends(get_db)) -> Repositories:
    return build_repositories(db)


def get_stripe_gateway() -> BillingGateway:
    """Raises ConfigurationMissing (500) when Stripe keys are not set"""
    return get_billing_gateway(config)


def get_svix_verifier() -> SvixWebhookVerifier:
    return SvixWebhookVerifier(config.require("CLERK_WEBHOOK_SECRET"))


def get_workspace_service(repos: Repositories = Depends(get_repositories)) -> WorkspaceService:
    return WorkspaceService(repos)


def get_entitlement_service(
    repos: Repositories = Depends(get_repositories),
    clerk_user_id: Optional[str] = Depends(get_current_clerk_user_id),
) -> EntitlementService:
    return EntitlementService(repos, clerk_user_id)
