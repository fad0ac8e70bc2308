"""
Typed repositories - one per entity

Services depend on these narrow interfaces rather than on raw query
building, so tests can pass Mock repositories and assert call counts.
Mutating methods commit; callers own the request-scoped session.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from .models import (
    User,
    Workspace,
    WorkspaceMember,
    WorkspaceMemberRole,
    BillingCustomer,
    BillingStatus,
    VoiceProfile,
    GeneratedPost,
    PostPlatform,
    PostStatus,
)

# Distinguishes "leave column untouched" from "set column to NULL"
UNSET: Any = object()


class UserRepository:
    """Users mirrored from the identity provider"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_clerk_id(self, clerk_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.clerk_id == clerk_id).first()

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def create(self, clerk_id: str, email: str) -> User:
        """Insert a user row. Raises IntegrityError if the clerk id already exists."""
        user = User(clerk_id=clerk_id, email=email)
        self.db.add(user)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(user)
        return user

    def update_email_by_clerk_id(self, clerk_id: str, email: str) -> bool:
        """Returns False when no row matched"""
        updated = (
            self.db.query(User)
            .filter(User.clerk_id == clerk_id)
            .update({User.email: email}, synchronize_session=False)
        )
        self.db.commit()
        return updated > 0

    def delete_by_clerk_id(self, clerk_id: str) -> bool:
        """Returns False when no row matched"""
        user = self.get_by_clerk_id(clerk_id)
        if user is None:
            return False
        self.db.delete(user)
        self.db.commit()
        return True

    def get_or_create(self, clerk_id: str, email: str) -> User:
        existing = self.get_by_clerk_id(clerk_id)
        if existing:
            return existing
        return self.create(clerk_id, email)


class WorkspaceRepository:
    """Workspaces and memberships"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, workspace_id: str) -> Optional[Workspace]:
        return self.db.query(Workspace).filter(Workspace.id == workspace_id).first()

    def get_owned_by(self, user_id: str) -> Optional[Workspace]:
        """First workspace owned by the user (users start with a single workspace)"""
        return (
            self.db.query(Workspace)
            .filter(Workspace.owner == user_id)
            .order_by(Workspace.created_at.asc())
            .first()
        )

    def get_membership_role(self, workspace_id: str, user_id: str) -> Optional[str]:
        member = (
            self.db.query(WorkspaceMember)
            .filter(WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.user_id == user_id)
            .first()
        )
        return member.role if member else None

    def count_owned_by(self, user_id: str) -> int:
        return self.db.query(Workspace).filter(Workspace.owner == user_id).count()

    def create(self, owner_id: str, name: str) -> Workspace:
        """Create a workspace and its owner membership row"""
        workspace = Workspace(owner=owner_id, name=name)
        self.db.add(workspace)
        self.db.flush()
        self.db.add(WorkspaceMember(
            workspace_id=workspace.id,
            user_id=owner_id,
            role=WorkspaceMemberRole.OWNER.value,
        ))
        self.db.commit()
        self.db.refresh(workspace)
        return workspace


class BillingCustomerRepository:
    """Billing state keyed by workspace id"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_workspace(self, workspace_id: str) -> Optional[BillingCustomer]:
        return self.db.query(BillingCustomer).filter(BillingCustomer.workspace_id == workspace_id).first()

    def get_by_stripe_customer(self, stripe_customer_id: str) -> Optional[BillingCustomer]:
        return (
            self.db.query(BillingCustomer)
            .filter(BillingCustomer.stripe_customer_id == stripe_customer_id)
            .first()
        )

    def create_pending(self, workspace_id: str, stripe_customer_id: str, plan: str) -> BillingCustomer:
        """Record a Stripe customer before checkout completes"""
        customer = self.get_by_workspace(workspace_id)
        if customer is None:
            customer = BillingCustomer(workspace_id=workspace_id, status=BillingStatus.PENDING.value)
            self.db.add(customer)
        customer.stripe_customer_id = stripe_customer_id
        customer.plan = plan
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def upsert(
        self,
        workspace_id: str,
        stripe_customer_id: Optional[str],
        plan: str,
        status: str,
        current_period_end: Optional[datetime],
    ) -> BillingCustomer:
        """Insert or overwrite the billing row for a workspace"""
        customer = self.get_by_workspace(workspace_id)
        if customer is None:
            customer = BillingCustomer(workspace_id=workspace_id)
            self.db.add(customer)

        if stripe_customer_id:
            customer.stripe_customer_id = stripe_customer_id
        customer.plan = plan
        customer.status = status
        customer.current_period_end = current_period_end

        self.db.commit()
        self.db.refresh(customer)
        return customer

    def update_by_workspace(
        self,
        workspace_id: str,
        plan: str,
        status: str,
        current_period_end: Optional[datetime],
    ) -> bool:
        updated = (
            self.db.query(BillingCustomer)
            .filter(BillingCustomer.workspace_id == workspace_id)
            .update(
                {
                    BillingCustomer.plan: plan,
                    BillingCustomer.status: status,
                    BillingCustomer.current_period_end: current_period_end,
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated > 0

    def update_by_stripe_customer(
        self,
        stripe_customer_id: str,
        status: str,
        current_period_end: Optional[datetime] = UNSET,
    ) -> bool:
        """Update status (and period end when given); plan is never touched"""
        if not stripe_customer_id:
            # Would match every row without a customer
            return False

        values = {BillingCustomer.status: status}
        if current_period_end is not UNSET:
            values[BillingCustomer.current_period_end] = current_period_end

        updated = (
            self.db.query(BillingCustomer)
            .filter(BillingCustomer.stripe_customer_id == stripe_customer_id)
            .update(values, synchronize_session=False)
        )
        self.db.commit()
        return updated > 0


class UsageRepository:
    """Exact counts over content rows for usage metering"""

    def __init__(self, db: Session):
        self.db = db

    def count_generations_since(self, workspace_id: str, since: datetime) -> int:
        return (
            self.db.query(GeneratedPost)
            .filter(GeneratedPost.workspace_id == workspace_id, GeneratedPost.created_at >= since)
            .count()
        )

    def count_profiles(self, workspace_id: str) -> int:
        return self.db.query(VoiceProfile).filter(VoiceProfile.workspace_id == workspace_id).count()

    def record_generation(
        self,
        workspace_id: str,
        content: Any,
        platform: str = PostPlatform.LINKEDIN.value,
    ) -> GeneratedPost:
        post = GeneratedPost(
            workspace_id=workspace_id,
            platform=platform,
            content=content,
            status=PostStatus.DRAFT.value,
        )
        self.db.add(post)
        self.db.commit()
        self.db.refresh(post)
        return post


@dataclass
class Repositories:
    """Per-request bundle of repositories"""
    users: UserRepository
    workspaces: WorkspaceRepository
    billing_customers: BillingCustomerRepository
    usage: UsageRepository


def build_repositories(db: Session) -> Repositories:
    return Repositories(
        users=UserRepository(db),
        workspaces=WorkspaceRepository(db),
        billing_customers=BillingCustomerRepository(db),
        usage=UsageRepository(db),
    )


__all__ = [
    "UNSET",
    "UserRepository",
    "WorkspaceRepository",
    "BillingCustomerRepository",
    "UsageRepository",
    "Repositories",
    "build_repositories",
]
