"""
Billing customer model - one Stripe customer per workspace
"""
import enum

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..base import Base


class BillingPlan(str, enum.Enum):
    """Billing plan enum"""
    FREE = "free"
    SOLO = "solo"
    PRO = "pro"
    GROWTH = "growth"


class BillingStatus(str, enum.Enum):
    """
    Subscription statuses this service writes or reads explicitly.
    The column itself is free text: Stripe statuses are stored verbatim.
    """
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    PENDING = "pending"
    INACTIVE = "inactive"


ACTIVE_STATUSES = (BillingStatus.ACTIVE.value, BillingStatus.TRIALING.value)


class BillingCustomer(Base):
    """Billing state for a workspace"""
    __tablename__ = "billing_customers"

    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True)
    stripe_customer_id = Column(String, unique=True, index=True, nullable=True)
    plan = Column(String, nullable=False, default=BillingPlan.FREE.value)
    status = Column(String, nullable=False, default=BillingStatus.PENDING.value)
    current_period_end = Column(DateTime, nullable=True)

    # Relationships
    workspace = relationship("Workspace", back_populates="billing_customer")
