"""
Entitlement Service - allow/deny decisions for plan features and metered actions

Checks are read-only and fail closed: any error while evaluating turns
into a deny on the free plan, never an exception to the caller.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
import logging

from ..db.models.billing import BillingCustomer, BillingPlan, BillingStatus, ACTIVE_STATUSES
from ..db.repositories import Repositories
from .plan_limits import PlanLimits, get_plan_limits, normalize_plan
from .usage_counter import UsageAction, UsageCounter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillingState:
    """Effective billing state for a workspace, always fully defined"""
    plan: str
    status: str
    current_period_end: Optional[datetime]

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def limits(self) -> PlanLimits:
        return get_plan_limits(self.plan)


def resolve_billing_state(customer: Optional[BillingCustomer]) -> BillingState:
    """A missing record (or missing fields) means free / inactive"""
    if customer is None:
        return BillingState(
            plan=BillingPlan.FREE.value,
            status=BillingStatus.INACTIVE.value,
            current_period_end=None,
        )
    return BillingState(
        plan=normalize_plan(customer.plan),
        status=customer.status or BillingStatus.INACTIVE.value,
        current_period_end=customer.current_period_end,
    )


@dataclass
class PlanCheckResult:
    allowed: bool
    plan: str
    limits: PlanLimits
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "allowed": self.allowed,
            "plan": self.plan,
            "limits": self.limits.to_dict(),
        }
        if self.reason is not None:
            data["reason"] = self.reason
        return data


@dataclass
class UsageCheckResult(PlanCheckResult):
    current_usage: int = 0
    limit: Optional[int] = field(default=0)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["currentUsage"] = self.current_usage
        data["limit"] = self.limit
        return data


# Metered action -> PlanLimits attribute holding its ceiling
ACTION_LIMIT_FIELDS = {
    UsageAction.GENERATION: "generations_per_month",
    UsageAction.PROFILE: "profiles",
    UsageAction.WORKSPACE: "workspaces",
}


def _denied_free(reason: str) -> PlanCheckResult:
    return PlanCheckResult(
        allowed=False,
        plan=BillingPlan.FREE.value,
        limits=get_plan_limits(BillingPlan.FREE.value),
        reason=reason,
    )


def _denied_usage(reason: str) -> UsageCheckResult:
    return UsageCheckResult(
        allowed=False,
        plan=BillingPlan.FREE.value,
        limits=get_plan_limits(BillingPlan.FREE.value),
        reason=reason,
        current_usage=0,
        limit=0,
    )


class EntitlementService:
    """
    Entitlement checks for one request

    Args:
        repos: request-scoped repositories
        caller_id: verified identity-provider user id, or None when the
            request is unauthenticated
    """

    def __init__(self, repos: Repositories, caller_id: Optional[str]):
        self.repos = repos
        self.caller_id = caller_id
        self.usage_counter = UsageCounter(repos.usage, repos.users, repos.workspaces)

    def get_billing_state(self, workspace_id: str) -> BillingState:
        return resolve_billing_state(self.repos.billing_customers.get_by_workspace(workspace_id))

    def check_plan_feature(self, workspace_id: str, feature: str) -> PlanCheckResult:
        """
        Check whether a workspace's plan includes a feature

        Boolean features are allowed when true; numeric features when
        unlimited (None) or greater than zero. Requires an active or
        trialing subscription.
        """
        if not self.caller_id:
            return _denied_free("User not authenticated")

        try:
            state = self.get_billing_state(workspace_id)
            limits = state.limits

            if not state.is_active:
                return PlanCheckResult(
                    allowed=False,
                    plan=state.plan,
                    limits=limits,
                    reason="Subscription is not active",
                )

            value = limits.value_of(feature)

            if isinstance(value, bool):
                return PlanCheckResult(
                    allowed=value,
                    plan=state.plan,
                    limits=limits,
                    reason=None if value else f"Feature not available on {state.plan} plan",
                )

            allowed = value is None or value > 0
            return PlanCheckResult(
                allowed=allowed,
                plan=state.plan,
                limits=limits,
                reason=None if allowed else f"Limit reached for {state.plan} plan",
            )
        except Exception as e:
            logger.error(f"Error checking plan feature {feature} for workspace {workspace_id}: {e}", exc_info=True)
            return _denied_free("Error checking plan")

    def check_usage_limit(self, workspace_id: str, action: str, now: Optional[datetime] = None) -> UsageCheckResult:
        """
        Check whether a metered action is still within the plan's ceiling

        For the workspace action the id is treated as a USER id and the
        count is the number of workspaces that user owns. The plan is
        still looked up with the same id, so it resolves to free unless a
        billing row happens to be keyed by it.
        """
        if not self.caller_id:
            return _denied_usage("User not authenticated")

        try:
            usage_action = UsageAction(action)
            state = self.get_billing_state(workspace_id)
            limits = state.limits
            limit = getattr(limits, ACTION_LIMIT_FIELDS[usage_action])

            current_usage = self.usage_counter.count(usage_action, workspace_id, now=now)

            allowed = limit is None or current_usage < limit
            return UsageCheckResult(
                allowed=allowed,
                plan=state.plan,
                limits=limits,
                reason=None if allowed else f"{usage_action.value} limit reached ({current_usage}/{limit})",
                current_usage=current_usage,
                limit=limit,
            )
        except Exception as e:
            logger.error(f"Error checking usage limit {action} for {workspace_id}: {e}", exc_info=True)
            return _denied_usage("Error checking usage")
