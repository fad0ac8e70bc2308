"""
Plan catalog - entitlement limits per billing plan
"""
from dataclasses import dataclass, asdict
from typing import Dict, Optional, Union

from ..db.models.billing import BillingPlan


# API names (camelCase) -> PlanLimits attribute
FEATURE_FIELDS = {
    "workspaces": "workspaces",
    "profiles": "profiles",
    "generationsPerMonth": "generations_per_month",
    "hasAnalytics": "has_analytics",
    "hasExperiments": "has_experiments",
    "hasScheduling": "has_scheduling",
}


@dataclass(frozen=True)
class PlanLimits:
    """Limits for one plan. generations_per_month of None means unlimited."""
    workspaces: int
    profiles: int
    generations_per_month: Optional[int]
    has_analytics: bool
    has_experiments: bool
    has_scheduling: bool

    def value_of(self, feature: str) -> Union[int, bool, None]:
        """
        Look up a feature by API name (hasAnalytics) or attribute name (has_analytics)

        Raises:
            KeyError: for names that are not a plan limit
        """
        field = FEATURE_FIELDS.get(feature, feature)
        if field not in FEATURE_FIELDS.values():
            raise KeyError(feature)
        return getattr(self, field)

    def to_dict(self) -> Dict[str, Union[int, bool, None]]:
        values = asdict(self)
        return {api_name: values[field] for api_name, field in FEATURE_FIELDS.items()}


PLAN_LIMITS: Dict[str, PlanLimits] = {
    BillingPlan.FREE.value: PlanLimits(
        workspaces=1,
        profiles=1,
        generations_per_month=10,
        has_analytics=False,
        has_experiments=False,
        has_scheduling=False,
    ),
    BillingPlan.SOLO.value: PlanLimits(
        workspaces=1,
        profiles=1,
        generations_per_month=30,
        has_analytics=False,
        has_experiments=False,
        has_scheduling=False,
    ),
    BillingPlan.PRO.value: PlanLimits(
        workspaces=3,
        profiles=3,
        generations_per_month=200,
        has_analytics=True,
        has_experiments=False,
        has_scheduling=False,
    ),
    BillingPlan.GROWTH.value: PlanLimits(
        workspaces=10,
        profiles=10,
        generations_per_month=None,
        has_analytics=True,
        has_experiments=True,
        has_scheduling=True,
    ),
}


def normalize_plan(plan: Optional[str]) -> str:
    """Map any value outside the plan enum to free"""
    if isinstance(plan, BillingPlan):
        return plan.value
    if plan in PLAN_LIMITS:
        return plan
    return BillingPlan.FREE.value


def get_plan_limits(plan: Optional[str]) -> PlanLimits:
    """Limits for a plan; unknown or missing plans get the free limits"""
    return PLAN_LIMITS[normalize_plan(plan)]


def plan_has_feature(plan: Optional[str], feature: str) -> bool:
    """
    Static check against the catalog only (no subscription status).
    True when the limit is enabled (True) or unlimited (None).
    """
    value = get_plan_limits(plan).value_of(feature)
    return value is True or value is None
