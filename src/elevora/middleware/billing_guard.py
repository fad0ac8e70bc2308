"""
Dependencies for plan-based access control and feature gating

Usage:
    @router.get("/{workspace_id}/analytics")
    async def analytics(check: PlanCheckResult = Depends(require_feature("hasAnalytics"))):
        ...
"""
import logging

from fastapi import Depends, HTTPException, status

from ..auth import require_clerk_user_id
from ..dependencies import get_entitlement_service, get_workspace_service
from ..services.entitlement_service import EntitlementService, PlanCheckResult, UsageCheckResult
from ..services.workspace_service import WorkspaceAccess, WorkspaceService

logger = logging.getLogger(__name__)


def required_plan_for(feature: str) -> str:
    """Cheapest plan to suggest when a feature is denied"""
    return "pro" if feature in ("hasAnalytics", "has_analytics") else "growth"


def require_workspace_access(
    workspace_id: str,
    clerk_user_id: str = Depends(require_clerk_user_id),
    workspaces: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceAccess:
    """401 without a session, 404 for unknown user/workspace, 403 for non-members"""
    return workspaces.resolve_workspace_access(clerk_user_id, workspace_id)


def require_feature(feature: str):
    """Deny with 403 {error, requiredPlan} unless the workspace's plan includes feature"""

    def dependency(
        workspace_id: str,
        access: WorkspaceAccess = Depends(require_workspace_access),
        entitlements: EntitlementService = Depends(get_entitlement_service),
    ) -> PlanCheckResult:
        result = entitlements.check_plan_feature(workspace_id, feature)
        if not result.allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": result.reason or "Feature not available",
                    "requiredPlan": required_plan_for(feature),
                },
            )
        return result

    return dependency


def require_action_within_limit(action: str):
    """Deny with 403 {error, currentUsage, limit} once the action's ceiling is reached"""

    def dependency(
        workspace_id: str,
        access: WorkspaceAccess = Depends(require_workspace_access),
        entitlements: EntitlementService = Depends(get_entitlement_service),
    ) -> UsageCheckResult:
        result = entitlements.check_usage_limit(workspace_id, action)
        if not result.allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": result.reason or "Usage limit reached",
                    "currentUsage": result.current_usage,
                    "limit": result.limit,
                },
            )
        return result

    return dependency


def require_active_subscription(
    workspace_id: str,
    access: WorkspaceAccess = Depends(require_workspace_access),
    entitlements: EntitlementService = Depends(get_entitlement_service),
) -> WorkspaceAccess:
    """403 unless the workspace's billing status is active or trialing"""
    try:
        state = entitlements.get_billing_state(workspace_id)
    except Exception as e:
        logger.error(f"Error checking subscription status for workspace {workspace_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error checking subscription status",
        )

    if not state.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "Active subscription required", "status": state.status},
        )
    return access
