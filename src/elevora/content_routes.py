"""
Content routes - generation gated by the monthly generation limit
"""
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from typing import Any, Optional
import logging

from .auth import require_clerk_user_id
from .db.repositories import Repositories
from .dependencies import get_entitlement_service, get_repositories, get_workspace_service
from .services.entitlement_service import EntitlementService
from .services.usage_counter import UsageAction
from .services.workspace_service import WorkspaceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["content"])


class GenerateRequest(BaseModel):
    """Request to generate content for a workspace"""
    workspaceId: str = Field(..., description="Workspace the generation is billed to")
    content: Any = Field("", description="Generated content to store as a draft")
    platform: Optional[str] = Field(None, description="Target platform, defaults to linkedin")


@router.post("/generate")
async def generate(
    request: GenerateRequest,
    clerk_user_id: str = Depends(require_clerk_user_id),
    workspaces: WorkspaceService = Depends(get_workspace_service),
    entitlements: EntitlementService = Depends(get_entitlement_service),
    repos: Repositories = Depends(get_repositories),
):
    """
    Record a generation if the workspace is under its monthly limit

    Returns the number of generations left this month, or null when the
    plan is unlimited.
    """
    workspaces.resolve_workspace_access(clerk_user_id, request.workspaceId)

    check = entitlements.check_usage_limit(request.workspaceId, UsageAction.GENERATION.value)
    if not check.allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": check.reason or "Generation limit reached",
                "currentUsage": check.current_usage,
                "limit": check.limit,
                "upgradeRequired": True,
            },
        )

    if request.platform:
        repos.usage.record_generation(request.workspaceId, request.content, platform=request.platform)
    else:
        repos.usage.record_generation(request.workspaceId, request.content)

    remaining = None if check.limit is None else check.limit - (check.current_usage + 1)
    logger.info(f"Generation recorded for workspace {request.workspaceId} (remaining: {remaining})")

    return {"success": True, "remaining": remaining}
