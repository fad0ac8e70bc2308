"""
User routes - mirror the signed-in Clerk user on first access
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
import logging

from .auth import require_clerk_user_id
from .dependencies import get_workspace_service
from .services.workspace_service import WorkspaceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


class UserSyncRequest(BaseModel):
    """Profile fields the client reads from its Clerk session"""
    email: str = Field("", description="Primary email address of the signed-in user")


class UserResponse(BaseModel):
    id: str
    clerkId: str
    email: str


@router.post("/sync", response_model=UserResponse)
async def sync_current_user(
    request: UserSyncRequest,
    clerk_user_id: str = Depends(require_clerk_user_id),
    workspaces: WorkspaceService = Depends(get_workspace_service),
):
    """
    Create the caller's user row if the Clerk webhook has not done so yet

    Existing rows are returned unchanged; email changes arrive through
    user.updated.
    """
    user = workspaces.sync_user(clerk_user_id, request.email)
    return {"id": user.id, "clerkId": user.clerk_id, "email": user.email}
