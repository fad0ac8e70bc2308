"""
Workspace Service - user sync and workspace access checks
"""
from dataclasses import dataclass
import logging

from ..db.models import User, Workspace, WorkspaceMemberRole
from ..db.repositories import Repositories
from ..exceptions import AccessDenied, NotFound

logger = logging.getLogger(__name__)


@dataclass
class WorkspaceAccess:
    user: User
    workspace: Workspace
    role: str


class WorkspaceService:
    """Resolves the caller's database user and their access to workspaces"""

    def __init__(self, repos: Repositories):
        self.repos = repos

    def sync_user(self, clerk_id: str, email: str) -> User:
        """Mirror a signed-in Clerk user on first access; existing rows are returned as-is"""
        return self.repos.users.get_or_create(clerk_id, email)

    def get_user(self, clerk_id: str) -> User:
        user = self.repos.users.get_by_clerk_id(clerk_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def get_owned_workspace(self, user: User) -> Workspace:
        """The user's own workspace (checkout and portal assume one per user)"""
        workspace = self.repos.workspaces.get_owned_by(user.id)
        if workspace is None:
            raise NotFound("Workspace not found")
        return workspace

    def resolve_workspace_access(self, clerk_id: str, workspace_id: str) -> WorkspaceAccess:
        """
        Check that the caller owns or belongs to a workspace

        Raises:
            NotFound: unknown user or workspace
            AccessDenied: the user is neither owner nor member
        """
        user = self.repos.users.get_by_clerk_id(clerk_id)
        if user is None:
            raise NotFound("User not found in database")

        workspace = self.repos.workspaces.get(workspace_id)
        if workspace is None:
            raise NotFound("Workspace not found")

        if workspace.owner == user.id:
            return WorkspaceAccess(user=user, workspace=workspace, role=WorkspaceMemberRole.OWNER.value)

        role = self.repos.workspaces.get_membership_role(workspace_id, user.id)
        if role is None:
            logger.warning(f"User {user.id} denied access to workspace {workspace_id}")
            raise AccessDenied("Access denied: User is not a member of this workspace")

        return WorkspaceAccess(user=user, workspace=workspace, role=role)
