"""
Usage Counter - current consumption for metered actions
"""
from datetime import datetime, timezone
from typing import Optional
import enum
import logging

from ..db.repositories import UsageRepository, UserRepository, WorkspaceRepository

logger = logging.getLogger(__name__)


class UsageAction(str, enum.Enum):
    """Metered actions"""
    GENERATION = "generation"
    PROFILE = "profile"
    WORKSPACE = "workspace"


def start_of_month(now: Optional[datetime] = None) -> datetime:
    """
    First instant of the current calendar month on the local server clock,
    returned as naive UTC to compare against created_at columns.
    """
    local_now = now or datetime.now()
    local_start = local_now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    # naive datetimes are interpreted as local time by astimezone()
    return local_start.astimezone(timezone.utc).replace(tzinfo=None)


class UsageCounter:
    """Exact counts of persisted rows - never sampled, never cached"""

    def __init__(self, usage: UsageRepository, users: UserRepository, workspaces: WorkspaceRepository):
        self.usage = usage
        self.users = users
        self.workspaces = workspaces

    def count(self, action: str, subject_id: str, now: Optional[datetime] = None) -> int:
        """
        Current usage for an action

        Args:
            action: generation, profile or workspace
            subject_id: workspace id for generation/profile; for workspace
                this is a USER id (the number of workspaces owned by that user)
            now: clock override for tests

        Raises:
            ValueError: for unknown actions
        """
        action = UsageAction(action)

        if action == UsageAction.GENERATION:
            return self.usage.count_generations_since(subject_id, start_of_month(now))

        if action == UsageAction.PROFILE:
            return self.usage.count_profiles(subject_id)

        user = self.users.get_by_id(subject_id)
        if user is None:
            logger.warning(f"Workspace usage requested for unknown user id {subject_id}")
            return 0
        return self.workspaces.count_owned_by(user.id)
