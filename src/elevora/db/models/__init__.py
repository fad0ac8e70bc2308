"""
Database models for Elevora
"""
from .user import User
from .workspace import Workspace, WorkspaceMember, WorkspaceMemberRole
from .billing import BillingCustomer, BillingPlan, BillingStatus, ACTIVE_STATUSES
from .content import VoiceProfile, GeneratedPost, PostPlatform, PostStatus

__all__ = [
    "User",
    "Workspace",
    "WorkspaceMember",
    "WorkspaceMemberRole",
    "BillingCustomer",
    "BillingPlan",
    "BillingStatus",
    "ACTIVE_STATUSES",
    "VoiceProfile",
    "GeneratedPost",
    "PostPlatform",
    "PostStatus",
]
