"""
Workspace and WorkspaceMember models
"""
from datetime import datetime
import enum

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..base import Base
from .user import generate_uuid


class WorkspaceMemberRole(str, enum.Enum):
    """Workspace member role enum"""
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class Workspace(Base):
    """Tenant unit owning billing state, members and generated content"""
    __tablename__ = "workspaces"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    owner = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    owner_user = relationship("User", back_populates="workspaces")
    members = relationship("WorkspaceMember", back_populates="workspace", cascade="all, delete-orphan")
    billing_customer = relationship("BillingCustomer", back_populates="workspace", uselist=False, cascade="all, delete-orphan")
    voice_profiles = relationship("VoiceProfile", back_populates="workspace", cascade="all, delete-orphan")
    generated_posts = relationship("GeneratedPost", back_populates="workspace", cascade="all, delete-orphan")


class WorkspaceMember(Base):
    """Workspace membership"""
    __tablename__ = "workspace_members"

    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    role = Column(String, nullable=False, default=WorkspaceMemberRole.MEMBER.value)

    # Relationships
    workspace = relationship("Workspace", back_populates="members")
    user = relationship("User", back_populates="memberships")
