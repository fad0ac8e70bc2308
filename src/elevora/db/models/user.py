"""
User model - mirror of the identity provider's user record
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from ..base import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    """User account mirrored from Clerk"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    clerk_id = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    workspaces = relationship("Workspace", back_populates="owner_user", cascade="all, delete-orphan")
    memberships = relationship("WorkspaceMember", back_populates="user", cascade="all, delete-orphan")
