"""
Content models - voice profiles and generated posts
"""
from datetime import datetime
import enum

from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from ..base import Base
from .user import generate_uuid


class PostPlatform(str, enum.Enum):
    """Target platform for a generated post"""
    X = "x"
    LINKEDIN = "linkedin"
    INSTAGRAM = "instagram"
    THREADS = "threads"
    BLUESKY = "bluesky"
    TIKTOK = "tiktok"
    NEWSLETTER = "newsletter"


class PostStatus(str, enum.Enum):
    """Generated post lifecycle status"""
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    POSTED = "posted"
    FAILED = "failed"


class VoiceProfile(Base):
    """Brand voice profile used to steer generation"""
    __tablename__ = "voice_profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    notes = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    workspace = relationship("Workspace", back_populates="voice_profiles")


class GeneratedPost(Base):
    """A generated post - counted for monthly generation limits"""
    __tablename__ = "generated_posts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    workspace_id = Column(String(36), ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    platform = Column(String, nullable=False, default=PostPlatform.LINKEDIN.value)
    content = Column(JSON, nullable=False)
    status = Column(String, nullable=False, default=PostStatus.DRAFT.value)
    scheduled_at = Column(DateTime, nullable=True)
    posted_at = Column(DateTime, nullable=True)
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    workspace = relationship("Workspace", back_populates="generated_posts")
