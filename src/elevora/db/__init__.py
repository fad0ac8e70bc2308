"""
Database module for Elevora
"""
from .engine import engine, SessionLocal, get_db, init_db
from .base import Base
from .models import (
    User,
    Workspace,
    WorkspaceMember,
    BillingCustomer,
    VoiceProfile,
    GeneratedPost,
)

__all__ = [
    "engine",
    "SessionLocal",
    "get_db",
    "init_db",
    "Base",
    "User",
    "Workspace",
    "WorkspaceMember",
    "BillingCustomer",
    "VoiceProfile",
    "GeneratedPost",
]
