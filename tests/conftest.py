"""
Pytest configuration and fixtures
"""
import base64
import hashlib
import hmac
import json
import os
import sys
import time
from pathlib import Path
from typing import Dict, Optional
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add src to path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

CLERK_WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"clerk-webhook-test-signing-key").decode()
CLERK_SESSION_SECRET = "clerk-session-test-key"
STRIPE_WEBHOOK_SECRET = "whsec_stripe_test_signing_key"

# Set test environment variables before importing
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_URL"] = "https://app.example.com"
os.environ["CLERK_WEBHOOK_SECRET"] = CLERK_WEBHOOK_SECRET
os.environ["CLERK_JWT_PUBLIC_KEY"] = CLERK_SESSION_SECRET
os.environ["CLERK_JWT_ALGORITHM"] = "HS256"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_elevora"
os.environ["STRIPE_WEBHOOK_SECRET"] = STRIPE_WEBHOOK_SECRET
os.environ["STRIPE_PRICE_ID_PRO_MONTHLY"] = "price_pro_monthly"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce log noise in tests

# Import after setting env vars
from elevora.app import app
from elevora.db import Base, get_db
from elevora.db.repositories import build_repositories
from elevora.dependencies import get_stripe_gateway
from elevora.services.billing_gateway import BillingGateway


@pytest.fixture
def test_engine():
    """In-memory SQLite shared across threads so TestClient sees the same data"""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(test_engine):
    """Database session for one test"""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def repos(db_session):
    return build_repositories(db_session)


@pytest.fixture
def owner(repos):
    return repos.users.create("user_owner", "owner@example.com")


@pytest.fixture
def workspace(repos, owner):
    return repos.workspaces.create(owner.id, "Owner workspace")


@pytest.fixture
def stripe_gateway():
    """Stripe gateway fake; construct_event accepts any signature"""
    gateway = Mock(spec=BillingGateway)
    gateway.construct_event.side_effect = lambda payload, signature: json.loads(payload)
    gateway.create_customer.return_value = "cus_new"
    gateway.create_checkout_session.return_value = "https://checkout.stripe.com/c/pay/cs_test"
    gateway.create_portal_session.return_value = "https://billing.stripe.com/p/session/test"
    return gateway


@pytest.fixture
def client(db_session, stripe_gateway):
    """Test client with the database session and Stripe gateway overridden"""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stripe_gateway] = lambda: stripe_gateway

    yield TestClient(app)

    app.dependency_overrides.clear()


def set_billing(repos, workspace_id: str, plan: str, status: str = "active", stripe_customer_id: Optional[str] = None):
    """Seed the billing row for a workspace"""
    return repos.billing_customers.upsert(
        workspace_id=workspace_id,
        stripe_customer_id=stripe_customer_id,
        plan=plan,
        status=status,
        current_period_end=None,
    )


def session_token(clerk_id: str) -> str:
    return jwt.encode({"sub": clerk_id}, CLERK_SESSION_SECRET, algorithm="HS256")


def auth_headers(clerk_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {session_token(clerk_id)}"}


def svix_headers(payload: bytes, msg_id: str = "msg_test", timestamp: Optional[int] = None,
                 secret: str = CLERK_WEBHOOK_SECRET) -> Dict[str, str]:
    """Headers Svix would send for payload"""
    timestamp = str(timestamp if timestamp is not None else int(time.time()))
    key = base64.b64decode(secret[len("whsec_"):])
    to_sign = f"{msg_id}.{timestamp}.".encode() + payload
    signature = base64.b64encode(hmac.new(key, to_sign, hashlib.sha256).digest()).decode()
    return {
        "svix-id": msg_id,
        "svix-timestamp": timestamp,
        "svix-signature": f"v1,{signature}",
        "Content-Type": "application/json",
    }


def stripe_signature(payload: bytes, timestamp: Optional[int] = None,
                     secret: str = STRIPE_WEBHOOK_SECRET) -> str:
    """stripe-signature header value for payload"""
    timestamp = timestamp if timestamp is not None else int(time.time())
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"
