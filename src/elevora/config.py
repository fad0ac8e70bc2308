"""
Central configuration module for Elevora
Reads and validates environment variables with strict checks for production
"""
import os
import sys
from typing import Optional, List

from dotenv import load_dotenv

from .exceptions import ConfigurationMissing

# Only load .env in development
if os.getenv("ENV", "dev").lower() == "dev":
    load_dotenv()


PAID_PLANS = ("solo", "pro", "growth")
BILLING_PERIODS = ("monthly", "yearly")


class Config:
    """Central configuration class with environment variable validation"""

    # Environment
    ENV: str = os.getenv("ENV", "dev").lower()

    # Database - SQLite is accepted for local development only
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./elevora.db")
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "5"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "900"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))

    PORT: int = int(os.getenv("PORT", "8000"))

    # Public web app URL (checkout and portal return URLs)
    APP_URL: str = os.getenv("APP_URL", "http://localhost:3000")

    # CORS
    CORS_ORIGINS: List[str] = []

    # Identity provider - Clerk
    CLERK_WEBHOOK_SECRET: Optional[str] = os.getenv("CLERK_WEBHOOK_SECRET")
    CLERK_JWT_PUBLIC_KEY: Optional[str] = os.getenv("CLERK_JWT_PUBLIC_KEY")
    CLERK_JWT_ALGORITHM: str = os.getenv("CLERK_JWT_ALGORITHM", "RS256")

    # Payment provider - Stripe
    STRIPE_SECRET_KEY: Optional[str] = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET: Optional[str] = os.getenv("STRIPE_WEBHOOK_SECRET")

    # Build version (set during build/deploy)
    BUILD_VERSION: str = os.getenv("BUILD_VERSION", "dev")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    def __init__(self):
        """Initialize configuration and validate required variables"""
        self._load_cors_origins()
        self._validate()

    def _load_cors_origins(self):
        """Load CORS origins from environment variable"""
        default_origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]

        cors_env = os.getenv("CORS_ORIGINS", "")
        if cors_env:
            env_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
            self.CORS_ORIGINS = default_origins + env_origins
        else:
            self.CORS_ORIGINS = default_origins

    def _validate(self):
        """Validate required configuration based on environment"""
        errors = []

        if self.ENV not in ["dev", "test", "staging", "prod"]:
            errors.append(f"Invalid ENV value: {self.ENV}. Must be 'dev', 'test', 'staging', or 'prod'")

        if not self.DATABASE_URL:
            errors.append("DATABASE_URL is required but not set")
        elif self.ENV in ["staging", "prod"] and not self.DATABASE_URL.startswith("postgresql"):
            errors.append(f"DATABASE_URL must be a PostgreSQL connection string in {self.ENV}")

        # Webhook secrets and API keys are required outside dev
        if self.ENV in ["staging", "prod"]:
            for key in ("CLERK_WEBHOOK_SECRET", "CLERK_JWT_PUBLIC_KEY", "STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET"):
                if not getattr(self, key):
                    errors.append(f"{key} is required in {self.ENV}")
            if not self.APP_URL.startswith("https://"):
                errors.append("APP_URL must use HTTPS in staging/production")

        # Fail fast in staging/prod
        if errors and self.ENV in ["staging", "prod"]:
            print("=" * 60, file=sys.stderr)
            print("CONFIGURATION VALIDATION FAILED", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            for error in errors:
                print(f"  - {error}", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            sys.exit(1)

        if errors and self.ENV == "dev":
            print("=" * 60, file=sys.stderr)
            print("CONFIGURATION WARNINGS (dev mode - continuing)", file=sys.stderr)
            print("=" * 60, file=sys.stderr)
            for error in errors:
                print(f"  - {error}", file=sys.stderr)
            print("=" * 60, file=sys.stderr)

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode"""
        return self.ENV == "dev"

    @property
    def is_prod(self) -> bool:
        """Check if running in production mode"""
        return self.ENV == "prod"

    def require(self, key: str) -> str:
        """
        Get a configuration value that must be set at request time

        Raises:
            ConfigurationMissing: naming the missing key
        """
        value = getattr(self, key, None)
        if not value:
            raise ConfigurationMissing(key, f"{key} is not set")
        return value

    def get_price_id(self, plan: str, billing_period: str) -> str:
        """
        Resolve the Stripe price id for a plan and billing period

        Price ids live in STRIPE_PRICE_ID_<PLAN>_<PERIOD>, e.g.
        STRIPE_PRICE_ID_PRO_MONTHLY. They are read on every call so a
        deploy can add prices without a restart of the config object.
        """
        env_key = f"STRIPE_PRICE_ID_{plan.upper()}_{billing_period.upper()}"
        price_id = os.getenv(env_key)
        if not price_id:
            raise ConfigurationMissing(
                env_key,
                f"Price ID not configured for {plan} {billing_period}. Please set {env_key} in the environment",
            )
        return price_id


# Create global config instance
config = Config()
