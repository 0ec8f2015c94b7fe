"""Application settings.

Values are read from the environment (and an optional ``.env`` file) by
pydantic-settings. Billing constants live here only as configuration input;
the domain receives them through ``BillingConfig`` at construction time.
"""

from typing import Optional

from pydantic import PostgresDsn, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ledgerline.core.config.enums import Environment


class Settings(BaseSettings):
    """Ledgerline backend settings.

    Attributes:
    ----------
        PROJECT_NAME (str): Name shown in the OpenAPI schema.
        ENVIRONMENT (Environment): Deployment environment.
        LOG_LEVEL (str): Root log level.
        POSTGRES_* (str): PostgreSQL connection parts.
        DATABASE_URL_OVERRIDE (str): Full async URL that replaces the computed DSN.
        ADMIN_API_KEY (str): Shared secret expected in the ``X-Admin-Key`` header.
        STRIPE_SECRET_KEY (str): Stripe API key; billing runs gateway-less without it.
        STRIPE_WEBHOOK_SECRET (str): Secret for verifying Stripe webhook signatures.
        METRICS_PORT (int): Port of the internal Prometheus scrape server.

    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    PROJECT_NAME: str = "Ledgerline"
    ENVIRONMENT: Environment = Environment.LOCAL
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
    TESTING: bool = False

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "ledgerline"
    POSTGRES_PASSWORD: str = "ledgerline"
    POSTGRES_DB: str = "ledgerline"
    POSTGRES_SSLMODE: str = "prefer"
    DATABASE_URL_OVERRIDE: Optional[str] = None
    db_pool_size: int = 20
    db_pool_max_overflow: int = 40
    DB_STATEMENT_TIMEOUT_SECONDS: int = 15
    RUN_ALEMBIC_MIGRATIONS: bool = False

    # Auth
    ADMIN_API_KEY: Optional[str] = None

    # Payments
    BILLING_ENABLED: bool = True
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = 10.0

    # Metrics (served on a separate port)
    METRICS_ENABLED: bool = True
    METRICS_HOST: str = "0.0.0.0"
    METRICS_PORT: int = 9090

    # Billing constants
    SIGNUP_CREDIT_CENTS: int = 200
    FIRST_TOPUP_BONUS_PERCENT: int = 20
    FIRST_TOPUP_BONUS_CAP_CENTS: int = 500
    PLATFORM_FEE_BPS: int = 1400
    MAX_AMOUNT_CENTS: int = 100_000_000
    MAX_TOKENS_PER_CALL: int = 10_000_000
    MAX_PRICE_MICRO_PER_TOKEN: int = 100_000_000_000
    BALANCE_CAS_MAX_ATTEMPTS: int = 5
    IDEMPOTENCY_RETENTION_DAYS: int = 90
    RECONCILIATION_TOLERANCE_CENTS: int = 100
    LOW_BALANCE_THRESHOLD_CENTS: int = 100

    @field_validator("FIRST_TOPUP_BONUS_PERCENT")
    @classmethod
    def _validate_bonus_percent(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("FIRST_TOPUP_BONUS_PERCENT must be between 0 and 100")
        return v

    @field_validator("PLATFORM_FEE_BPS")
    @classmethod
    def _validate_fee_bps(cls, v: int) -> int:
        if not 0 <= v <= 10_000:
            raise ValueError("PLATFORM_FEE_BPS must be between 0 and 10000")
        return v

    @field_validator("BALANCE_CAS_MAX_ATTEMPTS")
    @classmethod
    def _validate_cas_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("BALANCE_CAS_MAX_ATTEMPTS must be at least 1")
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_ASYNC_DATABASE_URI(self) -> str:  # noqa: N802
        """Async database URI, honoring ``DATABASE_URL_OVERRIDE`` when set."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                host=self.POSTGRES_HOST,
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,
            )
        )

    @property
    def is_local(self) -> bool:
        """Whether the app runs in a developer environment."""
        return self.ENVIRONMENT in (Environment.LOCAL, Environment.TEST)
