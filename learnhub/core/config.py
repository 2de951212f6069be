import logging
from typing import List, Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Application Information
    app_name: str = Field(default="LearnHub")
    app_description: str = Field(default="Online course storefront")
    app_version: str = Field(default="1.0.0")
    app_url: str = Field(default="http://localhost:8000")
    frontend_url: str = Field(default="http://localhost:3000")
    debug: bool = Field(default=True)
    production: bool = Field(default=False)

    # Database Configuration
    # A full URL wins over the individual parts below
    database_url: Optional[str] = Field(default=None)
    db_host: str = Field(default="127.0.0.1")
    db_port: int = Field(default=5432)
    db_database: str = Field(default="learnhub")
    db_username: str = Field(default="learnhub")
    db_password: str = Field(default="learnhub")

    # Security Settings
    cors_allowed_origins: List[str] = Field(default=["http://localhost:3000"])
    rate_limit_enabled: bool = Field(default=True)
    rate_limit_storage_uri: str = Field(default="memory://")
    rate_limit_default: str = Field(default="100/minute")
    checkout_rate_limit: str = Field(default="10/minute")
    password_hash_rounds: int = Field(default=12)

    # JWT Configuration
    jwt_secret: str = Field(default="your-secret-key-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_user_expiration: int = Field(default=7)
    jwt_issuer: str = Field(default="LearnHub")
    password_reset_expiration_minutes: int = Field(default=60)

    # Payments (Stripe)
    stripe_secret_key: str = Field(default="")
    payment_currency: str = Field(default="usd")
    verify_checkout_sessions: bool = Field(default=True)

    # Email (Resend)
    resend_api_key: str = Field(default="")
    mail_from_address: str = Field(default="receipts@resend.dev")
    mail_from_name: str = Field(default="LearnHub")
    mail_timeout_seconds: float = Field(default=10.0)

    # Video (Mux)
    mux_stream_base_url: str = Field(default="https://stream.mux.com")
    mux_image_base_url: str = Field(default="https://image.mux.com")

    # Redis / catalog cache
    redis_url: str = Field(default="redis://localhost:6379")
    cache_enabled: bool = Field(default=True)
    catalog_cache_ttl: int = Field(default=300)

    # Access policy when the purchase ledger cannot be read
    access_read_failure_policy: Literal["fail_closed", "fail_open"] = Field(
        default="fail_closed"
    )

    # Logging
    log_level: str = Field(default="info")
    log_file: str = Field(default="logs/app.log")

    # ============================
    # Generic comma-separated parser
    # ============================
    @staticmethod
    def _parse_csv(value, default):
        if isinstance(value, str):
            items = [x.strip() for x in value.split(",") if x.strip()]
            return items if items else default
        if isinstance(value, list):
            return value
        return default

    @field_validator("cors_allowed_origins", mode="before")
    def validate_cors(cls, v):
        return cls._parse_csv(v, ["http://localhost:3000"])

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return "postgresql+psycopg2://{user}:{password}@{host}:{port}/{database}".format(
            user=self.db_username,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_database,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


def load_settings() -> Settings:
    try:
        settings = Settings()
        logger.info("Settings loaded successfully")
        return settings
    except ValidationError as e:
        logger.error(f"Invalid settings: {e}")
        raise


settings = load_settings()
