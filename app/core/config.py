from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application Information
    app_name: str = Field(default="Live Class Platform")
    app_description: str = Field(default="Live class booking and payment service")
    app_version: str = Field(default="1.0.0")
    app_url: str = Field(default="http://localhost:8000")
    frontend_url: str = Field(default="http://localhost:3000")
    debug: bool = Field(default=True)
    production: bool = Field(default=False)
    timezone: str = Field(default="UTC")

    # Database Configuration
    db_connection: str = Field(default="postgresql")
    db_host: str = Field(default="127.0.0.1")
    db_port: int = Field(default=5432)
    db_database: str = Field(default="live-classes")
    db_username: str = Field(default="home")
    db_password: str = Field(default="123")
    database_url: Optional[str] = Field(default=None)  # overrides db_* when set

    # Security Settings
    cors_allowed_origins: List[str] = Field(default=["http://localhost:3000"])

    # JWT Configuration (tokens are issued by the auth service)
    jwt_secret: str = Field(default="your-secret-key-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_user_expiration: int = Field(default=7)
    jwt_admin_expiration: int = Field(default=90)
    jwt_issuer: str = Field(default="Live Class Platform")

    # Email (SMTP)
    mail_enabled: bool = Field(default=False)
    mail_host: str = Field(default="smtp.example.com")
    mail_port: int = Field(default=587)
    mail_username: str = Field(default="your@email.com")
    mail_password: str = Field(default="")
    mail_encryption: str = Field(default="tls")
    mail_from_address: str = Field(default="no-reply@example.com")
    mail_from_name: str = Field(default="Live Class Platform")

    # File Uploads
    upload_dir: str = Field(default="storage")

    # Pagination
    default_page_size: int = Field(default=10)
    max_page_size: int = Field(default=100)

    # Payment (Razorpay)
    payment_provider: str = Field(default="razorpay")
    payment_api_url: str = Field(default="https://api.razorpay.com/v1")
    payment_key_id: str = Field(default="")
    payment_key_secret: str = Field(default="")
    payment_currency: str = Field(default="INR")
    subscription_period_months: int = Field(default=1)

    # Renewal sweep (in-process scheduler; `main.py process-renewals` for cron)
    renewal_scheduler_enabled: bool = Field(default=True)
    renewal_sweep_minute: int = Field(default=0)

    # Zoom (server-to-server OAuth)
    zoom_oauth_url: str = Field(default="https://zoom.us/oauth/token")
    zoom_api_url: str = Field(default="https://api.zoom.us/v2")
    zoom_account_id: str = Field(default="")
    zoom_client_id: str = Field(default="")
    zoom_client_secret: str = Field(default="")
    zoom_timezone: str = Field(default="Asia/Kolkata")

    # Rate limiting storage
    redis_url: str = Field(default="redis://localhost:6379")
    redis_rate_limit: str = Field(default="100/minute")
    payment_rate_limit: str = Field(default="20/minute")
    rate_limit_enabled: bool = Field(default=True)

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
    def sqlalchemy_database_url(self) -> str:
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


def load_settings():
    try:
        settings = Settings()
        print("✅ Settings loaded successfully!")
        return settings
    except ValidationError as e:
        print("❌ Validation Error:", e)
        raise


settings = load_settings()
