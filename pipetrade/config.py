from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./pipetrade.db"

    # Database Connection Pool Settings (ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # JWT Settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480  # One working shift

    # App Settings
    APP_NAME: str = "PipeTrade ERP"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Company / tax
    COMPANY_STATE: str = "Maharashtra"  # Intra-state invoices split CGST/SGST

    # Approval thresholds (INR)
    QUOTATION_APPROVAL_THRESHOLD: float = 100000
    PO_APPROVAL_THRESHOLD: float = 100000
    PR_APPROVAL_THRESHOLD: float = 50000

    # Procurement automation
    AUTO_PR_MIN_SHORTFALL: float = 10  # Metres
    AUTO_PR_LEAD_DAYS: int = 45
    MAX_QUOTATION_REVISIONS: int = 99

    # Background jobs
    SCHEDULER_ENABLED: bool = True
    QUOTATION_EXPIRY_CHECK_MINUTES: int = 60

    # First-run admin seed
    DEFAULT_ADMIN_EMAIL: str = "admin@pipetrade.in"
    DEFAULT_ADMIN_PASSWORD: str = "Admin@123"

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
