from pydantic_settings import BaseSettings
from typing import Any, Callable, List, Optional, TypeVar
import json

T = TypeVar("T")


def parse_list(value: Any, cast: Callable[[Any], T] = str) -> List[T]:
    """
    Env-friendly list parsing: a JSON array or a comma separated string.

    "5,10,25" and "[5, 10, 25]" both give [5, 10, 25] with cast=int.
    """
    if isinstance(value, str):
        value = value.strip()
        if value.startswith('['):
            value = json.loads(value)
        else:
            value = [item.strip() for item in value.split(',') if item.strip()]
    return [cast(item) for item in value or []]


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "BountyExpo API"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str = "CHANGE_ME"
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./bountyexpo.db"
    DB_ECHO: bool = False

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str = "CHANGE_ME"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    BCRYPT_ROUNDS: int = 12  # 4 for dev (fast), 12 for prod (secure)

    # ==========================================
    # CORS
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:8081,http://localhost:19006"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return parse_list(self.CORS_ORIGINS_STR)

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    MAX_REQUEST_SIZE_MB: int = 10

    # ==========================================
    # Bounty Feed
    # ==========================================
    MOCK_DISTANCE_MAX_MILES: int = 15
    DISTANCE_FILTER_OPTIONS_STR: str = "5,10,25,50"
    FEED_MAX_ITEMS: int = 200

    @property
    def DISTANCE_FILTER_OPTIONS(self) -> List[int]:
        return parse_list(self.DISTANCE_FILTER_OPTIONS_STR, int)

    # ==========================================
    # Wallet (all amounts in cents)
    # ==========================================
    CURRENCY: str = "usd"
    MAX_DEPOSIT_CENTS: int = 1_000_000  # $10,000
    MIN_WITHDRAWAL_CENTS: int = 100  # $1

    # ==========================================
    # Messaging
    # ==========================================
    TYPING_INDICATOR_TTL_SECONDS: int = 5
    MESSAGE_MAX_LENGTH: int = 5000

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def is_dev_mode(self) -> bool:
        """Development and test environments allow placeholder secrets"""
        return self.ENVIRONMENT in ("development", "test")


# Create settings instance
settings = Settings()
