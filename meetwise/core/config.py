# meetwise/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
import urllib.parse

class Settings(BaseSettings):
    # Read env from .env; ignore unknown keys so extra lines don't crash startup
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database ---
    # DATABASE_URL wins when set (tests use sqlite+aiosqlite)
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "meetwise"
    POSTGRES_USER: str = "meetwise"
    POSTGRES_PASSWORD: str = ""

    # --- Security ---
    API_KEY: str | None = None

    # --- Scheduling rules ---
    SLOT_LOCK_TTL_SECONDS: int = 120
    MAX_SLOT_RANGE_DAYS: int = 60
    BOOKING_HORIZON_DAYS: int = 60
    DEFAULT_MINIMUM_NOTICE_HOURS: int = 24

    # --- Background maintenance ---
    MAINTENANCE_INTERVAL_SECONDS: int = 60  # 0 disables the loop
    REMINDER_HOURS_BEFORE: int = 24

    # --- Email (Mailgun) ---
    MAILGUN_API_KEY: str | None = None
    MAILGUN_DOMAIN: str | None = None
    MAILGUN_FROM_EMAIL: str | None = None
    MAILGUN_BASE_URL: str = "https://api.mailgun.net/v3"
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    # --- Google Calendar ---
    GOOGLE_CALENDAR_ENABLED: bool = False
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_TOKEN_URI: str = "https://oauth2.googleapis.com/token"

    # --- Monitoring & Logging ---
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"
    LOG_REQUESTS: bool = False
    MAX_LOG_LENGTH: int = 200
    SLOW_REQUEST_THRESHOLD: float = 2.0
    ERROR_AGGREGATION_THRESHOLD: int = 10

    # Sync URI (Alembic)
    @property
    def sync_db_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL.replace("+asyncpg", "").replace("+aiosqlite", "")
        pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Async URI (SQLAlchemy engine)
    @property
    def async_db_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def mailgun_enabled(self) -> bool:
        return bool(self.MAILGUN_API_KEY and self.MAILGUN_DOMAIN)

    # Monitoring helpers
    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() in ("development", "dev", "local")

    @property
    def is_testing(self) -> bool:
        return self.APP_ENV.lower() in ("test", "testing")

# Singleton
settings = Settings()
