# companion/core/config.py

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
    # Either a full URL or the Postgres parts below. With neither, the app runs
    # on the seeded in-memory repository.
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str | None = None
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str | None = None
    POSTGRES_USER: str | None = None
    POSTGRES_PASSWORD: str | None = None

    # --- Text generation (OpenAI-compatible chat completions) ---
    OPENAI_API_KEY: str | None = None
    OPENAI_BASE_URL: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    RESPONSE_MAX_TOKENS: int = 512

    # --- Identity ---
    JWT_SECRET: str = "CHANGE_ME_DEV_SECRET"
    JWT_EXPIRE_MINUTES: int = 60
    REQUIRE_EMAIL_CONFIRMATION: bool = False
    MIN_PASSWORD_LENGTH: int = 6
    # Password of the seeded demo clinician (in-memory backend only)
    DEMO_ACCOUNT_PASSWORD: str = "companion-demo"

    # --- Email (SendGrid) ---
    SENDGRID_API_KEY: str | None = None
    SENDGRID_BASE_URL: str = "https://api.sendgrid.com"
    EMAIL_FROM: str | None = None

    # --- WhatsApp (Twilio) ---
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_WHATSAPP_FROM: str | None = None  # e.g. whatsapp:+14155238886
    WHATSAPP_COUNTRY_CODE: str = "55"

    # --- Reminders ---
    REMINDER_LOOKAHEAD_DAYS: int = 7

    # --- Monitoring & Logging ---
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"
    LOG_REQUESTS: bool = False
    LOG_RESPONSES: bool = False
    MAX_LOG_LENGTH: int = 200
    SLOW_REQUEST_THRESHOLD: float = 2.0

    ALLOWED_CORS_ORIGINS: str = "*"  # comma-separated list

    # Async URI (SQLAlchemy engine)
    @property
    def async_db_uri(self) -> str | None:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if not (self.POSTGRES_HOST and self.POSTGRES_DB and self.POSTGRES_USER):
            return None
        pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD or "")
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Sync URI (Alembic)
    @property
    def sync_db_uri(self) -> str | None:
        uri = self.async_db_uri
        if uri is None:
            return None
        return uri.replace("+asyncpg", "").replace("+aiosqlite", "")

    @property
    def database_configured(self) -> bool:
        return self.async_db_uri is not None

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() in ("development", "dev", "local")

# Singleton
settings = Settings()
