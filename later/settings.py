from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILES = [PROJECT_ROOT / ".env", ".env"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=ENV_FILES, extra="ignore")

    # DB (unset -> in-memory store only)
    DATABASE_URL: str | None = None
    DATABASE_AUTO_CREATE: bool = False

    # App
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Identity provider + blob store
    SUPABASE_URL: str | None = None
    SUPABASE_ANON_KEY: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    STORAGE_BUCKET: str = "reminder-files"
    UPSTREAM_TIMEOUT_SEC: float = 10.0

    # Scheduler trigger
    CRON_SECRET: str | None = None

    # Link previews
    LINK_PREVIEW_TIMEOUT_SEC: float = 3.0
    LINK_PREVIEW_USER_AGENT: str = "LaterRemindersBot/0.1"

    # Rate limiting
    REDIS_URL: str | None = None
    API_RATE_LIMIT_PER_MIN: int = 120
    API_RATE_WINDOW_SEC: int = 60

    @property
    def identity_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)

    @property
    def storage_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_ROLE_KEY)


settings = Settings()
