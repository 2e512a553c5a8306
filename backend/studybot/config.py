"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from studybot.db.models import Semester


DEFAULT_DOCS_LINKS = {
    "IT003": "https://drive.google.com/drive/folders/1yq-UCLLKQ7sCprpgBAr0fyvTyHhAENzz",
    "MA004": "https://drive.google.com/drive/folders/1ko2CZQ5Cim3bVmvxTaMp2ppQelyXYz7k?usp=sharing",
    "IE105": "https://drive.google.com/drive/folders/19WuX5aageEQ_H_bEZaFIJI3fafV6F101?usp=sharing",
    "MA005": "https://drive.google.com/drive/folders/1i3usHbgApzG3iT0Nzi8vV0mmfx_sFNU9?usp=sharing",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Study Optimizer Bot"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    # A full URL (hosted Postgres, or sqlite+aiosqlite for tests) wins over the parts below
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "studybot"
    postgres_password: str = ""
    postgres_db: str = "studybot"

    def _base_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @computed_field
    @property
    def database_url(self) -> str:
        """Async URL for the app engine (asyncpg or aiosqlite)."""
        scheme, sep, rest = self._base_url().partition("://")
        if scheme in ("postgres", "postgresql", "postgresql+psycopg2"):
            # asyncpg rejects libpq query options such as sslmode
            return f"postgresql+asyncpg{sep}{rest.split('?')[0]}"
        if scheme == "sqlite":
            return f"sqlite+aiosqlite{sep}{rest}"
        return f"{scheme}{sep}{rest}"

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Sync URL for Alembic (psycopg2 or plain sqlite)."""
        scheme, sep, rest = self._base_url().partition("://")
        driverless = {"postgres": "postgresql", "postgresql+asyncpg": "postgresql", "sqlite+aiosqlite": "sqlite"}
        return f"{driverless.get(scheme, scheme)}{sep}{rest}"

    # Zalo Bot API
    zalo_bot_token: str = ""
    zalo_api_base_url: str = "https://bot-api.zapps.me"
    # Empty webhook URL means polling mode: the webhook is only deleted at startup
    webhook_url: str = ""
    webhook_secret: str = ""
    http_timeout_seconds: float = 10.0
    typing_delay_seconds: float = 1.0

    # Admin surface
    admin_authentication_key: str = ""

    # Authorization: external ids allowed to run /add_assignment_class
    assignment_editors: list[str] = []

    # Academic calendar
    timezone: str = "Asia/Ho_Chi_Minh"
    academic_year: str = "2025-2026"
    semester: Semester = Semester.SUMMER

    # Scheduling
    daily_digest_cron: str = "0 9 * * *"
    assignment_reminder_cron: str = "30 14 * * *"
    pre_class_reminder_minutes: int = 30
    assignment_due_window_days: int = 7
    job_state_file: str = "./job_state.json"
    shutdown_drain_seconds: float = 5.0
    # Spacing between broadcast sends to stay under the platform rate limit
    broadcast_pause_seconds: float = 0.1

    # Reference material per subject-code prefix, served by /docs
    docs_links: dict[str, str] = DEFAULT_DOCS_LINKS

    @computed_field
    @property
    def is_polling(self) -> bool:
        """Polling mode when no public webhook URL is configured."""
        return not self.webhook_url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    settings = get_settings()
    if settings.environment == "development":
        return str(error)
    return generic_message
