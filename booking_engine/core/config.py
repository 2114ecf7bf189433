from pathlib import Path
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Booking business rules
    business_timezone: str = "Asia/Kolkata"
    min_transaction_id_length: int = 4
    # payment_review bookings not verified within this window are cancelled
    payment_review_expiry_hours: int = 24
    expiry_check_interval_seconds: int = 15 * 60
    # Status lookup flags active bookings starting within this many hours
    starts_soon_hours: int = 2

    # Lifecycle events. Leave notification_webhook_url empty to disable.
    notification_webhook_url: str = ""
    notification_timeout_seconds: float = 5.0

    # Env
    env: str = "development"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def business_tz(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.notification_webhook_url)


settings = Settings()
