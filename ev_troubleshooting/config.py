from pathlib import Path
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).parent


def normalize_public_url(raw: Optional[str]) -> str:
    """`myapp.up.railway.app` -> `https://myapp.up.railway.app`, no trailing slash."""
    value = (raw or "").strip()
    if not value:
        return ""
    if not value.startswith(("http://", "https://")):
        value = f"https://{value}"
    return value.rstrip("/")


class Settings(BaseSettings):
    # Security: Read from .env. Empty token disables the bot, not the HTTP app.
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_WEBHOOK_SECRET: str = ""

    # Deployment
    PUBLIC_URL: str = ""
    RAILWAY_PUBLIC_DOMAIN: str = ""
    USE_WEBHOOK: bool = False
    WEBHOOK_PATH: str = "/telegram"
    PORT: int = 3000

    # Fault library
    FAULTS_DIR: Path = PACKAGE_DIR / "data" / "faults"
    IMAGES_DIR: Optional[Path] = None

    # State lifetime
    SESSION_IDLE_TIMEOUT_SECONDS: float = 6 * 60 * 60
    REPORT_IDLE_TIMEOUT_SECONDS: float = 6 * 60 * 60
    MESSAGE_STATE_MAX_ENTRIES: int = 5000

    # UX
    CALLBACK_DEDUPE_WINDOW_MS: int = 400
    PACK_MENU_SIZE: int = 8

    LOG_LEVEL: str = "INFO"

    # Loads from a .env file in the root directory
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("TELEGRAM_BOT_TOKEN", "TELEGRAM_WEBHOOK_SECRET")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @model_validator(mode="after")
    def _derive(self):
        self.PUBLIC_URL = normalize_public_url(self.PUBLIC_URL or self.RAILWAY_PUBLIC_DOMAIN)
        if self.IMAGES_DIR is None:
            self.IMAGES_DIR = self.FAULTS_DIR / "images"
        return self

    @property
    def webhook_url(self) -> str:
        return f"{self.PUBLIC_URL}{self.WEBHOOK_PATH}" if self.PUBLIC_URL else ""

    @property
    def use_webhook(self) -> bool:
        # Only with an explicit opt-in, so a local run cannot steal the prod webhook
        return self.USE_WEBHOOK and bool(self.webhook_url)


# Singleton instance
settings = Settings()
