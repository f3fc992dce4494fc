# backend/roamplan/core/config_loader.py

from typing import List, Tuple
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    environment: str = "development"

    DB_PATH: str = "data.sqlite3"
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"
    LOG_FILE_MAX_MB: int = 5
    LOG_FILE_BACKUPS: int = 5

    JWT_SECRET_KEY: str = "supersecret"
    JWT_ALGORITHM: str = "HS256"
    access_token_expire_minutes: int = 1440
    BCRYPT_ROUNDS: int = 12

    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_TOKENINFO_URL: str = "https://oauth2.googleapis.com/tokeninfo"

    OPENAI_API_KEY: str = ""
    gpt_model_mini: str = "gpt-4.1-mini"

    ADMIN_EMAILS: str = ""

    # "<count>/<seconds>"
    RATE_LIMIT_DEFAULT: str = "100/60"
    RATE_LIMIT_AUTH: str = "5/60"

    STORAGE_DIR: str = "storage"
    STORAGE_PUBLIC_BASE_URL: str = "/static"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    PARTNER_TIMEOUT_SECONDS: float = 10.0
    PARTNER_MAX_RETRIES: int = 3
    PARTNER_BACKOFF_SECONDS: float = 0.5

    CORS_ORIGINS: str = "*"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @property
    def admin_emails(self) -> List[str]:
        return [e.strip().lower() for e in self.ADMIN_EMAILS.split(",") if e.strip()]

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


def parse_rate(rate: str) -> Tuple[int, int]:
    """
    Parse a "<count>/<seconds>" rate string, e.g. "100/60".
    """
    count, _, seconds = rate.partition("/")
    limit = int(count)
    window = int(seconds or 60)
    if limit < 1 or window < 1:
        raise ValueError(f"Invalid rate: {rate!r}")
    return limit, window


settings = Settings()
