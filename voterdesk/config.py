from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Optional
import os


DATA_DIR = os.path.join(os.getcwd(), "data")
SECRET_DIR = os.path.join(os.getcwd(), "secrets")


def _default_database_url() -> str:
    os.makedirs(DATA_DIR, exist_ok=True)
    return f"sqlite:///{os.path.join(DATA_DIR, 'voterdesk.db')}"


def _load_or_create_secret() -> str:
    # Mismo esquema de siempre: el secreto JWT vive en ./secrets si no viene del entorno
    os.makedirs(SECRET_DIR, exist_ok=True)
    secret_file = os.path.join(SECRET_DIR, "jwt_secret.txt")
    if not os.path.exists(secret_file):
        with open(secret_file, "w", encoding="utf-8") as f:
            f.write(os.urandom(32).hex())
    with open(secret_file, "r", encoding="utf-8") as f:
        return f.read().strip()


class Settings(BaseSettings):
    """Application settings, configurable through VOTERDESK_* environment variables"""

    model_config = SettingsConfigDict(env_prefix="VOTERDESK_", env_file=".env", extra="ignore")

    APP_NAME: str = "VoterDesk"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: Optional[str] = None
    SECRET_KEY: Optional[str] = None
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 8

    CHAT_HISTORY_LIMIT: int = 50
    CHAT_POLL_INTERVAL: float = 3.0
    NOTICE_TTL: float = 3.0
    SESSION_FILE: str = os.path.join(os.path.expanduser("~"), ".voterdesk", "session.json")
    API_URL: str = "http://127.0.0.1:8000"

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper()

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL or _default_database_url()

    @property
    def secret_key(self) -> str:
        return self.SECRET_KEY or _load_or_create_secret()


settings = Settings()
