from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    PROJECT_NAME: str = "Inkwell"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"  # "development", "staging", "production"
    SECRET_KEY: str = ""  # Must be set via environment variable
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days (matches cookie expiry)

    # Database
    DATABASE_URL: str = "sqlite:///./inkwell.db"

    # Comma-separated origins allowed to call the API from a browser
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Cookie security (False for local dev without HTTPS)
    COOKIE_SECURE: bool = True

    # Background publishing
    RUN_SCHEDULER: bool = True
    PUBLISH_SWEEP_INTERVAL_SECONDS: int = 60

    # Content
    WORDS_PER_MINUTE: int = 200
    VERSION_RETRY_ATTEMPTS: int = 5  # Retries when two edits race for the same version number

    # Observability
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def _require_secret_in_production(self) -> "Settings":
        if self.ENVIRONMENT == "production" and len(self.SECRET_KEY) < 32:
            raise ValueError("SECRET_KEY must be set to at least 32 characters in production")
        return self

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


settings = Settings()
