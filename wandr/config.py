from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False

    # Database settings
    DATABASE_URL: str = "postgresql://localhost:5432/wandr"
    DB_STATEMENT_TIMEOUT: str = "10s"

    # Auth settings
    JWT_SECRET: str | None = None
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str | None = None

    # Proxy settings
    TRUST_X_FORWARDED_FOR: bool = False
    TRUSTED_PROXY_IPS: list[str] = []

    # Vision oracle settings
    OPENAI_API_KEY: str | None = None
    VISION_MODEL: str = "gpt-4o"
    VISION_MAX_TOKENS: int = 1024
    VISION_DESCRIBE_MAX_TOKENS: int = 500
    VISION_TIMEOUT_SECONDS: float = 45.0
    VISION_MAX_RETRIES: int = 2

    # =================================================================
    # VERIFICATION POLICY
    # =================================================================
    VISION_MAX_CANDIDATES: int = 20
    VISION_AUTO_MATCH_THRESHOLD: float = 0.85
    VISION_SUGGEST_THRESHOLD: float = 0.60
    VISION_HINT_THRESHOLD: float = 0.30

    SCAN_LIMIT_FREE: int = 5
    SCAN_LIMIT_PREMIUM: int = 50
    SCAN_QUOTA_TIMEZONE: str = "UTC"

    SCAN_RADIUS_DEFAULT_METERS: int = 50_000
    SCAN_RADIUS_MIN_METERS: int = 1_000
    SCAN_RADIUS_MAX_METERS: int = 100_000
    SCAN_MIN_IMAGE_LENGTH: int = 100
    SCAN_PREVIEW_MAX_CHARS: int = 500
    MAX_KEYWORDS_IN_QUERY: int = 5

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 3
    DB_POOL_MAX_SIZE: int = 12
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_thresholds(self) -> "Settings":
        if not (
            0.0
            <= self.VISION_HINT_THRESHOLD
            <= self.VISION_SUGGEST_THRESHOLD
            <= self.VISION_AUTO_MATCH_THRESHOLD
            <= 1.0
        ):
            raise ValueError(
                "Confidence thresholds must satisfy 0 <= hint <= suggest <= auto_match <= 1"
            )
        if self.SCAN_RADIUS_MIN_METERS > self.SCAN_RADIUS_MAX_METERS:
            raise ValueError("SCAN_RADIUS_MIN_METERS must not exceed SCAN_RADIUS_MAX_METERS")
        return self

    def scan_limits(self) -> dict[str, int]:
        """Daily scan quota per subscription tier."""
        return {"free": self.SCAN_LIMIT_FREE, "premium": self.SCAN_LIMIT_PREMIUM}

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update(
                {
                    "min_size": 2,
                    "max_size": 6,
                    "timeout": 15.0,
                }
            )

        return config


settings = Settings()
