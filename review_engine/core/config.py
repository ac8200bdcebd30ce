# review_engine/core/config.py
from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Long Answer Review Engine"

    # Database
    # Use PostgreSQL for production
    DATABASE_URL: str = "sqlite:///./review_engine.db"

    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Keyword scoring policy
    SCORE_ROUNDING_STEP: Decimal = Decimal("0.5")  # <= 0 keeps two decimals
    AMBIGUOUS_BAND_LOWER: float = 0.0  # match fraction at or below -> MEDIUM
    AMBIGUOUS_BAND_UPPER: float = 1.0  # match fraction at or above -> LOW
    AUTO_ACCEPT_FULL_MATCH: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
