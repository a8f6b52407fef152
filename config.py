from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables or a `.env` file.
    Every value has a development default so the app imports without any setup.
    """

    DATABASE_URL: Optional[str] = None
    """MongoDB connection string. Without it the store is reported as not available."""

    DATABASE_NAME: Optional[str] = None
    """Name of the MongoDB database."""

    JWT_SECRET: str = "dev_secret_change_me"
    """Secret used to sign auth tokens."""

    JWT_ALGORITHM: str = "HS256"

    TOKEN_EXPIRE_DAYS: int = 300
    """Lifetime of an issued token and of the auth cookie."""

    COOKIE_NAME: str = "jwtoken"
    COOKIE_SECURE: bool = True
    COOKIE_SAMESITE: str = "none"

    CORS_ORIGINS: str = "*"
    """Comma separated list of allowed origins."""

    SHORTS_FILE: str = "data/shorts.json"
    """JSON file holding the array of shorts."""

    GOOGLE_SERVICE_ACCOUNT_FILE: str = "secret.json"
    """Service account key used for the rental spreadsheet."""

    GOOGLE_SHEET_ID: Optional[str] = None
    GOOGLE_SHEET_RANGE: str = "Data!A:F"

    LOG_LEVEL: str = "INFO"
    PORT: int = 8000

    class Config:
        env_file = ".env"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
"""Settings singleton shared across the app"""
